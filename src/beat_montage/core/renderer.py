"""
FFmpeg renderer for montage filter graphs.

Executes a FilterGraph against the source video (input 0) and the music
bed (input 1) and writes an H.264/AAC MP4 with faststart.
"""

import subprocess
from pathlib import Path
from typing import List, Optional, Union

from ..config import EncodingConfig, get_settings
from ..exceptions import FFmpegError
from ..logger import log_error, logger
from .cmd_runner import CommandError, run_command
from .graph_builder import FilterGraph


class FFmpegRenderer:
    """Runs the ffmpeg binary on a declarative filter graph."""

    def __init__(self, encoding: Optional[EncodingConfig] = None):
        self.encoding = encoding or get_settings().encoding

    def build_command(
        self,
        source_path: Union[str, Path],
        audio_path: Union[str, Path],
        graph: FilterGraph,
        output_path: Union[str, Path],
    ) -> List[str]:
        enc = self.encoding
        return [
            enc.ffmpeg_bin, "-y", "-hide_banner",
            "-i", str(source_path),
            "-i", str(audio_path),
            "-filter_complex", graph.to_string(),
            "-map", f"[{graph.video_label}]",
            "-map", f"[{graph.audio_label}]",
            "-c:v", enc.codec, "-preset", enc.preset, "-crf", str(enc.crf),
            "-c:a", enc.audio_codec, "-b:a", enc.audio_bitrate,
            "-movflags", "+faststart",
            str(output_path),
        ]

    def render(
        self,
        source_path: Union[str, Path],
        audio_path: Union[str, Path],
        graph: FilterGraph,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Render the montage.

        Returns:
            Path of the written file

        Raises:
            FFmpegError: on non-zero exit, timeout, or missing ffmpeg binary
        """
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(source_path, audio_path, graph, output)

        logger.info(f"🎬 Rendering {graph.total_duration:.2f}s montage -> {output.name}")
        try:
            run_command(cmd, timeout=self.encoding.render_timeout)
        except CommandError as e:
            log_error(f"FFmpeg error on final montage:\n{e.stderr_tail}")
            raise FFmpegError(str(e), command=" ".join(e.cmd), stderr=e.stderr) from e
        except subprocess.TimeoutExpired as e:
            raise FFmpegError(f"ffmpeg timed out after {e.timeout}s") from e
        except OSError as e:
            raise FFmpegError(f"could not start ffmpeg: {e}") from e

        if not output.exists():
            raise FFmpegError(f"ffmpeg finished but {output.name} was not written")
        return output
