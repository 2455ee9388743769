"""ffprobe helpers for source media."""

import json
import subprocess
from pathlib import Path
from typing import Optional, Union

from ..config import get_settings
from ..exceptions import SourceUnavailable
from .cmd_runner import CommandError, run_command


def probe_duration(
    media_path: Union[str, Path],
    ffprobe_bin: Optional[str] = None,
    timeout: Optional[float] = None,
) -> float:
    """
    Container duration of a media file in seconds.

    Raises:
        SourceUnavailable: if the file is missing or ffprobe cannot read it
    """
    encoding = get_settings().encoding
    path = Path(media_path)
    if not path.is_file():
        raise SourceUnavailable(f"Media file not found: {path}")

    cmd = [
        ffprobe_bin or encoding.ffprobe_bin, "-v", "error",
        "-show_entries", "format=duration",
        "-of", "json",
        str(path),
    ]
    try:
        result = run_command(cmd, timeout=timeout or encoding.probe_timeout)
        duration = float(json.loads(result.stdout)["format"]["duration"])
    except (CommandError, subprocess.TimeoutExpired, OSError) as e:
        raise SourceUnavailable(f"ffprobe failed for {path.name}: {e}") from e
    except (ValueError, KeyError, TypeError) as e:
        raise SourceUnavailable(f"ffprobe returned no duration for {path.name}") from e

    if duration <= 0:
        raise SourceUnavailable(f"{path.name} has no playable duration")
    return duration
