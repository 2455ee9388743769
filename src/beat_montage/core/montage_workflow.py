"""
Montage Workflow - the background pipeline of one run

Phases, in order:
    1. analyzing  (10%)  key moments from the model, through the cache
    2. planning          beat slots, clip pool validation
    3. rendering  (70%)  segment allocation, filter graph, ffmpeg
    4. done       (100%) reported by the job manager

Every phase except analysis and rendering is pure and synchronous.
Errors propagate to the job manager, which owns the failure policy.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from ..config import Settings, get_settings
from ..logger import logger, log_step, log_success
from .analysis_cache import AnalysisResponseCache
from .analysis_client import GeminiAnalysisClient
from .beat_intervals import calculate_beat_intervals
from .clip_allocator import allocate_segments
from .clip_pool import clips_from_analysis
from .graph_builder import build_filter_graph
from .media_probe import probe_duration
from .models import MontagePlan, MontageRequest
from .renderer import FFmpegRenderer


@dataclass
class WorkflowInputs:
    """Resolved media for one run."""
    run_id: str
    request: MontageRequest
    source_video: Path
    audio_path: Path
    output_path: Path


class MontageWorkflow:
    """Analysis → planning → render for a single montage run."""

    def __init__(
        self,
        cache: AnalysisResponseCache,
        client: Optional[GeminiAnalysisClient] = None,
        renderer: Optional[FFmpegRenderer] = None,
        probe: Callable[[Union[str, Path]], float] = probe_duration,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache
        self.client = client or GeminiAnalysisClient(self.settings.analysis)
        self.renderer = renderer or FFmpegRenderer(self.settings.encoding)
        self.probe = probe

    def analyze(self, request: MontageRequest, source_duration: float) -> str:
        source_uri = self.client.source_uri_for(request.source_id)
        return self.cache.get_or_fetch(
            source_uri,
            lambda: self.client.analyze(source_uri, duration_hint=source_duration),
        )

    def plan(self, request: MontageRequest, raw_analysis: str, source_duration: float) -> MontagePlan:
        frame_rate = self.settings.timeline.frame_rate
        intervals = calculate_beat_intervals(request.beat_markers, request.region, frame_rate)
        clips = clips_from_analysis(raw_analysis, source_duration)
        return MontagePlan(
            region=request.region.aligned(frame_rate),
            intervals=intervals,
            clips=clips,
            segments=[],
        )

    def execute(self, inputs: WorkflowInputs, progress) -> Path:
        """
        Run the pipeline, reporting through ``progress.advance``.

        Returns:
            Path of the rendered montage
        """
        run_id = inputs.run_id
        timeline = self.settings.timeline

        progress.advance(run_id, 10, "Analyzing video...")
        source_duration = self.probe(inputs.source_video)
        raw_analysis = self.analyze(inputs.request, source_duration)
        plan = self.plan(inputs.request, raw_analysis, source_duration)
        log_step(
            f"Run {run_id}: {len(plan.intervals)} beat slots over "
            f"{plan.region.duration:.2f}s, {len(plan.clips)} clips in pool",
            emoji="🎵",
        )

        progress.advance(run_id, 70, "Rendering montage...")
        plan.segments = allocate_segments(plan.intervals, plan.clips)
        graph = build_filter_graph(
            plan.segments,
            plan.region,
            fade_window=timeline.fade_window,
            intro_duration=timeline.intro_duration,
            outro_duration=timeline.outro_duration,
            outro_start=plan.clips[-1].start,
        )
        logger.debug(f"Run {run_id} filter graph: {graph.to_string()}")

        output = self.renderer.render(inputs.source_video, inputs.audio_path, graph, inputs.output_path)
        log_success(f"Run {run_id}: {len(plan.segments)} segments rendered to {output.name}")
        return output
