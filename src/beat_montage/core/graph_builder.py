"""
FilterGraph Builder - filter_complex construction for the montage render

Serializes a segment plan into the declarative FFmpeg filter graph handed
to the renderer. Input 0 is the source video, input 1 the music bed.

    [0:v]trim=start=S0:duration=D0,setpts=PTS-STARTPTS[mv0];
    ...
    [mv0][mv1]...concat=n=N:v=1:a=0[montage_v];
    [1:a]atrim=start=R0:duration=RD,asetpts=PTS-STARTPTS[montage_a];
    [montage_v]fade=t=out:st=F:d=W[faded_v];
    [montage_a]afade=t=out:st=F:d=W[faded_a]

The builder is pure: the same segments, region and options always yield
byte-identical text, so plans can be checked without invoking FFmpeg.

Usage:
    from beat_montage.core.graph_builder import build_filter_graph

    graph = build_filter_graph(plan.segments, plan.region, fade_window=2.0)
    cmd = ["ffmpeg", "-i", src, "-i", music, "-filter_complex", graph.to_string(),
           "-map", f"[{graph.video_label}]", "-map", f"[{graph.audio_label}]", out]
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .models import Region, Segment

VIDEO_OUTPUT_LABEL = "faded_v"
AUDIO_OUTPUT_LABEL = "faded_a"


def format_seconds(value: float) -> str:
    """Fixed-precision, trailing-zero-free rendering of a time value."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


@dataclass
class FilterStep:
    """Single filter operation in a chain.

    Example:
        FilterStep("trim", {"start": 12, "duration": 1.5})
        → "trim=start=12:duration=1.5"
        FilterStep("setpts", expression="PTS-STARTPTS")
        → "setpts=PTS-STARTPTS"
    """
    name: str
    params: Dict[str, Any] = field(default_factory=dict)
    expression: Optional[str] = None

    def to_string(self) -> str:
        if self.expression is not None:
            return f"{self.name}={self.expression}"
        if not self.params:
            return self.name

        parts = []
        for key, value in self.params.items():
            if isinstance(value, float):
                value = format_seconds(value)
            elif isinstance(value, str) and any(c in value for c in " ;:[],'\""):
                value = f"'{value}'"
            parts.append(f"{key}={value}")
        return f"{self.name}={':'.join(parts)}"


@dataclass
class FilterNode:
    """A labelled filter chain: [in]...step,step...[out]."""
    inputs: List[str]
    steps: List[FilterStep]
    outputs: List[str]

    def to_string(self) -> str:
        ins = "".join(f"[{label}]" for label in self.inputs)
        chain = ",".join(step.to_string() for step in self.steps)
        outs = "".join(f"[{label}]" for label in self.outputs)
        return f"{ins}{chain}{outs}"


@dataclass
class FilterGraph:
    """Ordered filter nodes plus the labels the renderer maps to the output."""
    nodes: List[FilterNode]
    total_duration: float
    video_label: str = VIDEO_OUTPUT_LABEL
    audio_label: str = AUDIO_OUTPUT_LABEL

    def to_string(self) -> str:
        return ";".join(node.to_string() for node in self.nodes)

    def __str__(self) -> str:
        return self.to_string()


def _video_trim(stream: str, start: float, duration: float, label: str) -> FilterNode:
    return FilterNode(
        inputs=[stream],
        steps=[
            FilterStep("trim", {"start": float(start), "duration": float(duration)}),
            FilterStep("setpts", expression="PTS-STARTPTS"),
        ],
        outputs=[label],
    )


def _audio_trim(stream: str, start: float, duration: float, label: str) -> FilterNode:
    return FilterNode(
        inputs=[stream],
        steps=[
            FilterStep("atrim", {"start": float(start), "duration": float(duration)}),
            FilterStep("asetpts", expression="PTS-STARTPTS"),
        ],
        outputs=[label],
    )


def build_filter_graph(
    segments: Sequence[Segment],
    region: Region,
    fade_window: float,
    intro_duration: float = 0.0,
    outro_duration: float = 0.0,
    outro_start: float = 0.0,
) -> FilterGraph:
    """
    Build the render graph for a segment plan.

    Args:
        segments: Allocated segments in timeline order
        region: Frame-aligned music window
        fade_window: Seconds of fade-out at the end of both streams
        intro_duration: Optional bookend taken from the source origin, with its own audio
        outro_duration: Optional bookend taken from ``outro_start``, with its own audio
        outro_start: Source position of the outro bookend

    Returns:
        FilterGraph ending in [faded_v] and [faded_a]

    Raises:
        ValueError: if there is nothing to concatenate
    """
    if not segments:
        raise ValueError("cannot build a filter graph without segments")
    if fade_window < 0:
        raise ValueError(f"fade_window must not be negative, got {fade_window}")

    nodes: List[FilterNode] = []

    if intro_duration > 0:
        nodes.append(_video_trim("0:v", 0.0, intro_duration, "intro_v"))
        nodes.append(_audio_trim("0:a", 0.0, intro_duration, "intro_a"))
    if outro_duration > 0:
        nodes.append(_video_trim("0:v", outro_start, outro_duration, "outro_v"))
        nodes.append(_audio_trim("0:a", outro_start, outro_duration, "outro_a"))

    for index, segment in enumerate(segments):
        nodes.append(_video_trim("0:v", segment.source_start, segment.duration, f"mv{index}"))

    nodes.append(FilterNode(
        inputs=[f"mv{index}" for index in range(len(segments))],
        steps=[FilterStep("concat", {"n": len(segments), "v": 1, "a": 0})],
        outputs=["montage_v"],
    ))
    nodes.append(_audio_trim("1:a", region.start, region.duration, "montage_a"))

    video_label, audio_label = "montage_v", "montage_a"
    parts = [("montage_v", "montage_a")]
    if intro_duration > 0:
        parts.insert(0, ("intro_v", "intro_a"))
    if outro_duration > 0:
        parts.append(("outro_v", "outro_a"))
    if len(parts) > 1:
        nodes.append(FilterNode(
            inputs=[label for pair in parts for label in pair],
            steps=[FilterStep("concat", {"n": len(parts), "v": 1, "a": 1})],
            outputs=["full_v", "full_a"],
        ))
        video_label, audio_label = "full_v", "full_a"

    total_duration = max(0.0, intro_duration) + region.duration + max(0.0, outro_duration)
    fade_start = max(0.0, total_duration - fade_window)

    nodes.append(FilterNode(
        inputs=[video_label],
        steps=[FilterStep("fade", {"t": "out", "st": float(fade_start), "d": float(fade_window)})],
        outputs=[VIDEO_OUTPUT_LABEL],
    ))
    nodes.append(FilterNode(
        inputs=[audio_label],
        steps=[FilterStep("afade", {"t": "out", "st": float(fade_start), "d": float(fade_window)})],
        outputs=[AUDIO_OUTPUT_LABEL],
    ))

    return FilterGraph(nodes=nodes, total_duration=total_duration)
