import json
from pathlib import Path
from typing import List, Optional

import click

# Lazy load rich to keep `serve` startup light
_console = None


def get_console():
    global _console
    if _console is None:
        from rich.console import Console
        _console = Console()
    return _console


def _read_beats(value: str) -> List[float]:
    """Beat markers from a JSON file or a comma-separated list."""
    path = Path(value)
    try:
        if path.is_file():
            data = json.loads(path.read_text(encoding="utf-8"))
        else:
            data = [part for part in value.split(",") if part.strip()]
        if not isinstance(data, list):
            raise click.BadParameter("beat markers must be a JSON array", param_hint="--beats")
        return [float(beat) for beat in data]
    except (TypeError, ValueError) as e:
        raise click.BadParameter(f"cannot read beat markers: {e}", param_hint="--beats")


@click.group()
def cli():
    """Beat Montage - beat-synced highlight montages"""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (default: HOST env)")
@click.option("--port", default=None, type=int, help="Port (default: PORT env)")
@click.option("--debug/--no-debug", default=False, help="Flask debug mode")
@click.option("--log-dir", type=click.Path(file_okay=False), envvar="LOG_DIR", default=None,
              help="Also write logs to <dir>/server.log")
def serve(host: Optional[str], port: Optional[int], debug: bool, log_dir: Optional[str]):
    """Run the montage HTTP API."""
    from .config import get_settings
    from .logger import configure_file_logging, log_phase, logger
    from .web_ui.app import create_app

    if log_dir:
        log_file = configure_file_logging(Path(log_dir))
        logger.info(f"Logging to {log_file}")

    log_phase("BEAT MONTAGE SERVER")
    settings = get_settings()
    app = create_app(settings=settings)
    host = host or settings.server.host
    port = port or settings.server.port
    logger.info(f"Montage server running on port {port}")
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)


@cli.command()
@click.option("--start", type=float, required=True, help="Region start (seconds)")
@click.option("--end", type=float, required=True, help="Region end (seconds)")
@click.option("--beats", required=True, help="JSON file or comma-separated beat timestamps")
@click.option("--clips", "clips_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Raw analysis response (JSON array of start_timestamp/end_timestamp)")
@click.option("--source-duration", type=click.FloatRange(min=0, min_open=True), required=True,
              help="Length of the source video (seconds)")
@click.option("--frame-rate", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Frame rate (default: FRAME_RATE env)")
@click.option("--graph/--no-graph", default=False, help="Also print the filter graph")
def plan(start: float, end: float, beats: str, clips_file: Optional[str], source_duration: float,
         frame_rate: Optional[float], graph: bool):
    """Show beat slots and clip segments without calling any service."""
    from rich.table import Table

    from .config import get_settings
    from .core.clip_allocator import build_montage_plan
    from .core.clip_pool import clips_from_analysis
    from .core.graph_builder import build_filter_graph
    from .core.models import Region

    console = get_console()
    settings = get_settings()
    frame_rate = frame_rate or settings.timeline.frame_rate

    if not start < end:
        raise click.BadParameter("--start must be before --end")

    raw = Path(clips_file).read_text(encoding="utf-8") if clips_file else None
    clips = clips_from_analysis(raw, source_duration)
    montage = build_montage_plan(_read_beats(beats), Region(start, end), clips, frame_rate)
    if not montage.segments:
        raise click.ClickException("region is shorter than one frame at this frame rate")

    console.print(
        f"🎵 {len(montage.intervals)} slots over {montage.region.duration:.3f}s "
        f"@ {frame_rate} fps, {len(clips)} clips in pool"
    )

    table = Table(title="Segments")
    table.add_column("#", justify="right")
    table.add_column("Clip", justify="right")
    table.add_column("Source start", justify="right")
    table.add_column("Duration", justify="right")
    for index, segment in enumerate(montage.segments):
        table.add_row(str(index), str(segment.clip_index),
                      f"{segment.source_start:.3f}", f"{segment.duration:.3f}")
    console.print(table)
    console.print(f"Total: {montage.total_duration:.3f}s")

    if graph:
        timeline = settings.timeline
        filter_graph = build_filter_graph(
            montage.segments,
            montage.region,
            fade_window=timeline.fade_window,
            intro_duration=timeline.intro_duration,
            outro_duration=timeline.outro_duration,
            outro_start=clips[-1].start,
        )
        click.echo(filter_graph.to_string())


if __name__ == "__main__":
    cli()
