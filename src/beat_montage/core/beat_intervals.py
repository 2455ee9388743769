"""
Beat Interval Calculator

Turns the user's tapped beat markers into the slot durations the montage
has to fill. Slots run boundary-to-beat, beat-to-beat and beat-to-boundary
across the frame-aligned region, so their sum always equals the region
length.
"""

from typing import Iterable, List

from .models import Region


def calculate_beat_intervals(
    beat_markers: Iterable[float],
    region: Region,
    frame_rate: float,
) -> List[float]:
    """
    Compute ordered slot durations for a region.

    Markers outside the aligned region are dropped. Duplicates are kept
    and produce a zero-length slot.

    Args:
        beat_markers: Unordered beat timestamps in seconds
        region: Unaligned output window
        frame_rate: Frame rate used to align the region boundaries

    Returns:
        Interval durations in timeline order

    Example:
        markers [7, 3, 3] over Region(0, 10) give [3, 0, 4, 3]
    """
    aligned = region.aligned(frame_rate)
    valid_beats = sorted(
        beat for beat in beat_markers
        if aligned.start <= beat <= aligned.end
    )

    intervals: List[float] = []
    previous_beat = aligned.start
    for beat in valid_beats:
        intervals.append(beat - previous_beat)
        previous_beat = beat

    if previous_beat < aligned.end:
        intervals.append(aligned.end - previous_beat)

    return intervals
