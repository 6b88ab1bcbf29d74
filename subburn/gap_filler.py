"""Fills silent gaps in a transcript so segments cover the whole video."""

import logging
from typing import Iterable, List

from .models import Segment, TranscriptionResult

logger = logging.getLogger(__name__)

SILENCE_THRESHOLD = 0.01 # Seconds; gaps at or below this are closed instead of filled


def _normalize(segments: Iterable[Segment], total_duration: float, time_offset: float) -> List[Segment]:
    """Shifts into full-file time, sorts, and trims overlaps and out-of-range parts."""
    shifted = sorted(
        (
            Segment(
                start_time=seg.start_time + time_offset,
                end_time=seg.end_time + time_offset,
                text=seg.text,
            )
            for seg in segments
        ),
        key=lambda seg: seg.start_time,
    )

    normalized: List[Segment] = []
    cursor = 0.0
    for seg in shifted:
        start = max(seg.start_time, cursor)
        end = min(seg.end_time, total_duration)
        if end <= start:
            logger.debug(f"Dropping segment outside coverage or fully overlapped: {seg}")
            continue
        if start != seg.start_time or end != seg.end_time:
            logger.debug(f"Trimmed segment {seg.start_time:.3f}-{seg.end_time:.3f} to {start:.3f}-{end:.3f}")
        normalized.append(Segment(start_time=start, end_time=end, text=seg.text))
        cursor = end
    return normalized


def fill_silent_gaps(
    segments: Iterable[Segment],
    total_duration: float,
    time_offset: float = 0.0,
    threshold: float = SILENCE_THRESHOLD,
) -> List[Segment]:
    """
    Produces a contiguous segment list covering exactly ``[0, total_duration]``.

    Blank (``""``) segments are inserted for leading, interior and trailing
    silence longer than ``threshold``. Shorter gaps are closed by moving the
    neighbouring boundary, so the output never has holes.

    Args:
        segments: Raw speech segments, possibly sparse.
        total_duration: Duration of the full video in seconds.
        time_offset: Start of the transcribed window. Segment times are
                     shifted by it before filling, so the result is in
                     full-file coordinates.
        threshold: Minimum gap length that gets its own blank segment.

    Returns:
        The gap-free list of segments.
    """
    if total_duration <= 0:
        raise ValueError(f"Total duration must be positive, got {total_duration}")

    speech = _normalize(segments, total_duration, time_offset)
    if not speech:
        logger.info("No speech segments; treating the whole video as silence.")
        return [Segment(start_time=0.0, end_time=total_duration, text="")]

    filled: List[Segment] = []

    first = speech[0]
    if first.start_time > threshold:
        filled.append(Segment(start_time=0.0, end_time=first.start_time, text=""))
    else:
        first.start_time = 0.0

    for i, seg in enumerate(speech):
        filled.append(seg)
        if i + 1 < len(speech):
            nxt = speech[i + 1]
            gap = nxt.start_time - seg.end_time
            if gap > threshold:
                filled.append(Segment(start_time=seg.end_time, end_time=nxt.start_time, text=""))
            else:
                nxt.start_time = seg.end_time

    last = speech[-1]
    if last.end_time < total_duration - threshold:
        filled.append(Segment(start_time=last.end_time, end_time=total_duration, text=""))
    else:
        last.end_time = total_duration

    logger.info(f"Silence fill: {len(speech)} -> {len(filled)} segments (duration {total_duration:.3f}s)")
    return filled


def fill_transcription(
    result: TranscriptionResult,
    total_duration: float,
    time_offset: float = 0.0,
) -> TranscriptionResult:
    """Returns a copy of ``result`` whose segments cover the whole video."""
    return TranscriptionResult(
        text=result.text,
        segments=fill_silent_gaps(result.segments, total_duration, time_offset),
        language=result.language,
        duration=total_duration,
    )
