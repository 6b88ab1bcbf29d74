"""Renders one captioned clip per subtitle segment using ffmpeg."""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence

import ffmpeg

from .compression import COMPRESSION_LEVELS, DEFAULT_COMPRESSION_LEVEL, get_compression_settings, video_output_kwargs
from .exceptions import InvalidSegment, TransientEncodeFailure
from .models import Segment
from .progress import ProgressSink
from .subtitle_formatter import SRTFormatter, SubtitleFormatter
from .utils import format_time, is_nonempty_file, remove_file

logger = logging.getLogger(__name__)

DEFAULT_SUBTITLE_STYLE = (
    "FontSize={font_size},FontName={font},PrimaryColour=&HFFFFFF&,OutlineColour=&H000000&,"
    "BackColour=&H80000000&,Outline=2,Shadow=1,MarginV=20"
)


def _quote_filter_value(value: str) -> str:
    """Single-quotes a value for an ffmpeg filter option."""
    return "'" + value.replace("\\", "/").replace("'", r"'\''") + "'"


class SegmentRenderer:
    """
    Turns a source video plus a segment list into finished per-segment clips.

    Each segment is cut out with a stream copy, its caption is written to a
    clip-local SRT file and burned in by a re-encode with the selected
    compression profile. The extract and burn-in pair is retried with
    exponential backoff.
    """

    def __init__(
        self,
        compression_level: str = DEFAULT_COMPRESSION_LEVEL,
        ffmpeg_path: Optional[str] = None,
        formatter: Optional[SubtitleFormatter] = None,
        font: str = "Arial",
        font_size: int = 24,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        max_workers: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initializes the SegmentRenderer.

        Args:
            compression_level: Profile name ("high", "medium", "low"). Unknown
                               names fall back to "medium" with a warning.
            ffmpeg_path: Optional path to the ffmpeg executable.
            formatter: Caption artifact writer, SRT by default.
            font: Font name used for burned-in captions.
            font_size: Caption font size.
            max_attempts: Attempts per segment before giving up.
            base_delay: First backoff delay in seconds; doubles on each retry.
            max_workers: Segments rendered concurrently. 1 renders in order.
            sleep: Sleep function used between attempts.
        """
        settings = get_compression_settings(compression_level)
        self.compression_level = compression_level if compression_level in COMPRESSION_LEVELS else DEFAULT_COMPRESSION_LEVEL
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.formatter = formatter or SRTFormatter()
        self.font = font or "Arial"
        self.font_size = font_size
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_workers = max(1, max_workers)
        self.sleep = sleep
        self.output_kwargs = video_output_kwargs(self.compression_level)
        logger.info(
            f"SegmentRenderer using profile '{settings['name']}', font '{self.font}', "
            f"{self.max_attempts} attempts, {self.max_workers} worker(s)"
        )

    # --- ffmpeg steps ---

    def _run(self, stream, step: str, index: int) -> None:
        try:
            stream.overwrite_output().run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffmpeg {step} failed for segment {index + 1}: {stderr_output}")
            raise TransientEncodeFailure(f"Segment {index + 1}: {step} failed: {stderr_output.strip()[-500:]}") from e
        except OSError as e:
            raise TransientEncodeFailure(f"Segment {index + 1}: {step} could not start ffmpeg: {e}") from e

    def extract_clip(self, video_path: str, start: float, duration: float, output_path: str, index: int) -> None:
        """Cuts ``[start, start + duration)`` out of the source without re-encoding."""
        stream = ffmpeg.input(video_path, ss=f"{start:.3f}").output(output_path, t=f"{duration:.3f}", c='copy')
        self._run(stream, "extract", index)

    def burn_subtitles(self, clip_path: str, subtitle_path: Optional[str], output_path: str, index: int) -> None:
        """Re-encodes the clip with the profile, burning in ``subtitle_path`` when given."""
        kwargs = dict(self.output_kwargs)
        if subtitle_path:
            style = DEFAULT_SUBTITLE_STYLE.format(font=self.font, font_size=self.font_size)
            kwargs['vf'] = f"subtitles=filename={_quote_filter_value(subtitle_path)}:force_style='{style}'"
        stream = ffmpeg.input(clip_path).output(output_path, **kwargs)
        self._run(stream, "burn-in", index)

    # --- Per segment ---

    def _segment_paths(self, work_dir: str, index: int) -> dict:
        return {
            'slice': os.path.join(work_dir, f"temp_clip_{index:03d}.mp4"),
            'caption': os.path.join(work_dir, f"segment_{index:03d}{self.formatter.extension}"),
            'clip': os.path.join(work_dir, f"clip_{index:03d}.mp4"),
        }

    def _render_once(self, video_path: str, segment: Segment, index: int, paths: dict) -> None:
        duration = segment.duration
        self.extract_clip(video_path, segment.start_time, duration, paths['slice'], index)
        if not is_nonempty_file(paths['slice']):
            raise TransientEncodeFailure(f"Segment {index + 1}: extract produced no data")

        caption_path = None
        if not segment.is_blank:
            caption_path = self.formatter.write_caption(segment.text, duration, paths['caption'])

        self.burn_subtitles(paths['slice'], caption_path, paths['clip'], index)
        if not is_nonempty_file(paths['clip']):
            raise TransientEncodeFailure(f"Segment {index + 1}: burn-in produced an empty clip")

    def render_segment(self, video_path: str, segment: Segment, index: int, total: int, work_dir: str) -> str:
        """
        Renders one segment into ``work_dir`` and returns the finished clip path.

        Raises:
            InvalidSegment: If the segment has zero or negative duration.
            TransientEncodeFailure: If every attempt failed. No files for this
                                    segment are left behind.
        """
        if segment.duration <= 0:
            raise InvalidSegment(
                f"Segment {index + 1} has non-positive duration "
                f"({format_time(max(segment.start_time, 0))} -> {format_time(max(segment.end_time, 0))})"
            )

        paths = self._segment_paths(work_dir, index)
        logger.info(
            f"Processing segment {index + 1}/{total} "
            f"({format_time(segment.start_time)} - {format_time(segment.end_time)})"
        )

        delay = self.base_delay
        for attempt in range(1, self.max_attempts + 1):
            try:
                self._render_once(video_path, segment, index, paths)
                break
            except TransientEncodeFailure as e:
                self._cleanup(paths.values())
                if attempt >= self.max_attempts:
                    logger.error(f"Segment {index + 1} failed after {attempt} attempts: {e}")
                    raise TransientEncodeFailure(f"{e} (gave up after {attempt} attempts)") from e
                logger.warning(f"Retry {attempt}/{self.max_attempts} for segment {index + 1} in {delay:.0f}s: {e}")
                self.sleep(delay)
                delay *= 2
            except Exception:
                self._cleanup(paths.values())
                raise

        self._cleanup((paths['slice'], paths['caption']))
        logger.debug(f"Segment {index + 1} finished: {os.path.getsize(paths['clip']) / (1024 * 1024):.2f} MB")
        return paths['clip']

    def _cleanup(self, file_paths) -> None:
        for file_path in file_paths:
            remove_file(file_path)

    # --- Whole job ---

    def render_segments(
        self,
        video_path: str,
        segments: Sequence[Segment],
        work_dir: str,
        progress_sink: Optional[ProgressSink] = None,
    ) -> List[str]:
        """
        Renders every segment and returns the clip paths in segment order.

        Progress is reported after each finished segment. On failure, clips
        already finished stay in ``work_dir``; the caller owns that directory.
        """
        total = len(segments)
        if self.max_workers == 1 or total <= 1:
            clip_paths = []
            for index, segment in enumerate(segments):
                clip_paths.append(self.render_segment(video_path, segment, index, total, work_dir))
                if progress_sink:
                    progress_sink.on_progress(index + 1, total, segment)
            return clip_paths
        return self._render_parallel(video_path, segments, work_dir, progress_sink)

    def _render_parallel(
        self,
        video_path: str,
        segments: Sequence[Segment],
        work_dir: str,
        progress_sink: Optional[ProgressSink],
    ) -> List[str]:
        total = len(segments)
        clip_paths: List[Optional[str]] = [None] * total
        finished = 0
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="segment") as pool:
            futures = {
                pool.submit(self.render_segment, video_path, segment, index, total, work_dir): index
                for index, segment in enumerate(segments)
            }
            try:
                for future in as_completed(futures):
                    index = futures[future]
                    clip_paths[index] = future.result()
                    finished += 1
                    if progress_sink:
                        progress_sink.on_progress(finished, total, segments[index])
            except Exception:
                for future in futures:
                    future.cancel()
                raise
        return clip_paths
