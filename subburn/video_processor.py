"""Orchestrates a subtitle render job: validate, render segments, join, clean up."""

import enum
import logging
import os
import shutil
import tempfile
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Set, Tuple

from .concatenator import ClipConcatenator
from .exceptions import ConcurrencyConflict, FileSystemError, SubBurnError
from .progress import LoggingProgressSink, ProgressSink
from .segment_renderer import SegmentRenderer
from .subtitle_table import SubtitleTable
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)

RenderKey = Tuple[str, str]


class RenderState(enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    RENDERING = "rendering"
    CONCATENATING = "concatenating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RenderJob:
    """State of one render request. Each call to `VideoProcessor.render` gets its own."""
    video_path: str
    csv_path: str
    state: RenderState = RenderState.IDLE
    output_path: Optional[str] = None
    error: Optional[str] = None


class RenderRegistry:
    """
    Single-flight guard keyed by ``(source path, subtitle table path)``.

    A second request for a key that is in flight is rejected, not queued.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Set[RenderKey] = set()

    @staticmethod
    def make_key(video_path: str, csv_path: str) -> RenderKey:
        return (os.path.abspath(video_path), os.path.abspath(csv_path))

    def is_active(self, key: RenderKey) -> bool:
        with self._lock:
            return key in self._active

    @contextmanager
    def claim(self, key: RenderKey) -> Iterator[RenderKey]:
        with self._lock:
            if key in self._active:
                raise ConcurrencyConflict(
                    f"A render for {key[0]} with subtitles {key[1]} is already in progress."
                )
            self._active.add(key)
        try:
            yield key
        finally:
            with self._lock:
                self._active.discard(key)


class VideoProcessor:
    """
    Renders a video with burned-in subtitles from a subtitle CSV.

    Success is all-or-nothing: the job directory and every intermediate file
    are removed whether the job succeeds or fails, and only the joined video
    is kept.
    """

    def __init__(
        self,
        renderer: SegmentRenderer,
        concatenator: ClipConcatenator,
        temp_dir: str,
        registry: Optional[RenderRegistry] = None,
    ):
        """
        Args:
            renderer: Per-segment clip renderer.
            concatenator: Joins finished clips.
            temp_dir: Parent directory for per-job working directories.
            registry: Single-flight registry. Share one instance between
                      processors that must not render the same job twice.
        """
        self.renderer = renderer
        self.concatenator = concatenator
        self.temp_dir = temp_dir
        self.registry = registry or RenderRegistry()
        self._jobs: Dict[RenderKey, RenderJob] = {}
        self._jobs_lock = threading.Lock()

    def job_for(self, video_path: str, csv_path: str) -> Optional[RenderJob]:
        """Returns the most recent job for this video and CSV, or None."""
        with self._jobs_lock:
            return self._jobs.get(self.registry.make_key(video_path, csv_path))

    def _set_state(self, job: RenderJob, state: RenderState, progress_sink: ProgressSink, percent: float, message: str) -> None:
        job.state = state
        logger.debug(f"Render state for {job.video_path} -> {state.value}")
        progress_sink.on_stage(state.value, percent, message)

    def render(
        self,
        video_path: str,
        csv_path: str,
        output_dir: str,
        progress_sink: Optional[ProgressSink] = None,
    ) -> str:
        """
        Runs the full render job.

        Args:
            video_path: Source video.
            csv_path: Subtitle table CSV.
            output_dir: Where the finished video is placed.
            progress_sink: Receives per-segment and stage progress.

        Returns:
            Path of the finished video inside ``output_dir``.

        Raises:
            ConcurrencyConflict: If the same video and CSV are already rendering.
            SubBurnError: For invalid input or processing failures.
            FileNotFoundError: If the video or CSV does not exist.
        """
        sink = progress_sink or LoggingProgressSink()
        key = self.registry.make_key(video_path, csv_path)
        with self.registry.claim(key):
            job = RenderJob(video_path=video_path, csv_path=csv_path)
            with self._jobs_lock:
                self._jobs[key] = job
            started = time.time()
            logger.info(f"--- Starting render: {video_path} with {csv_path} ---")
            work_dir = None
            try:
                self._set_state(job, RenderState.VALIDATING, sink, 0, "Validating subtitles")
                if not os.path.isfile(video_path):
                    raise FileNotFoundError(f"Input video file not found: {video_path}")
                table = SubtitleTable.from_file(csv_path)
                table.validate()
                if not len(table):
                    raise SubBurnError(f"Subtitle table {csv_path} has no segments.")

                ensure_dir_exists(self.temp_dir)
                work_dir = tempfile.mkdtemp(prefix="process_", dir=self.temp_dir)

                self._set_state(job, RenderState.RENDERING, sink, 0, f"Rendering {len(table)} segments")
                clip_paths = self.renderer.render_segments(video_path, table.segments, work_dir, sink)

                self._set_state(job, RenderState.CONCATENATING, sink, 95, "Joining clips")
                joined_path = os.path.join(work_dir, f"output_{int(time.time() * 1000)}.mp4")
                self.concatenator.concatenate(clip_paths, joined_path)

                output_path = self._store_output(joined_path, output_dir)
                job.output_path = output_path
                self._set_state(job, RenderState.DONE, sink, 100, f"Finished: {output_path}")
                logger.info(f"--- Render completed in {time.time() - started:.2f} seconds: {output_path} ---")
                return output_path

            except (SubBurnError, FileNotFoundError) as e:
                job.state = RenderState.FAILED
                job.error = str(e)
                logger.error(f"Render failed: {e}", exc_info=False)
                raise
            except Exception as e:
                job.state = RenderState.FAILED
                job.error = str(e)
                logger.critical(f"An unexpected error occurred during rendering: {e}", exc_info=True)
                raise SubBurnError(f"An unexpected error occurred during rendering: {e}") from e
            finally:
                if work_dir:
                    self._remove_work_dir(work_dir)

    def _store_output(self, joined_path: str, output_dir: str) -> str:
        ensure_dir_exists(output_dir)
        output_path = os.path.join(output_dir, os.path.basename(joined_path))
        try:
            shutil.move(joined_path, output_path)
        except OSError as e:
            raise FileSystemError(f"Could not move rendered video to {output_path}: {e}") from e
        return output_path

    def _remove_work_dir(self, work_dir: str) -> None:
        try:
            shutil.rmtree(work_dir)
            logger.info(f"Cleaned up job directory: {work_dir}")
        except OSError as e:
            logger.warning(f"Could not remove job directory {work_dir}: {e}")
