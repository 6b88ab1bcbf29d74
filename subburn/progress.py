"""Progress sinks for render and crop jobs."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from tqdm import tqdm

from .models import Segment

logger = logging.getLogger(__name__)


class ProgressSink(ABC):
    """Receives push-based progress events. Events are delivered at most once."""

    @abstractmethod
    def on_progress(self, current: int, total: int, segment: Segment) -> None:
        """
        Called once per finished segment.

        Args:
            current: 1-based count of finished segments.
            total: Number of segments in the job.
            segment: The segment that just finished.
        """
        pass

    def on_stage(self, stage: str, percent: float, message: str) -> None:
        """Coarse stage updates (validating, concatenating, cropping...). Optional."""
        pass


class LoggingProgressSink(ProgressSink):
    """Writes progress to the module logger."""

    def on_progress(self, current: int, total: int, segment: Segment) -> None:
        logger.info(f"Segment {current}/{total} done ({segment.start_time:.3f}s - {segment.end_time:.3f}s)")

    def on_stage(self, stage: str, percent: float, message: str) -> None:
        logger.info(f"[{stage}] {percent:.0f}% {message}")


class CallbackProgressSink(ProgressSink):
    """Adapts plain callables to the sink interface."""

    def __init__(
        self,
        on_progress: Optional[Callable[[int, int, Segment], None]] = None,
        on_stage: Optional[Callable[[str, float, str], None]] = None,
    ):
        self._on_progress = on_progress
        self._on_stage = on_stage

    def on_progress(self, current: int, total: int, segment: Segment) -> None:
        if self._on_progress:
            self._on_progress(current, total, segment)

    def on_stage(self, stage: str, percent: float, message: str) -> None:
        if self._on_stage:
            self._on_stage(stage, percent, message)


class TqdmProgressSink(ProgressSink):
    """Terminal progress bar, one tick per rendered segment."""

    def __init__(self, desc: str = "Rendering segments"):
        self.desc = desc
        self._bar: Optional[tqdm] = None
        self._lock = threading.Lock()

    def on_progress(self, current: int, total: int, segment: Segment) -> None:
        with self._lock:
            if self._bar is None:
                self._bar = tqdm(total=total, desc=self.desc, unit="segment")
            self._bar.set_postfix_str(segment.text.strip()[:30])
            self._bar.update(current - self._bar.n)

    def on_stage(self, stage: str, percent: float, message: str) -> None:
        with self._lock:
            if self._bar is not None:
                self._bar.write(f"[{stage}] {message}")
            else:
                logger.info(f"[{stage}] {percent:.0f}% {message}")

    def close(self) -> None:
        with self._lock:
            if self._bar is not None:
                self._bar.close()
                self._bar = None
