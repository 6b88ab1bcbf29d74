"""Writes the per-segment subtitle artifact that ffmpeg burns into a clip."""

import logging
from abc import ABC, abstractmethod
from typing import List

from .exceptions import FormattingError
from .utils import format_time_srt

logger = logging.getLogger(__name__)

class SubtitleFormatter(ABC):
    """Abstract base class for caption artifact formatters."""

    extension = ""

    @abstractmethod
    def write_caption(self, text: str, duration: float, output_path: str) -> str:
        """
        Writes a subtitle file holding a single caption timed ``[0, duration)``.

        Timing is local to the extracted clip, not to the source video.

        Args:
            text: Caption text.
            duration: Clip duration in seconds.
            output_path: Where to write the file.

        Returns:
            The written path.

        Raises:
            FormattingError: If writing fails.
        """
        pass


class SRTFormatter(SubtitleFormatter):
    """Formats captions into the SRT (SubRip Text) format."""

    extension = ".srt"

    def __init__(self, max_chars_per_line: int = 42, max_lines: int = 2):
        self.max_chars_per_line = max_chars_per_line
        self.max_lines = max_lines

    def wrap_text(self, text: str) -> str:
        """Word-wraps long lines; a single word longer than the limit stays whole."""
        final_lines: List[str] = []
        for line in text.strip().split('\n'):
            if len(line) <= self.max_chars_per_line:
                final_lines.append(line)
                continue
            wrapped_line = ""
            line_len = 0
            for word in line.split():
                if line_len == 0:
                    wrapped_line += word
                    line_len += len(word)
                elif line_len + len(word) + 1 <= self.max_chars_per_line:
                    wrapped_line += f" {word}"
                    line_len += len(word) + 1
                else:
                    final_lines.append(wrapped_line)
                    wrapped_line = word
                    line_len = len(word)
            final_lines.append(wrapped_line)

        if len(final_lines) > self.max_lines:
            logger.debug(f"Caption wraps to {len(final_lines)} lines (limit {self.max_lines}); keeping all lines.")
        return "\n".join(final_lines)

    def write_caption(self, text: str, duration: float, output_path: str) -> str:
        if duration <= 0:
            raise FormattingError(f"Caption duration must be positive, got {duration}")
        content = (
            "1\n"
            f"{format_time_srt(0.0)} --> {format_time_srt(duration)}\n"
            f"{self.wrap_text(text)}\n\n"
        )
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(content)
        except IOError as e:
            logger.error(f"Failed to write SRT file to {output_path}: {e}", exc_info=True)
            raise FormattingError(f"Could not write SRT file: {e}") from e
        logger.debug(f"Wrote caption artifact {output_path} ({duration:.3f}s)")
        return output_path
