"""Utility functions for SubBurn."""

import os
import re
import logging
from typing import Optional, Union
from .exceptions import FileSystemError, InvalidTimeFormat

logger = logging.getLogger(__name__)

_INT_PART = re.compile(r"^\d+$")
_SECONDS_PART = re.compile(r"^\d+(?:\.\d+)?$|^\.\d+$")

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def remove_file(file_path: Optional[str]) -> None:
    """Removes a file if it exists, logging (not raising) on failure."""
    if file_path and os.path.exists(file_path):
        try:
            os.remove(file_path)
            logger.debug(f"Removed temporary file: {file_path}")
        except OSError as e:
            logger.warning(f"Could not remove temporary file {file_path}: {e}")

def is_nonempty_file(file_path: Optional[str]) -> bool:
    return bool(file_path) and os.path.isfile(file_path) and os.path.getsize(file_path) > 0

def parse_time(value: Union[str, float, int, None]) -> float:
    """
    Parses a time string into seconds.

    Accepts ``H:MM:SS[.mmm]``, ``M:SS[.mmm]`` or ``SS[.mmm]``. Only the seconds
    field may carry a fractional part. Numbers are returned as floats.

    Args:
        value: The time string (or number of seconds).

    Returns:
        Time in seconds. Empty or missing input yields 0.0.

    Raises:
        InvalidTimeFormat: If any part is non-numeric or negative.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise InvalidTimeFormat(f"Invalid time value: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise InvalidTimeFormat(f"Time cannot be negative: {value}")
        return float(value)

    time_str = str(value).strip()
    if not time_str:
        return 0.0

    parts = [part.strip() for part in time_str.split(":")]
    if len(parts) > 3:
        raise InvalidTimeFormat(f"Too many ':' separated fields in time '{time_str}'")

    *whole_parts, seconds_part = parts
    if not _SECONDS_PART.match(seconds_part):
        raise InvalidTimeFormat(f"Invalid seconds field '{seconds_part}' in time '{time_str}'")
    for part in whole_parts:
        if not _INT_PART.match(part):
            raise InvalidTimeFormat(f"Invalid hours/minutes field '{part}' in time '{time_str}'")

    seconds = float(seconds_part)
    if len(whole_parts) == 2:
        hours, minutes = int(whole_parts[0]), int(whole_parts[1])
        return hours * 3600 + minutes * 60 + seconds
    if len(whole_parts) == 1:
        return int(whole_parts[0]) * 60 + seconds
    return seconds

def format_time(seconds: float) -> str:
    """
    Formats seconds as ``M:SS.mmm``.

    Minutes are never folded into hours, so ``format_time(3661)`` gives
    ``"61:01.000"``.
    """
    if seconds < 0:
        raise InvalidTimeFormat(f"Time cannot be negative: {seconds}")
    milliseconds = int(round(seconds * 1000))
    mins, milliseconds = divmod(milliseconds, 60000)
    secs, milliseconds = divmod(milliseconds, 1000)
    return f"{mins}:{secs:02d}.{milliseconds:03d}"

def format_time_srt(seconds: float) -> str:
    """
    Formats seconds into SRT time format HH:MM:SS,ms.

    Args:
        seconds: Time in seconds.

    Returns:
        Formatted time string.
    """
    if seconds < 0:
        seconds = 0.0 # Ensure non-negative time
    milliseconds = round(seconds * 1000)
    hrs = milliseconds // 3600000
    milliseconds %= 3600000
    mins = milliseconds // 60000
    milliseconds %= 60000
    secs = milliseconds // 1000
    milliseconds %= 1000
    return f"{hrs:02d}:{mins:02d}:{secs:02d},{milliseconds:03d}"
