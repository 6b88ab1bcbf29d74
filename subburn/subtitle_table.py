"""Subtitle table: the editable CSV form of a segment list."""

import logging
import os
from typing import Iterable, Iterator, List, Optional

from .exceptions import FileSystemError, InvalidSegment
from .models import Segment, TranscriptionResult
from .utils import format_time, parse_time

logger = logging.getLogger(__name__)

CSV_HEADER = "start,end,subtitles"
GAP_EPSILON = 0.001 # Interior gaps shorter than this are left alone
GAP_PLACEHOLDER = " "


def parse_csv_line(line: str) -> List[str]:
    """
    Splits one CSV record into fields.

    Handles quoted fields, doubled quotes inside quotes and commas inside
    quotes. Whitespace around unquoted fields is trimmed, quoted content is
    returned verbatim.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    quoted = False
    i = 0
    while i < len(line):
        char = line[i]
        if in_quotes:
            if char == '"':
                if i + 1 < len(line) and line[i + 1] == '"':
                    current.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(char)
        elif char == '"':
            if not quoted and not "".join(current).strip():
                current = [] # Drop whitespace before the opening quote
            in_quotes = True
            quoted = True
        elif char == ",":
            fields.append(_finish_field(current, quoted))
            current = []
            quoted = False
        elif quoted and char.isspace():
            pass # Whitespace after the closing quote
        else:
            current.append(char)
        i += 1

    fields.append(_finish_field(current, quoted))
    return fields


def _finish_field(chars: List[str], quoted: bool) -> str:
    value = "".join(chars)
    return value if quoted else value.strip()


def split_records(csv_text: str) -> List[str]:
    """
    Splits CSV text into records on newlines outside quoted fields.

    A ``\\r`` directly before a record-ending ``\\n`` is dropped; carriage
    returns inside quoted fields are kept.
    """
    records: List[str] = []
    current: List[str] = []
    in_quotes = False
    for i, char in enumerate(csv_text):
        if char == '"':
            in_quotes = not in_quotes # A doubled quote toggles twice
            current.append(char)
        elif in_quotes:
            current.append(char)
        elif char == "\n":
            records.append("".join(current))
            current = []
        elif char == "\r" and csv_text[i + 1:i + 2] == "\n":
            continue
        else:
            current.append(char)
    if current:
        records.append("".join(current))
    return records


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _is_header(fields: List[str]) -> bool:
    return bool(fields) and fields[0].strip().lstrip("\ufeff").lower() == "start"


class SubtitleTable:
    """
    Ordered list of subtitle segments backed by a ``start,end,subtitles`` CSV.

    Segments have no identity beyond their position; edits replace the whole
    table.
    """

    def __init__(self, segments: Optional[Iterable[Segment]] = None):
        self.segments: List[Segment] = list(segments or [])

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __getitem__(self, index: int) -> Segment:
        return self.segments[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubtitleTable):
            return NotImplemented
        return self.segments == other.segments

    def __repr__(self) -> str:
        return f"SubtitleTable({len(self.segments)} segments)"

    # --- Construction ---

    @classmethod
    def from_csv(cls, csv_text: str) -> "SubtitleTable":
        """
        Parses CSV text into a table.

        The first non-blank record is skipped when it is the header. Rows
        that do not have exactly three fields are skipped with a warning.

        Raises:
            InvalidTimeFormat: If a row carries a malformed start or end time.
        """
        segments: List[Segment] = []
        records = split_records(csv_text.lstrip("\ufeff"))
        seen_first = False
        for row_number, record in enumerate(records, start=1):
            if not record.strip():
                continue
            fields = parse_csv_line(record)
            if not seen_first:
                seen_first = True
                if _is_header(fields):
                    continue
            if len(fields) != 3:
                logger.warning(f"Skipping row {row_number}: expected 3 fields, got {len(fields)}: {record!r}")
                continue
            segments.append(
                Segment(
                    start_time=parse_time(fields[0]),
                    end_time=parse_time(fields[1]),
                    text=fields[2],
                )
            )
        logger.debug(f"Parsed {len(segments)} segments from CSV ({len(records)} records)")
        return cls(segments)

    @classmethod
    def from_file(cls, csv_path: str) -> "SubtitleTable":
        if not os.path.isfile(csv_path):
            raise FileNotFoundError(f"Subtitle CSV not found: {csv_path}")
        try:
            with open(csv_path, "r", encoding="utf-8-sig") as f:
                content = f.read()
        except OSError as e:
            logger.error(f"Failed to read subtitle CSV {csv_path}: {e}", exc_info=True)
            raise FileSystemError(f"Could not read subtitle CSV {csv_path}: {e}") from e
        table = cls.from_csv(content)
        logger.info(f"Loaded {len(table)} segments from {csv_path}")
        return table

    @classmethod
    def from_transcription(cls, result: TranscriptionResult, time_offset: float = 0.0) -> "SubtitleTable":
        """Builds a table from transcription segments, shifting them by ``time_offset``."""
        return cls(
            Segment(
                start_time=seg.start_time + time_offset,
                end_time=seg.end_time + time_offset,
                text=seg.text.strip(),
            )
            for seg in result.segments
        )

    # --- Serialization ---

    def to_csv(self) -> str:
        lines = [CSV_HEADER]
        for seg in self.segments:
            lines.append(f"{format_time(seg.start_time)},{format_time(seg.end_time)},{_quote(seg.text)}")
        return "\n".join(lines) + "\n"

    def save(self, csv_path: str) -> None:
        try:
            with open(csv_path, "w", encoding="utf-8", newline="") as f:
                f.write(self.to_csv())
        except OSError as e:
            logger.error(f"Failed to write subtitle CSV {csv_path}: {e}", exc_info=True)
            raise FileSystemError(f"Could not write subtitle CSV {csv_path}: {e}") from e
        logger.info(f"Saved {len(self.segments)} segments to {csv_path}")

    # --- Editing ---

    def fill_gaps(self) -> "SubtitleTable":
        """
        Returns a copy with a ``" "`` row inserted into every interior gap.

        Only gaps between adjacent rows are considered; leading and trailing
        silence is left untouched. Running it twice inserts nothing new.
        """
        filled: List[Segment] = []
        gaps_found = 0
        for i, current in enumerate(self.segments):
            filled.append(current)
            if i + 1 < len(self.segments):
                next_start = self.segments[i + 1].start_time
                if next_start - current.end_time > GAP_EPSILON:
                    filled.append(Segment(current.end_time, next_start, GAP_PLACEHOLDER))
                    gaps_found += 1
        logger.info(f"Gap fill inserted {gaps_found} blank rows")
        return SubtitleTable(filled)

    def validate(self) -> None:
        """
        Raises:
            InvalidSegment: If any row has zero or negative duration.
        """
        for index, seg in enumerate(self.segments):
            if seg.end_time <= seg.start_time:
                raise InvalidSegment(
                    f"Segment {index + 1} has non-positive duration "
                    f"({format_time(seg.start_time)} -> {format_time(seg.end_time)})"
                )

