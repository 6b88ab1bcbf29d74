"""Data models for SubBurn."""

from dataclasses import dataclass, field
from typing import List, Optional

@dataclass
class Segment:
    """Represents a single timed chunk of subtitle text."""
    start_time: float
    end_time: float
    text: str

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def is_blank(self) -> bool:
        """True for silence placeholders ("" or " ")."""
        return not self.text.strip()

@dataclass
class TranscriptionResult:
    """Holds the structured output from the speech-to-text process."""
    text: str = ""
    segments: List[Segment] = field(default_factory=list)
    language: Optional[str] = None
    duration: Optional[float] = None # Audio duration reported by the provider, if any
