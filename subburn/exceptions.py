"""Custom Exceptions for the SubBurn application."""

class SubBurnError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(SubBurnError):
    """Exception raised for errors in configuration loading."""
    pass

class InvalidTimeFormat(SubBurnError):
    """Exception raised when a time string cannot be parsed."""
    pass

class InvalidSegment(SubBurnError):
    """Exception raised for a segment with zero or negative duration."""
    pass

class TransientEncodeFailure(SubBurnError):
    """Exception raised when an ffmpeg extraction, burn-in or join step fails."""
    pass

class ConcurrencyConflict(SubBurnError):
    """Exception raised when an identical render is already in flight."""
    pass

class MissingArtifact(SubBurnError):
    """Exception raised when an expected intermediate or final file is absent or empty."""
    pass

class AudioExtractionError(SubBurnError):
    """Exception raised for errors during audio extraction."""
    pass

class TranscriptionError(SubBurnError):
    """Exception raised for errors during transcription."""
    pass

class FormattingError(SubBurnError):
    """Exception raised for errors during subtitle formatting."""
    pass

class FileSystemError(SubBurnError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
