"""Compression profiles used for burn-in encoding and analysis audio."""

import logging
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = "medium"

COMPRESSION_LEVELS: Dict[str, dict] = {
    # Large files, near-lossless
    "high": {
        "name": "High quality",
        "video": {"codec": "libx264", "preset": "slow", "crf": 12, "pixel_format": "yuv420p"},
        "audio": {"codec": "aac", "bitrate": "320k", "sample_rate": 48000},
        "analysis_audio": {"codec": "mp3", "channels": 1, "sample_rate": 22050, "bitrate": "128k"},
    },
    "medium": {
        "name": "Medium quality",
        "video": {"codec": "libx264", "preset": "medium", "crf": 15, "pixel_format": "yuv420p"},
        "audio": {"codec": "aac", "bitrate": "256k", "sample_rate": 48000},
        "analysis_audio": {"codec": "mp3", "channels": 1, "sample_rate": 22050, "bitrate": "96k"},
    },
    # Small files
    "low": {
        "name": "Low quality",
        "video": {"codec": "libx264", "preset": "fast", "crf": 20, "pixel_format": "yuv420p"},
        "audio": {"codec": "aac", "bitrate": "192k", "sample_rate": 44100},
        "analysis_audio": {"codec": "mp3", "channels": 1, "sample_rate": 16000, "bitrate": "64k"},
    },
}


def get_compression_settings(level: str = DEFAULT_COMPRESSION_LEVEL) -> dict:
    """
    Returns the profile for ``level``.

    Unknown names fall back to the default profile with a warning.
    """
    settings = COMPRESSION_LEVELS.get(level)
    if settings is None:
        logger.warning(f"Unknown compression level '{level}'. Falling back to '{DEFAULT_COMPRESSION_LEVEL}'.")
        return COMPRESSION_LEVELS[DEFAULT_COMPRESSION_LEVEL]
    return settings


def video_output_kwargs(level: str = DEFAULT_COMPRESSION_LEVEL) -> dict:
    """ffmpeg-python output keyword arguments for a playback encode."""
    settings = get_compression_settings(level)
    video, audio = settings["video"], settings["audio"]
    return {
        "vcodec": video["codec"],
        "preset": video["preset"],
        "crf": video["crf"],
        "pix_fmt": video["pixel_format"],
        "acodec": audio["codec"],
        "audio_bitrate": audio["bitrate"],
        "ar": audio["sample_rate"],
    }


def analysis_audio_kwargs(level: str = DEFAULT_COMPRESSION_LEVEL) -> dict:
    """ffmpeg-python output keyword arguments for speech-recognition audio."""
    audio = get_compression_settings(level)["analysis_audio"]
    return {
        "vn": None,
        "acodec": audio["codec"],
        "ac": audio["channels"],
        "ar": audio["sample_rate"],
        "audio_bitrate": audio["bitrate"],
    }


def list_profiles() -> List[Tuple[str, str]]:
    return [(key, settings["name"]) for key, settings in COMPRESSION_LEVELS.items()]
