"""Handles speech-recognition audio extraction from video files using ffmpeg."""

import ffmpeg
import os
import time
import logging
from .exceptions import AudioExtractionError, FileSystemError
from typing import Callable, Optional
from .compression import DEFAULT_COMPRESSION_LEVEL, analysis_audio_kwargs, get_compression_settings
from .utils import ensure_dir_exists, is_nonempty_file, remove_file

logger = logging.getLogger(__name__)

class AudioExtractor:
    """Extracts a narrowband mono audio track for transcription."""

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        compression_level: str = DEFAULT_COMPRESSION_LEVEL,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initializes the AudioExtractor.

        Args:
            ffmpeg_path: Optional path to the ffmpeg executable.
                         If None, assumes ffmpeg is in the system PATH.
            compression_level: Profile whose analysis audio settings are used.
            max_attempts: Extraction attempts before giving up.
            base_delay: First backoff delay in seconds; doubles on each retry.
            sleep: Sleep function used between attempts.
        """
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.compression_level = compression_level
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.sleep = sleep
        logger.info(f"Using ffmpeg command: {self.ffmpeg_cmd}")

    def _extract_once(self, video_filepath: str, output_audio_path: str, start: Optional[float], duration: Optional[float]) -> None:
        input_kwargs = {}
        if start:
            input_kwargs['ss'] = f"{start:.3f}"
        output_kwargs = analysis_audio_kwargs(self.compression_level)
        if duration:
            output_kwargs['t'] = f"{duration:.3f}"
        (
            ffmpeg
            .input(video_filepath, **input_kwargs)
            .output(output_audio_path, **output_kwargs)
            .overwrite_output()
            .run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
        )
        if not is_nonempty_file(output_audio_path):
            raise AudioExtractionError(f"ffmpeg produced no audio in {output_audio_path}")

    def extract_audio(
        self,
        video_filepath: str,
        output_audio_dir: str,
        output_filename: Optional[str] = None,
        start: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> str:
        """
        Extracts the audio stream (optionally a window of it) to an MP3 file.

        Args:
            video_filepath: Path to the input video file.
            output_audio_dir: Directory to save the extracted audio file.
            output_filename: Optional base name for the output audio file (without extension).
                             If None, uses the video filename.
            start: Optional window start in seconds.
            duration: Optional window length in seconds.

        Returns:
            The full path to the extracted audio file.

        Raises:
            FileNotFoundError: If the input video file does not exist.
            AudioExtractionError: If ffmpeg fails on every attempt.
            FileSystemError: If the output directory cannot be created/accessed.
        """
        logger.info(f"Starting audio extraction for: {video_filepath}")
        if not os.path.exists(video_filepath):
            raise FileNotFoundError(f"Input video file not found: {video_filepath}")

        ensure_dir_exists(output_audio_dir) # Ensure output dir exists

        if output_filename is None:
            base_name = os.path.splitext(os.path.basename(video_filepath))[0]
        else:
             base_name = os.path.splitext(output_filename)[0] # Ensure no ext in filename either

        output_audio_path = os.path.join(output_audio_dir, f"{base_name}_audio_optimized.mp3")
        logger.debug(f"Output audio path set to: {output_audio_path}")

        if os.path.exists(output_audio_path):
            logger.warning(f"Output audio file already exists, overwriting: {output_audio_path}")
            try:
                os.remove(output_audio_path)
            except OSError as e:
                 raise FileSystemError(f"Could not remove existing audio file {output_audio_path}: {e}") from e

        profile_name = get_compression_settings(self.compression_level)['name']
        window = f" window start={start}s duration={duration}s" if (start or duration) else ""
        logger.info(f"Running ffmpeg ({profile_name} analysis audio){window} to {output_audio_path}...")

        delay = self.base_delay
        for attempt in range(1, self.max_attempts + 1):
            try:
                self._extract_once(video_filepath, output_audio_path, start, duration)
                break
            except (ffmpeg.Error, AudioExtractionError) as e:
                stderr_output = e.stderr.decode('utf-8', errors='replace') if getattr(e, 'stderr', None) else str(e)
                logger.error(f"ffmpeg error during audio extraction for {video_filepath} (attempt {attempt}/{self.max_attempts}): {stderr_output}")
                remove_file(output_audio_path) # Partially written file
                if attempt >= self.max_attempts:
                    raise AudioExtractionError(f"ffmpeg failed after {attempt} attempts: {stderr_output}") from e
                self.sleep(delay)
                delay *= 2

        size_mb = os.path.getsize(output_audio_path) / (1024 * 1024)
        logger.info(f"Successfully extracted audio to: {output_audio_path} ({size_mb:.2f} MB)")
        return output_audio_path
