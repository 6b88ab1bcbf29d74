"""Orchestrates the analysis pipeline: audio, transcription, gap filling, CSV."""

import logging
import os
import time
from typing import Union

from .audio_extractor import AudioExtractor
from .exceptions import FileSystemError, InvalidSegment, SubBurnError
from .gap_filler import fill_transcription
from .media_tools import probe_duration
from .models import TranscriptionResult
from .subtitle_table import SubtitleTable
from .transcriber import Transcriber
from .utils import ensure_dir_exists, format_time, parse_time, remove_file

logger = logging.getLogger(__name__)

TimeValue = Union[str, float, None]

class SubtitleGenerator:
    """
    Manages the end-to-end process of producing an editable subtitle CSV for a video.
    """

    def __init__(
        self,
        config: dict,
        audio_extractor: AudioExtractor,
        transcriber: Transcriber,
    ):
        """
        Initializes the SubtitleGenerator.

        Args:
            config: A dictionary containing configuration settings.
            audio_extractor: An instance of AudioExtractor.
            transcriber: An instance of Transcriber.
        """
        self.config = config
        self.audio_extractor = audio_extractor
        self.transcriber = transcriber

        # Validate essential config paths
        self.temp_dir = config.get('temp_dir')
        if not self.temp_dir:
            raise SubBurnError("Configuration missing 'temp_dir'.")
        try:
            # Ensure temp dir exists and is writable early on
            ensure_dir_exists(self.temp_dir)
            test_file = os.path.join(self.temp_dir, f".subburn_write_test_{int(time.time())}")
            with open(test_file, "w") as f: f.write("test")
            os.remove(test_file)
        except (FileSystemError, OSError, ValueError) as e:
            raise SubBurnError(f"Temporary directory '{self.temp_dir}' is invalid or not writable: {e}") from e

    def _resolve_window(self, video_path: str, start: TimeValue, end: TimeValue):
        """Returns (total_duration, window_start, window_duration or None)."""
        total_duration = probe_duration(video_path, self.config.get('ffprobe_path'))
        window_start = parse_time(start)
        has_end = end is not None and not (isinstance(end, str) and not end.strip())
        window_end = min(parse_time(end), total_duration) if has_end else total_duration
        if window_end <= window_start:
            raise InvalidSegment(f"Invalid analysis window {format_time(window_start)} -> {format_time(window_end)}")
        if window_start == 0 and window_end == total_duration:
            return total_duration, 0.0, None
        return total_duration, window_start, window_end - window_start

    def generate(
        self,
        video_path: str,
        csv_path: str,
        start: TimeValue = None,
        end: TimeValue = None,
    ) -> SubtitleTable:
        """
        Transcribes a video (or a window of it) and writes the subtitle CSV.

        Segment times in the CSV are in full-file coordinates and cover the
        whole video, with blank rows for silence.

        Args:
            video_path: Path to the input (analysis) video.
            csv_path: Where to write the CSV.
            start: Optional window start time.
            end: Optional window end time.

        Returns:
            The generated SubtitleTable.

        Raises:
            SubBurnError: For any configuration or processing errors in the pipeline.
            FileNotFoundError: If the input video is not found.
        """
        started = time.time()
        logger.info(f"--- Starting analysis for: {video_path} ---")
        if not os.path.isfile(video_path):
            raise FileNotFoundError(f"Input video file not found: {video_path}")

        extracted_audio_path = None # Keep track of created temp file
        try:
            total_duration, window_start, window_duration = self._resolve_window(video_path, start, end)
            if window_duration is not None:
                logger.info(f"Analysis window: {format_time(window_start)} + {window_duration:.3f}s of {total_duration:.3f}s")

            # 1. Extract Audio
            logger.info("Step 1: Extracting Audio...")
            base_name = f"{os.path.splitext(os.path.basename(video_path))[0]}_{int(time.time())}"
            extracted_audio_path = self.audio_extractor.extract_audio(
                video_path,
                self.temp_dir,
                base_name,
                start=window_start or None,
                duration=window_duration,
            )

            # 2. Transcribe
            logger.info("Step 2: Transcribing Audio...")
            raw_result: TranscriptionResult = self.transcriber.transcribe(extracted_audio_path)
            logger.info(f"Transcription complete. Found {len(raw_result.segments)} segments.")

            # 3. Fill silence in full-file coordinates
            logger.info("Step 3: Filling silent gaps...")
            filled = fill_transcription(raw_result, total_duration, time_offset=window_start)
            table = SubtitleTable.from_transcription(filled)

            # 4. Write CSV
            logger.info(f"Step 4: Writing subtitle CSV to {csv_path}...")
            csv_dir = os.path.dirname(os.path.abspath(csv_path))
            ensure_dir_exists(csv_dir)
            table.save(csv_path)

            logger.info(f"--- Analysis completed successfully in {time.time() - started:.2f} seconds ---")
            return table

        except (SubBurnError, FileNotFoundError) as e:
            logger.error(f"Analysis failed: {e}", exc_info=False) # No stack needed for expected errors
            raise # Re-raise to be caught by CLI handler
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred during analysis: {e}", exc_info=True)
            raise SubBurnError(f"An unexpected critical error occurred: {e}") from e
        finally:
            logger.info("Cleaning up temporary files...")
            remove_file(extracted_audio_path)
