"""Handles Speech-to-Text transcription."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from .models import TranscriptionResult, Segment
from .exceptions import TranscriptionError

logger = logging.getLogger(__name__)

class Transcriber(ABC):
    """Abstract base class for transcription services."""

    @abstractmethod
    def transcribe(self, audio_path: str) -> TranscriptionResult:
        """
        Transcribes the given audio file.

        Args:
            audio_path: Path to the audio file.

        Returns:
            A TranscriptionResult with segment times relative to the audio file.

        Raises:
            TranscriptionError: If transcription fails.
            FileNotFoundError: If the audio file doesn't exist.
        """
        pass


def segments_from_payload(raw_segments: Optional[Iterable[Dict[str, Any]]]) -> List[Segment]:
    """Converts provider segment dicts (``start``/``end``/``text``) into Segments."""
    segments = []
    for seg_data in raw_segments or []:
        if 'start' in seg_data and 'end' in seg_data and 'text' in seg_data:
            segments.append(
                Segment(
                    start_time=float(seg_data['start']),
                    end_time=float(seg_data['end']),
                    text=str(seg_data['text']).strip(), # Remove leading/trailing whitespace
                )
            )
        else:
            logger.warning(f"Skipping incomplete segment data: {seg_data}")
    return segments


class WhisperTranscriber(Transcriber):
    """Implements transcription with a local OpenAI Whisper model."""

    def __init__(self, model_name: str = "medium", device: str = "cuda", fp16: bool = True, language: Optional[str] = None):
        """
        Initializes the WhisperTranscriber.

        Args:
            model_name: The name of the Whisper model to use (e.g., "base", "medium").
            device: The device to run the model on ("cuda" or "cpu").
            fp16: Whether to use float16 precision (faster on compatible GPUs).
            language: Language code to force, or None to auto-detect.

        Raises:
            ValueError: If the specified device is invalid.
            TranscriptionError: If the model fails to load.
        """
        import torch
        import whisper

        self.model_name = model_name
        self.device = device
        self.fp16 = fp16
        self.language = language

        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA device requested but not available. Falling back to CPU.")
            self.device = "cpu"
        elif self.device not in ["cuda", "cpu"]:
             raise ValueError(f"Invalid device specified: {self.device}. Choose 'cuda' or 'cpu'.")

        logger.info(f"Initializing WhisperTranscriber with model '{self.model_name}' on device '{self.device}' (FP16: {self.fp16})")
        try:
            self.model = whisper.load_model(self.model_name, device=self.device)
            logger.info(f"Whisper model '{self.model_name}' loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load Whisper model '{self.model_name}': {e}", exc_info=True)
            raise TranscriptionError(f"Failed to load Whisper model '{self.model_name}': {e}") from e

    def transcribe(self, audio_path: str) -> TranscriptionResult:
        logger.info(f"Starting transcription for: {audio_path}")
        if not os.path.exists(audio_path):
             raise FileNotFoundError(f"Audio file not found: {audio_path}")

        try:
            # verbose=None lets Whisper show its own progress bar
            result = self.model.transcribe(
                audio_path,
                language=self.language,
                fp16=self.fp16 if self.device == "cuda" else False, # FP16 only works on CUDA
                verbose=None
            )
        except Exception as e:
            logger.error(f"Error during Whisper transcription process for {audio_path}: {e}", exc_info=True)
            raise TranscriptionError(f"Whisper transcription failed for {audio_path}: {e}") from e

        logger.info(f"Transcription completed. Detected language: {result.get('language', 'N/A')}")
        if 'segments' not in result:
            logger.warning("Transcription result did not contain 'segments'.")
        segments = segments_from_payload(result.get('segments'))
        logger.info(f"Processed {len(segments)} segments from transcription.")
        return TranscriptionResult(
            text=str(result.get('text', '')).strip(),
            segments=segments,
            language=result.get('language'),
        )
