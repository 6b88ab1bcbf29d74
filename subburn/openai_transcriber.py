"""Speech-to-text through the OpenAI audio transcription API."""

import glob
import logging
import os
import shutil
import tempfile
import time
from typing import Any, Callable, Dict, List, Optional

import ffmpeg
from openai import OpenAI

from .exceptions import TranscriptionError
from .media_tools import probe_duration
from .models import Segment, TranscriptionResult
from .transcriber import Transcriber, segments_from_payload

logger = logging.getLogger(__name__)

TRANSCRIPTION_MODEL = "whisper-1"
MAX_UPLOAD_MB = 10.0 # Larger files are split to avoid connection drops
CHUNK_SECONDS = 300


def _to_dict(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return dict(value)


class OpenAITranscriber(Transcriber):
    """
    Transcribes audio with OpenAI's hosted Whisper model.

    Requests ask for ``verbose_json`` with segment timestamps. Each request is
    retried with exponential backoff. Files above ``max_upload_mb`` are cut
    into ``chunk_seconds`` pieces whose timestamps are shifted back into the
    coordinates of the whole file.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = TRANSCRIPTION_MODEL,
        language: Optional[str] = None,
        timeout: float = 600.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_upload_mb: float = MAX_UPLOAD_MB,
        chunk_seconds: int = CHUNK_SECONDS,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if client is None:
            api_key = (api_key or os.environ.get("OPENAI_API_KEY", "")).strip()
            if not api_key:
                raise TranscriptionError("OPENAI_API_KEY is not set.")
            client = OpenAI(api_key=api_key, timeout=timeout)
        self.client = client
        self.model = model
        self.language = language
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_upload_mb = max_upload_mb
        self.chunk_seconds = chunk_seconds
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.ffprobe_path = ffprobe_path
        self.sleep = sleep

    def _request(self, audio_path: str) -> Dict[str, Any]:
        kwargs = {
            "model": self.model,
            "response_format": "verbose_json",
            "timestamp_granularities": ["segment"],
        }
        if self.language:
            kwargs["language"] = self.language

        delay = self.base_delay
        for attempt in range(1, self.max_attempts + 1):
            try:
                with open(audio_path, "rb") as audio_file:
                    response = self.client.audio.transcriptions.create(file=audio_file, **kwargs)
                return _to_dict(response)
            except Exception as e:  # provider errors are not narrowly typed
                if attempt >= self.max_attempts:
                    logger.error(f"Transcription request failed after {attempt} attempts: {e}", exc_info=True)
                    raise TranscriptionError(f"OpenAI transcription failed for {audio_path}: {e}") from e
                logger.warning(f"Retry {attempt}/{self.max_attempts} for transcription of {audio_path}: {e}")
                self.sleep(delay)
                delay *= 2

    def transcribe(self, audio_path: str) -> TranscriptionResult:
        logger.info(f"Starting transcription for: {audio_path}")
        if not os.path.exists(audio_path):
            raise FileNotFoundError(f"Audio file not found: {audio_path}")

        size_mb = os.path.getsize(audio_path) / (1024 * 1024)
        logger.info(f"Audio file size: {size_mb:.2f} MB")
        if size_mb > self.max_upload_mb:
            logger.info(f"Audio exceeds {self.max_upload_mb:.0f} MB; transcribing in {self.chunk_seconds}s chunks.")
            return self._transcribe_chunked(audio_path)

        payload = self._request(audio_path)
        segments = segments_from_payload(_to_dict(s) for s in payload.get("segments") or [])
        logger.info(f"Transcription completed: {len(segments)} segments, duration {payload.get('duration', 'N/A')}")
        return TranscriptionResult(
            text=str(payload.get("text", "")).strip(),
            segments=segments,
            language=payload.get("language"),
            duration=float(payload["duration"]) if payload.get("duration") else None,
        )

    def split_audio(self, audio_path: str, chunk_dir: str) -> List[str]:
        """Cuts ``audio_path`` into ``chunk_seconds`` pieces without re-encoding."""
        pattern = os.path.join(chunk_dir, "segment_%03d" + os.path.splitext(audio_path)[1])
        try:
            (
                ffmpeg
                .input(audio_path)
                .output(pattern, f='segment', segment_time=self.chunk_seconds, c='copy')
                .overwrite_output()
                .run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            raise TranscriptionError(f"Could not split {audio_path}: {stderr_output}") from e
        return sorted(glob.glob(os.path.join(chunk_dir, "segment_*")))

    def _transcribe_chunked(self, audio_path: str) -> TranscriptionResult:
        chunk_dir = tempfile.mkdtemp(prefix="chunks_", dir=os.path.dirname(os.path.abspath(audio_path)))
        try:
            all_segments: List[Segment] = []
            texts: List[str] = []
            offset = 0.0
            language = None
            for chunk_path in self.split_audio(audio_path, chunk_dir):
                logger.info(f"Transcribing chunk {os.path.basename(chunk_path)} at offset {offset:.3f}s")
                payload = self._request(chunk_path)
                language = language or payload.get("language")
                texts.append(str(payload.get("text", "")).strip())
                for seg in segments_from_payload(_to_dict(s) for s in payload.get("segments") or []):
                    all_segments.append(
                        Segment(start_time=seg.start_time + offset, end_time=seg.end_time + offset, text=seg.text)
                    )
                offset += probe_duration(chunk_path, self.ffprobe_path)
            return TranscriptionResult(
                text=" ".join(t for t in texts if t),
                segments=all_segments,
                language=language,
                duration=offset,
            )
        finally:
            shutil.rmtree(chunk_dir, ignore_errors=True)
