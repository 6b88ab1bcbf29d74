import pytest

import subburn.openai_transcriber as openai_transcriber
from subburn.exceptions import TranscriptionError
from subburn.models import Segment
from subburn.openai_transcriber import OpenAITranscriber, _to_dict


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def model_dump(self):
        return self.payload


class FakeTranscriptions:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def create(self, file, **kwargs):
        self.calls.append((file.name, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClient:
    def __init__(self, responses):
        self.transcriptions = FakeTranscriptions(responses)
        self.audio = self


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "clip_audio_optimized.mp3"
    path.write_bytes(b"ID3" + b"\0" * 64)
    return str(path)


PAYLOAD = {
    "text": " Hello there. General Kenobi. ",
    "language": "english",
    "duration": 6.5,
    "segments": [
        {"id": 0, "start": 0.4, "end": 2.0, "text": " Hello there."},
        {"id": 1, "start": 3.0, "end": 5.25, "text": " General Kenobi."},
        {"id": 2, "start": 5.5},
    ],
}


def test_transcribe_requests_segment_timestamps(audio_file):
    client = FakeClient([FakeResponse(PAYLOAD)])
    result = OpenAITranscriber(client=client, language="en").transcribe(audio_file)

    assert result.text == "Hello there. General Kenobi."
    assert result.language == "english"
    assert result.duration == 6.5
    assert result.segments == [Segment(0.4, 2.0, "Hello there."), Segment(3.0, 5.25, "General Kenobi.")]
    name, kwargs = client.transcriptions.calls[0]
    assert name == audio_file
    assert kwargs == {
        "model": "whisper-1",
        "response_format": "verbose_json",
        "timestamp_granularities": ["segment"],
        "language": "en",
    }


def test_retries_with_backoff(audio_file):
    sleeps = []
    client = FakeClient([ConnectionError("reset"), TimeoutError("slow"), PAYLOAD])
    transcriber = OpenAITranscriber(client=client, max_attempts=3, base_delay=1.0, sleep=sleeps.append)
    result = transcriber.transcribe(audio_file)
    assert len(result.segments) == 2
    assert sleeps == [1.0, 2.0]


def test_gives_up_after_max_attempts(audio_file):
    sleeps = []
    client = FakeClient([ConnectionError("reset")] * 2)
    transcriber = OpenAITranscriber(client=client, max_attempts=2, sleep=sleeps.append)
    with pytest.raises(TranscriptionError, match="reset"):
        transcriber.transcribe(audio_file)
    assert sleeps == [1.0]


def test_missing_audio(tmp_path):
    with pytest.raises(FileNotFoundError):
        OpenAITranscriber(client=FakeClient([])).transcribe(str(tmp_path / "none.mp3"))


def test_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(TranscriptionError, match="OPENAI_API_KEY"):
        OpenAITranscriber(api_key="  ")


def test_large_files_are_transcribed_in_offset_chunks(audio_file, tmp_path, monkeypatch):
    chunks = []
    for i in range(2):
        chunk = tmp_path / f"segment_{i:03d}.mp3"
        chunk.write_bytes(b"chunk")
        chunks.append(str(chunk))
    first = {"text": "one", "language": "en", "segments": [{"start": 1.0, "end": 2.0, "text": "one"}]}
    second = {"text": "two", "segments": [{"start": 0.5, "end": 1.5, "text": "two"}]}
    client = FakeClient([first, second])
    transcriber = OpenAITranscriber(client=client, max_upload_mb=0.00001)
    monkeypatch.setattr(transcriber, "split_audio", lambda path, chunk_dir: chunks)
    monkeypatch.setattr(openai_transcriber, "probe_duration", lambda path, ffprobe_path=None: 300.0)

    result = transcriber.transcribe(audio_file)
    assert result.text == "one two"
    assert result.language == "en"
    assert result.duration == 600.0
    assert result.segments == [Segment(1.0, 2.0, "one"), Segment(300.5, 301.5, "two")]
    assert [name for name, _ in client.transcriptions.calls] == chunks


def test_to_dict():
    assert _to_dict(None) == {}
    assert _to_dict({"a": 1}) == {"a": 1}
    assert _to_dict(FakeResponse({"b": 2})) == {"b": 2}
    assert _to_dict([("c", 3)]) == {"c": 3}
