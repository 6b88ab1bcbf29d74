import os

import pytest

from subburn.models import Segment
from subburn.segment_renderer import SegmentRenderer


class FakeRenderer(SegmentRenderer):
    """SegmentRenderer whose ffmpeg steps write placeholder files."""

    def __init__(self, fail_extract=0, fail_burn=0, **kwargs):
        kwargs.setdefault("sleep", self._record_sleep)
        super().__init__(**kwargs)
        self.fail_extract = fail_extract
        self.fail_burn = fail_burn
        self.sleeps = []
        self.extract_calls = []
        self.burn_calls = []

    def _record_sleep(self, seconds):
        self.sleeps.append(seconds)

    def extract_clip(self, video_path, start, duration, output_path, index):
        self.extract_calls.append((index, start, duration))
        with open(output_path, "wb") as f:
            f.write(b"partial")
        if self.fail_extract:
            self.fail_extract -= 1
            from subburn.exceptions import TransientEncodeFailure
            raise TransientEncodeFailure(f"Segment {index + 1}: extract failed: disk full")
        with open(output_path, "wb") as f:
            f.write(f"slice {start:.3f}+{duration:.3f}".encode())

    def burn_subtitles(self, clip_path, subtitle_path, output_path, index):
        caption = None
        if subtitle_path:
            with open(subtitle_path, encoding="utf-8") as f:
                caption = f.read()
        self.burn_calls.append((index, caption))
        if self.fail_burn:
            self.fail_burn -= 1
            from subburn.exceptions import TransientEncodeFailure
            raise TransientEncodeFailure(f"Segment {index + 1}: burn-in failed")
        with open(output_path, "wb") as f:
            f.write(f"clip {index}".encode())


class FakeConcatenator:
    def __init__(self):
        self.calls = []

    def concatenate(self, clip_paths, output_path):
        self.calls.append(list(clip_paths))
        with open(output_path, "wb") as out:
            for path in clip_paths:
                with open(path, "rb") as f:
                    out.write(f.read())
        return output_path


@pytest.fixture
def source_video(tmp_path_factory):
    path = tmp_path_factory.mktemp("source") / "video_high.mp4"
    path.write_bytes(b"not really a video")
    return str(path)


@pytest.fixture
def make_csv(tmp_path):
    def _make(rows, name="subtitles.csv"):
        path = tmp_path / name
        lines = ["start,end,subtitles"] + [f'{s},{e},"{t}"' for s, e, t in rows]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(path)
    return _make


@pytest.fixture
def segments():
    return [
        Segment(0.0, 2.0, "Hello"),
        Segment(2.0, 3.5, ""),
        Segment(3.5, 6.25, 'She said "hi", then left'),
    ]


def list_files(directory):
    result = []
    for root, _dirs, files in os.walk(directory):
        result.extend(os.path.join(root, name) for name in files)
    return sorted(result)
