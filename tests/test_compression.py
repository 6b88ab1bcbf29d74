import logging

from subburn.compression import (
    COMPRESSION_LEVELS,
    analysis_audio_kwargs,
    get_compression_settings,
    list_profiles,
    video_output_kwargs,
)


def test_profiles_get_smaller_as_quality_drops():
    assert [key for key, _ in list_profiles()] == ["high", "medium", "low"]
    crfs = [COMPRESSION_LEVELS[key]["video"]["crf"] for key in ("high", "medium", "low")]
    assert crfs == sorted(crfs)


def test_unknown_level_falls_back_to_medium(caplog):
    with caplog.at_level(logging.WARNING, logger="subburn.compression"):
        settings = get_compression_settings("ultra")
    assert settings is COMPRESSION_LEVELS["medium"]
    assert "ultra" in caplog.text


def test_video_output_kwargs():
    assert video_output_kwargs("high") == {
        "vcodec": "libx264",
        "preset": "slow",
        "crf": 12,
        "pix_fmt": "yuv420p",
        "acodec": "aac",
        "audio_bitrate": "320k",
        "ar": 48000,
    }


def test_analysis_audio_is_mono_and_video_free():
    kwargs = analysis_audio_kwargs("low")
    assert kwargs["ac"] == 1
    assert kwargs["ar"] == 16000
    assert "vn" in kwargs and kwargs["vn"] is None
