import random

import pytest

from subburn.exceptions import InvalidTimeFormat
from subburn.utils import format_time, format_time_srt, parse_time


@pytest.mark.parametrize("text,expected", [
    ("12.5", 12.5),
    ("7", 7.0),
    ("1:05.250", 65.25),
    ("0:00.000", 0.0),
    ("61:01.000", 3661.0),
    ("1:01:01.5", 3661.5),
    ("01:02:03", 3723.0),
    (" 0:02.500 ", 2.5),
])
def test_parse_time_accepts_all_forms(text, expected):
    assert parse_time(text) == pytest.approx(expected)


@pytest.mark.parametrize("empty", [None, "", "   "])
def test_parse_time_empty_is_zero(empty):
    assert parse_time(empty) == 0.0


def test_parse_time_passes_numbers_through():
    assert parse_time(4.25) == 4.25
    assert parse_time(3) == 3.0


@pytest.mark.parametrize("bad", ["abc", "1:xx", "1.5:00", "-1:00", "1:-5", "1:2:3:4", "12.", "1e3", "a:b:c"])
def test_parse_time_rejects_malformed(bad):
    with pytest.raises(InvalidTimeFormat):
        parse_time(bad)


def test_parse_time_rejects_negative_number():
    with pytest.raises(InvalidTimeFormat):
        parse_time(-0.5)


@pytest.mark.parametrize("seconds,expected", [
    (0, "0:00.000"),
    (2.5, "0:02.500"),
    (65.25, "1:05.250"),
    (3661, "61:01.000"),
    (59.9996, "1:00.000"),
    (2.3, "0:02.300"),
])
def test_format_time_has_no_hour_component(seconds, expected):
    assert format_time(seconds) == expected


def test_format_time_rejects_negative():
    with pytest.raises(InvalidTimeFormat):
        format_time(-1)


def test_round_trip_random_values():
    rng = random.Random(1234)
    for _ in range(1000):
        x = round(rng.uniform(0, 20000), 3)
        assert abs(parse_time(format_time(x)) - x) < 0.001


def test_format_time_srt():
    assert format_time_srt(3661.5) == "01:01:01,500"
    assert format_time_srt(-3) == "00:00:00,000"
