import pytest

from subburn.exceptions import InvalidSegment, InvalidTimeFormat
from subburn.models import Segment, TranscriptionResult
from subburn.subtitle_table import SubtitleTable, parse_csv_line, split_records


def test_parse_csv_line_handles_quotes_and_commas():
    assert parse_csv_line('0:01.000,0:02.000,"a, b"') == ["0:01.000", "0:02.000", "a, b"]
    assert parse_csv_line('1,2,"say ""hi"""') == ["1", "2", 'say "hi"']
    assert parse_csv_line(' 1 , 2 , "  padded  " ') == ["1", "2", "  padded  "]
    assert parse_csv_line('1,2,') == ["1", "2", ""]
    assert parse_csv_line('1,2,plain text') == ["1", "2", "plain text"]


def test_split_records_keeps_quoted_newlines():
    text = 'start,end,subtitles\n0:00.000,0:01.000,"line one\nline two"\r\n0:01.000,0:02.000,"x"\n'
    assert split_records(text) == [
        "start,end,subtitles",
        '0:00.000,0:01.000,"line one\nline two"',
        '0:01.000,0:02.000,"x"',
    ]


def test_to_csv_format(segments):
    csv_text = SubtitleTable(segments).to_csv()
    assert csv_text == (
        "start,end,subtitles\n"
        '0:00.000,0:02.000,"Hello"\n'
        '0:02.000,0:03.500,""\n'
        '0:03.500,0:06.250,"She said ""hi"", then left"\n'
    )


def test_round_trip_preserves_segments():
    table = SubtitleTable([
        Segment(0.0, 1.5, "plain"),
        Segment(1.5, 2.75, 'commas, "quotes", and ""doubles""'),
        Segment(2.75, 4.0, " "),
        Segment(4.0, 75.125, "日本語のテキスト, ok"),
        Segment(75.125, 80.0, "two\nlines"),
    ])
    parsed = SubtitleTable.from_csv(table.to_csv())
    assert len(parsed) == len(table)
    for got, want in zip(parsed, table):
        assert got.text == want.text
        assert got.start_time == pytest.approx(want.start_time, abs=1e-9)
        assert got.end_time == pytest.approx(want.end_time, abs=1e-9)


def test_round_trip_empty_table():
    assert SubtitleTable.from_csv(SubtitleTable().to_csv()) == SubtitleTable()


def test_from_csv_skips_short_rows(caplog):
    text = 'start,end,subtitles\n0:00.000,0:01.000,"a"\nbroken row\n0:01.000,0:02.000,"b"\n'
    table = SubtitleTable.from_csv(text)
    assert [s.text for s in table] == ["a", "b"]
    assert "Skipping row 3" in caplog.text


def test_from_csv_rejects_bad_time():
    with pytest.raises(InvalidTimeFormat):
        SubtitleTable.from_csv('start,end,subtitles\n0:0x.000,0:01.000,"a"\n')


def test_fill_gaps_example_scenario():
    text = '0:00.000,0:02.000,"a"\n0:02.500,0:04.000,"b"\n'
    filled = SubtitleTable.from_csv(text).fill_gaps()
    assert len(filled) == 3
    gap = filled[1]
    assert (gap.start_time, gap.end_time, gap.text) == (2.0, 2.5, " ")
    assert '0:02.000,0:02.500," "' in filled.to_csv()


def test_fill_gaps_is_idempotent():
    table = SubtitleTable([
        Segment(0.0, 1.0, "a"),
        Segment(1.0005, 2.0, "tiny gap"),
        Segment(3.0, 4.0, "b"),
        Segment(10.0, 12.0, "c"),
    ])
    once = table.fill_gaps()
    twice = once.fill_gaps()
    assert once == twice
    assert [s.text for s in once] == ["a", "tiny gap", " ", "b", " ", "c"]


def test_fill_gaps_ignores_leading_and_trailing_silence():
    table = SubtitleTable([Segment(5.0, 6.0, "only")])
    assert table.fill_gaps() == table


def test_fill_gaps_after_skipping_malformed_rows():
    text = 'start,end,subtitles\n0:00.000,0:01.000,"a"\ngarbage\n0:02.000,0:03.000,"b"\n'
    result = SubtitleTable.from_csv(text).fill_gaps()
    assert [(s.start_time, s.end_time, s.text) for s in result] == [
        (0.0, 1.0, "a"),
        (1.0, 2.0, " "),
        (2.0, 3.0, "b"),
    ]


def test_validate_names_offending_row():
    table = SubtitleTable([Segment(0.0, 1.0, "ok"), Segment(2.0, 2.0, "zero")])
    with pytest.raises(InvalidSegment, match="Segment 2"):
        table.validate()


def test_from_transcription_applies_offset_and_strips():
    result = TranscriptionResult(text="hi", segments=[Segment(0.5, 1.0, "  hi  ")])
    table = SubtitleTable.from_transcription(result, time_offset=30.0)
    assert table[0] == Segment(30.5, 31.0, "hi")


def test_save_and_load(tmp_path, segments):
    path = tmp_path / "subtitles.csv"
    SubtitleTable(segments).save(str(path))
    assert path.read_text(encoding="utf-8").startswith("start,end,subtitles\n")
    assert SubtitleTable.from_file(str(path)) == SubtitleTable(segments)


def test_from_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        SubtitleTable.from_file(str(tmp_path / "nope.csv"))


@pytest.mark.parametrize("text", ["a\r\nb", "lone\rreturn", "\r\n"])
def test_round_trip_keeps_carriage_returns(text):
    table = SubtitleTable([Segment(0.0, 1.0, text), Segment(1.0, 2.0, "after")])
    assert SubtitleTable.from_csv(table.to_csv()) == table


def test_windows_line_endings_between_records():
    text = 'start,end,subtitles\r\n0:00.000,0:01.000,"a"\r\n0:01.000,0:02.000,"b\r\nc"\r\n'
    table = SubtitleTable.from_csv(text)
    assert [s.text for s in table] == ["a", "b\r\nc"]


def test_header_after_byte_order_mark(tmp_path):
    path = tmp_path / "excel.csv"
    path.write_bytes('start,end,subtitles\n0:00.000,0:01.000,"a"\n'.encode("utf-8-sig"))
    assert SubtitleTable.from_file(str(path)) == SubtitleTable([Segment(0.0, 1.0, "a")])
    assert SubtitleTable.from_csv('\ufeffstart,end,subtitles\n0:00.000,0:01.000,"a"\n') == SubtitleTable(
        [Segment(0.0, 1.0, "a")]
    )


def test_header_after_leading_blank_lines():
    table = SubtitleTable.from_csv('\n\r\nstart,end,subtitles\n0:00.000,0:01.000,"a"\n')
    assert table == SubtitleTable([Segment(0.0, 1.0, "a")])


def test_rows_with_extra_fields_are_skipped(caplog):
    text = 'start,end,subtitles\n0:00.000,0:01.000,hello, world\n0:01.000,0:02.000,"kept, intact"\n'
    table = SubtitleTable.from_csv(text)
    assert [s.text for s in table] == ["kept, intact"]
    assert "Skipping row 2: expected 3 fields, got 4" in caplog.text
