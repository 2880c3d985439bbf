"""Unit tests for subtitle parsing, serialisation and export."""

import pytest

from trisub.errors import ExportError, ValidationError
from trisub.structures import TARGET_LANGUAGES, SourceEntry, TranslatedEntry
from trisub.subtitles import (
    normalize_line_endings,
    parse_srt,
    read_srt,
    serialize_srt,
    split_time_range,
    write_exports,
)

from conftest import make_srt


def as_translated(entry: SourceEntry, speaker: str = "") -> TranslatedEntry:
    return TranslatedEntry(
        id=entry.id,
        time_range=entry.time_range,
        speaker=speaker,
        vietnamese="vi " + entry.text,
        english="en " + entry.text,
        chinese="zh " + entry.text,
    )


class TestParse:
    def test_single_cue(self):
        entries = parse_srt("1\n00:00:01,000 --> 00:00:02,000\nHello")

        assert entries == [
            SourceEntry(id="1", time_range="00:00:01,000 --> 00:00:02,000", text="Hello")
        ]

    def test_multiline_text_is_joined_and_trimmed(self):
        entries = parse_srt("7\n00:00:01,000 --> 00:00:02,000\n  First line\nSecond line  \n")

        assert entries[0].text == "First line\nSecond line"

    def test_line_endings_are_normalised(self):
        text = "1\r\n00:00:01,000 --> 00:00:02,000\r\nHi\r\n\r\n2\r00:00:03,000 --> 00:00:04,000\rBye"

        entries = parse_srt(text)

        assert [entry.id for entry in entries] == ["1", "2"]
        assert entries[1].text == "Bye"

    def test_short_chunks_are_dropped(self):
        text = "1\n00:00:01,000 --> 00:00:02,000\nKept\n\n2\n00:00:03,000 --> 00:00:04,000\n\n3\n00:00:05,000 --> 00:00:06,000\nAlso kept"

        entries = parse_srt(text)

        assert [entry.id for entry in entries] == ["1", "3"]

    def test_no_valid_chunks_returns_empty(self):
        assert parse_srt("") == []
        assert parse_srt("just one line\n\nand another") == []

    def test_order_and_count_preserved(self):
        entries = parse_srt(make_srt(12))

        assert [entry.id for entry in entries] == [str(index) for index in range(1, 13)]

    def test_parse_is_idempotent_on_normalised_input(self):
        text = make_srt(5).replace("\n", "\r\n")

        assert parse_srt(text) == parse_srt(normalize_line_endings(text))

    def test_ids_are_preserved_verbatim(self):
        entries = parse_srt("A-1\n00:00:01,000 --> 00:00:02,000\nHi\n\nA-1\n00:00:03,000 --> 00:00:04,000\nAgain")

        assert [entry.id for entry in entries] == ["A-1", "A-1"]


class TestReadSrt:
    def test_reads_file_with_bom(self, tmp_path):
        path = tmp_path / "bom.srt"
        path.write_text("\ufeff1\n00:00:01,000 --> 00:00:02,000\nHello", encoding="utf-8")

        assert read_srt(path)[0].id == "1"

    def test_missing_file_is_validation_error(self, tmp_path):
        with pytest.raises(ValidationError):
            read_srt(tmp_path / "missing.srt")

    def test_empty_file_is_validation_error(self, tmp_path):
        path = tmp_path / "empty.srt"
        path.write_text("not a subtitle", encoding="utf-8")

        with pytest.raises(ValidationError):
            read_srt(path)


class TestSerialize:
    def test_speaker_prefix(self):
        entry = TranslatedEntry(
            id="1",
            time_range="00:00:01,000 --> 00:00:02,000",
            speaker="Nam 1",
            vietnamese="Xin chào",
            english="Hello",
            chinese="你好",
        )

        assert serialize_srt([entry], "vietnamese") == (
            "1\n00:00:01,000 --> 00:00:02,000\n[Nam 1] Xin chào"
        )

    def test_empty_speaker_has_no_prefix(self):
        entry = TranslatedEntry("2", "00:00:03,000 --> 00:00:04,000", "", "a", "b", "c")

        assert serialize_srt([entry], "english") == "2\n00:00:03,000 --> 00:00:04,000\nb"

    @pytest.mark.parametrize("language", TARGET_LANGUAGES)
    def test_round_trip_keeps_ids_and_time_ranges(self, language):
        source = parse_srt(make_srt(8))
        rendered = serialize_srt([as_translated(entry, "Host") for entry in source], language)

        reparsed = parse_srt(rendered)

        assert [(e.id, e.time_range) for e in reparsed] == [
            (e.id, e.time_range) for e in source
        ]

    def test_unknown_language_rejected(self):
        with pytest.raises(ValueError):
            serialize_srt([], "klingon")


def test_split_time_range():
    assert split_time_range("00:00:01,000 --> 00:00:02,500") == ("00:00:01,000", "00:00:02,500")
    assert split_time_range("garbled") == ("garbled", "")


class TestWriteExports:
    def test_writes_one_file_per_language(self, tmp_path):
        entries = [as_translated(entry) for entry in parse_srt(make_srt(2))]

        paths = write_exports(entries, tmp_path / "out")

        assert [path.name for path in paths] == [
            "subtitle_vietnamese.srt",
            "subtitle_english.srt",
            "subtitle_chinese.srt",
        ]
        assert paths[1].read_text(encoding="utf-8").startswith("1\n")

    def test_refuses_to_overwrite(self, tmp_path):
        (tmp_path / "subtitle_english.srt").write_text("old", encoding="utf-8")

        with pytest.raises(ExportError):
            write_exports([], tmp_path, ["english"])

        write_exports([], tmp_path, ["english"], force_overwrite=True)
        assert (tmp_path / "subtitle_english.srt").read_text(encoding="utf-8") == ""
