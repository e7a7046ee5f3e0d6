"""Tests for position indexing, display width and in-memory files."""

from __future__ import annotations

import pytest

from codeframe.errors import FileNotFound, RangeError
from codeframe.source import Location, PositionIndex, SimpleFiles, SourceFile
from codeframe.width import char_width, expand_tabs, text_width


class TestPositionIndexBuild:
    def test_line_starts_with_trailing_newline(self):
        index = PositionIndex.build("a\nbc\n")
        assert index.line_starts == (0, 2, 5)
        assert index.line_count == 3
        assert index.last_content_line == 2

    def test_line_starts_without_trailing_newline(self):
        index = PositionIndex.build("a\nbc")
        assert index.line_starts == (0, 2)
        assert index.last_content_line == 2

    def test_empty_source(self):
        index = PositionIndex.build("")
        assert index.line_starts == (0,)
        assert index.line_of(0) == 1
        assert index.column_of(0) == 1

    def test_crlf_lines(self):
        index = PositionIndex.build("ab\r\ncd\r\n")
        assert index.line_starts == (0, 4, 8)
        assert index.line_text(1) == "ab"
        assert index.line_range(2) == (4, 6)

    def test_stray_carriage_return_shown_as_space(self):
        index = PositionIndex.build("ab\rcd\n")
        assert index.line_text(1) == "ab cd"
        assert index.column_of(3) == 4

    def test_offsets_are_bytes(self):
        index = PositionIndex.build("\u00e9\nx")
        assert index.source_length == 4
        assert index.line_starts == (0, 3)

    def test_build_from_bytes(self):
        assert PositionIndex.build(b"x\ny").line_starts == (0, 2)


class TestLineOf:
    def test_offset_at_line_start_belongs_to_that_line(self):
        index = PositionIndex.build("let x = 5\nlet y = x + z\n")
        assert index.line_of(0) == 1
        assert index.line_of(9) == 1
        assert index.line_of(10) == 2
        assert index.line_of(22) == 2

    def test_end_of_source_is_valid(self):
        index = PositionIndex.build("ab\n")
        assert index.line_of(3) == 2

    def test_past_end_raises(self):
        index = PositionIndex.build("ab\n")
        with pytest.raises(RangeError) as excinfo:
            index.line_of(4)
        assert excinfo.value.offset == 4

    def test_negative_raises(self):
        with pytest.raises(RangeError):
            PositionIndex.build("ab").line_of(-1)


class TestColumnOf:
    def test_ascii_columns(self):
        index = PositionIndex.build("let x = 5\nlet y = x + z\n")
        assert index.column_of(22) == 13
        assert index.location(22) == Location(2, 13)
        assert str(index.location(22)) == "2:13"

    def test_tab_expands_to_default_width(self):
        index = PositionIndex.build("\tx = 1\n")
        assert index.column_of(1) == 5

    def test_tab_expands_to_next_stop(self):
        index = PositionIndex.build("ab\tc\n")
        assert index.column_of(3) == 5
        assert index.column_of(3, tab_width=8) == 9

    def test_custom_tab_width(self):
        index = PositionIndex.build("\tx\n")
        assert index.column_of(1, tab_width=2) == 3

    def test_wide_characters_take_two_columns(self):
        source = "名前 = 1\n"
        index = PositionIndex.build(source)
        offset = source.encode("utf-8").index(b"=")
        assert offset == 7
        assert index.column_of(offset) == 6

    def test_combining_mark_has_no_width(self):
        source = "e\u0301x"
        index = PositionIndex.build(source)
        assert index.column_of(len("e\u0301".encode("utf-8"))) == 2

    def test_offset_inside_character_raises(self):
        index = PositionIndex.build("名前")
        with pytest.raises(RangeError, match="character boundary"):
            index.column_of(1)

    def test_column_past_line_content(self):
        index = PositionIndex.build("abc\ndef\n")
        assert index.column_in_line(1, 4) == 5

    def test_round_trip_prefix(self):
        source = "fn main() {\n    let x = 1;\n\n    x\n}"
        index = PositionIndex.build(source)
        for offset in range(len(source) + 1):
            location = index.location(offset)
            start = index.line_starts[location.line - 1]
            expected = source[start:offset]
            assert index.line_text(location.line)[: location.column - 1] == expected


    def test_crlf_terminator_is_one_column(self):
        index = PositionIndex.build("ab\r\ncd\r\n")
        assert index.column_in_line(1, 4) == 4
        assert index.column_in_line(1, 3) == 4


class TestWidth:
    def test_char_width(self):
        assert char_width("a") == 1
        assert char_width("名") == 2
        assert char_width("\u0301") == 0
        assert char_width("\x00") == 0
        assert char_width("\n") == 1

    def test_text_width_with_tabs(self):
        assert text_width("\t") == 4
        assert text_width("a\tb", tab_width=4) == 5

    def test_expand_tabs(self):
        assert expand_tabs("\tx") == "    x"
        assert expand_tabs("ab\tc", tab_width=4) == "ab  c"
        assert expand_tabs("no tabs") == "no tabs"


class TestFiles:
    def test_simple_files_ids(self):
        files = SimpleFiles()
        first = files.add("a.txt", "a")
        second = files.add("b.txt", "b")
        assert (first, second) == (0, 1)
        assert files.name(second) == "b.txt"
        assert files.source(first) == "a"
        assert len(files) == 2

    def test_unknown_id_raises_file_not_found(self):
        files = SimpleFiles()
        files.add("a.txt", "a")
        with pytest.raises(FileNotFound) as excinfo:
            files.source(3)
        assert excinfo.value.file_id == 3
        with pytest.raises(FileNotFound):
            files.name("a.txt")

    def test_bool_is_not_a_file_id(self):
        files = SimpleFiles()
        files.add("a.txt", "a")
        files.add("b.txt", "b")
        with pytest.raises(FileNotFound):
            files.name(True)

    def test_index_is_cached(self):
        files = SimpleFiles()
        file_id = files.add("a.txt", "a\nb\n")
        assert files.index(file_id) is files.index(file_id)

    def test_source_file_lazy_index(self):
        source_file = SourceFile("x.txt", "one\ntwo\n")
        assert source_file._index is None
        assert source_file.index.line_count == 3
        assert source_file.index is source_file.index
