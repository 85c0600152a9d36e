import pytest

from memoria.instructions import parse_instructions, read_instructions


def test_parse_strips_line_endings():
    lines = ["SET AX 1\n", "SUM AX BX\r\n", "EXIT"]
    assert parse_instructions(lines) == ["SET AX 1", "SUM AX BX", "EXIT"]


def test_parse_keeps_count_and_order():
    lines = ["A\n", "B\n", "C\n"]
    result = parse_instructions(lines)
    assert len(result) == len(lines)
    assert result == ["A", "B", "C"]


def test_parse_empty():
    assert parse_instructions([]) == []


def test_read_from_directory(tmp_path):
    (tmp_path / "prog").write_text("SET AX 1\nLOG AX\nEXIT", encoding="utf-8")
    assert read_instructions(tmp_path, "prog") == ["SET AX 1", "LOG AX", "EXIT"]


def test_read_trailing_newline(tmp_path):
    (tmp_path / "prog").write_text("SET AX 1\nEXIT\n", encoding="utf-8")
    assert read_instructions(str(tmp_path), "prog") == ["SET AX 1", "EXIT"]


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_instructions(tmp_path, "absent")