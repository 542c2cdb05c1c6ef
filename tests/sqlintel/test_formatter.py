"""Tests for the SQL formatter and its post-processing passes."""

from __future__ import annotations

import pytest

from mcesql.sqlintel import formatter as formatter_module
from mcesql.sqlintel.formatter import (
    fix_offset_fetch_case,
    fix_select_top,
    format_sql,
    move_commas_to_leading,
    restore_line_comments,
    strip_trailing_semicolon,
)

CORPUS = [
    "select a,b from [DE] where x=1",
    "SELECT TOP 10 s.SubscriberKey, s.EmailAddress FROM [_Subscribers] s ORDER BY s.DateJoined DESC",
    "select id from [A] order by id offset 10 rows fetch next 5 rows only",
    "SELECT a.Id, b.Name FROM [A] a INNER JOIN ENT.[Shared B] b ON a.Id = b.Id WHERE b.Name LIKE 'x,%'",
    "SELECT COUNT(*) AS Total, Region FROM [Master Subscribers] GROUP BY Region HAVING COUNT(*) > 1;",
    "SELECT * FROM (SELECT id FROM [A]) sub",
    "SELECT (1 FROM",
    "SELECT 'unterminated",
    "-- just a comment",
    "SELECT a -- note\nFROM [A]",
]


def test_empty_input_formats_to_empty() -> None:
    assert format_sql("") == ""
    assert format_sql("   \n") == ""


@pytest.mark.parametrize("sql", CORPUS)
def test_format_is_a_fixed_point(sql: str) -> None:
    once = format_sql(sql)

    assert format_sql(once) == once


def test_format_produces_leading_commas() -> None:
    formatted = format_sql("select a,b from [DE] where x=1")

    assert formatted.startswith("SELECT")
    assert "\n    , b" in formatted
    assert "a," not in formatted


def test_format_drops_trailing_semicolon() -> None:
    assert not format_sql("SELECT 1 AS x;").endswith(";")


def test_unparseable_sql_is_returned_unchanged() -> None:
    assert format_sql("SELECT (1 FROM") == "SELECT (1 FROM"


def test_unexpected_failure_falls_back_to_input(monkeypatch: pytest.MonkeyPatch) -> None:
    def _explode(sql: str) -> str:
        raise RuntimeError("formatter bug")

    monkeypatch.setattr(formatter_module, "_format_once", _explode)

    assert format_sql("SELECT a FROM [A]") == "SELECT a FROM [A]"


def test_move_commas_to_leading() -> None:
    sql = "SELECT\n    a,\n    b,\n    c\nFROM\n    [DE]"

    assert move_commas_to_leading(sql) == "SELECT\n    a\n    , b\n    , c\nFROM\n    [DE]"


def test_comma_before_line_comment_moves() -> None:
    sql = "SELECT\n    a, -- first\n    b\nFROM\n    [DE]"

    assert move_commas_to_leading(sql) == "SELECT\n    a -- first\n    , b\nFROM\n    [DE]"


def test_commas_inside_block_comments_stay() -> None:
    sql = "SELECT\n    /* keep a,\n    and b, */\n    c\nFROM\n    [DE]"

    assert move_commas_to_leading(sql) == sql


def test_commas_inside_multiline_strings_stay() -> None:
    sql = "SELECT\n    'a,\n    b' AS x\nFROM\n    [DE]"

    assert move_commas_to_leading(sql) == sql


def test_comma_with_nothing_after_it_stays() -> None:
    assert move_commas_to_leading("SELECT a,") == "SELECT a,"


def test_comma_in_bracketed_name_stays() -> None:
    sql = "SELECT\n    [a,\n    b]\nFROM\n    [DE]"

    assert move_commas_to_leading(sql) == sql


def test_fix_select_top() -> None:
    assert fix_select_top("SELECT\n    TOP 10\n    a\nFROM\n    b") == "SELECT TOP 10\n    a\nFROM\n    b"
    assert fix_select_top("SELECT DISTINCT\n    TOP (5) PERCENT\n    a") == "SELECT DISTINCT TOP (5) PERCENT\n    a"


def test_fix_select_top_accepts_unindented_top() -> None:
    assert fix_select_top("SELECT\nTOP 10\n    a\nFROM T") == "SELECT TOP 10\n    a\nFROM T"


def test_format_keeps_top_on_the_select_line() -> None:
    formatted = format_sql("SELECT TOP 10 a FROM T")

    assert formatted.splitlines()[0] == "SELECT TOP 10"
    assert format_sql(formatted) == formatted


def test_restore_line_comments_rewrites_comments_that_end_a_line() -> None:
    original = "SELECT a -- note\nFROM [A]"

    assert restore_line_comments("SELECT\n    a /* note */\nFROM [A]", original) == "SELECT\n    a -- note\nFROM [A]"


def test_restore_line_comments_leaves_comments_followed_by_code() -> None:
    original = "SELECT a -- note\nFROM [A]"
    printed = "SELECT /* note */ a FROM [A]"

    assert restore_line_comments(printed, original) == printed
    assert restore_line_comments("SELECT a /* other */\nFROM [A]", original) == "SELECT a /* other */\nFROM [A]"


def test_format_preserves_line_comment_text() -> None:
    formatted = format_sql("SELECT a -- note\nFROM [A]")

    assert "note" in formatted
    assert format_sql(formatted) == formatted


def test_fix_offset_fetch_case() -> None:
    sql = "ORDER BY id OFFSET 10 rows FETCH next 5 rows only"

    assert fix_offset_fetch_case(sql) == "ORDER BY id OFFSET 10 ROWS FETCH NEXT 5 ROWS ONLY"
    assert fix_offset_fetch_case("SELECT 'offset 1 rows' AS x") == "SELECT 'offset 1 rows' AS x"


def test_strip_trailing_semicolon() -> None:
    assert strip_trailing_semicolon("SELECT 1;  \n") == "SELECT 1"
    assert strip_trailing_semicolon("SELECT ';'") == "SELECT ';'"
