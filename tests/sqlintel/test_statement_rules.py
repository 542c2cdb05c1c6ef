"""Tests for statement-level lint rules."""

from __future__ import annotations

import pytest

from mcesql.sqlintel.models import DiagnosticSeverity
from mcesql.sqlintel.rules import LintContext
from mcesql.sqlintel.rules.statements import (
    cte_detection,
    limit_prohibition,
    no_multi_statement,
    prohibited_keywords,
    trailing_semicolon,
    variable_usage,
)


def _check(lint_rule, sql: str):  # type: ignore[no-untyped-def]
    return lint_rule.check(LintContext(sql=sql))


def test_multi_statement_is_flagged_once() -> None:
    diagnostics = _check(no_multi_statement, "SELECT * FROM A; SELECT * FROM B")

    assert len(diagnostics) == 1
    assert diagnostics[0].severity is DiagnosticSeverity.ERROR
    assert "single SQL statement" in diagnostics[0].message


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT * FROM A;",
        "SELECT 'It''s a test; SELECT' FROM A",
        "SELECT * FROM A -- ; SELECT * FROM B",
        "SELECT * FROM A /* ; SELECT 1 */",
    ],
)
def test_semicolons_hidden_in_literals_are_not_statements(sql: str) -> None:
    assert _check(no_multi_statement, sql) == []


def test_trailing_semicolon_is_reported_separately() -> None:
    sql = "SELECT * FROM A;"

    diagnostics = _check(trailing_semicolon, sql)

    assert len(diagnostics) == 1
    assert (diagnostics[0].start, diagnostics[0].end) == (len(sql) - 1, len(sql))
    assert _check(trailing_semicolon, "SELECT * FROM A") == []


@pytest.mark.parametrize(
    ("sql", "fragment"),
    [
        ("DELETE FROM [Subscribers]", "DELETE statements are not supported"),
        ("UPDATE [A] SET x = 1", "UPDATE statements are not supported"),
        ("INSERT INTO [A] VALUES (1)", "INSERT statements are not supported"),
        ("DROP TABLE [A]", "DROP are not supported"),
        ("DECLARE @x INT", "procedural logic"),
    ],
)
def test_prohibited_keywords(sql: str, fragment: str) -> None:
    diagnostics = _check(prohibited_keywords, sql)

    assert diagnostics
    assert fragment in diagnostics[0].message
    assert diagnostics[0].start == 0


def test_update_set_is_reported_once() -> None:
    diagnostics = _check(prohibited_keywords, "UPDATE [A] SET x = 1")

    assert len(diagnostics) == 1


def test_prohibited_keyword_inside_string_is_ignored() -> None:
    assert _check(prohibited_keywords, "SELECT 'delete me' AS note FROM [A]") == []


def test_temp_table_is_prohibited() -> None:
    diagnostics = _check(prohibited_keywords, "SELECT * FROM #staging")

    assert len(diagnostics) == 1
    assert "#staging" in diagnostics[0].message


def test_cte_detection() -> None:
    sql = "WITH recent AS (SELECT id FROM [A]) SELECT * FROM recent"

    diagnostics = _check(cte_detection, sql)

    assert len(diagnostics) == 1
    assert "Common Table Expressions" in diagnostics[0].message
    assert diagnostics[0].start == 0


def test_table_hint_is_not_a_cte() -> None:
    assert _check(cte_detection, "SELECT * FROM [A] WITH (NOLOCK)") == []


def test_limit_is_prohibited() -> None:
    diagnostics = _check(limit_prohibition, "SELECT id FROM [A] LIMIT 10")

    assert len(diagnostics) == 1
    assert "Use TOP or OFFSET/FETCH" in diagnostics[0].message


def test_variable_usage() -> None:
    diagnostics = _check(variable_usage, "SELECT * FROM [A] WHERE id = @id OR x = @@ROWCOUNT")

    names = [diagnostic.message.split("'")[1] for diagnostic in diagnostics]
    assert names == ["@id", "@@ROWCOUNT"]


def test_email_literal_is_not_a_variable() -> None:
    assert _check(variable_usage, "SELECT * FROM [A] WHERE e = 'x@example.com'") == []
