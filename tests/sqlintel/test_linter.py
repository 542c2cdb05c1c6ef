"""Tests for the synchronous and full lint entry points."""

from __future__ import annotations

import pytest

from mcesql.sqlintel.linter import (
    first_blocking_diagnostic,
    has_blocking_diagnostics,
    lint_sql,
    lint_sync,
)
from mcesql.sqlintel.models import Diagnostic, DiagnosticSeverity

CORPUS = [
    "",
    "SELECT",
    "SELECT * FROM",
    "SELECT 'unterminated",
    "SELECT [a FROM (SELECT",
    "SELECT a,, FROM ((( WHERE",
    "WITH x AS (SELECT 1) SELECT * FROM x;",
    "SELECT * FROM A; SELECT * FROM B;",
    "))) /* ",
    "SELECT COUNT(*) OVER (PARTITION BY a ORDER BY b) AS c FROM [T] t JOIN [U] u ON t.a = u.a",
    "DELETE FROM x WHERE @y = 1",
    "SELECT * FROM (SELECT * FROM (SELECT * FROM [Deep]",
]


@pytest.mark.parametrize("sql", CORPUS)
def test_linters_never_raise_and_keep_offsets_in_range(sql: str) -> None:
    for diagnostics in (lint_sync(sql), lint_sql(sql)):
        for diagnostic in diagnostics:
            assert 0 <= diagnostic.start <= diagnostic.end <= len(sql)


def test_blank_input_has_no_diagnostics() -> None:
    assert lint_sync("   \n") == []
    assert lint_sql("") == []


def test_sync_lint_reports_multi_statement_once() -> None:
    diagnostics = lint_sync("SELECT * FROM A; SELECT * FROM B")

    multi = [item for item in diagnostics if "single SQL statement" in item.message]
    assert len(multi) == 1
    assert multi[0].severity is DiagnosticSeverity.ERROR


def test_single_trailing_semicolon_is_not_multi_statement() -> None:
    diagnostics = lint_sync("SELECT * FROM A;")

    assert not any("single SQL statement" in item.message for item in diagnostics)
    assert any("Trailing semicolons" in item.message for item in diagnostics)


def test_full_lint_adds_background_rules() -> None:
    sql = "SELECT Region, COUNT(*) AS Total FROM [A]"

    assert not any("Non-aggregated" in item.message for item in lint_sync(sql))
    assert any("Non-aggregated" in item.message for item in lint_sql(sql))


def test_disabled_rule_ids_are_respected() -> None:
    sql = "SELECT * FROM A;"

    diagnostics = lint_sync(sql, disabled={"trailing-semicolon"})

    assert not any("Trailing semicolons" in item.message for item in diagnostics)


def test_blocking_helpers() -> None:
    warning = Diagnostic("w", DiagnosticSeverity.WARNING, 0, 1)
    prereq = Diagnostic("p", DiagnosticSeverity.PREREQ, 2, 3)

    assert has_blocking_diagnostics([warning]) is False
    assert has_blocking_diagnostics([warning, prereq]) is True
    assert first_blocking_diagnostic([warning, prereq]) is prereq
    assert first_blocking_diagnostic([]) is None


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT SubscriberKey FROM [_Sent] UNION SELECT SubscriberKey FROM [_Sent]",
        "SELECT a.SubscriberKey FROM [_Sent] a UNION ALL SELECT a.SubscriberKey FROM [_Open] a",
    ],
)
def test_union_branches_lint_independently(sql: str) -> None:
    messages = [item.message for item in lint_sql(sql)]

    assert not any("Self-join" in message for message in messages)
    assert not any("Duplicate table alias" in message for message in messages)
