"""Tests for combining keystroke and background diagnostics."""

from __future__ import annotations

from mcesql.sqlintel.merge import filter_async_for_prereqs, merge_diagnostics, normalize_message
from mcesql.sqlintel.models import Diagnostic, DiagnosticSeverity

ERROR = DiagnosticSeverity.ERROR
PREREQ = DiagnosticSeverity.PREREQ
WARNING = DiagnosticSeverity.WARNING


def test_exact_duplicates_collapse() -> None:
    sync = [Diagnostic("Bad thing.", ERROR, 0, 5)]
    background = [Diagnostic("Bad thing.", ERROR, 0, 5)]

    merged = merge_diagnostics(sync, background)

    assert merged == sync


def test_overlapping_equivalent_background_diagnostic_is_dropped() -> None:
    sync = [Diagnostic("Unexpected comma!", ERROR, 4, 8)]
    background = [Diagnostic("unexpected  comma", ERROR, 6, 10)]

    merged = merge_diagnostics(sync, background)

    assert merged == sync


def test_different_severity_is_kept() -> None:
    sync = [Diagnostic("Same text", ERROR, 0, 4)]
    background = [Diagnostic("Same text", WARNING, 0, 4)]

    merged = merge_diagnostics(sync, background)

    assert len(merged) == 2


def test_non_overlapping_ranges_are_kept() -> None:
    sync = [Diagnostic("Same text", ERROR, 0, 4)]
    background = [Diagnostic("Same text", ERROR, 10, 14)]

    assert len(merge_diagnostics(sync, background)) == 2


def test_result_sorted_by_start_then_severity() -> None:
    sync = [Diagnostic("w", WARNING, 5, 6), Diagnostic("late", ERROR, 9, 10)]
    background = [Diagnostic("p", PREREQ, 5, 6), Diagnostic("e", ERROR, 5, 7), Diagnostic("first", WARNING, 0, 1)]

    merged = merge_diagnostics(sync, background)

    assert [item.message for item in merged] == ["first", "e", "p", "w", "late"]


def test_normalize_message_ignores_case_and_punctuation() -> None:
    assert normalize_message("Missing  ON-clause.") == normalize_message("missing on clause")


def test_prereq_hides_parser_noise_but_keeps_policy_errors() -> None:
    sync = [Diagnostic("Query must include a SELECT statement.", PREREQ, 0, 4)]
    background = [
        Diagnostic('Unexpected "FROM". Check the syntax near this position.', ERROR, 0, 4),
        Diagnostic("TRY_CAST() is not available in MCE. Use CAST() instead.", ERROR, 5, 13),
        Diagnostic("MCE SQL is read-only. DELETE statements are not supported; write a SELECT query instead.", ERROR, 0, 6),
    ]

    kept = filter_async_for_prereqs(sync, background)

    assert [item.start for item in kept] == [5, 0]


def test_without_prereq_everything_passes() -> None:
    background = [Diagnostic("Anything", ERROR, 0, 1)]

    assert filter_async_for_prereqs([], background) == background
