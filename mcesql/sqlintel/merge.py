"""Combine keystroke diagnostics with the latest background analysis."""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from .models import Diagnostic, DiagnosticSeverity

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# Background diagnostics that stay useful while a structural prerequisite is unmet.
_POLICY_MARKERS = ("not available", "not supported", "read-only")


def diagnostic_key(diagnostic: Diagnostic) -> tuple[str, int, int, str]:
    return (diagnostic.severity.value, diagnostic.start, diagnostic.end, diagnostic.message)


def normalize_message(message: str) -> str:
    return _NON_ALNUM.sub("", message.lower())


def _overlaps(first: Diagnostic, second: Diagnostic) -> bool:
    if first.start == first.end or second.start == second.end:
        return first.start <= second.end and second.start <= first.end
    return first.start < second.end and second.start < first.end


def merge_diagnostics(
    sync_diagnostics: Iterable[Diagnostic],
    async_diagnostics: Iterable[Diagnostic],
) -> list[Diagnostic]:
    """Merge both sets, preferring the synchronous copy of any duplicate.

    Exact duplicates collapse on ``(severity, start, end, message)``. A
    background diagnostic whose range overlaps a synchronous one of the same
    severity with an equivalent message is dropped. The result is ordered by
    start offset, then severity.
    """

    merged: list[Diagnostic] = []
    seen: set[tuple[str, int, int, str]] = set()
    sync_list = list(sync_diagnostics)
    for diagnostic in sync_list:
        key = diagnostic_key(diagnostic)
        if key not in seen:
            seen.add(key)
            merged.append(diagnostic)

    for diagnostic in async_diagnostics:
        key = diagnostic_key(diagnostic)
        if key in seen:
            continue
        normalized = normalize_message(diagnostic.message)
        if any(
            existing.severity is diagnostic.severity
            and _overlaps(existing, diagnostic)
            and normalize_message(existing.message) == normalized
            for existing in sync_list
        ):
            continue
        seen.add(key)
        merged.append(diagnostic)

    merged.sort(key=lambda item: (item.start, item.severity.rank))
    return merged


def filter_async_for_prereqs(
    sync_diagnostics: Sequence[Diagnostic],
    async_diagnostics: Sequence[Diagnostic],
) -> list[Diagnostic]:
    """Hide parser noise while the statement is missing a basic prerequisite."""

    if not any(item.severity is DiagnosticSeverity.PREREQ for item in sync_diagnostics):
        return list(async_diagnostics)
    return [
        item
        for item in async_diagnostics
        if any(marker in item.message.lower() for marker in _POLICY_MARKERS)
    ]


__all__ = [
    "diagnostic_key",
    "filter_async_for_prereqs",
    "merge_diagnostics",
    "normalize_message",
]
