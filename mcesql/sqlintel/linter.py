"""Entry points for running the lint rules over a statement."""

from __future__ import annotations

from typing import Collection, Iterable, Sequence

from .metadata import DataExtension
from .models import Diagnostic
from .rules import LintContext, RuleRegistry

_DEFAULT_REGISTRY = RuleRegistry.default()


def lint_sync(
    sql: str,
    data_extensions: Sequence[DataExtension] = (),
    cursor_position: int | None = None,
    disabled: Collection[str] = frozenset(),
    registry: RuleRegistry | None = None,
) -> list[Diagnostic]:
    """Run the keystroke-safe subset of rules. Empty input yields nothing."""

    if not sql.strip():
        return []
    context = LintContext(sql=sql, data_extensions=data_extensions, cursor_position=cursor_position)
    return (registry or _DEFAULT_REGISTRY).run(context, fast_only=True, disabled=disabled)


def lint_sql(
    sql: str,
    data_extensions: Sequence[DataExtension] = (),
    cursor_position: int | None = None,
    disabled: Collection[str] = frozenset(),
    registry: RuleRegistry | None = None,
) -> list[Diagnostic]:
    """Run every registered rule."""

    if not sql.strip():
        return []
    context = LintContext(sql=sql, data_extensions=data_extensions, cursor_position=cursor_position)
    return (registry or _DEFAULT_REGISTRY).run(context, disabled=disabled)


def is_blocking(diagnostic: Diagnostic) -> bool:
    return diagnostic.severity.is_blocking


def has_blocking_diagnostics(diagnostics: Iterable[Diagnostic]) -> bool:
    """True when any diagnostic should stop the query from being run."""

    return any(is_blocking(diagnostic) for diagnostic in diagnostics)


def first_blocking_diagnostic(diagnostics: Iterable[Diagnostic]) -> Diagnostic | None:
    return next((diagnostic for diagnostic in diagnostics if is_blocking(diagnostic)), None)


__all__ = [
    "first_blocking_diagnostic",
    "has_blocking_diagnostics",
    "is_blocking",
    "lint_sql",
    "lint_sync",
]
