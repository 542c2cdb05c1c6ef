"""Shared types for lint rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable, Sequence

from ..context import QueryBlock, QueryStructure, analyze_structure, query_blocks
from ..functions import FunctionCatalog
from ..metadata import DataExtension
from ..models import Diagnostic, DiagnosticSeverity, TableReference, Token
from ..scanner import scan, significant


@dataclass
class LintContext:
    """Input handed to every rule. Derived views are computed once and cached."""

    sql: str
    tokens: Sequence[Token] = field(default=())
    data_extensions: Sequence[DataExtension] = field(default=())
    cursor_position: int | None = None
    functions: FunctionCatalog = field(default_factory=FunctionCatalog.default)

    def __post_init__(self) -> None:
        if not self.tokens and self.sql:
            self.tokens = scan(self.sql)

    @cached_property
    def significant(self) -> list[Token]:
        return significant(self.tokens)

    @cached_property
    def structure(self) -> QueryStructure:
        return analyze_structure(self.sql, self.tokens)

    @cached_property
    def blocks(self) -> list[QueryBlock]:
        return query_blocks(self.structure)

    @property
    def references(self) -> tuple[TableReference, ...]:
        return self.structure.references

    @cached_property
    def scope_by_start(self) -> dict[int, int]:
        """Scope id of each significant token, keyed by its start offset."""

        structure = self.structure
        return {
            token.start: structure.scope_of[index]
            for index, token in enumerate(structure.significant)
        }

    def block_references(self, block: QueryBlock) -> list[TableReference]:
        """Table sources named by the FROM clause of ``block``."""

        if not block.has("from"):
            return []
        owned = {block.keywords["from"], *block.clauses["from"]}
        return [
            entry.reference
            for entry in self.structure.references_in(block.scope)
            if entry.keyword_index in owned
        ]

    @cached_property
    def reference_groups(self) -> list[list[TableReference]]:
        """Table sources grouped by the query block whose FROM list names them.

        Each branch of a set operation is its own group. Sources outside any
        block, such as a FROM with no SELECT, are grouped by scope.
        """

        owner: dict[int, int] = {}
        for number, block in enumerate(self.blocks):
            if block.has("from"):
                for index in (block.keywords["from"], *block.clauses["from"]):
                    owner[index] = number
        groups: dict[tuple[str, int], list[TableReference]] = {}
        for entry in self.structure.scoped_references:
            number = owner.get(entry.keyword_index)
            key = ("block", number) if number is not None else ("scope", entry.scope)
            groups.setdefault(key, []).append(entry.reference)
        return list(groups.values())

    def owned_tokens(self, block: QueryBlock, tokens: Sequence[Token]) -> list[Token]:
        """Filter ``tokens`` down to those in the same scope as ``block``."""

        scopes = self.scope_by_start
        return [token for token in tokens if scopes.get(token.start) == block.scope]

    def diagnostic(
        self,
        message: str,
        start: int,
        end: int,
        severity: DiagnosticSeverity = DiagnosticSeverity.ERROR,
    ) -> Diagnostic:
        """Build a diagnostic with offsets clamped into the text."""

        length = len(self.sql)
        start = max(0, min(start, length))
        end = max(start, min(end, length))
        return Diagnostic(message=message, severity=severity, start=start, end=end)


RuleCheck = Callable[[LintContext], list[Diagnostic]]


@dataclass(frozen=True, slots=True)
class LintRule:
    """A named, pure check over a :class:`LintContext`.

    ``fast`` rules run on every keystroke; the rest only run in the
    background analysis pass.
    """

    id: str
    name: str
    check: RuleCheck
    fast: bool = True


def rule(rule_id: str, name: str, *, fast: bool = True) -> Callable[[RuleCheck], LintRule]:
    """Decorator turning a check function into a :class:`LintRule`."""

    def decorator(check: RuleCheck) -> LintRule:
        return LintRule(id=rule_id, name=name, check=check, fast=fast)

    return decorator


__all__ = ["LintContext", "LintRule", "RuleCheck", "rule"]
