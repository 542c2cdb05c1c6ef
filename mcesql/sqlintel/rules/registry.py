"""Ordered rule registry and the dispatcher that runs it."""

from __future__ import annotations

import logging
from typing import Collection, Iterable

from ..models import Diagnostic
from .base import LintContext, LintRule
from .predicates import (
    aggregate_in_where,
    empty_in_clause,
    not_equal_style,
    not_in_subquery,
    offset_without_order_by,
    order_by_in_subquery,
    unmatched_delimiters,
    unsupported_functions,
)
from .select import (
    aggregate_grouping,
    alias_in_clause,
    comma_validation,
    duplicate_column_alias,
    select_clause,
    select_star_single,
    select_star_with_join,
)
from .statements import (
    cte_detection,
    limit_prohibition,
    no_multi_statement,
    prohibited_keywords,
    trailing_semicolon,
    variable_usage,
)
from .tables import (
    ambiguous_fields,
    duplicate_table_alias,
    missing_join_on,
    self_join_same_alias,
    subquery_without_alias,
    unbracketed_names,
    with_nolock,
)

LOG = logging.getLogger(__name__)

DEFAULT_RULES: tuple[LintRule, ...] = (
    prohibited_keywords,
    cte_detection,
    select_clause,
    unbracketed_names,
    ambiguous_fields,
    limit_prohibition,
    offset_without_order_by,
    unsupported_functions,
    aggregate_grouping,
    comma_validation,
    alias_in_clause,
    trailing_semicolon,
    no_multi_statement,
    unmatched_delimiters,
    empty_in_clause,
    variable_usage,
    duplicate_table_alias,
    duplicate_column_alias,
    select_star_with_join,
    self_join_same_alias,
    order_by_in_subquery,
    missing_join_on,
    aggregate_in_where,
    subquery_without_alias,
    select_star_single,
    with_nolock,
    not_in_subquery,
    not_equal_style,
)


class RuleRegistry:
    """Keeps lint rules in registration order."""

    def __init__(self, rules: Iterable[LintRule] = ()) -> None:
        self._rules: dict[str, LintRule] = {}
        self.register_many(rules)

    @classmethod
    def default(cls) -> "RuleRegistry":
        return cls(DEFAULT_RULES)

    def register(self, lint_rule: LintRule) -> None:
        """Register a rule; ids must be unique."""

        if lint_rule.id in self._rules:
            raise ValueError(f"Lint rule '{lint_rule.id}' is already registered")
        self._rules[lint_rule.id] = lint_rule

    def register_many(self, rules: Iterable[LintRule]) -> None:
        for lint_rule in rules:
            self.register(lint_rule)

    def get(self, rule_id: str) -> LintRule | None:
        return self._rules.get(rule_id)

    def rules(self, *, fast_only: bool = False, disabled: Collection[str] = ()) -> list[LintRule]:
        """Return the registered rules, optionally limited to the keystroke-safe subset."""

        return [
            lint_rule
            for lint_rule in self._rules.values()
            if lint_rule.id not in disabled and (lint_rule.fast or not fast_only)
        ]

    def run(
        self,
        context: LintContext,
        *,
        fast_only: bool = False,
        disabled: Collection[str] = (),
    ) -> list[Diagnostic]:
        return run_rules(context, self.rules(fast_only=fast_only, disabled=disabled))


def run_rules(context: LintContext, rules: Iterable[LintRule]) -> list[Diagnostic]:
    """Run ``rules`` in order; a rule that raises is logged and skipped."""

    diagnostics: list[Diagnostic] = []
    for lint_rule in rules:
        try:
            diagnostics.extend(lint_rule.check(context))
        except Exception:
            LOG.exception("Lint rule %s failed; skipping", lint_rule.id)
    return diagnostics


__all__ = ["DEFAULT_RULES", "RuleRegistry", "run_rules"]
