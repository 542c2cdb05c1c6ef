"""Tests for the lint rule registry and dispatcher."""

from __future__ import annotations

import logging

import pytest

from mcesql.sqlintel.models import Diagnostic, DiagnosticSeverity
from mcesql.sqlintel.rules import DEFAULT_RULES, LintContext, LintRule, RuleRegistry, rule, run_rules


@rule("always-warn", "Always Warn")
def _always_warn(context: LintContext) -> list[Diagnostic]:
    return [context.diagnostic("Heads up.", 0, 1, DiagnosticSeverity.WARNING)]


@rule("explodes", "Explodes")
def _explodes(context: LintContext) -> list[Diagnostic]:
    raise RuntimeError("boom")


def test_default_registry_preserves_order() -> None:
    registry = RuleRegistry.default()

    assert [item.id for item in registry.rules()] == [item.id for item in DEFAULT_RULES]
    assert registry.get("no-multi-statement") is not None
    assert registry.get("missing") is None


def test_register_rejects_duplicates() -> None:
    registry = RuleRegistry([_always_warn])

    with pytest.raises(ValueError):
        registry.register(_always_warn)


def test_fast_only_excludes_background_rules() -> None:
    registry = RuleRegistry.default()

    fast = {item.id for item in registry.rules(fast_only=True)}

    assert "aggregate-grouping" not in fast
    assert "duplicate-column-alias" not in fast
    assert "prohibited-keywords" in fast


def test_disabled_rules_are_skipped() -> None:
    registry = RuleRegistry([_always_warn])

    diagnostics = registry.run(LintContext(sql="SELECT 1"), disabled={"always-warn"})

    assert diagnostics == []


def test_throwing_rule_does_not_suppress_others(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR)

    diagnostics = run_rules(LintContext(sql="SELECT 1"), [_explodes, _always_warn])

    assert [item.message for item in diagnostics] == ["Heads up."]
    assert "explodes" in caplog.text


def test_diagnostic_offsets_are_clamped() -> None:
    context = LintContext(sql="abc")

    diagnostic = context.diagnostic("x", -5, 99)

    assert (diagnostic.start, diagnostic.end) == (0, 3)


def test_rule_decorator_builds_lint_rule() -> None:
    assert isinstance(_always_warn, LintRule)
    assert _always_warn.fast is True
    assert _always_warn.name == "Always Warn"
