"""Lint rules for the MCE SQL dialect."""

from .base import LintContext, LintRule, rule
from .registry import DEFAULT_RULES, RuleRegistry, run_rules

__all__ = ["DEFAULT_RULES", "LintContext", "LintRule", "RuleRegistry", "rule", "run_rules"]
