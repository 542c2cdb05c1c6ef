"""SQL intelligence services and helpers for the MCE dialect."""

from __future__ import annotations

from .ast_checks import full_analysis, parse_diagnostics
from .context import extract_table_references, resolve_cursor_context
from .formatter import format_sql
from .functions import FunctionCatalog
from .linter import has_blocking_diagnostics, lint_sql, lint_sync
from .merge import merge_diagnostics
from .metadata import (
    DataExtension,
    DataExtensionField,
    Folder,
    MetadataProvider,
    StaticMetadataProvider,
)
from .models import (
    CursorContext,
    Diagnostic,
    DiagnosticSeverity,
    Suggestion,
    SuggestionType,
    TableReference,
    Token,
    TokenKind,
)
from .rules import LintRule, RuleRegistry
from .scanner import scan
from .service import SqlIntelService
from .suggestions import build_table_suggestions, fuzzy_match

__all__ = [
    "CursorContext",
    "DataExtension",
    "DataExtensionField",
    "Diagnostic",
    "DiagnosticSeverity",
    "Folder",
    "FunctionCatalog",
    "LintRule",
    "MetadataProvider",
    "RuleRegistry",
    "SqlIntelService",
    "StaticMetadataProvider",
    "Suggestion",
    "SuggestionType",
    "TableReference",
    "Token",
    "TokenKind",
    "build_table_suggestions",
    "extract_table_references",
    "format_sql",
    "full_analysis",
    "fuzzy_match",
    "has_blocking_diagnostics",
    "lint_sql",
    "lint_sync",
    "merge_diagnostics",
    "parse_diagnostics",
    "resolve_cursor_context",
    "scan",
]
