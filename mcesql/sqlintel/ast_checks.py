"""Heavier analysis pass that parses the statement with sqlglot."""

from __future__ import annotations

import logging
from typing import Any, Collection, Mapping, Sequence

from sqlglot import exp, parse
from sqlglot.errors import ParseError, SqlglotError

from .linter import lint_sql
from .metadata import DataExtension
from .models import Diagnostic, DiagnosticSeverity, Token
from .rules import RuleRegistry
from .rules.statements import CTE_MESSAGE, prohibited_statement_message
from .scanner import scan, significant

LOG = logging.getLogger(__name__)

DIALECT = "tsql"
_MAX_PARSER_MESSAGE = 150

# sqlglot expression class name -> statement keyword.
_PROHIBITED_EXPRESSIONS: Mapping[str, str] = {
    "Insert": "insert",
    "Update": "update",
    "Delete": "delete",
    "Merge": "merge",
    "TruncateTable": "truncate",
    "Create": "create",
    "Alter": "alter",
    "AlterTable": "alter",
    "Drop": "drop",
}


def parse_diagnostics(sql: str) -> list[Diagnostic]:
    """Parse ``sql`` and report syntax errors and disallowed statement types."""

    if not sql.strip():
        return []
    try:
        statements = parse(sql, read=DIALECT)
    except ParseError as exc:
        return [_parse_error_diagnostic(sql, exc)]
    except SqlglotError:
        # Tokenizer failures (unterminated literals) are reported by the delimiter rule.
        LOG.debug("sqlglot could not tokenize the statement", exc_info=True)
        return []

    tokens = significant(scan(sql))
    diagnostics: list[Diagnostic] = []
    for statement in statements:
        if statement is None:
            continue
        diagnostics.extend(_statement_policy(sql, tokens, statement))
    return diagnostics


def full_analysis(
    sql: str,
    data_extensions: Sequence[DataExtension] = (),
    disabled: Collection[str] = frozenset(),
    registry: RuleRegistry | None = None,
) -> list[Diagnostic]:
    """Parser diagnostics followed by every registered lint rule."""

    if not sql.strip():
        return []
    return [
        *parse_diagnostics(sql),
        *lint_sql(sql, data_extensions, disabled=disabled, registry=registry),
    ]


def simplify_parse_message(description: str, highlight: str) -> str:
    """Turn a verbose parser complaint into something a query author can act on."""

    found = highlight.strip()
    if not found:
        return "Unexpected end of query. Check for missing clauses or incomplete syntax."
    if found == ",":
        return "Unexpected comma. Check for missing column name or expression."
    if found == ")":
        return "Unexpected closing parenthesis. Check for unmatched parentheses."
    if found == "(":
        return "Unexpected opening parenthesis. Check for missing keyword or expression."
    if len(description) > _MAX_PARSER_MESSAGE or len(found) > 40:
        return "Syntax error in query. Check for missing or misplaced keywords."
    return f'Unexpected "{found}". Check the syntax near this position.'


def _parse_error_diagnostic(sql: str, exc: ParseError) -> Diagnostic:
    detail: dict[str, Any] = exc.errors[0] if exc.errors else {}
    highlight = str(detail.get("highlight") or "")
    description = str(detail.get("description") or exc)
    start, end = _error_span(sql, detail.get("line"), detail.get("col"), highlight)
    message = simplify_parse_message(description, highlight)
    if not highlight.strip():
        start, end = max(0, len(sql.rstrip()) - 1), len(sql.rstrip())
    return Diagnostic(message=message, severity=DiagnosticSeverity.ERROR, start=start, end=end)


def _error_span(sql: str, line: Any, col: Any, highlight: str) -> tuple[int, int]:
    if not isinstance(line, int) or not isinstance(col, int):
        return 0, min(len(sql), 1)
    lines = sql.split("\n")
    line_index = max(0, min(line - 1, len(lines) - 1))
    line_start = sum(len(text) + 1 for text in lines[:line_index])
    # ``col`` points at the last character of the offending token.
    end = line_start + col
    start = end - len(highlight) if highlight else end - 1
    start = max(0, min(start, len(sql)))
    end = max(start, min(end, len(sql)))
    if start == end and end < len(sql):
        end += 1
    return start, end


def _statement_policy(sql: str, tokens: Sequence[Token], statement: exp.Expression) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    keyword = _PROHIBITED_EXPRESSIONS.get(type(statement).__name__)
    if keyword is not None:
        message = prohibited_statement_message(keyword)
        if message is not None:
            start, end = _keyword_span(tokens, keyword, sql)
            diagnostics.append(Diagnostic(message, DiagnosticSeverity.ERROR, start, end))
    elif not isinstance(statement, exp.Query):
        head = next((token for token in tokens if token.is_word), None)
        word = head.text.upper() if head is not None else type(statement).__name__.upper()
        if prohibited_statement_message(word) is None:
            start, end = (head.start, head.end) if head is not None else (0, min(len(sql), 1))
            diagnostics.append(
                Diagnostic(
                    f"{word} statements are not supported in MCE. Write a SELECT query instead.",
                    DiagnosticSeverity.ERROR,
                    start,
                    end,
                )
            )

    if statement.find(exp.With) is not None:
        start, end = _keyword_span(tokens, "with", sql)
        diagnostics.append(Diagnostic(CTE_MESSAGE, DiagnosticSeverity.ERROR, start, end))
    return diagnostics


def _keyword_span(tokens: Sequence[Token], keyword: str, sql: str) -> tuple[int, int]:
    for token in tokens:
        if token.matches(keyword):
            return token.start, token.end
    return 0, min(len(sql), len(keyword))


__all__ = ["DIALECT", "full_analysis", "parse_diagnostics", "simplify_parse_message"]
