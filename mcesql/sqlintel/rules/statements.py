"""Statement-level rules: read-only enforcement and single-statement checks."""

from __future__ import annotations

from ..catalog import DDL_KEYWORDS, DML_KEYWORDS, PROCEDURAL_KEYWORDS
from ..models import Diagnostic, TokenKind
from ..scanner import find_matching_paren
from .base import LintContext, rule

_PROCEDURAL_MESSAGE = (
    "Variables and procedural logic (DECLARE, SET, WHILE, IF) are not supported in MCE. "
    "Write pure SELECT queries only."
)

CTE_MESSAGE = (
    "Common Table Expressions (WITH clause) are not supported in MCE. Use subqueries instead."
)


def prohibited_statement_message(keyword: str) -> str | None:
    """Message for a statement keyword MCE rejects, or None when it is allowed."""

    word = keyword.lower()
    if word in DML_KEYWORDS:
        return (
            f"MCE SQL is read-only. {word.upper()} statements are not supported; "
            "write a SELECT query instead."
        )
    if word in DDL_KEYWORDS:
        return (
            "MCE SQL is read-only. DDL and transaction statements such as "
            f"{word.upper()} are not supported."
        )
    if word in PROCEDURAL_KEYWORDS:
        return _PROCEDURAL_MESSAGE
    return None


@rule("prohibited-keywords", "Prohibited Keywords")
def prohibited_keywords(context: LintContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    tokens = context.significant
    seen_dml = False
    for index, token in enumerate(tokens):
        if token.is_symbol("#"):
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if following is not None and following.is_word and following.start == token.end:
                name = context.sql[token.start : following.end]
                diagnostics.append(
                    context.diagnostic(
                        f"Temporary tables ({name}) are not supported in MCE. "
                        "Write results to a Data Extension instead.",
                        token.start,
                        following.end,
                    )
                )
            continue
        if token.kind is not TokenKind.KEYWORD:
            continue
        message = prohibited_statement_message(token.lower)
        if message is None or (token.lower == "set" and seen_dml):
            continue
        seen_dml = seen_dml or token.lower in DML_KEYWORDS
        diagnostics.append(context.diagnostic(message, token.start, token.end))
    return diagnostics


@rule("cte-detection", "Common Table Expressions")
def cte_detection(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    diagnostics: list[Diagnostic] = []
    for index, token in enumerate(tokens):
        if not token.matches("with"):
            continue
        position = index + 1
        if position >= len(tokens) or not (tokens[position].is_name or tokens[position].is_word):
            continue
        position += 1
        if position < len(tokens) and tokens[position].is_symbol("("):
            close = find_matching_paren(tokens, position)
            if close is None:
                continue
            position = close + 1
        if (
            position + 1 < len(tokens)
            and tokens[position].matches("as")
            and tokens[position + 1].is_symbol("(")
        ):
            diagnostics.append(
                context.diagnostic(
                    CTE_MESSAGE,
                    token.start,
                    tokens[position].end,
                )
            )
    return diagnostics


@rule("limit-prohibition", "LIMIT Prohibition")
def limit_prohibition(context: LintContext) -> list[Diagnostic]:
    return [
        context.diagnostic(
            "LIMIT clause is not supported in MCE. Use TOP or OFFSET/FETCH instead.",
            token.start,
            token.end,
        )
        for token in context.significant
        if token.kind is TokenKind.KEYWORD and token.lower == "limit"
    ]


@rule("trailing-semicolon", "Trailing Semicolon")
def trailing_semicolon(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    if not tokens or not tokens[-1].is_symbol(";"):
        return []
    last = tokens[-1]
    return [
        context.diagnostic(
            "Trailing semicolons are not supported in MCE. "
            "Remove the semicolon at the end of the query.",
            last.start,
            last.end,
        )
    ]


@rule("no-multi-statement", "Single Statement")
def no_multi_statement(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    diagnostics: list[Diagnostic] = []
    for index, token in enumerate(tokens[:-1]):
        if not token.is_symbol(";"):
            continue
        following = tokens[index + 1]
        if following.matches("select", "with"):
            diagnostics.append(
                context.diagnostic(
                    "MCE queries must be a single SQL statement. "
                    "Remove the semicolon and the statement that follows it.",
                    token.start,
                    following.end,
                )
            )
    return diagnostics


@rule("variable-usage", "Variable Usage")
def variable_usage(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    diagnostics: list[Diagnostic] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if not token.is_symbol("@"):
            index += 1
            continue
        last = index
        while (
            last + 1 < len(tokens)
            and tokens[last + 1].is_symbol("@")
            and tokens[last + 1].start == tokens[last].end
        ):
            last += 1
        following = tokens[last + 1] if last + 1 < len(tokens) else None
        if following is not None and following.is_word and following.start == tokens[last].end:
            name = context.sql[token.start : following.end]
            diagnostics.append(
                context.diagnostic(
                    f"SQL variables are not supported in MCE. Remove the variable '{name}' "
                    "and use a literal value instead.",
                    token.start,
                    following.end,
                )
            )
            last += 1
        index = last + 1
    return diagnostics


__all__ = [
    "CTE_MESSAGE",
    "cte_detection",
    "limit_prohibition",
    "no_multi_statement",
    "prohibited_statement_message",
    "prohibited_keywords",
    "trailing_semicolon",
    "variable_usage",
]
