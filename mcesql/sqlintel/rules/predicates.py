"""Rules over expressions, pagination, and delimiter balance."""

from __future__ import annotations

from ..models import Diagnostic, DiagnosticSeverity, TokenKind
from ..scanner import is_terminated
from .base import LintContext, rule

_WARNING = DiagnosticSeverity.WARNING


@rule("offset-without-order-by", "OFFSET without ORDER BY")
def offset_without_order_by(context: LintContext) -> list[Diagnostic]:
    sig = context.significant
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        if not block.has("offset") or block.has("order by"):
            continue
        offset = sig[block.keywords["offset"]]
        diagnostics.append(
            context.diagnostic(
                "OFFSET requires an ORDER BY clause in MCE. Add ORDER BY before using OFFSET.",
                offset.start,
                offset.end,
            )
        )
    return diagnostics


@rule("order-by-in-subquery", "ORDER BY in Subquery", fast=False)
def order_by_in_subquery(context: LintContext) -> list[Diagnostic]:
    sig = context.significant
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        if block.scope == 0 or not block.has("order by"):
            continue
        if block.top is not None or block.has("offset"):
            continue
        order = block.keywords["order by"]
        diagnostics.append(
            context.diagnostic(
                "ORDER BY in subquery requires TOP or OFFSET. MCE follows SQL Server rules: "
                "`SELECT TOP 100 ... ORDER BY` or `SELECT ... ORDER BY ... OFFSET 0 ROWS`.",
                sig[order].start,
                sig[order + 1].end,
            )
        )
    return diagnostics


@rule("unsupported-functions", "Unsupported Functions")
def unsupported_functions(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    diagnostics: list[Diagnostic] = []
    for index, token in enumerate(tokens):
        if not token.is_call or token.kind is not TokenKind.IDENTIFIER:
            continue
        if index and tokens[index - 1].is_symbol("."):
            continue
        entry = context.functions.unsupported(token.text)
        if entry is not None:
            diagnostics.append(context.diagnostic(entry.message(), token.start, token.end))
    return diagnostics


@rule("unmatched-delimiters", "Unmatched Delimiters")
def unmatched_delimiters(context: LintContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    open_parens: list[int] = []
    for token in context.tokens:
        if token.is_symbol("("):
            open_parens.append(token.start)
        elif token.is_symbol(")"):
            if open_parens:
                open_parens.pop()
            else:
                diagnostics.append(
                    context.diagnostic(
                        "Unmatched closing parenthesis. Remove the extra ')' or add a matching '('.",
                        token.start,
                        token.end,
                    )
                )
        elif token.is_symbol("]"):
            diagnostics.append(
                context.diagnostic(
                    "Unmatched closing bracket. Remove the extra ']' or add a matching '['.",
                    token.start,
                    token.end,
                )
            )
        elif not is_terminated(token):
            diagnostics.append(_unclosed(context, token.kind, token.text, token.start))

    if open_parens:
        start = open_parens[-1]
        diagnostics.append(
            context.diagnostic(
                "Unclosed parenthesis. Add a matching ')' or remove the extra '('.",
                start,
                start + 1,
            )
        )
    return diagnostics


def _unclosed(context: LintContext, kind: TokenKind, text: str, start: int) -> Diagnostic:
    if kind is TokenKind.BRACKETED_IDENTIFIER:
        message = "Unclosed bracket. Add a matching ']' or remove the extra '['."
    elif kind is TokenKind.BLOCK_COMMENT:
        message = "Unclosed block comment. Add '*/' to close the comment."
    elif text.lstrip("Nn").startswith('"'):
        message = 'Unclosed double quote. Add a closing " or remove the opening quote.'
    else:
        message = "Unclosed single quote. Add a closing ' or remove the opening quote."
    return context.diagnostic(message, start, start + 1)


@rule("empty-in-clause", "Empty IN Clause")
def empty_in_clause(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    return [
        context.diagnostic(
            "Empty IN clause detected. Add values inside the parentheses or remove the IN clause.",
            token.start,
            tokens[index + 2].end,
        )
        for index, token in enumerate(tokens[:-2])
        if token.matches("in") and tokens[index + 1].is_symbol("(") and tokens[index + 2].is_symbol(")")
    ]


@rule("aggregate-in-where", "Aggregate in WHERE")
def aggregate_in_where(context: LintContext) -> list[Diagnostic]:
    sig = context.significant
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        for index in block.clauses.get("where", ()):
            token = sig[index]
            if not token.is_call or not context.functions.is_aggregate(token.lower):
                continue
            name = token.text.upper()
            diagnostics.append(
                context.diagnostic(
                    f"Aggregate function {name}() cannot be used in WHERE clause. Use HAVING "
                    f"instead. Example: `SELECT ... GROUP BY ... HAVING {name}(...) > 0`.",
                    token.start,
                    token.end,
                )
            )
    return diagnostics


@rule("not-in-subquery", "NOT IN with Subquery")
def not_in_subquery(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    return [
        context.diagnostic(
            "NOT IN with subquery may return no results if subquery contains NULL values. "
            "Consider using NOT EXISTS instead.",
            token.start,
            tokens[index + 3].end,
            _WARNING,
        )
        for index, token in enumerate(tokens[:-3])
        if token.matches("not")
        and tokens[index + 1].matches("in")
        and tokens[index + 2].is_symbol("(")
        and tokens[index + 3].matches("select")
    ]


@rule("not-equal-style", "Not-Equal Style")
def not_equal_style(context: LintContext) -> list[Diagnostic]:
    return [
        context.diagnostic(
            "Use <> instead of != for not-equal comparisons. Both work in MCE, but <> is the "
            "standard SQL operator.",
            token.start,
            token.end,
            _WARNING,
        )
        for token in context.significant
        if token.is_symbol("!=")
    ]


__all__ = [
    "aggregate_in_where",
    "empty_in_clause",
    "not_equal_style",
    "not_in_subquery",
    "offset_without_order_by",
    "order_by_in_subquery",
    "unmatched_delimiters",
    "unsupported_functions",
]
