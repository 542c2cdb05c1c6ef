"""Rules over the projection list and the clauses that consume it."""

from __future__ import annotations

from typing import Sequence

from ..context import QueryBlock
from ..models import Diagnostic, DiagnosticSeverity, Token, TokenKind
from .base import LintContext, rule

_PREREQ = DiagnosticSeverity.PREREQ

# Keywords that may follow a column list; a comma right before one is dangling.
_COMMA_CLAUSE_KEYWORDS = frozenset(
    {
        "from", "where", "group", "order", "having", "join", "inner", "left", "right",
        "full", "cross", "outer", "on", "union", "intersect", "except",
    }
)

_ALIAS_CLAUSES: tuple[tuple[str, str], ...] = (
    ("where", "WHERE"),
    ("group by", "GROUP BY"),
    ("having", "HAVING"),
    ("order by", "ORDER BY"),
)


def item_alias(item: Sequence[Token]) -> Token | None:
    """Return the token naming a projection item's alias, if it has one."""

    if len(item) >= 3 and item[-2].matches("as"):
        last = item[-1]
        if last.is_name or last.kind is TokenKind.STRING:
            return last
        return None
    if len(item) >= 3 and item[0].is_name and item[1].is_symbol("="):
        return item[0]
    if len(item) >= 2 and item[-1].is_name:
        before = item[-2]
        if before.is_symbol(".") or before.kind is TokenKind.OPERATOR:
            return None
        return item[-1]
    return None


def _alias_text(token: Token) -> str:
    if token.kind is TokenKind.STRING:
        return token.text.strip("'\"")
    return token.unquoted


def _is_literal(item: Sequence[Token]) -> bool:
    first = item[0]
    if first.kind not in (TokenKind.STRING, TokenKind.NUMBER) and not first.matches("null"):
        return False
    rest = item[1:]
    if not rest:
        return True
    if len(rest) == 1:
        return rest[0].is_name
    return len(rest) == 2 and rest[0].matches("as") and (
        rest[1].is_name or rest[1].kind is TokenKind.STRING
    )


def _is_bare_star(item: Sequence[Token]) -> bool:
    return len(item) == 1 and item[0].is_symbol("*")


def _has_join(context: LintContext, block: QueryBlock) -> bool:
    sig = context.significant
    return any(
        sig[index].matches("join") and sig[index].depth == block.depth
        for index in block.clauses.get("from", ())
    )


def _source_column(item: Sequence[Token]) -> Token | None:
    """First column reference in an item, resolving ``alias.column`` to the column."""

    for position, token in enumerate(item):
        if not token.is_name or token.is_call:
            continue
        following = item[position + 1] if position + 1 < len(item) else None
        if (
            following is not None
            and following.is_symbol(".")
            and position + 2 < len(item)
            and item[position + 2].is_name
        ):
            continue
        return token
    return None


@rule("select-clause", "SELECT Clause Validation")
def select_clause(context: LintContext) -> list[Diagnostic]:
    sql = context.sql
    if not context.blocks:
        return [context.diagnostic("Query must include a SELECT statement.", 0, min(6, len(sql)), _PREREQ)]

    block = context.blocks[0]
    sig = context.significant
    select = sig[block.select]
    if not block.items:
        return [
            context.diagnostic(
                "SELECT must include at least one field or expression.",
                select.start,
                select.end,
                _PREREQ,
            )
        ]

    diagnostics: list[Diagnostic] = []
    clause_start = select.end
    if block.has("from"):
        clause_end = sig[block.keywords["from"]].start
    else:
        clause_end = max(token.end for item in block.items for token in item)
    literals = [item for item in block.items if _is_literal(item)]
    has_fields = len(literals) < len(block.items)

    if any(len(item) == 1 for item in literals):
        diagnostics.append(
            context.diagnostic(
                "Literal SELECT expressions must include an alias.", clause_start, clause_end
            )
        )
    if not block.has("from"):
        if has_fields:
            diagnostics.append(
                context.diagnostic(
                    "SELECT fields require a FROM clause.", clause_start, clause_end, _PREREQ
                )
            )
        return diagnostics

    tables = [reference for reference in context.references if not reference.is_subquery]
    if not tables and has_fields:
        from_token = sig[block.keywords["from"]]
        diagnostics.append(
            context.diagnostic(
                "FROM clause must include a Data Extension.",
                from_token.start,
                from_token.end,
                _PREREQ,
            )
        )
    return diagnostics


@rule("select-star-with-join", "SELECT * with JOIN")
def select_star_with_join(context: LintContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        if not _has_join(context, block):
            continue
        for item in block.items:
            if _is_bare_star(item):
                diagnostics.append(
                    context.diagnostic(
                        "SELECT * with JOINs causes ambiguous column errors in MCE. "
                        "Specify columns explicitly or use table aliases: "
                        "`SELECT a.*, b.SpecificColumn FROM ...`.",
                        item[0].start,
                        item[0].end,
                    )
                )
    return diagnostics


@rule("select-star-single", "SELECT * on a single table")
def select_star_single(context: LintContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        if _has_join(context, block):
            continue
        tables = context.block_references(block)
        if len(tables) != 1 or tables[0].is_subquery:
            continue
        for item in block.items:
            if _is_bare_star(item):
                diagnostics.append(
                    context.diagnostic(
                        "Consider listing columns explicitly instead of using SELECT *. "
                        "This improves query performance and prevents issues if the table "
                        "structure changes.",
                        item[0].start,
                        item[0].end,
                        DiagnosticSeverity.WARNING,
                    )
                )
    return diagnostics


@rule("duplicate-column-alias", "Duplicate Column Alias", fast=False)
def duplicate_column_alias(context: LintContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        seen: set[str] = set()
        for item in block.items:
            alias = item_alias(item)
            if alias is None:
                continue
            name = _alias_text(alias)
            key = name.lower()
            if key in seen:
                diagnostics.append(
                    context.diagnostic(
                        f'Duplicate column alias "{name}". Each column must have a unique alias '
                        "because MCE requires distinct column names in SELECT.",
                        alias.start,
                        alias.end,
                    )
                )
            seen.add(key)
    return diagnostics


@rule("comma-validation", "Comma Validation")
def comma_validation(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    diagnostics: list[Diagnostic] = []
    for index, token in enumerate(tokens):
        previous = tokens[index - 1] if index else None
        if previous is None:
            continue
        if token.is_symbol(","):
            if previous.is_symbol(",") and previous.depth == token.depth:
                diagnostics.append(
                    context.diagnostic(
                        "Double comma detected. Remove the extra comma.", previous.start, token.end
                    )
                )
            elif previous.matches("select", "distinct"):
                diagnostics.append(
                    context.diagnostic(
                        "Missing column before comma. Add a column or remove the comma.",
                        token.start,
                        token.end,
                    )
                )
        elif (
            token.is_word
            and token.lower in _COMMA_CLAUSE_KEYWORDS
            and previous.is_symbol(",")
            and previous.depth == token.depth
        ):
            diagnostics.append(
                context.diagnostic(
                    f"Trailing comma before {token.text.upper()}. "
                    "Remove the comma after the last column.",
                    previous.start,
                    previous.end,
                )
            )

    if tokens and tokens[-1].is_symbol(","):
        last = tokens[-1]
        clause = _enclosing_list_clause(tokens, len(tokens) - 1)
        if clause is not None:
            diagnostics.append(
                context.diagnostic(
                    f"Trailing comma at the end of {clause}. Remove the comma after the last column.",
                    last.start,
                    last.end,
                )
            )
    return diagnostics


def _enclosing_list_clause(tokens: Sequence[Token], index: int) -> str | None:
    depth = tokens[index].depth
    for position in range(index - 1, -1, -1):
        token = tokens[position]
        if token.depth != depth or not token.is_word:
            continue
        if token.matches("by") and position > 0 and tokens[position - 1].matches("group", "order"):
            return f"{tokens[position - 1].text.upper()} BY"
        if token.matches("select"):
            return "SELECT"
        if token.matches("from", "where", "having", "on"):
            return None
    return None


@rule("aggregate-grouping", "Aggregate Grouping", fast=False)
def aggregate_grouping(context: LintContext) -> list[Diagnostic]:
    functions = context.functions
    sig = context.significant
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        aggregated = False
        loose: list[Token] = []
        for item in block.items:
            own = context.owned_tokens(block, item)
            if not own or any(token.matches("over") for token in own):
                continue
            if any(token.is_call and functions.is_aggregate(token.lower) for token in own):
                aggregated = True
                continue
            if _is_literal(own):
                continue
            if _is_bare_star(own):
                loose.append(own[0])
                continue
            column = _source_column(own)
            if column is not None:
                loose.append(column)
        if not aggregated or not loose:
            continue

        grouped = {
            sig[index].unquoted.lower()
            for index in block.clauses.get("group by", ())
            if sig[index].is_name
        }
        for column in loose:
            name = column.text if column.is_symbol("*") else column.unquoted
            if name != "*" and name.lower() in grouped:
                continue
            diagnostics.append(
                context.diagnostic(
                    f'Non-aggregated field "{name}" must appear in GROUP BY or be wrapped in an '
                    f"aggregate function. Example: `GROUP BY {name}` or `MAX({name})`.",
                    column.start,
                    column.end,
                )
            )
    return diagnostics


@rule("alias-in-clause", "Alias in Clause", fast=False)
def alias_in_clause(context: LintContext) -> list[Diagnostic]:
    sig = context.significant
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        aliases: dict[str, str] = {}
        for item in block.items:
            alias = item_alias(item)
            if alias is None:
                continue
            name = _alias_text(alias)
            if alias is item[-1] and len(item) <= 5:
                # ``col AS col`` renames nothing.
                source = _source_column(item[:-1])
                if source is not None and source.unquoted.lower() == name.lower():
                    continue
            aliases.setdefault(name.lower(), name)
        if not aliases:
            continue

        table_aliases = {
            reference.alias.lower()
            for reference in context.block_references(block)
            if reference.alias
        }
        for clause, label in _ALIAS_CLAUSES:
            indices = block.clauses.get(clause, ())
            for index in indices:
                token = sig[index]
                if not token.is_name or token.is_call:
                    continue
                previous = sig[index - 1] if index else None
                following = sig[index + 1] if index + 1 < len(sig) else None
                if (previous is not None and previous.is_symbol(".")) or (
                    following is not None and following.is_symbol(".")
                ):
                    continue
                key = token.unquoted.lower()
                if key in table_aliases or key not in aliases:
                    continue
                diagnostics.append(
                    context.diagnostic(
                        f'Column alias "{aliases[key]}" cannot be used in {label}. '
                        "MCE requires the original expression.",
                        token.start,
                        token.end,
                    )
                )
    return diagnostics


__all__ = [
    "aggregate_grouping",
    "alias_in_clause",
    "comma_validation",
    "duplicate_column_alias",
    "item_alias",
    "select_clause",
    "select_star_single",
    "select_star_with_join",
]
