"""Rules about FROM/JOIN table sources and their aliases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..catalog import CLAUSE_BOUNDARIES, JOIN_KEYWORDS
from ..metadata import DataExtension, normalize_table_name
from ..models import Diagnostic, DiagnosticSeverity, TableReference, Token, TokenKind
from ..scanner import find_matching_paren
from .base import LintContext, rule
from .select import item_alias

_JOIN_STARTERS = frozenset({"join", "inner", "left", "right", "full", "cross"})


@dataclass(frozen=True, slots=True)
class JoinTarget:
    """Raw identifier run following FROM or JOIN, recovered even from invalid SQL."""

    keyword: str
    start: int
    end: int
    text: str
    word_count: int
    has_dot: bool
    has_ent_prefix: bool
    is_bracketed: bool


def extract_join_targets(sql: str, tokens: Sequence[Token]) -> list[JoinTarget]:
    """Collect the word runs naming each FROM/JOIN target.

    Unlike table-reference parsing this keeps going across spaces, so
    ``FROM My Data Extension`` yields a single three-word target.
    """

    targets: list[JoinTarget] = []
    for index, token in enumerate(tokens):
        if not token.matches("from", "join"):
            continue
        position = index + 1
        while position < len(tokens) and tokens[position].is_symbol(","):
            position += 1
        if position >= len(tokens) or tokens[position].is_symbol("("):
            continue

        run: list[Token] = []
        while position < len(tokens):
            current = tokens[position]
            if current.depth != token.depth:
                break
            if current.is_name:
                run.append(current)
                position += 1
                continue
            if (current.is_symbol(".") or current.is_symbol("-")) and run and run[-1].is_name:
                following = tokens[position + 1] if position + 1 < len(tokens) else None
                if following is not None and following.depth == token.depth and following.is_name:
                    run.append(current)
                    position += 1
                    continue
            break
        if not run:
            continue

        has_ent = (
            len(run) >= 2
            and run[0].kind is TokenKind.IDENTIFIER
            and run[0].lower == "ent"
            and run[1].is_symbol(".")
        )
        names = [part for part in run if part.is_name]
        if has_ent:
            names = names[1:]
        subject = run[2] if has_ent and len(run) > 2 else run[0]
        targets.append(
            JoinTarget(
                keyword=token.lower,
                start=run[0].start,
                end=run[-1].end,
                text=sql[run[0].start : run[-1].end],
                word_count=len(names),
                has_dot=any(part.is_symbol(".") for part in run),
                has_ent_prefix=has_ent,
                is_bracketed=subject.kind is TokenKind.BRACKETED_IDENTIFIER,
            )
        )
    return targets


def _normalize_words(value: str) -> str:
    return " ".join(value.lower().split())


def _known_names(data_extensions: Sequence[DataExtension]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for entry in data_extensions:
        lookup.setdefault(_normalize_words(entry.name), entry.name)
        if entry.customer_key:
            lookup.setdefault(_normalize_words(entry.customer_key), entry.name)
    return lookup


@rule("unbracketed-names", "Unbracketed Data Extension Names")
def unbracketed_names(context: LintContext) -> list[Diagnostic]:
    known = _known_names(context.data_extensions)
    diagnostics: list[Diagnostic] = []
    for target in extract_join_targets(context.sql, context.significant):
        if target.is_bracketed or (target.has_dot and not target.has_ent_prefix):
            continue
        bare = " ".join(target.text.split())
        if target.has_ent_prefix:
            bare = bare.split(".", 1)[1].strip()
        words = bare.split()
        # A trailing implicit alias shortens the run that matches metadata.
        exact = next(
            (
                known[key]
                for key in (_normalize_words(" ".join(words[:size])) for size in range(len(words), 1, -1))
                if key in known
            ),
            None,
        )
        if target.word_count >= 3 and " " in target.text:
            name = exact or bare
        elif target.word_count == 2 and exact:
            name = exact
        else:
            continue
        prefix = "ENT." if target.has_ent_prefix else ""
        diagnostics.append(
            context.diagnostic(
                "Data Extension names with spaces must be wrapped in brackets. "
                f"Use: FROM {prefix}[{name}]",
                target.start,
                target.end,
            )
        )
    return diagnostics


def _fields_by_reference(
    references: Sequence[TableReference],
    data_extensions: Sequence[DataExtension],
) -> list[frozenset[str]]:
    by_name: dict[str, DataExtension] = {}
    for entry in data_extensions:
        by_name.setdefault(normalize_table_name(entry.name), entry)
        if entry.customer_key:
            by_name.setdefault(normalize_table_name(entry.customer_key), entry)
    field_sets = []
    for reference in references:
        entry = by_name.get(normalize_table_name(reference.name))
        if entry is not None and entry.fields:
            field_sets.append(frozenset(field.name.lower() for field in entry.fields))
    return field_sets


@rule("ambiguous-fields", "Ambiguous Fields")
def ambiguous_fields(context: LintContext) -> list[Diagnostic]:
    if not context.data_extensions:
        return []
    diagnostics: list[Diagnostic] = []
    for block in context.blocks:
        tables = [ref for ref in context.block_references(block) if not ref.is_subquery]
        if len(tables) < 2:
            continue
        field_sets = _fields_by_reference(tables, context.data_extensions)
        if len(field_sets) < 2:
            continue
        for item in block.items:
            alias = item_alias(item)
            for position, token in enumerate(item):
                if not token.is_name or token.is_call or token is alias:
                    continue
                previous = item[position - 1] if position else None
                following = item[position + 1] if position + 1 < len(item) else None
                if (previous is not None and previous.is_symbol(".")) or (
                    following is not None and following.is_symbol(".")
                ):
                    continue
                name = token.unquoted
                if sum(name.lower() in fields for fields in field_sets) < 2:
                    continue
                diagnostics.append(
                    context.diagnostic(
                        f'Field "{name}" exists in multiple tables, so MCE requires '
                        "disambiguation. Add table aliases and prefix the field. Example: "
                        f"`SELECT a.{name} FROM [Table1] a JOIN [Table2] b ON ...`.",
                        token.start,
                        token.end,
                    )
                )
    return diagnostics


@rule("duplicate-table-alias", "Duplicate Table Alias")
def duplicate_table_alias(context: LintContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for group in context.reference_groups:
        seen: dict[str, TableReference] = {}
        for reference in group:
            if not reference.alias:
                continue
            key = reference.alias.lower()
            first = seen.get(key)
            if first is None:
                seen[key] = reference
                continue
            if normalize_table_name(first.name) == normalize_table_name(reference.name):
                # Reported as a self-join.
                continue
            diagnostics.append(
                context.diagnostic(
                    f'Duplicate table alias "{reference.alias}". '
                    "Each table in a FROM or JOIN clause needs its own alias.",
                    reference.start,
                    reference.end,
                )
            )
    return diagnostics


@rule("self-join-same-alias", "Self-Join Same Alias")
def self_join_same_alias(context: LintContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for group in context.reference_groups:
        occurrences: dict[str, list[TableReference]] = {}
        for reference in group:
            if not reference.is_subquery:
                occurrences.setdefault(normalize_table_name(reference.name), []).append(reference)
        for references in occurrences.values():
            for offset, first in enumerate(references):
                for second in references[offset + 1 :]:
                    same_alias = bool(first.alias) and (
                        first.alias.lower() == (second.alias or "").lower()
                    )
                    if not same_alias and (first.alias or second.alias):
                        continue
                    detail = (
                        f'with same alias "{second.alias}"' if same_alias else "without distinct aliases"
                    )
                    diagnostics.append(
                        context.diagnostic(
                            f'Self-join detected: table "{second.name}" appears multiple times '
                            f"{detail}. MCE requires different aliases for self-joins. Example: "
                            f"`FROM [{second.name}] a JOIN [{second.name}] b ON ...`.",
                            second.start,
                            second.end,
                        )
                    )
    return diagnostics


@rule("subquery-without-alias", "Subquery Without Alias")
def subquery_without_alias(context: LintContext) -> list[Diagnostic]:
    sql = context.sql
    return [
        context.diagnostic(
            "Derived table (subquery in FROM) requires an alias. MCE follows SQL Server rules: "
            "`SELECT * FROM (SELECT ...) AS alias`.",
            reference.end - 1,
            reference.end,
        )
        for reference in context.references
        if reference.is_subquery and not reference.alias and sql[reference.end - 1 : reference.end] == ")"
    ]


@rule("missing-join-on", "Missing JOIN ON Clause")
def missing_join_on(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    cursor = context.cursor_position
    diagnostics: list[Diagnostic] = []
    for index, token in enumerate(tokens):
        if not token.matches("join"):
            continue
        first = index
        while first > 0 and tokens[first - 1].depth == token.depth and tokens[first - 1].lower in JOIN_KEYWORDS:
            first -= 1
        words = [part.text.upper() for part in tokens[first : index + 1]]
        if "CROSS" in words:
            continue

        found_on = False
        reached_end = True
        for current in tokens[index + 1 :]:
            if current.depth < token.depth or current.is_symbol(";"):
                reached_end = False
                break
            if current.depth > token.depth:
                continue
            if current.matches("on"):
                found_on = True
                break
            if current.lower in _JOIN_STARTERS or (
                current.is_word and current.lower in CLAUSE_BOUNDARIES
            ):
                reached_end = False
                break
        if found_on:
            continue
        if reached_end and cursor is not None and cursor >= tokens[-1].start:
            # Still typing the joined table.
            continue
        join_type = " ".join(words)
        diagnostics.append(
            context.diagnostic(
                f"{join_type} requires an ON clause. Example: "
                f"`{join_type} [Table] t ON t.ID = base.ID`. Only CROSS JOIN can omit ON.",
                tokens[first].start,
                token.end,
            )
        )
    return diagnostics


@rule("with-nolock", "WITH (NOLOCK) Hint")
def with_nolock(context: LintContext) -> list[Diagnostic]:
    tokens = context.significant
    diagnostics: list[Diagnostic] = []
    for index, token in enumerate(tokens[:-1]):
        if not token.matches("with") or not tokens[index + 1].is_symbol("("):
            continue
        close = find_matching_paren(tokens, index + 1)
        hints = tokens[index + 2 : close if close is not None else len(tokens)]
        if not any(hint.matches("nolock") for hint in hints):
            continue
        end = tokens[close].end if close is not None else tokens[-1].end
        diagnostics.append(
            context.diagnostic(
                "WITH (NOLOCK) is redundant in MCE. All queries already run in "
                "read-uncommitted isolation, so this hint has no effect. Consider removing it.",
                token.start,
                end,
                DiagnosticSeverity.WARNING,
            )
        )
    return diagnostics


__all__ = [
    "JoinTarget",
    "ambiguous_fields",
    "duplicate_table_alias",
    "extract_join_targets",
    "missing_join_on",
    "self_join_same_alias",
    "subquery_without_alias",
    "unbracketed_names",
    "with_nolock",
]
