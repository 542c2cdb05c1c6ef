"""Cursor-context resolver: what precedes the cursor and which tables it can see."""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Mapping, Sequence

from .catalog import CONTEXT_KEYWORDS, SET_OPERATORS, SHARED_PREFIX, word_start
from .models import CursorContext, TableReference, Token, TokenKind
from .scanner import find_matching_paren, is_terminated, scan, significant


@dataclass(slots=True)
class Scope:
    """A query level: the root statement or a parenthesised ``SELECT``."""

    id: int
    parent: int | None
    depth: int
    paren_depth: int
    open: int
    close: int

    def contains(self, offset: int) -> bool:
        return self.open < offset <= self.close


@dataclass(frozen=True, slots=True)
class ScopedReference:
    reference: TableReference
    scope: int
    keyword_index: int


@dataclass(frozen=True, slots=True)
class QueryStructure:
    """Scopes and table sources derived from one scan of the statement."""

    sql: str
    tokens: tuple[Token, ...]
    significant: tuple[Token, ...]
    scopes: tuple[Scope, ...]
    scope_of: tuple[int, ...]
    scoped_references: tuple[ScopedReference, ...]

    @property
    def references(self) -> tuple[TableReference, ...]:
        return tuple(entry.reference for entry in self.scoped_references)

    def scope_at(self, offset: int) -> Scope:
        best = self.scopes[0]
        for scope in self.scopes[1:]:
            if scope.contains(offset) and scope.depth > best.depth:
                best = scope
        return best

    def chain(self, scope: Scope) -> list[Scope]:
        """Return scopes from ``scope`` outward to the root."""

        chain = [scope]
        while chain[-1].parent is not None:
            chain.append(self.scopes[chain[-1].parent])
        return chain

    def references_in(self, scope_id: int) -> list[ScopedReference]:
        return [entry for entry in self.scoped_references if entry.scope == scope_id]


def analyze_structure(sql: str, tokens: Sequence[Token] | None = None) -> QueryStructure:
    """Scan ``sql`` once and derive its scope tree and table references."""

    all_tokens = tuple(tokens if tokens is not None else scan(sql))
    sig = significant(all_tokens)
    scopes, scope_of = _build_scopes(sig, len(sql))
    references = _collect_references(sig, scopes, scope_of, len(sql))
    return QueryStructure(
        sql=sql,
        tokens=all_tokens,
        significant=tuple(sig),
        scopes=tuple(scopes),
        scope_of=tuple(scope_of),
        scoped_references=tuple(references),
    )


def extract_table_references(sql: str) -> list[TableReference]:
    """Return every FROM/JOIN table source in source order."""

    return list(analyze_structure(sql).references)


def resolve_cursor_context(sql: str, cursor_index: int) -> CursorContext:
    """Derive a fresh :class:`CursorContext` for the cursor position."""

    cursor = max(0, min(cursor_index, len(sql)))
    structure = analyze_structure(sql)
    sig = structure.significant
    scope = structure.scope_at(cursor)
    before = sql[:cursor]

    paren_depth = scope.paren_depth
    previous: Token | None = None
    for token in sig:
        if token.end > cursor:
            break
        previous = token
        paren_depth = token.depth + 1 if token.is_symbol("(") else token.depth

    last_keyword: str | None = None
    last_from_join: int | None = None
    for index, token in enumerate(sig):
        if token.end > cursor:
            break
        if structure.scope_of[index] != scope.id or token.depth > paren_depth:
            continue
        if token.is_word and token.lower in CONTEXT_KEYWORDS:
            last_keyword = token.lower
        if token.matches("from", "join") and token.depth == scope.paren_depth:
            last_from_join = index

    in_scope = structure.references_in(scope.id)
    tables = tuple(entry.reference for entry in in_scope)

    pending = [entry.reference for entry in in_scope if entry.keyword_index == last_from_join]
    has_from_join_table = any(table.start < cursor for table in pending)
    cursor_in_from_join_table = any(table.start <= cursor <= table.end for table in pending)
    if previous is not None and previous.is_symbol(",") and last_keyword == "from":
        has_from_join_table = False

    alias_map: dict[str, TableReference] = {}
    for outer in reversed(structure.chain(scope)):
        for entry in structure.references_in(outer.id):
            if entry.reference.alias:
                alias_map[entry.reference.alias.lower()] = entry.reference

    return CursorContext(
        cursor_depth=scope.depth,
        current_word=_current_word(before),
        alias_before_dot=_alias_before_dot(before),
        is_after_from_join=last_keyword in ("from", "join"),
        is_after_select=last_keyword == "select",
        last_keyword=last_keyword,
        has_table_reference=any(table.start < cursor for table in tables),
        cursor_in_table_reference=any(table.start <= cursor <= table.end for table in tables),
        has_from_join_table=has_from_join_table,
        cursor_in_from_join_table=cursor_in_from_join_table,
        tables_in_scope=tables,
        alias_map=alias_map,
    )


def is_cursor_in_literal(tokens: Sequence[Token], cursor: int) -> bool:
    """True when the cursor sits inside a string or comment."""

    for token in tokens:
        if token.kind not in (TokenKind.STRING, TokenKind.LINE_COMMENT, TokenKind.BLOCK_COMMENT):
            continue
        closed = (
            token.kind is not TokenKind.LINE_COMMENT
            and token.end - token.start > 1
            and is_terminated(token)
        )
        if token.start < cursor < token.end or (cursor == token.end and not closed):
            return True
    return False


def select_items(tokens: Sequence[Token], select_index: int) -> list[list[Token]]:
    """Split the projection list of the SELECT at ``select_index`` into items."""

    select = tokens[select_index]
    base = select.depth
    position = select_index + 1
    if position < len(tokens) and tokens[position].matches("distinct", "all"):
        position += 1
    if position < len(tokens) and tokens[position].matches("top"):
        position += 1
        if position < len(tokens) and tokens[position].is_symbol("("):
            close = find_matching_paren(tokens, position)
            position = (close if close is not None else len(tokens) - 1) + 1
        elif position < len(tokens) and tokens[position].kind is TokenKind.NUMBER:
            position += 1
        if position < len(tokens) and tokens[position].matches("percent"):
            position += 1
        if position + 1 < len(tokens) and tokens[position].matches("with") and tokens[position + 1].matches("ties"):
            position += 2

    items: list[list[Token]] = [[]]
    open_parens = 0
    for token in tokens[position:]:
        if token.depth < base:
            break
        if token.depth == base:
            # Parentheses carry the depth of the text around them.
            if token.is_symbol("("):
                open_parens += 1
            elif token.is_symbol(")"):
                if not open_parens:
                    break
                open_parens -= 1
            elif (
                token.matches("from", "where", "group", "order", "having", "into")
                or token.lower in SET_OPERATORS
                or token.is_symbol(";")
            ):
                break
            elif token.is_symbol(","):
                items.append([])
                continue
        items[-1].append(token)
    if items == [[]]:
        return []
    return items


def output_name(item: Sequence[Token]) -> str | None:
    """Column name a projection item exposes to an outer query, if any."""

    if not item:
        return None
    last = item[-1]
    if len(item) >= 2 and item[-2].matches("as"):
        if last.is_name:
            return last.unquoted
        if last.kind is TokenKind.STRING:
            return last.text.strip("'\"")
        return None
    if len(item) >= 3 and item[1].is_symbol("=") and item[0].is_name:
        return item[0].unquoted
    if not last.is_name:
        return None
    if len(item) == 1:
        return last.unquoted
    before = item[-2]
    if before.is_symbol("."):
        return last.unquoted
    if before.kind is TokenKind.OPERATOR:
        return None
    return last.unquoted


@dataclass(frozen=True, slots=True)
class QueryBlock:
    """One ``SELECT`` and the clauses that belong to it within its scope.

    ``clauses`` maps a clause name (``from``, ``where``, ``group by``,
    ``having``, ``order by``, ``offset``) to indices into the significant
    token list. Tokens of nested subqueries are excluded.
    """

    select: int
    scope: int
    depth: int
    items: tuple[tuple[Token, ...], ...]
    top: Token | None
    clauses: Mapping[str, tuple[int, ...]]
    keywords: Mapping[str, int]

    def has(self, clause: str) -> bool:
        return clause in self.keywords


def query_blocks(structure: QueryStructure) -> list[QueryBlock]:
    """Split every ``SELECT`` in ``structure`` into its clauses."""

    sig = structure.significant
    blocks: list[QueryBlock] = []
    for index, token in enumerate(sig):
        if token.matches("select"):
            blocks.append(_build_block(structure, index))
    return blocks


def _build_block(structure: QueryStructure, select_index: int) -> QueryBlock:
    sig = structure.significant
    select = sig[select_index]
    scope = structure.scope_of[select_index]
    base = select.depth
    following = sig[select_index + 1] if select_index + 1 < len(sig) else None
    if following is not None and following.matches("distinct", "all"):
        following = sig[select_index + 2] if select_index + 2 < len(sig) else None
    top = following if following is not None and following.matches("top") else None

    clauses: dict[str, list[int]] = {}
    keywords: dict[str, int] = {}
    current: str | None = None
    open_parens = 0
    position = select_index + 1
    while position < len(sig):
        token = sig[position]
        if token.depth < base:
            break
        if token.depth == base and token.is_symbol(")"):
            if not open_parens:
                break
            open_parens -= 1
        elif token.depth == base and token.is_symbol("("):
            open_parens += 1
        if structure.scope_of[position] != scope:
            position += 1
            continue
        if token.depth == base:
            if token.is_symbol(";") or token.lower in SET_OPERATORS or token.matches("select"):
                break
            name = _clause_name(sig, position)
            if name is not None:
                current = name
                keywords.setdefault(name, position)
                clauses.setdefault(name, [])
                position += 2 if " " in name else 1
                continue
        if current is not None:
            clauses[current].append(position)
        position += 1

    return QueryBlock(
        select=select_index,
        scope=scope,
        depth=base,
        items=tuple(tuple(item) for item in select_items(sig, select_index)),
        top=top,
        clauses={name: tuple(indices) for name, indices in clauses.items()},
        keywords=keywords,
    )


def _clause_name(sig: Sequence[Token], index: int) -> str | None:
    token = sig[index]
    if token.matches("from", "where", "having", "offset"):
        return token.lower
    if token.matches("group", "order"):
        following = sig[index + 1] if index + 1 < len(sig) else None
        if following is not None and following.matches("by"):
            return f"{token.lower} by"
    return None


def _build_scopes(sig: Sequence[Token], length: int) -> tuple[list[Scope], list[int]]:
    scopes = [Scope(id=0, parent=None, depth=0, paren_depth=0, open=-1, close=length)]
    scope_of: list[int] = []
    stack: list[int | None] = []
    current = 0
    for index, token in enumerate(sig):
        if token.is_symbol("("):
            scope_of.append(current)
            following = sig[index + 1] if index + 1 < len(sig) else None
            if following is not None and following.matches("select"):
                scope = Scope(
                    id=len(scopes),
                    parent=current,
                    depth=scopes[current].depth + 1,
                    paren_depth=token.depth + 1,
                    open=token.start,
                    close=length,
                )
                scopes.append(scope)
                stack.append(scope.id)
                current = scope.id
            else:
                stack.append(None)
        elif token.is_symbol(")"):
            if stack:
                opened = stack.pop()
                if opened is not None:
                    scopes[opened].close = token.start
                    current = scopes[opened].parent or 0
            scope_of.append(current)
        else:
            scope_of.append(current)
    return scopes, scope_of


def _collect_references(
    sig: Sequence[Token],
    scopes: Sequence[Scope],
    scope_of: Sequence[int],
    length: int,
) -> list[ScopedReference]:
    references: list[ScopedReference] = []
    for index, token in enumerate(sig):
        if not token.matches("from", "join"):
            continue
        scope = scopes[scope_of[index]]
        if token.depth != scope.paren_depth:
            continue
        position = index + 1
        while True:
            parsed = _parse_source(sig, position, length, scope.depth)
            if parsed is None:
                break
            reference, position = parsed
            references.append(ScopedReference(reference, scope.id, index))
            if (
                position + 1 < len(sig)
                and sig[position].matches("with")
                and sig[position + 1].is_symbol("(")
            ):
                close = find_matching_paren(sig, position + 1)
                position = close + 1 if close is not None else len(sig)
            if token.matches("from") and position < len(sig) and sig[position].is_symbol(","):
                position += 1
                continue
            break
    return references


def _parse_source(
    sig: Sequence[Token],
    index: int,
    length: int,
    depth: int,
) -> tuple[TableReference, int] | None:
    if index >= len(sig):
        return None
    token = sig[index]
    if token.is_symbol("("):
        following = sig[index + 1] if index + 1 < len(sig) else None
        if following is None or not following.matches("select"):
            return None
        close = find_matching_paren(sig, index)
        inner = list(sig[index + 1 : close if close is not None else len(sig)])
        end = sig[close].end if close is not None else length
        alias, position = _parse_alias(sig, close + 1 if close is not None else len(sig))
        fields = tuple(
            name for name in (output_name(item) for item in select_items(inner, 0)) if name
        )
        reference = TableReference(
            name="subquery",
            qualified_name="subquery",
            start=token.start,
            end=end,
            alias=alias,
            is_subquery=True,
            scope_depth=depth,
            output_fields=fields,
        )
        return reference, position

    if not token.is_name:
        return None
    parts = [token]
    position = index + 1
    while (
        position + 1 < len(sig)
        and sig[position].is_symbol(".")
        and sig[position + 1].is_name
    ):
        parts.append(sig[position + 1])
        position += 2
    last = parts[-1]
    if len(parts) > 1 and parts[0].lower == SHARED_PREFIX.lower():
        qualified = ".".join([SHARED_PREFIX, *(part.text for part in parts[1:])])
    else:
        qualified = ".".join(part.text for part in parts)
    alias, position = _parse_alias(sig, position)
    reference = TableReference(
        name=last.unquoted,
        qualified_name=qualified,
        start=token.start,
        end=last.end,
        alias=alias,
        is_bracketed=last.kind is TokenKind.BRACKETED_IDENTIFIER,
        scope_depth=depth,
    )
    return reference, position


def _parse_alias(sig: Sequence[Token], index: int) -> tuple[str | None, int]:
    if index >= len(sig):
        return None, index
    token = sig[index]
    if token.matches("as"):
        following = sig[index + 1] if index + 1 < len(sig) else None
        if following is not None and following.is_name:
            return following.unquoted, index + 2
        return None, index + 1
    if token.is_name:
        return token.unquoted, index + 1
    return None, index


def _open_bracket(text: str, end: int) -> int | None:
    """Index of the ``[`` left unclosed before ``end``, if any."""

    start = text.find("[", text.rfind("]", 0, end) + 1, end)
    return start if start >= 0 else None


def _current_word(before: str) -> str:
    bracket = _open_bracket(before, len(before))
    if bracket is not None:
        return before[bracket + 1 :]
    return before[word_start(before, len(before)) :]


def _name_before(text: str, dot: int) -> str | None:
    if dot > 0 and text[dot - 1] == "]":
        start = text.rfind("[", 0, dot - 1)
        name = text[start + 1 : dot - 1]
        if start < 0 or not name or "]" in name:
            return None
        return name
    name = text[word_start(text, dot) : dot].lstrip(string.digits)
    return name or None


def _alias_before_dot(before: str) -> str | None:
    dots: list[int] = []
    bracket = _open_bracket(before, len(before))
    if bracket is not None:
        dots.append(bracket - 1)
    dots.append(word_start(before, len(before)) - 1)
    for dot in dots:
        if dot < 0 or before[dot] != ".":
            continue
        alias = _name_before(before, dot)
        if alias is None:
            continue
        if alias.lower() == SHARED_PREFIX.lower():
            return None
        return alias
    return None


__all__ = [
    "QueryBlock",
    "QueryStructure",
    "Scope",
    "ScopedReference",
    "analyze_structure",
    "extract_table_references",
    "is_cursor_in_literal",
    "output_name",
    "query_blocks",
    "resolve_cursor_context",
    "select_items",
]
