"""Tests for the cursor-context resolver and table reference extraction."""

from __future__ import annotations

import time

from mcesql.sqlintel.catalog import should_trigger_completion
from mcesql.sqlintel.context import (
    extract_table_references,
    is_cursor_in_literal,
    query_blocks,
    analyze_structure,
    resolve_cursor_context,
)
from mcesql.sqlintel.scanner import scan


def test_cursor_after_from_wants_tables() -> None:
    sql = "SELECT * FROM "

    context = resolve_cursor_context(sql, len(sql))

    assert context.is_after_from_join is True
    assert context.has_from_join_table is False
    assert context.wants_table_suggestions is True
    assert context.last_keyword == "from"


def test_cursor_inside_partial_bracketed_name() -> None:
    sql = "SELECT * FROM [Sub"

    context = resolve_cursor_context(sql, len(sql))

    assert context.current_word == "Sub"
    assert context.cursor_in_from_join_table is True
    assert context.wants_table_suggestions is True


def test_completed_table_reference_stops_table_suggestions() -> None:
    sql = "SELECT * FROM [Orders] o WHERE "

    context = resolve_cursor_context(sql, len(sql))

    assert context.last_keyword == "where"
    assert context.is_after_from_join is False
    assert context.has_table_reference is True
    assert context.wants_table_suggestions is False


def test_comma_after_from_table_reopens_table_suggestions() -> None:
    sql = "SELECT * FROM [Orders] o, "

    context = resolve_cursor_context(sql, len(sql))

    assert context.has_from_join_table is False
    assert context.wants_table_suggestions is True


def test_after_select_flag() -> None:
    context = resolve_cursor_context("SELECT ", 7)

    assert context.is_after_select is True
    assert context.is_after_from_join is False


def test_references_capture_aliases_and_shared_prefix() -> None:
    sql = "SELECT * FROM ENT.[Shared Data] AS s JOIN [Local] l ON s.id = l.id JOIN Plain"

    references = extract_table_references(sql)

    assert [ref.name for ref in references] == ["Shared Data", "Local", "Plain"]
    assert references[0].qualified_name == "ENT.[Shared Data]"
    assert references[0].is_shared is True
    assert references[0].is_bracketed is True
    assert references[0].alias == "s"
    assert references[1].alias == "l"
    assert references[2].alias is None
    assert references[2].is_bracketed is False


def test_subquery_reference_exposes_output_fields() -> None:
    sql = "SELECT * FROM (SELECT a.Id, Name AS Label, COUNT(*) AS Total FROM [A] a) sub"

    references = extract_table_references(sql)

    subquery = next(ref for ref in references if ref.is_subquery)
    assert subquery.alias == "sub"
    assert subquery.output_fields == ("Id", "Label", "Total")
    inner = next(ref for ref in references if ref.name == "A")
    assert inner.scope_depth == 1


def test_alias_before_dot_resolves_table() -> None:
    sql = "SELECT o. FROM [Orders] o"
    cursor = len("SELECT o.")

    context = resolve_cursor_context(sql, cursor)

    assert context.alias_before_dot == "o"
    table = context.table_for_alias("o")
    assert table is not None
    assert table.name == "Orders"


def test_alias_lookup_searches_inner_scope_first() -> None:
    sql = "SELECT x.Id FROM [Outer] x WHERE EXISTS (SELECT 1 FROM [Inner] x WHERE x."

    context = resolve_cursor_context(sql, len(sql))

    assert context.cursor_depth == 1
    assert context.alias_before_dot == "x"
    table = context.table_for_alias("x")
    assert table is not None
    assert table.name == "Inner"


def test_outer_aliases_visible_from_subquery() -> None:
    sql = "SELECT * FROM [Outer] o WHERE EXISTS (SELECT 1 FROM [Inner] i WHERE o."

    context = resolve_cursor_context(sql, len(sql))

    table = context.table_for_alias("o")
    assert table is not None
    assert table.name == "Outer"
    assert [ref.name for ref in context.tables_in_scope] == ["Inner"]


def test_ent_prefix_is_not_an_alias() -> None:
    sql = "SELECT * FROM ENT."

    context = resolve_cursor_context(sql, len(sql))

    assert context.alias_before_dot is None


def test_alias_before_dot_with_bracketed_names() -> None:
    sql = "SELECT [Order Lines].[Qu"

    context = resolve_cursor_context(sql, len(sql))

    assert context.alias_before_dot == "Order Lines"
    assert context.current_word == "Qu"


def test_alias_before_dot_skips_leading_digits() -> None:
    context = resolve_cursor_context("SELECT 1o.Na", len("SELECT 1o.Na"))

    assert context.alias_before_dot == "o"
    assert context.current_word == "Na"


def test_long_word_runs_resolve_in_linear_time() -> None:
    sql = "SELECT 'x" + "a" * 50_000 + "' AS v FROM [T] WHERE "
    word = "b" * 50_000

    started = time.perf_counter()
    context = resolve_cursor_context(sql, len(sql))
    trailing = resolve_cursor_context(sql + word, len(sql) + len(word))
    triggers = should_trigger_completion(sql + word, len(sql) + len(word))
    elapsed = time.perf_counter() - started

    assert context.current_word == ""
    assert trailing.current_word == word
    assert trailing.alias_before_dot is None
    assert triggers is True
    assert elapsed < 2.0


def test_cursor_in_literal_detection() -> None:
    sql = "SELECT 'abc' -- note\nFROM x"
    tokens = scan(sql)

    assert is_cursor_in_literal(tokens, sql.index("b")) is True
    assert is_cursor_in_literal(tokens, sql.index("note")) is True
    assert is_cursor_in_literal(tokens, sql.index("FROM")) is False
    assert is_cursor_in_literal(scan("SELECT 'open"), len("SELECT 'open")) is True


def test_query_blocks_split_clauses_per_scope() -> None:
    sql = "SELECT a FROM (SELECT b FROM c ORDER BY b) x WHERE a > 1 ORDER BY a"

    blocks = query_blocks(analyze_structure(sql))

    assert len(blocks) == 2
    outer, inner = blocks
    assert outer.has("where") and outer.has("order by")
    assert inner.has("order by") and not inner.has("where")
    assert inner.scope != outer.scope
