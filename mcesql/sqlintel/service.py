"""Main SQL intelligence service coordinating context, suggestions, and linting."""

from __future__ import annotations

from typing import Collection, Iterable, Sequence

from .ast_checks import full_analysis
from .catalog import MIN_TRIGGER_CHARS, should_trigger_completion
from .context import is_cursor_in_literal, resolve_cursor_context
from .formatter import format_sql
from .linter import lint_sync
from .metadata import (
    DataExtension,
    DataExtensionField,
    Folder,
    MetadataProvider,
    StaticMetadataProvider,
    shared_folder_ids,
)
from .models import CursorContext, Diagnostic, Suggestion, TableReference
from .rules import RuleRegistry
from .scanner import scan
from .suggestions import (
    MAX_SUGGESTIONS,
    build_field_suggestions,
    build_join_suggestions,
    build_table_suggestions,
)


class SqlIntelService:
    """Facade the editor talks to for completions, diagnostics, and formatting.

    Every method runs synchronously on the caller's thread; the heavy pass
    is only pushed off-thread by :class:`~mcesql.session.EditorSession`.
    """

    def __init__(
        self,
        metadata_provider: MetadataProvider | None = None,
        *,
        registry: RuleRegistry | None = None,
        max_suggestions: int = MAX_SUGGESTIONS,
        min_trigger_chars: int = MIN_TRIGGER_CHARS,
        disabled_rules: Collection[str] = frozenset(),
    ) -> None:
        self._metadata = metadata_provider or StaticMetadataProvider()
        self._registry = registry or RuleRegistry.default()
        self._max_suggestions = max_suggestions
        self._min_trigger_chars = min_trigger_chars
        self._disabled = frozenset(disabled_rules)

    @property
    def metadata(self) -> MetadataProvider:
        return self._metadata

    @property
    def disabled_rules(self) -> frozenset[str]:
        return self._disabled

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    def set_disabled_rules(self, rule_ids: Collection[str]) -> None:
        self._disabled = frozenset(rule_ids)

    def update_metadata(self, data_extensions: Iterable[DataExtension], folders: Iterable[Folder] = ()) -> None:
        """Swap in a new Data Extension catalog.

        The previous provider is left untouched so a background analysis that
        already holds it finishes against a consistent catalog.
        """

        self._metadata = StaticMetadataProvider(data_extensions, folders)

    def context(self, buffer: str, cursor: int) -> CursorContext:
        return resolve_cursor_context(buffer, cursor)

    def should_suggest(self, buffer: str, cursor: int) -> bool:
        """Decide whether the completion list should open after typing at ``cursor``."""

        if is_cursor_in_literal(scan(buffer), cursor):
            return False
        return should_trigger_completion(buffer, cursor, self._min_trigger_chars)

    def suggest(self, buffer: str, cursor: int) -> list[Suggestion]:
        """Return ordered suggestions for the current cursor location."""

        if is_cursor_in_literal(scan(buffer), cursor):
            return []
        context = self.context(buffer, cursor)
        return self.suggestions_from_context(context)

    def suggestions_from_context(self, context: CursorContext) -> list[Suggestion]:
        """Return suggestions using a precomputed cursor context."""

        if context.alias_before_dot:
            table = context.table_for_alias(context.alias_before_dot)
            if table is None:
                return []
            return build_field_suggestions(
                self._fields_for(table),
                owner=table.name,
                search_term=context.current_word,
            )[: self._max_suggestions]

        if context.wants_table_suggestions:
            return build_table_suggestions(
                self._metadata.data_extensions(),
                shared_folder_ids(self._metadata.folders()),
                context.current_word,
                limit=self._max_suggestions,
            )

        tables = context.tables_in_scope
        if context.last_keyword == "on" and len(tables) >= 2:
            left, right = tables[-2], tables[-1]
            joins = build_join_suggestions(
                left,
                right,
                self._fields_for(left),
                self._fields_for(right),
                limit=self._max_suggestions,
            )
            if joins:
                return joins

        if not tables:
            return []
        qualify = len(tables) > 1
        suggestions: list[Suggestion] = []
        for table in tables:
            prefix = (table.alias or table.name) if qualify else None
            suggestions.extend(
                build_field_suggestions(
                    self._fields_for(table),
                    prefix=prefix,
                    owner=table.name,
                    search_term=context.current_word,
                )
            )
        return suggestions[: self._max_suggestions]

    def lint(self, statement: str, cursor: int | None = None) -> list[Diagnostic]:
        """Run the fast rule subset for the keystroke path."""

        return lint_sync(
            statement,
            self._metadata.data_extensions(),
            cursor_position=cursor,
            disabled=self._disabled,
            registry=self._registry,
        )

    def analyze(self, statement: str) -> list[Diagnostic]:
        """Parser diagnostics plus the full rule set."""

        metadata, disabled = self._metadata, self._disabled
        return full_analysis(
            statement,
            tuple(metadata.data_extensions()),
            disabled=disabled,
            registry=self._registry,
        )

    def format(self, statement: str) -> str:
        return format_sql(statement)

    def _fields_for(self, table: TableReference) -> Sequence[DataExtensionField]:
        if table.is_subquery:
            return tuple(DataExtensionField(name=name, type="Column") for name in table.output_fields)
        finder = getattr(self._metadata, "find", None)
        entry: DataExtension | None = None
        if callable(finder):
            entry = finder(table.qualified_name) or finder(table.name)
        else:
            wanted = table.name.lower()
            entry = next((item for item in self._metadata.data_extensions() if item.name.lower() == wanted), None)
        return entry.fields if entry is not None else ()


__all__ = ["SqlIntelService", "MAX_SUGGESTIONS"]
