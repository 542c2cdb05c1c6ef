"""Query editor widget wired to the editing session's diagnostics and completions."""

from __future__ import annotations

from typing import Callable, Sequence

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Static, TextArea

from mcesql.session import DiagnosticsState, EditorSession
from mcesql.sqlintel import Diagnostic, Suggestion

_SEVERITY_BADGES = {"error": "✖", "prereq": "◆", "warning": "⚠"}


def offset_from_location(text: str, row: int, column: int) -> int:
    """Convert a (row, column) editor location to a character offset."""

    lines = text.split("\n")
    row = max(0, min(row, len(lines) - 1))
    column = max(0, min(column, len(lines[row])))
    return sum(len(line) + 1 for line in lines[:row]) + column


class QueryPad(Container):
    """SQL editor with live diagnostics and a completion preview."""

    DEFAULT_CSS = """
    QueryPad {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    QueryPad .panel-title {
        text-style: bold;
    }

    QueryPad TextArea {
        height: 1fr;
        border: heavy $primary;
    }

    #query-suggestions {
        height: auto;
        min-height: 3;
        border-top: solid $surface-darken-2;
        padding-top: 1;
    }

    #query-diagnostics {
        height: auto;
        min-height: 3;
        color: $text-muted;
    }

    QueryPad:focus-within {
        border: round $primary;
        background: $surface-lighten-1;
    }
    """

    BINDINGS = Container.BINDINGS + [
        Binding("ctrl+l", "format_query", "Format", show=True, priority=True),
    ]

    def __init__(self, session: EditorSession, *, initial_sql: str = "") -> None:
        super().__init__(id="query-pad")
        self._session = session
        self._initial_sql = initial_sql
        self._editor: TextArea | None = None
        self._suggestions: Static | None = None
        self._diagnostics: Static | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Query", classes="panel-title")
        yield TextArea(self._initial_sql, id="query-editor")
        yield Static("Suggestions appear here.", id="query-suggestions", markup=False)
        yield Static("", id="query-diagnostics", markup=False)

    async def on_mount(self) -> None:
        self._editor = self.query_one("#query-editor", TextArea)
        self._suggestions = self.query_one("#query-suggestions", Static)
        self._diagnostics = self.query_one("#query-diagnostics", Static)
        self._unsubscribe = self._session.subscribe(self._handle_diagnostics)
        if self._initial_sql:
            self._session.update(self._initial_sql)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def on_text_area_changed(self, event: TextArea.Changed) -> None:
        text = event.text_area.text
        row, column = event.text_area.cursor_location
        cursor = offset_from_location(text, row, column)
        self._session.update(text, cursor)
        if self._session.should_suggest(cursor):
            self._render_suggestions(self._session.suggest(cursor))
        else:
            self._render_suggestions([])

    def action_format_query(self) -> None:
        if not self._editor:
            return
        formatted = self._session.format()
        if formatted and formatted != self._editor.text:
            self._editor.load_text(formatted)

    def _handle_diagnostics(self, state: DiagnosticsState) -> None:
        self._render_diagnostics(state.diagnostics)

    def _render_suggestions(self, suggestions: Sequence[Suggestion]) -> None:
        if not self._suggestions:
            return
        if not suggestions:
            self._suggestions.update("No suggestions.")
            return
        rows = [f"{entry.label} · {entry.detail or entry.type.value}" for entry in suggestions[:5]]
        self._suggestions.update("\n".join(rows))

    def _render_diagnostics(self, diagnostics: Sequence[Diagnostic]) -> None:
        if not self._diagnostics:
            return
        if not diagnostics:
            self._diagnostics.update("No problems found.")
            return
        rows = [
            f"{_SEVERITY_BADGES.get(item.severity.value, '•')} ({item.start}-{item.end}) {item.message}"
            for item in diagnostics[:8]
        ]
        if len(diagnostics) > 8:
            rows.append(f"… {len(diagnostics) - 8} more")
        self._diagnostics.update("\n".join(rows))


__all__ = ["QueryPad", "offset_from_location"]
