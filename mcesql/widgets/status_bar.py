"""Status bar widget that mirrors the editor's lint state."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from mcesql.session import DiagnosticsState, EditorSession
from mcesql.sqlintel import DiagnosticSeverity


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, session: EditorSession) -> None:
        super().__init__("", id="status-bar", markup=False)
        self._session = session
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._session.subscribe(self._handle_state)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_state(self, state: DiagnosticsState) -> None:
        self.update(describe_state(state, async_enabled=self._session.async_enabled))


def describe_state(state: DiagnosticsState, *, async_enabled: bool = True) -> str:
    counts = {severity: 0 for severity in DiagnosticSeverity}
    for diagnostic in state.diagnostics:
        counts[diagnostic.severity] += 1
    if state.is_async_linting:
        analysis = "Analyzing…"
    elif not async_enabled:
        analysis = "Quick checks only"
    elif state.last_lint_duration is not None:
        analysis = f"Analyzed in {state.last_lint_duration:.0f} ms"
    else:
        analysis = "Idle"
    parts = [
        f"Errors: {counts[DiagnosticSeverity.ERROR] + counts[DiagnosticSeverity.PREREQ]}",
        f"Warnings: {counts[DiagnosticSeverity.WARNING]}",
        analysis,
        "Blocked" if state.has_blocking else "Ready to run",
    ]
    return " | ".join(parts)


__all__ = ["StatusBar", "describe_state"]
