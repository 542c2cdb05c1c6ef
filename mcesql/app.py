"""Textual application entry point for mcesql."""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.logging import TextualHandler
from textual.widgets import Footer, Header

from .config import EditorConfig, load_config, save_config
from .demo import demo_metadata_provider
from .providers import FormatQueryProvider, RuleToggleProvider
from .session import EditorSession
from .sqlintel import MetadataProvider, RuleRegistry, SqlIntelService
from .widgets import QueryPad, StatusBar

LOG = logging.getLogger(__name__)

DEFAULT_QUERY = "SELECT\n    s.SubscriberKey\n    , s.EmailAddress\nFROM [_Subscribers] s\n"


class McesqlApp(App[None]):
    """Editor shell: a query pad with live diagnostics and a status strip."""

    COMMANDS = App.COMMANDS | {FormatQueryProvider, RuleToggleProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #main-column {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(
        self,
        *,
        config: EditorConfig | None = None,
        metadata_provider: MetadataProvider | None = None,
        initial_sql: str = DEFAULT_QUERY,
    ) -> None:
        super().__init__()
        self._config = config or load_config()
        self._sql_service = SqlIntelService(
            metadata_provider or demo_metadata_provider(),
            max_suggestions=self._config.completion.max_suggestions,
            min_trigger_chars=self._config.completion.min_trigger_chars,
            disabled_rules=self._config.lint.disabled_rules,
        )
        self._session = EditorSession(self._sql_service, config=self._config)
        self._initial_sql = initial_sql
        self._query_pad: QueryPad | None = None
        self._pending_notifications: list[tuple[str, str]] = []

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        self._query_pad = QueryPad(self._session, initial_sql=self._initial_sql)
        yield Container(self._query_pad, id="main-column")
        yield StatusBar(self._session)
        yield Footer()

    async def on_mount(self) -> None:
        self._flush_pending_notifications()

    @property
    def session(self) -> EditorSession:
        """Expose the editing session for tests."""

        return self._session

    @property
    def rule_registry(self) -> RuleRegistry:
        return self._sql_service.registry

    def is_rule_enabled(self, rule_id: str) -> bool:
        return self._config.is_rule_enabled(rule_id)

    def toggle_rule(self, rule_id: str) -> None:
        """Flip a lint rule, persist the choice, and re-lint the buffer."""

        enabled = not self._config.is_rule_enabled(rule_id)
        self._config = self._config.with_rule_enabled(rule_id, enabled)
        self._sql_service.set_disabled_rules(self._config.lint.disabled_rules)
        try:
            save_config(self._config)
        except OSError:
            LOG.exception("Failed to persist lint rule toggle")
        self._session.update(self._session.sql)
        state = "enabled" if enabled else "disabled"
        self._safe_notify(f"Lint rule {rule_id} {state}.")

    def format_query(self) -> None:
        if self._query_pad is not None:
            self._query_pad.action_format_query()

    async def _shutdown(self) -> None:
        self._session.close()
        await super()._shutdown()

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            try:
                self.notify(message, severity=severity)
            except Exception:
                LOG.exception("Failed to display notification", extra={"message": message})
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            try:
                self.notify(message, severity=severity)
            except Exception:
                LOG.exception("Failed to display queued notification", extra={"message": message})


def main() -> None:
    """Invoke the Textual application."""

    config = load_config()
    level = logging.getLevelName(config.log_level.upper())
    logging.basicConfig(level=level if isinstance(level, int) else logging.WARNING, handlers=[TextualHandler()])
    McesqlApp(config=config).run()


if __name__ == "__main__":
    main()
