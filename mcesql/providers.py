"""Command palette providers for core editor features."""

from __future__ import annotations

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .sqlintel import RuleRegistry


class RuleToggleProvider(Provider):
    """Expose lint rules to the command palette so they can be switched on or off."""

    async def search(self, query: str) -> Hits:
        registry = self._registry
        if registry is None:
            return
        matcher = self.matcher(query)
        for lint_rule in registry.rules():
            label = self._label(lint_rule.id, lint_rule.name)
            match = matcher.match(label)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=matcher.highlight(label),
                    command=self._build_callback(lint_rule.id),
                    help="Toggle this lint rule and persist the choice.",
                )

    async def discover(self) -> Hits:
        registry = self._registry
        if registry is None:
            return
        for lint_rule in registry.rules():
            yield DiscoveryHit(
                display=self._label(lint_rule.id, lint_rule.name),
                command=self._build_callback(lint_rule.id),
                help="Toggle this lint rule and persist the choice.",
            )

    @property
    def _registry(self) -> RuleRegistry | None:
        registry = getattr(self.app, "rule_registry", None)
        if isinstance(registry, RuleRegistry):
            return registry
        return None

    def _label(self, rule_id: str, name: str) -> str:
        checker = getattr(self.app, "is_rule_enabled", None)
        enabled = checker(rule_id) if callable(checker) else True
        verb = "Disable" if enabled else "Enable"
        return f"{verb} lint rule: {name} ({rule_id})"

    def _build_callback(self, rule_id: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            toggler = getattr(self.app, "toggle_rule", None)
            if toggler is None:
                return
            toggler(rule_id)

        return _run


class FormatQueryProvider(Provider):
    """Expose the format action for the current query."""

    _LABEL = "Format query"

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        score = matcher.match(self._LABEL)
        if score > 0:
            yield Hit(
                score=score,
                match_display=matcher.highlight(self._LABEL),
                command=self._build_callback(),
                help="Trigger Ctrl+L equivalent formatting.",
            )

    async def discover(self) -> Hits:
        yield DiscoveryHit(
            display=self._LABEL,
            command=self._build_callback(),
            help="Trigger Ctrl+L equivalent formatting.",
        )

    def _build_callback(self) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            formatter = getattr(self.app, "format_query", None)
            if formatter is None:
                return
            formatter()

        return _run


__all__ = ["FormatQueryProvider", "RuleToggleProvider"]
