"""App configuration loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "mcesql" / "config.toml"


class LintSettings(BaseModel):
    """Controls the keystroke linter and the background pass."""

    debounce_ms: int = Field(default=150, ge=0)
    enable_async: bool = True
    max_async_length: int = Field(default=50_000, ge=1)
    disabled_rules: list[str] = Field(default_factory=list)


class CompletionSettings(BaseModel):
    """Completion list behaviour."""

    max_suggestions: int = Field(default=10, ge=1)
    min_trigger_chars: int = Field(default=2, ge=1)


class EditorConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    log_level: str = "WARNING"
    lint: LintSettings = Field(default_factory=LintSettings)
    completion: CompletionSettings = Field(default_factory=CompletionSettings)

    def with_rule_enabled(self, rule_id: str, enabled: bool) -> EditorConfig:
        """Return a copy with the given lint rule switched on or off."""

        disabled = [name for name in self.lint.disabled_rules if name != rule_id]
        if not enabled:
            disabled.append(rule_id)
        lint = self.lint.model_copy(update={"disabled_rules": sorted(disabled)})
        return self.model_copy(update={"lint": lint})

    def is_rule_enabled(self, rule_id: str) -> bool:
        return rule_id not in self.lint.disabled_rules


def load_config() -> EditorConfig:
    """Load configuration from disk; fall back to defaults if missing or invalid."""

    try:
        with CONFIG_FILE.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        return EditorConfig()
    except (tomllib.TOMLDecodeError, OSError):
        LOG.warning("Ignoring unreadable config file %s", CONFIG_FILE, exc_info=True)
        return EditorConfig()

    data: dict[str, object] = {}
    for key in ("theme", "log_level"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    for key in ("lint", "completion"):
        section = raw.get(key)
        if isinstance(section, dict):
            data[key] = section
    try:
        return EditorConfig.model_validate(data)
    except ValidationError:
        LOG.warning("Config file %s has invalid values; using defaults", CONFIG_FILE, exc_info=True)
        return EditorConfig()


def save_config(config: EditorConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f'theme = "{config.theme}"',
        f'log_level = "{config.log_level}"',
        "",
        "[lint]",
        f"debounce_ms = {config.lint.debounce_ms}",
        f"enable_async = {str(config.lint.enable_async).lower()}",
        f"max_async_length = {config.lint.max_async_length}",
    ]
    rules = ", ".join(f'"{name}"' for name in config.lint.disabled_rules)
    lines.append(f"disabled_rules = [{rules}]")
    lines.extend(
        [
            "",
            "[completion]",
            f"max_suggestions = {config.completion.max_suggestions}",
            f"min_trigger_chars = {config.completion.min_trigger_chars}",
        ]
    )
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


__all__ = [
    "CONFIG_FILE",
    "CompletionSettings",
    "EditorConfig",
    "LintSettings",
    "load_config",
    "save_config",
]
