"""Core dataclasses shared by the SQL intelligence services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class TokenKind(str, Enum):
    """Classification assigned to every scanned span."""

    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    BRACKETED_IDENTIFIER = "bracketed-identifier"
    STRING = "string"
    LINE_COMMENT = "line-comment"
    BLOCK_COMMENT = "block-comment"
    NUMBER = "number"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"


_WORD_KINDS = frozenset({TokenKind.KEYWORD, TokenKind.IDENTIFIER})
_COMMENT_KINDS = frozenset({TokenKind.LINE_COMMENT, TokenKind.BLOCK_COMMENT})


@dataclass(frozen=True, slots=True)
class Token:
    """A classified, non-overlapping span of source text."""

    kind: TokenKind
    text: str
    start: int
    end: int
    depth: int = 0
    is_call: bool = False

    @property
    def lower(self) -> str:
        return self.text.lower()

    @property
    def is_word(self) -> bool:
        return self.kind in _WORD_KINDS

    @property
    def is_comment(self) -> bool:
        return self.kind in _COMMENT_KINDS

    @property
    def is_name(self) -> bool:
        """True for identifiers that may name a table, column, or alias."""

        return self.kind in (TokenKind.IDENTIFIER, TokenKind.BRACKETED_IDENTIFIER)

    @property
    def unquoted(self) -> str:
        """Identifier text with bracket quoting removed."""

        if self.kind is TokenKind.BRACKETED_IDENTIFIER:
            inner = self.text[1:-1] if self.text.endswith("]") else self.text[1:]
            return inner.replace("]]", "]")
        return self.text

    def matches(self, *words: str) -> bool:
        """Case-insensitive comparison for bare words."""

        return self.kind in _WORD_KINDS and self.text.lower() in words

    def is_symbol(self, symbol: str) -> bool:
        return self.kind in (TokenKind.PUNCTUATION, TokenKind.OPERATOR) and self.text == symbol


class DiagnosticSeverity(str, Enum):
    """Severity levels for lint feedback."""

    ERROR = "error"
    PREREQ = "prereq"
    WARNING = "warning"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def is_blocking(self) -> bool:
        return self is not DiagnosticSeverity.WARNING


_SEVERITY_RANK = {
    DiagnosticSeverity.ERROR: 0,
    DiagnosticSeverity.PREREQ: 1,
    DiagnosticSeverity.WARNING: 2,
}


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Represents an issue discovered while linting."""

    message: str
    severity: DiagnosticSeverity
    start: int
    end: int

    def to_dict(self) -> dict[str, object]:
        return {
            "message": self.message,
            "severity": self.severity.value,
            "startIndex": self.start,
            "endIndex": self.end,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> Diagnostic:
        return cls(
            message=str(payload["message"]),
            severity=DiagnosticSeverity(payload["severity"]),
            start=int(payload["startIndex"]),  # type: ignore[arg-type]
            end=int(payload["endIndex"]),  # type: ignore[arg-type]
        )


class SuggestionType(str, Enum):
    """Types of suggestions surfaced to the editor."""

    TABLE = "table"
    FIELD = "field"
    JOIN = "join"


@dataclass(frozen=True, slots=True)
class Suggestion:
    """Single autocomplete entry."""

    label: str
    type: SuggestionType
    insert_text: str
    name: str
    detail: str | None = None
    customer_key: str | None = None
    is_shared: bool = False
    score: float = 0.0


@dataclass(frozen=True, slots=True)
class TableReference:
    """A table source named by a FROM or JOIN clause."""

    name: str
    qualified_name: str
    start: int
    end: int
    alias: str | None = None
    is_bracketed: bool = False
    is_subquery: bool = False
    scope_depth: int = 0
    output_fields: tuple[str, ...] = ()

    @property
    def is_shared(self) -> bool:
        return self.qualified_name.lower().startswith("ent.")


@dataclass(frozen=True, slots=True)
class CursorContext:
    """Semantic snapshot of where the cursor sits inside the statement."""

    cursor_depth: int
    current_word: str
    alias_before_dot: str | None
    is_after_from_join: bool
    is_after_select: bool
    last_keyword: str | None
    has_table_reference: bool
    cursor_in_table_reference: bool
    has_from_join_table: bool
    cursor_in_from_join_table: bool
    tables_in_scope: tuple[TableReference, ...] = ()
    alias_map: Mapping[str, TableReference] = field(default_factory=dict)

    @property
    def wants_table_suggestions(self) -> bool:
        return self.is_after_from_join and (
            not self.has_from_join_table or self.cursor_in_from_join_table
        )

    def table_for_alias(self, alias: str) -> TableReference | None:
        """Resolve an alias (or bare table name) visible from the cursor."""

        key = alias.strip("[]").lower()
        found = self.alias_map.get(key)
        if found is not None:
            return found
        for table in self.tables_in_scope:
            if table.name.lower() == key:
                return table
        return None


__all__ = [
    "CursorContext",
    "Diagnostic",
    "DiagnosticSeverity",
    "Suggestion",
    "SuggestionType",
    "TableReference",
    "Token",
    "TokenKind",
]
