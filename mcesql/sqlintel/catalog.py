"""Static keyword and trigger-character tables for the MCE SQL dialect."""

from __future__ import annotations

import re
import string
from typing import Final

SQL_KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "add", "all", "alter", "and", "any", "apply", "as", "asc", "begin", "between",
        "break", "by", "cascade", "case", "close", "commit", "continue", "create", "cross",
        "cursor", "deallocate", "declare", "default", "delete", "deny", "desc", "distinct",
        "drop", "else", "end", "escape", "except", "exec", "execute", "exists", "fetch",
        "first", "for", "from", "full", "goto", "grant", "group", "having", "holdlock", "if",
        "in", "inner", "insert", "intersect", "into", "is", "join", "left", "like", "limit",
        "merge", "next", "nolock", "not", "null", "of", "offset", "on", "only", "open",
        "or", "order", "outer", "over", "partition", "percent", "print", "raiserror",
        "return", "revoke", "right", "rollback", "row", "rows", "save", "savepoint",
        "select", "set", "table", "then", "ties", "top", "tran", "transaction", "truncate",
        "union", "update", "use", "using", "values", "waitfor", "when", "where", "while",
        "with",
    }
)

# Keywords the cursor resolver reports as the clause preceding the cursor.
CONTEXT_KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "select", "from", "join", "where", "group", "order", "having", "on", "inner",
        "left", "right", "full", "cross", "union", "limit", "as",
    }
)

CLAUSE_BOUNDARIES: Final[frozenset[str]] = frozenset(
    {"on", "where", "group", "order", "having", "union", "except", "intersect"}
)

JOIN_KEYWORDS: Final[frozenset[str]] = frozenset(
    {"join", "inner", "left", "right", "full", "cross", "outer"}
)

SET_OPERATORS: Final[frozenset[str]] = frozenset({"union", "intersect", "except"})

DML_KEYWORDS: Final[frozenset[str]] = frozenset(
    {"insert", "update", "delete", "merge", "truncate"}
)

DDL_KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "create", "drop", "alter", "grant", "revoke", "deny", "commit", "rollback",
        "savepoint",
    }
)

PROCEDURAL_KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "declare", "set", "while", "if", "print", "exec", "execute", "goto", "raiserror",
        "waitfor", "cursor", "deallocate", "begin",
    }
)

SHARED_PREFIX: Final[str] = "ENT"

IMMEDIATE_TRIGGER_CHARS: Final[tuple[str, ...]] = (".", "[", "_")
NO_TRIGGER_CHARS: Final[tuple[str, ...]] = (" ", "\n", "\r", ",", ";", ")", "-")
DROPDOWN_CLOSE_CHARS: Final[tuple[str, ...]] = (",", ";", ")", "\n")
MIN_TRIGGER_CHARS: Final[int] = 2

SFMC_IDENTITY_FIELDS: Final[tuple[str, ...]] = (
    "ContactID",
    "ContactKey",
    "SubscriberKey",
    "_ContactKey",
    "_SubscriberKey",
    "PersonContactId",
    "LeadId",
    "EmailAddress",
)

WORD_CHARS: Final[frozenset[str]] = frozenset(string.ascii_letters + string.digits + "_")

IDENTITY_FIELD_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(rf"^{re.escape(name)}$", re.IGNORECASE) for name in SFMC_IDENTITY_FIELDS
)


def is_identity_field(name: str) -> bool:
    """Return True when the field is one of the platform's subscriber identity columns."""

    return any(pattern.match(name) for pattern in IDENTITY_FIELD_PATTERNS)


def should_trigger_completion(sql: str, cursor: int, min_chars: int = MIN_TRIGGER_CHARS) -> bool:
    """Decide whether typing up to ``cursor`` should open the completion list."""

    if cursor <= 0 or cursor > len(sql):
        return False
    char = sql[cursor - 1]
    if char in IMMEDIATE_TRIGGER_CHARS:
        return True
    if char in NO_TRIGGER_CHARS:
        return False
    return cursor - word_start(sql, cursor) >= min_chars


def word_start(text: str, end: int) -> int:
    """Index where the run of word characters ending at ``end`` begins."""

    start = end
    while start > 0 and text[start - 1] in WORD_CHARS:
        start -= 1
    return start


__all__ = [
    "CLAUSE_BOUNDARIES",
    "CONTEXT_KEYWORDS",
    "DDL_KEYWORDS",
    "DML_KEYWORDS",
    "DROPDOWN_CLOSE_CHARS",
    "IDENTITY_FIELD_PATTERNS",
    "IMMEDIATE_TRIGGER_CHARS",
    "JOIN_KEYWORDS",
    "MIN_TRIGGER_CHARS",
    "NO_TRIGGER_CHARS",
    "PROCEDURAL_KEYWORDS",
    "SET_OPERATORS",
    "SFMC_IDENTITY_FIELDS",
    "SHARED_PREFIX",
    "SQL_KEYWORDS",
    "WORD_CHARS",
    "is_identity_field",
    "should_trigger_completion",
    "word_start",
]
