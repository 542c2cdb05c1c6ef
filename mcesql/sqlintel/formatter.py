"""Pretty-printer used by the editor's explicit "format" action."""

from __future__ import annotations

import logging
import re

from sqlglot import parse
from sqlglot.errors import SqlglotError

from .ast_checks import DIALECT
from .models import TokenKind
from .scanner import is_terminated, scan, significant

LOG = logging.getLogger(__name__)

SQL_TAB_SIZE = 4

_TRAILING_SEMICOLON = re.compile(r";\s*$")
_SELECT_TOP = re.compile(
    r"^(?P<head>[ \t]*SELECT(?:[ \t]+(?:DISTINCT|ALL))?)[ \t]*\n[ \t]*"
    r"(?P<top>TOP[ \t]+(?:\([ \t]*\d+[ \t]*\)|\d+)(?:[ \t]+PERCENT)?)[ \t]*(?P<end>\n|$)",
    re.MULTILINE | re.IGNORECASE,
)

_NORMAL = "normal"
_BLOCK = "block"
_CLOSERS = {"'": "'", '"': '"', "[": "]"}


def format_sql(sql: str) -> str:
    """Return ``sql`` pretty-printed, or unchanged when it cannot be formatted.

    The result is a fixed point: formatting it again yields the same text.
    Printing goes through sqlglot, so table aliases gain an explicit ``AS``
    and a line comment that no longer ends its line is kept as a block
    comment.
    """

    if not sql.strip():
        return ""
    try:
        formatted = _format_once(sql)
        if _format_once(formatted) != formatted:
            LOG.debug("Formatter output is not stable; keeping the original text")
            return sql
        return formatted
    except (SqlglotError, RecursionError, ValueError):
        LOG.debug("Could not format statement", exc_info=True)
        return sql
    except Exception:
        LOG.exception("Unexpected formatter failure")
        return sql


def _format_once(sql: str) -> str:
    if not sql.strip():
        return ""
    statements = [
        statement.sql(dialect=DIALECT, pretty=True, pad=SQL_TAB_SIZE, indent=SQL_TAB_SIZE)
        for statement in parse(sql, read=DIALECT)
        if statement is not None
    ]
    text = ";\n\n".join(statements)
    text = fix_select_top(text)
    text = fix_offset_fetch_case(text)
    text = move_commas_to_leading(text)
    return restore_line_comments(strip_trailing_semicolon(text), sql)


def strip_trailing_semicolon(sql: str) -> str:
    return _TRAILING_SEMICOLON.sub("", sql)


def restore_line_comments(sql: str, original: str) -> str:
    """Turn ``/* note */`` back into ``-- note`` where ``original`` used a line comment.

    Only comments that end their line are rewritten, so no code is swallowed.
    """

    notes = {
        token.text[2:].strip() for token in scan(original) if token.kind is TokenKind.LINE_COMMENT
    }
    if not notes:
        return sql
    replacements: list[tuple[int, int, str]] = []
    for token in scan(sql):
        if token.kind is not TokenKind.BLOCK_COMMENT or "\n" in token.text or not is_terminated(token):
            continue
        note = token.text[2:-2].strip()
        line_end = sql.find("\n", token.end)
        rest = sql[token.end : line_end if line_end >= 0 else len(sql)]
        if note in notes and not rest.strip():
            replacements.append((token.start, token.end, f"-- {note}".rstrip()))

    for start, end, text in reversed(replacements):
        sql = sql[:start] + text + sql[end:]
    return sql


def fix_select_top(sql: str) -> str:
    """Keep ``TOP n`` (and ``PERCENT``) on the same line as its ``SELECT``."""

    return _SELECT_TOP.sub(lambda match: f"{match['head']} {match['top']}{match['end']}", sql)


def fix_offset_fetch_case(sql: str) -> str:
    """Uppercase ROWS/ONLY inside OFFSET ... FETCH clauses, leaving literals alone."""

    tokens = significant(scan(sql))
    replacements: list[tuple[int, int, str]] = []
    for index, token in enumerate(tokens):
        if token.matches("offset"):
            expected = [None, ("row", "rows")]
        elif token.matches("fetch"):
            expected = [("next", "first"), None, ("row", "rows"), ("only",)]
        else:
            continue
        window = tokens[index + 1 : index + 1 + len(expected)]
        for candidate, words in zip(window, expected):
            if words is None:
                continue
            if not candidate.matches(*words):
                break
            replacements.append((candidate.start, candidate.end, candidate.text.upper()))

    for start, end, text in sorted(replacements, reverse=True):
        sql = sql[:start] + text + sql[end:]
    return sql


def move_commas_to_leading(sql: str) -> str:
    """Move list-separator commas from line ends to the start of the next line.

    Works line by line, so commas inside strings, bracketed names, and
    comments (including block comments spanning lines) are left alone.
    """

    if not sql:
        return sql
    lines = sql.split("\n")
    state = _NORMAL
    pending = False
    for index, line in enumerate(lines):
        starts_in_code = state == _NORMAL
        if pending and starts_in_code and line.strip():
            indent = len(line) - len(line.lstrip())
            line = f"{line[:indent]}, {line[indent:]}"
            pending = False
        comma, state = _trailing_comma(line, state)
        if comma is not None and _has_following_code(lines, index):
            line = (line[:comma] + line[comma + 1 :]).rstrip()
            pending = True
        lines[index] = line
    return "\n".join(lines)


def _has_following_code(lines: list[str], index: int) -> bool:
    return any(line.strip() for line in lines[index + 1 :])


def _trailing_comma(line: str, state: str) -> tuple[int | None, str]:
    """Return the index of a comma ending the code on ``line``, and the state after it."""

    position = 0
    last_code: int | None = None
    length = len(line)
    while position < length:
        if state == _BLOCK:
            close = line.find("*/", position)
            if close < 0:
                return None, _BLOCK
            position = close + 2
            state = _NORMAL
            continue
        if state != _NORMAL:
            closer = _CLOSERS[state]
            close = line.find(closer, position)
            if close < 0:
                return None, state
            if close + 1 < length and line[close + 1] == closer:
                position = close + 2
                continue
            last_code = close
            position = close + 1
            state = _NORMAL
            continue
        char = line[position]
        if line.startswith("--", position):
            break
        if line.startswith("/*", position):
            state = _BLOCK
            position += 2
            continue
        if char in _CLOSERS:
            state = char
            last_code = position
        elif not char.isspace():
            last_code = position
        position += 1

    if state != _NORMAL:
        return None, state
    if last_code is not None and line[last_code] == ",":
        return last_code, state
    return None, state


__all__ = [
    "SQL_TAB_SIZE",
    "fix_offset_fetch_case",
    "fix_select_top",
    "format_sql",
    "move_commas_to_leading",
    "restore_line_comments",
    "strip_trailing_semicolon",
]
