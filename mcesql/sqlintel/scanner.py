"""Finite-state scanner that splits MCE SQL into classified tokens."""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable, Mapping, Sequence

from .catalog import SQL_KEYWORDS
from .models import Token, TokenKind


class ScanState(Enum):
    """Mutually exclusive lexical states of the scanner."""

    NORMAL = "normal"
    SINGLE_QUOTED = "single-quoted"
    DOUBLE_QUOTED = "double-quoted"
    BRACKETED = "bracketed"
    LINE_COMMENT = "line-comment"
    BLOCK_COMMENT = "block-comment"


# Token kind emitted when a span opened in the given state closes.
_STATE_KINDS: Mapping[ScanState, TokenKind] = {
    ScanState.SINGLE_QUOTED: TokenKind.STRING,
    ScanState.DOUBLE_QUOTED: TokenKind.STRING,
    ScanState.BRACKETED: TokenKind.BRACKETED_IDENTIFIER,
    ScanState.LINE_COMMENT: TokenKind.LINE_COMMENT,
    ScanState.BLOCK_COMMENT: TokenKind.BLOCK_COMMENT,
}

_TWO_CHAR_OPERATORS = frozenset({"<>", "!=", "<=", ">=", "!<", "!>", "||", "+=", "-=", "*=", "/="})
_PUNCTUATION = frozenset("(),.;")


class _Scanner:
    """Single pass over the source text; one handler per state."""

    def __init__(self, sql: str) -> None:
        self._sql = sql
        self._pos = 0
        self._depth = 0
        self._span_start = 0
        self._tokens: list[Token] = []
        self._transitions: Mapping[ScanState, Callable[[], ScanState]] = {
            ScanState.NORMAL: self._normal,
            ScanState.SINGLE_QUOTED: self._single_quoted,
            ScanState.DOUBLE_QUOTED: self._double_quoted,
            ScanState.BRACKETED: self._bracketed,
            ScanState.LINE_COMMENT: self._line_comment,
            ScanState.BLOCK_COMMENT: self._block_comment,
        }

    def run(self) -> list[Token]:
        state = ScanState.NORMAL
        while self._pos < len(self._sql):
            state = self._transitions[state]()
        if state is not ScanState.NORMAL:
            # Unterminated spans close implicitly at end of input.
            self._emit(_STATE_KINDS[state], self._span_start, len(self._sql))
        return self._tokens

    def _normal(self) -> ScanState:
        sql = self._sql
        char = sql[self._pos]
        following = sql[self._pos + 1] if self._pos + 1 < len(sql) else ""
        if char.isspace():
            self._pos += 1
            return ScanState.NORMAL
        if char == "-" and following == "-":
            return self._open(ScanState.LINE_COMMENT, 2)
        if char == "/" and following == "*":
            return self._open(ScanState.BLOCK_COMMENT, 2)
        if char == "'":
            return self._open(ScanState.SINGLE_QUOTED, 1)
        if char == '"':
            return self._open(ScanState.DOUBLE_QUOTED, 1)
        if char == "[":
            return self._open(ScanState.BRACKETED, 1)
        if char.isdigit() or (char == "." and following.isdigit()):
            self._number()
            return ScanState.NORMAL
        if char.isalnum() or char == "_":
            return self._word()
        if char in _PUNCTUATION:
            self._punctuation(char)
            return ScanState.NORMAL
        pair = sql[self._pos : self._pos + 2]
        width = 2 if pair in _TWO_CHAR_OPERATORS else 1
        self._emit(TokenKind.OPERATOR, self._pos, self._pos + width)
        self._pos += width
        return ScanState.NORMAL

    def _single_quoted(self) -> ScanState:
        return self._quoted("'", ScanState.SINGLE_QUOTED)

    def _double_quoted(self) -> ScanState:
        return self._quoted('"', ScanState.DOUBLE_QUOTED)

    def _bracketed(self) -> ScanState:
        return self._quoted("]", ScanState.BRACKETED)

    def _line_comment(self) -> ScanState:
        newline = self._sql.find("\n", self._pos)
        if newline == -1:
            self._pos = len(self._sql)
            return ScanState.LINE_COMMENT
        self._emit(TokenKind.LINE_COMMENT, self._span_start, newline)
        self._pos = newline
        return ScanState.NORMAL

    def _block_comment(self) -> ScanState:
        close = self._sql.find("*/", self._pos)
        if close == -1:
            self._pos = len(self._sql)
            return ScanState.BLOCK_COMMENT
        self._pos = close + 2
        self._emit(TokenKind.BLOCK_COMMENT, self._span_start, self._pos)
        return ScanState.NORMAL

    def _quoted(self, terminator: str, state: ScanState) -> ScanState:
        sql = self._sql
        close = sql.find(terminator, self._pos)
        if close == -1:
            self._pos = len(sql)
            return state
        if sql[close + 1 : close + 2] == terminator:
            # Doubled terminator is an escape, not the end of the span.
            self._pos = close + 2
            return state
        self._pos = close + 1
        self._emit(_STATE_KINDS[state], self._span_start, self._pos)
        return ScanState.NORMAL

    def _open(self, state: ScanState, width: int) -> ScanState:
        self._span_start = self._pos
        self._pos += width
        return state

    def _word(self) -> ScanState:
        sql = self._sql
        start = self._pos
        end = start
        while end < len(sql) and (sql[end].isalnum() or sql[end] == "_"):
            end += 1
        text = sql[start:end]
        if text in ("N", "n") and sql[end : end + 1] == "'":
            # Unicode string literal prefix.
            self._span_start = start
            self._pos = end + 1
            return ScanState.SINGLE_QUOTED
        kind = TokenKind.KEYWORD if text.lower() in SQL_KEYWORDS else TokenKind.IDENTIFIER
        self._emit(kind, start, end)
        self._pos = end
        return ScanState.NORMAL

    def _number(self) -> None:
        sql = self._sql
        end = self._pos
        seen_dot = False
        while end < len(sql):
            char = sql[end]
            if char.isdigit():
                end += 1
            elif char == "." and not seen_dot:
                seen_dot = True
                end += 1
            else:
                break
        self._emit(TokenKind.NUMBER, self._pos, end)
        self._pos = end

    def _punctuation(self, char: str) -> None:
        if char == "(":
            if self._tokens and self._tokens[-1].is_word:
                self._tokens[-1] = replace(self._tokens[-1], is_call=True)
            self._emit(TokenKind.PUNCTUATION, self._pos, self._pos + 1)
            self._depth += 1
        elif char == ")":
            self._depth = max(0, self._depth - 1)
            self._emit(TokenKind.PUNCTUATION, self._pos, self._pos + 1)
        else:
            self._emit(TokenKind.PUNCTUATION, self._pos, self._pos + 1)
        self._pos += 1

    def _emit(self, kind: TokenKind, start: int, end: int) -> None:
        self._tokens.append(
            Token(kind=kind, text=self._sql[start:end], start=start, end=end, depth=self._depth)
        )


def scan(sql: str) -> list[Token]:
    """Split ``sql`` into tokens. Never raises; malformed input degrades gracefully."""

    if not sql:
        return []
    return _Scanner(sql).run()


def significant(tokens: Iterable[Token]) -> list[Token]:
    """Drop comment tokens, keeping everything that carries meaning."""

    return [token for token in tokens if not token.is_comment]


def find_matching_paren(tokens: Sequence[Token], index: int) -> int | None:
    """Return the index of the ``)`` closing the ``(`` at ``index``."""

    level = 0
    for position in range(index, len(tokens)):
        token = tokens[position]
        if token.is_symbol("("):
            level += 1
        elif token.is_symbol(")"):
            level -= 1
            if level == 0:
                return position
    return None


def is_terminated(token: Token) -> bool:
    """True when a quoted span or block comment has its closing delimiter."""

    text = token.text
    if token.kind is TokenKind.BLOCK_COMMENT:
        return len(text) >= 4 and text.endswith("*/")
    if token.kind is TokenKind.BRACKETED_IDENTIFIER:
        closer, body = "]", text[1:]
    elif token.kind is TokenKind.STRING:
        if text[:1] in ("N", "n"):
            text = text[1:]
        closer, body = text[:1], text[1:]
    else:
        return True
    # An even run of trailing delimiters is a sequence of escapes.
    run = len(body) - len(body.rstrip(closer))
    return run % 2 == 1


__all__ = ["ScanState", "find_matching_paren", "is_terminated", "scan", "significant"]
