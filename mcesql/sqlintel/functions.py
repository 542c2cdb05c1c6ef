"""Function catalog describing which T-SQL routines MCE does not support."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(frozen=True, slots=True)
class UnsupportedFunction:
    """A function the platform rejects, with an optional replacement hint."""

    name: str
    alternative: str | None = None

    def message(self) -> str:
        hint = self.alternative or "There is no direct equivalent."
        return f"{self.name.upper()}() is not available in MCE. {hint}"


class FunctionCatalog:
    """Lookup table for unsupported and aggregate functions."""

    def __init__(
        self,
        unsupported: Sequence[UnsupportedFunction],
        aggregates: Sequence[str],
    ) -> None:
        self._unsupported = {entry.name.lower(): entry for entry in unsupported}
        self._aggregates = frozenset(name.lower() for name in aggregates)

    @classmethod
    def default(cls) -> "FunctionCatalog":
        return cls(_UNSUPPORTED_FUNCTIONS, _AGGREGATE_FUNCTIONS)

    def unsupported(self, name: str) -> UnsupportedFunction | None:
        return self._unsupported.get(name.lower())

    def is_aggregate(self, name: str) -> bool:
        return name.lower() in self._aggregates

    @property
    def aggregates(self) -> frozenset[str]:
        return self._aggregates


_UNSUPPORTED_FUNCTIONS: Tuple[UnsupportedFunction, ...] = (
    UnsupportedFunction("string_agg"),
    UnsupportedFunction("string_split"),
    UnsupportedFunction("json_modify"),
    UnsupportedFunction("openjson"),
    UnsupportedFunction("isjson"),
    UnsupportedFunction("try_parse"),
    UnsupportedFunction("try_convert", "Use CONVERT() instead."),
    UnsupportedFunction("try_cast", "Use CAST() instead."),
)

_AGGREGATE_FUNCTIONS: Tuple[str, ...] = (
    "count", "count_big", "sum", "avg", "min", "max", "stdev", "stdevp", "var", "varp",
)


__all__ = ["FunctionCatalog", "UnsupportedFunction"]
