"""Error sentinels, numeric coercion and range aggregate functions."""

from __future__ import annotations

import math
import re
from typing import Any, Callable


# ---------------------------------------------------------------------------
# CellError: sentinel values that propagate through formula chains
# ---------------------------------------------------------------------------


class CellError:
    """Error sentinel shown in place of a value.

    Use ``CellError.of(code)`` to get the cached singleton for a code.
    Sentinels compare equal to their string code (``CellError.REF == "#REF!"``).
    """

    __slots__ = ("code",)
    _cache: dict[str, CellError] = {}

    ERROR: CellError
    REF: CellError
    DIV0: CellError
    NUM: CellError
    NAME: CellError

    def __init__(self, code: str) -> None:
        self.code = code

    @classmethod
    def of(cls, code: str) -> CellError:
        canon = code.upper()
        if canon not in cls._cache:
            cls._cache[canon] = cls(canon)
        return cls._cache[canon]

    def __repr__(self) -> str:
        return self.code

    def __str__(self) -> str:
        return self.code

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CellError):
            return self.code == other.code
        if isinstance(other, str):
            return self.code == other.upper()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.code)


# Singletons
CellError.ERROR = CellError.of("#ERROR")
CellError.REF = CellError.of("#REF!")
CellError.DIV0 = CellError.of("#DIV/0!")
CellError.NUM = CellError.of("#NUM!")
CellError.NAME = CellError.of("#NAME?")

ERROR_CODES: frozenset[str] = frozenset(CellError._cache)  # noqa: SLF001


def as_error(value: Any) -> CellError | None:
    """Return the sentinel *value* stands for, or None.

    Plain strings spelling a sentinel code count too, so a literal
    ``#REF!`` (e.g. a resolved value fed back in) propagates like one.
    """
    if isinstance(value, CellError):
        return value
    if isinstance(value, str) and value.upper() in ERROR_CODES:
        return CellError.of(value)
    return None


def is_error(value: Any) -> bool:
    return as_error(value) is not None


# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------

_INT_RE = re.compile(r"[+-]?\d+")


def get_numeric_value(value: Any) -> int | float | None:
    """Numeric value of a resolved cell, or None when it has none.

    Finite numbers are themselves; an int too large for a float is not
    finite. Non-blank strings count only when the whole (stripped) string
    is a plain ASCII decimal that converts to a finite number. Everything
    else, booleans included, has no numeric value.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            finite = math.isfinite(value)
        except OverflowError:
            return None
        return value if finite else None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if "_" in text or not text.isascii():
        return None
    try:
        num = float(text)
    except ValueError:
        return None
    if not math.isfinite(num):
        return None
    if _INT_RE.fullmatch(text):
        return int(text)
    return num


# ---------------------------------------------------------------------------
# Range aggregates. Each takes the numeric values collected from a range.
# ---------------------------------------------------------------------------


def _aggregate_sum(values: list[float]) -> float:
    return sum(values)


def _aggregate_average(values: list[float]) -> float | CellError:
    if not values:
        return CellError.DIV0
    return sum(values) / len(values)


def _aggregate_median(values: list[float]) -> float | CellError:
    if not values:
        return CellError.NUM
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


_BUILTINS: dict[str, Callable[[list[float]], Any]] = {
    "SUM": _aggregate_sum,
    "AVERAGE": _aggregate_average,
    "MEAN": _aggregate_average,
    "MEDIAN": _aggregate_median,
}


class FunctionRegistry:
    """Registry of range aggregate functions.

    Starts with SUM, AVERAGE, MEAN and MEDIAN and can be extended with
    custom aggregates taking a list of numbers.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[[list[float]], Any]] = dict(_BUILTINS)

    def register(self, name: str, func: Callable[[list[float]], Any]) -> None:
        self._functions[name.upper()] = func

    def get(self, name: str) -> Callable[[list[float]], Any] | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    def call(self, name: str, values: list[float]) -> Any:
        """Apply aggregate *name*; ``#NAME?`` when it is not registered."""
        func = self.get(name)
        if func is None:
            return CellError.NAME
        return func(values)

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())
