"""GridEvaluator: recursive formula resolution over a positional grid.

A formula is resolved in three passes over its token stream:

1. range calls like ``SUM(A1:B5)`` are aggregated,
2. remaining single addresses are replaced by their numeric values,
3. the resulting ``+ - * / ( )`` expression is computed by a small
   recursive descent evaluator (no ``eval``).

Cycles are caught with a visited set of addresses on the active call
chain. Each branch extends its own copy, so siblings never share state.
"""

from __future__ import annotations

import copy
import logging
import math
from typing import TYPE_CHECKING, Any

from formulagrid._grid import Grid, Row
from formulagrid._utils import parse_cell_id
from formulagrid.calc._functions import (
    CellError,
    FunctionRegistry,
    as_error,
    get_numeric_value,
)
from formulagrid.calc._parser import RangeCall, Token, expand_range, find_range_calls, tokenize

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_MISSING = object()


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


class ArithmeticSyntaxError(ValueError):
    """Raised for an expression the arithmetic grammar does not accept."""


def _parse_number(text: str) -> float:
    # Literals past the float range read as inf.
    return float(text)


def _to_float(value: int | float) -> float:
    try:
        return float(value)
    except OverflowError:
        return math.copysign(math.inf, value)


def _divide(left: Any, right: Any) -> float:
    """IEEE division: ``x/0`` is +-inf and ``0/0`` is NaN."""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


class _Arithmetic:
    """Recursive descent over ``(kind, value)`` items.

    Grammar::

        expr   := term (('+' | '-') term)*
        term   := factor (('*' | '/') factor)*
        factor := ('+' | '-') factor | NUMBER | '(' expr ')'
    """

    __slots__ = ("_items", "_pos")

    def __init__(self, items: list[tuple[str, Any]]) -> None:
        self._items = items
        self._pos = 0

    def parse(self) -> Any:
        if not self._items:
            # Nothing to compute is not a number.
            return math.nan
        value = self._expr()
        if self._pos != len(self._items):
            raise ArithmeticSyntaxError(f"Unexpected {self._items[self._pos][1]!r}")
        return value

    def _peek(self) -> tuple[str | None, Any]:
        if self._pos < len(self._items):
            return self._items[self._pos]
        return (None, None)

    def _expr(self) -> Any:
        value = self._term()
        while True:
            kind, op = self._peek()
            if kind != "OP" or op not in ("+", "-"):
                return value
            self._pos += 1
            rhs = self._term()
            value = value + rhs if op == "+" else value - rhs

    def _term(self) -> Any:
        value = self._factor()
        while True:
            kind, op = self._peek()
            if kind != "OP" or op not in ("*", "/"):
                return value
            self._pos += 1
            rhs = self._factor()
            value = value * rhs if op == "*" else _divide(value, rhs)

    def _factor(self) -> Any:
        kind, value = self._peek()
        self._pos += 1
        if kind == "OP" and value in ("+", "-"):
            operand = self._factor()
            return -operand if value == "-" else operand
        if kind == "NUMBER":
            return value
        if kind == "LPAREN":
            inner = self._expr()
            closing, _ = self._peek()
            if closing != "RPAREN":
                raise ArithmeticSyntaxError("Missing ')'")
            self._pos += 1
            return inner
        if kind is None:
            raise ArithmeticSyntaxError("Unexpected end of expression")
        raise ArithmeticSyntaxError(f"Unexpected {value!r}")


def compute(items: list[tuple[str, Any]]) -> Any:
    """Evaluate arithmetic items and map the result onto a display value.

    NaN becomes ``#REF!``, infinity ``#DIV/0!``, a syntax error ``#ERROR``.
    Integral floats come back as ``int``.
    """
    try:
        result = _Arithmetic(items).parse()
    except (ArithmeticSyntaxError, RecursionError) as e:
        logger.debug("Cannot compute %r: %s", items, e)
        return CellError.ERROR
    except OverflowError:
        return CellError.DIV0

    try:
        as_float = float(result)
    except OverflowError:
        return CellError.DIV0
    if math.isnan(as_float):
        return CellError.REF
    if math.isinf(as_float):
        return CellError.DIV0
    if isinstance(result, float) and result.is_integer():
        return int(result)
    return result


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class GridEvaluator:
    """Resolves cell contents against a grid.

    Usage::

        ev = GridEvaluator(grid)
        ev.evaluate("=SUM(A1:A3)*2")
        resolved = ev.evaluate_grid()
    """

    def __init__(self, grid: Grid, functions: FunctionRegistry | None = None) -> None:
        self._grid = grid
        self._functions = functions if functions is not None else FunctionRegistry()

    @property
    def grid(self) -> Grid:
        return self._grid

    def evaluate(self, content: Any, visited: Iterable[str] = frozenset()) -> Any:
        """Resolve *content*; *visited* holds addresses already being resolved.

        Non-formula content is returned unchanged.
        """
        if not isinstance(content, str) or not content.startswith("="):
            return content
        visited = frozenset(visited)

        tokens = tokenize(content[1:].upper())

        # 1. Range calls
        calls: dict[int, RangeCall] = {}
        aggregates: dict[int, Any] = {}
        for call in find_range_calls(tokens, self._functions.supported_functions):
            value = self._eval_range_call(call, visited)
            err = as_error(value)
            if err is not None:
                return err
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                # A registered aggregate returned something non-numeric.
                value = get_numeric_value(value)
                if value is None:
                    return CellError.ERROR
            calls[call.first] = call
            aggregates[call.first] = value

        # A sentinel in the formula text (typed, or #REF! left by a
        # structural edit) stands for itself.
        for tok in tokens:
            if tok.kind == "ERROR":
                return CellError.of(tok.text)

        # 2. Single addresses, building the arithmetic item list
        items: list[tuple[str, Any]] = []
        i = 0
        while i < len(tokens):
            if i in calls:
                items.append(("NUMBER", _to_float(aggregates[i])))
                i = calls[i].last + 1
                continue
            tok = tokens[i]
            if tok.kind == "ADDRESS":
                value = self._eval_reference(tok, visited)
                err = as_error(value)
                if err is not None:
                    return err
                items.append(("NUMBER", _to_float(value)))
            elif tok.kind == "NUMBER":
                items.append(("NUMBER", _parse_number(tok.text)))
            elif tok.kind in ("OP", "LPAREN", "RPAREN"):
                items.append((tok.kind, tok.text))
            else:
                items.append(("BAD", tok.text))
            i += 1

        # 3. Arithmetic
        return compute(items)

    def evaluate_cell(self, address: str) -> Any:
        """Resolve the cell at *address* as a top-level evaluation."""
        ref = self._canonical(address)
        content = self._content(ref)
        if content is _MISSING:
            return None
        return self._evaluate_top(content, ref)

    def evaluate_grid(self) -> Grid:
        """Resolved grid: same columns, ids and heights, values in place of content."""
        rows: list[Row] = []
        for position, row in enumerate(self._grid.rows, start=1):
            cells = {
                field_name: self._evaluate_top(content, f"{field_name}{position}")
                for field_name, content in row.cells.items()
            }
            rows.append(Row(id=row.id, cells=cells, height=row.height))
        return Grid(copy.deepcopy(self._grid.columns), rows)

    def _evaluate_top(self, content: Any, address: str) -> Any:
        try:
            return self.evaluate(content, frozenset({address}))
        except RecursionError:
            logger.warning("Reference chain from %s is too deep to resolve", address)
            return CellError.ERROR

    # ------------------------------------------------------------------
    # Reference resolution
    # ------------------------------------------------------------------

    def _eval_range_call(self, call: RangeCall, visited: frozenset[str]) -> Any:
        """Aggregate the numeric values of a range.

        Text is skipped; the first error met inside the range is the result.
        """
        values: list[float] = []
        grid = self._grid
        for ref in expand_range(
            call.start.text, call.end.text,
            max_row=len(grid.rows), max_col=len(grid.columns),
        ):
            if ref in visited:
                return CellError.REF
            content = self._content(ref)
            if content is _MISSING:
                continue
            value = self.evaluate(content, visited | {ref})
            if as_error(value) is not None:
                return value
            num = get_numeric_value(value)
            if num is not None:
                values.append(_to_float(num))
        return self._functions.call(call.name, values)

    def _eval_reference(self, tok: Token, visited: frozenset[str]) -> Any:
        """Numeric value of a single address; text and empty cells count as 0."""
        ref = f"{tok.column}{tok.row}"
        if ref in visited:
            return CellError.REF
        content = self._content(ref)
        if content is _MISSING:
            return 0
        value = self.evaluate(content, visited | {ref})
        if as_error(value) is not None:
            return value
        num = get_numeric_value(value)
        return 0 if num is None else num

    def _content(self, ref: str) -> Any:
        col, position = parse_cell_id(ref)
        row = self._grid.row_at(position)
        if row is None or col not in row.cells:
            return _MISSING
        return row.cells[col]

    @staticmethod
    def _canonical(address: str) -> str:
        parsed = parse_cell_id(address)
        if parsed is None:
            raise ValueError(f"Invalid cell address: {address!r}")
        return f"{parsed[0]}{parsed[1]}"


def evaluate(content: Any, grid: Grid, address: str | None = None) -> Any:
    """Resolve *content* against *grid*, optionally as the cell at *address*."""
    visited = frozenset({address.upper()}) if address else frozenset()
    return GridEvaluator(grid).evaluate(content, visited)


def evaluate_grid(grid: Grid, functions: FunctionRegistry | None = None) -> Grid:
    """Resolve every cell of *grid* from scratch."""
    return GridEvaluator(grid, functions).evaluate_grid()
