"""Spreadsheet: raw grid, computed values and save state in one object.

Every content or structural change replaces the raw grid and recomputes
all values from scratch.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from typing import Any

from formulagrid import _storage
from formulagrid._grid import Grid
from formulagrid._utils import parse_cell_id
from formulagrid.calc import _rewriter
from formulagrid.calc._evaluator import evaluate_grid
from formulagrid.calc._functions import FunctionRegistry, is_error
from formulagrid.calc._parser import formula_references
from formulagrid.calc._protocol import CellDelta, EditOutcome, RecalcResult

logger = logging.getLogger(__name__)


def _values_differ(a: Any, b: Any, tolerance: float) -> bool:
    """Check if two display values differ beyond tolerance."""
    if a is None and b is None:
        return False
    if a is None or b is None:
        return True
    if is_error(a) or is_error(b):
        return not (is_error(a) and is_error(b) and a == b)
    if (
        isinstance(a, (int, float)) and isinstance(b, (int, float))
        and not isinstance(a, bool) and not isinstance(b, bool)
    ):
        return abs(float(a) - float(b)) > tolerance
    return type(a) is not type(b) or a != b


class Spreadsheet:
    """A formula grid with its computed values.

    Usage::

        sheet = Spreadsheet()
        sheet["A1"] = 2
        sheet["A2"] = "=A1*3"
        sheet["A2"]            # -> 6
        sheet.insert_row(1, 0) # A2's formula now reads =A2*3
        sheet.save("budget")   # writes budget.json
    """

    __slots__ = ("_grid", "_values", "_saved", "_functions", "filename", "tolerance")

    def __init__(
        self,
        grid: Grid | None = None,
        filename: str = _storage.DEFAULT_FILENAME,
        functions: FunctionRegistry | None = None,
        tolerance: float = 1e-10,
    ) -> None:
        self._grid = grid if grid is not None else Grid.blank()
        self._functions = functions if functions is not None else FunctionRegistry()
        self._values = evaluate_grid(self._grid, self._functions)
        self._saved = self._grid.to_dict()
        self.filename = filename
        self.tolerance = tolerance

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def grid(self) -> Grid:
        """The raw grid (cell contents as typed)."""
        return self._grid

    @property
    def values(self) -> Grid:
        """The computed grid, same shape as :attr:`grid`."""
        return self._values

    @property
    def is_modified(self) -> bool:
        """True when the grid differs from the last save, load or reset."""
        return self._grid.to_dict() != self._saved

    def value(self, address: str) -> Any:
        return self._values.get(address)

    def raw(self, address: str) -> Any:
        return self._grid.get(address)

    def __getitem__(self, address: str) -> Any:
        """``sheet['B3']`` -> computed value."""
        return self.value(address)

    def __setitem__(self, address: str, content: Any) -> None:
        """``sheet['B3'] = '=A1+1'`` -- set content by positional address."""
        parsed = parse_cell_id(address)
        if parsed is None:
            raise ValueError(f"Invalid cell address: {address!r}")
        field_name, position = parsed
        row = self._grid.row_at(position)
        if row is None:
            raise KeyError(f"Row {position} does not exist")
        self.set_cell(row.id, field_name, content)

    def precedents(self, address: str) -> list[str]:
        """Addresses the formula at *address* reads (ranges expanded)."""
        return formula_references(
            self.raw(address),
            self._functions.supported_functions,
            max_row=len(self._grid.rows),
            max_col=len(self._grid.columns),
        )

    # ------------------------------------------------------------------
    # Content edits
    # ------------------------------------------------------------------

    def set_cell(self, row_id: Any, field_name: str, content: Any) -> RecalcResult:
        """Replace one cell's content and recompute."""
        if self._grid.column_position(field_name) is None:
            raise KeyError(f"Column {field_name!r} does not exist")
        if self._grid.find_row(row_id) is None:
            raise KeyError(f"Row {row_id!r} does not exist")
        grid = self._grid.copy()
        grid.find_row(row_id).cells[field_name] = content
        return self._replace(grid)

    def set_row_height(self, row_ids: Iterable[Any], height: int) -> None:
        """Set the display height of rows; values are unaffected."""
        if isinstance(height, bool) or not isinstance(height, int) or height <= 0:
            raise ValueError(f"Row height must be a positive integer, got {height!r}")
        targets = set(row_ids)
        for row in self._grid.rows:
            if row.id in targets:
                row.height = height
        for row in self._values.rows:
            if row.id in targets:
                row.height = height

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def add_row(self) -> RecalcResult:
        return self._apply(_rewriter.append_row(self._grid))

    def add_column(self) -> RecalcResult:
        return self._apply(_rewriter.append_column(self._grid))

    def delete_rows(self, ids: Iterable[Any]) -> RecalcResult:
        return self._apply(_rewriter.delete_rows(self._grid, ids))

    def insert_row(self, anchor_id: Any, offset: int = 0) -> RecalcResult:
        """Insert a blank row above (0) or below (1) the anchor row."""
        return self._apply(_rewriter.insert_row_at(self._grid, anchor_id, offset))

    def insert_column(self, anchor_field: str, offset: int = 0) -> RecalcResult:
        """Insert a blank column left (0) or right (1) of the anchor column."""
        return self._apply(_rewriter.insert_column_at(self._grid, anchor_field, offset))

    def delete_columns(self, fields: Iterable[str]) -> RecalcResult:
        return self._apply(_rewriter.delete_columns(self._grid, fields))

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def _apply(self, outcome: EditOutcome) -> RecalcResult:
        if not outcome.applied:
            return RecalcResult(deltas=(), edit=outcome)
        return self._replace(outcome.grid, outcome)

    def _replace(self, grid: Grid, edit: EditOutcome | None = None) -> RecalcResult:
        old_values = self._values
        self._grid = grid
        self._values = evaluate_grid(grid, self._functions)
        return self._diff(old_values, edit)

    def _diff(self, old_values: Grid, edit: EditOutcome | None) -> RecalcResult:
        """Changes per (row id, field) between the previous and current values."""
        old_rows = {row.id: row for row in old_values.rows}
        deltas: list[CellDelta] = []
        total = formulas = errors = 0

        for position, (raw_row, row) in enumerate(zip(self._grid.rows, self._values.rows), start=1):
            old_row = old_rows.get(row.id)
            for field_name, new_val in row.cells.items():
                total += 1
                content = raw_row.cells.get(field_name)
                formula = content if isinstance(content, str) and content.startswith("=") else None
                if formula is not None:
                    formulas += 1
                if is_error(new_val):
                    errors += 1
                old_val = old_row.cells.get(field_name) if old_row is not None else None
                if _values_differ(old_val, new_val, self.tolerance):
                    deltas.append(CellDelta(
                        cell_ref=f"{field_name}{position}",
                        old_value=old_val,
                        new_value=new_val,
                        formula=formula,
                    ))

        if deltas:
            logger.debug("Recomputed %d cell(s), %d changed", total, len(deltas))
        return RecalcResult(
            deltas=tuple(deltas),
            total_cells=total,
            formula_cells=formulas,
            error_cells=errors,
            edit=edit,
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def new(self) -> None:
        """Reset to the initial blank grid."""
        self._grid = Grid.blank()
        self._values = evaluate_grid(self._grid, self._functions)
        self._saved = self._grid.to_dict()
        self.filename = _storage.DEFAULT_FILENAME

    def save(self, path: str | os.PathLike[str] | None = None) -> str:
        """Write the raw grid as JSON; returns the path written."""
        target = _storage.save(self._grid, path if path is not None else self.filename)
        self._saved = self._grid.to_dict()
        self.filename = os.path.basename(target)
        return target

    def load(self, path: str | os.PathLike[str]) -> None:
        """Replace the grid with the one saved at *path*."""
        grid = _storage.load(path)
        self._grid = grid
        self._values = evaluate_grid(grid, self._functions)
        self._saved = grid.to_dict()
        self.filename = os.path.basename(os.fspath(path))

    def __repr__(self) -> str:
        n_rows, n_cols = self._grid.shape
        return f"<Spreadsheet {self.filename!r} {n_rows}x{n_cols}>"


def load_spreadsheet(path: str | os.PathLike[str]) -> Spreadsheet:
    """Open a saved spreadsheet file."""
    sheet = Spreadsheet()
    sheet.load(path)
    return sheet
