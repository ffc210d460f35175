"""Reference rewriting for structural edits.

Inserting or deleting rows and columns moves cells, so every formula's
addresses are rewritten to keep pointing at the same logical cells. An
address whose target was deleted becomes ``#REF!`` in the formula text.

Edits never mutate their input grid and never evaluate anything.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable
from typing import Any

from formulagrid._grid import Column, Grid, Row
from formulagrid._utils import column_index, column_name
from formulagrid.calc._parser import Token, address_tokens, replace_tokens
from formulagrid.calc._protocol import EditOutcome

logger = logging.getLogger(__name__)

REF_ERROR = "#REF!"

# ---------------------------------------------------------------------------
# Formula text rewriting
# ---------------------------------------------------------------------------


def _is_formula(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("=")


def _rewrite(formula: Any, fn: Callable[[Token], str | None]) -> Any:
    """Apply *fn* to every address token of a formula; other content passes."""
    if not _is_formula(formula):
        return formula
    body = formula[1:]
    return "=" + replace_tokens(body, address_tokens(body), fn)


def remap_row_references(formula: Any, mapping: dict[int, int]) -> Any:
    """Renumber row positions through *mapping*; unmapped rows become ``#REF!``."""

    def fn(tok: Token) -> str | None:
        new_row = mapping.get(tok.row)
        if new_row is None:
            return REF_ERROR
        if new_row == tok.row:
            return None
        return f"{tok.column}{new_row}"

    return _rewrite(formula, fn)


def shift_row_references(formula: Any, start: int, amount: int) -> Any:
    """Add *amount* to every row position >= *start*."""

    def fn(tok: Token) -> str | None:
        if tok.row >= start:
            return f"{tok.column}{tok.row + amount}"
        return None

    return _rewrite(formula, fn)


def remap_column_references(formula: Any, mapping: dict[int, int]) -> Any:
    """Move columns by 0-based index through *mapping*; unmapped become ``#REF!``."""

    def fn(tok: Token) -> str | None:
        old_index = column_index(tok.column)
        new_index = mapping.get(old_index)
        if new_index is None:
            return REF_ERROR
        if new_index == old_index:
            return None
        return f"{column_name(new_index)}{tok.row}"

    return _rewrite(formula, fn)


def shift_column_references(formula: Any, start: int, amount: int) -> Any:
    """Add *amount* to every 0-based column index >= *start*."""

    def fn(tok: Token) -> str | None:
        index = column_index(tok.column)
        if index >= start:
            return f"{column_name(index + amount)}{tok.row}"
        return None

    return _rewrite(formula, fn)


def _rewrite_rows(rows: Iterable[Row], fn: Callable[[Any], Any]) -> tuple[list[Row], int]:
    """Copy *rows* with *fn* applied to every formula; count changed formulas."""
    result: list[Row] = []
    changed = 0
    for row in rows:
        cells: dict[str, Any] = {}
        for field_name, content in row.cells.items():
            new_content = fn(content) if _is_formula(content) else content
            if new_content != content:
                changed += 1
            cells[field_name] = new_content
        result.append(Row(id=row.id, cells=cells, height=row.height))
    return result, changed


def _copy_columns(columns: Iterable[Column]) -> list[Column]:
    return [dataclasses.replace(c) for c in columns]


def _not_applied(grid: Grid, message: str) -> EditOutcome:
    logger.debug("Edit not applied: %s", message)
    return EditOutcome(grid=grid, applied=False, message=message)


# ---------------------------------------------------------------------------
# Row edits
# ---------------------------------------------------------------------------


def delete_rows(grid: Grid, ids: Iterable[Any]) -> EditOutcome:
    """Remove rows by id and renumber every reference to the survivors."""
    doomed = set(ids)
    if not doomed:
        return _not_applied(grid, "No rows selected")

    mapping: dict[int, int] = {}
    kept: list[Row] = []
    for position, row in enumerate(grid.rows, start=1):
        if row.id not in doomed:
            kept.append(row)
            mapping[position] = len(kept)

    if len(kept) == len(grid.rows):
        return _not_applied(grid, "No matching rows")

    rows, changed = _rewrite_rows(kept, lambda f: remap_row_references(f, mapping))
    logger.debug(
        "Deleted %d row(s), rewrote %d formula(s)", len(grid.rows) - len(kept), changed,
    )
    return EditOutcome(grid=Grid(_copy_columns(grid.columns), rows), rewritten=changed)


def insert_row_at(grid: Grid, anchor_id: Any, offset: int) -> EditOutcome:
    """Insert a blank row above (offset 0) or below (offset 1) the anchor row."""
    if offset not in (0, 1):
        return _not_applied(grid, f"Invalid offset {offset!r}")
    position = grid.row_position(anchor_id)
    if position is None:
        return _not_applied(grid, f"Row {anchor_id!r} does not exist")

    index = position - 1 + offset  # 0-based slot of the new row
    rows, changed = _rewrite_rows(grid.rows, lambda f: shift_row_references(f, index + 1, 1))
    rows.insert(index, grid.blank_row())
    logger.debug("Inserted row at position %d, rewrote %d formula(s)", index + 1, changed)
    return EditOutcome(grid=Grid(_copy_columns(grid.columns), rows), rewritten=changed)


def append_row(grid: Grid) -> EditOutcome:
    """Add a blank row after the last one; no reference moves."""
    rows, _ = _rewrite_rows(grid.rows, lambda f: f)
    rows.append(grid.blank_row())
    return EditOutcome(grid=Grid(_copy_columns(grid.columns), rows))


# ---------------------------------------------------------------------------
# Column edits
# ---------------------------------------------------------------------------


def _remap_fields(
    rows: Iterable[Row], field_map: dict[str, str], blank: str | None = None,
) -> list[Row]:
    """Rename cell fields through *field_map*, dropping unmapped ones."""
    result: list[Row] = []
    for row in rows:
        cells = {new: row.cells[old] for old, new in field_map.items() if old in row.cells}
        if blank is not None:
            cells[blank] = ""
        result.append(Row(id=row.id, cells=cells, height=row.height))
    return result


def insert_column_at(grid: Grid, anchor_field: str, offset: int) -> EditOutcome:
    """Insert a blank column left (offset 0) or right (offset 1) of the anchor.

    Columns from the insertion point onward take the next letter name.
    """
    if offset not in (0, 1):
        return _not_applied(grid, f"Invalid offset {offset!r}")
    anchor = grid.column_position(anchor_field)
    if anchor is None:
        return _not_applied(grid, f"Column {anchor_field!r} does not exist")

    index = anchor + offset
    rows, changed = _rewrite_rows(grid.rows, lambda f: shift_column_references(f, index, 1))

    columns: list[Column] = []
    field_map: dict[str, str] = {}
    for old_index, col in enumerate(grid.columns):
        new_index = old_index if old_index < index else old_index + 1
        new_field = column_name(new_index)
        field_map[col.field] = new_field
        columns.append(col.renamed(new_field))
    new_field = column_name(index)
    columns.insert(index, Column(new_field))

    logger.debug("Inserted column %s, rewrote %d formula(s)", new_field, changed)
    return EditOutcome(
        grid=Grid(columns, _remap_fields(rows, field_map, blank=new_field)),
        rewritten=changed,
    )


def append_column(grid: Grid) -> EditOutcome:
    """Add a blank column after the last one; no reference moves."""
    new_field = column_name(len(grid.columns))
    columns = _copy_columns(grid.columns)
    columns.append(Column(new_field))
    field_map = {c.field: c.field for c in grid.columns}
    return EditOutcome(grid=Grid(columns, _remap_fields(grid.rows, field_map, blank=new_field)))


def delete_columns(grid: Grid, fields: Iterable[str]) -> EditOutcome:
    """Remove columns by field and shift the survivors left.

    Refused when it would remove every column.
    """
    doomed = set(fields)
    if not doomed:
        return _not_applied(grid, "No columns selected")
    survivors = [(i, c) for i, c in enumerate(grid.columns) if c.field not in doomed]
    if not survivors:
        logger.warning("Cannot delete all columns.")
        return EditOutcome(grid=grid, applied=False, message="Cannot delete all columns")
    if len(survivors) == len(grid.columns):
        return _not_applied(grid, "No matching columns")

    mapping = {old_index: new_index for new_index, (old_index, _) in enumerate(survivors)}
    rows, changed = _rewrite_rows(grid.rows, lambda f: remap_column_references(f, mapping))

    columns: list[Column] = []
    field_map: dict[str, str] = {}
    for new_index, (_, col) in enumerate(survivors):
        new_field = column_name(new_index)
        field_map[col.field] = new_field
        columns.append(col.renamed(new_field))

    logger.debug(
        "Deleted %d column(s), rewrote %d formula(s)",
        len(grid.columns) - len(survivors), changed,
    )
    return EditOutcome(grid=Grid(columns, _remap_fields(rows, field_map)), rewritten=changed)
