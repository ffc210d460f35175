"""Grid model: ordered rows with stable ids, letter-named columns.

A row's *position* (1-based) is its index in ``Grid.rows`` plus one and is
what formulas address; its ``id`` never changes.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from formulagrid._utils import column_name, parse_cell_id

DEFAULT_ROW_HEIGHT = 26
DEFAULT_COLUMN_WIDTH = 150
DEFAULT_ROWS = 20
DEFAULT_COLUMNS = 10

# Row-record keys that are not cell fields.
ID_KEY = "id"
HEIGHT_KEY = "_height"


@dataclass
class Column:
    """A column definition; ``field`` is its letter name (A, B, ..., AA)."""

    field: str
    header_name: str | None = None
    width: int = DEFAULT_COLUMN_WIDTH
    editable: bool = True
    sortable: bool = False

    def __post_init__(self) -> None:
        if self.header_name is None:
            self.header_name = self.field

    def renamed(self, new_field: str) -> Column:
        """Copy of this column under a new field (header follows the field)."""
        return Column(
            field=new_field,
            header_name=new_field,
            width=self.width,
            editable=self.editable,
            sortable=self.sortable,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "headerName": self.header_name,
            "width": self.width,
            "editable": self.editable,
            "sortable": self.sortable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Column:
        return cls(
            field=data["field"],
            header_name=data.get("headerName"),
            width=data.get("width", DEFAULT_COLUMN_WIDTH),
            editable=data.get("editable", True),
            sortable=data.get("sortable", False),
        )


@dataclass
class Row:
    """A row record: stable id, display height, field -> content."""

    id: Any
    cells: dict[str, Any] = field(default_factory=dict)
    height: int = DEFAULT_ROW_HEIGHT

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {ID_KEY: self.id, HEIGHT_KEY: self.height}
        record.update(self.cells)
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Row:
        cells = {k: v for k, v in record.items() if k not in (ID_KEY, HEIGHT_KEY)}
        return cls(
            id=record[ID_KEY],
            cells=cells,
            height=record.get(HEIGHT_KEY) or DEFAULT_ROW_HEIGHT,
        )


class Grid:
    """Raw or resolved cell grid.

    Usage::

        grid = Grid.blank(n_rows=3, n_cols=2)
        grid.rows[0].cells["A"] = 1
        grid.get("A1")  # -> 1
    """

    __slots__ = ("columns", "rows")

    def __init__(self, columns: Iterable[Column] = (), rows: Iterable[Row] = ()) -> None:
        self.columns: list[Column] = list(columns)
        self.rows: list[Row] = list(rows)

    @classmethod
    def blank(cls, n_rows: int = DEFAULT_ROWS, n_cols: int = DEFAULT_COLUMNS) -> Grid:
        """Columns A.. and rows with ids 1..n_rows, every cell empty."""
        columns = [Column(column_name(i)) for i in range(n_cols)]
        rows = [
            Row(id=i + 1, cells={c.field: "" for c in columns})
            for i in range(n_rows)
        ]
        return cls(columns, rows)

    @classmethod
    def from_rows(cls, data: Iterable[Iterable[Any]]) -> Grid:
        """Build a grid from positional row lists, padding short rows."""
        values = [list(r) for r in data]
        n_cols = max((len(r) for r in values), default=0)
        grid = cls.blank(n_rows=len(values), n_cols=n_cols)
        for row, vals in zip(grid.rows, values):
            for col, val in zip(grid.columns, vals):
                row.cells[col.field] = val
        return grid

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def fields(self) -> list[str]:
        return [c.field for c in self.columns]

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.rows), len(self.columns)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def row_at(self, position: int) -> Row | None:
        """Row at a 1-based position, or None when out of range."""
        if 1 <= position <= len(self.rows):
            return self.rows[position - 1]
        return None

    def find_row(self, row_id: Any) -> Row | None:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def row_position(self, row_id: Any) -> int | None:
        """1-based position of the row with *row_id*, or None."""
        for index, row in enumerate(self.rows):
            if row.id == row_id:
                return index + 1
        return None

    def column_position(self, field_name: str) -> int | None:
        """0-based index of the column *field_name*, or None."""
        for index, col in enumerate(self.columns):
            if col.field == field_name:
                return index
        return None

    def get(self, address: str, default: Any = None) -> Any:
        """Content at a positional address like ``"B3"``."""
        parsed = parse_cell_id(address)
        if parsed is None:
            raise ValueError(f"Invalid cell address: {address!r}")
        col, position = parsed
        row = self.row_at(position)
        if row is None or col not in row.cells:
            return default
        return row.cells[col]

    def next_row_id(self) -> int:
        """One past the largest integer id, or 1 when there is none.

        Ids are opaque; non-integer ids are ignored here.
        """
        int_ids = (
            row.id for row in self.rows
            if isinstance(row.id, int) and not isinstance(row.id, bool)
        )
        return max(int_ids, default=0) + 1

    def blank_row(self, row_id: Any | None = None) -> Row:
        return Row(
            id=self.next_row_id() if row_id is None else row_id,
            cells={f: "" for f in self.fields},
        )

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def copy(self) -> Grid:
        return Grid(copy.deepcopy(self.columns), copy.deepcopy(self.rows))

    def to_records(self) -> list[dict[str, Any]]:
        """Row records (``{"id": .., "_height": .., "A": ..}``) in order."""
        return [row.to_record() for row in self.rows]

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape: ``{"columns": [...], "rawData": [...]}``."""
        return {
            "columns": [c.to_dict() for c in self.columns],
            "rawData": self.to_records(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Grid:
        columns = [Column.from_dict(c) for c in data["columns"]]
        rows = [Row.from_record(r) for r in data["rawData"]]
        return cls(columns, rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.columns == other.columns and self.rows == other.rows

    def __repr__(self) -> str:
        n_rows, n_cols = self.shape
        return f"<Grid {n_rows}x{n_cols}>"
