"""Coordinate helpers: column names, cell ids and A1 conversion."""

from __future__ import annotations

import re

_CELL_ID_RE = re.compile(r"^([A-Za-z]+)(\d+)$")


def column_name(index: int) -> str:
    """Column field for a 0-based index (0 -> A, 25 -> Z, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    name = ""
    i = index
    while True:
        name = chr(65 + i % 26) + name
        i = i // 26 - 1
        if i < 0:
            return name


def column_index(name: str) -> int:
    """0-based index of a column field ('A' -> 0, 'AA' -> 26)."""
    if not name or not name.isalpha() or not name.isascii():
        raise ValueError(f"Invalid column name: {name!r}")
    index = 0
    for ch in name.upper():
        index = index * 26 + (ord(ch) - 64)
    return index - 1


def parse_cell_id(cell_id: str) -> tuple[str, int] | None:
    """Split ``"B3"`` into ``("B", 3)``; None when not a positional address."""
    m = _CELL_ID_RE.match(cell_id.strip())
    if not m:
        return None
    return m.group(1).upper(), int(m.group(2))


def a1_to_rowcol(ref: str) -> tuple[int, int]:
    """``"B3"`` -> ``(3, 2)`` (1-based row and column)."""
    parsed = parse_cell_id(ref)
    if parsed is None:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    col, row = parsed
    return row, column_index(col) + 1


def rowcol_to_a1(row: int, col: int) -> str:
    """``(3, 2)`` -> ``"B3"`` (1-based row and column)."""
    return f"{column_name(col - 1)}{row}"
