"""Saved-file format: JSON with ``columns`` and ``rawData`` fields."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from formulagrid._grid import DEFAULT_ROW_HEIGHT, HEIGHT_KEY, Grid

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "spreadsheet.json"


class GridFormatError(ValueError):
    """Raised when a saved document is not a valid spreadsheet."""


def normalize_filename(name: str | None) -> str:
    """Blank names become ``spreadsheet.json``; ``.json`` is appended if missing."""
    name = (name or "").strip()
    if not name:
        return DEFAULT_FILENAME
    if not name.endswith(".json"):
        name += ".json"
    return name


def dumps(grid: Grid) -> str:
    return json.dumps(grid.to_dict(), indent=2)


def from_document(document: Any) -> Grid:
    """Build a grid from a decoded document.

    Rows without a height get ``DEFAULT_ROW_HEIGHT``.
    """
    if not isinstance(document, dict):
        raise GridFormatError("Invalid spreadsheet file format.")
    if not isinstance(document.get("columns"), list) or not isinstance(document.get("rawData"), list):
        raise GridFormatError("Invalid spreadsheet file format.")
    try:
        sanitized = [
            {**row, HEIGHT_KEY: row.get(HEIGHT_KEY) or DEFAULT_ROW_HEIGHT}
            for row in document["rawData"]
        ]
        return Grid.from_dict({"columns": document["columns"], "rawData": sanitized})
    except (KeyError, TypeError, AttributeError) as e:
        raise GridFormatError(f"Invalid spreadsheet file format: {e}") from e


def loads(text: str) -> Grid:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise GridFormatError(f"Failed to parse spreadsheet: {e}") from e
    return from_document(document)


def save(grid: Grid, path: str | os.PathLike[str]) -> str:
    """Write *grid* to *path* (``.json`` appended when missing); return the path used."""
    target = os.fspath(path)
    directory, name = os.path.split(target)
    target = os.path.join(directory, normalize_filename(name))
    with open(target, "w", encoding="utf-8") as f:
        f.write(dumps(grid))
    logger.debug("Saved %r to %s", grid, target)
    return target


def load(path: str | os.PathLike[str]) -> Grid:
    with open(os.fspath(path), encoding="utf-8") as f:
        grid = loads(f.read())
    logger.debug("Loaded %r from %s", grid, path)
    return grid
