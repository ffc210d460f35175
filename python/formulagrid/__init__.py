"""formulagrid — a cell grid whose formulas recompute on every change.

Usage::

    from formulagrid import Spreadsheet, load_spreadsheet

    sheet = Spreadsheet()
    sheet["A1"] = 1
    sheet["A2"] = 2
    sheet["A3"] = "=SUM(A1:A2)*10"
    print(sheet["A3"])        # 30

    sheet.delete_rows([1])    # A3's formula becomes =SUM(#REF!:A1)*10
    sheet.save("numbers")     # writes numbers.json

    sheet = load_spreadsheet("numbers.json")
"""

from formulagrid._grid import (
    DEFAULT_COLUMN_WIDTH,
    DEFAULT_COLUMNS,
    DEFAULT_ROW_HEIGHT,
    DEFAULT_ROWS,
    Column,
    Grid,
    Row,
)
from formulagrid._sheet import Spreadsheet, load_spreadsheet
from formulagrid._storage import GridFormatError
from formulagrid.calc import CellError, evaluate, evaluate_grid

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CellError",
    "Column",
    "DEFAULT_COLUMNS",
    "DEFAULT_COLUMN_WIDTH",
    "DEFAULT_ROWS",
    "DEFAULT_ROW_HEIGHT",
    "Grid",
    "GridFormatError",
    "Row",
    "Spreadsheet",
    "evaluate",
    "evaluate_grid",
    "load_spreadsheet",
]
