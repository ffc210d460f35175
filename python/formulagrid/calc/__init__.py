"""formulagrid.calc - Formula evaluation and reference rewriting."""

from formulagrid.calc._evaluator import GridEvaluator, evaluate, evaluate_grid
from formulagrid.calc._functions import CellError, FunctionRegistry, get_numeric_value, is_error
from formulagrid.calc._parser import Token, expand_range, formula_references, tokenize
from formulagrid.calc._protocol import CellDelta, EditOutcome, RecalcResult
from formulagrid.calc._rewriter import (
    append_column,
    append_row,
    delete_columns,
    delete_rows,
    insert_column_at,
    insert_row_at,
)

__all__ = [
    "CellDelta",
    "CellError",
    "EditOutcome",
    "FunctionRegistry",
    "GridEvaluator",
    "RecalcResult",
    "Token",
    "append_column",
    "append_row",
    "delete_columns",
    "delete_rows",
    "evaluate",
    "evaluate_grid",
    "expand_range",
    "formula_references",
    "get_numeric_value",
    "insert_column_at",
    "insert_row_at",
    "is_error",
    "tokenize",
]
