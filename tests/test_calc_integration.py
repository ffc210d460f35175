"""End-to-end properties: edits followed by recompute."""

from __future__ import annotations

from formulagrid import Grid
from formulagrid.calc import (
    CellError,
    delete_columns,
    delete_rows,
    evaluate_grid,
    insert_column_at,
    insert_row_at,
)
from formulagrid.calc._rewriter import remap_row_references


def _budget() -> Grid:
    """A1:A3 amounts, B column derived, C column summary."""
    return Grid.from_rows([
        [100, "=A1*2", "=SUM(A1:A3)"],
        [200, "=A2*2", "=AVERAGE(B1:B3)"],
        [300, "=A3*2", "=MEDIAN(A1:A3)"],
        ["note", "=B1+B2+B3", "=C1/0"],
    ])


class TestRecompute:
    def test_budget_values(self) -> None:
        v = evaluate_grid(_budget())
        assert v.get("B1") == 200
        assert v.get("C1") == 600
        assert v.get("C2") == 400
        assert v.get("C3") == 200
        assert v.get("B4") == 1200
        assert v.get("C4") is CellError.DIV0
        assert v.get("A4") == "note"


class TestRoundTrip:
    def test_identity_rewrite_then_evaluate(self) -> None:
        grid = _budget()
        n = len(grid.rows)
        identity = {p: p for p in range(1, n + 1)}
        rewritten = Grid(
            grid.columns,
            [
                type(row)(
                    id=row.id,
                    cells={k: remap_row_references(v, identity) for k, v in row.cells.items()},
                    height=row.height,
                )
                for row in grid.rows
            ],
        )
        assert rewritten == grid
        assert evaluate_grid(rewritten) == evaluate_grid(grid)

    def test_idempotent_reevaluation(self) -> None:
        resolved = evaluate_grid(_budget())
        assert evaluate_grid(resolved) == resolved

    def test_idempotent_with_plain_string_errors(self) -> None:
        resolved = evaluate_grid(_budget())
        as_text = Grid.from_dict(resolved.to_dict())
        for row in as_text.rows:
            for k, v in row.cells.items():
                if isinstance(v, CellError):
                    row.cells[k] = str(v)
        assert evaluate_grid(as_text) == resolved


class TestValuesFollowEdits:
    def test_insert_row_keeps_values(self) -> None:
        grid = _budget()
        before = evaluate_grid(grid)
        after = evaluate_grid(insert_row_at(grid, anchor_id=2, offset=0).grid)
        # Every original cell kept its value at its new position.
        assert after.get("C1") == before.get("C1")
        assert after.get("B5") == before.get("B4")
        assert after.get("C4") == before.get("C3")

    def test_insert_column_keeps_values(self) -> None:
        grid = _budget()
        before = evaluate_grid(grid)
        after = evaluate_grid(insert_column_at(grid, anchor_field="A", offset=1).grid)
        assert after.get("C4") == before.get("B4")
        assert after.get("D1") == before.get("C1")

    def test_delete_row_breaks_dependents(self) -> None:
        grid = _budget()
        after = evaluate_grid(delete_rows(grid, [2]).grid)
        assert after.get("B1") == 200
        assert after.get("B3") is CellError.REF  # was =B1+B2+B3
        assert after.get("C1") == 400  # SUM(A1:A3) became SUM(A1:A2)
        assert delete_rows(grid, [2]).grid.get("C1") == "=SUM(A1:A2)"

    def test_delete_column_breaks_dependents(self) -> None:
        grid = _budget()
        after = evaluate_grid(delete_columns(grid, ["A"]).grid)
        assert after.get("A1") is CellError.REF
        assert after.get("B1") is CellError.REF
