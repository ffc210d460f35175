"""Result dataclasses for recomputes and structural edits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from formulagrid._grid import Grid


@dataclass(frozen=True)
class CellDelta:
    """A single cell's display value change from a recompute."""

    cell_ref: str  # positional address after the edit, e.g. "B3"
    old_value: Any
    new_value: Any
    formula: str | None = None  # the formula that produced new_value


@dataclass(frozen=True)
class EditOutcome:
    """Outcome of a structural edit.

    ``grid`` is the new raw grid when ``applied`` is True, otherwise the
    unchanged input grid; ``message`` says why an edit was not applied.
    """

    grid: Grid
    applied: bool = True
    message: str = ""
    rewritten: int = 0  # formulas whose text changed


@dataclass(frozen=True)
class RecalcResult:
    """Result of a full-grid recompute."""

    deltas: tuple[CellDelta, ...]
    total_cells: int = 0
    formula_cells: int = 0
    error_cells: int = 0
    edit: EditOutcome | None = None  # the structural edit, if any

    @property
    def applied(self) -> bool:
        """False when a structural edit was refused."""
        return self.edit is None or self.edit.applied

    @property
    def changed(self) -> bool:
        return bool(self.deltas)

    @property
    def changed_refs(self) -> list[str]:
        return [d.cell_ref for d in self.deltas]
