"""A sheet: a sparse grid of cells addressed by position."""

from __future__ import annotations

from typing import Optional, TextIO

from gridcalc.cell import Cell
from gridcalc.common import FormulaError, InvalidPositionException, Position, Size


class Sheet:
    """A table of cells that may hold text or formulas."""

    def __init__(self) -> None:
        self._cells: dict[Position, Cell] = {}

    def set_cell(self, pos: Position, text: str) -> None:
        """Set the content of the cell at ``pos``.

        Raises InvalidPositionException for a position outside the sheet,
        FormulaException for a malformed formula and
        CircularDependencyException for a formula that would form a cycle.
        """
        self._check(pos)
        cell = self._cells.get(pos)
        created = cell is None
        if cell is None:
            cell = Cell(self)
            self._cells[pos] = cell
        try:
            cell.set(text)
        except Exception:
            if created:
                del self._cells[pos]
            raise

    def get_cell(self, pos: Position) -> Optional[Cell]:
        """Return the cell at ``pos``, or None if there is none."""
        self._check(pos)
        return self._cells.get(pos)

    def clear_cell(self, pos: Position) -> None:
        """Empty the cell at ``pos``; it is removed unless a formula uses it."""
        self._check(pos)
        cell = self._cells.get(pos)
        if cell is None:
            return
        cell.clear()
        if not cell._is_referenced():
            del self._cells[pos]

    def printable_size(self) -> Size:
        """Return the bounding size of all cells with non-empty text."""
        filled = [pos for pos, cell in self._cells.items() if cell.text()]
        return Size(
            rows=max((pos.row + 1 for pos in filled), default=0),
            cols=max((pos.col + 1 for pos in filled), default=0),
        )

    def print_values(self, output: TextIO) -> None:
        """Write cell values, tab-separated, one line per row."""
        self._print(output, self._value_text)

    def print_texts(self, output: TextIO) -> None:
        """Write cell texts, tab-separated, one line per row."""
        self._print(output, lambda cell: cell.text())

    def _print(self, output: TextIO, render) -> None:
        size = self.printable_size()
        for row in range(size.rows):
            fields = []
            for col in range(size.cols):
                cell = self._cells.get(Position(row, col))
                fields.append(render(cell) if cell is not None else "")
            output.write("\t".join(fields) + "\n")

    @staticmethod
    def _value_text(cell: Cell) -> str:
        value = cell.value()
        if isinstance(value, FormulaError):
            return value.to_string()
        if isinstance(value, str):
            return value
        return format(value, "g")

    @staticmethod
    def _check(pos: Position) -> None:
        if not pos.is_valid():
            raise InvalidPositionException(f"Invalid position: ({pos.row}, {pos.col})")


def create_sheet() -> Sheet:
    """Return a new empty sheet."""
    return Sheet()