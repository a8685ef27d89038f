"""Spreadsheet cells holding text, formulas, or nothing."""

from __future__ import annotations

from typing import Optional, Protocol, Union

from gridcalc.common import (
    ESCAPE_SIGN,
    FORMULA_SIGN,
    CircularDependencyException,
    FormulaError,
    Position,
)
from gridcalc.formula import Formula, parse_formula

CellValue = Union[str, float, FormulaError]


class CellHost(Protocol):
    """What a cell needs from the sheet that holds it."""

    def get_cell(self, pos: Position) -> Optional["Cell"]: ...

    def set_cell(self, pos: Position, text: str) -> None: ...


class _Impl:
    def text(self) -> str:
        return ""

    def value(self) -> CellValue:
        return ""

    def referenced_cells(self) -> list[Position]:
        return []

    def reset_cache(self) -> None:
        """Drop any cached value."""


class _EmptyImpl(_Impl):
    pass


class _TextImpl(_Impl):
    def __init__(self, text: str) -> None:
        self._text = text

    def text(self) -> str:
        return self._text

    def value(self) -> CellValue:
        if self._text.startswith(ESCAPE_SIGN):
            return self._text[1:]
        return self._text


class _FormulaImpl(_Impl):
    def __init__(self, formula: Formula, sheet: CellHost) -> None:
        self._formula = formula
        self._sheet = sheet
        self._cache: Optional[CellValue] = None

    def text(self) -> str:
        return FORMULA_SIGN + self._formula.expression()

    def value(self) -> CellValue:
        if self._cache is None:
            self._cache = self._formula.evaluate(self._sheet)
        return self._cache

    def referenced_cells(self) -> list[Position]:
        return self._formula.referenced_cells()

    def reset_cache(self) -> None:
        self._cache = None


class Cell:
    """One cell of a sheet: empty, plain text, or a formula."""

    def __init__(self, sheet: CellHost) -> None:
        self._sheet = sheet
        self._impl: _Impl = _EmptyImpl()
        self._dependents: set[Cell] = set()

    def set(self, text: str) -> None:
        """Set the cell's content.

        Text starting with "=" (and longer than that sign) is a formula.
        Raises FormulaException for a malformed formula and
        CircularDependencyException for one that would refer back to this
        cell; in both cases the cell is left unchanged.
        """
        impl = self._make_impl(text)
        self._check_circular(impl.referenced_cells())
        self._unlink()
        self._impl = impl
        self._link()
        self._invalidate_dependents()

    def clear(self) -> None:
        """Make the cell empty."""
        self.set("")

    def value(self) -> CellValue:
        """Return the visible value: text, a number, or a formula error."""
        return self._impl.value()

    def text(self) -> str:
        """Return the content as it would be edited."""
        return self._impl.text()

    def referenced_cells(self) -> list[Position]:
        """Return the cells the formula uses, sorted and without repeats."""
        return self._impl.referenced_cells()

    def _is_referenced(self) -> bool:
        return bool(self._dependents)

    def _make_impl(self, text: str) -> _Impl:
        if not text:
            return _EmptyImpl()
        if text.startswith(FORMULA_SIGN) and len(text) > 1:
            return _FormulaImpl(parse_formula(text[1:]), self._sheet)
        return _TextImpl(text)

    def _check_circular(self, positions: list[Position]) -> None:
        pending = list(positions)
        seen: set[Position] = set()
        while pending:
            pos = pending.pop()
            if pos in seen:
                continue
            seen.add(pos)
            cell = self._sheet.get_cell(pos)
            if cell is None:
                continue
            if cell is self:
                raise CircularDependencyException("Circular dependency")
            pending.extend(cell.referenced_cells())

    def _unlink(self) -> None:
        for pos in self._impl.referenced_cells():
            cell = self._sheet.get_cell(pos)
            if cell is not None:
                cell._dependents.discard(self)

    def _link(self) -> None:
        for pos in self._impl.referenced_cells():
            cell = self._sheet.get_cell(pos)
            if cell is None:
                self._sheet.set_cell(pos, "")
                cell = self._sheet.get_cell(pos)
            if cell is not None:
                cell._dependents.add(self)

    def _invalidate_dependents(self) -> None:
        pending = list(self._dependents)
        seen: set[Cell] = set()
        while pending:
            cell = pending.pop()
            if cell in seen:
                continue
            seen.add(cell)
            cell._impl.reset_cache()
            pending.extend(cell._dependents)