"""Formulas: parsed arithmetic expressions over cell values."""

from __future__ import annotations

from typing import Union

from gridcalc.common import FormulaError, FormulaException, Position
from gridcalc.formula_ast import ParsingError, SheetLike, parse_formula_ast

FormulaValue = Union[float, FormulaError]


class Formula:
    """An arithmetic expression that may refer to cells of a sheet."""

    def __init__(self, expression: str) -> None:
        try:
            self._ast = parse_formula_ast(expression)
        except ParsingError as exc:
            raise FormulaException(str(exc)) from exc

    def evaluate(self, sheet: SheetLike) -> FormulaValue:
        """Return the value of the formula on ``sheet``, or the error it produced."""
        try:
            return self._ast.execute(sheet)
        except FormulaError as error:
            return error

    def expression(self) -> str:
        """Return the expression without spaces or redundant parentheses."""
        return self._ast.formula_string()

    def referenced_cells(self) -> list[Position]:
        """Return the cells the formula uses, sorted and without repeats."""
        return sorted(set(self._ast.cells))


def parse_formula(expression: str) -> Formula:
    """Parse ``expression``; raises FormulaException if it is malformed."""
    return Formula(expression)