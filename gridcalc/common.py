"""Positions, sizes and the error types shared by sheets, cells and formulas."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar

_LETTERS = 26
_MAX_POS_LETTER_COUNT = 3
_INT_MAX = 2**31 - 1
_UPPER = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ")
_DIGITS = frozenset("0123456789")

FORMULA_SIGN = "="
ESCAPE_SIGN = "'"


@dataclass(frozen=True, order=True)
class Position:
    """A zero-based cell position within a sheet."""

    row: int = 0
    col: int = 0

    MAX_ROWS: ClassVar[int] = 16384
    MAX_COLS: ClassVar[int] = 16384
    NONE: ClassVar[Position]

    def is_valid(self) -> bool:
        """Return True if the position lies inside the sheet bounds."""
        return 0 <= self.row < self.MAX_ROWS and 0 <= self.col < self.MAX_COLS

    def to_string(self) -> str:
        """Return the A1-style name of the position, or "" if it is invalid."""
        if not self.is_valid():
            return ""
        letters = []
        c = self.col
        while c >= 0:
            letters.append(chr(ord("A") + c % _LETTERS))
            c = c // _LETTERS - 1
        return "".join(reversed(letters)) + str(self.row + 1)

    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def from_string(cls, text: str) -> Position:
        """Parse an A1-style name; malformed text yields ``Position.NONE``."""
        split = len(text)
        for index, ch in enumerate(text):
            if ch not in _UPPER:
                split = index
                break
        letters, digits = text[:split], text[split:]

        if not letters or not digits:
            return cls.NONE
        if len(letters) > _MAX_POS_LETTER_COUNT:
            return cls.NONE
        if not all(ch in _DIGITS for ch in digits):
            return cls.NONE

        row = int(digits)
        if row > _INT_MAX:
            return cls.NONE

        col = 0
        for ch in letters:
            col = col * _LETTERS + (ord(ch) - ord("A") + 1)

        return cls(row - 1, col - 1)


Position.NONE = Position(-1, -1)


@dataclass(frozen=True)
class Size:
    """Dimensions of a rectangular area of cells."""

    rows: int = 0
    cols: int = 0


class FormulaErrorCategory(enum.Enum):
    """Kinds of errors that evaluating a formula can produce."""

    REF = "#REF!"
    VALUE = "#VALUE!"
    ARITHMETIC = "#ARITHM"


class FormulaError(Exception):
    """An error produced while evaluating a formula.

    It is raised during evaluation and kept as a cell's value afterwards.
    """

    def __init__(self, category: FormulaErrorCategory) -> None:
        super().__init__(category.value)
        self.category = category

    def to_string(self) -> str:
        """Return the text shown for this error."""
        return self.category.value

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"FormulaError({self.category!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FormulaError):
            return self.category == other.category
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.category)


class InvalidPositionException(IndexError):
    """Raised when a method is given a position outside the sheet."""


class FormulaException(RuntimeError):
    """Raised when a formula is syntactically incorrect."""


class CircularDependencyException(RuntimeError):
    """Raised when a formula would create a circular dependency between cells."""