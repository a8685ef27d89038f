"""Parsing of formula text into an expression tree, and evaluation of that tree."""

from __future__ import annotations

import enum
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Protocol, TextIO, Union

from gridcalc.common import (
    FormulaError,
    FormulaErrorCategory,
    FormulaException,
    Position,
)


class ParsingError(RuntimeError):
    """Raised when formula text cannot be lexed or parsed."""


class _CellLike(Protocol):
    def value(self) -> Union[str, float, FormulaError]: ...


class SheetLike(Protocol):
    """What evaluating a formula needs from a sheet."""

    def get_cell(self, pos: Position) -> _CellLike | None: ...


class _Precedence(enum.IntEnum):
    ADD = 0
    SUB = 1
    MUL = 2
    DIV = 3
    UNARY = 4
    ATOM = 5


# A bit is set when parentheses are needed around a child of the given
# precedence: _LEFT for a left (or only) child, _RIGHT for a right child.
_NONE = 0b00
_LEFT = 0b01
_RIGHT = 0b10
_BOTH = _LEFT | _RIGHT

_PRECEDENCE_RULES: dict[_Precedence, tuple[int, ...]] = {
    _Precedence.ADD: (_NONE, _NONE, _NONE, _NONE, _NONE, _NONE),
    _Precedence.SUB: (_RIGHT, _RIGHT, _NONE, _NONE, _NONE, _NONE),
    _Precedence.MUL: (_BOTH, _BOTH, _NONE, _NONE, _NONE, _NONE),
    _Precedence.DIV: (_BOTH, _BOTH, _RIGHT, _RIGHT, _NONE, _NONE),
    _Precedence.UNARY: (_BOTH, _BOTH, _NONE, _NONE, _NONE, _NONE),
    _Precedence.ATOM: (_NONE, _NONE, _NONE, _NONE, _NONE, _NONE),
}

_BINARY_PRECEDENCE = {
    "+": _Precedence.ADD,
    "-": _Precedence.SUB,
    "*": _Precedence.MUL,
    "/": _Precedence.DIV,
}

# A number as a text cell may hold it: leading whitespace allowed,
# nothing allowed after the number.
_CELL_NUMBER = re.compile(r"[ \t\n\r\v\f]*[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def _format_number(value: float) -> str:
    return format(value, "g")


class _Expr(ABC):
    @property
    @abstractmethod
    def precedence(self) -> _Precedence:
        """Binding strength; higher is tighter."""

    @abstractmethod
    def tree(self) -> str:
        """Return the fully parenthesised prefix form."""

    @abstractmethod
    def formula_body(self) -> str:
        """Return the infix form without surrounding parentheses."""

    @abstractmethod
    def evaluate(self, sheet: SheetLike) -> float:
        """Compute the value, raising FormulaError on failure."""

    def formula(self, parent: _Precedence, right_child: bool = False) -> str:
        mask = _RIGHT if right_child else _LEFT
        body = self.formula_body()
        if _PRECEDENCE_RULES[parent][self.precedence] & mask:
            return f"({body})"
        return body


@dataclass
class _BinaryOpExpr(_Expr):
    op: str
    lhs: _Expr
    rhs: _Expr

    @property
    def precedence(self) -> _Precedence:
        return _BINARY_PRECEDENCE[self.op]

    def tree(self) -> str:
        return f"({self.op} {self.lhs.tree()} {self.rhs.tree()})"

    def formula_body(self) -> str:
        own = self.precedence
        return self.lhs.formula(own) + self.op + self.rhs.formula(own, right_child=True)

    def evaluate(self, sheet: SheetLike) -> float:
        left = self.lhs.evaluate(sheet)
        right = self.rhs.evaluate(sheet)
        if self.op == "+":
            return left + right
        if self.op == "-":
            return left - right
        if self.op == "*":
            return left * right
        try:
            result = left / right
        except (ZeroDivisionError, OverflowError):
            raise FormulaError(FormulaErrorCategory.ARITHMETIC) from None
        if not math.isfinite(result):
            raise FormulaError(FormulaErrorCategory.ARITHMETIC)
        return result


@dataclass
class _UnaryOpExpr(_Expr):
    op: str
    operand: _Expr

    @property
    def precedence(self) -> _Precedence:
        return _Precedence.UNARY

    def tree(self) -> str:
        return f"({self.op} {self.operand.tree()})"

    def formula_body(self) -> str:
        return self.op + self.operand.formula(self.precedence)

    def evaluate(self, sheet: SheetLike) -> float:
        value = self.operand.evaluate(sheet)
        return -value if self.op == "-" else value


@dataclass
class _CellExpr(_Expr):
    pos: Position

    @property
    def precedence(self) -> _Precedence:
        return _Precedence.ATOM

    def tree(self) -> str:
        if not self.pos.is_valid():
            return FormulaError(FormulaErrorCategory.REF).to_string()
        return self.pos.to_string()

    def formula_body(self) -> str:
        return self.tree()

    def evaluate(self, sheet: SheetLike) -> float:
        cell = sheet.get_cell(self.pos)
        if cell is None:
            return 0.0
        value = cell.value()
        if isinstance(value, FormulaError):
            raise value
        if isinstance(value, str):
            if not value:
                return 0.0
            if not _CELL_NUMBER.fullmatch(value):
                raise FormulaError(FormulaErrorCategory.VALUE)
            number = float(value)
            if math.isinf(number):
                raise FormulaError(FormulaErrorCategory.VALUE)
            return number
        return float(value)


@dataclass
class _NumberExpr(_Expr):
    value: float

    @property
    def precedence(self) -> _Precedence:
        return _Precedence.ATOM

    def tree(self) -> str:
        return _format_number(self.value)

    def formula_body(self) -> str:
        return _format_number(self.value)

    def evaluate(self, sheet: SheetLike) -> float:
        return self.value


_LEXEME_PATTERN = re.compile(
    r"""
    (?P<ws>[ \t\r\n]+)
    |(?P<number>(?:[0-9]*\.[0-9]+|[0-9]+)(?:[eE][+-]?[0-9]+)?)
    |(?P<cell>[A-Z]+[0-9]+)
    |(?P<op>[-+*/()])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class _Lexeme:
    kind: str
    text: str


_END_KIND = "eof"
_END_TEXT = "<EOF>"
_END = _Lexeme(_END_KIND, _END_TEXT)


def _lex(text: str) -> list[_Lexeme]:
    lexemes: list[_Lexeme] = []
    pos = 0
    while pos < len(text):
        match = _LEXEME_PATTERN.match(text, pos)
        if match is None:
            raise ParsingError(f"Error when lexing: token recognition error at: {text[pos]!r}")
        kind = match.lastgroup
        if kind != "ws":
            lexemes.append(_Lexeme(kind, match.group()))
        pos = match.end()
    lexemes.append(_END)
    return lexemes


class _Parser:
    def __init__(self, lexemes: list[_Lexeme]) -> None:
        self._lexemes = lexemes
        self._index = 0
        self.atoms: list[tuple[_Lexeme, _Expr]] = []

    def _peek(self) -> _Lexeme:
        return self._lexemes[self._index]

    def _advance(self) -> _Lexeme:
        lexeme = self._lexemes[self._index]
        if lexeme is not _END:
            self._index += 1
        return lexeme

    def _fail(self, lexeme: _Lexeme) -> ParsingError:
        return ParsingError(f"Error when parsing: unexpected {lexeme.text!r}")

    def parse_main(self) -> _Expr:
        expr = self._additive()
        lexeme = self._peek()
        if lexeme is not _END:
            raise self._fail(lexeme)
        return expr

    def _is_op(self, lexeme: _Lexeme, ops: str) -> bool:
        return lexeme.kind == "op" and lexeme.text in ops

    def _additive(self) -> _Expr:
        expr = self._multiplicative()
        while self._is_op(self._peek(), "+-"):
            op = self._advance().text
            expr = _BinaryOpExpr(op, expr, self._multiplicative())
        return expr

    def _multiplicative(self) -> _Expr:
        expr = self._unary()
        while self._is_op(self._peek(), "*/"):
            op = self._advance().text
            expr = _BinaryOpExpr(op, expr, self._unary())
        return expr

    def _unary(self) -> _Expr:
        if self._is_op(self._peek(), "+-"):
            op = self._advance().text
            return _UnaryOpExpr(op, self._unary())
        return self._atom()

    def _atom(self) -> _Expr:
        lexeme = self._advance()
        if lexeme.kind == "number":
            node: _Expr = _NumberExpr(float(lexeme.text))
            self.atoms.append((lexeme, node))
            return node
        if lexeme.kind == "cell":
            node = _CellExpr(Position.from_string(lexeme.text))
            self.atoms.append((lexeme, node))
            return node
        if self._is_op(lexeme, "("):
            expr = self._additive()
            closing = self._advance()
            if not self._is_op(closing, ")"):
                raise self._fail(closing)
            return expr
        raise self._fail(lexeme)


class FormulaAST:
    """A parsed formula: its expression tree and the cells it mentions."""

    def __init__(self, root: _Expr, cells: Iterable[Position]) -> None:
        self._root = root
        self.cells: tuple[Position, ...] = tuple(sorted(cells))

    def execute(self, sheet: SheetLike) -> float:
        """Evaluate against ``sheet``; raises FormulaError on failure."""
        return self._root.evaluate(sheet)

    def cells_string(self) -> str:
        """Return the referenced cells, sorted, each followed by a space."""
        return "".join(f"{cell.to_string()} " for cell in self.cells)

    def tree_string(self) -> str:
        """Return the fully parenthesised prefix form of the expression."""
        return self._root.tree()

    def formula_string(self) -> str:
        """Return the expression without spaces or redundant parentheses."""
        return self._root.formula(_Precedence.ATOM)


def parse_formula_ast(text: str | TextIO) -> FormulaAST:
    """Parse formula text (a string or a readable text stream)."""
    if not isinstance(text, str):
        text = text.read()
    parser = _Parser(_lex(text))
    try:
        root = parser.parse_main()
    except RecursionError:
        raise ParsingError("Error when parsing: expression is too deeply nested") from None

    cells: list[Position] = []
    for lexeme, node in parser.atoms:
        if isinstance(node, _NumberExpr):
            if math.isinf(node.value):
                raise ParsingError(f"Invalid number: {lexeme.text}")
        elif isinstance(node, _CellExpr):
            if not node.pos.is_valid():
                raise FormulaException(f"Invalid position: {lexeme.text}")
            cells.append(node.pos)
    return FormulaAST(root, cells)