import pytest

from gridcalc.common import (
    CircularDependencyException,
    FormulaError,
    FormulaErrorCategory,
    FormulaException,
    InvalidPositionException,
    Position,
    Size,
)


@pytest.mark.parametrize("i", range(25))
def test_diagonal_positions_round_trip(i):
    name = chr(ord("A") + i) + str(i + 1)
    pos = Position(i, i)
    assert pos.to_string() == name
    assert Position.from_string(name) == pos


@pytest.mark.parametrize(
    "pos, name",
    [
        (Position(0, 0), "A1"),
        (Position(0, 1), "B1"),
        (Position(0, 25), "Z1"),
        (Position(0, 26), "AA1"),
        (Position(0, 27), "AB1"),
        (Position(0, 51), "AZ1"),
        (Position(0, 52), "BA1"),
        (Position(0, 53), "BB1"),
        (Position(0, 77), "BZ1"),
        (Position(0, 78), "CA1"),
        (Position(0, 701), "ZZ1"),
        (Position(0, 702), "AAA1"),
        (Position(136, 2), "C137"),
        (Position(Position.MAX_ROWS - 1, Position.MAX_COLS - 1), "XFD16384"),
    ],
)
def test_position_string_conversion(pos, name):
    assert pos.to_string() == name
    assert Position.from_string(name) == pos


@pytest.mark.parametrize("pos", [Position(-1, -1), Position(-10, 0), Position(1, -3)])
def test_invalid_position_to_string_is_empty(pos):
    assert pos.to_string() == ""


@pytest.mark.parametrize(
    "text",
    [
        "",
        "A",
        "1",
        "e2",
        "A0",
        "A-1",
        "A+1",
        "R2D2",
        "C3PO",
        "XFD16385",
        "XFE16384",
        "A1234567890123456789",
        "ABCDEFGHIJKLMNOPQRS8",
    ],
)
def test_string_to_position_invalid(text):
    assert not Position.from_string(text).is_valid()


def test_malformed_text_yields_none():
    assert Position.from_string("R2D2") == Position.NONE
    assert Position.from_string("") == Position.NONE
    assert Position.NONE == Position(-1, -1)


def test_str_matches_to_string():
    pos = Position(136, 2)
    assert str(pos) == pos.to_string()


def test_bounds():
    assert Position(0, 0).is_valid()
    assert Position(Position.MAX_ROWS - 1, Position.MAX_COLS - 1).is_valid()
    assert not Position(Position.MAX_ROWS, 0).is_valid()
    assert not Position(0, Position.MAX_COLS).is_valid()


def test_positions_order_by_row_then_col():
    names = ["B2", "A3", "C1", "A1", "B1"]
    ordered = sorted(Position.from_string(n) for n in names)
    assert [p.to_string() for p in ordered] == ["A1", "B1", "C1", "B2", "A3"]


def test_positions_are_hashable():
    cells = {Position.from_string("A1"), Position(0, 0), Position.from_string("B2")}
    assert len(cells) == 2


def test_size_equality():
    assert Size() == Size(0, 0)
    assert Size(2, 2) == Size(rows=2, cols=2)
    assert Size(1, 2) != Size(2, 1)


@pytest.mark.parametrize(
    "category, text",
    [
        (FormulaErrorCategory.REF, "#REF!"),
        (FormulaErrorCategory.VALUE, "#VALUE!"),
        (FormulaErrorCategory.ARITHMETIC, "#ARITHM"),
    ],
)
def test_formula_error_text(category, text):
    error = FormulaError(category)
    assert error.to_string() == text
    assert str(error) == text
    assert error.category is category


def test_formula_error_equality_by_category():
    assert FormulaError(FormulaErrorCategory.VALUE) == FormulaError(FormulaErrorCategory.VALUE)
    assert FormulaError(FormulaErrorCategory.VALUE) != FormulaError(FormulaErrorCategory.REF)
    assert len({FormulaError(FormulaErrorCategory.REF), FormulaError(FormulaErrorCategory.REF)}) == 1


def test_formula_error_can_be_raised():
    with pytest.raises(FormulaError) as info:
        raise FormulaError(FormulaErrorCategory.ARITHMETIC)
    assert info.value == FormulaError(FormulaErrorCategory.ARITHMETIC)


@pytest.mark.parametrize(
    "exc_type, base, message",
    [
        (InvalidPositionException, IndexError, "bad position"),
        (FormulaException, RuntimeError, "bad formula"),
        (CircularDependencyException, RuntimeError, "cycle"),
    ],
)
def test_exceptions_carry_messages(exc_type, base, message):
    exc = exc_type(message)
    assert str(exc) == message
    assert exc.args == (message,)
    assert issubclass(exc_type, base)