# gridcalc

A small in-memory spreadsheet engine. Cells hold plain text or arithmetic
formulas that can refer to other cells. Formula values are cached. When a
cell changes, the cached values of the formulas that depend on it are
dropped. A formula that would create a reference cycle is rejected.

## Installation

```
pip install .
```

## Usage

```python
import io

from gridcalc.common import Position
from gridcalc.sheet import create_sheet

sheet = create_sheet()
sheet.set_cell(Position.from_string("A1"), "2")
sheet.set_cell(Position.from_string("A2"), "=A1*(3+4)")

print(sheet.get_cell(Position.from_string("A2")).value())   # 14.0
print(sheet.get_cell(Position.from_string("A2")).text())    # =A1*(3+4)

out = io.StringIO()
sheet.print_values(out)
print(out.getvalue())
```

### Positions

`gridcalc.common.Position` is a zero-based `(row, col)` pair.
`Position.from_string("B3")` gives `Position(row=2, col=1)`, and
`to_string()` turns it back into `"B3"`. Malformed names give
`Position.NONE`, for which `is_valid()` is false. A sheet has
16384 × 16384 cells (`A1` to `XFD16384`).

### The sheet

`gridcalc.sheet.Sheet`, which `create_sheet()` also returns, has these methods:

- `set_cell(pos, text)` sets the contents of a cell.
- `get_cell(pos)` returns the `Cell`, or `None` if the sheet has no cell there.
- `clear_cell(pos)` empties a cell. The cell is removed unless a formula
  still refers to it.
- `printable_size()` returns a `Size(rows, cols)` that bounds every cell with
  non-empty text.
- `print_values(output)` and `print_texts(output)` write the printable area
  to a text stream. Each row is one line, and the columns are separated by
  tabs. Numbers are written in `%g` form, errors as their text, and missing
  cells as empty strings.

A formula that refers to a position with no cell creates an empty cell there.

### Cell contents

A `gridcalc.cell.Cell` has `text()`, `value()` and `referenced_cells()`.

- Text that starts with `=` and has at least one more character is a
  formula. `text()` returns it as `=` followed by the normalised expression.
- Text that starts with an apostrophe (`'`) keeps the apostrophe in
  `text()`, but `value()` does not have it. Use it to store text that begins
  with `=`.
- A missing cell, or a referenced cell with empty text, counts as zero.
- A text cell that a formula refers to must hold a number. Otherwise the
  formula evaluates to a `#VALUE!` error.
- If a referenced cell's value is an error, the formula evaluates to that
  same error.

### Formulas

Formulas support numbers, `+`, `-`, `*`, `/`, unary plus and minus,
parentheses and cell references such as `B7` or `AA12`. You can use them on
their own with `gridcalc.formula.parse_formula`:

```python
from gridcalc.formula import parse_formula

formula = parse_formula("(2*3)+A1 + A1")
formula.expression()        # '2*3+A1+A1'
formula.referenced_cells()  # [Position(row=0, col=0)]
```

`Formula.evaluate(sheet)` returns a float or a
`gridcalc.common.FormulaError`. The error's `category` is a
`FormulaErrorCategory`, and its text is one of `#REF!`, `#VALUE!` or `#ARITHM`.
A division by zero, or any division whose result is not finite, gives
`#ARITHM`.

The lower-level parser lives in `gridcalc.formula_ast`. `parse_formula_ast`
returns a `FormulaAST` that has `execute(sheet)`, `formula_string()`,
`tree_string()` (a fully parenthesised prefix form) and `cells_string()`.

### Errors

- `InvalidPositionException` (an `IndexError`) is raised for a position
  outside the sheet.
- `FormulaException` is raised for a formula that cannot be parsed, or for
  one that refers to an invalid position.
- `CircularDependencyException` is raised for a formula that would refer
  back to its own cell, directly or through other cells.

When `FormulaException` or `CircularDependencyException` is raised, the cell
keeps its previous contents.

## What it does not do

gridcalc is a library only. It has no command-line program and no
interactive editor. It cannot load or save sheets in any file format.
Formulas have no functions (such as sums) and no cell ranges.

## Running the tests

```
pip install .[test]
pytest
```