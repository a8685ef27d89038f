"""An in-memory spreadsheet with arithmetic formulas, cell references and cycle detection."""

__version__ = "0.1.0"