"""
app/parsers package marker.
"""

from app.parsers.spreadsheet_reader import Spreadsheet, SpreadsheetFormatError, read_spreadsheet

__all__ = [
    "Spreadsheet",
    "SpreadsheetFormatError",
    "read_spreadsheet",
]
