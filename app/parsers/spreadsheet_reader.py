"""
app/parsers/spreadsheet_reader.py

Reads uploaded CSV and XLSX files into a header row plus a row matrix.
"""

from __future__ import annotations

import csv
import io
import zipfile
from dataclasses import dataclass
from typing import Any, BinaryIO

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.normalizers.field_normalizers import cell_text, is_blank

SPREADSHEET_EXTENSIONS: tuple[str, ...] = (".csv", ".xlsx")


class SpreadsheetFormatError(ValueError):
    """
    Raised when an upload cannot be read as a spreadsheet.
    """


@dataclass(frozen=True)
class Spreadsheet:
    headers: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...]


def read_spreadsheet(file: BinaryIO, *, filename: str) -> Spreadsheet:
    """
    Dispatch on the file extension; anything that is not ``.xlsx`` is read as CSV.
    """

    if filename.strip().lower().endswith(".xlsx"):
        return read_xlsx(file)
    return read_csv(file)


def read_csv(file: BinaryIO) -> Spreadsheet:
    file.seek(0)
    text_stream = io.TextIOWrapper(file, encoding="utf-8-sig", newline="")
    try:
        reader = csv.reader(text_stream)
        matrix = [list(row) for row in reader]
    except UnicodeDecodeError as exc:
        raise SpreadsheetFormatError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise SpreadsheetFormatError(f"Invalid CSV format: {exc}") from exc
    finally:
        try:
            text_stream.detach()
        except ValueError:
            pass
    return _to_spreadsheet(matrix)


def read_xlsx(file: BinaryIO) -> Spreadsheet:
    """
    Read the first worksheet; formulas are read as their cached values.
    """

    file.seek(0)
    content = file.read()
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise SpreadsheetFormatError("Invalid XLSX file.") from exc

    try:
        if not workbook.worksheets:
            raise SpreadsheetFormatError("XLSX file has no worksheets.")
        worksheet = workbook.worksheets[0]
        matrix = [list(row) for row in worksheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
    return _to_spreadsheet(matrix)


def _to_spreadsheet(matrix: list[list[Any]]) -> Spreadsheet:
    while matrix and all(is_blank(value) for value in matrix[-1]):
        matrix.pop()
    if not matrix:
        raise SpreadsheetFormatError("Spreadsheet is empty.")

    headers = [cell_text(value) for value in matrix[0]]
    while headers and not headers[-1]:
        headers.pop()
    if not headers:
        raise SpreadsheetFormatError("Spreadsheet header row is missing.")

    width = len(headers)
    rows = []
    for raw_row in matrix[1:]:
        row = list(raw_row[:width])
        row.extend([None] * (width - len(row)))
        rows.append(tuple(row))
    return Spreadsheet(headers=tuple(headers), rows=tuple(rows))
