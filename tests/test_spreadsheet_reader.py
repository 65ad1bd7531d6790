from __future__ import annotations

import io
import unittest

from openpyxl import Workbook

from app.parsers.spreadsheet_reader import SpreadsheetFormatError, read_spreadsheet


def _xlsx_bytes(rows: list[list[object]]) -> io.BytesIO:
    workbook = Workbook()
    worksheet = workbook.active
    for row in rows:
        worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer


class TestCsvReader(unittest.TestCase):
    def test_reads_header_and_rows(self) -> None:
        content = "\ufeffAssociate Name,Month,Week,Productivity %\nAlice,Jan,1,90%\nBob,Feb,2,0.8\n"

        sheet = read_spreadsheet(io.BytesIO(content.encode("utf-8")), filename="upload.csv")

        self.assertEqual(sheet.headers, ("Associate Name", "Month", "Week", "Productivity %"))
        self.assertEqual(sheet.rows, (("Alice", "Jan", "1", "90%"), ("Bob", "Feb", "2", "0.8")))

    def test_short_and_long_rows_are_fitted_to_headers(self) -> None:
        content = "A,B,C\n1\n1,2,3,4\n"

        sheet = read_spreadsheet(io.BytesIO(content.encode("utf-8")), filename="upload.csv")

        self.assertEqual(sheet.rows, (("1", None, None), ("1", "2", "3")))

    def test_trailing_blank_rows_and_headers_are_dropped(self) -> None:
        content = "A,B,,\n1,2,,\n,,,\n,,,\n"

        sheet = read_spreadsheet(io.BytesIO(content.encode("utf-8")), filename="upload.csv")

        self.assertEqual(sheet.headers, ("A", "B"))
        self.assertEqual(sheet.rows, (("1", "2"),))

    def test_empty_file_is_rejected(self) -> None:
        with self.assertRaises(SpreadsheetFormatError):
            read_spreadsheet(io.BytesIO(b""), filename="upload.csv")

    def test_non_utf8_is_rejected(self) -> None:
        with self.assertRaises(SpreadsheetFormatError):
            read_spreadsheet(io.BytesIO("Name\nJosé\n".encode("latin-1")), filename="upload.csv")


class TestXlsxReader(unittest.TestCase):
    def test_reads_first_worksheet(self) -> None:
        buffer = _xlsx_bytes(
            [
                ["Worker ID", "DA ID", "Overall Reliability Score"],
                [1001, "DA001", 0.95],
                [None, None, None],
            ]
        )

        sheet = read_spreadsheet(buffer, filename="Reliability.XLSX")

        self.assertEqual(sheet.headers, ("Worker ID", "DA ID", "Overall Reliability Score"))
        self.assertEqual(sheet.rows, ((1001, "DA001", 0.95),))

    def test_corrupt_workbook_is_rejected(self) -> None:
        with self.assertRaises(SpreadsheetFormatError):
            read_spreadsheet(io.BytesIO(b"not a zip archive"), filename="upload.xlsx")


if __name__ == "__main__":
    unittest.main()
