"""
tests/test_field_normalizers.py

Pure unit tests for cell-level normalizers.
"""

from __future__ import annotations

import pytest

from app.normalizers.field_normalizers import (
    MONTH_NAMES,
    cell_text,
    identifier_key,
    month_number,
    normalize_count,
    normalize_identifier,
    normalize_month,
    normalize_percentage,
    normalize_period_label,
    parse_number,
    week_number,
)


class TestNormalizeMonth:
    @pytest.mark.parametrize("month", MONTH_NAMES)
    def test_canonical_month_is_unchanged(self, month: str) -> None:
        assert normalize_month(month) == month

    @pytest.mark.parametrize("number", range(1, 13))
    def test_numbers_map_to_names(self, number: int) -> None:
        assert normalize_month(number) == MONTH_NAMES[number - 1]
        assert normalize_month(str(number)) == MONTH_NAMES[number - 1]
        assert normalize_month(float(number)) == MONTH_NAMES[number - 1]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("jan", "January"), ("SEPT", "September"), ("  dec ", "December"), ("febru", "February")],
    )
    def test_prefixes_map_to_names(self, raw: str, expected: str) -> None:
        assert normalize_month(raw) == expected

    @pytest.mark.parametrize("raw", ["ja", "13", "0", "Smarch", "2.5"])
    def test_unrecognized_input_is_returned_unchanged(self, raw: str) -> None:
        assert normalize_month(raw) == raw

    @pytest.mark.parametrize("raw", ["1e1", "3e0", "1,0", "+3"])
    def test_only_integral_digit_strings_are_month_numbers(self, raw: str) -> None:
        assert normalize_month(raw) == raw

    def test_integral_decimal_text_is_a_month_number(self) -> None:
        assert normalize_month("3.00") == "March"

    def test_blank_is_returned_unchanged(self) -> None:
        assert normalize_month(None) is None
        assert normalize_month("  ") == "  "

    def test_month_number_round_trips_canonical_names(self) -> None:
        assert month_number("March") == 3
        assert month_number("march") is None
        assert month_number(None) is None


class TestNormalizePeriodLabel:
    @pytest.mark.parametrize("week", range(1, 54))
    def test_all_observed_formats(self, week: int) -> None:
        for raw in (str(week), f"week{week}", f"week {week}", f"Week-{week}", f"WEEK_{week}"):
            assert normalize_period_label(raw) == f"Week {week}", raw

    def test_canonical_label_is_unchanged(self) -> None:
        assert normalize_period_label("Week 7") == "Week 7"

    @pytest.mark.parametrize("raw", ["week 0", "week 54", "0", "54", "fortnight"])
    def test_out_of_range_or_unparsable_is_returned_unchanged(self, raw: str) -> None:
        assert normalize_period_label(raw) == raw

    def test_spreadsheet_float_week(self) -> None:
        assert normalize_period_label(12.0) == "Week 12"

    def test_week_number(self) -> None:
        assert week_number("Week 12") == 12
        assert week_number("week 12") is None


class TestNormalizePercentage:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1.0", 100),
            ("0.85", 85),
            ("100", 100),
            ("45%", 45),
            (" 1,250 % ", 1250),
            (0.5, 50),
            (0, 0),
            ("-5", -5),
        ],
    )
    def test_rescaling(self, raw: object, expected: float) -> None:
        assert normalize_percentage(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "n/a", "abc"])
    def test_non_numeric_is_zero(self, raw: object) -> None:
        assert normalize_percentage(raw) == 0

    def test_already_normalized_value_is_stable(self) -> None:
        assert normalize_percentage(normalize_percentage("0.85")) == 85


class TestNormalizeCount:
    def test_parses_without_rescaling(self) -> None:
        assert normalize_count("0.5") == 0.5
        assert normalize_count("1,200") == 1200
        assert normalize_count("12") == 12

    def test_non_numeric_is_zero(self) -> None:
        assert normalize_count("lots") == 0


class TestIdentifiers:
    def test_trims_and_preserves_case(self) -> None:
        assert normalize_identifier("  Alice Smith ") == "Alice Smith"

    def test_integral_float_renders_without_fraction(self) -> None:
        assert normalize_identifier(1234.0) == "1234"
        assert cell_text(12.5) == "12.5"

    def test_identifier_key_case_folds(self) -> None:
        assert identifier_key(" DA001 ") == identifier_key("da001")

    def test_parse_number_rejects_bools_and_nan(self) -> None:
        assert parse_number(True) is None
        assert parse_number(float("nan")) is None
        assert parse_number("3.5%") == 3.5
