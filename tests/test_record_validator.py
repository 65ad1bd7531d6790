from __future__ import annotations

import unittest

from app.domain.ingestion import BatchMetadata, RowErrorCode
from app.domain.record_kinds import PRODUCTIVITY, RELIABILITY
from app.validators.record_validator import RecordValidator


def _reliability_fields(**overrides: object) -> dict[str, object]:
    fields: dict[str, object] = {
        "workerId": "1001",
        "daId": "DA001",
        "totalTasks": 40.0,
        "totalOpportunities": 200.0,
        "totalSegmentsMatching": 190.0,
        "totalLabelMatching": 180.0,
        "totalDefects": 4.0,
        "overallReliabilityScore": 96.5,
        "processname": "Annotation",
        "job_id": "JOB-7",
        "year": 2024,
        "month": 3,
        "period": "monthly",
    }
    fields.update(overrides)
    return fields


class TestProductivityValidation(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = RecordValidator(PRODUCTIVITY)
        self.fields = {
            "associateName": "Alice Smith",
            "month": "January",
            "week": "Week 7",
            "productivityPercentage": 85.0,
            "notes": None,
            "year": 2024,
        }

    def test_valid_row(self) -> None:
        validated, errors = self.validator.validate(fields=self.fields, index=0, record={})

        self.assertEqual(errors, [])
        self.assertEqual(validated, self.fields)

    def test_unrecognized_month(self) -> None:
        _, errors = self.validator.validate(fields={**self.fields, "month": "Smarch"}, index=2, record={"m": "Smarch"})

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].code, RowErrorCode.INVALID_VALUE)
        self.assertEqual(errors[0].field, "month")
        self.assertEqual(errors[0].index, 2)
        self.assertEqual(errors[0].record, {"m": "Smarch"})
        self.assertIn("Smarch", errors[0].error)

    def test_week_out_of_range(self) -> None:
        validated, errors = self.validator.validate(fields={**self.fields, "week": "week 54"}, index=0, record={})

        self.assertIsNone(validated)
        self.assertEqual([error.field for error in errors], ["week"])

    def test_percentage_range(self) -> None:
        _, errors = self.validator.validate(
            fields={**self.fields, "productivityPercentage": 501.0},
            index=0,
            record={},
        )

        self.assertEqual(errors[0].code, RowErrorCode.OUT_OF_RANGE)
        self.assertIn("between 0 and 500", errors[0].error)

    def test_year_bounds(self) -> None:
        _, errors = self.validator.validate(fields={**self.fields, "year": 2019}, index=0, record={})
        self.assertEqual(errors[0].code, RowErrorCode.OUT_OF_RANGE)

        _, errors = self.validator.validate(fields={**self.fields, "year": "twenty"}, index=0, record={})
        self.assertEqual(errors[0].code, RowErrorCode.INVALID_VALUE)

    def test_required_field_missing(self) -> None:
        _, errors = self.validator.validate(fields={**self.fields, "associateName": "  "}, index=0, record={})

        self.assertEqual(errors[0].code, RowErrorCode.REQUIRED_FIELD_MISSING)
        self.assertEqual(errors[0].error, "Associate Name is required.")

    def test_completely_empty_row(self) -> None:
        self.assertTrue(RecordValidator.is_completely_empty_row({"a": "", "b": None, "c": "  "}))
        self.assertTrue(RecordValidator.is_completely_empty_row(["", None]))
        self.assertFalse(RecordValidator.is_completely_empty_row({"a": "", "b": 0}))


class TestReliabilityValidation(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = RecordValidator(RELIABILITY)

    def test_counts_become_integers(self) -> None:
        validated, errors = self.validator.validate(fields=_reliability_fields(), index=0, record={})

        self.assertEqual(errors, [])
        self.assertIsNotNone(validated)
        self.assertEqual(validated["totalTasks"], 40)
        self.assertIsInstance(validated["totalTasks"], int)
        self.assertEqual(validated["overallReliabilityScore"], 96.5)

    def test_negative_count_is_out_of_range(self) -> None:
        _, errors = self.validator.validate(fields=_reliability_fields(totalDefects=-3.0), index=8, record={})

        self.assertEqual([(error.code, error.field) for error in errors], [(RowErrorCode.OUT_OF_RANGE, "totalDefects")])

    def test_fractional_count_is_rejected(self) -> None:
        _, errors = self.validator.validate(fields=_reliability_fields(totalTasks=2.5), index=0, record={})

        self.assertEqual(errors[0].code, RowErrorCode.INVALID_VALUE)
        self.assertIn("whole number", errors[0].error)

    def test_opportunities_must_be_positive(self) -> None:
        _, errors = self.validator.validate(fields=_reliability_fields(totalOpportunities=0.0), index=0, record={})

        self.assertEqual(errors[0].field, "totalOpportunities")
        self.assertIn("greater than 0", errors[0].error)

    def test_score_above_hundred(self) -> None:
        _, errors = self.validator.validate(
            fields=_reliability_fields(overallReliabilityScore=100.5),
            index=0,
            record={},
        )

        self.assertEqual(errors[0].code, RowErrorCode.OUT_OF_RANGE)

    def test_identifier_patterns(self) -> None:
        _, errors = self.validator.validate(
            fields=_reliability_fields(workerId="W-1", daId="DA 1", job_id="job 7"),
            index=0,
            record={},
        )

        self.assertEqual(sorted(error.field for error in errors), ["daId", "job_id", "workerId"])

    def test_metadata_month_must_be_calendar_month(self) -> None:
        _, errors = self.validator.validate(fields=_reliability_fields(month=13), index=0, record={})

        self.assertEqual(errors[0].field, "month")

    def test_validate_metadata_reports_missing_values(self) -> None:
        errors = self.validator.validate_metadata(BatchMetadata(scope_id="mgr-1", year=2024, month=3))

        self.assertEqual(sorted(error.field for error in errors), ["job_id", "processname"])
        self.assertTrue(all(error.index == -1 for error in errors))

    def test_validate_metadata_accepts_complete_values(self) -> None:
        metadata = BatchMetadata(
            scope_id="mgr-1",
            year=2024,
            month=3,
            attributes={"processname": "Annotation", "job_id": "JOB_7"},
        )

        self.assertEqual(self.validator.validate_metadata(metadata), [])

    def test_validate_metadata_rejects_bad_job_id(self) -> None:
        metadata = BatchMetadata(
            scope_id="mgr-1",
            year=2024,
            month=3,
            attributes={"processname": "Annotation", "job_id": "job/7"},
        )

        errors = self.validator.validate_metadata(metadata)
        self.assertEqual([(error.field, error.code) for error in errors], [("job_id", RowErrorCode.INVALID_VALUE)])


if __name__ == "__main__":
    unittest.main()
