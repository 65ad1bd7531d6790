"""
Import one CSV or XLSX file from the command line and print the ledger.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from app.config import get_logging_settings
from app.domain.ingestion import BatchMetadata
from app.domain.record_kinds import RECORD_KINDS, UnknownRecordKindError, get_record_kind
from app.parsers.spreadsheet_reader import SpreadsheetFormatError, read_spreadsheet
from app.repositories.mapping_config_repository import MappingConfigRepository
from app.repositories.performance_record_repository import SqlRecordStore
from app.repositories.person_directory_repository import SqlPersonDirectory
from app.services.bulk_ingestion_service import (
    BatchMetadataError,
    BatchTooLargeError,
    get_bulk_ingestion_service,
)
from app.services.task_executors import InlineTaskExecutor
from app.validators.mapping_validator import MappingIncompleteError
from db.session import session_scope


def _parse_mapping(values: list[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for value in values:
        field, separator, header = value.partition("=")
        if not separator or not field.strip() or not header.strip():
            raise argparse.ArgumentTypeError(f"Expected FIELD=HEADER, got {value!r}.")
        mapping[field.strip()] = header.strip()
    return mapping


def main() -> int:
    parser = argparse.ArgumentParser(description="Import performance records from a spreadsheet.")
    parser.add_argument("kind", choices=sorted(RECORD_KINDS), help="Record kind to import.")
    parser.add_argument("path", type=Path, help="CSV or XLSX file.")
    parser.add_argument("--manager-id", required=True, help="Uploading manager id.")
    parser.add_argument("--year", default=None)
    parser.add_argument("--month", default=None)
    parser.add_argument("--period", default=None)
    parser.add_argument("--processname", default=None)
    parser.add_argument("--job-id", dest="job_id", default=None)
    parser.add_argument("--mapping-config", dest="mapping_config_name", default=None)
    parser.add_argument(
        "--map",
        dest="mapping",
        action="append",
        default=[],
        metavar="FIELD=HEADER",
        help="Manual column mapping; repeatable.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_logging_settings().level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        kind = get_record_kind(args.kind)
        manual_mapping = _parse_mapping(args.mapping)
        with args.path.open("rb") as handle:
            spreadsheet = read_spreadsheet(handle, filename=args.path.name)
    except (UnknownRecordKindError, SpreadsheetFormatError, argparse.ArgumentTypeError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    attributes = {
        name: value
        for name, value in (("processname", args.processname), ("job_id", args.job_id))
        if value is not None
    }
    metadata = BatchMetadata(
        scope_id=args.manager_id,
        year=args.year,
        month=args.month,
        period=args.period,
        attributes=attributes,
    )

    service = get_bulk_ingestion_service()
    with session_scope() as db:
        mapping_config = None
        if args.mapping_config_name:
            mapping_config = MappingConfigRepository(db).get_active(
                record_kind=kind.name,
                name=args.mapping_config_name,
                scope_id=args.manager_id,
            )
            if mapping_config is None:
                print(f"error: column mapping not found: {args.mapping_config_name}", file=sys.stderr)
                return 2
        try:
            result = service.ingest(
                kind=kind,
                headers=spreadsheet.headers,
                rows=spreadsheet.rows,
                metadata=metadata,
                directory=SqlPersonDirectory(db),
                store=SqlRecordStore(db),
                column_mapping=manual_mapping or None,
                mapping_config=mapping_config,
                executor=InlineTaskExecutor(),
            )
        except (MappingIncompleteError, BatchMetadataError) as exc:
            print(json.dumps(exc.to_dict(), indent=2, default=str), file=sys.stderr)
            return 2
        except BatchTooLargeError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2

    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if not result.failed else 1


if __name__ == "__main__":
    raise SystemExit(main())
