"""Import schedule rows from a CSV export.

Run:
  PYTHONPATH=backend python scripts/import_schedules_csv.py schedules.csv

Headers are case-insensitive: facultyId|facultyName|facultyEmail,
subjectId|subjectName, classSectionId|sectionId|sectionName|section, day,
time, duration. Row numbers in the report count the header as row 1.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from hrms.db.bootstrap import ensure_runtime_schema_compatibility
from hrms.db.session import SessionLocal
from hrms.services.bulk_import import BulkImportProcessor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import teaching schedules from a CSV file.")
    parser.add_argument("csv_path", type=Path, help="CSV file with one schedule entry per row")
    parser.add_argument("--encoding", default="utf-8-sig", help="file encoding (default: utf-8-sig)")
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help="exit with status 1 when any row fails",
    )
    parser.add_argument("--verbose", action="store_true", help="log each created entry")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if not args.csv_path.is_file():
        print(f"CSV file not found: {args.csv_path}", file=sys.stderr)
        return 2
    text = args.csv_path.read_text(encoding=args.encoding)

    ensure_runtime_schema_compatibility()
    with SessionLocal() as session:
        result = BulkImportProcessor(session).import_csv(text)

    print(f"Imported {result.success} row(s); {result.failed} failed.")
    for error in result.errors:
        print(f"  Row {error.row}: {error.message}")
    return 1 if args.fail_on_errors and result.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
