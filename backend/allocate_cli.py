from __future__ import annotations

"""Run or inspect exam room allocations from the command line.

Examples:
  python allocate_cli.py init-db
  python allocate_cli.py allocate --date 2025-05-12 --shift MORNING --created-by registrar
  python allocate_cli.py summary --date 2025-05-12 --shift MORNING

Exit codes: 0 success, 1 allocation finished with success=false,
2 invalid request, 3 storage unavailable.
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from allocation import service
from allocation.errors import DataAccessError, InvalidRequest
from core.config import settings
from core.database import ENGINE, SessionLocal, table_exists
from core.logging import setup_logging
from models import Base


logger = logging.getLogger("allocate_cli")

EXIT_OK = 0
EXIT_UNSUCCESSFUL = 1
EXIT_INVALID_REQUEST = 2
EXIT_DATA_ACCESS = 3


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _cmd_init_db(_args) -> int:
    Base.metadata.create_all(ENGINE)
    for table in sorted(Base.metadata.tables):
        print(f"{table}: {'ok' if table_exists(ENGINE, table) else 'MISSING'}")
    return EXIT_OK


def _cmd_allocate(args) -> int:
    db = SessionLocal()
    try:
        result = service.allocate(db, args.date, args.shift, created_by=args.created_by)
    finally:
        db.close()

    _print_json(result.as_dict())
    print(f"{'OK' if result.success else 'FAILED'}: {result.message}", file=sys.stderr)
    return EXIT_OK if result.success else EXIT_UNSUCCESSFUL


def _cmd_summary(args) -> int:
    db = SessionLocal()
    try:
        summary = service.allocation_summary(db, args.date, args.shift)
    finally:
        db.close()

    _print_json(asdict(summary))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Exam room allocation")
    sub = parser.add_subparsers(dest="command", required=True)

    init_db = sub.add_parser("init-db", help="Create the allocation tables if missing")
    init_db.set_defaults(func=_cmd_init_db)

    allocate = sub.add_parser("allocate", help="Allocate all eligible classes for a date and shift")
    allocate.add_argument("--date", required=True, help="Exam date (YYYY-MM-DD)")
    allocate.add_argument("--shift", required=True, help=f"One of {', '.join(settings.shift_choices)}")
    allocate.add_argument("--created-by", default=None, help="Recorded on the run and allocation rows")
    allocate.set_defaults(func=_cmd_allocate)

    summary = sub.add_parser("summary", help="Show the current allocation for a date and shift")
    summary.add_argument("--date", required=True, help="Exam date (YYYY-MM-DD)")
    summary.add_argument("--shift", required=True)
    summary.set_defaults(func=_cmd_summary)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(environment=settings.environment, log_file=settings.allocation_log_file)

    try:
        return args.func(args)
    except InvalidRequest as exc:
        print(f"INVALID REQUEST [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_INVALID_REQUEST
    except DataAccessError as exc:
        logger.error("Allocation store unavailable: %s", exc)
        print(f"DATA ACCESS ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_DATA_ACCESS


if __name__ == "__main__":
    raise SystemExit(main())
