"""Run history compaction on demand from the command line."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from scroll_summit.core.errors import DataIntegrityError
from scroll_summit.core.settings import settings
from scroll_summit.db.session import create_tables
from scroll_summit.main import configure_logging
from scroll_summit.services.persistence import CompactionWorker

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Fold raw height samples older than the retention window into daily summaries",
    )
    parser.add_argument(
        "--retention-hours",
        type=int,
        default=settings.raw_retention_hours,
        help="Raw retention window in hours (defaults to RAW_RETENTION_HOURS)",
    )
    args = parser.parse_args(argv)

    configure_logging()
    create_tables()
    worker = CompactionWorker(retention=timedelta(hours=args.retention_hours))
    try:
        report = worker.run_compaction_now()
    except DataIntegrityError as exc:
        logger.error("Compaction aborted: %s", exc)
        return 2
    except SQLAlchemyError as exc:
        logger.error("Compaction failed, will be retried on the next run: %s", exc)
        return 1

    print(
        f"[compact] created={report.summaries_created} merged={report.summaries_merged} "
        f"deleted_raw={report.raw_rows_deleted}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
