"""Set missing creator/updater on RACI matrices created before audit stamping.

Usage::

    python -m app.scripts.backfill_raci_audit <user_id>
"""

from __future__ import annotations

import argparse
import logging
from uuid import UUID

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services.raci_matrix_service import RaciMatrixService

logger = logging.getLogger("app.scripts.backfill_raci_audit")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("user_id", type=UUID, help="User recorded as creator/updater on backfilled rows.")
    args = parser.parse_args(argv)

    configure_logging(get_settings().log_level)
    session = SessionLocal()
    try:
        updated = RaciMatrixService(session).backfill_audit_fields(user_id=args.user_id)
    finally:
        session.close()

    logger.info("Backfill complete. Updated %d matrices.", updated)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
