"""CLI utility to bill completed shifts that never reached the budget ledger."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from ..database import session_scope
from ..services.budget_backfill import BudgetBackfillService

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Deduct budget for completed shifts that have no ledger transaction yet. "
            "Safe to run repeatedly from cron."
        )
    )
    parser.add_argument(
        "--tenant-id",
        dest="tenant_ids",
        type=int,
        action="append",
        help="Only reconcile this tenant. Repeat to select several.",
    )
    parser.add_argument(
        "--user-id",
        type=int,
        default=None,
        help="User recorded as creator when a shift has no assigned staff member.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every shift that is billed or skipped.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    with session_scope() as db:
        report = BudgetBackfillService.run(
            db, tenant_ids=args.tenant_ids, fallback_user_id=args.user_id
        )

    for tenant_report in report.tenants:
        if tenant_report.skipped_total:
            LOGGER.warning(
                "Tenant %s: %s billed, %s skipped %s",
                tenant_report.tenant_id,
                tenant_report.processed,
                tenant_report.skipped_total,
                dict(tenant_report.skipped),
            )
        else:
            LOGGER.info(
                "Tenant %s: %s billed, nothing skipped",
                tenant_report.tenant_id,
                tenant_report.processed,
            )

    LOGGER.info(
        "Backfill finished: %s shifts billed for %s in total",
        report.processed,
        report.amount,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
