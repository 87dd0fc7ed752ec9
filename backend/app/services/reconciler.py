from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app.core.errors import LedgerError
from app.core.settings import settings
from app.models.ledger_entry import LedgerEntry, LedgerStatus
from app.services.finalization import FinalizeOutcome, finalize

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    cutoff: datetime
    scanned: int = 0
    refunded: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


def find_stale_reservations(
    db: Session,
    older_than_seconds: int,
    now: datetime | None = None,
    limit: int = 500,
) -> list[LedgerEntry]:
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=int(older_than_seconds))
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.status == LedgerStatus.RESERVED.value)
        .filter(LedgerEntry.created_at < cutoff)
        .order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc())
        .limit(max(1, int(limit)))
        .all()
    )


def sweep_stale_reservations(
    db: Session,
    older_than_seconds: int | None = None,
    now: datetime | None = None,
    limit: int = 500,
) -> SweepReport:
    """Refund reservations whose job never reported back.

    Each refund goes through ``finalize`` in its own transaction, so a job
    callback that lands during the sweep simply wins or becomes a no-op.
    """
    timeout = int(older_than_seconds or settings.reservation_timeout_seconds)
    now = now or datetime.now(timezone.utc)
    report = SweepReport(cutoff=now - timedelta(seconds=timeout))

    stale = [(e.user_id, e.request_id) for e in find_stale_reservations(db, timeout, now=now, limit=limit)]
    report.scanned = len(stale)
    for user_id, request_id in stale:
        try:
            result = finalize(db, user_id, request_id, FinalizeOutcome.REFUND, now=now)
        except LedgerError as exc:
            db.rollback()
            logger.error("ledger.sweep.failed user_id=%s request_id=%s error=%s", user_id, request_id, exc.code)
            report.errors.append(f"{user_id}:{request_id}:{exc.code}")
            continue
        if result.changed:
            report.refunded += 1
        else:
            report.skipped += 1

    logger.info(
        "ledger.sweep.done scanned=%s refunded=%s skipped=%s errors=%s timeout=%s",
        report.scanned,
        report.refunded,
        report.skipped,
        len(report.errors),
        timeout,
    )
    return report
