from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.ledger_entry import LedgerEntry, LedgerStatus
from app.services.runtime_config import cfg_int


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utc_day_bounds(on_date: date) -> tuple[datetime, datetime]:
    start = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def daily_cap(db: Session) -> int:
    return cfg_int(db, "daily_cap")


def daily_usage(db: Session, user_id: str, on_date: date | None = None) -> int:
    """Credits spent by ``user_id`` on a UTC calendar day.

    Only committed entries count. Reservations that are still in flight are
    left out so a slow downstream job does not eat into the user's cap.
    """
    on_date = on_date or utcnow().date()
    start, end = utc_day_bounds(on_date)
    spent = (
        db.query(func.coalesce(func.sum(-LedgerEntry.amount), 0))
        .filter(LedgerEntry.user_id == user_id)
        .filter(LedgerEntry.status == LedgerStatus.COMMITTED.value)
        .filter(LedgerEntry.created_at >= start, LedgerEntry.created_at < end)
        .scalar()
    )
    return int(spent or 0)


def allowed_today(db: Session, user_id: str, cost: int, now: datetime | None = None) -> bool:
    now = now or utcnow()
    used = daily_usage(db, user_id, on_date=now.astimezone(timezone.utc).date())
    return used + int(cost) <= daily_cap(db)
