import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from app.core.database import Base


class LedgerStatus(str, enum.Enum):
    RESERVED = "reserved"
    COMMITTED = "committed"
    REFUNDED = "refunded"
    GRANTED = "granted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "request_id", name="uq_ledger_entries_user_request"),
        CheckConstraint(
            "status IN ('reserved', 'committed', 'refunded', 'granted')",
            name="ck_ledger_entries_status",
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    request_id = Column(String, nullable=False)
    action = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    status = Column(String, nullable=False, index=True)
    entry_metadata = Column("meta", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)
