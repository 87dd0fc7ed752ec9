from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import AccountNotFoundError, LedgerEntryNotFoundError
from app.models.ledger_entry import LedgerEntry, LedgerStatus
from app.models.user_balance import UserBalance
from app.services.accounts import get_balance

logger = logging.getLogger(__name__)


class FinalizeOutcome(str, enum.Enum):
    COMMIT = "commit"
    REFUND = "refund"


_TARGET_STATUS = {
    FinalizeOutcome.COMMIT: LedgerStatus.COMMITTED,
    FinalizeOutcome.REFUND: LedgerStatus.REFUNDED,
}


@dataclass
class FinalizeResult:
    request_id: str
    outcome: str
    status: str
    changed: bool
    balance: int | None
    refunded_amount: int = 0


def finalize(
    db: Session,
    user_id: str,
    request_id: str,
    outcome: FinalizeOutcome | str,
    now: datetime | None = None,
) -> FinalizeResult:
    """Settle a reservation once the downstream job's result is known.

    ``commit`` keeps the debit taken at reservation time. ``refund`` hands the
    reserved credits back. Only a ``reserved`` entry is touched; any other
    status makes the call a no-op, so a completion callback and a timeout
    sweep can both call this safely.
    """
    outcome = FinalizeOutcome(outcome)
    now = now or datetime.now(timezone.utc)

    entry = (
        db.query(LedgerEntry)
        .filter(LedgerEntry.user_id == user_id, LedgerEntry.request_id == request_id)
        .first()
    )
    if entry is None:
        raise LedgerEntryNotFoundError(
            f"Credit transaction not found: {request_id}", request_id=request_id
        )

    entry_id = entry.id
    amount = int(entry.amount)
    if entry.status != LedgerStatus.RESERVED.value:
        logger.info(
            "ledger.finalize.noop user_id=%s request_id=%s status=%s outcome=%s",
            user_id,
            request_id,
            entry.status,
            outcome.value,
        )
        return FinalizeResult(
            request_id=request_id,
            outcome=outcome.value,
            status=entry.status,
            changed=False,
            balance=get_balance(db, user_id),
        )

    target = _TARGET_STATUS[outcome]
    updated = (
        db.query(LedgerEntry)
        .filter(LedgerEntry.id == entry_id, LedgerEntry.status == LedgerStatus.RESERVED.value)
        .update(
            {LedgerEntry.status: target.value, LedgerEntry.finalized_at: now},
            synchronize_session=False,
        )
    )
    if updated == 0:
        # Another finalizer got there between our read and this update.
        db.rollback()
        current_status = db.query(LedgerEntry.status).filter(LedgerEntry.id == entry_id).scalar()
        logger.info(
            "ledger.finalize.lost_race user_id=%s request_id=%s status=%s",
            user_id,
            request_id,
            current_status,
        )
        return FinalizeResult(
            request_id=request_id,
            outcome=outcome.value,
            status=str(current_status),
            changed=False,
            balance=get_balance(db, user_id),
        )

    refunded = 0
    if outcome is FinalizeOutcome.REFUND:
        refunded = -amount
        restored = (
            db.query(UserBalance)
            .filter(UserBalance.user_id == user_id)
            .update(
                {UserBalance.balance: UserBalance.balance + refunded, UserBalance.updated_at: func.now()},
                synchronize_session=False,
            )
        )
        if restored == 0:
            db.rollback()
            logger.error("ledger.finalize.no_account user_id=%s request_id=%s", user_id, request_id)
            raise AccountNotFoundError(f"No credit balance for user {user_id}", user_id=user_id)

    balance = get_balance(db, user_id)
    db.commit()
    logger.info(
        "ledger.finalize.ok user_id=%s request_id=%s outcome=%s refunded=%s balance=%s",
        user_id,
        request_id,
        outcome.value,
        refunded,
        balance,
    )
    return FinalizeResult(
        request_id=request_id,
        outcome=outcome.value,
        status=target.value,
        changed=True,
        balance=balance,
        refunded_amount=refunded,
    )
