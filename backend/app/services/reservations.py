from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.errors import (
    AccountNotFoundError,
    InsufficientCreditsError,
    InvalidActionError,
    InvalidAmountError,
    InvalidRequestIdError,
)
from app.core.settings import settings
from app.models.ledger_entry import LedgerEntry, LedgerStatus
from app.models.user_balance import UserBalance
from app.services.accounts import get_balance

logger = logging.getLogger(__name__)


@dataclass
class ReserveResult:
    request_id: str
    balance: int
    duplicate: bool = False


def reserve(
    db: Session,
    user_id: str,
    request_id: str,
    action: str,
    cost: int,
    meta: dict[str, Any] | None = None,
    now: datetime | None = None,
    max_attempts: int | None = None,
    backoff_ms: int | None = None,
) -> ReserveResult:
    """Hold ``cost`` credits for ``request_id`` before the expensive work starts.

    The ledger row and the debit are written in one transaction. A repeated
    call with the same ``(user_id, request_id)`` changes nothing and reports
    the user's current balance. Overdraft is prevented by a conditional
    ``UPDATE ... WHERE balance >= cost``; no application lock is taken.

    Transient store failures (lock timeouts, deadlocks, serialization
    conflicts) retry the whole transaction with exponential backoff, up to
    ``max_attempts`` times.
    """
    cost = int(cost)
    if cost <= 0:
        raise InvalidAmountError(f"Invalid cost: {cost} - must be greater than 0", cost=cost)
    if not request_id:
        raise InvalidRequestIdError("request_id is required")
    if not action:
        raise InvalidActionError("action is required")

    attempts = max(1, int(max_attempts or settings.reserve_max_attempts))
    delay = (settings.reserve_retry_backoff_ms if backoff_ms is None else backoff_ms) / 1000.0

    attempt = 1
    while True:
        try:
            return _reserve_once(db, user_id, request_id, action, cost, meta, now)
        except OperationalError as exc:
            db.rollback()
            if attempt >= attempts:
                logger.error(
                    "ledger.reserve.gave_up user_id=%s request_id=%s attempts=%s error=%s",
                    user_id,
                    request_id,
                    attempt,
                    exc.orig,
                )
                raise
            wait = delay * (2 ** (attempt - 1))
            logger.warning(
                "ledger.reserve.retry user_id=%s request_id=%s attempt=%s wait=%.3f error=%s",
                user_id,
                request_id,
                attempt,
                wait,
                exc.orig,
            )
            time.sleep(wait)
            attempt += 1


def _reserve_once(
    db: Session,
    user_id: str,
    request_id: str,
    action: str,
    cost: int,
    meta: dict[str, Any] | None,
    now: datetime | None,
) -> ReserveResult:
    entry = LedgerEntry(
        user_id=user_id,
        request_id=request_id,
        action=action,
        amount=-cost,
        status=LedgerStatus.RESERVED.value,
        entry_metadata=(meta or {"type": "reservation"}),
    )
    if now is not None:
        entry.created_at = now
    db.add(entry)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        balance = get_balance(db, user_id)
        if balance is None:
            raise AccountNotFoundError(f"No credit balance for user {user_id}", user_id=user_id)
        logger.info("ledger.reserve.duplicate user_id=%s request_id=%s balance=%s", user_id, request_id, balance)
        return ReserveResult(request_id=request_id, balance=balance, duplicate=True)

    updated = (
        db.query(UserBalance)
        .filter(UserBalance.user_id == user_id, UserBalance.balance >= cost)
        .update(
            {UserBalance.balance: UserBalance.balance - cost, UserBalance.updated_at: func.now()},
            synchronize_session=False,
        )
    )
    if updated == 0:
        current = get_balance(db, user_id)
        # Rolling back removes the reserved row inserted above.
        db.rollback()
        if current is None:
            logger.warning("ledger.reserve.no_account user_id=%s request_id=%s", user_id, request_id)
            raise AccountNotFoundError(f"No credit balance for user {user_id}", user_id=user_id)
        logger.info(
            "ledger.reserve.insufficient user_id=%s request_id=%s balance=%s cost=%s",
            user_id,
            request_id,
            current,
            cost,
        )
        raise InsufficientCreditsError(
            f"You need {cost} credits but only have {current}.",
            current_balance=current,
            required_credits=cost,
            shortfall=cost - current,
        )

    balance = get_balance(db, user_id)
    db.commit()
    logger.info(
        "ledger.reserve.ok user_id=%s request_id=%s action=%s cost=%s balance=%s",
        user_id,
        request_id,
        action,
        cost,
        balance,
    )
    return ReserveResult(request_id=request_id, balance=int(balance or 0))
