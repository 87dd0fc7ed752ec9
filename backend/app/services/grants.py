from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    InvalidAmountError,
    InvalidReasonError,
    InvalidReferralError,
    ReferrerNotFoundError,
)
from app.models.ledger_entry import LedgerEntry, LedgerStatus
from app.services.accounts import ensure_account, get_balance, increment_balance
from app.services.runtime_config import cfg_int

logger = logging.getLogger(__name__)


STARTER_REASON = "starter_grant"
REFERRER_REASON = "referral.referrer"
REFERRED_REASON = "referral.new"


@dataclass
class GrantResult:
    user_id: str
    request_id: str
    amount: int
    balance: int
    duplicate: bool = False


def grant(
    db: Session,
    user_id: str,
    amount: int,
    reason: str,
    meta: dict[str, Any] | None = None,
    request_id: str | None = None,
    now: datetime | None = None,
) -> GrantResult:
    amount = int(amount)
    if amount <= 0:
        raise InvalidAmountError(f"Invalid amount: {amount} - must be greater than 0", amount=amount)
    reason = (reason or "").strip()
    if not reason:
        raise InvalidReasonError("reason is required")
    request_id = request_id or f"grant:{uuid4()}"

    entry = LedgerEntry(
        user_id=user_id,
        request_id=request_id,
        action=reason,
        amount=amount,
        status=LedgerStatus.GRANTED.value,
        entry_metadata=(meta or None),
    )
    if now is not None:
        entry.created_at = now
    db.add(entry)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        balance = get_balance(db, user_id) or 0
        logger.info("ledger.grant.duplicate user_id=%s request_id=%s", user_id, request_id)
        return GrantResult(user_id=user_id, request_id=request_id, amount=amount, balance=balance, duplicate=True)

    increment_balance(db, user_id, amount)
    balance = get_balance(db, user_id) or 0
    db.commit()
    logger.info(
        "ledger.grant.ok user_id=%s request_id=%s reason=%s amount=%s balance=%s",
        user_id,
        request_id,
        reason,
        amount,
        balance,
    )
    return GrantResult(user_id=user_id, request_id=request_id, amount=amount, balance=balance)


def _grant_configured(
    db: Session,
    user_id: str,
    credits: int,
    reason: str,
    meta: dict[str, Any],
    request_id: str,
) -> GrantResult:
    # A bonus configured to 0 still provisions the balance row.
    if credits <= 0:
        balance = ensure_account(db, user_id)
        return GrantResult(user_id=user_id, request_id=request_id, amount=0, balance=balance)
    return grant(db, user_id, credits, reason, meta=meta, request_id=request_id)


def grant_starter_credits(db: Session, user_id: str) -> GrantResult:
    return _grant_configured(
        db,
        user_id,
        cfg_int(db, "starter_grant"),
        STARTER_REASON,
        meta={"reason": "signup"},
        request_id=f"starter:{user_id}",
    )


def grant_referral_bonuses(db: Session, referrer_id: str, new_user_id: str) -> tuple[GrantResult, GrantResult]:
    referrer_id = (referrer_id or "").strip()
    new_user_id = (new_user_id or "").strip()
    if not referrer_id or not new_user_id:
        raise InvalidReferralError("referrer_id and new_user_id are required")
    if referrer_id == new_user_id:
        raise InvalidReferralError("A user cannot refer themselves", user_id=referrer_id)
    if get_balance(db, referrer_id) is None:
        raise ReferrerNotFoundError(f"Referrer not found: {referrer_id}", referrer_id=referrer_id)

    # Request ids are keyed on the referred user, so a referral pays out once.
    referrer = _grant_configured(
        db,
        referrer_id,
        cfg_int(db, "referral_referrer_bonus"),
        REFERRER_REASON,
        meta={"reason": "referral_referrer", "new_user_id": new_user_id},
        request_id=f"referral:{new_user_id}:referrer",
    )
    referred = _grant_configured(
        db,
        new_user_id,
        cfg_int(db, "referral_new_bonus"),
        REFERRED_REASON,
        meta={"reason": "referral_new", "referrer_user_id": referrer_id},
        request_id=f"referral:{new_user_id}:new",
    )
    return referrer, referred
