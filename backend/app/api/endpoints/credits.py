from __future__ import annotations

import logging
from typing import NoReturn
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import DailyCapExceededError, LedgerError
from app.schemas.ledger import (
    BalanceResponse,
    FinalizeRequest,
    FinalizeResponse,
    LedgerEntryResponse,
    LedgerListResponse,
    QuotaResponse,
    ReserveRequest,
    ReserveResponse,
)
from app.services.accounts import get_balance, list_entries
from app.services.finalization import finalize
from app.services.pricing import cost_for_action, validate_action
from app.services.quota import allowed_today, daily_cap, daily_usage
from app.services.reservations import reserve

logger = logging.getLogger(__name__)

router = APIRouter()


def raise_ledger_http(exc: LedgerError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail()) from exc


@router.post("/credits/reserve", response_model=ReserveResponse)
def reserve_credits(body: ReserveRequest, db: Session = Depends(get_db)) -> ReserveResponse:
    request_id = (body.request_id or "").strip() or str(uuid4())
    try:
        action = validate_action(db, body.action)
        cost = int(body.cost) if body.cost is not None else cost_for_action(db, action)
        if not allowed_today(db, body.user_id, cost):
            raise DailyCapExceededError(
                "Daily generation limit reached. Please try again tomorrow.",
                daily_cap=daily_cap(db),
            )
        result = reserve(db, body.user_id, request_id, action, cost, meta=body.meta)
    except LedgerError as exc:
        raise_ledger_http(exc)
    return ReserveResponse(
        request_id=result.request_id,
        balance=result.balance,
        cost=cost,
        action=action,
        duplicate=result.duplicate,
    )


@router.post("/credits/finalize", response_model=FinalizeResponse)
def finalize_credits(body: FinalizeRequest, db: Session = Depends(get_db)) -> FinalizeResponse:
    try:
        result = finalize(db, body.user_id, body.request_id, body.outcome)
    except LedgerError as exc:
        raise_ledger_http(exc)
    return FinalizeResponse(
        request_id=result.request_id,
        outcome=result.outcome,
        status=result.status,
        changed=result.changed,
        balance=result.balance,
        refunded_amount=result.refunded_amount,
    )


@router.get("/credits/{user_id}/quota", response_model=QuotaResponse)
def quota(user_id: str, cost: int = 1, db: Session = Depends(get_db)) -> QuotaResponse:
    if cost <= 0:
        raise HTTPException(status_code=400, detail={"error": "INVALID_AMOUNT", "message": "cost must be > 0"})
    return QuotaResponse(
        user_id=user_id,
        allowed=allowed_today(db, user_id, cost),
        cost=cost,
        used_today=daily_usage(db, user_id),
        daily_cap=daily_cap(db),
    )


@router.get("/credits/{user_id}/balance", response_model=BalanceResponse)
def balance(user_id: str, db: Session = Depends(get_db)) -> BalanceResponse:
    value = get_balance(db, user_id)
    if value is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "ACCOUNT_NOT_FOUND", "message": f"No credit balance for user {user_id}"},
        )
    return BalanceResponse(user_id=user_id, balance=value)


@router.get("/credits/{user_id}/ledger", response_model=LedgerListResponse)
def ledger(user_id: str, limit: int = 50, offset: int = 0, db: Session = Depends(get_db)) -> LedgerListResponse:
    limit = max(1, min(int(limit or 50), 200))
    offset = max(0, int(offset or 0))
    rows = list_entries(db, user_id, limit=limit, offset=offset)
    return LedgerListResponse(
        items=[LedgerEntryResponse.model_validate(r) for r in rows],
        limit=limit,
        offset=offset,
    )
