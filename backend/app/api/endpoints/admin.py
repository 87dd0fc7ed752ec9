from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.endpoints.credits import raise_ledger_http
from app.core.database import get_db
from app.core.errors import LedgerError
from app.schemas.ledger import (
    ConfigUpdateRequest,
    GrantRequest,
    GrantResponse,
    ReferralRequest,
    ReferralResponse,
    StarterGrantRequest,
    SweepRequest,
    SweepResponse,
)
from app.services.grants import GrantResult, grant, grant_referral_bonuses, grant_starter_credits
from app.services.reconciler import sweep_stale_reservations
from app.services.runtime_config import effective_config, set_config_value


router = APIRouter()


def _grant_out(result: GrantResult) -> GrantResponse:
    return GrantResponse(
        user_id=result.user_id,
        request_id=result.request_id,
        amount=result.amount,
        balance=result.balance,
        duplicate=result.duplicate,
    )


@router.post("/admin/credits/grant", response_model=GrantResponse)
def admin_grant(body: GrantRequest, db: Session = Depends(get_db)) -> GrantResponse:
    try:
        result = grant(
            db,
            body.user_id,
            body.amount,
            body.reason,
            meta=body.meta,
            request_id=(body.request_id or None),
        )
    except LedgerError as exc:
        raise_ledger_http(exc)
    return _grant_out(result)


@router.post("/admin/credits/starter", response_model=GrantResponse)
def admin_starter_grant(body: StarterGrantRequest, db: Session = Depends(get_db)) -> GrantResponse:
    return _grant_out(grant_starter_credits(db, body.user_id))


@router.post("/admin/credits/referral", response_model=ReferralResponse)
def admin_referral(body: ReferralRequest, db: Session = Depends(get_db)) -> ReferralResponse:
    try:
        referrer, referred = grant_referral_bonuses(db, body.referrer_id, body.new_user_id)
    except LedgerError as exc:
        raise_ledger_http(exc)
    return ReferralResponse(referrer=_grant_out(referrer), referred=_grant_out(referred))


@router.post("/admin/reconcile", response_model=SweepResponse)
def admin_reconcile(body: SweepRequest | None = None, db: Session = Depends(get_db)) -> SweepResponse:
    body = body or SweepRequest()
    report = sweep_stale_reservations(db, older_than_seconds=body.older_than_seconds, limit=body.limit)
    return SweepResponse(
        cutoff=report.cutoff,
        scanned=report.scanned,
        refunded=report.refunded,
        skipped=report.skipped,
        errors=report.errors,
    )


@router.get("/admin/config")
def admin_get_config(db: Session = Depends(get_db)) -> dict:
    return effective_config(db)


@router.put("/admin/config")
def admin_set_config(body: ConfigUpdateRequest, db: Session = Depends(get_db)) -> dict:
    key = (body.key or "").strip()
    try:
        set_config_value(db, key, body.value)
    except KeyError:
        raise HTTPException(status_code=400, detail={"error": "UNKNOWN_CONFIG_KEY", "message": f"Unknown key: {key}"})
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"error": "INVALID_CONFIG_VALUE", "message": str(exc)})
    return effective_config(db)
