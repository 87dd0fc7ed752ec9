from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ReserveRequest(BaseModel):
    user_id: str = Field(min_length=1)
    request_id: Optional[str] = None
    action: str = "image.gen"
    cost: Optional[int] = None
    meta: Optional[Dict[str, Any]] = None


class ReserveResponse(BaseModel):
    ok: bool = True
    request_id: str
    balance: int
    cost: int
    action: str
    duplicate: bool = False


class FinalizeRequest(BaseModel):
    user_id: str = Field(min_length=1)
    request_id: str = Field(min_length=1)
    outcome: Literal["commit", "refund"]


class FinalizeResponse(BaseModel):
    ok: bool = True
    request_id: str
    outcome: str
    status: str
    changed: bool
    balance: Optional[int] = None
    refunded_amount: int = 0


class GrantRequest(BaseModel):
    user_id: str = Field(min_length=1)
    amount: int
    reason: str = Field(min_length=1)
    meta: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None


class GrantResponse(BaseModel):
    ok: bool = True
    user_id: str
    request_id: str
    amount: int
    balance: int
    duplicate: bool = False


class StarterGrantRequest(BaseModel):
    user_id: str = Field(min_length=1)


class ReferralRequest(BaseModel):
    referrer_id: str = Field(min_length=1)
    new_user_id: str = Field(min_length=1)


class ReferralResponse(BaseModel):
    ok: bool = True
    referrer: GrantResponse
    referred: GrantResponse


class QuotaResponse(BaseModel):
    user_id: str
    allowed: bool
    cost: int
    used_today: int
    daily_cap: int


class BalanceResponse(BaseModel):
    user_id: str
    balance: int


class LedgerEntryResponse(BaseModel):
    id: int
    user_id: str
    request_id: str
    action: str
    amount: int
    status: str
    meta: Optional[Dict[str, Any]] = Field(default=None, validation_alias="entry_metadata")
    created_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class LedgerListResponse(BaseModel):
    items: List[LedgerEntryResponse]
    limit: int
    offset: int


class SweepRequest(BaseModel):
    older_than_seconds: Optional[int] = Field(default=None, gt=0)
    limit: int = Field(default=500, gt=0, le=5000)


class SweepResponse(BaseModel):
    cutoff: datetime
    scanned: int
    refunded: int
    skipped: int
    errors: List[str]


class ConfigUpdateRequest(BaseModel):
    key: str
    value: Any
