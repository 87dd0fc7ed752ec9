from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger failures that callers are expected to handle."""

    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None, **details) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_detail(self) -> dict:
        detail = {"error": self.code, "message": self.message}
        detail.update(self.details)
        return detail


class InvalidAmountError(LedgerError):
    code = "INVALID_AMOUNT"
    status_code = 400


class InvalidActionError(LedgerError):
    code = "INVALID_ACTION"
    status_code = 400


class InsufficientCreditsError(LedgerError):
    code = "INSUFFICIENT_CREDITS"
    status_code = 402


class DailyCapExceededError(LedgerError):
    code = "DAILY_CAP_EXCEEDED"
    status_code = 429


class AccountNotFoundError(LedgerError):
    code = "ACCOUNT_NOT_FOUND"
    status_code = 404


class LedgerEntryNotFoundError(LedgerError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidReferralError(LedgerError):
    code = "INVALID_REFERRAL"
    status_code = 400


class InvalidReasonError(LedgerError):
    code = "INVALID_REASON"
    status_code = 400


class InvalidRequestIdError(LedgerError):
    code = "INVALID_REQUEST_ID"
    status_code = 400


class ReferrerNotFoundError(LedgerError):
    code = "REFERRER_NOT_FOUND"
    status_code = 404
