from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.models.ledger_entry import LedgerEntry
from app.models.user_balance import UserBalance


def get_balance(db: Session, user_id: str) -> int | None:
    value = db.query(UserBalance.balance).filter(UserBalance.user_id == user_id).scalar()
    return None if value is None else int(value)


def _dialect_insert(db: Session):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert
    if name == "sqlite":
        return sqlite_insert
    return None


def increment_balance(db: Session, user_id: str, amount: int) -> None:
    """Create the balance row with ``amount`` or add ``amount`` to it.

    Does not commit; the caller owns the transaction.
    """
    insert_fn = _dialect_insert(db)
    if insert_fn is not None:
        stmt = insert_fn(UserBalance).values(user_id=user_id, balance=amount)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserBalance.user_id],
            set_={"balance": UserBalance.balance + amount, "updated_at": func.now()},
        )
        db.execute(stmt)
        return

    updated = (
        db.query(UserBalance)
        .filter(UserBalance.user_id == user_id)
        .update(
            {UserBalance.balance: UserBalance.balance + amount, UserBalance.updated_at: func.now()},
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.add(UserBalance(user_id=user_id, balance=amount))
        db.flush()


def ensure_account(db: Session, user_id: str) -> int:
    """Provision an empty balance row if the user has none and return the balance."""
    insert_fn = _dialect_insert(db)
    if insert_fn is not None:
        stmt = insert_fn(UserBalance).values(user_id=user_id, balance=0)
        db.execute(stmt.on_conflict_do_nothing(index_elements=[UserBalance.user_id]))
    elif get_balance(db, user_id) is None:
        db.add(UserBalance(user_id=user_id, balance=0))
        db.flush()
    db.commit()
    return get_balance(db, user_id) or 0


def list_entries(db: Session, user_id: str, limit: int = 50, offset: int = 0) -> list[LedgerEntry]:
    limit = max(1, min(int(limit or 50), 200))
    offset = max(0, int(offset or 0))
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.user_id == user_id)
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
