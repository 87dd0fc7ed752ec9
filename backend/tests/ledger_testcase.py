import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.models.app_config import AppConfig
from app.models.ledger_entry import LedgerEntry
from app.models.user_balance import UserBalance
from app.services.accounts import get_balance
from app.services.grants import grant


NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class LedgerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=self.engine, tables=[UserBalance.__table__, LedgerEntry.__table__, AppConfig.__table__])
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.db = self.SessionLocal()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def fund(self, user_id: str, amount: int) -> None:
        grant(self.db, user_id, amount, "starter_grant", now=NOW)

    def balance(self, user_id: str) -> int | None:
        self.db.expire_all()
        return get_balance(self.db, user_id)

    def entries(self, user_id: str, request_id: str | None = None) -> list[LedgerEntry]:
        self.db.expire_all()
        q = self.db.query(LedgerEntry).filter(LedgerEntry.user_id == user_id)
        if request_id is not None:
            q = q.filter(LedgerEntry.request_id == request_id)
        return q.order_by(LedgerEntry.id.asc()).all()

    def set_config(self, key: str, value) -> None:
        self.db.add(AppConfig(key=key, value=value))
        self.db.commit()

    def assertLedgerConsistent(self, user_id: str) -> None:
        # balance == sum of granted, committed and still-reserved amounts
        total = sum(
            e.amount for e in self.entries(user_id) if e.status in {"granted", "committed", "reserved"}
        )
        self.assertEqual(self.balance(user_id), total)
