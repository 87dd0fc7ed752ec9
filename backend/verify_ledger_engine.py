from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import Base
from app.core.errors import InsufficientCreditsError
from app.models.ledger_entry import LedgerEntry
from app.services.accounts import get_balance
from app.services.finalization import finalize
from app.services.grants import grant
from app.services.reservations import reserve


def main() -> None:
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        user_id = "user-1"
        grant(db, user_id, 30, "starter_grant")
        assert get_balance(db, user_id) == 30

        res = reserve(db, user_id, "req-1", "image.gen", 2)
        assert res.balance == 28, res
        finalize(db, user_id, "req-1", "commit")
        assert get_balance(db, user_id) == 28

        again = reserve(db, user_id, "req-1", "image.gen", 2)
        assert again.balance == 28 and again.duplicate, again
        assert db.query(LedgerEntry).filter(LedgerEntry.request_id == "req-1").count() == 1

        res = reserve(db, user_id, "req-3", "video.gen", 5)
        assert res.balance == 23, res
        finalize(db, user_id, "req-3", "refund")
        assert get_balance(db, user_id) == 28

        grant(db, "poor", 1, "admin_adjust")
        try:
            reserve(db, "poor", "req-2", "image.gen", 2)
        except InsufficientCreditsError:
            pass
        else:
            raise AssertionError("expected INSUFFICIENT_CREDITS")
        assert get_balance(db, "poor") == 1
        assert db.query(LedgerEntry).filter(LedgerEntry.request_id == "req-2").count() == 0

        grant(db, user_id, 25, "referral_bonus")
        assert get_balance(db, user_id) == 53
    finally:
        db.close()


if __name__ == "__main__":
    main()
    print("OK")
