import unittest
from datetime import timedelta

from app.models.user_balance import UserBalance
from app.services.finalization import finalize
from app.services.reconciler import find_stale_reservations, sweep_stale_reservations
from app.services.reservations import reserve

from ledger_testcase import NOW, LedgerTestCase


class TestReconciler(LedgerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.fund("u1", 30)
        self.old = NOW - timedelta(minutes=30)
        self.fresh = NOW - timedelta(minutes=1)

    def test_find_stale_only_returns_old_reserved_rows(self):
        reserve(self.db, "u1", "old", "image.gen", 2, now=self.old)
        reserve(self.db, "u1", "fresh", "image.gen", 2, now=self.fresh)
        reserve(self.db, "u1", "done", "image.gen", 2, now=self.old)
        finalize(self.db, "u1", "done", "commit")

        stale = find_stale_reservations(self.db, 600, now=NOW)
        self.assertEqual([e.request_id for e in stale], ["old"])

    def test_sweep_refunds_stranded_reservations(self):
        reserve(self.db, "u1", "old-1", "image.gen", 2, now=self.old)
        reserve(self.db, "u1", "old-2", "video.gen", 5, now=self.old)
        reserve(self.db, "u1", "fresh", "image.gen", 2, now=self.fresh)
        self.assertEqual(self.balance("u1"), 21)

        report = sweep_stale_reservations(self.db, older_than_seconds=600, now=NOW)
        self.assertEqual(report.scanned, 2)
        self.assertEqual(report.refunded, 2)
        self.assertEqual(report.errors, [])
        self.assertEqual(self.balance("u1"), 28)
        self.assertEqual(self.entries("u1", "old-1")[0].status, "refunded")
        self.assertEqual(self.entries("u1", "fresh")[0].status, "reserved")
        self.assertLedgerConsistent("u1")

    def test_sweep_is_safe_to_repeat(self):
        reserve(self.db, "u1", "old", "image.gen", 2, now=self.old)
        sweep_stale_reservations(self.db, older_than_seconds=600, now=NOW)
        report = sweep_stale_reservations(self.db, older_than_seconds=600, now=NOW)
        self.assertEqual(report.scanned, 0)
        self.assertEqual(self.balance("u1"), 30)

    def test_late_callback_after_sweep_is_a_noop(self):
        reserve(self.db, "u1", "old", "image.gen", 2, now=self.old)
        sweep_stale_reservations(self.db, older_than_seconds=600, now=NOW)
        late = finalize(self.db, "u1", "old", "commit")
        self.assertFalse(late.changed)
        self.assertEqual(self.balance("u1"), 30)

    def test_missing_account_is_reported_not_raised(self):
        reserve(self.db, "u1", "old", "image.gen", 2, now=self.old)
        self.db.query(UserBalance).filter(UserBalance.user_id == "u1").delete()
        self.db.commit()

        report = sweep_stale_reservations(self.db, older_than_seconds=600, now=NOW)
        self.assertEqual(report.refunded, 0)
        self.assertEqual(report.errors, ["u1:old:ACCOUNT_NOT_FOUND"])
        self.assertEqual(self.entries("u1", "old")[0].status, "reserved")


if __name__ == "__main__":
    unittest.main()
