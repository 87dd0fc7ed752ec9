import unittest
from datetime import date, timedelta

from app.services.finalization import finalize
from app.services.quota import allowed_today, daily_cap, daily_usage, utc_day_bounds
from app.services.reservations import reserve

from ledger_testcase import NOW, LedgerTestCase


class TestDailyUsage(LedgerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.fund("u1", 100)

    def spend(self, request_id: str, cost: int, when=NOW, outcome: str | None = "commit") -> None:
        reserve(self.db, "u1", request_id, "image.gen", cost, now=when)
        if outcome:
            finalize(self.db, "u1", request_id, outcome, now=when)

    def test_only_committed_entries_count(self):
        self.spend("a", 2)
        self.spend("b", 5, outcome="refund")
        self.spend("c", 3, outcome=None)
        self.assertEqual(daily_usage(self.db, "u1", on_date=NOW.date()), 2)

    def test_usage_is_bucketed_by_utc_day(self):
        self.spend("today", 4)
        self.spend("yesterday", 7, when=NOW - timedelta(days=1))
        self.assertEqual(daily_usage(self.db, "u1", on_date=NOW.date()), 4)
        self.assertEqual(daily_usage(self.db, "u1", on_date=NOW.date() - timedelta(days=1)), 7)

    def test_other_users_are_ignored(self):
        self.fund("u2", 10)
        reserve(self.db, "u2", "x", "image.gen", 6, now=NOW)
        finalize(self.db, "u2", "x", "commit")
        self.assertEqual(daily_usage(self.db, "u1", on_date=NOW.date()), 0)

    def test_day_bounds(self):
        start, end = utc_day_bounds(date(2026, 3, 14))
        self.assertEqual(start.isoformat(), "2026-03-14T00:00:00+00:00")
        self.assertEqual(end - start, timedelta(days=1))


class TestAllowedToday(LedgerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.fund("u1", 100)

    def commit(self, request_id: str, cost: int) -> None:
        reserve(self.db, "u1", request_id, "image.gen", cost, now=NOW)
        finalize(self.db, "u1", request_id, "commit")

    def test_default_cap_is_thirty(self):
        self.assertEqual(daily_cap(self.db), 30)
        self.assertTrue(allowed_today(self.db, "u1", 30, now=NOW))
        self.assertFalse(allowed_today(self.db, "u1", 31, now=NOW))

    def test_cap_counts_committed_spend(self):
        self.commit("a", 28)
        self.assertTrue(allowed_today(self.db, "u1", 2, now=NOW))
        self.assertFalse(allowed_today(self.db, "u1", 3, now=NOW))

    def test_in_flight_reservations_do_not_count(self):
        reserve(self.db, "u1", "pending", "video.gen", 25, now=NOW)
        self.assertTrue(allowed_today(self.db, "u1", 30, now=NOW))

    def test_cap_resets_next_day(self):
        self.commit("a", 30)
        self.assertFalse(allowed_today(self.db, "u1", 1, now=NOW))
        self.assertTrue(allowed_today(self.db, "u1", 1, now=NOW + timedelta(days=1)))

    def test_cap_override_from_app_config(self):
        self.set_config("daily_cap", 5)
        self.assertEqual(daily_cap(self.db), 5)
        self.assertFalse(allowed_today(self.db, "u1", 6, now=NOW))


if __name__ == "__main__":
    unittest.main()
