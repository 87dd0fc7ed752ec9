import unittest

from app.core.errors import InvalidAmountError, InvalidReasonError, InvalidReferralError, ReferrerNotFoundError
from app.services.grants import grant, grant_referral_bonuses, grant_starter_credits

from ledger_testcase import LedgerTestCase


class TestGrant(LedgerTestCase):
    def test_grant_creates_balance_row(self):
        result = grant(self.db, "u1", 25, "referral_bonus")
        self.assertEqual(result.balance, 25)
        self.assertEqual(self.balance("u1"), 25)

        rows = self.entries("u1")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].status, "granted")
        self.assertEqual(rows[0].amount, 25)
        self.assertEqual(rows[0].action, "referral_bonus")

    def test_grant_increments_existing_balance(self):
        self.fund("u1", 30)
        result = grant(self.db, "u1", 25, "referral_bonus", meta={"source": "admin"})
        self.assertEqual(result.balance, 55)
        self.assertEqual(self.entries("u1")[-1].entry_metadata, {"source": "admin"})
        self.assertLedgerConsistent("u1")

    def test_amount_must_be_positive(self):
        for amount in (0, -5):
            with self.assertRaises(InvalidAmountError):
                grant(self.db, "u1", amount, "admin_adjust")
        self.assertIsNone(self.balance("u1"))

    def test_blank_reason_is_rejected(self):
        for reason in ("", "   "):
            with self.assertRaises(InvalidReasonError):
                grant(self.db, "u1", 10, reason)
        self.assertIsNone(self.balance("u1"))

    def test_explicit_request_id_makes_grant_idempotent(self):
        grant(self.db, "u1", 10, "admin_adjust", request_id="adj-1")
        again = grant(self.db, "u1", 10, "admin_adjust", request_id="adj-1")
        self.assertTrue(again.duplicate)
        self.assertEqual(again.balance, 10)
        self.assertEqual(len(self.entries("u1")), 1)

    def test_generated_request_ids_do_not_collide(self):
        grant(self.db, "u1", 10, "admin_adjust")
        grant(self.db, "u1", 10, "admin_adjust")
        self.assertEqual(self.balance("u1"), 20)


class TestStarterGrant(LedgerTestCase):
    def test_starter_grant_uses_configured_amount_once(self):
        self.set_config("starter_grant", 40)
        first = grant_starter_credits(self.db, "u1")
        second = grant_starter_credits(self.db, "u1")
        self.assertEqual(first.amount, 40)
        self.assertTrue(second.duplicate)
        self.assertEqual(self.balance("u1"), 40)

    def test_zero_starter_grant_still_provisions_account(self):
        self.set_config("starter_grant", 0)
        result = grant_starter_credits(self.db, "u1")
        self.assertEqual(result.amount, 0)
        self.assertEqual(self.balance("u1"), 0)
        self.assertEqual(self.entries("u1"), [])


class TestReferral(LedgerTestCase):
    def test_referral_pays_both_users_once(self):
        self.fund("referrer", 30)
        referrer, referred = grant_referral_bonuses(self.db, "referrer", "newbie")
        self.assertEqual(referrer.amount, 50)
        self.assertEqual(referred.amount, 25)
        self.assertEqual(self.balance("referrer"), 80)
        self.assertEqual(self.balance("newbie"), 25)

        again_referrer, again_referred = grant_referral_bonuses(self.db, "referrer", "newbie")
        self.assertTrue(again_referrer.duplicate)
        self.assertTrue(again_referred.duplicate)
        self.assertEqual(self.balance("referrer"), 80)
        self.assertEqual(self.balance("newbie"), 25)

        meta = self.entries("referrer")[-1].entry_metadata
        self.assertEqual(meta["new_user_id"], "newbie")

    def test_self_referral_is_rejected(self):
        with self.assertRaises(InvalidReferralError):
            grant_referral_bonuses(self.db, "u1", "u1")
        self.assertIsNone(self.balance("u1"))

    def test_unknown_referrer_is_rejected(self):
        with self.assertRaises(ReferrerNotFoundError):
            grant_referral_bonuses(self.db, "no-such-user", "newbie")
        self.assertIsNone(self.balance("no-such-user"))
        self.assertIsNone(self.balance("newbie"))
        self.assertEqual(self.entries("no-such-user"), [])


if __name__ == "__main__":
    unittest.main()
