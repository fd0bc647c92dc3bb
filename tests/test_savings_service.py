"""Tests for member and deposit operations."""
import os
import sys
import unittest
from datetime import datetime, timezone

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cajaledger.data_structures import Loan
from cajaledger.exceptions import (
    DuplicateDepositError,
    MemberNotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from cajaledger.ledger import Ledger
from cajaledger.services import SavingsService

# Week 10 of savings year 2025
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestMembers(unittest.TestCase):

    def setUp(self):
        self.ledger = Ledger()
        self.service = SavingsService(self.ledger)

    def test_add_member(self):
        member = self.service.add_member("  Alice  ", 25, now=NOW)

        self.assertEqual(member.name, "Alice")
        self.assertEqual(member.weekly_goal, 25.0)
        self.assertEqual(member.join_date, NOW)
        self.assertEqual(member.deposits, [])
        self.assertIs(self.ledger.find_member(member.id), member)

    def test_ids_are_unique(self):
        a = self.service.add_member("A", 10)
        b = self.service.add_member("B", 10)
        self.assertNotEqual(a.id, b.id)

    def test_members_sorted_by_name(self):
        for name in ["carol", "Alice", "bob"]:
            self.service.add_member(name, 10)
        self.assertEqual([m.name for m in self.ledger.members], ["Alice", "bob", "carol"])

    def test_invalid_member_input_rejected(self):
        """Bad names and goals never create a member."""
        bad_inputs = [
            ("", 10), ("   ", 10), (None, 10),
            ("Ann", 0), ("Ann", -5), ("Ann", float("nan")), ("Ann", float("inf")), ("Ann", "10"),
        ]
        for name, goal in bad_inputs:
            with self.assertRaises(ValidationError):
                self.service.add_member(name, goal)
        self.assertEqual(self.ledger.members, [])

    def test_update_member_resorts(self):
        zed = self.service.add_member("Zed", 10)
        self.service.add_member("Mia", 10)

        updated = self.service.update_member(zed.id, "Abe", 15)

        self.assertIs(updated, zed)
        self.assertEqual(zed.weekly_goal, 15.0)
        self.assertEqual([m.name for m in self.ledger.members], ["Abe", "Mia"])

    def test_update_member_validation_leaves_member_unchanged(self):
        member = self.service.add_member("Ann", 10)
        with self.assertRaises(ValidationError):
            self.service.update_member(member.id, "Ann B", -1)
        self.assertEqual(member.name, "Ann")
        self.assertEqual(member.weekly_goal, 10.0)

    def test_update_unknown_member_is_noop(self):
        self.assertIsNone(self.service.update_member("missing", "Ann", 10))

    def test_delete_member(self):
        member = self.service.add_member("Ann", 10)
        self.service.add_deposit(member.id, 1, now=NOW)

        self.assertTrue(self.service.delete_member(member.id))
        self.assertEqual(self.ledger.members, [])
        self.assertFalse(self.service.delete_member(member.id))

    def test_delete_member_with_loans_rejected(self):
        """Loans of any status block deletion until they are removed."""
        member = self.service.add_member("Ann", 10)
        loan = Loan(id="L1", member_id=member.id, principal_amount=100,
                    loan_date=NOW, status="paid", paid_date=NOW)
        self.ledger.loans.append(loan)

        with self.assertRaises(ReferentialIntegrityError) as context:
            self.service.delete_member(member.id)
        self.assertEqual(context.exception.details['loan_count'], 1)
        self.assertEqual(len(self.ledger.members), 1)

        self.ledger.loans.remove(loan)
        self.assertTrue(self.service.delete_member(member.id))


class TestDeposits(unittest.TestCase):

    def setUp(self):
        self.ledger = Ledger()
        self.service = SavingsService(self.ledger)
        self.member = self.service.add_member("Ann", 25, now=NOW)

    def test_deposit_amount_includes_penalty(self):
        deposit = self.service.add_deposit(self.member.id, 10, penalty=5, now=NOW)

        self.assertEqual(deposit.amount, 30.0)
        self.assertEqual(deposit.penalty, 5.0)
        self.assertEqual(deposit.week_number, 10)
        self.assertEqual(deposit.year, 2025)
        self.assertEqual(deposit.date, NOW)

    def test_deposit_amount_rounded_to_cents(self):
        member = self.service.add_member("Cents", 0.1, now=NOW)

        deposit = self.service.add_deposit(member.id, 10, penalty=0.2, now=NOW)
        self.assertEqual(deposit.amount, 0.3)

        self.service.update_deposit(member.id, deposit.id, 0.7)
        self.assertEqual(deposit.amount, 0.8)

    def test_duplicate_week_rejected(self):
        self.service.add_deposit(self.member.id, 10, penalty=5, now=NOW)

        with self.assertRaises(DuplicateDepositError):
            self.service.add_deposit(self.member.id, 10, penalty=0, now=NOW)

        self.assertEqual(len(self.member.deposits), 1)
        summary = self.service.get_member_summary(self.member.id, now=NOW)
        self.assertEqual(summary.total_saved, 30.0)

    def test_same_week_in_next_savings_year_allowed(self):
        self.service.add_deposit(self.member.id, 10, now=NOW)
        deposit = self.service.add_deposit(self.member.id, 10, now=datetime(2026, 3, 10, tzinfo=timezone.utc))
        self.assertEqual(deposit.year, 2026)
        self.assertEqual(len(self.member.deposits), 2)

    def test_deposits_sorted_by_year_then_week(self):
        self.service.add_deposit(self.member.id, 12, now=NOW)
        self.service.add_deposit(self.member.id, 3, now=NOW)
        self.service.add_deposit(self.member.id, 1, now=datetime(2026, 2, 1, tzinfo=timezone.utc))

        order = [(d.year, d.week_number) for d in self.member.deposits]
        self.assertEqual(order, [(2025, 3), (2025, 12), (2026, 1)])

    def test_invalid_deposit_input(self):
        for week, penalty in [(0, 0), (54, 0), (2.5, 0), (True, 0), (5, -1), (5, float("nan"))]:
            with self.assertRaises(ValidationError):
                self.service.add_deposit(self.member.id, week, penalty, now=NOW)
        self.assertEqual(self.member.deposits, [])

    def test_deposit_for_unknown_member(self):
        with self.assertRaises(MemberNotFoundError):
            self.service.add_deposit("missing", 1, now=NOW)

    def test_amount_is_frozen_at_deposit_time(self):
        deposit = self.service.add_deposit(self.member.id, 10, penalty=5, now=NOW)
        self.service.update_member(self.member.id, "Ann", 40)
        self.assertEqual(deposit.amount, 30.0)

    def test_update_deposit_uses_current_goal(self):
        deposit = self.service.add_deposit(self.member.id, 10, penalty=5, now=NOW)
        self.service.update_member(self.member.id, "Ann", 40)

        updated = self.service.update_deposit(self.member.id, deposit.id, 0)

        self.assertIs(updated, deposit)
        self.assertEqual(deposit.penalty, 0.0)
        self.assertEqual(deposit.amount, 40.0)

    def test_update_deposit_unknown_ids_noop(self):
        deposit = self.service.add_deposit(self.member.id, 10, penalty=5, now=NOW)
        self.assertIsNone(self.service.update_deposit(self.member.id, "missing", 1))
        self.assertIsNone(self.service.update_deposit("missing", deposit.id, 1))
        self.assertEqual(deposit.amount, 30.0)

    def test_update_deposit_negative_penalty(self):
        deposit = self.service.add_deposit(self.member.id, 10, penalty=5, now=NOW)
        with self.assertRaises(ValidationError):
            self.service.update_deposit(self.member.id, deposit.id, -2)
        self.assertEqual(deposit.penalty, 5.0)

    def test_delete_deposit(self):
        deposit = self.service.add_deposit(self.member.id, 10, now=NOW)
        self.assertTrue(self.service.delete_deposit(self.member.id, deposit.id))
        self.assertFalse(self.service.delete_deposit(self.member.id, deposit.id))
        self.assertEqual(self.member.deposits, [])

        # The week can be paid again once its deposit is gone
        self.service.add_deposit(self.member.id, 10, now=NOW)
        self.assertEqual(len(self.member.deposits), 1)


class TestMemberViews(unittest.TestCase):

    def setUp(self):
        self.ledger = Ledger()
        self.service = SavingsService(self.ledger)
        self.member = self.service.add_member("Ann", 20, now=NOW)
        self.service.add_deposit(self.member.id, 3, penalty=2, now=NOW)
        self.service.add_deposit(self.member.id, 10, now=NOW)
        self.service.add_deposit(self.member.id, 4, now=datetime(2024, 6, 1, tzinfo=timezone.utc))

    def test_member_summary(self):
        summary = self.service.get_member_summary(self.member.id, now=NOW)

        self.assertEqual(summary.total_saved, 62.0)
        self.assertEqual(summary.total_penalties, 2.0)
        self.assertEqual(summary.total_regular_savings, 60.0)
        # Week 4 was paid in savings year 2024
        self.assertEqual(summary.paid_weeks, {3, 10})

    def test_week_board(self):
        board = self.service.get_week_board(self.member.id, now=datetime(2025, 3, 3, tzinfo=timezone.utc))
        states = {w.week_number: w.state for w in board}

        self.assertEqual(len(board), 50)
        self.assertEqual(states[1], "missed")
        self.assertEqual(states[3], "paid")
        self.assertEqual(states[9], "current")
        self.assertEqual(states[10], "paid")
        self.assertEqual(states[11], "upcoming")

    def test_summary_unknown_member(self):
        with self.assertRaises(MemberNotFoundError):
            self.service.get_member_summary("missing")


if __name__ == '__main__':
    unittest.main()
