import os
import sys
import unittest
from datetime import datetime, timezone

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cajaledger.data_structures import Deposit, Loan, LoanPayment, Member
from cajaledger.ledger import Ledger
from cajaledger.services import FundCalculator


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


NOW = utc(2025, 3, 10, 12, 0)


class TestFundCalculator(unittest.TestCase):
    """Fund totals over a hand-built ledger.

    Deposits: 100 + 110 (10 penalty) + 50 = 260.
    Active loan: 200 on Mar 10, one payment of 50 (10 interest, 40 principal).
    Paid loan: 100 from Jan 1 to Feb 15, two months of interest (10), paid 110.
    """

    def setUp(self):
        ann = Member("m1", "Ann", 100, utc(2025, 1, 5), [
            Deposit("d1", utc(2025, 1, 6), 1, 2025, 0, 100),
            Deposit("d2", utc(2025, 1, 14), 2, 2025, 10, 110),
        ])
        bob = Member("m2", "Bob", 50, utc(2025, 1, 5), [
            Deposit("d3", utc(2025, 1, 6), 1, 2025, 0, 50),
        ])
        self.active = Loan("l1", "m1", 200, NOW, "active",
                           [LoanPayment("p1", NOW, 50)])
        self.paid = Loan("l2", "m2", 100, utc(2025, 1, 1), "paid",
                         [LoanPayment("p2", utc(2025, 1, 20), 60),
                          LoanPayment("p3", utc(2025, 2, 15), 50)],
                         paid_date=utc(2025, 2, 15))
        self.ledger = Ledger([ann, bob], [self.active, self.paid])
        self.calculator = FundCalculator(self.ledger)

    def test_savings_totals(self):
        summary = self.calculator.summarize(NOW)

        self.assertEqual(summary.member_count, 2)
        self.assertAlmostEqual(summary.total_deposits, 260.0)
        self.assertAlmostEqual(summary.total_penalties, 10.0)
        self.assertAlmostEqual(summary.total_regular_savings, 250.0)

    def test_loan_totals(self):
        summary = self.calculator.summarize(NOW)

        self.assertAlmostEqual(summary.total_loaned_out, 160.0)
        self.assertAlmostEqual(summary.total_interest_paid, 20.0)
        # 260 in, 300 out, 160 back
        self.assertAlmostEqual(summary.fund_balance, 120.0)
        self.assertAlmostEqual(summary.total_earnings, 30.0)

    def test_paid_loan_interest_fixed_at_paid_date(self):
        later = self.calculator.summarize(utc(2025, 12, 1))
        # Only the active loan's interest can grow, and only up to what was paid
        self.assertAlmostEqual(later.total_interest_paid, 60.0)
        self.assertAlmostEqual(later.total_loaned_out, 200.0)
        self.assertAlmostEqual(later.fund_balance, 120.0)

    def test_interest_paid_capped_at_payments(self):
        """Payments smaller than the accrued interest leave principal untouched."""
        self.active.payments = [LoanPayment("p1", NOW, 4)]
        summary = self.calculator.summarize(NOW)

        self.assertAlmostEqual(summary.total_loaned_out, 200.0)
        self.assertAlmostEqual(summary.total_interest_paid, 14.0)

    def test_empty_ledger(self):
        summary = FundCalculator(Ledger()).summarize(NOW)
        self.assertEqual(summary.member_count, 0)
        self.assertEqual(summary.fund_balance, 0.0)
        self.assertEqual(summary.total_earnings, 0.0)

    def test_recomputed_on_every_call(self):
        before = self.calculator.fund_balance(NOW)
        self.ledger.members[0].deposits.append(Deposit("d4", NOW, 10, 2025, 0, 100))
        self.assertAlmostEqual(self.calculator.fund_balance(NOW), before + 100)


if __name__ == '__main__':
    unittest.main()
