"""Fund aggregation service for CajaLedger.

This service derives every fund-wide figure from the ledger:
- Savings and penalty totals
- Outstanding principal of active loans
- Interest actually collected
- Available cash for new loans

Nothing is cached. Figures are recomputed from the members and loans on
every call so they can never drift from the ledger.
"""
from cajaledger.calendar_rules import months_elapsed, resolve_now
from cajaledger.config import MONTHLY_INTEREST_RATE
from cajaledger.data_structures import FundSummary


def accrued_interest(loan, as_of=None):
    """Simple interest owed on a loan as of the given moment."""
    return loan.principal_amount * MONTHLY_INTEREST_RATE * months_elapsed(loan.loan_date, as_of)


def interest_as_of(loan, now):
    """The moment interest stops accruing: the paid date for closed loans."""
    if loan.is_active or loan.paid_date is None:
        return now
    return loan.paid_date


class FundCalculator:
    """Computes the fund summary over a Ledger."""

    def __init__(self, ledger):
        """Initialize FundCalculator.

        Args:
            ledger: Ledger instance to aggregate.
        """
        self.ledger = ledger

    def summarize(self, now=None):
        """Recompute all fund totals.

        Payments settle interest before principal, so the interest credited
        for a loan is capped at what has accrued and any excess reduces the
        principal.

        Args:
            now: Optional reference time for active loans (defaults to the
                current UTC time).

        Returns:
            FundSummary.
        """
        now = resolve_now(now)

        total_deposits = 0.0
        total_penalties = 0.0
        for member in self.ledger.members:
            for deposit in member.deposits:
                total_deposits += deposit.amount
                total_penalties += deposit.penalty

        outstanding_principal = 0.0
        interest_paid = 0.0
        principal_ever_loaned = 0.0
        payments_received = 0.0

        for loan in self.ledger.loans:
            principal_ever_loaned += loan.principal_amount
            paid_for_loan = loan.total_paid
            payments_received += paid_for_loan

            interest = accrued_interest(loan, interest_as_of(loan, now))
            interest_paid_for_loan = min(paid_for_loan, interest)
            interest_paid += interest_paid_for_loan

            if loan.is_active:
                principal_paid = paid_for_loan - interest_paid_for_loan
                outstanding_principal += loan.principal_amount - principal_paid

        return FundSummary(
            member_count=len(self.ledger.members),
            total_deposits=total_deposits,
            total_penalties=total_penalties,
            total_regular_savings=total_deposits - total_penalties,
            total_loaned_out=outstanding_principal,
            total_interest_paid=interest_paid,
            fund_balance=total_deposits - principal_ever_loaned + payments_received,
            total_earnings=total_penalties + interest_paid,
        )

    def fund_balance(self, now=None):
        """Cash currently available for new loans."""
        return self.summarize(now).fund_balance
