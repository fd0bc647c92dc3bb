"""Loan lifecycle service for CajaLedger.

This service handles all loan-related operations including:
- Loan issuance against the available fund balance
- Repayments, payment edits and payment removal
- Paid/active status transitions

Interest is simple: MONTHLY_INTEREST_RATE of the principal for every
elapsed month, the first month being charged as soon as the loan is issued.
It is always derived from the loan date, never stored.
"""
import uuid
from datetime import datetime
from typing import Optional

from cajaledger import validators
from cajaledger.calendar_rules import months_elapsed, resolve_now
from cajaledger.config import (
    LOAN_STATUS_ACTIVE,
    LOAN_STATUS_PAID,
    PAYMENT_TOLERANCE,
)
from cajaledger.data_structures import Loan, LoanPayment, LoanStatus
from cajaledger.exceptions import (
    InsufficientFundsError,
    LoanNotFoundError,
    MemberNotFoundError,
    OverpaymentError,
)
from cajaledger.services.fund_calculator import accrued_interest, interest_as_of


class LoanService:
    """Handles loan lifecycle operations.

    It delegates fund balance checks to the FundCalculator service.
    """

    def __init__(self, ledger, fund_calculator=None):
        """Initialize LoanService.

        Args:
            ledger: Ledger instance holding members and loans.
            fund_calculator: Optional FundCalculator instance.
        """
        self.ledger = ledger
        self._fund_calculator = fund_calculator

    @property
    def fund_calculator(self):
        """Lazy-load fund calculator."""
        if self._fund_calculator is None:
            from .fund_calculator import FundCalculator
            self._fund_calculator = FundCalculator(self.ledger)
        return self._fund_calculator

    def _get_loan(self, loan_id):
        loan = self.ledger.find_loan(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        return loan

    @staticmethod
    def _total_owed(loan, now):
        return loan.principal_amount + accrued_interest(loan, now)

    @staticmethod
    def _settle_status(loan, total_paid, total_owed, now, clear_when_active):
        """Flip the loan between active and paid from its payment total.

        The paid date is only ever set once. It is cleared when a loan goes
        back to active through a payment edit or removal.
        """
        if total_paid >= total_owed - PAYMENT_TOLERANCE:
            loan.status = LOAN_STATUS_PAID
            if loan.paid_date is None:
                loan.paid_date = now
        else:
            loan.status = LOAN_STATUS_ACTIVE
            if clear_when_active:
                loan.paid_date = None

    def add_loan(self, member_id, principal, now: Optional[datetime] = None) -> Loan:
        """Issue a new loan from the fund.

        Args:
            member_id: ID of the borrowing member.
            principal: Loan principal amount.
            now: Optional loan timestamp (defaults to the current UTC time).

        Returns:
            The created Loan.

        Raises:
            ValidationError: If the principal is not a positive number.
            MemberNotFoundError: If the member doesn't exist.
            InsufficientFundsError: If the principal exceeds available cash.
        """
        principal = validators.positive_amount("principal", principal)
        if self.ledger.find_member(member_id) is None:
            raise MemberNotFoundError(member_id)

        now = resolve_now(now)
        available = self.fund_calculator.fund_balance(now)
        if principal > available:
            raise InsufficientFundsError(principal, available)

        loan = Loan(
            id=str(uuid.uuid4()),
            member_id=member_id,
            principal_amount=principal,
            loan_date=now,
            status=LOAN_STATUS_ACTIVE,
        )
        self.ledger.loans.append(loan)
        return loan

    def delete_loan(self, loan_id):
        """Remove a loan and all its payments, whatever its status."""
        before = len(self.ledger.loans)
        self.ledger.loans = [l for l in self.ledger.loans if l.id != loan_id]
        return len(self.ledger.loans) < before

    def record_loan_payment(self, loan_id, amount, now: Optional[datetime] = None) -> LoanPayment:
        """Record a repayment against a loan.

        Args:
            loan_id: ID of the loan.
            amount: Payment amount.
            now: Optional payment timestamp (defaults to the current UTC time).

        Returns:
            The created LoanPayment.

        Raises:
            ValidationError: If the amount is not a positive number.
            LoanNotFoundError: If the loan doesn't exist.
            OverpaymentError: If the amount exceeds the outstanding balance.
        """
        amount = validators.positive_amount("amount", amount)
        loan = self._get_loan(loan_id)

        now = resolve_now(now)
        total_owed = self._total_owed(loan, now)
        total_paid = loan.total_paid
        balance = total_owed - total_paid
        if amount > balance + PAYMENT_TOLERANCE:
            raise OverpaymentError(amount, balance, loan_id)

        payment = LoanPayment(id=str(uuid.uuid4()), date=now, amount=amount)
        loan.payments.append(payment)
        self._settle_status(loan, total_paid + amount, total_owed, now, clear_when_active=False)
        return payment

    def update_loan_payment(self, loan_id, payment_id, new_amount,
                            now: Optional[datetime] = None) -> Optional[LoanPayment]:
        """Change the amount of an existing payment.

        Returns:
            The updated LoanPayment, or None when the ids don't match anything.

        Raises:
            ValidationError: If the amount is not a positive number.
            OverpaymentError: If the new amount exceeds the balance left by
                the other payments.
        """
        new_amount = validators.positive_amount("amount", new_amount)
        loan = self.ledger.find_loan(loan_id)
        payment = loan.find_payment(payment_id) if loan else None
        if payment is None:
            return None

        now = resolve_now(now)
        total_owed = self._total_owed(loan, now)
        other_payments = sum(p.amount for p in loan.payments if p.id != payment_id)
        balance = total_owed - other_payments
        if new_amount > balance + PAYMENT_TOLERANCE:
            raise OverpaymentError(new_amount, balance, loan_id)

        payment.amount = new_amount
        self._settle_status(loan, other_payments + new_amount, total_owed, now, clear_when_active=True)
        return payment

    def delete_loan_payment(self, loan_id, payment_id, now: Optional[datetime] = None):
        loan = self.ledger.find_loan(loan_id)
        if loan is None or loan.find_payment(payment_id) is None:
            return False

        now = resolve_now(now)
        loan.payments = [p for p in loan.payments if p.id != payment_id]
        self._settle_status(loan, loan.total_paid, self._total_owed(loan, now), now,
                            clear_when_active=True)
        return True

    def get_loan_status(self, loan_id, now: Optional[datetime] = None) -> LoanStatus:
        """Current interest and balance of a loan.

        Paid loans stop accruing at their paid date.
        """
        loan = self._get_loan(loan_id)
        as_of = interest_as_of(loan, resolve_now(now))

        months = months_elapsed(loan.loan_date, as_of)
        interest = accrued_interest(loan, as_of)
        total_owed = loan.principal_amount + interest
        total_paid = loan.total_paid
        return LoanStatus(
            loan_id=loan.id,
            months=months,
            accrued_interest=interest,
            total_owed=total_owed,
            total_paid=total_paid,
            balance=total_owed - total_paid,
        )

    def get_active_loans(self):
        """Active loans, oldest first."""
        active = [l for l in self.ledger.loans if l.status == LOAN_STATUS_ACTIVE]
        return sorted(active, key=lambda l: l.loan_date)

    def get_loan_history(self):
        """Paid loans, most recently settled first."""
        paid = [l for l in self.ledger.loans if l.status == LOAN_STATUS_PAID]
        return sorted(paid, key=lambda l: l.paid_date or l.loan_date, reverse=True)
