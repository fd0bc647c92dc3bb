"""Business logic engine for CajaLedger.

This module provides the LedgerEngine class which acts as a facade over
the focused service classes in cajaledger/services/ for the presentation
layer. Every public method returns a Result; exceptions never leak out.

Service Classes:
    - SavingsService: Members and weekly deposits
    - LoanService: Loan lifecycle operations
    - FundCalculator: Fund-wide aggregation
"""
import logging

from cajaledger.exceptions import (
    CajaLedgerError,
    DuplicateDepositError,
    InsufficientFundsError,
    LoanNotFoundError,
    MalformedImportError,
    MemberNotFoundError,
    OverpaymentError,
    ReferentialIntegrityError,
    StorageError,
    ValidationError,
)
from cajaledger.ledger import Ledger
from cajaledger.result import Result, ErrorType
from cajaledger.services import FundCalculator, LoanService, SavingsService
from cajaledger import workbook

logger = logging.getLogger(__name__)

ERROR_TYPES = {
    ValidationError: ErrorType.VALIDATION,
    MemberNotFoundError: ErrorType.NOT_FOUND,
    LoanNotFoundError: ErrorType.NOT_FOUND,
    DuplicateDepositError: ErrorType.DUPLICATE_DEPOSIT,
    OverpaymentError: ErrorType.OVERPAYMENT,
    InsufficientFundsError: ErrorType.INSUFFICIENT_FUNDS,
    ReferentialIntegrityError: ErrorType.REFERENTIAL_INTEGRITY,
    MalformedImportError: ErrorType.MALFORMED_IMPORT,
    StorageError: ErrorType.STORAGE,
}


def _failure(error, value=None):
    return Result.fail(error.message, ERROR_TYPES.get(type(error)), value=value,
                       details=error.details)


class LedgerEngine:
    """Handles business logic, interfacing with DatabaseManager.

    Mutations run against the in-memory Ledger and are then saved. When the
    save fails the mutation is kept in memory and a STORAGE result carrying
    the operation's value is returned, so nothing is silently lost.

    Attributes:
        db: DatabaseManager instance for persistence, or None to keep the
            ledger in memory only.
        ledger: The Ledger context shared by all services.
    """

    def __init__(self, db_manager=None, ledger=None):
        self.db = db_manager
        self.ledger = ledger or Ledger()
        self._savings_service = None
        self._loan_service = None
        self._fund_calculator = None

    @property
    def savings_service(self):
        """Lazy-load SavingsService instance."""
        if self._savings_service is None:
            self._savings_service = SavingsService(self.ledger)
        return self._savings_service

    @property
    def fund_calculator(self):
        """Lazy-load FundCalculator instance."""
        if self._fund_calculator is None:
            self._fund_calculator = FundCalculator(self.ledger)
        return self._fund_calculator

    @property
    def loan_service(self):
        """Lazy-load LoanService instance."""
        if self._loan_service is None:
            self._loan_service = LoanService(self.ledger, self.fund_calculator)
        return self._loan_service

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _persist(self, value):
        if self.db is None:
            return Result.ok(value)
        try:
            self.db.save(self.ledger.members, self.ledger.loans)
        except StorageError as e:
            logger.error("Ledger changed but could not be saved: %s", e)
            return _failure(e, value=value)
        return Result.ok(value)

    def _mutate(self, operation, *args, **kwargs):
        try:
            value = operation(*args, **kwargs)
        except CajaLedgerError as e:
            logger.debug("%s rejected: %s", operation.__name__, e)
            return _failure(e)
        return self._persist(value)

    def _query(self, operation, *args, **kwargs):
        try:
            return Result.ok(operation(*args, **kwargs))
        except CajaLedgerError as e:
            return _failure(e)

    def open(self):
        """Load the persisted ledger into memory.

        Corrupt or unreadable storage leaves an empty ledger and returns a
        STORAGE failure describing the problem.
        """
        if self.db is None:
            return Result.ok(self.ledger)

        result = self.db.load()
        members, loans = result.value
        self.ledger.replace_all(members, loans)
        if not result.success:
            return Result.fail(result.error, result.error_type, value=self.ledger,
                               details=result.details)
        logger.info("Opened ledger with %d members and %d loans", len(members), len(loans))
        return Result.ok(self.ledger)

    # ------------------------------------------------------------------
    # Members and deposits
    # ------------------------------------------------------------------

    def add_member(self, name, weekly_goal, now=None):
        return self._mutate(self.savings_service.add_member, name, weekly_goal, now=now)

    def update_member(self, member_id, name, weekly_goal):
        return self._mutate(self.savings_service.update_member, member_id, name, weekly_goal)

    def delete_member(self, member_id):
        return self._mutate(self.savings_service.delete_member, member_id)

    def add_deposit(self, member_id, week_number, penalty=0, now=None):
        return self._mutate(self.savings_service.add_deposit, member_id, week_number,
                            penalty, now=now)

    def update_deposit(self, member_id, deposit_id, new_penalty):
        return self._mutate(self.savings_service.update_deposit, member_id, deposit_id, new_penalty)

    def delete_deposit(self, member_id, deposit_id):
        return self._mutate(self.savings_service.delete_deposit, member_id, deposit_id)

    def member_summary(self, member_id, now=None):
        return self._query(self.savings_service.get_member_summary, member_id, now)

    def week_board(self, member_id, now=None):
        return self._query(self.savings_service.get_week_board, member_id, now)

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    def add_loan(self, member_id, principal, now=None):
        return self._mutate(self.loan_service.add_loan, member_id, principal, now=now)

    def delete_loan(self, loan_id):
        return self._mutate(self.loan_service.delete_loan, loan_id)

    def record_loan_payment(self, loan_id, amount, now=None):
        return self._mutate(self.loan_service.record_loan_payment, loan_id, amount, now=now)

    def update_loan_payment(self, loan_id, payment_id, new_amount, now=None):
        return self._mutate(self.loan_service.update_loan_payment, loan_id, payment_id,
                            new_amount, now=now)

    def delete_loan_payment(self, loan_id, payment_id, now=None):
        return self._mutate(self.loan_service.delete_loan_payment, loan_id, payment_id, now=now)

    def loan_status(self, loan_id, now=None):
        return self._query(self.loan_service.get_loan_status, loan_id, now)

    def active_loans(self):
        return Result.ok(self.loan_service.get_active_loans())

    def loan_history(self):
        return Result.ok(self.loan_service.get_loan_history())

    # ------------------------------------------------------------------
    # Fund
    # ------------------------------------------------------------------

    def summary(self, now=None):
        """Fund-wide totals, recomputed from the ledger."""
        return Result.ok(self.fund_calculator.summarize(now))

    # ------------------------------------------------------------------
    # Data management
    # ------------------------------------------------------------------

    def export_workbook(self, today=None):
        """Build a backup workbook.

        Returns:
            Result whose value is a (filename, file bytes) tuple.
        """
        try:
            content = workbook.export_tabular(self.ledger.members, self.ledger.loans)
        except (OSError, ValueError) as e:
            logger.error("Excel export failed: %s", e)
            return Result.fail(f"Excel Export Failed: {e}", ErrorType.EXPORT)
        return Result.ok((workbook.backup_filename(today), content))

    def import_workbook(self, data):
        """Replace the whole ledger with the content of a backup workbook.

        The new ledger is written to storage before it replaces the one in
        memory, so any failure leaves the previous state in place.
        """
        try:
            members, loans = workbook.import_tabular(data)
            if self.db is not None:
                self.db.save(members, loans)
        except (MalformedImportError, StorageError) as e:
            logger.warning("Import aborted: %s", e)
            return _failure(e)

        self.ledger.replace_all(members, loans)
        return Result.ok(self.ledger)

    def delete_all_data(self):
        """Wipe storage first, then the in-memory ledger."""
        if self.db is not None:
            try:
                self.db.clear()
            except StorageError as e:
                logger.error("Could not clear storage: %s", e)
                return _failure(e)

        self.ledger.clear_all()
        logger.info("All ledger data deleted")
        return Result.ok(self.ledger)
