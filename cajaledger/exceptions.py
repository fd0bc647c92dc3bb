"""Custom exceptions for CajaLedger."""


class CajaLedgerError(Exception):
    """Base exception for all CajaLedger errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(CajaLedgerError):
    """Raised when an input value is rejected before any mutation."""

    def __init__(self, field: str, value=None, reason: str = "is invalid"):
        details = {'field': field, 'value': value}
        super().__init__(f"'{field}' {reason}", details)


class MemberNotFoundError(CajaLedgerError):
    """Raised when a member cannot be found."""

    def __init__(self, member_id: str = None):
        details = {}
        if member_id:
            details['member_id'] = member_id
        message = "Member not found"
        if member_id:
            message = f"Member '{member_id}' not found"
        super().__init__(message, details)


class LoanNotFoundError(CajaLedgerError):
    """Raised when a loan cannot be found."""

    def __init__(self, loan_id: str = None):
        details = {}
        if loan_id:
            details['loan_id'] = loan_id
        message = "Loan not found"
        if loan_id:
            message = f"Loan '{loan_id}' not found"
        super().__init__(message, details)


class DuplicateDepositError(CajaLedgerError):
    """Raised when a deposit is already registered for that member and week."""

    def __init__(self, member_id: str, week_number: int, year: int):
        details = {
            'member_id': member_id,
            'week_number': week_number,
            'year': year
        }
        message = f"Deposit for week {week_number} of {year} has already been registered"
        super().__init__(message, details)


class OverpaymentError(CajaLedgerError):
    """Raised when a payment exceeds the outstanding loan balance."""

    def __init__(self, amount: float, balance: float, loan_id: str = None):
        details = {
            'amount': amount,
            'balance': balance
        }
        if loan_id:
            details['loan_id'] = loan_id
        message = f"Payment of {amount:.2f} exceeds the outstanding balance of {balance:.2f}"
        super().__init__(message, details)


class InsufficientFundsError(CajaLedgerError):
    """Raised when a loan principal exceeds the available fund balance."""

    def __init__(self, required: float, available: float):
        details = {
            'required': required,
            'available': available
        }
        message = f"Insufficient funds: required {required:.2f}, available {available:.2f}"
        super().__init__(message, details)


class ReferentialIntegrityError(CajaLedgerError):
    """Raised when deleting a member that is still referenced by loans."""

    def __init__(self, member_id: str, loan_count: int):
        details = {
            'member_id': member_id,
            'loan_count': loan_count
        }
        message = "Cannot delete a member with existing loans (active or paid)"
        super().__init__(message, details)


class MalformedImportError(CajaLedgerError):
    """Raised when a workbook cannot be imported."""

    def __init__(self, message: str, missing_sheets: list = None):
        details = {}
        if missing_sheets:
            details['missing_sheets'] = list(missing_sheets)
        super().__init__(message, details)


class StorageError(CajaLedgerError):
    """Raised when durable storage cannot be read or written."""
    pass
