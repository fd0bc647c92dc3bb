"""Services package for CajaLedger business logic.

This package contains the focused service classes the LedgerEngine facade
delegates to.
"""

from .savings_service import SavingsService
from .loan_service import LoanService
from .fund_calculator import FundCalculator

__all__ = ['SavingsService', 'LoanService', 'FundCalculator']
