"""Centralized configuration for CajaLedger.

This module contains the business rule constants, storage keys and file
naming used throughout the ledger core.
"""

# =============================================================================
# LOAN RULES
# =============================================================================

# Simple interest charged per elapsed month (5% of principal)
MONTHLY_INTEREST_RATE = 0.05

# Absorbs floating rounding when comparing payments to balances
PAYMENT_TOLERANCE = 0.001

# Deposit amounts (goal + penalty) are stored to whole cents
CURRENCY_DECIMALS = 2

LOAN_STATUS_ACTIVE = "active"
LOAN_STATUS_PAID = "paid"

# =============================================================================
# SAVINGS CALENDAR
# =============================================================================

# The savings year starts on January 5th
SAVINGS_YEAR_START_MONTH = 1
SAVINGS_YEAR_START_DAY = 5

# Days 0..365 after the anchor map to weeks 1..53
MIN_SAVINGS_WEEK = 1
MAX_SAVINGS_WEEK = 53

# Number of weeks shown on a member's deposit board
SAVINGS_WEEKS_DISPLAYED = 50

# =============================================================================
# STORAGE
# =============================================================================

DEFAULT_DB_NAME = "caja_ledger.db"

MEMBERS_STORAGE_KEY = "cajaCuevasMembers"
LOANS_STORAGE_KEY = "cajaCuevasLoans"

# =============================================================================
# WORKBOOK EXPORT / IMPORT
# =============================================================================

APP_PREFIX = "caja-cuevas"

SHEET_MEMBERS = "Members"
SHEET_DEPOSITS = "Deposits"
SHEET_LOANS = "Loans"
SHEET_LOAN_PAYMENTS = "Loan Payments"

REQUIRED_SHEETS = [SHEET_MEMBERS, SHEET_DEPOSITS, SHEET_LOANS, SHEET_LOAN_PAYMENTS]

# Header colour of exported sheets
EXCEL_HEADER_BG = "#D7E4BC"

# Date format used in backup file names (ISO 8601)
DATE_FORMAT_FILENAME = "%Y-%m-%d"
