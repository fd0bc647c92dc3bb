"""Workbook export and import for CajaLedger backups.

The nested member/loan graph is flattened into four independent sheets:
Members, Deposits (tagged with memberId), Loans and Loan Payments (tagged
with loanId). Import joins the child rows back onto their parents.
"""
import io
import logging
import zipfile

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from cajaledger.calendar_rules import utc_now
from cajaledger.config import (
    APP_PREFIX,
    DATE_FORMAT_FILENAME,
    EXCEL_HEADER_BG,
    REQUIRED_SHEETS,
    SHEET_DEPOSITS,
    SHEET_LOAN_PAYMENTS,
    SHEET_LOANS,
    SHEET_MEMBERS,
)
from cajaledger.data_structures import Deposit, Loan, LoanPayment, Member
from cajaledger.exceptions import MalformedImportError
from cajaledger.ledger import member_sort_key

logger = logging.getLogger(__name__)

MEMBER_COLUMNS = ["id", "name", "weeklyGoal", "joinDate"]
DEPOSIT_COLUMNS = ["id", "date", "amount", "penalty", "weekNumber", "year", "memberId"]
LOAN_COLUMNS = ["id", "memberId", "principalAmount", "loanDate", "status", "paidDate"]
PAYMENT_COLUMNS = ["id", "date", "amount", "loanId"]


def backup_filename(today=None):
    """File name for a backup taken on the given day (UTC today by default)."""
    today = today or utc_now().date()
    return f"{APP_PREFIX}-backup-{today.strftime(DATE_FORMAT_FILENAME)}.xlsx"


def _build_frames(members, loans):
    members_rows = [m.to_dict(include_deposits=False) for m in members]
    deposit_rows = [
        {**d.to_dict(), "memberId": m.id}
        for m in members for d in m.deposits
    ]
    loan_rows = []
    for loan in loans:
        row = loan.to_dict(include_payments=False)
        row.setdefault("paidDate", None)
        loan_rows.append(row)
    payment_rows = [
        {**p.to_dict(), "loanId": l.id}
        for l in loans for p in l.payments
    ]

    return {
        SHEET_MEMBERS: pd.DataFrame(members_rows, columns=MEMBER_COLUMNS),
        SHEET_DEPOSITS: pd.DataFrame(deposit_rows, columns=DEPOSIT_COLUMNS),
        SHEET_LOANS: pd.DataFrame(loan_rows, columns=LOAN_COLUMNS),
        SHEET_LOAN_PAYMENTS: pd.DataFrame(payment_rows, columns=PAYMENT_COLUMNS),
    }


def export_tabular(members, loans):
    """Serialize the ledger into an .xlsx workbook.

    Returns:
        The workbook file content as bytes.
    """
    frames = _build_frames(members, loans)
    buffer = io.BytesIO()

    # Cells are written as plain values, never as formulas or hyperlinks
    options = {'strings_to_formulas': False, 'strings_to_urls': False}
    with pd.ExcelWriter(buffer, engine='xlsxwriter', engine_kwargs={'options': options}) as writer:
        workbook = writer.book
        header_fmt = workbook.add_format({'bold': True, 'border': 1, 'bg_color': EXCEL_HEADER_BG})

        for sheet_name, df in frames.items():
            df.to_excel(writer, index=False, sheet_name=sheet_name)
            worksheet = writer.sheets[sheet_name]

            for col_num, value in enumerate(df.columns.values):
                worksheet.write(0, col_num, value, header_fmt)
            worksheet.set_column(0, len(df.columns) - 1, 20)
            # ids are uuids
            worksheet.set_column(0, 0, 38)

    return buffer.getvalue()


def _records(df):
    """Sheet rows as dicts, with empty cells turned into None."""
    rows = []
    for row in df.to_dict(orient="records"):
        rows.append({key: (None if pd.isna(value) else value) for key, value in row.items()})
    return rows


def _parse_rows(sheet_name, rows, factory):
    parsed = []
    for index, row in enumerate(rows):
        try:
            parsed.append((row, factory(row)))
        except (KeyError, ValueError, TypeError) as e:
            # Row 1 is the header
            raise MalformedImportError(
                f"Invalid row {index + 2} in sheet '{sheet_name}': {e}"
            )
    return parsed


def import_tabular(data):
    """Rebuild members and loans from a workbook produced by export_tabular.

    Deposits and payments whose owner is not in the workbook are dropped.

    Args:
        data: Workbook file content as bytes.

    Returns:
        (members, loans) with members sorted by name.

    Raises:
        MalformedImportError: If the file can't be read, a required sheet is
            missing or a row can't be parsed.
    """
    try:
        # Only empty cells are missing; names like "NA" or "null" are kept as text
        sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, dtype=object, engine='openpyxl',
                               keep_default_na=False, na_values=[""])
    except (ValueError, OSError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
        raise MalformedImportError(f"File could not be read as an Excel workbook: {e}")

    missing = [name for name in REQUIRED_SHEETS if name not in sheets]
    if missing:
        raise MalformedImportError(
            f"Invalid Excel file. Missing required sheets: {', '.join(missing)}",
            missing_sheets=missing,
        )

    members = [m for _, m in _parse_rows(SHEET_MEMBERS, _records(sheets[SHEET_MEMBERS]), Member.from_dict)]
    loans = [l for _, l in _parse_rows(SHEET_LOANS, _records(sheets[SHEET_LOANS]), Loan.from_dict)]
    member_map = {m.id: m for m in members}
    loan_map = {l.id: l for l in loans}

    dropped = 0
    for row, deposit in _parse_rows(SHEET_DEPOSITS, _records(sheets[SHEET_DEPOSITS]), Deposit.from_dict):
        owner = member_map.get(str(row.get("memberId")))
        if owner is None:
            dropped += 1
            continue
        owner.deposits.append(deposit)

    for row, payment in _parse_rows(SHEET_LOAN_PAYMENTS, _records(sheets[SHEET_LOAN_PAYMENTS]),
                                    LoanPayment.from_dict):
        owner = loan_map.get(str(row.get("loanId")))
        if owner is None:
            dropped += 1
            continue
        owner.payments.append(payment)

    if dropped:
        logger.info("Dropped %d orphaned deposit/payment rows during import", dropped)

    for member in members:
        member.sort_deposits()
    members.sort(key=member_sort_key)

    logger.info("Imported %d members and %d loans from workbook", len(members), len(loans))
    return members, loans
