"""Input validation shared by the ledger services.

Every check raises ValidationError before anything is mutated.
"""
import math
import numbers

from cajaledger.config import CURRENCY_DECIMALS, MIN_SAVINGS_WEEK, MAX_SAVINGS_WEEK
from cajaledger.exceptions import ValidationError


def _as_number(field, value):
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(field, value, "must be a number")
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        raise ValidationError(field, value, "must be a finite number")
    return value


def money(value):
    """Round a computed amount (goal plus penalty) to whole cents."""
    return round(value, CURRENCY_DECIMALS)


def positive_amount(field, value):
    value = _as_number(field, value)
    if value <= 0:
        raise ValidationError(field, value, "must be greater than 0")
    return value


def non_negative_amount(field, value):
    value = _as_number(field, value)
    if value < 0:
        raise ValidationError(field, value, "must be 0 or more")
    return value


def member_name(value):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("name", value, "must not be empty")
    return value.strip()


def week_number(value):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ValidationError("week_number", value, "must be a whole number")
    if not MIN_SAVINGS_WEEK <= value <= MAX_SAVINGS_WEEK:
        raise ValidationError(
            "week_number", value,
            f"must be between {MIN_SAVINGS_WEEK} and {MAX_SAVINGS_WEEK}"
        )
    return int(value)
