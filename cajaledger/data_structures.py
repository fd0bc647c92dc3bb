from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional, Set

from cajaledger.calendar_rules import parse_timestamp, format_timestamp
from cajaledger.config import LOAN_STATUS_ACTIVE, LOAN_STATUS_PAID


def _required_timestamp(data, key):
    value = parse_timestamp(data[key])
    if value is None:
        raise ValueError(f"'{key}' is required")
    return value


@dataclass
class Deposit:
    """One weekly savings deposit. `amount` freezes the goal at deposit time."""
    id: str
    date: datetime
    week_number: int
    year: int
    penalty: float
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": format_timestamp(self.date),
            "amount": self.amount,
            "penalty": self.penalty,
            "weekNumber": self.week_number,
            "year": self.year,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Deposit':
        return cls(
            id=str(data["id"]),
            date=_required_timestamp(data, "date"),
            week_number=int(data["weekNumber"]),
            year=int(data["year"]),
            penalty=float(data["penalty"]),
            amount=float(data["amount"]),
        )


@dataclass
class Member:
    id: str
    name: str
    weekly_goal: float
    join_date: datetime
    deposits: List[Deposit] = field(default_factory=list)

    def sort_deposits(self):
        self.deposits.sort(key=lambda d: (d.year, d.week_number))

    def find_deposit(self, deposit_id) -> Optional[Deposit]:
        return next((d for d in self.deposits if d.id == deposit_id), None)

    def has_deposit_for(self, week_number, year) -> bool:
        return any(d.week_number == week_number and d.year == year for d in self.deposits)

    def to_dict(self, include_deposits=True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "weeklyGoal": self.weekly_goal,
            "joinDate": format_timestamp(self.join_date),
        }
        if include_deposits:
            data["deposits"] = [d.to_dict() for d in self.deposits]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Member':
        name = data["name"]
        if name is None:
            raise ValueError("'name' is required")
        member = cls(
            id=str(data["id"]),
            name=str(name),
            weekly_goal=float(data["weeklyGoal"]),
            join_date=_required_timestamp(data, "joinDate"),
            deposits=[Deposit.from_dict(d) for d in data.get("deposits") or []],
        )
        member.sort_deposits()
        return member


@dataclass
class LoanPayment:
    id: str
    date: datetime
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": format_timestamp(self.date),
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoanPayment':
        return cls(
            id=str(data["id"]),
            date=_required_timestamp(data, "date"),
            amount=float(data["amount"]),
        )


@dataclass
class Loan:
    """A member loan. Interest is never stored; see LoanService."""
    id: str
    member_id: str
    principal_amount: float
    loan_date: datetime
    status: str = LOAN_STATUS_ACTIVE
    payments: List[LoanPayment] = field(default_factory=list)
    paid_date: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == LOAN_STATUS_ACTIVE

    @property
    def total_paid(self) -> float:
        return sum(p.amount for p in self.payments)

    def find_payment(self, payment_id) -> Optional[LoanPayment]:
        return next((p for p in self.payments if p.id == payment_id), None)

    def to_dict(self, include_payments=True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "memberId": self.member_id,
            "principalAmount": self.principal_amount,
            "loanDate": format_timestamp(self.loan_date),
            "status": self.status,
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        if self.paid_date is not None:
            data["paidDate"] = format_timestamp(self.paid_date)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        status = data["status"]
        if status not in (LOAN_STATUS_ACTIVE, LOAN_STATUS_PAID):
            raise ValueError(f"Unknown loan status: {status!r}")
        return cls(
            id=str(data["id"]),
            member_id=str(data["memberId"]),
            principal_amount=float(data["principalAmount"]),
            loan_date=_required_timestamp(data, "loanDate"),
            status=status,
            payments=[LoanPayment.from_dict(p) for p in data.get("payments") or []],
            paid_date=parse_timestamp(data.get("paidDate")),
        )


@dataclass
class MemberSummary:
    """Totals shown on a member's card."""
    member_id: str
    total_saved: float
    total_penalties: float
    total_regular_savings: float
    paid_weeks: Set[int]


@dataclass
class WeekStatus:
    week_number: int
    state: str  # "paid", "current", "upcoming" or "missed"


@dataclass
class LoanStatus:
    """Balance of a loan as of a given moment."""
    loan_id: str
    months: int
    accrued_interest: float
    total_owed: float
    total_paid: float
    balance: float


@dataclass
class FundSummary:
    member_count: int
    total_deposits: float
    total_penalties: float
    total_regular_savings: float
    total_loaned_out: float
    total_interest_paid: float
    fund_balance: float
    total_earnings: float
