"""Savings service for CajaLedger.

This service handles all member and savings operations including:
- Member registration, edits and removal
- Weekly deposits with optional late penalties
- Per-member savings totals and the weekly deposit board
"""
import uuid

from cajaledger import validators
from cajaledger.calendar_rules import resolve_now, week_info
from cajaledger.config import SAVINGS_WEEKS_DISPLAYED
from cajaledger.data_structures import Deposit, Member, MemberSummary, WeekStatus
from cajaledger.exceptions import (
    DuplicateDepositError,
    MemberNotFoundError,
    ReferentialIntegrityError,
)


class SavingsService:
    """Handles members and their weekly savings deposits.

    Every operation validates its input before touching the ledger, so a
    raised exception always means the ledger is unchanged.
    """

    def __init__(self, ledger):
        """Initialize SavingsService.

        Args:
            ledger: Ledger instance holding members and loans.
        """
        self.ledger = ledger

    def _get_member(self, member_id):
        member = self.ledger.find_member(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return member

    def add_member(self, name, weekly_goal, now=None):
        """Register a new member with an empty deposit history.

        Args:
            name: Display name, surrounding whitespace is stripped.
            weekly_goal: Positive weekly savings amount.
            now: Optional join timestamp (defaults to the current UTC time).

        Returns:
            The created Member.

        Raises:
            ValidationError: If the name is empty or the goal is not positive.
        """
        name = validators.member_name(name)
        weekly_goal = validators.positive_amount("weekly_goal", weekly_goal)

        member = Member(
            id=str(uuid.uuid4()),
            name=name,
            weekly_goal=weekly_goal,
            join_date=resolve_now(now),
        )
        self.ledger.members.append(member)
        self.ledger.sort_members()
        return member

    def update_member(self, member_id, name, weekly_goal):
        """Rename a member and/or change their weekly goal.

        Existing deposits keep the amount recorded when they were made.
        Members are re-sorted so a rename never leaves a stale order.

        Returns:
            The updated Member, or None if no member has that id.
        """
        name = validators.member_name(name)
        weekly_goal = validators.positive_amount("weekly_goal", weekly_goal)

        member = self.ledger.find_member(member_id)
        if member is None:
            return None

        member.name = name
        member.weekly_goal = weekly_goal
        self.ledger.sort_members()
        return member

    def delete_member(self, member_id):
        """Remove a member together with all their deposits.

        Returns:
            True if a member was removed.

        Raises:
            ReferentialIntegrityError: If any loan, active or paid, references
                the member.
        """
        loans = self.ledger.loans_for_member(member_id)
        if loans:
            raise ReferentialIntegrityError(member_id, len(loans))

        before = len(self.ledger.members)
        self.ledger.members = [m for m in self.ledger.members if m.id != member_id]
        return len(self.ledger.members) < before

    def add_deposit(self, member_id, week_number, penalty=0, now=None):
        """Register the deposit for a week of the current savings year.

        Args:
            member_id: ID of the member.
            week_number: Savings week being paid.
            penalty: Late surcharge added on top of the weekly goal.
            now: Optional timestamp used for the savings year and the record
                date (defaults to the current UTC time).

        Returns:
            The created Deposit.

        Raises:
            ValidationError: If the week or penalty is invalid.
            MemberNotFoundError: If the member doesn't exist.
            DuplicateDepositError: If that week is already paid this year.
        """
        week_number = validators.week_number(week_number)
        penalty = validators.non_negative_amount("penalty", penalty)
        member = self._get_member(member_id)

        now = resolve_now(now)
        year = week_info(now).year
        if member.has_deposit_for(week_number, year):
            raise DuplicateDepositError(member_id, week_number, year)

        deposit = Deposit(
            id=str(uuid.uuid4()),
            date=now,
            week_number=week_number,
            year=year,
            penalty=penalty,
            amount=validators.money(member.weekly_goal + penalty),
        )
        member.deposits.append(deposit)
        member.sort_deposits()
        return deposit

    def update_deposit(self, member_id, deposit_id, new_penalty):
        """Change the penalty of a deposit.

        The amount is recomputed from the member's current weekly goal.

        Returns:
            The updated Deposit, or None when the ids don't match anything.
        """
        new_penalty = validators.non_negative_amount("penalty", new_penalty)

        member = self.ledger.find_member(member_id)
        deposit = member.find_deposit(deposit_id) if member else None
        if deposit is None:
            return None

        deposit.penalty = new_penalty
        deposit.amount = validators.money(member.weekly_goal + new_penalty)
        return deposit

    def delete_deposit(self, member_id, deposit_id):
        member = self.ledger.find_member(member_id)
        if member is None:
            return False

        before = len(member.deposits)
        member.deposits = [d for d in member.deposits if d.id != deposit_id]
        return len(member.deposits) < before

    def get_member_summary(self, member_id, now=None):
        """Savings totals for one member.

        Returns:
            MemberSummary with the total saved (penalties included), the
            penalties alone, the regular savings and the weeks paid in the
            current savings year.
        """
        member = self._get_member(member_id)
        year = week_info(resolve_now(now)).year

        total_saved = sum(d.amount for d in member.deposits)
        total_penalties = sum(d.penalty for d in member.deposits)
        paid_weeks = {d.week_number for d in member.deposits if d.year == year}

        return MemberSummary(
            member_id=member.id,
            total_saved=total_saved,
            total_penalties=total_penalties,
            total_regular_savings=total_saved - total_penalties,
            paid_weeks=paid_weeks,
        )

    def get_week_board(self, member_id, now=None):
        """State of every displayed week of the current savings year."""
        now = resolve_now(now)
        current_week = week_info(now).week_number
        paid_weeks = self.get_member_summary(member_id, now).paid_weeks

        board = []
        for week in range(1, SAVINGS_WEEKS_DISPLAYED + 1):
            if week in paid_weeks:
                state = "paid"
            elif week == current_week:
                state = "current"
            elif week > current_week:
                state = "upcoming"
            else:
                state = "missed"
            board.append(WeekStatus(week, state))
        return board
