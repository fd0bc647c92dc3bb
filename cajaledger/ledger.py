"""In-memory ledger context shared by the services."""
from typing import List, Optional

from cajaledger.data_structures import Member, Loan


def member_sort_key(member):
    return (member.name.casefold(), member.name)


class Ledger:
    """Holds the member and loan collections.

    Services receive a Ledger instead of reaching for module-level state.
    Which member is "selected" is a presentation concern and is not tracked
    here.
    """

    def __init__(self, members: List[Member] = None, loans: List[Loan] = None):
        self.members = list(members or [])
        self.loans = list(loans or [])
        self.sort_members()

    def sort_members(self):
        self.members.sort(key=member_sort_key)

    def find_member(self, member_id) -> Optional[Member]:
        return next((m for m in self.members if m.id == member_id), None)

    def find_loan(self, loan_id) -> Optional[Loan]:
        return next((l for l in self.loans if l.id == loan_id), None)

    def loans_for_member(self, member_id) -> List[Loan]:
        return [l for l in self.loans if l.member_id == member_id]

    def replace_all(self, members: List[Member], loans: List[Loan]):
        """Swap in a whole new member/loan graph (used by import)."""
        self.members = list(members)
        self.loans = list(loans)
        self.sort_members()

    def clear_all(self):
        self.members = []
        self.loans = []

    def is_empty(self) -> bool:
        return not self.members and not self.loans
