"""Ledger aggregation: group totals, category breakdowns and member balances.

Every function here is pure over a Snapshot. Malformed references (unknown
group, unknown payer or split member, empty split list) degrade to defined
results instead of raising, because the settlement and forecast math always
needs a result to work with.
"""

import logging
from decimal import Decimal

from .models import ActivityEntry, Expense, Group, GroupTotals, Snapshot
from .rounding import to_decimal

logger = logging.getLogger(__name__)


def get_group_by_id(snapshot: Snapshot, group_id: str | None) -> Group | None:
    """Find a group by id, or None."""
    if not group_id:
        return None
    for group in snapshot.groups:
        if group.id == group_id:
            return group
    return None


def group_expenses(snapshot: Snapshot, group_id: str) -> list[Expense]:
    """Expenses belonging to a group, in snapshot order."""
    return [e for e in snapshot.expenses if e.group_id == group_id]


def compute_group_totals(snapshot: Snapshot, group_id: str) -> GroupTotals:
    """
    Compute total spend, per-category spend and net member balances.

    Balances start at exactly zero for every group member. Each expense
    credits its payer the full amount and debits each split entry an equal
    share. An unknown payer or split id gets its own balance entry. An expense
    with no split members still credits the payer.

    Args:
        snapshot: Data snapshot
        group_id: Group to aggregate

    Returns:
        GroupTotals; zero total and empty mappings for an unknown group
    """
    group = get_group_by_id(snapshot, group_id)
    if group is None:
        logger.debug(f"Group {group_id} not found, returning empty totals")
        return GroupTotals()

    expenses = group_expenses(snapshot, group_id)

    total = Decimal("0")
    by_category: dict[str, Decimal] = {}
    balances: dict[str, Decimal] = {m.id: Decimal("0") for m in group.members}

    for expense in expenses:
        amount = to_decimal(expense.amount)
        total += amount

        label = expense.category.value
        by_category[label] = by_category.get(label, Decimal("0")) + amount

        splitters = expense.split_member_ids
        share = amount / len(splitters) if splitters else Decimal("0")

        payer = expense.paid_by_member_id
        balances[payer] = balances.get(payer, Decimal("0")) + amount
        for member_id in splitters:
            balances[member_id] = balances.get(member_id, Decimal("0")) - share

    logger.debug(
        f"Aggregated {len(expenses)} expenses for group {group_id}: total {total}"
    )

    return GroupTotals(total=total, by_category=by_category, member_balances=balances)


def get_recent_activity(snapshot: Snapshot, limit: int = 8) -> list[ActivityEntry]:
    """
    Most recent activity entries, newest first.

    The sort is stable: entries with the same timestamp keep their snapshot
    order.
    """
    ordered = sorted(snapshot.activity, key=lambda entry: entry.at, reverse=True)
    return ordered[: max(0, limit)]
