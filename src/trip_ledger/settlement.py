"""Settlement planning: turn net balances into a short list of payments.

Balances are rounded to cents first and anything within half a cent of zero
counts as settled, which absorbs the remainder left by uneven splits
(100 / 3 and so on).

Two planners share that classification step:

- plan_settlement_from_balances: exact-match pairing first, then greedy
  largest-first matching with a short exact-match lookahead.
- plan_settlement_greedy_from_balances: greedy largest-first matching only.

Both zero every balance to within a cent. When debts and credits cancel
exactly the two-phase planner usually needs fewer payments.
"""

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from .ledger import compute_group_totals
from .models import SettlementTransaction, Snapshot
from .rounding import SETTLE_TOLERANCE, is_settled, to_cents

logger = logging.getLogger(__name__)

LOOKAHEAD_CREDITORS = 3


@dataclass
class _Party:
    """A creditor or debtor with the amount still to pay or receive."""

    member_id: str
    remaining: Decimal
    used: bool = False


def _split_parties(
    balances: Mapping[str, Decimal],
) -> tuple[list[_Party], list[_Party]]:
    """Split balances into (creditors, debtors), both with positive amounts."""
    creditors: list[_Party] = []
    debtors: list[_Party] = []
    for member_id, balance in balances.items():
        rounded = to_cents(balance)
        if rounded > SETTLE_TOLERANCE:
            creditors.append(_Party(member_id, rounded))
        elif rounded < -SETTLE_TOLERANCE:
            debtors.append(_Party(member_id, -rounded))
    return creditors, debtors


def _pay(debtor: _Party, creditor: _Party, amount: Decimal) -> SettlementTransaction:
    debtor.remaining = to_cents(debtor.remaining - amount)
    creditor.remaining = to_cents(creditor.remaining - amount)
    return SettlementTransaction(
        from_member_id=debtor.member_id,
        to_member_id=creditor.member_id,
        amount=amount,
    )


def _pair_exact_matches(
    creditors: list[_Party], debtors: list[_Party]
) -> list[SettlementTransaction]:
    """
    Close out every debtor whose amount equals some unused creditor's amount.

    Debtors are visited in their original order; each takes the first unused
    creditor with the same cent amount.
    """
    by_amount: dict[Decimal, list[_Party]] = defaultdict(list)
    for creditor in creditors:
        by_amount[creditor.remaining].append(creditor)

    transactions = []
    for debtor in debtors:
        candidates = by_amount.get(debtor.remaining)
        if not candidates:
            continue
        creditor = candidates.pop(0)
        transactions.append(_pay(debtor, creditor, debtor.remaining))
        debtor.used = creditor.used = True

    return transactions


def _pair_greedy(
    creditors: list[_Party], debtors: list[_Party], lookahead: int
) -> list[SettlementTransaction]:
    """
    Match largest debtor against largest creditor until one side runs out.

    With lookahead > 0, the next `lookahead` creditors are checked for one
    whose amount equals the current debtor's; a match is swapped to the front
    so the pair closes in one payment.
    """
    debtors = sorted(debtors, key=lambda p: p.remaining, reverse=True)
    creditors = sorted(creditors, key=lambda p: p.remaining, reverse=True)

    transactions = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]

        for k in range(j, min(j + lookahead, len(creditors))):
            if to_cents(creditors[k].remaining) == to_cents(debtor.remaining):
                creditors[j], creditors[k] = creditors[k], creditors[j]
                break

        creditor = creditors[j]
        payment = to_cents(min(debtor.remaining, creditor.remaining))
        if payment > SETTLE_TOLERANCE:
            transactions.append(_pay(debtor, creditor, payment))

        if is_settled(debtor.remaining):
            i += 1
        if is_settled(creditor.remaining):
            j += 1

    return transactions


def plan_settlement_from_balances(
    balances: Mapping[str, Decimal],
) -> list[SettlementTransaction]:
    """
    Compute a minimal-ish set of payments that zeroes the given balances.

    Phase 1 pairs debtors and creditors with identical amounts. Phase 2 runs
    the greedy matcher over whatever is left, with a lookahead of
    LOOKAHEAD_CREDITORS creditors for further exact matches.

    Args:
        balances: Member id -> net balance (positive = owed money)

    Returns:
        Payments in generation order: phase 1 matches in debtor order, then
        phase 2 matches. Empty if nobody owes or nobody is owed.
    """
    creditors, debtors = _split_parties(balances)
    if not creditors or not debtors:
        return []

    exact = _pair_exact_matches(creditors, debtors)

    open_creditors = [
        c for c in creditors if not c.used and not is_settled(c.remaining)
    ]
    open_debtors = [d for d in debtors if not d.used and not is_settled(d.remaining)]
    greedy = _pair_greedy(open_creditors, open_debtors, LOOKAHEAD_CREDITORS)

    logger.debug(
        f"Settlement plan: {len(exact)} exact matches, {len(greedy)} greedy payments"
    )
    return exact + greedy


def plan_settlement_greedy_from_balances(
    balances: Mapping[str, Decimal],
) -> list[SettlementTransaction]:
    """Single-phase greedy plan: largest debtor pays largest creditor, repeat."""
    creditors, debtors = _split_parties(balances)
    if not creditors or not debtors:
        return []
    return _pair_greedy(creditors, debtors, lookahead=0)


def plan_settlement(snapshot: Snapshot, group_id: str) -> list[SettlementTransaction]:
    """Two-phase settlement plan for a group's current balances."""
    totals = compute_group_totals(snapshot, group_id)
    plan = plan_settlement_from_balances(totals.member_balances)
    logger.info(f"Planned {len(plan)} payments for group {group_id}")
    return plan


def plan_settlement_greedy(
    snapshot: Snapshot, group_id: str
) -> list[SettlementTransaction]:
    """Greedy-only settlement plan for a group's current balances."""
    totals = compute_group_totals(snapshot, group_id)
    return plan_settlement_greedy_from_balances(totals.member_balances)


def apply_settlement(
    balances: Mapping[str, Decimal], plan: list[SettlementTransaction]
) -> dict[str, Decimal]:
    """
    Balances left over after every payment in the plan is made.

    The payer's balance rises by the amount, the receiver's falls by it. For
    a correct plan every residual is within a cent of zero.
    """
    residual = dict(balances)
    for tx in plan:
        residual[tx.from_member_id] = (
            residual.get(tx.from_member_id, Decimal("0")) + tx.amount
        )
        residual[tx.to_member_id] = (
            residual.get(tx.to_member_id, Decimal("0")) - tx.amount
        )
    return residual
