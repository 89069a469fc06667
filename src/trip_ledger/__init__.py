"""trip-ledger - Shared travel expenses, balances and minimal settle-up plans."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database, SnapshotRepository
from .forecast import predict_total_for_group
from .ledger import compute_group_totals, get_recent_activity
from .models import (
    ExpenseCategory,
    Expense,
    Group,
    GroupTotals,
    Member,
    SettlementTransaction,
    Snapshot,
)
from .service import LedgerService
from .settlement import (
    apply_settlement,
    plan_settlement,
    plan_settlement_greedy,
)

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "SnapshotRepository",
    "predict_total_for_group",
    "compute_group_totals",
    "get_recent_activity",
    "ExpenseCategory",
    "Expense",
    "Group",
    "GroupTotals",
    "Member",
    "SettlementTransaction",
    "Snapshot",
    "LedgerService",
    "apply_settlement",
    "plan_settlement",
    "plan_settlement_greedy",
]
