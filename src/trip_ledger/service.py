"""Service layer that composes the snapshot store and the ledger engine.

Queries load a snapshot and hand it to the pure engine functions. Mutations
build a new snapshot (the loaded one is never modified), prepend an activity
entry and save it back through the repository.
"""

import logging
import secrets
import string
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from .config import Settings
from .db import SnapshotRepository
from .exceptions import GroupNotFoundError, InvalidInputError
from .forecast import predict_total_for_group
from .ledger import compute_group_totals, get_group_by_id, get_recent_activity
from .models import (
    ActivityEntry,
    Document,
    DocumentType,
    Expense,
    ExpenseCategory,
    Group,
    GroupTotals,
    Member,
    SettlementTransaction,
    Snapshot,
)
from .rounding import to_cents, to_decimal
from .settlement import plan_settlement, plan_settlement_greedy

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_id(prefix: str) -> str:
    """Short random id such as 'grp_k3x9a0b'."""
    return f"{prefix}_{''.join(secrets.choice(_ID_ALPHABET) for _ in range(7))}"


def _activity(kind: str, message: str) -> ActivityEntry:
    return ActivityEntry(
        id=str(uuid4()), type=kind, message=message, at=datetime.now().astimezone()
    )


class LedgerService:
    """Service for querying and updating a trip ledger."""

    def __init__(self, settings: Settings, repository: SnapshotRepository):
        """Initialize the ledger service."""
        self.settings = settings
        self.repository = repository

    # ========================================================================
    # Queries
    # ========================================================================

    def snapshot(self) -> Snapshot:
        return self.repository.load()

    def list_groups(self) -> list[Group]:
        return list(self.snapshot().groups)

    def resolve_group(self, ref: str) -> Group:
        """
        Find a group by id, falling back to a case-insensitive name match.

        Raises:
            GroupNotFoundError: If nothing matches
        """
        snapshot = self.snapshot()
        group = get_group_by_id(snapshot, ref)
        if group:
            return group

        wanted = ref.strip().lower()
        for candidate in snapshot.groups:
            if candidate.name.lower() == wanted:
                return candidate

        raise GroupNotFoundError(ref)

    def group_totals(self, group_id: str) -> GroupTotals:
        return compute_group_totals(self.snapshot(), group_id)

    def settlement_plan(
        self, group_id: str, simple: bool = False
    ) -> list[SettlementTransaction]:
        """Settlement plan for a group; simple=True uses the greedy-only planner."""
        snapshot = self.snapshot()
        if simple:
            return plan_settlement_greedy(snapshot, group_id)
        return plan_settlement(snapshot, group_id)

    def forecast(
        self,
        group_id: str,
        lookahead: int | None = None,
        today: date | None = None,
    ) -> Decimal:
        """Forecast the group's final spend, using the configured lookahead by default."""
        if lookahead is None:
            lookahead = self.settings.forecast_lookahead
        return predict_total_for_group(
            self.snapshot(), group_id, lookahead=lookahead, today=today
        )

    def recent_activity(self, limit: int | None = None) -> list[ActivityEntry]:
        if limit is None:
            limit = self.settings.activity_limit
        return get_recent_activity(self.snapshot(), limit)

    # ========================================================================
    # Mutations
    # ========================================================================

    def _commit(self, snapshot: Snapshot, entry: ActivityEntry) -> Snapshot:
        updated = snapshot.model_copy(
            update={"activity": [entry, *snapshot.activity]}
        )
        self.repository.save(updated)
        logger.info(entry.message)
        return updated

    def add_group(
        self,
        name: str,
        member_names: list[str],
        start_date: date | None = None,
        end_date: date | None = None,
        description: str | None = None,
    ) -> Group:
        """
        Create a group with freshly generated member ids.

        Raises:
            InvalidInputError: If the name is blank, no members are given, or
                               the trip ends before it starts
        """
        name = name.strip()
        if not name:
            raise InvalidInputError("Group name cannot be empty")

        names = [n.strip() for n in member_names if n.strip()]
        if not names:
            raise InvalidInputError("A group needs at least one member")

        if start_date and end_date and start_date > end_date:
            raise InvalidInputError(
                f"Trip start {start_date} is after trip end {end_date}"
            )

        group = Group(
            id=new_id("grp"),
            name=name,
            members=[Member(id=new_id("mem"), name=n) for n in names],
            description=description,
            start_date=start_date,
            end_date=end_date,
        )

        snapshot = self.snapshot()
        snapshot = snapshot.model_copy(update={"groups": [*snapshot.groups, group]})
        self._commit(snapshot, _activity("group", f'Created group "{group.name}"'))
        return group

    def _member_id(self, group: Group, ref: str) -> str:
        for member in group.members:
            if member.id == ref:
                return member.id
        wanted = ref.strip().lower()
        for member in group.members:
            if member.name.lower() == wanted:
                return member.id
        raise InvalidInputError(f"'{ref}' is not a member of {group.name}")

    def add_expense(
        self,
        group_id: str,
        amount: Decimal | float | str,
        description: str,
        paid_by: str,
        split_among: list[str] | None = None,
        category: ExpenseCategory = ExpenseCategory.OTHER,
        when: datetime | None = None,
    ) -> Expense:
        """
        Record an expense split equally among some members of a group.

        Members may be given by id or name. Without split_among the expense is
        split among every member.

        Raises:
            GroupNotFoundError: If the group does not exist
            InvalidInputError: If the amount is negative or a member is unknown
        """
        snapshot = self.snapshot()
        group = get_group_by_id(snapshot, group_id)
        if group is None:
            raise GroupNotFoundError(group_id)

        try:
            value = to_cents(to_decimal(amount))
        except InvalidOperation as e:
            raise InvalidInputError(f"Not a valid amount: {amount!r}") from e
        if not value.is_finite() or value < 0:
            raise InvalidInputError(f"Amount must be a non-negative number: {amount!r}")

        payer_id = self._member_id(group, paid_by)
        if split_among:
            split_ids = [self._member_id(group, ref) for ref in split_among]
        else:
            split_ids = group.member_ids()

        expense = Expense(
            id=new_id("exp"),
            group_id=group.id,
            amount=value,
            category=category,
            description=description.strip(),
            date=when or datetime.now().astimezone(),
            paid_by_member_id=payer_id,
            split_member_ids=split_ids,
        )

        snapshot = snapshot.model_copy(
            update={"expenses": [expense, *snapshot.expenses]}
        )
        self._commit(
            snapshot, _activity("expense", f"Added expense: {expense.description}")
        )
        return expense

    def add_document(
        self,
        group_id: str,
        title: str,
        doc_type: DocumentType = DocumentType.OTHER,
        url: str | None = None,
        expiry_date: datetime | None = None,
    ) -> Document:
        """
        Attach a travel document to a group.

        Raises:
            GroupNotFoundError: If the group does not exist
            InvalidInputError: If the title is blank
        """
        snapshot = self.snapshot()
        if get_group_by_id(snapshot, group_id) is None:
            raise GroupNotFoundError(group_id)

        title = title.strip()
        if not title:
            raise InvalidInputError("Document title cannot be empty")

        doc = Document(
            id=new_id("doc"),
            group_id=group_id,
            title=title,
            type=doc_type,
            url=url or None,
            expiry_date=expiry_date,
            created_at=datetime.now().astimezone(),
        )

        snapshot = snapshot.model_copy(update={"docs": [doc, *snapshot.docs]})
        self._commit(snapshot, _activity("doc", f"Uploaded document: {doc.title}"))
        return doc

    def remove_group(self, group_id: str) -> Group:
        """
        Delete a group together with its expenses and documents.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        snapshot = self.snapshot()
        group = get_group_by_id(snapshot, group_id)
        if group is None:
            raise GroupNotFoundError(group_id)

        snapshot = snapshot.model_copy(
            update={
                "groups": [g for g in snapshot.groups if g.id != group_id],
                "expenses": [e for e in snapshot.expenses if e.group_id != group_id],
                "docs": [d for d in snapshot.docs if d.group_id != group_id],
            }
        )
        self._commit(snapshot, _activity("group", f'Deleted group "{group.name}"'))
        return group

    def replace_snapshot(self, snapshot: Snapshot) -> datetime:
        """Overwrite the stored snapshot wholesale (used by import)."""
        saved_at = self.repository.save(snapshot)
        logger.info(
            f"Imported snapshot with {len(snapshot.groups)} groups and "
            f"{len(snapshot.expenses)} expenses"
        )
        return saved_at
