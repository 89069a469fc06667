"""Pydantic domain models for trip-ledger."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _assume_local(value: datetime) -> datetime:
    """Attach the host's local zone to naive timestamps; aware ones pass through."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


# Naive and aware datetimes cannot be ordered against each other, so every
# stored timestamp is made aware on the way in.
Timestamp = Annotated[datetime, AfterValidator(_assume_local)]


class SnapshotModel(BaseModel):
    """Base for snapshot values: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================================================
# Enumerations
# ============================================================================


class ExpenseCategory(str, Enum):
    """Closed set of expense categories."""

    FOOD = "Food"
    ACCOMMODATION = "Accommodation"
    TRANSPORT = "Transport"
    ACTIVITIES = "Activities"
    OTHER = "Other"


class DocumentType(str, Enum):
    """Closed set of travel document types."""

    PASSPORT = "Passport"
    VISA = "Visa"
    TICKET = "Ticket"
    BOOKING = "Booking"
    INSURANCE = "Insurance"
    OTHER = "Other"


# ============================================================================
# Snapshot Models
# ============================================================================


class Member(SnapshotModel):
    """A member of a travel group."""

    id: str
    name: str


class Group(SnapshotModel):
    """A travel group with its members and optional trip dates."""

    id: str
    name: str
    members: list[Member] = Field(default_factory=list)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    def has_trip_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class Expense(SnapshotModel):
    """A shared expense paid by one member and split equally among others.

    A missing amount counts as zero. Duplicate ids in split_member_ids are
    kept: the equal split is by entry count.
    """

    id: str
    group_id: str
    amount: Decimal | None = Field(default=None, ge=0)
    category: ExpenseCategory = ExpenseCategory.OTHER
    description: str = ""
    date: Timestamp
    paid_by_member_id: str
    split_member_ids: list[str] = Field(default_factory=list)


class Document(SnapshotModel):
    """A travel document attached to a group."""

    id: str
    group_id: str
    title: str
    type: DocumentType = DocumentType.OTHER
    url: str | None = None
    expiry_date: Timestamp | None = None
    created_at: Timestamp


class ActivityEntry(SnapshotModel):
    """An entry in the activity log."""

    id: str
    type: Literal["group", "expense", "doc"]
    message: str
    at: Timestamp


class Snapshot(SnapshotModel):
    """Everything the engine reads, as one immutable value."""

    groups: list[Group] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    docs: list[Document] = Field(default_factory=list)
    activity: list[ActivityEntry] = Field(default_factory=list)


# ============================================================================
# Derived Models
# ============================================================================


class GroupTotals(SnapshotModel):
    """Totals for one group.

    member_balances: positive means the member is owed money, negative means
    they owe.
    """

    total: Decimal = Decimal("0")
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    member_balances: dict[str, Decimal] = Field(default_factory=dict)


class SettlementTransaction(SnapshotModel):
    """A single payment from a debtor to a creditor."""

    from_member_id: str
    to_member_id: str
    amount: Decimal
