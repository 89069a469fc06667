"""Tests for ledger aggregation (totals, categories, balances, activity)."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from trip_ledger.ledger import (
    compute_group_totals,
    get_group_by_id,
    get_recent_activity,
)
from trip_ledger.models import (
    ActivityEntry,
    Expense,
    ExpenseCategory,
    Group,
    Member,
    Snapshot,
)


def make_expense(
    id: str,
    amount: str | None,
    paid_by: str,
    split: list[str],
    category: ExpenseCategory = ExpenseCategory.FOOD,
    group_id: str = "g1",
    day: int = 1,
) -> Expense:
    """Create an Expense for testing."""
    return Expense(
        id=id,
        group_id=group_id,
        amount=Decimal(amount) if amount is not None else None,
        category=category,
        description=f"Test expense {id}",
        date=datetime(2025, 3, day, 12, 0),
        paid_by_member_id=paid_by,
        split_member_ids=split,
    )


@pytest.fixture
def group():
    return Group(
        id="g1",
        name="Goa Trip",
        members=[
            Member(id="a", name="Ramit"),
            Member(id="b", name="Sunidhi"),
            Member(id="c", name="Arpit"),
        ],
    )


class TestGroupLookup:
    def test_finds_group(self, group):
        snapshot = Snapshot(groups=[group])
        assert get_group_by_id(snapshot, "g1") == group

    def test_missing_or_empty_id(self, group):
        snapshot = Snapshot(groups=[group])
        assert get_group_by_id(snapshot, "nope") is None
        assert get_group_by_id(snapshot, "") is None
        assert get_group_by_id(snapshot, None) is None


class TestGroupTotals:
    """Totals, category sums and member balances."""

    def test_no_expenses(self, group):
        """Every member starts at exactly zero."""
        totals = compute_group_totals(Snapshot(groups=[group]), "g1")

        assert totals.total == 0
        assert totals.by_category == {}
        assert totals.member_balances == {
            "a": Decimal("0"),
            "b": Decimal("0"),
            "c": Decimal("0"),
        }

    def test_unknown_group(self, group):
        """An unknown group behaves like an empty one with no members."""
        snapshot = Snapshot(
            groups=[group], expenses=[make_expense("e1", "10", "a", ["a", "b"])]
        )
        totals = compute_group_totals(snapshot, "missing")

        assert totals.total == 0
        assert totals.by_category == {}
        assert totals.member_balances == {}

    def test_even_split(self, group):
        snapshot = Snapshot(
            groups=[group],
            expenses=[make_expense("e1", "90.00", "a", ["a", "b", "c"])],
        )
        totals = compute_group_totals(snapshot, "g1")

        assert totals.total == Decimal("90.00")
        assert totals.member_balances["a"] == Decimal("60")
        assert totals.member_balances["b"] == Decimal("-30")
        assert totals.member_balances["c"] == Decimal("-30")

    def test_filters_other_groups(self, group):
        snapshot = Snapshot(
            groups=[group],
            expenses=[
                make_expense("e1", "50", "a", ["a", "b"]),
                make_expense("e2", "999", "a", ["a", "b"], group_id="g2"),
            ],
        )
        totals = compute_group_totals(snapshot, "g1")

        assert totals.total == Decimal("50")

    def test_category_breakdown(self, group):
        snapshot = Snapshot(
            groups=[group],
            expenses=[
                make_expense("e1", "40", "a", ["a"], ExpenseCategory.FOOD),
                make_expense("e2", "25", "b", ["b"], ExpenseCategory.TRANSPORT),
                make_expense("e3", "10", "c", ["c"], ExpenseCategory.FOOD),
            ],
        )
        totals = compute_group_totals(snapshot, "g1")

        assert totals.by_category == {
            "Food": Decimal("50"),
            "Transport": Decimal("25"),
        }

    def test_missing_amount_counts_as_zero(self, group):
        snapshot = Snapshot(
            groups=[group],
            expenses=[
                make_expense("e1", None, "a", ["a", "b"]),
                make_expense("e2", "20", "a", ["a", "b"]),
            ],
        )
        totals = compute_group_totals(snapshot, "g1")

        assert totals.total == Decimal("20")
        assert totals.by_category == {"Food": Decimal("20")}
        assert totals.member_balances["b"] == Decimal("-10")

    def test_payer_outside_split_is_credited(self, group):
        snapshot = Snapshot(
            groups=[group],
            expenses=[make_expense("e1", "60", "a", ["b", "c"])],
        )
        balances = compute_group_totals(snapshot, "g1").member_balances

        assert balances == {"a": Decimal("60"), "b": Decimal("-30"), "c": Decimal("-30")}

    def test_empty_split_credits_payer_only(self, group):
        snapshot = Snapshot(
            groups=[group],
            expenses=[make_expense("e1", "60", "a", [])],
        )
        balances = compute_group_totals(snapshot, "g1").member_balances

        assert balances["a"] == Decimal("60")
        assert balances["b"] == 0
        assert balances["c"] == 0

    def test_unknown_member_ids_get_entries(self, group):
        """Unknown payer and split ids are tolerated with ad hoc entries."""
        snapshot = Snapshot(
            groups=[group],
            expenses=[make_expense("e1", "30", "ghost", ["a", "stranger"])],
        )
        balances = compute_group_totals(snapshot, "g1").member_balances

        assert balances["ghost"] == Decimal("30")
        assert balances["stranger"] == Decimal("-15")
        assert balances["a"] == Decimal("-15")

    def test_duplicate_split_ids_inflate_share(self, group):
        snapshot = Snapshot(
            groups=[group],
            expenses=[make_expense("e1", "90", "c", ["a", "a", "b"])],
        )
        balances = compute_group_totals(snapshot, "g1").member_balances

        assert balances["a"] == Decimal("-60")
        assert balances["b"] == Decimal("-30")
        assert balances["c"] == Decimal("90")

    def test_balances_sum_to_zero(self, group):
        """Uneven three-way splits still net to zero within tolerance."""
        expenses = [
            make_expense("e1", "100", "a", ["a", "b", "c"]),
            make_expense("e2", "33.33", "b", ["a", "c"]),
            make_expense("e3", "17.01", "c", ["a", "b", "c"]),
            make_expense("e4", "250.50", "a", ["b", "c"]),
        ]
        balances = compute_group_totals(
            Snapshot(groups=[group], expenses=expenses), "g1"
        ).member_balances

        assert abs(sum(balances.values())) <= Decimal("1e-6") * len(expenses)

    def test_does_not_mutate_snapshot(self, group):
        expenses = [make_expense("e1", "30", "a", ["a", "b"])]
        snapshot = Snapshot(groups=[group], expenses=expenses)
        before = snapshot.model_dump()

        compute_group_totals(snapshot, "g1")

        assert snapshot.model_dump() == before


class TestRecentActivity:
    def make_entry(self, id: str, hour: int) -> ActivityEntry:
        return ActivityEntry(
            id=id, type="expense", message=f"entry {id}", at=datetime(2025, 3, 1, hour)
        )

    def test_newest_first_and_limited(self):
        snapshot = Snapshot(
            activity=[self.make_entry(str(h), h) for h in (9, 14, 11, 20, 7)]
        )

        recent = get_recent_activity(snapshot, limit=3)

        assert [e.id for e in recent] == ["20", "14", "11"]

    def test_default_limit(self):
        snapshot = Snapshot(activity=[self.make_entry(str(h), h) for h in range(12)])

        assert len(get_recent_activity(snapshot)) == 8

    def test_ties_keep_snapshot_order(self):
        snapshot = Snapshot(
            activity=[self.make_entry("first", 10), self.make_entry("second", 10)]
        )

        assert [e.id for e in get_recent_activity(snapshot)] == ["first", "second"]

    def test_mixed_naive_and_aware_timestamps(self, india_local_time):
        """Naive 09:00 local is 03:30Z, so the 05:00Z entry is newer."""
        snapshot = Snapshot(
            activity=[
                self.make_entry("local", 9),
                ActivityEntry(
                    id="utc",
                    type="group",
                    message="entry utc",
                    at=datetime(2025, 3, 1, 5, 0, tzinfo=UTC),
                ),
            ]
        )

        assert [e.id for e in get_recent_activity(snapshot)] == ["utc", "local"]
