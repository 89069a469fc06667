"""Spend forecasting: project a trip's final total from spend so far.

The model is a straight line fitted by least squares to cumulative daily
spend. It is a naive trend, but it is deterministic for identical inputs and
never predicts less than what has already been spent.
"""

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal

from .ledger import get_group_by_id, group_expenses
from .models import Expense, Snapshot
from .rounding import to_cents, to_decimal

logger = logging.getLogger(__name__)


def linear_regression(
    xs: Sequence[float], ys: Sequence[float]
) -> tuple[float, float]:
    """
    Ordinary least-squares fit of ys = slope * xs + intercept.

    A zero denominator (all xs equal) is replaced by 1.

    Returns:
        Tuple of (slope, intercept)
    """
    n = len(xs)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)

    denom = n * sum_xx - sum_x * sum_x or 1
    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def _local_day(timestamp: datetime) -> date:
    """Calendar day of a timestamp in local time."""
    return timestamp.astimezone().date()


def daily_totals(expenses: Iterable[Expense]) -> dict[date, Decimal]:
    """Sum expense amounts per local calendar day."""
    totals: dict[date, Decimal] = {}
    for expense in expenses:
        day = _local_day(expense.date)
        totals[day] = totals.get(day, Decimal("0")) + to_decimal(expense.amount)
    return totals


def trip_length_days(start: date, end: date) -> int:
    """Inclusive number of days from start to end, at least 1."""
    return max(1, (end - start).days + 1)


def _calendar_window(start: date, end: date) -> list[date]:
    days = []
    day = start
    while day <= end:
        days.append(day)
        day += timedelta(days=1)
    return days


def predict_total_for_group(
    snapshot: Snapshot,
    group_id: str,
    lookahead: int = 3,
    today: date | None = None,
) -> Decimal:
    """
    Predict the final total spend for a group.

    The observation window is the trip's calendar (start date through the
    earlier of end date and today, one point per day, zero-filled) when both
    trip dates are known, otherwise the distinct days that have expenses.
    A line is fitted to the cumulative series over x = 1..n and evaluated at
    the trip length (trip dates known) or n + lookahead.

    Args:
        snapshot: Data snapshot
        group_id: Group to forecast
        lookahead: Extra days to project when trip dates are unknown
        today: Current date; defaults to date.today()

    Returns:
        Predicted total rounded to cents, never below the current total
    """
    expenses = sorted(group_expenses(snapshot, group_id), key=lambda e: e.date)
    if not expenses:
        return to_cents(0)

    current_total = sum((to_decimal(e.amount) for e in expenses), Decimal("0"))
    per_day = daily_totals(expenses)

    group = get_group_by_id(snapshot, group_id)
    trip_length: int | None = None
    if group is not None and group.has_trip_dates():
        today = today or date.today()
        trip_length = trip_length_days(group.start_date, group.end_date)
        window = _calendar_window(group.start_date, min(group.end_date, today))
    else:
        window = sorted(per_day)

    cumulative: list[Decimal] = []
    running = Decimal("0")
    for day in window:
        running += per_day.get(day, Decimal("0"))
        cumulative.append(running)

    n = len(cumulative)
    if n < 2:
        if trip_length is None:
            return to_cents(current_total)
        predicted = current_total / max(1, n) * trip_length
        return to_cents(max(current_total, predicted))

    xs = [float(x) for x in range(1, n + 1)]
    ys = [float(y) for y in cumulative]
    slope, intercept = linear_regression(xs, ys)

    x_target = trip_length if trip_length is not None else n + lookahead
    predicted_value = intercept + slope * x_target
    logger.debug(
        f"Forecast fit for group {group_id}: slope={slope:.4f}, "
        f"intercept={intercept:.4f}, x_target={x_target}"
    )

    if not math.isfinite(predicted_value):
        return to_cents(current_total)

    return to_cents(max(Decimal(str(predicted_value)), current_total))
