"""Core settlement logic: turn a period's expenses and meals into balances."""

import logging
from collections.abc import Callable, Iterable
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from typing import TypeVar

from .models import (
    ExpenseRecord,
    MealRecord,
    Member,
    Period,
    SettlementEntry,
    SettlementReport,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", ExpenseRecord, MealRecord)
N = TypeVar("N", Decimal, int)

# Settlement arithmetic ignores the caller's decimal context
SETTLEMENT_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)


def per_meal_price(total_expenses: Decimal, total_meals: int) -> Decimal:
    """
    Compute the unit cost used to apportion shared spending.

    A period with no meals has a price of zero rather than raising.

    Args:
        total_expenses: Sum of all expense amounts in the period
        total_meals: Sum of all meal counts in the period

    Returns:
        total_expenses / total_meals, or 0 when total_meals is not positive
    """
    if total_meals > 0:
        with localcontext(SETTLEMENT_CONTEXT):
            return total_expenses / total_meals
    return Decimal("0")


def totals_by_member(
    records: Iterable[R], value: Callable[[R], N], zero: N
) -> dict[int, N]:
    """
    Sum a value per owning member.

    Args:
        records: Expense or meal records
        value: Extracts the number to add up from a record
        zero: Starting value for each member

    Returns:
        Mapping of member_id to summed value
    """
    totals: dict[int, N] = {}
    for record in records:
        totals[record.member_id] = totals.get(record.member_id, zero) + value(record)
    return totals


def compute_settlement(
    members: Iterable[Member],
    expenses: Iterable[ExpenseRecord],
    meals: Iterable[MealRecord],
    period: Period | None = None,
) -> SettlementReport:
    """
    Compute each member's fair share and balance for one period.

    Steps:
    1. Sum all expense amounts and all meal counts
    2. Derive the per-meal price (zero when no meals were logged)
    3. For every roster member, including inactive ones, charge
       meals x price against what they paid
    4. Order entries by member id

    Input is not validated: negative amounts or non-positive counts flow
    through and skew the result without raising.

    Args:
        members: The roster; an empty roster yields an empty report
        expenses: Every expense record belonging to the period
        meals: Every meal record belonging to the period
        period: Optional period to stamp on the report

    Returns:
        Settlement report with entries ordered by member id ascending
    """
    roster = sorted(members, key=lambda member: member.id)
    if not roster:
        return SettlementReport(period=period)

    expenses = list(expenses)
    meals = list(meals)

    with localcontext(SETTLEMENT_CONTEXT):
        total_expenses = sum((expense.amount for expense in expenses), Decimal("0"))
        total_meals = sum(meal.count for meal in meals)
        price = per_meal_price(total_expenses, total_meals)

        paid = totals_by_member(expenses, lambda expense: expense.amount, Decimal("0"))
        eaten = totals_by_member(meals, lambda meal: meal.count, 0)

        entries = []
        for member in roster:
            member_expenses = paid.get(member.id, Decimal("0"))
            member_meals = eaten.get(member.id, 0)
            meal_cost = member_meals * price
            entries.append(
                SettlementEntry(
                    member_id=member.id,
                    member_name=member.name,
                    total_expenses=member_expenses,
                    total_meals=member_meals,
                    meal_cost=meal_cost,
                    balance=member_expenses - meal_cost,
                )
            )

    logger.debug(
        f"Settled {len(entries)} members: total {total_expenses} over "
        f"{total_meals} meals, price {price}"
    )

    return SettlementReport(
        period=period,
        entries=entries,
        total_expenses=total_expenses,
        total_meals=total_meals,
        per_meal_price=price,
    )
