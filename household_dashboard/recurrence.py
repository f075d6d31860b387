"""Recurring transaction expansion and month reconciliation."""

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional, Sequence, Set, Tuple

from dateutil.relativedelta import relativedelta

from .aggregation import filter_by_month, previous_month
from .models import Transaction, default_is_paid


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by whole calendar months.

    A day-of-month that does not exist in the target month is clamped to the
    month's last day (Jan 31 + 1 month -> Feb 28/29).
    """
    return day + relativedelta(months=months)


def _move_to_month(day: date, year: int, month: int) -> date:
    return add_months(day, (year - day.year) * 12 + (month - day.month))


def new_recurrence_group_id() -> str:
    return uuid.uuid4().hex


def expand(
    transaction: Transaction,
    months_count: Optional[int] = None,
    label_installments: bool = False,
) -> List[Transaction]:
    """Produce the dated instances of one transaction intent.

    A recurring transaction yields ``months_count`` copies (default: its own
    ``recurring_months``), the ``i``-th dated ``i`` months after the
    original, starting with the original month. A non-recurring transaction
    always yields exactly one copy. Copies carry no id; they share one
    ``recurrence_group_id``.
    """
    if not transaction.is_recurring:
        return [transaction.copy(id=None)]

    count = transaction.recurring_months if months_count is None else months_count
    count = max(int(count or 0), 1)
    group_id = transaction.recurrence_group_id or new_recurrence_group_id()

    instances = []
    for offset in range(count):
        description = transaction.description
        if label_installments:
            description = f"{description} ({offset + 1}/{count})"
        instances.append(
            transaction.copy(
                id=None,
                date=add_months(transaction.date, offset),
                description=description,
                recurrence_group_id=group_id,
            )
        )
    return instances


def _legacy_key(txn: Transaction) -> Tuple[str, float]:
    return (txn.description, round(float(txn.amount), 2))


def reconcile_month(
    all_transactions: Sequence[Transaction],
    year: int,
    month: int,
    owner_filter: Optional[str] = None,
) -> List[Transaction]:
    """Instances of last month's recurring transactions missing from ``year-month``.

    An instance counts as already generated when the target month holds a
    transaction with the same ``recurrence_group_id``, or, for rows without
    a group id, the same description and amount. New instances start with the
    paid status of their payment method. Persisting the result and running
    again returns an empty list.
    """
    prior_year, prior_month = previous_month(year, month)
    sources = [
        txn for txn in filter_by_month(all_transactions, prior_year, prior_month, owner_filter)
        if txn.is_recurring
    ]
    if not sources:
        return []

    existing = filter_by_month(all_transactions, year, month, owner_filter)
    existing_groups: Set[str] = {
        txn.recurrence_group_id for txn in existing if txn.recurrence_group_id
    }
    existing_keys: Set[Tuple[str, float]] = {_legacy_key(txn) for txn in existing}

    created: List[Transaction] = []
    for source in sources:
        if source.recurrence_group_id:
            if source.recurrence_group_id in existing_groups:
                continue
            existing_groups.add(source.recurrence_group_id)
        else:
            key = _legacy_key(source)
            if key in existing_keys:
                continue
            existing_keys.add(key)
        created.append(
            source.copy(
                id=None,
                date=_move_to_month(source.date, year, month),
                is_paid=default_is_paid(source.payment_method),
            )
        )
    return created
