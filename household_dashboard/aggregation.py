"""Month-scoped statistics for the household dashboard.

Every function here is a pure reduction over domain records: inputs are
never mutated and no state is kept between calls. Records are projected into
a pandas DataFrame so filters read as boolean masks and totals as
``groupby``/``sum`` the same way across the module. Empty inputs produce
zero-valued results rather than errors.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .config import BOTH_OWNER
from .models import (
    EMERGENCY,
    EXPENSE,
    GENERAL,
    INCOME,
    Budget,
    Category,
    Investment,
    SavingsGoal,
    Transaction,
)

FRAME_COLUMNS = [
    'id', 'description', 'amount', 'type', 'category', 'owner', 'date',
    'is_recurring', 'is_paid', 'payment_method',
]

EVOLUTION_MAX_POINTS = 20


def transactions_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    """Project transactions into a DataFrame indexed by input position."""
    rows = [
        {
            'id': txn.id,
            'description': txn.description,
            'amount': float(txn.amount),
            'type': txn.type,
            'category': txn.category,
            'owner': txn.owner,
            'date': pd.Timestamp(txn.date),
            'is_recurring': bool(txn.is_recurring),
            'is_paid': bool(txn.is_paid),
            'payment_method': txn.payment_method,
        }
        for txn in transactions
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['amount'] = pd.to_numeric(df['amount']).astype(float)
    df['date'] = pd.to_datetime(df['date'])
    df['Year'] = df['date'].dt.year
    df['Month'] = df['date'].dt.month
    return df


def _owner_mask(df: pd.DataFrame, owner_filter: Optional[str]) -> pd.Series:
    if not owner_filter or owner_filter == BOTH_OWNER:
        return pd.Series(True, index=df.index)
    return df['owner'] == owner_filter


def _month_mask(df: pd.DataFrame, year: int, month: int) -> pd.Series:
    return (df['Year'] == year) & (df['Month'] == month)


def _sum(df: pd.DataFrame, txn_type: str) -> float:
    return float(df.loc[df['type'] == txn_type, 'amount'].sum())


def filter_by_owner(
    transactions: Sequence[Transaction],
    owner_filter: Optional[str],
) -> List[Transaction]:
    if not owner_filter or owner_filter == BOTH_OWNER:
        return list(transactions)
    return [txn for txn in transactions if txn.owner == owner_filter]


def filter_by_month(
    transactions: Sequence[Transaction],
    year: int,
    month: int,
    owner_filter: Optional[str] = None,
) -> List[Transaction]:
    """Transactions dated in the calendar month, owner-scoped."""
    df = transactions_frame(transactions)
    mask = _month_mask(df, year, month) & _owner_mask(df, owner_filter)
    return [transactions[pos] for pos in df.index[mask.to_numpy()]]


def search_transactions(
    transactions: Sequence[Transaction],
    term: str,
    owner_filter: Optional[str] = None,
) -> List[Transaction]:
    """Case-insensitive match on description or category across all months."""
    needle = (term or '').strip().lower()
    scoped = filter_by_owner(transactions, owner_filter)
    if not needle:
        return scoped
    return [
        txn for txn in scoped
        if needle in txn.description.lower() or needle in txn.category.lower()
    ]


def monthly_totals(
    transactions: Sequence[Transaction],
    year: int,
    month: int,
    owner_filter: Optional[str] = None,
) -> Dict[str, float]:
    """Income, expenses and balance for one calendar month."""
    df = transactions_frame(transactions)
    scoped = df[_month_mask(df, year, month) & _owner_mask(df, owner_filter)]
    income = _sum(scoped, INCOME)
    expenses = _sum(scoped, EXPENSE)
    return {
        'income': income,
        'expenses': expenses,
        'balance': income - expenses,
    }


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def variation(current: float, previous: float) -> Optional[float]:
    """Percent change from ``previous`` to ``current``.

    Returns ``None`` when there is no prior value to compare against.
    """
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def month_over_month(
    transactions: Sequence[Transaction],
    year: int,
    month: int,
    owner_filter: Optional[str] = None,
) -> Dict[str, Any]:
    current = monthly_totals(transactions, year, month, owner_filter)
    prior = monthly_totals(transactions, *previous_month(year, month), owner_filter)
    return {
        'current': current,
        'previous': prior,
        'income_variation': variation(current['income'], prior['income']),
        'expense_variation': variation(current['expenses'], prior['expenses']),
    }


def spending_by_category(transactions: Sequence[Transaction]) -> Dict[str, float]:
    """Expense totals keyed by category name (orphan names included)."""
    df = transactions_frame(transactions)
    expenses = df[df['type'] == EXPENSE]
    if expenses.empty:
        return {}
    grouped = expenses.groupby('category', sort=False)['amount'].sum()
    return {str(category): float(total) for category, total in grouped.items()}


def pending_bills(
    transactions: Sequence[Transaction],
    year: int,
    month: int,
    owner_filter: Optional[str] = None,
) -> Dict[str, Any]:
    """Unpaid expenses for the month, earliest due first."""
    df = transactions_frame(transactions)
    mask = (
        _month_mask(df, year, month)
        & _owner_mask(df, owner_filter)
        & (df['type'] == EXPENSE)
        & ~df['is_paid']
    )
    pending = df[mask].sort_values('date', kind='mergesort')
    return {
        'items': [transactions[pos] for pos in pending.index],
        'total': float(pending['amount'].sum()),
    }


BudgetInput = Union[Sequence[Budget], Mapping[str, float]]


def _budget_limits(budgets: BudgetInput) -> Dict[str, float]:
    if isinstance(budgets, Mapping):
        return {str(k): float(v) for k, v in budgets.items()}
    return {budget.category: float(budget.limit_amount) for budget in budgets}


def budget_progress(
    spending: Mapping[str, float],
    budgets: BudgetInput,
) -> List[Dict[str, Any]]:
    """Compare category spending against standing monthly limits.

    A category with spending but no budget row is reported with ``limit=0``
    and never flagged over budget: zero means "unset".
    """
    limits = _budget_limits(budgets)
    categories = list(spending) + [name for name in limits if name not in spending]
    rows = []
    for category in categories:
        spent = float(spending.get(category, 0.0))
        limit = limits.get(category, 0.0)
        rows.append({
            'category': category,
            'spent': spent,
            'limit': limit,
            'over_budget': limit > 0 and spent > limit,
            'percent_used': (spent / limit * 100) if limit > 0 else None,
        })
    return rows


def at_risk_budgets(progress: Iterable[Mapping[str, Any]], threshold: float = 0.9) -> List[Mapping[str, Any]]:
    """Budget rows whose spend reached ``threshold`` of a non-zero limit."""
    return [
        row for row in progress
        if row['limit'] > 0 and row['spent'] >= row['limit'] * threshold
    ]


def goal_progress(goals: Sequence[SavingsGoal]) -> List[Dict[str, Any]]:
    rows = []
    for goal in goals:
        rows.append({
            'name': goal.name,
            'owner': goal.owner,
            'target_amount': goal.target_amount,
            'current_amount': goal.current_amount,
            'remaining': goal.remaining,
            'progress': goal.progress,
            'status': 'Completed' if goal.target_amount > 0 and goal.current_amount >= goal.target_amount else 'In Progress',
        })
    return rows


def _scope_investments(
    investments: Sequence[Investment],
    owner_filter: Optional[str],
) -> List[Investment]:
    if not owner_filter or owner_filter == BOTH_OWNER:
        return list(investments)
    return [inv for inv in investments if inv.owner == owner_filter]


def investment_evolution(
    investments: Sequence[Investment],
    owner_filter: Optional[str] = None,
    max_points: int = EVOLUTION_MAX_POINTS,
) -> List[Dict[str, Any]]:
    """Running portfolio value across every history entry.

    Entries from all investments are merged in date order (ties keep their
    original relative order); withdrawals subtract. Only the most recent
    ``max_points`` points are kept.
    """
    operations = [
        {'date': pd.Timestamp(op.date), 'amount': op.signed_amount}
        for inv in _scope_investments(investments, owner_filter)
        for op in inv.history
    ]
    if not operations:
        return []
    df = pd.DataFrame(operations).sort_values('date', kind='mergesort')
    df['cumulative_value'] = df['amount'].cumsum()
    if max_points and len(df) > max_points:
        df = df.tail(max_points)
    return [
        {'date': row.date.date(), 'cumulative_value': float(row.cumulative_value)}
        for row in df.itertuples(index=False)
    ]


def portfolio_totals(
    investments: Sequence[Investment],
    owner_filter: Optional[str] = None,
) -> Dict[str, float]:
    scoped = _scope_investments(investments, owner_filter)
    return {
        'total': float(sum(inv.current_amount for inv in scoped)),
        'emergency': float(sum(inv.current_amount for inv in scoped if inv.type == EMERGENCY)),
        'general': float(sum(inv.current_amount for inv in scoped if inv.type == GENERAL)),
    }


def monthly_history(
    transactions: Sequence[Transaction],
    owner_filter: Optional[str] = None,
    months: int = 6,
    today: Optional[date] = None,
) -> pd.DataFrame:
    """Income and expenses for the ``months`` calendar months ending at ``today``."""
    today = today or date.today()
    end = pd.Period(today, freq='M')
    periods = pd.period_range(end=end, periods=months, freq='M')

    df = transactions_frame(transactions)
    df = df[_owner_mask(df, owner_filter)]
    df = df.assign(Period=df['date'].dt.to_period('M'))
    income = df[df['type'] == INCOME].groupby('Period')['amount'].sum()
    expenses = df[df['type'] == EXPENSE].groupby('Period')['amount'].sum()

    rows = []
    for period in periods:
        month_income = float(income.get(period, 0.0))
        month_expenses = float(expenses.get(period, 0.0))
        rows.append({
            'Month': str(period),
            'Income': month_income,
            'Expenses': month_expenses,
            'Balance': month_income - month_expenses,
        })
    return pd.DataFrame(rows, columns=['Month', 'Income', 'Expenses', 'Balance'])


def essential_split(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
) -> Dict[str, float]:
    """Expense totals split by the category's essential flag."""
    essential_names = {
        cat.name for cat in categories if cat.type == EXPENSE and cat.is_essential
    }
    spending = spending_by_category(transactions)
    essential = sum(total for name, total in spending.items() if name in essential_names)
    non_essential = sum(total for name, total in spending.items() if name not in essential_names)
    return {'essential': float(essential), 'non_essential': float(non_essential)}
