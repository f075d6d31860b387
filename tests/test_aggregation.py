from datetime import date

import pytest

from household_dashboard import aggregation as agg
from household_dashboard.models import (
    CONTRIBUTION,
    EMERGENCY,
    EXPENSE,
    GENERAL,
    INCOME,
    WITHDRAWAL,
    Budget,
    Category,
    Investment,
    InvestmentOperation,
    SavingsGoal,
    Transaction,
)


def _txn(amount, day, type=EXPENSE, owner='A', category='Market', description='item',
         is_recurring=False, is_paid=True):
    return Transaction(
        description=description,
        amount=amount,
        type=type,
        category=category,
        owner=owner,
        date=date.fromisoformat(day),
        is_recurring=is_recurring,
        recurring_months=3 if is_recurring else 0,
        is_paid=is_paid,
    )


def _investment(name, ops, type=GENERAL, owner='A'):
    history = [InvestmentOperation(date=date.fromisoformat(d), amount=a, operation=o) for d, a, o in ops]
    inv = Investment(name=name, type=type, owner=owner, history=history)
    inv.current_amount = inv.history_total()
    return inv


def _ledger():
    return [
        _txn(3000, '2024-01-05', type=INCOME, category='Salary'),
        _txn(2500, '2024-01-06', type=INCOME, owner='B', category='Salary'),
        _txn(100, '2024-01-15'),
        _txn(50, '2024-01-20', is_recurring=True, category='Streaming'),
        _txn(80, '2024-01-21', owner='B', category='Pets'),
        _txn(400, '2023-12-10'),
        _txn(2800, '2023-12-05', type=INCOME, category='Salary'),
        _txn(999, '2024-02-01'),
    ]


@pytest.mark.parametrize('year, month, owner', [
    (2024, 1, None), (2024, 1, 'A'), (2024, 1, 'B'), (2023, 12, 'Both'), (2024, 2, None), (2022, 6, None),
])
def test_balance_is_income_minus_expenses(year, month, owner):
    totals = agg.monthly_totals(_ledger(), year, month, owner)
    assert totals['balance'] == pytest.approx(totals['income'] - totals['expenses'])


def test_monthly_expenses_include_variable_and_recurring():
    txns = [_txn(100, '2024-01-15'), _txn(50, '2024-01-20', is_recurring=True)]
    assert agg.monthly_totals(txns, 2024, 1)['expenses'] == 150


def test_owner_filter_scopes_and_both_passes_through():
    ledger = _ledger()
    assert agg.monthly_totals(ledger, 2024, 1, 'A')['income'] == 3000
    assert agg.monthly_totals(ledger, 2024, 1, 'B')['expenses'] == 80
    assert agg.monthly_totals(ledger, 2024, 1, 'Both') == agg.monthly_totals(ledger, 2024, 1, None)


def test_empty_input_yields_zero_totals():
    assert agg.monthly_totals([], 2024, 1) == {'income': 0.0, 'expenses': 0.0, 'balance': 0.0}
    assert agg.spending_by_category([]) == {}
    assert agg.pending_bills([], 2024, 1) == {'items': [], 'total': 0.0}
    assert agg.investment_evolution([]) == []


def test_variation_handles_zero_previous():
    assert agg.variation(150, 0) is None
    assert agg.variation(0, 0) is None
    assert agg.variation(42.5, 42.5) == 0
    assert agg.variation(150, 100) == pytest.approx(50.0)
    assert agg.variation(50, 100) == pytest.approx(-50.0)


def test_month_over_month_crosses_year_boundary():
    result = agg.month_over_month(_ledger(), 2024, 1, 'A')
    assert result['previous']['expenses'] == 400
    assert result['current']['expenses'] == 150
    assert result['expense_variation'] == pytest.approx(-62.5)
    assert agg.previous_month(2024, 1) == (2023, 12)


def test_spending_by_category_keeps_orphans():
    spending = agg.spending_by_category([
        _txn(10, '2024-01-01', category='Market'),
        _txn(5, '2024-01-02', category='No Such Category'),
        _txn(7, '2024-01-03', category='Market'),
        _txn(1000, '2024-01-04', type=INCOME, category='Salary'),
    ])
    assert spending == {'Market': 17.0, 'No Such Category': 5.0}


def test_pending_bills_sorted_by_date_with_stable_ties():
    txns = [
        _txn(30, '2024-01-20', is_paid=False, description='late'),
        _txn(10, '2024-01-05', is_paid=False, description='first-tie'),
        _txn(20, '2024-01-05', is_paid=False, description='second-tie'),
        _txn(99, '2024-01-06', is_paid=True, description='paid'),
        _txn(50, '2024-01-07', type=INCOME, is_paid=False, description='income'),
        _txn(40, '2024-01-08', owner='B', is_paid=False, description='other owner'),
        _txn(15, '2024-02-01', is_paid=False, description='next month'),
    ]
    result = agg.pending_bills(txns, 2024, 1, 'A')
    assert [t.description for t in result['items']] == ['first-tie', 'second-tie', 'late']
    assert result['total'] == 60


def test_budget_progress_flags_overspend():
    result = agg.budget_progress({'Market': 500}, [Budget(category='Market', limit_amount=400)])
    assert len(result) == 1
    row = result[0]
    assert (row['category'], row['spent'], row['limit'], row['over_budget']) == ('Market', 500, 400, True)


def test_budget_progress_unset_limit_is_never_at_risk():
    progress = agg.budget_progress(
        {'Market': 500, 'Pets': 95},
        {'Pets': 100, 'Travel': 300},
    )
    by_category = {row['category']: row for row in progress}
    assert by_category['Market']['limit'] == 0
    assert by_category['Market']['over_budget'] is False
    assert by_category['Market']['percent_used'] is None
    assert by_category['Travel']['spent'] == 0
    assert [row['category'] for row in agg.at_risk_budgets(progress)] == ['Pets']


def test_goal_progress_rows():
    rows = agg.goal_progress([
        SavingsGoal(name='Car', target_amount=1000, current_amount=250, owner='A'),
        SavingsGoal(name='Trip', target_amount=500, current_amount=500, owner='Both'),
    ])
    assert rows[0]['progress'] == 25.0
    assert rows[0]['remaining'] == 750
    assert rows[0]['status'] == 'In Progress'
    assert rows[1]['status'] == 'Completed'


def test_investment_evolution_is_date_ordered_and_running():
    invs = [
        _investment('Stocks', [('2024-03-01', 100, CONTRIBUTION), ('2024-01-01', 50, CONTRIBUTION)]),
        _investment('Bonds', [('2024-02-01', 25, CONTRIBUTION)]),
    ]
    points = agg.investment_evolution(invs)
    dates = [p['date'] for p in points]
    assert dates == sorted(dates)
    assert [p['cumulative_value'] for p in points] == [50, 75, 175]


def test_single_investment_with_contributions_never_decreases():
    inv = _investment('Fund', [(f'2024-{m:02d}-01', 10 * m, CONTRIBUTION) for m in range(1, 13)])
    values = [p['cumulative_value'] for p in agg.investment_evolution([inv])]
    assert values == sorted(values)


def test_investment_evolution_subtracts_withdrawals():
    inv = _investment('Fund', [('2024-01-01', 100, CONTRIBUTION), ('2024-02-01', 30, WITHDRAWAL)])
    assert [p['cumulative_value'] for p in agg.investment_evolution([inv])] == [100, 70]


def test_investment_evolution_keeps_latest_twenty_points():
    ops = [(f'2023-{m:02d}-01', 1, CONTRIBUTION) for m in range(1, 13)]
    ops += [(f'2024-{m:02d}-01', 1, CONTRIBUTION) for m in range(1, 13)]
    points = agg.investment_evolution([_investment('Fund', ops)])
    assert len(points) == agg.EVOLUTION_MAX_POINTS
    assert points[0]['date'] == date(2023, 5, 1)
    assert points[-1]['cumulative_value'] == 24


def test_investment_evolution_ties_keep_input_order():
    invs = [
        _investment('First', [('2024-01-01', 10, CONTRIBUTION)]),
        _investment('Second', [('2024-01-01', 5, CONTRIBUTION)]),
    ]
    assert [p['cumulative_value'] for p in agg.investment_evolution(invs)] == [10, 15]


def test_portfolio_totals_split_emergency():
    invs = [
        _investment('Reserve', [('2024-01-01', 600, CONTRIBUTION)], type=EMERGENCY),
        _investment('Stocks', [('2024-01-01', 400, CONTRIBUTION)], owner='B'),
    ]
    assert agg.portfolio_totals(invs) == {'total': 1000.0, 'emergency': 600.0, 'general': 400.0}
    assert agg.portfolio_totals(invs, 'B')['total'] == 400.0


def test_search_matches_description_or_category_case_insensitively():
    txns = [
        _txn(10, '2023-05-01', description='Pizza Night', category='Leisure'),
        _txn(20, '2024-01-01', description='Vet', category='Pets'),
        _txn(30, '2024-01-02', description='Dog food', category='Pets', owner='B'),
    ]
    assert [t.description for t in agg.search_transactions(txns, 'pizza')] == ['Pizza Night']
    assert [t.description for t in agg.search_transactions(txns, 'PETS', 'A')] == ['Vet']
    assert len(agg.search_transactions(txns, '  ')) == 3


def test_filter_by_month_returns_original_records():
    ledger = _ledger()
    january = agg.filter_by_month(ledger, 2024, 1, 'B')
    assert all(txn in ledger for txn in january)
    assert {t.category for t in january} == {'Salary', 'Pets'}


def test_monthly_history_covers_trailing_months():
    history = agg.monthly_history(_ledger(), months=3, today=date(2024, 2, 10))
    assert list(history['Month']) == ['2023-12', '2024-01', '2024-02']
    assert list(history['Expenses']) == [400, 230, 999]
    assert history['Balance'].iloc[0] == 2400


def test_essential_split_uses_category_flag():
    categories = [Category(name='Market', type=EXPENSE, is_essential=True), Category(name='Pets', type=EXPENSE)]
    split = agg.essential_split(_ledger()[:5], categories)
    assert split == {'essential': 100.0, 'non_essential': 130.0}
