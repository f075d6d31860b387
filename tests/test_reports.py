from datetime import date

import pytest

from household_dashboard.db import RecordStore
from household_dashboard.errors import AdviceTimeoutError
from household_dashboard.models import (
    CONTRIBUTION,
    EMERGENCY,
    EXPENSE,
    GENERAL,
    INCOME,
    Investment,
    InvestmentOperation,
    Transaction,
)
from household_dashboard.reports import (
    REPORT_SECTIONS,
    build_report_payload,
    ensure_weekly_report,
    render_prompt,
    trailing_window,
    week_start,
)
from household_dashboard.aggregation import transactions_frame


def _txn(amount, day, type=EXPENSE, category='Market', owner='A', is_recurring=False, description='item'):
    return Transaction(
        description=description, amount=amount, type=type, category=category, owner=owner,
        date=date.fromisoformat(day), is_recurring=is_recurring, recurring_months=2 if is_recurring else 0,
    )


def _investment(amount, type=GENERAL, owner='A'):
    inv = Investment(
        name=f'{type}-{amount}', type=type, owner=owner,
        history=[InvestmentOperation(date=date(2024, 1, 1), amount=amount, operation=CONTRIBUTION)],
    )
    inv.current_amount = inv.history_total()
    return inv


class FakeGenerator:
    def __init__(self, reply='## Verdict\nSpend less on takeout.', error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def store(tmp_path):
    store = RecordStore(tmp_path / 'household.db')
    store.init_db()
    return store


def test_variable_and_fixed_split_within_thirty_days():
    txns = [_txn(100, '2024-01-15'), _txn(50, '2024-01-20', is_recurring=True)]
    payload = build_report_payload(txns, [], today=date(2024, 1, 31), members=('A', 'B'))
    assert payload.expenses_30d == 150
    assert payload.variable_expenses_30d == 100
    assert payload.fixed_expenses_30d == 50


def test_trailing_windows_are_rolling():
    today = date(2024, 7, 1)
    txns = [
        _txn(10, '2024-06-15'),
        _txn(20, '2024-03-01'),
        _txn(40, '2023-12-01'),
        _txn(80, '2023-05-01'),
        _txn(1000, '2024-06-20', type=INCOME, category='Salary'),
    ]
    payload = build_report_payload(txns, [], today=today, members=('A', 'B'))
    assert payload.expenses_30d == 10
    assert payload.expenses_180d == 30
    assert payload.expenses_365d == 70
    assert payload.balance_30d == 990
    assert payload.monthly_average_expenses == pytest.approx(30 / 6)


def test_trailing_window_includes_cutoff_day():
    df = transactions_frame([_txn(5, '2024-01-01'), _txn(7, '2023-12-31')])
    assert list(trailing_window(df, 30, date(2024, 1, 31))['amount']) == [5]


def test_top_categories_are_five_largest_variable():
    txns = [
        _txn(amount, '2024-01-10', category=name)
        for name, amount in [('A1', 10), ('B2', 60), ('C3', 30), ('D4', 60), ('E5', 5), ('F6', 45), ('G7', 1)]
    ]
    txns.append(_txn(500, '2024-01-11', category='Rent', is_recurring=True))
    payload = build_report_payload(txns, [], today=date(2024, 1, 20), members=('A', 'B'))
    assert payload.top_variable_categories == [
        ('B2', 60.0), ('D4', 60.0), ('F6', 45.0), ('C3', 30.0), ('A1', 10.0),
    ]


def test_member_totals_and_portfolio_snapshot():
    txns = [
        _txn(30, '2024-01-10', owner='Ana'),
        _txn(20, '2024-01-11', owner='Bruno'),
        _txn(5, '2024-01-12', owner='Both'),
    ]
    invs = [_investment(1000, EMERGENCY), _investment(250)]
    payload = build_report_payload(txns, invs, today=date(2024, 1, 20), members=('Ana', 'Bruno'))
    assert payload.member_expenses_30d == {'Ana': 30.0, 'Bruno': 20.0}
    assert payload.portfolio_total == 1250
    assert payload.emergency_fund == 1000


def test_owner_filter_scopes_payload():
    txns = [_txn(30, '2024-01-10', owner='A'), _txn(20, '2024-01-11', owner='B')]
    payload = build_report_payload(txns, [], today=date(2024, 1, 20), owner_filter='B', members=('A', 'B'))
    assert payload.expenses_30d == 20


def test_members_default_from_environment(monkeypatch):
    monkeypatch.setenv('HOUSEHOLD_MEMBERS', 'Ana, Bruno')
    payload = build_report_payload([], [], today=date(2024, 1, 20))
    assert set(payload.member_expenses_30d) == {'Ana', 'Bruno'}


def test_prompt_carries_aggregates_only():
    txns = [_txn(42, '2024-01-10', description='Secret Sushi Place', category='Leisure')]
    prompt = render_prompt(build_report_payload(txns, [], today=date(2024, 1, 20), members=('A', 'B')))
    assert 'Secret Sushi Place' not in prompt
    assert 'Leisure: $42.00' in prompt
    for heading in REPORT_SECTIONS:
        assert heading in prompt


def test_payload_as_dict_is_json_friendly():
    data = build_report_payload([], [], today=date(2024, 1, 20), members=('A', 'B')).as_dict()
    assert data['today'] == '2024-01-20'
    assert data['top_variable_categories'] == []


def test_week_start_is_monday():
    assert week_start(date(2024, 1, 17)) == date(2024, 1, 15)
    assert week_start(date(2024, 1, 15)) == date(2024, 1, 15)
    assert week_start(date(2024, 1, 21)) == date(2024, 1, 15)


def test_weekly_report_generated_once_per_week(store):
    generator = FakeGenerator()
    today = date(2024, 1, 17)

    first = ensure_weekly_report(store, generator, [], [], today=today, owner='Both')
    assert len(generator.prompts) == 1
    assert first.week_of == date(2024, 1, 15)
    assert first.content == generator.reply

    again = ensure_weekly_report(store, generator, [], [], today=date(2024, 1, 20), owner='Both')
    assert len(generator.prompts) == 1
    assert again.id == first.id


def test_new_week_triggers_new_report(store):
    generator = FakeGenerator()
    ensure_weekly_report(store, generator, [], [], today=date(2024, 1, 17))
    ensure_weekly_report(store, generator, [], [], today=date(2024, 1, 22))
    assert len(generator.prompts) == 2
    assert [r.week_of for r in store.list_reports()] == [date(2024, 1, 22), date(2024, 1, 15)]


def test_regenerate_replaces_weeks_report(store):
    ensure_weekly_report(store, FakeGenerator(reply='old'), [], [], today=date(2024, 1, 17))
    generator = FakeGenerator(reply='new')
    report = ensure_weekly_report(store, generator, [], [], today=date(2024, 1, 18), force=True)
    assert len(generator.prompts) == 1
    assert report.content == 'new'
    assert [r.content for r in store.list_reports()] == ['new']


def test_generator_failure_stores_nothing(store):
    generator = FakeGenerator(error=AdviceTimeoutError('slow'))
    with pytest.raises(AdviceTimeoutError):
        ensure_weekly_report(store, generator, [], [], today=date(2024, 1, 17))
    assert store.list_reports() == []
