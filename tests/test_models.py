from datetime import date, datetime

import pandas as pd
import pytest

from household_dashboard.errors import ValidationError
from household_dashboard.models import (
    CARD,
    CASH,
    EXPENSE,
    INSTANT_TRANSFER,
    INVOICE,
    WITHDRAWAL,
    Investment,
    SavingsGoal,
    Transaction,
    new_transaction,
    parse_date,
)


def _fields(**overrides):
    fields = {
        'description': 'Groceries run',
        'amount': 120.5,
        'type': EXPENSE,
        'category': 'Groceries',
        'date': '2024-03-10',
        'payment_method': CASH,
    }
    fields.update(overrides)
    return fields


@pytest.mark.parametrize('method, expected', [
    (CASH, True),
    (INSTANT_TRANSFER, True),
    (CARD, False),
    (INVOICE, False),
])
def test_new_transaction_derives_paid_status_from_payment_method(method, expected):
    txn = new_transaction(_fields(payment_method=method), owner='A')
    assert txn.is_paid is expected
    assert txn.owner == 'A'
    assert txn.date == date(2024, 3, 10)


def test_new_transaction_strips_description_and_defaults_category():
    txn = new_transaction(_fields(description='  Rent  ', category=None), owner='B')
    assert txn.description == 'Rent'
    assert txn.category == 'Other'


def test_non_recurring_transaction_drops_month_count():
    txn = new_transaction(_fields(is_recurring=False, recurring_months=6), owner='A')
    assert txn.recurring_months == 0


@pytest.mark.parametrize('overrides, field', [
    ({'description': '   '}, 'description'),
    ({'amount': 0}, 'amount'),
    ({'amount': -10}, 'amount'),
    ({'amount': 'abc'}, 'amount'),
    ({'type': 'transfer'}, 'type'),
    ({'payment_method': 'cheque'}, 'payment_method'),
    ({'recurring_months': -1}, 'recurring_months'),
    ({'date': '2024-02-30'}, 'date'),
    ({'date': None}, 'date'),
])
def test_invalid_input_is_rejected(overrides, field):
    with pytest.raises(ValidationError) as excinfo:
        new_transaction(_fields(**overrides), owner='A')
    assert excinfo.value.field == field


def test_parse_date_accepts_common_inputs():
    assert parse_date('2024-05-01') == date(2024, 5, 1)
    assert parse_date('2024-05-01T13:45:00') == date(2024, 5, 1)
    assert parse_date(datetime(2024, 5, 1, 23, 59)) == date(2024, 5, 1)
    assert parse_date(pd.Timestamp('2024-05-01')) == date(2024, 5, 1)


def test_transaction_record_round_trip_keeps_group_id():
    txn = Transaction(
        description='Internet', amount=99.9, type=EXPENSE, category='Internet/TV',
        owner='A', date=date(2024, 1, 5), is_recurring=True, recurring_months=12,
        recurrence_group_id='abc', id=7,
    )
    restored = Transaction.from_record(txn.to_record())
    assert restored == txn


def test_investment_from_record_parses_history_json():
    record = {
        'id': 1,
        'name': 'Reserve',
        'type': 'emergency',
        'owner': 'Both',
        'current_amount': 700.0,
        'goal': float('nan'),
        'history': '[{"date": "2024-01-01", "amount": 1000, "operation": "contribution"},'
                   ' {"date": "2024-02-01", "amount": 300, "operation": "withdrawal"}]',
    }
    inv = Investment.from_record(record)
    assert inv.goal is None
    assert [op.operation for op in inv.history] == ['contribution', WITHDRAWAL]
    assert inv.history_total() == pytest.approx(700.0)


def test_savings_goal_progress_is_capped():
    goal = SavingsGoal(name='Trip', target_amount=1000, current_amount=1500, owner='A')
    assert goal.progress == 100.0
    assert goal.remaining == -500
    assert SavingsGoal(name='Empty', target_amount=0, current_amount=10, owner='A').progress == 0.0
