from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from household_dashboard import db
from household_dashboard.db import RecordStore
from household_dashboard.session import SessionContext

TRANSACTIONS_PAGE = Path(__file__).parent.parent / 'household_dashboard' / 'pages' / '1_✏️_Transactions.py'


@pytest.fixture
def store(tmp_path, monkeypatch):
    store = RecordStore(tmp_path / 'household.db')
    store.init_db()
    monkeypatch.setattr(db, '_default_store', store)
    return store


@pytest.fixture
def page(store, tmp_path):
    at = AppTest.from_file(str(TRANSACTIONS_PAGE), default_timeout=30)
    at.session_state['session_ctx'] = SessionContext(prefs_path=tmp_path / 'prefs.json', authenticated=True)
    return at.run()


def _submit_add_form(at):
    [button] = [b for b in at.button if b.label == "Add Transaction"]
    return button.click().run()


def test_failed_add_keeps_entered_values(page, store):
    page.text_input(key='add_desc').input('Groceries')
    page.number_input(key='add_amount').set_value(0.0)
    at = _submit_add_form(page)

    assert at.error
    assert at.text_input(key='add_desc').value == 'Groceries'
    assert store.list_transactions() == []


def test_successful_add_clears_form_and_reports(page, store):
    page.text_input(key='add_desc').input('Groceries')
    page.number_input(key='add_amount').set_value(42.0)
    at = _submit_add_form(page)

    assert [t.description for t in store.list_transactions()] == ['Groceries']
    assert at.text_input(key='add_desc').value == ''
    assert any('Added 1 transaction(s).' in s.value for s in at.success)
