"""Shared sidebar components for the multi-page dashboard.

Every page calls :func:`render_shared_sidebar` first. It runs the password
gate, renders the owner and month selectors plus the display toggles, and
loads the records the page works on.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Any, Dict

import streamlit as st

from . import config
from .db import get_store
from .errors import FinanceError
from .services import FinanceService
from .session import SessionContext

DARK_MODE_CSS = """
<style>
.stApp {
    background-color: #1e1e1e;
    color: #ffffff;
}
.stMetric {
    background-color: #2d2d2d;
    padding: 1rem;
    border-radius: 0.5rem;
}
</style>
"""


def get_session() -> SessionContext:
    """The :class:`SessionContext` for this browser session."""
    if 'session_ctx' not in st.session_state:
        st.session_state.session_ctx = SessionContext.load()
    return st.session_state.session_ctx


def show_error(exc: FinanceError) -> None:
    st.error(exc.user_message)


def flash(message: str) -> None:
    """Queue a success message to show after the next ``st.rerun()``."""
    st.session_state['flash_message'] = message


def show_flash() -> None:
    message = st.session_state.pop('flash_message', None)
    if message:
        st.success(message)


def require_login(session: SessionContext) -> None:
    """Render the password form and stop the page until it is accepted."""
    if session.authenticated:
        return
    st.title("🔒 Household Finance")
    if not config.APP_PASSWORD:
        st.warning("Set HOUSEHOLD_APP_PASSWORD to unlock the dashboard.")
    with st.form("login_form"):
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Enter")
    if submitted:
        if session.login(password):
            st.rerun()
        st.error("Incorrect password.")
    st.stop()


def apply_dark_mode(session: SessionContext) -> None:
    if session.dark_mode:
        st.markdown(DARK_MODE_CSS, unsafe_allow_html=True)


def _render_month_selector() -> tuple:
    today = date.today()
    year, month = st.session_state.setdefault('view_month', (today.year, today.month))
    col1, col2 = st.sidebar.columns(2)
    with col1:
        month = st.selectbox(
            "Month",
            options=list(range(1, 13)),
            index=month - 1,
            format_func=lambda m: calendar.month_abbr[m],
        )
    with col2:
        year = int(st.number_input("Year", min_value=2000, max_value=2100, value=year, step=1))
    st.session_state.view_month = (year, month)
    return year, month


def render_shared_sidebar() -> Dict[str, Any]:
    """Render shared sidebar elements available on all pages.

    Returns:
        Dict with keys: 'session', 'service', 'store', 'owner', 'year',
        'month', 'transactions', 'investments'
    """
    config.configure_logging()
    session = get_session()
    require_login(session)
    apply_dark_mode(session)
    show_flash()

    st.sidebar.header("🏠 Household Finance")
    choices = list(config.owner_choices())
    owner = st.sidebar.selectbox(
        "👤 Viewing as",
        options=choices,
        index=choices.index(session.owner) if session.owner in choices else len(choices) - 1,
    )
    if owner != session.owner:
        session.set_owner(owner)

    year, month = _render_month_selector()

    if st.sidebar.button("🌙 Toggle Dark Mode"):
        session.toggle_dark_mode()
        st.rerun()
    privacy_label = "🙈 Show Amounts" if session.privacy_mode else "🙈 Hide Amounts"
    if st.sidebar.button(privacy_label):
        session.toggle_privacy_mode()
        st.rerun()
    if st.sidebar.button("🚪 Log out"):
        session.logout()
        st.rerun()

    try:
        store = get_store()
        transactions = store.list_transactions()
        investments = store.list_investments()
    except FinanceError as exc:
        show_error(exc)
        st.stop()

    return {
        'session': session,
        'store': store,
        'service': FinanceService(store, label_installments=config.LABEL_INSTALLMENTS),
        'owner': session.owner,
        'year': year,
        'month': month,
        'transactions': transactions,
        'investments': investments,
    }
