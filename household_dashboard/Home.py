"""Main entry point for the Streamlit multi-page app.

Renders the monthly overview. Pages in the pages/ directory appear in the
sidebar automatically.
"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from household_dashboard import aggregation as agg
from household_dashboard import visualization as viz
from household_dashboard.errors import FinanceError
from household_dashboard.formatting import format_percent
from household_dashboard.shared_sidebar import render_shared_sidebar, show_error


def render_totals(data, session) -> None:
    mom = agg.month_over_month(data['transactions'], data['year'], data['month'], data['owner'])
    current = mom['current']
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric(
            label="💰 Income",
            value=session.money(current['income']),
            delta=format_percent(mom['income_variation']),
        )
    with col2:
        st.metric(
            label="💸 Expenses",
            value=session.money(current['expenses']),
            delta=format_percent(mom['expense_variation']),
            delta_color="inverse",
        )
    with col3:
        st.metric(label="📈 Balance", value=session.money(current['balance']))


def render_pending(data, session) -> None:
    pending = agg.pending_bills(data['transactions'], data['year'], data['month'], data['owner'])
    st.subheader(f"🧾 Pending bills ({session.money(pending['total'])})")
    if not pending['items']:
        st.caption("Nothing pending this month.")
        return
    for txn in pending['items']:
        st.markdown(f"- {txn.date:%d/%m} **{txn.description}**: {session.money(txn.amount)}")


def render_budgets(data, month_txns) -> None:
    progress = agg.budget_progress(agg.spending_by_category(month_txns), data['store'].list_budgets())
    for row in agg.at_risk_budgets(progress):
        if row['over_budget']:
            st.error(f"Over budget in {row['category']}")
        else:
            st.warning(f"{row['category']} is close to its limit")
    st.plotly_chart(viz.create_budget_chart(progress), use_container_width=True)


def render_goals(data, session) -> None:
    goals = agg.goal_progress(data['store'].list_savings_goals())
    if not goals:
        return
    st.subheader("🎯 Savings goals")
    for goal in goals:
        st.markdown(
            f"**{goal['name']}** ({goal['owner']}): "
            f"{session.money(goal['current_amount'])} / {session.money(goal['target_amount'])}"
        )
        st.progress(goal['progress'] / 100)


def main() -> None:
    st.set_page_config(page_title="Household Finance", page_icon="🏠", layout="wide")
    data = render_shared_sidebar()
    session = data['session']
    st.header("📊 Monthly Overview")

    try:
        month_txns = agg.filter_by_month(data['transactions'], data['year'], data['month'], data['owner'])
        render_totals(data, session)

        left, right = st.columns(2)
        with left:
            st.plotly_chart(
                viz.create_category_pie_chart(agg.spending_by_category(month_txns)),
                use_container_width=True,
            )
            split = agg.essential_split(month_txns, data['store'].list_categories())
            st.caption(
                f"Essential: {session.money(split['essential'])} · "
                f"Non-essential: {session.money(split['non_essential'])}"
            )
        with right:
            history = agg.monthly_history(data['transactions'], data['owner'])
            st.plotly_chart(viz.create_monthly_history_chart(history), use_container_width=True)

        render_pending(data, session)
        render_budgets(data, month_txns)
        render_goals(data, session)
    except FinanceError as exc:
        show_error(exc)


if __name__ == "__main__":
    main()
