"""Plotly visualisation helpers for the household dashboard.

Each function takes the output of one :mod:`household_dashboard.aggregation`
reduction and returns a `plotly.graph_objects.Figure` that Streamlit can
render via ``st.plotly_chart``. Empty inputs produce an empty figure titled
"No data to display" rather than an error.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_evolution_chart(points: Sequence[Mapping[str, Any]], title: str | None = None) -> go.Figure:
    """Line chart of the running portfolio value.

    Parameters
    ----------
    points : sequence of dict
        Output of :func:`aggregation.investment_evolution`, each with
        ``date`` and ``cumulative_value``.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Line chart with markers.
    """
    if not points:
        return _empty_figure()
    df = pd.DataFrame(list(points))
    fig = px.line(df, x="date", y="cumulative_value", markers=True)
    fig.update_layout(
        title=title or "Portfolio evolution",
        xaxis_title="Date",
        yaxis_title="Value",
    )
    return fig


def create_category_pie_chart(spending: Mapping[str, float], title: str | None = None) -> go.Figure:
    """Pie chart of expense totals by category.

    Parameters
    ----------
    spending : mapping
        Category name to total, as returned by
        :func:`aggregation.spending_by_category`.
    title : str, optional
        Chart title.
    """
    values = {name: total for name, total in spending.items() if total > 0}
    if not values:
        return _empty_figure()
    df = pd.DataFrame({"Category": list(values), "Amount": list(values.values())})
    fig = px.pie(df, names="Category", values="Amount", hole=0.4)
    fig.update_layout(title=title or "Spending by category")
    return fig


def create_monthly_history_chart(history: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Grouped bars of income and expenses per month with a balance line."""
    if history.empty or not np.any(history[["Income", "Expenses"]].to_numpy()):
        return _empty_figure()
    fig = go.Figure()
    fig.add_trace(go.Bar(x=history["Month"], y=history["Income"], name="Income", marker_color="#2ca02c"))
    fig.add_trace(go.Bar(x=history["Month"], y=history["Expenses"], name="Expenses", marker_color="#d62728"))
    fig.add_trace(go.Scatter(x=history["Month"], y=history["Balance"], name="Balance", mode="lines+markers"))
    fig.update_layout(
        title=title or "Income vs expenses",
        barmode="group",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_budget_chart(progress: Sequence[Dict[str, Any]], title: str | None = None) -> go.Figure:
    """Horizontal bars of spend against limit for budgeted categories.

    Rows without a limit are left out. Bars over their limit are drawn red.
    """
    rows = [row for row in progress if row["limit"] > 0]
    if not rows:
        return _empty_figure()
    df = pd.DataFrame(rows)
    colors = np.where(df["over_budget"], "#d62728", "#1f77b4")
    fig = go.Figure()
    fig.add_trace(go.Bar(y=df["category"], x=df["limit"], name="Limit", orientation="h",
                         marker_color="rgba(150,150,150,0.35)"))
    fig.add_trace(go.Bar(y=df["category"], x=df["spent"], name="Spent", orientation="h",
                         marker_color=list(colors)))
    fig.update_layout(
        title=title or "Budgets",
        barmode="overlay",
        xaxis_title="Amount",
        yaxis_title="Category",
    )
    return fig
