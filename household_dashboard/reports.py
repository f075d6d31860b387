"""Weekly advice report: statistical payload, prompt, and generation flow.

Only aggregates leave this module. The advice generator receives a prompt
built from :class:`ReportPayload`; raw transaction records are never
forwarded.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from . import config
from .aggregation import portfolio_totals, transactions_frame
from .formatting import format_currency
from .models import EXPENSE, INCOME, AdviceReport, Investment, Transaction

if TYPE_CHECKING:
    from .advice import AdviceGenerator
    from .db import RecordStore

logger = logging.getLogger(__name__)

SHORT_WINDOW_DAYS = 30
MEDIUM_WINDOW_DAYS = 180
LONG_WINDOW_DAYS = 365
MEDIUM_WINDOW_MONTHS = 6
TOP_CATEGORY_COUNT = 5

REPORT_SECTIONS = (
    "## 📅 Short Term (Focus on Variable Spending)",
    "## 📈 Medium Term (The Weight of Installments)",
    "## 🔭 Long Term (1 to 5 Years)",
    "## 👥 Individual & Couple Analysis",
    "## 💡 Verdict of the Week",
)

PROMPT_TEMPLATE = """\
Act as a senior personal financial advisor for {members}.
Write a detailed weekly report. Use Markdown and emojis. Be direct, analytical and motivating.

### COMPUTED FINANCIAL DATA
- Variable spending (30d): {variable_expenses_30d}
- Largest variable categories: {top_categories}
- Fixed costs / installments (30d): {fixed_expenses_30d}
- Income (30d): {income_30d}
- Balance (30d): {balance_30d}
- Average monthly expenses (6m): {monthly_average_expenses}
- Balance (12m): {balance_365d}
- Net worth: {portfolio_total} (Emergency fund: {emergency_fund})
{member_lines}

### OUTPUT INSTRUCTIONS
Use exactly these Markdown sections:
{sections}
"""


@dataclass
class ReportPayload:
    """Fixed statistical summary consumed by the advice generator."""

    today: date
    owner_filter: Optional[str]
    income_30d: float
    expenses_30d: float
    balance_30d: float
    variable_expenses_30d: float
    fixed_expenses_30d: float
    top_variable_categories: List[Tuple[str, float]]
    income_180d: float
    expenses_180d: float
    balance_180d: float
    income_365d: float
    expenses_365d: float
    balance_365d: float
    monthly_average_expenses: float
    portfolio_total: float
    emergency_fund: float
    member_expenses_30d: Dict[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data['today'] = self.today.isoformat()
        data['top_variable_categories'] = [list(item) for item in self.top_variable_categories]
        return data


def trailing_window(df: pd.DataFrame, days: int, today: date) -> pd.DataFrame:
    """Rows dated on or after ``today - days`` (rolling, not calendar aligned)."""
    cutoff = pd.Timestamp(today - timedelta(days=days))
    return df[df['date'] >= cutoff]


def _totals(df: pd.DataFrame) -> Dict[str, float]:
    income = float(df.loc[df['type'] == INCOME, 'amount'].sum())
    expenses = float(df.loc[df['type'] == EXPENSE, 'amount'].sum())
    return {'income': income, 'expenses': expenses, 'balance': income - expenses}


def build_report_payload(
    transactions: Sequence[Transaction],
    investments: Sequence[Investment],
    today: Optional[date] = None,
    owner_filter: Optional[str] = None,
    members: Optional[Sequence[str]] = None,
) -> ReportPayload:
    today = today or date.today()
    members = tuple(members or config.household_members())

    df = transactions_frame(transactions)
    if owner_filter and owner_filter != config.BOTH_OWNER:
        df = df[df['owner'] == owner_filter]

    short = trailing_window(df, SHORT_WINDOW_DAYS, today)
    medium = trailing_window(df, MEDIUM_WINDOW_DAYS, today)
    long_ = trailing_window(df, LONG_WINDOW_DAYS, today)
    stats_30d, stats_180d, stats_365d = _totals(short), _totals(medium), _totals(long_)

    short_expenses = short[short['type'] == EXPENSE]
    variable = short_expenses[~short_expenses['is_recurring'].astype(bool)]
    fixed = short_expenses[short_expenses['is_recurring'].astype(bool)]

    top = (
        variable.groupby('category', sort=False)['amount'].sum()
        .sort_values(ascending=False, kind='mergesort')
        .head(TOP_CATEGORY_COUNT)
    )

    member_expenses = {
        member: float(short_expenses.loc[short_expenses['owner'] == member, 'amount'].sum())
        for member in members
        if member != config.BOTH_OWNER
    }

    portfolio = portfolio_totals(investments, owner_filter)

    return ReportPayload(
        today=today,
        owner_filter=owner_filter,
        income_30d=stats_30d['income'],
        expenses_30d=stats_30d['expenses'],
        balance_30d=stats_30d['balance'],
        variable_expenses_30d=float(variable['amount'].sum()),
        fixed_expenses_30d=float(fixed['amount'].sum()),
        top_variable_categories=[(str(name), float(total)) for name, total in top.items()],
        income_180d=stats_180d['income'],
        expenses_180d=stats_180d['expenses'],
        balance_180d=stats_180d['balance'],
        income_365d=stats_365d['income'],
        expenses_365d=stats_365d['expenses'],
        balance_365d=stats_365d['balance'],
        monthly_average_expenses=stats_180d['expenses'] / MEDIUM_WINDOW_MONTHS,
        portfolio_total=portfolio['total'],
        emergency_fund=portfolio['emergency'],
        member_expenses_30d=member_expenses,
    )


def render_prompt(payload: ReportPayload) -> str:
    """Interpolate the payload into the advisor template."""
    top_categories = ", ".join(
        f"{name}: {format_currency(total)}" for name, total in payload.top_variable_categories
    ) or "none"
    member_lines = "\n".join(
        f"- {member} (30d spending): {format_currency(total)}"
        for member, total in payload.member_expenses_30d.items()
    )
    members = " and ".join(payload.member_expenses_30d) or "the household"
    return PROMPT_TEMPLATE.format(
        members=members,
        variable_expenses_30d=format_currency(payload.variable_expenses_30d),
        top_categories=top_categories,
        fixed_expenses_30d=format_currency(payload.fixed_expenses_30d),
        income_30d=format_currency(payload.income_30d),
        balance_30d=format_currency(payload.balance_30d),
        monthly_average_expenses=format_currency(payload.monthly_average_expenses),
        balance_365d=format_currency(payload.balance_365d),
        portfolio_total=format_currency(payload.portfolio_total),
        emergency_fund=format_currency(payload.emergency_fund),
        member_lines=member_lines,
        sections="\n".join(REPORT_SECTIONS),
    )


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def ensure_weekly_report(
    store: 'RecordStore',
    generator: 'AdviceGenerator',
    transactions: Sequence[Transaction],
    investments: Sequence[Investment],
    today: Optional[date] = None,
    owner: str = config.BOTH_OWNER,
    force: bool = False,
) -> AdviceReport:
    """Return this week's report, generating it at most once per week.

    With ``force`` the generator is called again and the stored report for
    the week is replaced. Generator failures propagate as ``AdviceError``;
    nothing is stored in that case.
    """
    today = today or date.today()
    week_of = week_start(today)

    if not force:
        existing = store.find_report(owner, week_of)
        if existing is not None:
            return existing

    payload = build_report_payload(transactions, investments, today=today, owner_filter=owner)
    prompt = render_prompt(payload)
    logger.info("Generating advice report for %s (week of %s, forced=%s)", owner, week_of, force)
    content = generator.generate(prompt)

    report = AdviceReport(owner=owner, week_of=week_of, content=content)
    if force:
        return store.upsert_report(report)
    return store.insert_report_if_absent(report)
