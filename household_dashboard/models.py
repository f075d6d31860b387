"""Domain records for the household finance dashboard.

Records are plain dataclasses. Vocabularies (transaction types, payment
methods, investment kinds) are module-level string sets so rows coming back
from the store can be checked with simple membership tests.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .errors import ValidationError

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = frozenset({INCOME, EXPENSE})

CASH = 'cash'
INSTANT_TRANSFER = 'instant-transfer'
CARD = 'card'
INVOICE = 'invoice'
PAYMENT_METHODS = frozenset({CASH, INSTANT_TRANSFER, CARD, INVOICE})
INSTANT_PAYMENT_METHODS = frozenset({CASH, INSTANT_TRANSFER})

GENERAL = 'general'
EMERGENCY = 'emergency'
INVESTMENT_TYPES = frozenset({GENERAL, EMERGENCY})

CONTRIBUTION = 'contribution'
WITHDRAWAL = 'withdrawal'
OPERATION_TYPES = frozenset({CONTRIBUTION, WITHDRAWAL})

EDITABLE_TRANSACTION_FIELDS = frozenset(
    {'description', 'amount', 'date', 'category', 'type', 'payment_method'}
)

DEFAULT_CATEGORIES = {
    INCOME: [
        'Dividends', 'Freelance', 'Gift', 'Investments', 'Meal Voucher',
        'Salary', 'Side Income', 'Item Sales', 'Other',
    ],
    EXPENSE: [
        'Car', 'Clothing', 'Education', 'Electricity', 'Groceries', 'Health',
        'Home', 'HOA Fees', 'Internet/TV', 'Leisure', 'Pets', 'Phone',
        'Presents', 'Rent', 'Streaming', 'Taxes', 'Transport', 'Travel',
        'Water', 'Other',
    ],
}


def parse_date(value: Any, field_name: str = 'date') -> date:
    """Coerce ``value`` to a calendar day or raise :class:`ValidationError`.

    Accepts ``date``, ``datetime``/``Timestamp`` (time part dropped) and
    ISO ``YYYY-MM-DD`` strings. Anything else is rejected at ingestion so
    aggregation never sees an invalid day.
    """
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            raise ValidationError(f"{field_name} is missing", field=field_name)
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()[:10]
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
    raise ValidationError(f"{field_name} is not a valid calendar day: {value!r}", field=field_name)


def default_is_paid(payment_method: str) -> bool:
    """Instant payment methods settle at creation; cards and invoices start pending."""
    return payment_method in INSTANT_PAYMENT_METHODS


@dataclass
class Transaction:
    description: str
    amount: float
    type: str
    category: str
    owner: str
    date: date
    is_recurring: bool = False
    recurring_months: int = 0
    payment_method: str = INSTANT_TRANSFER
    is_paid: bool = True
    id: Optional[int] = None
    recurrence_group_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.is_recurring:
            self.recurring_months = 0

    def copy(self, **changes: Any) -> 'Transaction':
        return replace(self, **changes)

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record['date'] = self.date.isoformat()
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Transaction':
        return cls(
            id=_optional_int(record.get('id')),
            description=str(record['description']),
            amount=float(record['amount']),
            type=str(record['type']),
            category=str(record.get('category') or ''),
            owner=str(record['owner']),
            date=parse_date(record['date']),
            is_recurring=bool(record.get('is_recurring') or False),
            recurring_months=int(record.get('recurring_months') or 0),
            payment_method=str(record.get('payment_method') or INSTANT_TRANSFER),
            is_paid=bool(record.get('is_paid', True)),
            recurrence_group_id=record.get('recurrence_group_id') or None,
        )


def new_transaction(fields: Mapping[str, Any], owner: str) -> Transaction:
    """Build a transaction from submitted form fields.

    ``is_paid`` is derived from the payment method here and only here; later
    edits to the payment method keep whatever status the row already has.
    """
    validate_transaction_input(fields)
    payment_method = fields.get('payment_method') or INSTANT_TRANSFER
    is_recurring = bool(fields.get('is_recurring'))
    return Transaction(
        description=str(fields['description']).strip(),
        amount=float(fields['amount']),
        type=fields['type'],
        category=str(fields.get('category') or 'Other'),
        owner=owner,
        date=parse_date(fields['date']),
        is_recurring=is_recurring,
        recurring_months=int(fields.get('recurring_months') or 0) if is_recurring else 0,
        payment_method=payment_method,
        is_paid=default_is_paid(payment_method),
    )


def validate_transaction_input(fields: Mapping[str, Any]) -> None:
    """Reject incomplete or malformed transaction input before any store call."""
    description = fields.get('description')
    if description is None or not str(description).strip():
        raise ValidationError("Description is required", field='description')

    amount = fields.get('amount')
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        raise ValidationError("Amount is required", field='amount')
    try:
        numeric = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Amount must be a number: {amount!r}", field='amount') from None
    if not numeric > 0:
        raise ValidationError("Amount must be greater than zero", field='amount')

    txn_type = fields.get('type')
    if txn_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type: {txn_type!r}", field='type')

    method = fields.get('payment_method')
    if method is not None and method not in PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method: {method!r}", field='payment_method')

    months = fields.get('recurring_months')
    if months not in (None, ''):
        try:
            months_value = int(months)
        except (TypeError, ValueError):
            raise ValidationError("Recurring months must be a whole number", field='recurring_months') from None
        if months_value < 0:
            raise ValidationError("Recurring months cannot be negative", field='recurring_months')

    parse_date(fields.get('date'))


@dataclass
class Category:
    name: str
    type: str
    is_system: bool = False
    is_essential: bool = False
    id: Optional[int] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Category':
        return cls(
            id=_optional_int(record.get('id')),
            name=str(record['name']),
            type=str(record['type']),
            is_system=bool(record.get('is_system') or False),
            is_essential=bool(record.get('is_essential') or False),
        )


@dataclass
class InvestmentOperation:
    date: date
    amount: float
    operation: str = CONTRIBUTION

    @property
    def signed_amount(self) -> float:
        return -self.amount if self.operation == WITHDRAWAL else self.amount

    def to_record(self) -> Dict[str, Any]:
        return {'date': self.date.isoformat(), 'amount': self.amount, 'operation': self.operation}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'InvestmentOperation':
        return cls(
            date=parse_date(record['date']),
            amount=float(record['amount']),
            operation=str(record.get('operation') or CONTRIBUTION),
        )


@dataclass
class Investment:
    name: str
    type: str
    owner: str
    current_amount: float = 0.0
    history: List[InvestmentOperation] = field(default_factory=list)
    goal: Optional[float] = None
    id: Optional[int] = None

    def history_total(self) -> float:
        return float(sum(op.signed_amount for op in self.history))

    def history_json(self) -> str:
        return json.dumps([op.to_record() for op in self.history])

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Investment':
        raw_history = record.get('history') or []
        if isinstance(raw_history, str):
            raw_history = json.loads(raw_history) if raw_history.strip() else []
        goal = record.get('goal')
        return cls(
            id=_optional_int(record.get('id')),
            name=str(record['name']),
            type=str(record['type']),
            owner=str(record['owner']),
            current_amount=float(record.get('current_amount') or 0.0),
            history=[InvestmentOperation.from_record(item) for item in raw_history],
            goal=None if goal is None or pd.isna(goal) else float(goal),
        )


@dataclass
class Budget:
    category: str
    limit_amount: float
    id: Optional[int] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Budget':
        return cls(
            id=_optional_int(record.get('id')),
            category=str(record['category']),
            limit_amount=float(record['limit_amount']),
        )


@dataclass
class SavingsGoal:
    name: str
    target_amount: float
    current_amount: float
    owner: str
    id: Optional[int] = None

    @property
    def remaining(self) -> float:
        return self.target_amount - self.current_amount

    @property
    def progress(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        return min(self.current_amount / self.target_amount * 100, 100.0)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'SavingsGoal':
        return cls(
            id=_optional_int(record.get('id')),
            name=str(record['name']),
            target_amount=float(record['target_amount']),
            current_amount=float(record['current_amount']),
            owner=str(record['owner']),
        )


@dataclass
class AdviceReport:
    owner: str
    week_of: date
    content: str
    created_at: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'AdviceReport':
        return cls(
            id=_optional_int(record.get('id')),
            owner=str(record['owner']),
            week_of=parse_date(record['week_of'], 'week_of'),
            content=str(record['content']),
            created_at=record.get('created_at'),
        )


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    return int(value)
