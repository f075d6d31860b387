"""Write-side operations for the dashboard.

:class:`FinanceService` validates input, talks to the :class:`RecordStore`
and only returns updated records once the store has confirmed the write, so
callers never roll their in-memory lists forward on a failed save.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from .db import RecordStore
from .errors import ProtectedCategoryError, ValidationError
from .models import (
    CONTRIBUTION,
    DEFAULT_CATEGORIES,
    EDITABLE_TRANSACTION_FIELDS,
    INVESTMENT_TYPES,
    OPERATION_TYPES,
    PAYMENT_METHODS,
    TRANSACTION_TYPES,
    WITHDRAWAL,
    Budget,
    Category,
    Investment,
    InvestmentOperation,
    SavingsGoal,
    Transaction,
    new_transaction,
    parse_date,
)
from .recurrence import expand, reconcile_month

logger = logging.getLogger(__name__)


class FinanceService:
    """Household ledger operations on top of a record store."""

    def __init__(self, store: RecordStore, label_installments: bool = False):
        self.store = store
        self.label_installments = label_installments

    # Transactions

    def add_transaction(
        self, fields: Mapping[str, Any], owner: str, label_installments: Optional[bool] = None,
    ) -> List[Transaction]:
        """Validate a submitted form and store it, expanded across its months.

        ``label_installments`` overrides the service default for this call.
        """
        transaction = new_transaction(fields, owner)
        if label_installments is None:
            label_installments = self.label_installments
        instances = expand(transaction, label_installments=label_installments)
        created = self.store.insert_transactions(instances)
        logger.info(
            "Added %r for %s (%d instance(s))", transaction.description, owner, len(created)
        )
        return created

    def update_transaction(self, transaction_id: int, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply an edit. ``is_paid`` is left as is even if the payment method changes."""
        unknown = set(fields) - EDITABLE_TRANSACTION_FIELDS
        if unknown:
            raise ValidationError(f"Field(s) not editable: {', '.join(sorted(unknown))}")
        updates = dict(fields)
        if 'description' in updates and not str(updates['description']).strip():
            raise ValidationError("Description is required", field='description')
        if 'amount' in updates:
            try:
                updates['amount'] = float(updates['amount'])
            except (TypeError, ValueError):
                raise ValidationError("Amount must be a number", field='amount') from None
            if updates['amount'] <= 0:
                raise ValidationError("Amount must be greater than zero", field='amount')
        if 'type' in updates and updates['type'] not in TRANSACTION_TYPES:
            raise ValidationError(f"Unknown transaction type: {updates['type']!r}", field='type')
        if 'payment_method' in updates and updates['payment_method'] not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {updates['payment_method']!r}", field='payment_method')
        if 'date' in updates:
            updates['date'] = parse_date(updates['date'])
        self.store.update_transaction(transaction_id, updates)
        return updates

    def toggle_paid(self, transaction: Transaction) -> Transaction:
        new_status = not transaction.is_paid
        self.store.update_transaction(transaction.id, {'is_paid': new_status})
        return transaction.copy(is_paid=new_status)

    def delete_transaction(self, transaction_id: int) -> bool:
        return self.store.delete_transaction(transaction_id)

    def reconcile_recurring(self, year: int, month: int, owner_filter: Optional[str] = None) -> List[Transaction]:
        """Create the missing instances of last month's recurring transactions."""
        missing = reconcile_month(self.store.list_transactions(), year, month, owner_filter)
        if not missing:
            return []
        created = self.store.insert_transactions(missing)
        logger.info("Reconciled %d recurring transaction(s) into %04d-%02d", len(created), year, month)
        return created

    # Categories

    def add_category(self, name: str, txn_type: str) -> Category:
        name = (name or '').strip()
        if not name:
            raise ValidationError("Category name is required", field='name')
        if txn_type not in TRANSACTION_TYPES:
            raise ValidationError(f"Unknown category type: {txn_type!r}", field='type')
        if any(c.name == name for c in self.store.list_categories(txn_type)):
            raise ValidationError(f"Category {name!r} already exists", field='name')
        [created] = self.store.insert_categories([Category(name=name, type=txn_type)])
        return created

    def rename_category(self, category: Category, new_name: str) -> int:
        """Rename a category and every transaction and budget that references it."""
        new_name = (new_name or '').strip()
        if not new_name:
            raise ValidationError("Category name is required", field='name')
        if new_name == category.name:
            return 0
        if any(c.name == new_name and c.id != category.id for c in self.store.list_categories(category.type)):
            raise ValidationError(f"Category {new_name!r} already exists", field='name')
        return self.store.rename_category_cascade(category.id, category.name, new_name, category.type)

    def delete_category(self, category: Category) -> bool:
        if category.is_system:
            raise ProtectedCategoryError(f"{category.name!r} is a system category")
        return self.store.delete_category(category.id)

    def toggle_essential(self, category: Category) -> Category:
        flag = not category.is_essential
        self.store.update_category(category.id, {'is_essential': flag})
        return Category(id=category.id, name=category.name, type=category.type,
                        is_system=category.is_system, is_essential=flag)

    def restore_default_categories(self) -> List[Category]:
        """Insert any missing default system categories."""
        existing = {(c.name, c.type) for c in self.store.list_categories()}
        missing = [
            Category(name=name, type=txn_type, is_system=True)
            for txn_type, names in DEFAULT_CATEGORIES.items()
            for name in names
            if (name, txn_type) not in existing
        ]
        if not missing:
            return []
        return self.store.insert_categories(missing)

    # Budgets and goals

    def set_budget(self, category: str, limit_amount: float) -> Optional[Budget]:
        """Set the standing monthly limit for ``category``; zero removes it."""
        try:
            limit_amount = float(limit_amount)
        except (TypeError, ValueError):
            raise ValidationError("Budget limit must be a number", field='limit_amount') from None
        if limit_amount < 0:
            raise ValidationError("Budget limit cannot be negative", field='limit_amount')

        existing = next((b for b in self.store.list_budgets() if b.category == category), None)
        if limit_amount == 0:
            if existing is not None:
                self.store.delete_budget(existing.id)
            return None
        if existing is not None:
            self.store.update_budget(existing.id, {'limit_amount': limit_amount})
            return Budget(id=existing.id, category=category, limit_amount=limit_amount)
        return self.store.insert_budget(Budget(category=category, limit_amount=limit_amount))

    def save_savings_goal(self, name: str, target_amount: float, current_amount: float, owner: str) -> SavingsGoal:
        name = (name or '').strip()
        if not name:
            raise ValidationError("Goal name is required", field='name')
        target_amount, current_amount = float(target_amount), float(current_amount)
        if target_amount < 0 or current_amount < 0:
            raise ValidationError("Goal amounts cannot be negative")

        existing = next((g for g in self.store.list_savings_goals() if g.name == name), None)
        if existing is not None:
            self.store.update_savings_goal(
                existing.id, {'target_amount': target_amount, 'current_amount': current_amount}
            )
            return SavingsGoal(id=existing.id, name=name, target_amount=target_amount,
                               current_amount=current_amount, owner=existing.owner)
        return self.store.insert_savings_goal(
            SavingsGoal(name=name, target_amount=target_amount, current_amount=current_amount, owner=owner)
        )

    def delete_savings_goal(self, goal_id: int) -> bool:
        return self.store.delete_savings_goal(goal_id)

    # Investments

    def add_investment(
        self,
        name: str,
        investment_type: str,
        owner: str,
        initial_amount: float,
        today: Optional[date] = None,
        goal: Optional[float] = None,
    ) -> Investment:
        """Create an investment seeded with one contribution."""
        name = (name or '').strip()
        if not name:
            raise ValidationError("Investment name is required", field='name')
        if investment_type not in INVESTMENT_TYPES:
            raise ValidationError(f"Unknown investment type: {investment_type!r}", field='type')
        amount = _positive_amount(initial_amount)
        seed = InvestmentOperation(date=today or date.today(), amount=amount, operation=CONTRIBUTION)
        investment = Investment(
            name=name, type=investment_type, owner=owner, history=[seed], goal=goal,
        )
        investment.current_amount = investment.history_total()
        return self.store.insert_investment(investment)

    def record_operation(
        self,
        investment: Investment,
        operation: str,
        amount: float,
        day: Optional[date] = None,
    ) -> Investment:
        """Append a contribution or withdrawal and recompute the balance from history."""
        if operation not in OPERATION_TYPES:
            raise ValidationError(f"Unknown operation: {operation!r}", field='operation')
        amount = _positive_amount(amount)
        if operation == WITHDRAWAL and amount > investment.history_total():
            raise ValidationError("Withdrawal exceeds the invested balance", field='amount')

        history = list(investment.history) + [
            InvestmentOperation(date=day or date.today(), amount=amount, operation=operation)
        ]
        updated = Investment(
            id=investment.id, name=investment.name, type=investment.type, owner=investment.owner,
            history=history, goal=investment.goal,
        )
        updated.current_amount = updated.history_total()
        self.store.update_investment(
            investment.id, {'history': updated.history_json(), 'current_amount': updated.current_amount}
        )
        return updated

    def delete_investment(self, investment_id: int) -> bool:
        return self.store.delete_investment(investment_id)


def _positive_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number", field='amount') from None
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero", field='amount')
    return amount
