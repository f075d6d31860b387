"""SQLite record store for the household dashboard.

Each entity gets ``list``/``insert``/``update``/``delete`` operations. The
only multi-table write is the category rename cascade, which runs inside a
single SQLite transaction.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .config import DB_PATH, ensure_data_directories
from .errors import PersistenceError
from .models import (
    EXPENSE,
    AdviceReport,
    Budget,
    Category,
    Investment,
    SavingsGoal,
    Transaction,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    type TEXT NOT NULL,
    category TEXT,
    owner TEXT NOT NULL,
    date TEXT NOT NULL,
    is_recurring INTEGER NOT NULL DEFAULT 0,
    recurring_months INTEGER NOT NULL DEFAULT 0,
    payment_method TEXT,
    is_paid INTEGER NOT NULL DEFAULT 1,
    recurrence_group_id TEXT,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (date);
CREATE INDEX IF NOT EXISTS ix_txn_category ON transactions (category);
CREATE INDEX IF NOT EXISTS ix_txn_recurrence ON transactions (recurrence_group_id);

CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    is_system INTEGER NOT NULL DEFAULT 0,
    is_essential INTEGER NOT NULL DEFAULT 0
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_category_name ON categories (name, type);

CREATE TABLE IF NOT EXISTS investments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    owner TEXT NOT NULL,
    current_amount REAL NOT NULL DEFAULT 0,
    goal REAL,
    history TEXT NOT NULL DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category TEXT NOT NULL UNIQUE,
    limit_amount REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS savings_goals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    target_amount REAL NOT NULL,
    current_amount REAL NOT NULL DEFAULT 0,
    owner TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS advice_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner TEXT NOT NULL,
    week_of TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_advice_week ON advice_history (owner, week_of);
"""

TRANSACTION_COLUMNS = (
    'description', 'amount', 'type', 'category', 'owner', 'date', 'is_recurring',
    'recurring_months', 'payment_method', 'is_paid', 'recurrence_group_id',
)
CATEGORY_COLUMNS = ('name', 'type', 'is_system', 'is_essential')
INVESTMENT_COLUMNS = ('name', 'type', 'owner', 'current_amount', 'goal', 'history')
BUDGET_COLUMNS = ('category', 'limit_amount')
SAVINGS_GOAL_COLUMNS = ('name', 'target_amount', 'current_amount', 'owner')


def _to_db_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class RecordStore:
    """Per-entity CRUD over one SQLite database file."""

    def __init__(self, db_path: Union[str, Path, None] = None):
        self.db_path = Path(db_path) if db_path is not None else DB_PATH

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        if self.db_path == DB_PATH:
            ensure_data_directories()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not open database {self.db_path}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("Database error on %s: %s", self.db_path, exc)
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    # Generic helpers

    def _select(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            try:
                df = pd.read_sql_query(sql, conn, params=list(params))
            except (pd.errors.DatabaseError, sqlite3.Error) as exc:
                raise PersistenceError(str(exc)) from exc
        df = df.astype(object).where(df.notna(), None)
        return df.to_dict('records')

    def _insert(self, table: str, columns: Sequence[str], rows: Iterable[Mapping[str, Any]]) -> List[int]:
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        ids: List[int] = []
        with self.connect() as conn:
            cur = conn.cursor()
            for row in rows:
                cur.execute(sql, [_to_db_value(row.get(col)) for col in columns])
                ids.append(int(cur.lastrowid))
            conn.commit()
        logger.info("Inserted %d row(s) into %s", len(ids), table)
        return ids

    def _update(self, table: str, allowed: Sequence[str], record_id: int, fields: Mapping[str, Any]) -> bool:
        unknown = set(fields) - set(allowed)
        if unknown:
            raise ValueError(f"Cannot update {table} field(s): {', '.join(sorted(unknown))}")
        if not fields:
            return False
        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = [_to_db_value(value) for value in fields.values()] + [record_id]
        with self.connect() as conn:
            cur = conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", params)
            conn.commit()
            return cur.rowcount > 0

    def _delete(self, table: str, record_id: int) -> bool:
        with self.connect() as conn:
            cur = conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            conn.commit()
            deleted = cur.rowcount > 0
        if deleted:
            logger.info("Deleted %s id=%s", table, record_id)
        return deleted

    # Transactions

    def list_transactions(
        self,
        owner: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        where: List[str] = []
        params: List[Any] = []
        if owner:
            where.append("owner = ?")
            params.append(owner)
        if start_date:
            where.append("date >= ?")
            params.append(start_date.isoformat())
        if end_date:
            where.append("date <= ?")
            params.append(end_date.isoformat())
        sql = "SELECT * FROM transactions"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY date ASC, id ASC"
        return [Transaction.from_record(row) for row in self._select(sql, params)]

    def insert_transactions(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        created_at = datetime.now(timezone.utc).isoformat()
        rows = []
        for txn in transactions:
            row = txn.to_record()
            row['created_at'] = created_at
            rows.append(row)
        ids = self._insert('transactions', TRANSACTION_COLUMNS + ('created_at',), rows)
        return [txn.copy(id=new_id) for txn, new_id in zip(transactions, ids)]

    def update_transaction(self, transaction_id: int, fields: Mapping[str, Any]) -> bool:
        return self._update('transactions', TRANSACTION_COLUMNS, transaction_id, fields)

    def delete_transaction(self, transaction_id: int) -> bool:
        return self._delete('transactions', transaction_id)

    def count_transactions_in_category(self, name: str, txn_type: Optional[str] = None) -> int:
        sql = "SELECT COUNT(*) FROM transactions WHERE category = ?"
        params: List[Any] = [name]
        if txn_type:
            sql += " AND type = ?"
            params.append(txn_type)
        with self.connect() as conn:
            row = conn.execute(sql, params).fetchone()
        return int(row[0])

    # Categories

    def list_categories(self, txn_type: Optional[str] = None) -> List[Category]:
        if txn_type:
            rows = self._select("SELECT * FROM categories WHERE type = ? ORDER BY name", (txn_type,))
        else:
            rows = self._select("SELECT * FROM categories ORDER BY type, name")
        return [Category.from_record(row) for row in rows]

    def insert_categories(self, categories: Sequence[Category]) -> List[Category]:
        rows = [
            {'name': c.name, 'type': c.type, 'is_system': c.is_system, 'is_essential': c.is_essential}
            for c in categories
        ]
        ids = self._insert('categories', CATEGORY_COLUMNS, rows)
        return [Category(id=new_id, name=c.name, type=c.type, is_system=c.is_system, is_essential=c.is_essential)
                for c, new_id in zip(categories, ids)]

    def update_category(self, category_id: int, fields: Mapping[str, Any]) -> bool:
        return self._update('categories', CATEGORY_COLUMNS, category_id, fields)

    def delete_category(self, category_id: int) -> bool:
        return self._delete('categories', category_id)

    def rename_category_cascade(self, category_id: int, old_name: str, new_name: str, txn_type: str) -> int:
        """Rename a category and every row of the same type that references it by name.

        Names are only unique within a type, so transactions of the other type
        keep their category. Budgets exist for expense categories only. Runs as
        one transaction: either every reference carries the new name, or none
        does. Returns the number of transactions updated.
        """
        with self.connect() as conn:
            conn.execute("UPDATE categories SET name = ? WHERE id = ?", (new_name, category_id))
            cur = conn.execute(
                "UPDATE transactions SET category = ? WHERE category = ? AND type = ?",
                (new_name, old_name, txn_type),
            )
            affected = cur.rowcount
            if txn_type == EXPENSE:
                conn.execute("UPDATE budgets SET category = ? WHERE category = ?", (new_name, old_name))
            conn.commit()
        logger.info("Renamed category %r -> %r (%d transactions)", old_name, new_name, affected)
        return affected

    # Investments

    def list_investments(self) -> List[Investment]:
        rows = self._select("SELECT * FROM investments ORDER BY id")
        return [Investment.from_record(row) for row in rows]

    def insert_investment(self, investment: Investment) -> Investment:
        row = {
            'name': investment.name,
            'type': investment.type,
            'owner': investment.owner,
            'current_amount': investment.current_amount,
            'goal': investment.goal,
            'history': investment.history_json(),
        }
        [new_id] = self._insert('investments', INVESTMENT_COLUMNS, [row])
        investment.id = new_id
        return investment

    def update_investment(self, investment_id: int, fields: Mapping[str, Any]) -> bool:
        return self._update('investments', INVESTMENT_COLUMNS, investment_id, fields)

    def delete_investment(self, investment_id: int) -> bool:
        return self._delete('investments', investment_id)

    # Budgets

    def list_budgets(self) -> List[Budget]:
        return [Budget.from_record(row) for row in self._select("SELECT * FROM budgets ORDER BY category")]

    def insert_budget(self, budget: Budget) -> Budget:
        [new_id] = self._insert('budgets', BUDGET_COLUMNS, [{'category': budget.category, 'limit_amount': budget.limit_amount}])
        return Budget(id=new_id, category=budget.category, limit_amount=budget.limit_amount)

    def update_budget(self, budget_id: int, fields: Mapping[str, Any]) -> bool:
        return self._update('budgets', BUDGET_COLUMNS, budget_id, fields)

    def delete_budget(self, budget_id: int) -> bool:
        return self._delete('budgets', budget_id)

    # Savings goals

    def list_savings_goals(self) -> List[SavingsGoal]:
        return [SavingsGoal.from_record(row) for row in self._select("SELECT * FROM savings_goals ORDER BY id")]

    def insert_savings_goal(self, goal: SavingsGoal) -> SavingsGoal:
        row = {
            'name': goal.name,
            'target_amount': goal.target_amount,
            'current_amount': goal.current_amount,
            'owner': goal.owner,
        }
        [new_id] = self._insert('savings_goals', SAVINGS_GOAL_COLUMNS, [row])
        return SavingsGoal(id=new_id, name=goal.name, target_amount=goal.target_amount,
                           current_amount=goal.current_amount, owner=goal.owner)

    def update_savings_goal(self, goal_id: int, fields: Mapping[str, Any]) -> bool:
        return self._update('savings_goals', SAVINGS_GOAL_COLUMNS, goal_id, fields)

    def delete_savings_goal(self, goal_id: int) -> bool:
        return self._delete('savings_goals', goal_id)

    # Advice history

    def list_reports(self, owner: Optional[str] = None) -> List[AdviceReport]:
        if owner:
            rows = self._select(
                "SELECT * FROM advice_history WHERE owner = ? ORDER BY week_of DESC, id DESC", (owner,)
            )
        else:
            rows = self._select("SELECT * FROM advice_history ORDER BY week_of DESC, id DESC")
        return [AdviceReport.from_record(row) for row in rows]

    def find_report(self, owner: str, week_of: date) -> Optional[AdviceReport]:
        rows = self._select(
            "SELECT * FROM advice_history WHERE owner = ? AND week_of = ?",
            (owner, week_of.isoformat()),
        )
        return AdviceReport.from_record(rows[0]) if rows else None

    def insert_report_if_absent(self, report: AdviceReport) -> AdviceReport:
        """Store ``report`` unless the week already has one; return the stored row."""
        created_at = report.created_at or datetime.now(timezone.utc).isoformat()
        with self.connect() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO advice_history (owner, week_of, content, created_at) VALUES (?, ?, ?, ?)",
                (report.owner, report.week_of.isoformat(), report.content, created_at),
            )
            conn.commit()
            if cur.rowcount == 0:
                logger.info("Report for %s week of %s already exists; keeping it", report.owner, report.week_of)
        stored = self.find_report(report.owner, report.week_of)
        if stored is None:
            raise PersistenceError(f"Report for week of {report.week_of} was not stored")
        return stored

    def upsert_report(self, report: AdviceReport) -> AdviceReport:
        """Store ``report``, replacing the content of an existing one for the same week."""
        created_at = report.created_at or datetime.now(timezone.utc).isoformat()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO advice_history (owner, week_of, content, created_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(owner, week_of) DO UPDATE SET content = excluded.content, "
                "created_at = excluded.created_at",
                (report.owner, report.week_of.isoformat(), report.content, created_at),
            )
            conn.commit()
        stored = self.find_report(report.owner, report.week_of)
        if stored is None:
            raise PersistenceError(f"Report for week of {report.week_of} was not stored")
        return stored


_default_store: Optional[RecordStore] = None


def get_store() -> RecordStore:
    """Process-wide store on the configured database, initialised on first use."""
    global _default_store
    if _default_store is None:
        _default_store = RecordStore()
        _default_store.init_db()
    return _default_store
