"""CSV export of the currently filtered transaction view."""

from __future__ import annotations

import csv
from typing import Sequence

import pandas as pd

from .models import Transaction

EXPORT_COLUMNS = [
    'date', 'description', 'amount', 'type', 'category', 'owner', 'payment_method', 'status',
]


def transactions_to_csv(transactions: Sequence[Transaction]) -> str:
    """Comma-separated export with one header row and one row per transaction.

    Fields containing commas, quotes or newlines are wrapped in double quotes
    with embedded quotes doubled.
    """
    rows = [
        {
            'date': txn.date.isoformat(),
            'description': txn.description,
            'amount': f"{txn.amount:.2f}",
            'type': txn.type,
            'category': txn.category,
            'owner': txn.owner,
            'payment_method': txn.payment_method,
            'status': 'Paid' if txn.is_paid else 'Pending',
        }
        for txn in transactions
    ]
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.to_csv(index=False, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')


def export_filename(year: int, month: int) -> str:
    return f"household_report_{year:04d}-{month:02d}.csv"
