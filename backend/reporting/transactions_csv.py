"""Render transactions as a downloadable CSV document."""

from __future__ import annotations

import csv
from collections.abc import Iterable
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from io import StringIO

from shared.models import TransactionOut


CSV_HEADERS = ["Date", "Description", "Type", "Category", "Amount", "Payment Method", "Tags"]


def _format_amount(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"


def export_filename(today: date) -> str:
    return f"transactions_{today.isoformat()}.csv"


def render_transactions_csv(transactions: Iterable[TransactionOut]) -> str:
    """Return a CSV document with one row per transaction, in the given order.

    Rows carry display-form values; tags are joined with ", " in one cell.
    """

    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for transaction in transactions:
        writer.writerow(
            [
                transaction.date.date().isoformat(),
                transaction.description,
                transaction.type,
                transaction.category,
                _format_amount(transaction.amount),
                transaction.payment_method,
                ", ".join(transaction.tags),
            ]
        )
    return buffer.getvalue()
