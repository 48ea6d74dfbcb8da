"""
process_transactions.py
-----------------------
Read a bulk-import CSV (``Date, Expense Detail, Amount``) into
provisional, uncategorized transactions.  Rows that fail to parse are
skipped and counted; they never abort the import.  Classification
happens afterwards through ``batch_classifier.classify_batch``.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

import pandas as pd

from models import Transaction, TransactionType

logger = logging.getLogger(__name__)

# Normalized header names accepted for each required column.
DATE_PATTERNS = ["date"]
DESCRIPTION_PATTERNS = ["expensedetail", "expensedetails", "description", "detail", "details"]
AMOUNT_PATTERNS = ["amount"]

DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y"]
# Leading currency marker such as "$", "Rs.", "INR" or "₹", dot included
CURRENCY_PREFIX_RX = re.compile(r"^\s*([^\d\-.\s]+\.?)?\s*")
AMOUNT_NOISE_RX = re.compile(r"[^\d.\-]")


class ImportFormatError(ValueError):
    """The file is not a CSV with the expected columns."""


@dataclass
class ImportResult:
    transactions: List[Transaction] = field(default_factory=list)
    total_rows: int = 0

    @property
    def imported(self) -> int:
        return len(self.transactions)

    @property
    def skipped(self) -> int:
        return self.total_rows - self.imported

    @property
    def summary(self) -> str:
        return f"Imported {self.imported} of {self.total_rows} rows"


def normalize_header(name) -> str:
    return re.sub(r"[^a-z0-9]", "", str(name).strip().lower())


def infer_column(df: pd.DataFrame, patterns: list[str]) -> Optional[str]:
    normalized = {normalize_header(col): col for col in df.columns}
    for pattern in patterns:
        if pattern in normalized:
            return normalized[pattern]
    return None


def parse_amount(raw) -> Optional[Decimal]:
    """Parse ``"$1,234.50"`` or ``"Rs. 500"`` style text; None unless strictly positive."""
    if raw is None or pd.isna(raw):
        return None
    cleaned = AMOUNT_NOISE_RX.sub("", CURRENCY_PREFIX_RX.sub("", str(raw), count=1))
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def parse_date(raw) -> Optional[dt.date]:
    if raw is None or pd.isna(raw):
        return None
    text = str(raw).strip()
    for fmt in DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_csv(source) -> ImportResult:
    """Parse a CSV path or file-like object into an ``ImportResult``."""
    try:
        df = pd.read_csv(source, dtype=str, skip_blank_lines=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise ImportFormatError(f"Could not read CSV: {exc}") from exc

    date_col = infer_column(df, DATE_PATTERNS)
    desc_col = infer_column(df, DESCRIPTION_PATTERNS)
    amount_col = infer_column(df, AMOUNT_PATTERNS)
    if not (date_col and desc_col and amount_col):
        raise ImportFormatError("CSV must have Date, Expense Detail and Amount columns")

    df = df.dropna(how="all")
    result = ImportResult(total_rows=len(df))
    for _, row in df.iterrows():
        date = parse_date(row[date_col])
        amount = parse_amount(row[amount_col])
        description = row[desc_col]
        if date is None or amount is None or pd.isna(description) or not str(description).strip():
            logger.warning("Skipping unparseable import row: %s", row.to_dict())
            continue
        result.transactions.append(
            Transaction(
                date=date,
                amount=amount,
                description=str(description).strip(),
                type=TransactionType.EXPENSE,
            )
        )

    logger.info(result.summary)
    return result
