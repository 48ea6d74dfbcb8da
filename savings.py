"""Savings / investment detection.

Every net-worth, savings-rate and non-savings-expense figure goes
through ``is_wealth_building`` so the investment keywords live in
exactly one place.  The keyword classifier also builds its savings
rules from ``INVESTMENT_PATTERNS``.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Iterable, List, Optional, Pattern, Tuple

from models import Transaction, TransactionType

SAVINGS_CATEGORY = "Savings"

# Ordered: the first hit decides the subcategory.  Word boundaries keep
# short tokens like "rd" or "fd" from matching inside "card" or "offduty".
INVESTMENT_PATTERNS: List[Tuple[str, Pattern]] = [
    ("SIPs", re.compile(r"\b(sips?|systematic investment)\b", re.IGNORECASE)),
    ("Mutual Funds", re.compile(r"\b(mutual funds?|mfs?)\b", re.IGNORECASE)),
    ("Stocks", re.compile(r"\b(stocks?|equity|equities|shares?)\b", re.IGNORECASE)),
    ("Fixed Deposits", re.compile(r"\b(fds?|fixed deposits?)\b", re.IGNORECASE)),
    ("Recurring Deposits", re.compile(r"\b(rds?|recurring deposits?)\b", re.IGNORECASE)),
    ("AIF", re.compile(r"\b(aifs?|alternative investments?)\b", re.IGNORECASE)),
]

# Subcategory -> investments-breakdown bucket
INVESTMENT_BUCKETS = {
    "SIPs": "SIP",
    "Mutual Funds": "Mutual Fund",
    "Stocks": "Stocks",
    "Fixed Deposits": "FD",
    "Recurring Deposits": "RD",
    "AIF": "AIF",
}
OTHER_SAVINGS_BUCKET = "Other Savings"


def investment_type(text: Optional[str]) -> Optional[str]:
    """Savings subcategory implied by ``text``, or None."""
    if not text:
        return None
    for subcategory, pattern in INVESTMENT_PATTERNS:
        if pattern.search(text):
            return subcategory
    return None


def is_wealth_building(txn: Transaction) -> bool:
    if txn.type is not TransactionType.EXPENSE:
        return False
    if txn.category == SAVINGS_CATEGORY:
        return True
    return investment_type(txn.subcategory) is not None or investment_type(txn.description) is not None


def wealth_building_total(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions if is_wealth_building(t)), Decimal(0))


def investment_bucket(txn: Transaction) -> str:
    subcategory = investment_type(txn.subcategory) or investment_type(txn.description)
    return INVESTMENT_BUCKETS.get(subcategory, OTHER_SAVINGS_BUCKET)
