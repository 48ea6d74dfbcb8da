"""
sample_data.py
--------------
Generate a realistic, already-classified set of sample transactions and
matching monthly budgets, and optionally load them into the database.

Usage:

    python sample_data.py [--owner local] [--months 6] [--seed 42]
"""

from __future__ import annotations

import argparse
import datetime as dt
import random
from collections import defaultdict
from decimal import ROUND_CEILING, Decimal
from typing import Dict, List, Optional, Tuple

from config import DEFAULT_OWNER_ID, configure_logging
from models import Budget, Period, Transaction, TransactionType, month_key

# (category, subcategory) -> (descriptions, (min, max) amount, occurrences per month)
EXPENSE_SAMPLES: Dict[Tuple[str, str], Tuple[List[str], Tuple[int, int], int]] = {
    ("Living Expenses", "Grocery"): (
        ["Weekly groceries", "Supermarket run", "Fresh vegetables", "Organic food shopping"], (40, 160), 4),
    ("Living Expenses", "Electricity"): (["Monthly electricity bill"], (60, 140), 1),
    ("Living Expenses", "Internet"): (["Broadband internet"], (40, 60), 1),
    ("Living Expenses", "Maids"): (["Maid service"], (150, 200), 1),
    ("Rental", "House Rent"): (["House rent"], (1200, 1200), 1),
    ("Debt", "Car Loan"): (["Car loan EMI"], (350, 350), 1),
    ("Transportation", "Fuel"): (["Petrol refill", "Fuel station"], (30, 70), 2),
    ("Transportation", "Taxi"): (["Taxi to airport", "Late night cab"], (15, 45), 2),
    ("Entertainment", "Dining Out"): (["Dinner at Italian restaurant", "Coffee with friends"], (20, 90), 3),
    ("Entertainment", "Netflix"): (["Netflix subscription"], (15, 15), 1),
    ("Healthcare", "Medicine"): (["Pharmacy prescriptions"], (10, 60), 1),
    ("Education", "Courses"): (["Online programming course"], (20, 120), 1),
    ("Shopping", "Clothes"): (["New shirt", "Running shoes"], (30, 120), 1),
    ("Savings", "SIPs"): (["Monthly SIP contribution"], (500, 500), 1),
    ("Savings", "Fixed Deposits"): (["Fixed deposit top-up"], (200, 400), 1),
}

INCOME_SAMPLES: Dict[Tuple[str, str], Tuple[List[str], Tuple[int, int], int]] = {
    ("Salary", "Salary"): (["Monthly salary"], (5200, 5200), 1),
    ("Dividend", "Dividends"): (["Stock dividends", "Mutual fund dividends"], (20, 150), 1),
}

BUDGET_HEADROOM = Decimal("1.10")
BUDGET_ROUNDING = Decimal(50)


def _months_back(today: dt.date, count: int) -> List[str]:
    months = []
    year, mon = today.year, today.month
    for _ in range(count):
        months.append(f"{year:04d}-{mon:02d}")
        year, mon = (year - 1, 12) if mon == 1 else (year, mon - 1)
    return list(reversed(months))


def _sample_month(rng: random.Random, month: str, samples, txn_type: TransactionType, today: dt.date):
    period = Period.for_month(month)
    last_day = min(period.end, today)
    span = (last_day - period.start).days
    for (category, subcategory), (descriptions, (low, high), count) in samples.items():
        for _ in range(count):
            cents = rng.randint(low * 100, high * 100)
            yield Transaction(
                date=period.start + dt.timedelta(days=rng.randint(0, max(span, 0))),
                category=category,
                subcategory=subcategory,
                amount=Decimal(cents) / 100,
                description=rng.choice(descriptions),
                type=txn_type,
            )


def generate_sample_transactions(
    months: int = 6,
    today: Optional[dt.date] = None,
    seed: Optional[int] = None,
) -> List[Transaction]:
    """Classified sample transactions for the last ``months`` calendar months."""
    today = today or dt.date.today()
    rng = random.Random(seed)
    transactions = []
    for month in _months_back(today, max(months, 0)):
        transactions.extend(_sample_month(rng, month, INCOME_SAMPLES, TransactionType.INCOME, today))
        transactions.extend(_sample_month(rng, month, EXPENSE_SAMPLES, TransactionType.EXPENSE, today))
    return sorted(transactions, key=lambda t: t.date)


def generate_sample_budgets(transactions: List[Transaction]) -> List[Budget]:
    """One budget per category-month: actual spend plus headroom, rounded up."""
    actuals: Dict[Tuple[str, str], Decimal] = defaultdict(Decimal)
    for t in transactions:
        actuals[(t.category, month_key(t.date))] += t.amount

    budgets = []
    for (category, month), actual in sorted(actuals.items()):
        planned = (actual * BUDGET_HEADROOM / BUDGET_ROUNDING).to_integral_value(rounding=ROUND_CEILING)
        budgets.append(Budget(category=category, amount=planned * BUDGET_ROUNDING, month=month))
    return budgets


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load sample transactions and budgets")
    parser.add_argument("--owner", default=DEFAULT_OWNER_ID, help="Account to load the sample data into")
    parser.add_argument("--months", type=int, default=6, help="Number of months to generate")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")
    return parser.parse_args()


def main() -> None:
    from database import SessionLocal, init_db
    from storage import bulk_insert_transactions, replace_budgets_for_months

    configure_logging()
    args = parse_args()
    transactions = generate_sample_transactions(args.months, seed=args.seed)
    budgets = generate_sample_budgets(transactions)

    init_db()
    db = SessionLocal()
    try:
        count = bulk_insert_transactions(db, args.owner, transactions)
        replace_budgets_for_months(db, args.owner, budgets)
    finally:
        db.close()
    print(f"Loaded {count} transactions and {len(budgets)} budgets for '{args.owner}'.")


if __name__ == "__main__":
    main()
