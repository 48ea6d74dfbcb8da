"""CSV and spreadsheet export of transactions and monthly reports."""

from __future__ import annotations

from io import StringIO
from typing import Iterable

import pandas as pd

from insights import budget_report, monthly_totals
from models import Budget, Period, Transaction, parse_month

EXPORT_COLUMNS = ["Date", "Type", "Category", "Subcategory", "Amount", "Description"]


def transactions_to_df(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "Date": t.date.isoformat(),
            "Type": t.type.value,
            "Category": t.category,
            "Subcategory": t.subcategory,
            "Amount": t.amount,
            "Description": t.description,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_transactions_csv(transactions: Iterable[Transaction]) -> str:
    buffer = StringIO()
    transactions_to_df(transactions).to_csv(buffer, index=False)
    return buffer.getvalue()


def export_monthly_report(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    month,
    target,
) -> None:
    """
    Write an .xlsx report for ``month`` to ``target`` (path or binary buffer)
    with Summary, Transactions and Budget Analysis sheets.
    """
    key = parse_month(month)
    transactions = list(transactions)
    budgets = list(budgets)
    totals = monthly_totals(transactions, budgets, key)
    period = Period.for_month(key)

    summary = pd.DataFrame(
        [
            ("Total Income", totals.income, "Budgeted Income", totals.budgeted_income),
            ("Total Expenses", totals.expenses, "Budgeted Expenses", totals.budgeted_expenses),
            ("Net Surplus/Deficit", totals.surplus, "Budget Variance",
             totals.budgeted_expenses - totals.expenses),
        ],
        columns=["Metric", "Actual", "Budget Metric", "Budget"],
    )

    in_month = sorted(
        (t for t in transactions if period.contains(t.date)),
        key=lambda t: t.date,
        reverse=True,
    )
    detail = transactions_to_df(in_month)

    analysis = pd.DataFrame(
        [
            {
                "Category": line.category,
                "Budget": line.budget,
                "Actual": line.actual,
                "Variance": line.variance.amount,
                "Variance %": f"{line.variance.percentage:.1f}%" if line.budget > 0 else "N/A",
            }
            for line in budget_report(transactions, budgets, key)
        ],
        columns=["Category", "Budget", "Actual", "Variance", "Variance %"],
    )

    # Decimal cells are written as numbers
    for frame, cols in ((summary, ["Actual", "Budget"]), (detail, ["Amount"]),
                        (analysis, ["Budget", "Actual", "Variance"])):
        frame[cols] = frame[cols].astype(float)

    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        summary.to_excel(writer, sheet_name="Summary", index=False)
        detail.to_excel(writer, sheet_name="Transactions", index=False)
        analysis.to_excel(writer, sheet_name="Budget Analysis", index=False)
