"""Aggregation engine.

Every function here is a pure function of the transactions and budgets
it is handed: nothing is cached or shared between calls, accumulators
are created fresh each time, and sums use ``Decimal``.  The dashboard
recomputes everything from scratch on each request.
"""

from __future__ import annotations

import datetime as dt
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from categories import EXPENSE_CATEGORIES, INCOME_CATEGORIES, category_type
from models import (
    KPIs,
    Budget,
    BudgetLine,
    BudgetVariance,
    MonthlyTotals,
    Period,
    Transaction,
    TransactionType,
    month_key,
    parse_month,
)
from savings import investment_bucket, is_wealth_building, wealth_building_total

ZERO = Decimal(0)
HUNDRED = Decimal(100)
DEBT_CATEGORY = "Debt"

# Thresholds used by the rule-based tips
DTI_LIMIT = Decimal(36)
SAVINGS_TARGET = Decimal(15)
BUDGET_WARN_PCT = Decimal(80)


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    return part / whole * HUNDRED if whole > 0 else ZERO


def _in_period(transactions: Iterable[Transaction], period: Period) -> List[Transaction]:
    return [t for t in transactions if period.contains(t.date)]


def monthly_totals(transactions: Iterable[Transaction], budgets: Iterable[Budget], month) -> MonthlyTotals:
    """Income, expenses and budgeted amounts for one calendar month.

    Budgets for categories outside both taxonomy trees are ignored for the
    budgeted split; transactions always count by their type.
    """
    key = parse_month(month)
    period = Period.for_month(key)

    income = ZERO
    expenses = ZERO
    for t in _in_period(transactions, period):
        if t.type is TransactionType.INCOME:
            income += t.amount
        else:
            expenses += t.amount

    budgeted_income = ZERO
    budgeted_expenses = ZERO
    for b in budgets:
        if b.month != key:
            continue
        tree = category_type(b.category)
        if tree is TransactionType.INCOME:
            budgeted_income += b.amount
        elif tree is TransactionType.EXPENSE:
            budgeted_expenses += b.amount

    return MonthlyTotals(
        month=key,
        income=income,
        expenses=expenses,
        budgeted_income=budgeted_income,
        budgeted_expenses=budgeted_expenses,
    )


def category_totals(transactions: Iterable[Transaction], period: Period) -> Dict[str, Decimal]:
    """Sum of amounts per category; categories without transactions are absent."""
    totals: Dict[str, Decimal] = {}
    for t in _in_period(transactions, period):
        totals[t.category] = totals.get(t.category, ZERO) + t.amount
    return totals


def budget_variance(actual: Decimal, budget: Decimal) -> BudgetVariance:
    amount = Decimal(actual) - Decimal(budget)
    return BudgetVariance(
        amount=amount,
        percentage=_percent(amount, Decimal(budget)),
        is_over=amount > 0,
    )


def savings_rate(income: Decimal, total_savings_outflow: Decimal) -> Decimal:
    return _percent(Decimal(total_savings_outflow), Decimal(income))


def debt_to_income_ratio(transactions: Iterable[Transaction], income: Decimal) -> Decimal:
    debt = sum(
        (t.amount for t in transactions
         if t.type is TransactionType.EXPENSE and t.category == DEBT_CATEGORY),
        ZERO,
    )
    return _percent(debt, Decimal(income))


def net_worth(transactions: Iterable[Transaction], as_of: dt.date) -> Decimal:
    """Cumulative savings/investment outflow up to and including ``as_of``.

    A proxy only: no appreciation and no liabilities are taken into account.
    """
    return wealth_building_total(t for t in transactions if t.date <= as_of)


class MonthlyTrend:
    """Monthly totals for the most recent months that contain transactions.

    Months without any activity are skipped rather than shown as zeros.
    Iteration is lazy and can be repeated; results run oldest to newest.
    """

    def __init__(
        self,
        transactions: Iterable[Transaction],
        budgets: Iterable[Budget],
        month_count: int,
        as_of: Optional[dt.date] = None,
    ):
        self._transactions = tuple(transactions)
        self._budgets = tuple(budgets)
        self.month_count = max(int(month_count), 0)
        self.as_of = as_of

    @property
    def months(self) -> List[str]:
        if not self.month_count:
            return []
        cutoff = month_key(self.as_of) if self.as_of else None
        keys = {t.month for t in self._transactions if cutoff is None or t.month <= cutoff}
        return sorted(keys)[-self.month_count:]

    def __iter__(self) -> Iterator[MonthlyTotals]:
        for month in self.months:
            yield monthly_totals(self._transactions, self._budgets, month)

    def __len__(self) -> int:
        return len(self.months)


def monthly_trend(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    month_count: int = 6,
    as_of: Optional[dt.date] = None,
) -> MonthlyTrend:
    return MonthlyTrend(transactions, budgets, month_count, as_of=as_of)


def compute_kpis(transactions: Iterable[Transaction], as_of: Optional[dt.date] = None) -> KPIs:
    """Headline numbers for the dashboard, over transactions dated up to ``as_of``.

    Averages divide by the number of months that contain transactions
    (at least one), not by calendar months elapsed.
    """
    scoped = [t for t in transactions if as_of is None or t.date <= as_of]
    month_count = Decimal(len({t.month for t in scoped}) or 1)

    total_income = sum((t.amount for t in scoped if t.type is TransactionType.INCOME), ZERO)
    total_expenses = sum((t.amount for t in scoped if t.type is TransactionType.EXPENSE), ZERO)
    total_savings = wealth_building_total(scoped)

    return KPIs(
        net_worth=total_savings,
        avg_monthly_income=total_income / month_count,
        avg_monthly_expense=total_expenses / month_count,
        savings_ratio=savings_rate(total_income, total_savings),
        debt_to_income_ratio=debt_to_income_ratio(scoped, total_income),
    )


def budget_report(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    month,
) -> List[BudgetLine]:
    """Budget versus actual per category for one month.

    Income categories come first, then expense categories, in taxonomy
    order, keeping only rows where either side is non-zero.  Categories
    outside the taxonomy follow, sorted by name.
    """
    key = parse_month(month)
    actuals = category_totals(transactions, Period.for_month(key))
    planned: Dict[str, Decimal] = {}
    for b in budgets:
        if b.month == key:
            planned[b.category] = planned.get(b.category, ZERO) + b.amount

    ordered = list(INCOME_CATEGORIES) + list(EXPENSE_CATEGORIES)
    extras = sorted((set(actuals) | set(planned)) - set(ordered))

    lines = []
    for category in ordered + extras:
        actual = actuals.get(category, ZERO)
        budget = planned.get(category, ZERO)
        if actual == 0 and budget == 0:
            continue
        lines.append(
            BudgetLine(
                category=category,
                type=category_type(category),
                actual=actual,
                budget=budget,
                variance=budget_variance(actual, budget),
            )
        )
    return lines


def top_expense_categories(transactions: Iterable[Transaction], limit: int = 5) -> List[dict]:
    """Largest consumption categories, with savings/investment outflow excluded."""
    by_category: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.type is TransactionType.EXPENSE and not is_wealth_building(t):
            by_category[t.category] += t.amount

    total = sum(by_category.values(), ZERO)
    ranked = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
    return [
        {"category": category, "amount": amount, "percentage": _percent(amount, total)}
        for category, amount in ranked[: max(limit, 0)]
    ]


def investments_by_type(transactions: Iterable[Transaction]) -> Dict[str, Decimal]:
    buckets: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if is_wealth_building(t):
            buckets[investment_bucket(t)] += t.amount
    return dict(buckets)


def monthly_savings(transactions: Iterable[Transaction], months: Sequence[str]) -> List[dict]:
    """Income, savings outflow and savings rate for each of ``months``, in the order given."""
    transactions = list(transactions)
    series = []
    for month in months:
        key = parse_month(month)
        in_month = _in_period(transactions, Period.for_month(key))
        income = sum((t.amount for t in in_month if t.type is TransactionType.INCOME), ZERO)
        saved = wealth_building_total(in_month)
        series.append({"month": key, "income": income, "savings": saved, "savings_rate": savings_rate(income, saved)})
    return series


def average_monthly_savings(series: Iterable[dict]) -> Decimal:
    """Mean savings over the months that saved anything at all."""
    saved = [row["savings"] for row in series if row["savings"] > 0]
    return sum(saved, ZERO) / len(saved) if saved else ZERO


def category_breakdown(transactions: Iterable[Transaction], months: Sequence[str]) -> Dict[str, Dict[str, Dict[str, Decimal]]]:
    """type -> category -> month -> amount, for the given months only."""
    wanted = {parse_month(m) for m in months}
    breakdown: Dict[str, Dict[str, Dict[str, Decimal]]] = {}
    for t in transactions:
        if t.month not in wanted:
            continue
        per_month = breakdown.setdefault(t.type.value, {}).setdefault(t.category, {})
        per_month[t.month] = per_month.get(t.month, ZERO) + t.amount
    return breakdown


def summarize_budget_watch(lines: Iterable[BudgetLine]) -> List[str]:
    """Return human-readable alerts for overspent and at-risk expense budgets."""
    alerts = []
    for line in lines:
        if line.type is not TransactionType.EXPENSE or line.budget <= 0:
            continue
        pct = _percent(line.actual, line.budget)
        if line.variance.is_over:
            alerts.append(
                f"🔴 **{line.category}** is over budget by ${line.variance.amount:,.0f} "
                f"(spent ${line.actual:,.0f} of ${line.budget:,.0f})."
            )
        elif pct >= BUDGET_WARN_PCT:
            alerts.append(
                f"🟠 **{line.category}** is {pct:.0f}% of its ${line.budget:,.0f} limit. "
                "Slow down to avoid overruns."
            )
    return alerts


def generate_actionable_tips(kpis: KPIs) -> List[str]:
    """
    Generates rule-based financial tips.
    """
    tips = []

    if kpis.debt_to_income_ratio > DTI_LIMIT:
        tips.append(
            f"⚠️ **Debt Alert**: Your debt-to-income ratio is {kpis.debt_to_income_ratio:.1f}%, "
            f"above the recommended {DTI_LIMIT}%. Consider paying down high-interest debt first."
        )
    else:
        tips.append(
            f"✅ **Debt**: Your debt-to-income ratio of {kpis.debt_to_income_ratio:.1f}% "
            "is within recommended limits."
        )

    if kpis.savings_ratio < SAVINGS_TARGET:
        tips.append(
            f"💰 **Savings**: Your savings rate of {kpis.savings_ratio:.1f}% is below the recommended "
            f"{SAVINGS_TARGET}%. Trim discretionary spending and automate a monthly SIP."
        )
    else:
        tips.append(
            f"🎉 **Great Job**: Your savings rate of {kpis.savings_ratio:.1f}% exceeds the "
            f"recommended {SAVINGS_TARGET}%."
        )

    if kpis.avg_monthly_income > 0 and kpis.avg_monthly_expense > kpis.avg_monthly_income:
        tips.append(
            "🚦 **Cash Flow**: Average monthly spending exceeds average income. "
            "Review the largest expense categories this month."
        )

    return tips
