import datetime as dt
from decimal import Decimal

from conftest import make_txn
from insights import (
    average_monthly_savings,
    budget_report,
    budget_variance,
    category_breakdown,
    category_totals,
    compute_kpis,
    debt_to_income_ratio,
    generate_actionable_tips,
    investments_by_type,
    monthly_savings,
    monthly_totals,
    monthly_trend,
    net_worth,
    savings_rate,
    summarize_budget_watch,
    top_expense_categories,
)
from models import Budget, KPIs, Period, TransactionType


def budget(category, amount, month="2024-01"):
    return Budget(category=category, amount=Decimal(amount), month=month)


def test_january_scenario(january_scenario):
    totals = monthly_totals(january_scenario, [], "2024-01")
    assert totals.income == Decimal(1000)
    assert totals.expenses == Decimal(300)
    assert totals.surplus == Decimal(700)

    worth = net_worth(january_scenario, dt.date(2024, 1, 31))
    assert worth == Decimal(100)
    assert savings_rate(totals.income, worth) == Decimal(10)


def test_month_bounds_are_inclusive():
    transactions = [
        make_txn("2023-12-31", 5),
        make_txn("2024-01-01", 10),
        make_txn("2024-01-31", 20),
        make_txn("2024-02-01", 40),
    ]
    assert monthly_totals(transactions, [], "2024-01").expenses == Decimal(30)


def test_totals_conserve_every_transaction():
    transactions = [
        make_txn("2023-12-31", "10.10"),
        make_txn("2024-01-01", "20.20", txn_type=TransactionType.INCOME),
        make_txn("2024-01-31", "30.30"),
        make_txn("2024-02-29", "40.40", txn_type=TransactionType.INCOME),
        make_txn("2024-03-01", "0.01"),
    ]
    months = ["2023-12", "2024-01", "2024-02", "2024-03"]
    summed = sum(
        (monthly_totals(transactions, [], m).income + monthly_totals(transactions, [], m).expenses for m in months),
        Decimal(0),
    )
    assert summed == sum((t.amount for t in transactions), Decimal(0))


def test_budgets_split_by_tree():
    budgets = [
        budget("Salary", 5000),
        budget("Rental", 1200),
        budget("Savings", 500),
        budget("Pets", 80),
        budget("Rental", 999, month="2024-02"),
    ]
    totals = monthly_totals([], budgets, "2024-01")
    assert totals.budgeted_income == Decimal(5000)
    assert totals.budgeted_expenses == Decimal(1700)


def test_out_of_taxonomy_transactions_still_count():
    transactions = [make_txn("2024-01-10", 25, "Pets", "Food")]
    assert monthly_totals(transactions, [], "2024-01").expenses == Decimal(25)


def test_category_totals_are_sparse_and_fresh(january_scenario):
    period = Period.for_month("2024-01")
    first = category_totals(january_scenario, period)
    assert first == {"Salary": Decimal(1000), "Living Expenses": Decimal(200), "Savings": Decimal(100)}
    first["Salary"] = Decimal(0)
    assert category_totals(january_scenario, period)["Salary"] == Decimal(1000)
    assert category_totals(january_scenario, Period.for_month("2024-02")) == {}


def test_zero_budget_variance_is_finite():
    for actual in (Decimal(0), Decimal(50), Decimal("0.01")):
        variance = budget_variance(actual, Decimal(0))
        assert variance.percentage == 0
        assert variance.amount == actual
    assert budget_variance(Decimal(50), Decimal(0)).is_over


def test_budget_variance():
    variance = budget_variance(Decimal(120), Decimal(100))
    assert variance.amount == Decimal(20)
    assert variance.percentage == Decimal(20)
    assert variance.is_over
    assert not budget_variance(Decimal(100), Decimal(100)).is_over


def test_rates_are_zero_without_income():
    assert savings_rate(Decimal(0), Decimal(100)) == 0
    debt = [make_txn("2024-01-10", 300, "Debt", "Car Loan")]
    assert debt_to_income_ratio(debt, Decimal(0)) == 0
    assert debt_to_income_ratio(debt, Decimal(1000)) == Decimal(30)


def test_net_worth_respects_as_of(january_scenario):
    assert net_worth(january_scenario, dt.date(2024, 1, 24)) == 0


def test_savings_detector_consistency():
    transactions = [
        make_txn("2024-01-01", 4000, "Salary", "Salary", txn_type=TransactionType.INCOME),
        make_txn("2024-01-03", 500, "Savings", "SIPs"),
        make_txn("2024-01-04", 300, "Other", "Miscellaneous", "Equity shares purchase"),
        make_txn("2024-01-05", 90, "Entertainment", "Dining Out"),
    ]
    kpis = compute_kpis(transactions)
    total_income = Decimal(4000)
    assert net_worth(transactions, dt.date.today()) / total_income * 100 == kpis.savings_ratio
    assert kpis.savings_ratio == Decimal(20)


def test_aggregations_are_idempotent(january_scenario):
    budgets = [budget("Living Expenses", 250)]
    assert monthly_totals(january_scenario, budgets, "2024-01") == monthly_totals(january_scenario, budgets, "2024-01")
    assert compute_kpis(january_scenario) == compute_kpis(january_scenario)
    assert budget_report(january_scenario, budgets, "2024-01") == budget_report(january_scenario, budgets, "2024-01")
    assert list(monthly_trend(january_scenario, budgets)) == list(monthly_trend(january_scenario, budgets))


def test_trend_skips_empty_months_and_is_restartable():
    transactions = [
        make_txn("2023-10-05", 10),
        make_txn("2023-12-05", 20),
        make_txn("2024-01-05", 30),
        make_txn("2024-03-05", 40),
    ]
    trend = monthly_trend(transactions, [], month_count=3)
    assert trend.months == ["2023-12", "2024-01", "2024-03"]
    assert len(trend) == 3
    assert [t.expenses for t in trend] == [Decimal(20), Decimal(30), Decimal(40)]
    assert [t.month for t in trend] == ["2023-12", "2024-01", "2024-03"]


def test_trend_stops_at_as_of_month():
    transactions = [make_txn("2024-01-05", 10), make_txn("2024-02-05", 20), make_txn("2024-03-05", 30)]
    trend = monthly_trend(transactions, [], month_count=6, as_of=dt.date(2024, 2, 15))
    assert trend.months == ["2024-01", "2024-02"]
    assert list(monthly_trend(transactions, [], month_count=0)) == []


def test_compute_kpis_averages_over_active_months():
    transactions = [
        make_txn("2024-01-01", 3000, "Salary", "Salary", txn_type=TransactionType.INCOME),
        make_txn("2024-03-01", 3000, "Salary", "Salary", txn_type=TransactionType.INCOME),
        make_txn("2024-01-10", 1000, "Debt", "Home Loan"),
        make_txn("2024-03-10", 1000, "Debt", "Home Loan"),
        make_txn("2024-04-10", 999, "Debt", "Home Loan"),
    ]
    kpis = compute_kpis(transactions, as_of=dt.date(2024, 3, 31))
    assert kpis.avg_monthly_income == Decimal(3000)
    assert kpis.avg_monthly_expense == Decimal(1000)
    assert kpis.net_worth == 0
    assert round(kpis.debt_to_income_ratio, 2) == Decimal("33.33")


def test_compute_kpis_on_empty_data():
    kpis = compute_kpis([])
    assert kpis.net_worth == 0
    assert kpis.avg_monthly_income == 0
    assert kpis.savings_ratio == 0


def test_budget_report_orders_income_then_expense_then_extras(january_scenario):
    budgets = [budget("Rental", 1200), budget("Living Expenses", 150), budget("Pets", 40)]
    lines = budget_report(january_scenario, budgets, "2024-01")
    assert [line.category for line in lines] == ["Salary", "Living Expenses", "Rental", "Savings", "Pets"]
    living = lines[1]
    assert living.variance.is_over
    assert living.variance.amount == Decimal(50)
    assert lines[-1].type is None


def test_top_expense_categories_exclude_savings(january_scenario):
    transactions = january_scenario + [make_txn("2024-01-26", 600, "Rental", "House Rent")]
    top = top_expense_categories(transactions, limit=5)
    assert [row["category"] for row in top] == ["Rental", "Living Expenses"]
    assert top[0]["percentage"] == Decimal(75)


def test_investments_by_type(january_scenario):
    extra = [make_txn("2024-01-27", 250, "Savings", "Fixed Deposits"), make_txn("2024-01-28", 50, "Savings", "SIPs")]
    assert investments_by_type(january_scenario + extra) == {"SIP": Decimal(150), "FD": Decimal(250)}


def test_category_breakdown(january_scenario):
    breakdown = category_breakdown(january_scenario + [make_txn("2024-02-01", 5, "Rental", "House Rent")], ["2024-01"])
    assert breakdown["income"] == {"Salary": {"2024-01": Decimal(1000)}}
    assert "Rental" not in breakdown["expense"]


def test_budget_watch_alerts(january_scenario):
    budgets = [budget("Living Expenses", 150), budget("Savings", 110), budget("Salary", 500)]
    alerts = summarize_budget_watch(budget_report(january_scenario, budgets, "2024-01"))
    assert len(alerts) == 2
    assert alerts[0].startswith("🔴 **Living Expenses**")
    assert alerts[1].startswith("🟠 **Savings**")


def test_tips_follow_thresholds():
    healthy = KPIs(
        net_worth=Decimal(1000),
        avg_monthly_income=Decimal(5000),
        avg_monthly_expense=Decimal(3000),
        savings_ratio=Decimal(20),
        debt_to_income_ratio=Decimal(10),
    )
    tips = generate_actionable_tips(healthy)
    assert len(tips) == 2
    assert tips[0].startswith("✅")
    assert tips[1].startswith("🎉")

    stretched = healthy.model_copy(update={
        "savings_ratio": Decimal(5),
        "debt_to_income_ratio": Decimal(45),
        "avg_monthly_expense": Decimal(6000),
    })
    tips = generate_actionable_tips(stretched)
    assert len(tips) == 3
    assert "Debt Alert" in tips[0]
    assert tips[1].startswith("💰")
    assert tips[2].startswith("🚦")


def test_monthly_savings_series(january_scenario):
    transactions = january_scenario + [
        make_txn("2024-03-02", 2000, "Salary", "Salary", txn_type=TransactionType.INCOME),
        make_txn("2024-03-05", 300, "Other", "Miscellaneous", "Mutual fund top-up"),
    ]
    series = monthly_savings(transactions, ["2024-01", "2024-02", "2024-03"])
    assert [row["month"] for row in series] == ["2024-01", "2024-02", "2024-03"]
    assert [row["savings"] for row in series] == [Decimal(100), Decimal(0), Decimal(300)]
    assert series[0]["savings_rate"] == Decimal(10)
    assert series[1]["savings_rate"] == 0
    assert series[2]["savings_rate"] == Decimal(15)
    assert average_monthly_savings(series) == Decimal(200)


def test_average_monthly_savings_without_savings():
    assert average_monthly_savings([]) == 0
    assert average_monthly_savings(monthly_savings([make_txn("2024-01-02", 10)], ["2024-01"])) == 0
