import pytest

from categories import category_type, is_known_pair
from classifier import FALLBACK, FALLBACK_CONFIDENCE, classify
from models import TransactionType

SAMPLE_DESCRIPTIONS = [
    "",
    "   ",
    "Monthly SIP contribution",
    "Grocery shopping at supermarket",
    "Salary SIP deduction",
    "SIP deduction from salary",
    "Credit card payment",
    "Income tax payment",
    "House rent",
    "Car loan EMI",
    "Uber ride home",
    "Netflix subscription",
    "Pharmacy prescriptions",
    "Stock dividends",
    "Fixed deposit top-up",
    "Electricity bill",
    "Donation to NGO",
    "Bank charges",
    "zzzz qqqq",
    "12345",
    "☕ ☕ ☕",
]


@pytest.mark.parametrize("description", SAMPLE_DESCRIPTIONS)
def test_classify_always_returns_a_taxonomy_pair(description):
    result = classify(description)
    assert is_known_pair(result.category, result.subcategory)
    assert result.type is category_type(result.category)
    assert 0 <= result.confidence <= 1


def test_sip_contribution_is_savings():
    result = classify("Monthly SIP contribution")
    assert (result.category, result.subcategory, result.type) == ("Savings", "SIPs", TransactionType.EXPENSE)


def test_grocery_shopping_is_living_expense():
    result = classify("Grocery shopping at supermarket")
    assert (result.category, result.subcategory, result.type) == (
        "Living Expenses", "Grocery", TransactionType.EXPENSE)


def test_income_beats_savings_regardless_of_position():
    first = classify("Salary SIP deduction")
    second = classify("SIP deduction from salary")
    assert first == second
    assert first.type is TransactionType.INCOME
    assert (first.category, first.subcategory) == ("Salary", "Salary")


@pytest.mark.parametrize("description", ["", "   ", None, "zzzz qqqq"])
def test_unmatched_input_uses_fallback(description):
    result = classify(description)
    assert result == FALLBACK
    assert (result.category, result.subcategory) == ("Other", "Miscellaneous")
    assert result.confidence == FALLBACK_CONFIDENCE


@pytest.mark.parametrize(
    "description, expected",
    [
        ("Stock dividends", ("Dividend", "Dividends")),
        ("Savings account interest", ("Dividend", "Interest")),
        ("Rental income from flat", ("Rental Income", "Property Rent")),
        ("Freelance project", ("Salary", "Freelance Income")),
        ("Amazon refund", ("Salary", "Salary")),
    ],
)
def test_income_subgroups(description, expected):
    result = classify(description)
    assert result.type is TransactionType.INCOME
    assert (result.category, result.subcategory) == expected


@pytest.mark.parametrize(
    "description, expected",
    [
        ("Mutual fund purchase", ("Savings", "Mutual Funds")),
        ("Bought shares", ("Savings", "Stocks")),
        ("RD instalment", ("Savings", "Recurring Deposits")),
        ("Alternative investment fund", ("Savings", "AIF")),
        ("Emergency fund transfer", ("Savings", "Emergency Fund")),
        ("Investment top-up", ("Savings", "Investment Savings")),
        ("House rent", ("Rental", "House Rent")),
        ("Car loan EMI", ("Debt", "Car Loan")),
        ("Petrol refill", ("Transportation", "Fuel")),
        ("Taxi to airport", ("Transportation", "Taxi")),
        ("Dinner at Italian restaurant", ("Entertainment", "Dining Out")),
        ("Doctor visit", ("Healthcare", "Doctor Consultation")),
        ("Monthly electricity bill", ("Living Expenses", "Electricity")),
    ],
)
def test_expense_groups(description, expected):
    result = classify(description)
    assert result.type is TransactionType.EXPENSE
    assert (result.category, result.subcategory) == expected


def test_short_tokens_match_whole_words_only():
    # "rd" inside "card" must not look like a recurring deposit
    assert classify("Credit card payment").category == "Debt"
    assert classify("Income tax payment").category == "Taxes"


def test_existing_subcategory_feeds_the_match():
    assert classify("Transfer", "Fixed Deposits").subcategory == "Fixed Deposits"
    assert classify("Transfer", "Uncategorized") == FALLBACK


def test_classify_is_deterministic():
    assert classify("Weekly groceries") == classify("Weekly groceries")
