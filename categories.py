"""Static category taxonomy.

Two disjoint trees, one for expenses and one for income.  Each category
maps to an ordered tuple of subcategory names; iteration order is the
definition order below and drives default display order.

Membership in a tree determines a transaction's type, so a category
name may appear in only one of them (the income catch-all is therefore
``Other Income`` rather than ``Other``).
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from models import UNCATEGORIZED, TransactionType

FALLBACK_CATEGORY = "Other"
FALLBACK_SUBCATEGORY = "Miscellaneous"
FALLBACK_COLOR = "#6B7280"

Taxonomy = Mapping[str, Tuple[str, ...]]

EXPENSE_CATEGORIES: Taxonomy = MappingProxyType({
    "Living Expenses": (
        "Grocery", "Maids", "Fruits & Vegetables", "Food", "Household Items",
        "Utilities", "Electricity", "Gas", "Water", "Internet", "Phone",
        "Personal Care", "Toiletries", "Laundry", "Kitchen Supplies",
    ),
    "Rental": (
        "House Rent", "Apartment Rent", "Office Rent", "Parking Rent",
        "Storage Rent", "Equipment Rent",
    ),
    "Debt": (
        "Car Loan", "Home Loan", "Personal Loan", "Credit Card Payment",
        "Student Loan", "Business Loan", "EMI", "Interest Payment",
    ),
    "Education": (
        "School Fees", "Tuition", "College Fees", "Training", "Courses",
        "Books", "Educational Materials", "Exam Fees", "Coaching",
    ),
    "Healthcare": (
        "Medical Bills", "Doctor Consultation", "Medicine", "Hospital",
        "Dental", "Health Insurance", "Lab Tests", "Surgery", "Therapy",
    ),
    "Transportation": (
        "Fuel", "Car Maintenance", "Public Transport", "Taxi", "Uber",
        "Bus", "Train", "Flight", "Car Insurance", "Vehicle Registration",
    ),
    "Entertainment": (
        "Movies", "Dining Out", "Vacation", "Sports", "Hobbies",
        "Subscriptions", "Netflix", "Spotify", "Gaming", "Books",
    ),
    "Shopping": (
        "Clothes", "Electronics", "Gifts", "Jewelry", "Furniture",
        "Home Decor", "Appliances", "Personal Items",
    ),
    "Insurance": (
        "Life Insurance", "Health Insurance", "Car Insurance", "Home Insurance",
        "Travel Insurance", "Professional Insurance",
    ),
    "Taxes": (
        "Income Tax", "Property Tax", "GST", "Professional Tax",
        "Vehicle Tax", "Other Taxes",
    ),
    "Charity": (
        "Donations", "Religious Contributions", "NGO Support", "Community Support",
    ),
    "Savings": (
        "SIPs", "Mutual Funds", "Stocks", "Fixed Deposits", "Recurring Deposits",
        "AIF", "Emergency Fund", "Investment Savings", "Retirement Savings",
    ),
    "Other": (
        "Miscellaneous", "Bank Charges", "Legal Fees", "Professional Services",
        "Repairs", "Maintenance",
    ),
})

INCOME_CATEGORIES: Taxonomy = MappingProxyType({
    "Salary": (
        "Salary", "Wages", "Bonus", "Overtime", "Commission", "Tips",
        "Freelance Income", "Consulting Income",
    ),
    "Dividend": (
        "Dividends", "Interest", "Capital Gains", "Mutual Fund Returns",
        "Stock Profits", "Bond Interest", "Crypto Gains",
    ),
    "Rental Income": (
        "Property Rent", "Room Rent", "Commercial Rent", "Parking Rent",
        "Equipment Rental", "Airbnb Income",
    ),
    "Business": (
        "Business Profits", "Partnership Income", "Royalties", "Licensing",
        "Product Sales", "Service Income",
    ),
    "Other Income": (
        "Gifts", "Inheritance", "Insurance Claims", "Refunds", "Cashback",
        "Prize Money", "Government Benefits", "Pension",
    ),
})

CATEGORY_COLORS = MappingProxyType({
    "Living Expenses": "#F59E0B",
    "Rental": "#DC2626",
    "Debt": "#EF4444",
    "Education": "#3B82F6",
    "Healthcare": "#EF4444",
    "Transportation": "#8B5CF6",
    "Entertainment": "#EC4899",
    "Shopping": "#3B82F6",
    "Insurance": "#6B7280",
    "Taxes": "#374151",
    "Charity": "#A855F7",
    "Savings": "#059669",
    "Other": "#6B7280",
    "Salary": "#22C55E",
    "Dividend": "#16A34A",
    "Rental Income": "#059669",
    "Business": "#10B981",
    "Other Income": "#34D399",
})


def categories_for_type(txn_type) -> Taxonomy:
    if TransactionType(txn_type) is TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


def all_categories() -> Taxonomy:
    """Union of both trees; income entries win on a name collision."""
    return MappingProxyType({**EXPENSE_CATEGORIES, **INCOME_CATEGORIES})


def color_for(category: Optional[str]) -> str:
    return CATEGORY_COLORS.get(category or "", FALLBACK_COLOR)


def category_type(category: Optional[str]) -> Optional[TransactionType]:
    """Tree a category belongs to, or None for anything outside the taxonomy."""
    if category in INCOME_CATEGORIES:
        return TransactionType.INCOME
    if category in EXPENSE_CATEGORIES:
        return TransactionType.EXPENSE
    return None


def is_known_category(category: Optional[str]) -> bool:
    return category_type(category) is not None


def is_known_pair(category: Optional[str], subcategory: Optional[str]) -> bool:
    return subcategory in all_categories().get(category or "", ())


def is_sentinel(name: Optional[str]) -> bool:
    return not name or name == UNCATEGORIZED
