"""Keyword-based transaction classifier.

Used on its own when no AI classifier is configured, and as the fallback
whenever the AI path fails.  Rules are evaluated in a fixed order and the
first match wins; there is no scoring across rules.  Precedence:

  1. income keywords (salary, dividend, refund, ...)
  2. savings / investment keywords (SIP, mutual fund, FD, ...)
  3. living expenses, housing, debt, education, transportation,
     entertainment and dining, healthcare, utilities
  4. insurance, taxes, charity, shopping, other fees
  5. nothing matched -> Other / Miscellaneous

Savings must come before the living-expense groups so that e.g.
"SIP investment" is never read as a generic purchase.
"""

from __future__ import annotations

import re
from itertools import chain
from typing import List, NamedTuple, Optional, Pattern, Tuple

from categories import FALLBACK_CATEGORY, FALLBACK_SUBCATEGORY, is_sentinel
from models import Classification, TransactionType
from savings import INVESTMENT_PATTERNS, SAVINGS_CATEGORY

RULE_CONFIDENCE = 0.75
FALLBACK_CONFIDENCE = 0.1


class KeywordRule(NamedTuple):
    category: str
    subcategory: str
    pattern: Pattern


def _rule(category: str, subcategory: str, regex: str) -> KeywordRule:
    return KeywordRule(category, subcategory, re.compile(regex, re.IGNORECASE))


INCOME_RX = re.compile(
    r"\b(salary|salaries|wages?|bonus|paycheck|payroll|dividends?|interest|"
    r"rent(al)? income|freelance|commission|refunds?|cashback|reimbursement|"
    r"allowance|stipend|pension|benefits)\b",
    re.IGNORECASE,
)

INCOME_RULES: List[KeywordRule] = [
    _rule("Salary", "Salary", r"\b(salary|salaries|paycheck|payroll)\b"),
    _rule("Salary", "Bonus", r"\bbonus\b"),
    _rule("Salary", "Wages", r"\bwages?\b"),
    _rule("Salary", "Commission", r"\bcommission\b"),
    _rule("Salary", "Freelance Income", r"\bfreelance\b"),
    _rule("Dividend", "Dividends", r"\bdividends?\b"),
    _rule("Dividend", "Interest", r"\binterest\b"),
    _rule("Rental Income", "Property Rent", r"\brent(al)? income\b"),
]
INCOME_DEFAULT: Tuple[str, str] = ("Salary", "Salary")

SAVINGS_RULES: List[KeywordRule] = [
    KeywordRule(SAVINGS_CATEGORY, subcategory, pattern)
    for subcategory, pattern in INVESTMENT_PATTERNS
] + [
    _rule(SAVINGS_CATEGORY, "Emergency Fund", r"\bemergency fund\b"),
    _rule(SAVINGS_CATEGORY, "Retirement Savings", r"\b(retirement|401k|ppf|nps)\b"),
    _rule(SAVINGS_CATEGORY, "Investment Savings", r"\b(invest(ment|ments|ing)?|savings?)\b"),
]

LIVING_RULES = [
    _rule("Living Expenses", "Grocery", r"\b(grocery|groceries|supermarket|food|vegetables|fruits)\b"),
    _rule("Living Expenses", "Maids", r"\bmaids?\b"),
    _rule("Living Expenses", "Laundry", r"\b(laundry|dry cleaning)\b"),
    _rule("Living Expenses", "Toiletries", r"\b(toiletries|shampoo|toothpaste|soap)\b"),
]

HOUSING_RULES = [
    _rule("Rental", "Office Rent", r"\boffice rent\b"),
    _rule("Rental", "Apartment Rent", r"\bapartment\b"),
    _rule("Rental", "House Rent", r"\b(house rent|rent|rental|lease)\b"),
]

DEBT_RULES = [
    _rule("Debt", "Home Loan", r"\b(home loan|mortgage)\b"),
    _rule("Debt", "Student Loan", r"\b(student|education) loan\b"),
    _rule("Debt", "Personal Loan", r"\bpersonal loan\b"),
    _rule("Debt", "Credit Card Payment", r"\bcredit card (bill|payment|dues)\b"),
    _rule("Debt", "Car Loan", r"\b(car loan|loan|emi)\b"),
]

EDUCATION_RULES = [
    _rule("Education", "Tuition", r"\btuition\b"),
    _rule("Education", "College Fees", r"\b(college|university)\b"),
    _rule("Education", "Courses", r"\b(course|courses|udemy|coursera|training)\b"),
    _rule("Education", "Exam Fees", r"\bexam\b"),
    _rule("Education", "Coaching", r"\bcoaching\b"),
    _rule("Education", "School Fees", r"\b(school fees?|school|education)\b"),
]

TRANSPORTATION_RULES = [
    _rule("Transportation", "Fuel", r"\b(fuel|petrol|diesel|gas station)\b"),
    _rule("Transportation", "Uber", r"\buber\b"),
    _rule("Transportation", "Taxi", r"\b(taxi|cab|ola|lyft)\b"),
    _rule("Transportation", "Bus", r"\bbus\b"),
    _rule("Transportation", "Train", r"\b(train|metro|railway)\b"),
    _rule("Transportation", "Flight", r"\b(flight|airline|airfare)\b"),
    _rule("Transportation", "Car Maintenance", r"\bcar (service|repair|maintenance|wash)\b"),
]

ENTERTAINMENT_RULES = [
    _rule("Entertainment", "Netflix", r"\bnetflix\b"),
    _rule("Entertainment", "Spotify", r"\bspotify\b"),
    _rule("Entertainment", "Movies", r"\b(movies?|cinema|entertainment)\b"),
    _rule("Entertainment", "Dining Out",
          r"\b(restaurant|dining|dinner|lunch|cafe|coffee|takeout|swiggy|zomato)\b"),
    _rule("Entertainment", "Vacation", r"\b(vacation|holiday|hotel|trip)\b"),
    _rule("Entertainment", "Gaming", r"\b(gaming|video game)\b"),
    _rule("Entertainment", "Subscriptions", r"\bsubscriptions?\b"),
]

HEALTHCARE_RULES = [
    _rule("Healthcare", "Doctor Consultation", r"\b(doctor|consultation|clinic)\b"),
    _rule("Healthcare", "Medicine", r"\b(pharmacy|medicines?|prescription)\b"),
    _rule("Healthcare", "Hospital", r"\bhospital\b"),
    _rule("Healthcare", "Dental", r"\b(dental|dentist)\b"),
    _rule("Healthcare", "Lab Tests", r"\b(lab|blood) tests?\b"),
    _rule("Healthcare", "Medical Bills", r"\bmedical\b"),
]

UTILITY_RULES = [
    _rule("Living Expenses", "Electricity", r"\b(electricity|electric bill|power bill)\b"),
    _rule("Living Expenses", "Water", r"\bwater( bill)?\b"),
    _rule("Living Expenses", "Gas", r"\b(gas bill|lpg|cooking gas)\b"),
    _rule("Living Expenses", "Internet", r"\b(internet|broadband|wifi)\b"),
    _rule("Living Expenses", "Phone", r"\b(phone|mobile) (bill|recharge)\b"),
    _rule("Living Expenses", "Utilities", r"\butilit(y|ies)\b"),
]

INSURANCE_RULES = [
    _rule("Insurance", "Health Insurance", r"\bhealth insurance\b"),
    _rule("Insurance", "Car Insurance", r"\b(car|vehicle) insurance\b"),
    _rule("Insurance", "Home Insurance", r"\bhome insurance\b"),
    _rule("Insurance", "Travel Insurance", r"\btravel insurance\b"),
    _rule("Insurance", "Life Insurance", r"\b(insurance|premium)\b"),
]

TAX_RULES = [
    _rule("Taxes", "Income Tax", r"\b(income tax|tds)\b"),
    _rule("Taxes", "Property Tax", r"\bproperty tax\b"),
    _rule("Taxes", "GST", r"\bgst\b"),
    _rule("Taxes", "Other Taxes", r"\btax(es)?\b"),
]

CHARITY_RULES = [
    _rule("Charity", "Religious Contributions", r"\b(temple|church|mosque|gurudwara)\b"),
    _rule("Charity", "Donations", r"\b(donation|donations|charity|ngo)\b"),
]

SHOPPING_RULES = [
    _rule("Shopping", "Clothes", r"\b(clothes|clothing|shirt|jeans|shoes|dress)\b"),
    _rule("Shopping", "Electronics", r"\b(electronics|laptop|headphones)\b"),
    _rule("Shopping", "Gifts", r"\bgifts?\b"),
    _rule("Shopping", "Furniture", r"\bfurniture\b"),
    _rule("Shopping", "Jewelry", r"\b(jewelry|jewellery)\b"),
    _rule("Shopping", "Personal Items", r"\b(shopping|amazon|mall)\b"),
]

OTHER_RULES = [
    _rule("Other", "Bank Charges", r"\b(bank charges?|bank fees?)\b"),
    _rule("Other", "Repairs", r"\brepairs?\b"),
]

EXPENSE_RULES: Tuple[KeywordRule, ...] = tuple(chain(
    SAVINGS_RULES,
    LIVING_RULES,
    HOUSING_RULES,
    DEBT_RULES,
    EDUCATION_RULES,
    TRANSPORTATION_RULES,
    ENTERTAINMENT_RULES,
    HEALTHCARE_RULES,
    UTILITY_RULES,
    INSURANCE_RULES,
    TAX_RULES,
    CHARITY_RULES,
    SHOPPING_RULES,
    OTHER_RULES,
))

FALLBACK = Classification(
    category=FALLBACK_CATEGORY,
    subcategory=FALLBACK_SUBCATEGORY,
    type=TransactionType.EXPENSE,
    confidence=FALLBACK_CONFIDENCE,
)


def _classification_text(description: Optional[str], existing_subcategory: Optional[str]) -> str:
    text = (description or "").strip().lower()
    if not text:
        return ""
    if not is_sentinel(existing_subcategory):
        text = f"{text} {existing_subcategory.lower()}"
    return text


def classify(description: Optional[str], existing_subcategory: Optional[str] = None) -> Classification:
    """Map a free-text description to a category, subcategory and type.

    Never fails: blank or unrecognised text returns ``FALLBACK``.
    """
    text = _classification_text(description, existing_subcategory)
    if not text:
        return FALLBACK

    if INCOME_RX.search(text):
        category, subcategory = INCOME_DEFAULT
        for rule in INCOME_RULES:
            if rule.pattern.search(text):
                category, subcategory = rule.category, rule.subcategory
                break
        return Classification(
            category=category,
            subcategory=subcategory,
            type=TransactionType.INCOME,
            confidence=RULE_CONFIDENCE,
        )

    for rule in EXPENSE_RULES:
        if rule.pattern.search(text):
            return Classification(
                category=rule.category,
                subcategory=rule.subcategory,
                type=TransactionType.EXPENSE,
                confidence=RULE_CONFIDENCE,
            )

    return FALLBACK
