"""Spend category vocabulary shared by the normalizer, scoring, and questions.

`online_shopping` and `shopping` are the same category everywhere; the
canonical key is `shopping`.
"""

from __future__ import annotations

import re

CANONICAL_CATEGORIES: tuple[str, ...] = (
    "groceries",
    "dining",
    "shopping",
    "travel",
    "fuel",
    "utilities",
    "education",
    "entertainment",
    "healthcare",
    "other",
)

# Order used to pad the spend-focus question when the user has few categories
SPEND_FOCUS_FALLBACK_ORDER: tuple[str, ...] = (
    "groceries",
    "dining",
    "shopping",
    "travel",
    "fuel",
    "utilities",
    "education",
    "entertainment",
)

_ALIASES: dict[str, str] = {
    "online_shopping": "shopping",
    "ecommerce": "shopping",
    "e_commerce": "shopping",
    "grocery": "groceries",
    "food": "dining",
    "food_delivery": "dining",
    "restaurants": "dining",
    "bills": "utilities",
    "bill_payments": "utilities",
    "utility": "utilities",
    "recharge": "utilities",
    "movies": "entertainment",
    "ott": "entertainment",
    "health": "healthcare",
    "medical": "healthcare",
    "commute": "travel",
    "petrol": "fuel",
}

SPEND_LABELS: dict[str, str] = {
    "groceries": "groceries",
    "dining": "dining & delivery",
    "shopping": "online shopping",
    "travel": "travel",
    "fuel": "fuel",
    "utilities": "bills & utilities",
    "education": "education",
    "entertainment": "entertainment",
    "healthcare": "healthcare",
    "other": "general expenses",
}

SPEND_FOCUS_DETAILS: dict[str, tuple[str, str]] = {
    "groceries": ("Groceries & essentials", "Maximize savings on everyday household expenses."),
    "dining": ("Dining & delivery", "Optimize food, restaurants, and delivery app spends."),
    "shopping": ("Online shopping", "Prioritize ecommerce and sale-season rewards."),
    "travel": ("Travel & commute", "Focus on flights, hotels, cabs, and local travel."),
    "fuel": ("Fuel", "Reduce fuel spend with surcharge waiver and rewards."),
    "utilities": ("Bills & recharges", "Get better value on monthly utility and recharge spends."),
    "education": ("Education spends", "Optimize tuition, courses, and related payments."),
    "entertainment": ("Movies & entertainment", "Focus on OTT, movies, and entertainment benefits."),
    "other": ("Mixed spends", "Balanced rewards across multiple categories."),
}

CATEGORY_MATCH_PATTERNS: dict[str, re.Pattern[str]] = {
    "groceries": re.compile(r"grocery|supermarket|essential"),
    "dining": re.compile(r"dining|restaurant|food|zomato|swiggy"),
    "shopping": re.compile(r"shopping|online|ecommerce|flipkart|amazon"),
    "travel": re.compile(r"travel|flight|hotel|lounge|airline|rail|cab"),
    "fuel": re.compile(r"fuel|petrol|diesel"),
    "utilities": re.compile(r"utility|bill|electricity|recharge|broadband"),
    "education": re.compile(r"education|student|course|learning|tuition"),
    "entertainment": re.compile(r"entertainment|movie|ott|streaming"),
}


def normalize_spend_category(category: str | None) -> str:
    """Canonical key for a category name. Idempotent; empty input is `other`."""
    if not category:
        return "other"
    key = category.strip().lower().replace("-", "_").replace(" ", "_")
    if not key:
        return "other"
    return _ALIASES.get(key, key)


def spend_label(category: str | None) -> str:
    """Human-readable phrase for a category, used in generated text."""
    if not category:
        return "daily expenses"
    normalized = normalize_spend_category(category)
    return SPEND_LABELS.get(normalized, normalized.replace("_", " "))


def text_categories(text: str) -> set[str]:
    """Categories whose keyword family appears in lower-cased card text."""
    return {category for category, pattern in CATEGORY_MATCH_PATTERNS.items() if pattern.search(text)}
