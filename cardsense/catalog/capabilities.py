"""Structured capability flags derived once when a card enters the catalog.

The keyword families below are the only place card free text is scanned.
Scoring reads the resulting flags, never the text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from cardsense.engine.categories import normalize_spend_category, text_categories

SECURED_PATTERN = re.compile(r"secured|fd|fixed deposit|wow")
CASHBACK_PATTERN = re.compile(r"cashback|statement")
TRAVEL_PATTERN = re.compile(r"travel|lounge|mile|air")
UPI_PATTERN = re.compile(r"upi|rupay|qr")
POINTS_PATTERN = re.compile(r"reward|point")


def _text(value: Any) -> str:
    if value is None:
        return ""
    # str-mixin enums format as their value
    return str(getattr(value, "value", value))


def _join(values: Iterable[Any] | None) -> str:
    if not values or isinstance(values, (str, bytes)):
        return _text(values)
    return " ".join(_text(v) for v in values)


def card_signal_text(data: Mapping[str, Any]) -> str:
    """Lower-cased text blob a card is matched against (name, bank, type, tags, copy)."""
    parts = [
        _text(data.get("card_name")),
        _text(data.get("bank_name")),
        _text(data.get("card_type")),
        _join(data.get("best_for")),
        _join(data.get("pros")),
        _text(data.get("description")),
    ]
    return " ".join(p for p in parts if p).lower()


def derive_capabilities(data: Mapping[str, Any]) -> dict[str, Any]:
    """Compute capability flags from a card's raw fields.

    Accepts either a raw catalog mapping or validated field values.
    """
    text = card_signal_text(data)
    card_type = _text(data.get("card_type")).lower()
    network = _text(data.get("card_network")).lower()
    best_for = {normalize_spend_category(_text(v)) for v in (data.get("best_for") or ())}
    return {
        "secured_friendly": card_type == "secured" or bool(SECURED_PATTERN.search(text)),
        "has_cashback": card_type == "cashback" or bool(CASHBACK_PATTERN.search(text)),
        "has_travel_perks": card_type == "travel" or bool(TRAVEL_PATTERN.search(text)),
        "has_upi_support": network == "rupay" or bool(UPI_PATTERN.search(text)),
        "has_points": bool(POINTS_PATTERN.search(text)),
        "spend_categories": tuple(sorted(best_for | text_categories(text))),
    }
