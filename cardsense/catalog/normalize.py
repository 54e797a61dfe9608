"""Normalize heterogeneous credit_cards rows into CardRecord.

Rows come from several schema generations: `bank_name` or `bank`,
`card_name` or `name`, `min_income_salaried` or `min_income_required`,
card types such as `entry-level` or `lifestyle`. Missing thresholds get
conservative defaults so an incomplete row never looks easier to get.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from cardsense.coerce import (
    as_bool,
    as_mapping,
    as_number,
    as_optional_number,
    as_string,
    as_string_list,
)
from cardsense.schemas.cards import CardNetwork, CardRecord, CardType, LoungeAccess

DEFAULT_MIN_CIBIL_SCORE = 700
DEFAULT_MIN_AGE = 21
DEFAULT_MAX_AGE = 65
DEFAULT_REWARD_RATE = 1.0
DEFAULT_POPULARITY = 50

# Issuers that accept 18+ applicants (FD-backed or app-first products)
AGE_RULE_OVERRIDES: dict[str, tuple[int, int]] = {
    "idfc-first-wow": (18, 65),
    "slice-super-card": (18, 65),
    "jupiter-edge-cred-card": (18, 65),
    "au-altura": (18, 65),
    "onecard": (18, 60),
    "kotak-811-dream-different": (18, 65),
}

_CARD_TYPE_ALIASES: dict[str, CardType] = {
    "entry-level": CardType.ENTRY_LEVEL,
    "entry level": CardType.ENTRY_LEVEL,
    "lifestyle": CardType.REWARDS,
    "super-premium": CardType.SUPER_PREMIUM,
    "fd-backed": CardType.SECURED,
}


def to_card_type(value: Any) -> CardType:
    key = as_string(value).strip().lower()
    if key in _CARD_TYPE_ALIASES:
        return _CARD_TYPE_ALIASES[key]
    try:
        return CardType(key)
    except ValueError:
        return CardType.REWARDS


def to_card_network(value: Any) -> CardNetwork:
    key = as_string(value).strip().lower().replace(" ", "")
    if key == "americanexpress":
        return CardNetwork.AMEX
    try:
        return CardNetwork(key)
    except ValueError:
        return CardNetwork.VISA


def to_lounge_access(value: Any) -> LoungeAccess:
    if isinstance(value, bool):
        return LoungeAccess.DOMESTIC if value else LoungeAccess.NONE
    text = as_string(value).lower()
    if "unlimited" in text:
        return LoungeAccess.UNLIMITED
    if "international" in text:
        return LoungeAccess.INTERNATIONAL
    if "domestic" in text:
        return LoungeAccess.DOMESTIC
    return LoungeAccess.NONE


def _category_rates(value: Any) -> dict[str, float]:
    """Flatten `{"dining": 5}` or `{"dining": {"rate": 5, "unit": ...}}` into percentages."""
    rates: dict[str, float] = {}
    for category, raw in as_mapping(value).items():
        rate = as_number(raw.get("rate")) if isinstance(raw, Mapping) else as_number(raw)
        if rate > 0:
            rates[str(category)] = rate
    return rates


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def normalize_card_row(row: Mapping[str, Any]) -> CardRecord:
    """Build a CardRecord from one raw catalog row.

    Raises pydantic.ValidationError when the row violates card invariants
    (negative fee, inverted age window); the provider skips such rows.
    """
    card_name = as_string(row.get("card_name") or row.get("name"), "Unknown Card")
    card_id = as_string(row.get("id")) or slugify(card_name)

    min_income = as_optional_number(row.get("min_income_salaried")) or as_optional_number(
        row.get("min_income_required")
    )
    min_income_self = as_optional_number(row.get("min_income_self_employed")) or as_optional_number(
        row.get("min_income_required")
    )

    min_age = int(as_number(row.get("min_age"), DEFAULT_MIN_AGE) or DEFAULT_MIN_AGE)
    max_age = int(as_number(row.get("max_age"), DEFAULT_MAX_AGE) or DEFAULT_MAX_AGE)
    if card_id in AGE_RULE_OVERRIDES:
        min_age, max_age = AGE_RULE_OVERRIDES[card_id]

    min_score = int(as_number(row.get("min_cibil_score"), DEFAULT_MIN_CIBIL_SCORE))
    return CardRecord(
        id=card_id,
        bank_name=as_string(row.get("bank_name") or row.get("bank"), "Unknown Bank"),
        card_name=card_name,
        card_network=to_card_network(row.get("card_network") or row.get("network")),
        card_type=to_card_type(row.get("card_type") or row.get("type")),
        joining_fee=as_number(row.get("joining_fee")),
        annual_fee=as_number(row.get("annual_fee")),
        annual_fee_waiver_spend=as_optional_number(row.get("annual_fee_waiver_spend")),
        min_income_salaried=min_income,
        min_income_self_employed=min_income_self,
        min_cibil_score=min_score if min_score > 0 else None,
        min_age=min_age,
        max_age=max_age,
        reward_rate_default=as_number(row.get("reward_rate_default"), DEFAULT_REWARD_RATE),
        reward_rate_categories=_category_rates(row.get("reward_rate_categories")),
        lounge_access=to_lounge_access(row.get("lounge_access")),
        fuel_surcharge_waiver=as_bool(row.get("fuel_surcharge_waiver")),
        emi_conversion=as_bool(
            row.get("emi_conversion_available", row.get("emi_conversion")),
            default=True,
        ),
        golf_access=as_bool(row.get("golf_access")),
        concierge=as_bool(row.get("concierge_service", row.get("concierge"))),
        description=as_string(row.get("description")),
        pros=tuple(as_string_list(row.get("pros"))),
        cons=tuple(as_string_list(row.get("cons"))),
        best_for=tuple(as_string_list(row.get("best_for"))),
        popularity_score=int(as_number(row.get("popularity_score"), DEFAULT_POPULARITY)),
        is_active=row.get("is_active") is not False,
    )
