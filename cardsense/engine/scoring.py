"""Scoring engine — bounded, deterministic match scores per card.

Each card is scored independently of the rest of the pool, from the
profile and the card's capability flags only. Adjustments are additive
and the total is clamped, so overlapping bonuses cannot run away.

Advisor flow: base 52, clamp 35–96. Beginner flow: base 55, clamp 45–95.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from pydantic import BaseModel

from cardsense.engine.categories import normalize_spend_category
from cardsense.engine.eligibility import meets_income
from cardsense.schemas.cards import CardRecord
from cardsense.schemas.profile import UserProfile
from cardsense.schemas.recommendation import ScoredCard

ADVISOR_BASE_SCORE = 52
ADVISOR_SCORE_RANGE = (35, 96)
BEGINNER_BASE_SCORE = 55
BEGINNER_SCORE_RANGE = (45, 95)

AGE_BAND_ESTIMATES: dict[str, int] = {
    "18_20": 19,
    "21_24": 22,
    "25_30": 27,
    "31_plus": 35,
}


def clamp_score(value: float, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, round(value)))


def bank_matches(card: CardRecord, primary_bank: str) -> bool:
    """Case-insensitive substring match of the user's bank in the issuer name."""
    wanted = " ".join(primary_bank.lower().split())
    return bool(wanted) and wanted in " ".join(card.bank_name.lower().split())


def matches_spend_category(category: str, card: CardRecord) -> bool:
    return normalize_spend_category(category) in card.capabilities.spend_categories


# ── Preferences ─────────────────────────────────────────────────────


class ScoringPreferences(BaseModel):
    """Follow-up answers resolved to concrete scoring knobs, with defaults filled in."""

    age_band: str
    income_profile: str
    secured_readiness: str
    spend_focus: str
    value_priority: str
    fee_tolerance: str
    reward_preference: str
    travel_frequency: str
    needs_upi: bool

    @property
    def estimated_age(self) -> int:
        return AGE_BAND_ESTIMATES.get(self.age_band, 35)


def _answer(answers: dict[str, str], key: str, default: str) -> str:
    return answers.get(key) or default


def _income_band(annual_income: float) -> str:
    if annual_income <= 0:
        return "no_personal_income"
    if annual_income <= 300_000:
        return "stipend_or_part_time"
    if annual_income <= 600_000:
        return "stable_income_upto_6l"
    return "stable_income_above_6l"


def resolve_preferences(profile: UserProfile) -> ScoringPreferences:
    """Read follow-up answers, deriving anything missing from the profile."""
    answers = profile.follow_up_answers
    top = profile.top_categories()

    value_priority = _answer(answers, "value_priority", "")
    fee_tolerance = _answer(
        answers,
        "annual_fee_tolerance",
        "free_only" if value_priority == "build_credit_low_fee" else "up_to_1000",
    )
    if value_priority == "travel_perks":
        default_reward = "travel"
    elif value_priority == "cashback_everyday":
        default_reward = "cashback"
    else:
        default_reward = "points"
    reward_preference = _answer(answers, "reward_preference", default_reward)
    travel_frequency = _answer(
        answers,
        "travel_frequency",
        "frequent" if value_priority == "travel_perks" else "rare",
    )
    needs_upi = answers.get("upi_usage") == "critical" or value_priority == "upi_qr_rewards"

    if not value_priority:
        if reward_preference == "travel" or travel_frequency == "frequent":
            value_priority = "travel_perks"
        elif needs_upi:
            value_priority = "upi_qr_rewards"
        elif fee_tolerance == "free_only":
            value_priority = "build_credit_low_fee"
        else:
            value_priority = "cashback_everyday"

    return ScoringPreferences(
        age_band=_answer(answers, "age_band", "21_24"),
        income_profile=_answer(answers, "income_profile", _income_band(profile.annual_income)),
        secured_readiness=_answer(
            answers,
            "secured_card_readiness",
            "have_fd_now" if profile.has_fixed_deposit else "unsecured_only",
        ),
        spend_focus=normalize_spend_category(_answer(answers, "primary_spend_focus", top[0] if top else "other")),
        value_priority=value_priority,
        fee_tolerance=fee_tolerance,
        reward_preference=reward_preference,
        travel_frequency=travel_frequency,
        needs_upi=needs_upi,
    )


# ── Advisor flow ────────────────────────────────────────────────────


def _value_priority_bonus(card: CardRecord, prefs: ScoringPreferences) -> int:
    caps = card.capabilities
    fee = card.annual_fee
    if prefs.value_priority == "build_credit_low_fee":
        bonus = 10 if fee == 0 else 6 if fee <= 500 else -8
        return bonus + (8 if caps.secured_friendly else 0)
    if prefs.value_priority == "cashback_everyday" and caps.has_cashback:
        return 9
    if prefs.value_priority == "travel_perks" and caps.has_travel_perks:
        return 10
    if prefs.value_priority == "upi_qr_rewards" and caps.has_upi_support:
        return 10
    return 0


def _secondary_bonus(card: CardRecord, prefs: ScoringPreferences) -> int:
    caps = card.capabilities
    bonus = 0
    if prefs.reward_preference == "cashback" and caps.has_cashback:
        bonus += 7
    if prefs.reward_preference == "travel" and caps.has_travel_perks:
        bonus += 8
    if prefs.reward_preference == "points" and caps.has_points:
        bonus += 5
    if prefs.travel_frequency == "frequent" and caps.has_travel_perks:
        bonus += 7
    if prefs.needs_upi and caps.has_upi_support:
        bonus += 7
    return bonus


def _income_adjustment(card: CardRecord, profile: UserProfile, prefs: ScoringPreferences) -> int:
    secured = card.capabilities.secured_friendly
    min_income = card.min_income_for(profile.employment_type.is_self_employed) or 0
    adjustment = 0
    if prefs.income_profile == "no_personal_income":
        if min_income > 0:
            adjustment -= 14
        if secured:
            adjustment += 12
        if card.annual_fee == 0:
            adjustment += 4
    elif prefs.income_profile == "stipend_or_part_time":
        if min_income > profile.annual_income:
            adjustment -= 7
        if secured:
            adjustment += 6
        if card.annual_fee <= 1000:
            adjustment += 4
    elif prefs.income_profile == "stable_income_above_6l":
        adjustment += 3 if card.annual_fee <= 5000 else 2
    return adjustment


def _secured_readiness_adjustment(card: CardRecord, prefs: ScoringPreferences) -> int:
    secured = card.capabilities.secured_friendly
    if prefs.secured_readiness in ("have_fd_now", "can_start_fd"):
        return 10 if secured else -2
    if prefs.secured_readiness == "unsecured_only" and secured:
        return -8
    return 0


def _fee_tolerance_adjustment(card: CardRecord, prefs: ScoringPreferences) -> int:
    # Stacks with the value-priority fee terms; only the clamp bounds the sum
    fee = card.annual_fee
    if prefs.fee_tolerance == "free_only":
        return 10 if fee == 0 else -12
    if prefs.fee_tolerance == "up_to_1000":
        return 8 if fee <= 1000 else -5
    if prefs.fee_tolerance == "up_to_5000":
        return 5 if fee <= 5000 else -3
    if prefs.fee_tolerance == "premium_ok":
        return 4 if fee > 5000 else 2
    return 0


def score_advisor_card(profile: UserProfile, prefs: ScoringPreferences, card: CardRecord) -> int:
    """Advisor match score for one card, clamped to 35–96."""
    score = ADVISOR_BASE_SCORE

    if bank_matches(card, profile.primary_bank):
        score += 7

    # At most three top categories, so this contributes at most 21
    for category in profile.top_categories(3):
        if matches_spend_category(category, card):
            score += 7

    if prefs.spend_focus and matches_spend_category(prefs.spend_focus, card):
        score += 10

    score += _value_priority_bonus(card, prefs)
    score += _secondary_bonus(card, prefs)

    if prefs.age_band == "18_20":
        score += 12 if card.capabilities.secured_friendly else -9

    score += _income_adjustment(card, profile, prefs)
    score += _secured_readiness_adjustment(card, prefs)
    score += _fee_tolerance_adjustment(card, prefs)

    return clamp_score(score, ADVISOR_SCORE_RANGE)


# ── Beginner flow ───────────────────────────────────────────────────


def score_beginner_card(profile: UserProfile, card: CardRecord) -> int:
    """Beginner match score for one card, clamped to 45–95."""
    score = BEGINNER_BASE_SCORE
    focus = profile.focus_categories()

    if bank_matches(card, profile.primary_bank):
        score += 10
    if profile.preferred_card_type is not None and card.card_type == profile.preferred_card_type:
        score += 10

    if card.annual_fee == 0:
        score += 8
    elif card.annual_fee <= 1000:
        score += 4
    elif card.annual_fee > 5000:
        score -= 4

    overlap = sum(1 for category in card.best_for_categories if category in focus)
    score += min(overlap * 5, 15)

    score += 8 if meets_income(card, profile) else -10

    if profile.age is not None:
        score += 6 if card.admits_age(profile.age) else -12

    young = profile.age is not None and profile.age < 21
    if young or profile.annual_income == 0:
        score += 10 if card.capabilities.secured_friendly else -6

    return clamp_score(score, BEGINNER_SCORE_RANGE)


# ── Ranking ─────────────────────────────────────────────────────────


def rank_cards(cards: Iterable[CardRecord], scorer: Callable[[CardRecord], int]) -> list[ScoredCard]:
    """Score every card and sort by descending score.

    The sort is stable: equal scores keep catalog order, which is
    popularity order for both catalog sources.
    """
    scored = [ScoredCard(card=card, score=scorer(card)) for card in cards]
    return sorted(scored, key=lambda entry: entry.score, reverse=True)
