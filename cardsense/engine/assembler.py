"""Recommendation assembler — top-N selection, backfill, and card narratives.

Turns ranked cards into response items: estimated annual value, template
reasoning, key perks and benefit bullets. Both flows guarantee a minimum
result count by scoring further catalog cards when the eligible pool is
too small.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from functools import partial

from pydantic import BaseModel

from cardsense.engine.categories import spend_label
from cardsense.engine.eligibility import age_eligible, filter_eligible, meets_income
from cardsense.engine.scoring import (
    ADVISOR_SCORE_RANGE,
    BEGINNER_SCORE_RANGE,
    ScoringPreferences,
    bank_matches,
    clamp_score,
    rank_cards,
    score_advisor_card,
    score_beginner_card,
)
from cardsense.schemas.cards import CardRecord, LoungeAccess
from cardsense.schemas.profile import UserProfile
from cardsense.schemas.recommendation import (
    AdvisorCardItem,
    AdvisorResult,
    ApplicationGuide,
    BeginnerRecommendationItem,
    CreditEducation,
    ScoredCard,
)

MIN_REWARD_RATE = 0.005
MIN_AI_REASONING_LENGTH = 35
GENERIC_AI_REASONING = "fits beginner usage with manageable fees"

DEFAULT_APPLICATION_GUIDE = ApplicationGuide(
    steps=[
        "Check your eligibility and required minimum income before applying.",
        "Keep PAN, Aadhaar, and latest income proof ready.",
        "Apply for only one card first to avoid multiple hard enquiries.",
    ],
    documents_needed=[
        "PAN card",
        "Aadhaar card",
        "Address proof",
        "Income proof (salary slip or bank statement)",
    ],
    tips=[
        "Start with a low-fee or lifetime-free card.",
        "Pay total due every month to build credit history.",
        "Keep utilization below 30% of your credit limit.",
    ],
)

DEFAULT_CREDIT_EDUCATION = CreditEducation(
    topics=["On-time payments", "Credit utilization", "Statement cycle and due date"],
    tips=[
        "Always set payment reminders.",
        "Avoid cash withdrawals on credit cards.",
        "Review monthly statement for unauthorized transactions.",
    ],
)

RELAXED_ELIGIBILITY_NOTE = (
    " Strict income filters had no direct match, so near-fit cards (including secured options) were included."
)


class CardSuggestion(BaseModel):
    """A catalog card proposed by the optional LLM, with its suggested score and reasoning."""

    card: CardRecord
    score: float | None = None
    reasoning: str = ""


# ── Helpers ─────────────────────────────────────────────────────────


def unique_strings(items: Iterable[str]) -> list[str]:
    """Trimmed, non-empty items, case-insensitively deduplicated, first wins."""
    result: list[str] = []
    seen: set[str] = set()
    for item in items:
        clean = item.strip()
        if not clean or clean.lower() in seen:
            continue
        seen.add(clean.lower())
        result.append(clean)
    return result


def format_inr(amount: float) -> str:
    """Indian digit grouping: 150000 -> '1,50,000'."""
    if not math.isfinite(amount):
        return "0"
    digits = str(int(round(amount)))
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join([*groups, tail])


def estimate_annual_value(monthly_spend: float, card: CardRecord) -> int:
    """Yearly rewards on `monthly_spend` minus the annual fee, floored at zero."""
    rate = max(MIN_REWARD_RATE, card.reward_rate_default / 100)
    value = monthly_spend * rate * 12 - card.annual_fee
    if not math.isfinite(value):
        return 0
    return max(0, round(value))


def backfill(
    ranked: Sequence[ScoredCard],
    catalog: Sequence[CardRecord],
    minimum: int,
    scorer: Callable[[CardRecord], int],
) -> list[ScoredCard]:
    """Append best-scoring catalog cards not already ranked until `minimum` is met."""
    result = list(ranked)
    if len(result) >= minimum:
        return result
    used = {entry.card.id for entry in result}
    extras = rank_cards((card for card in catalog if card.id not in used), scorer)
    return result + extras[: minimum - len(result)]


# ── Beginner flow ───────────────────────────────────────────────────


def rank_beginner(profile: UserProfile, catalog: Sequence[CardRecord], minimum: int) -> list[ScoredCard]:
    """Age-eligible pool ranked by beginner score, backfilled from the whole catalog."""
    scorer = partial(score_beginner_card, profile)
    ranked = rank_cards(age_eligible(catalog, profile.age), scorer)
    return backfill(ranked, catalog, minimum, scorer)


def _spend_focus_text(profile: UserProfile, card: CardRecord) -> str:
    focus = profile.focus_categories()
    card_categories = card.best_for_categories
    matched = [category for category in focus if category in card_categories]
    chosen = matched or focus
    if not chosen:
        return "your regular spending"
    return " and ".join(spend_label(category) for category in chosen[:2])


def _key_perks(card: CardRecord) -> list[str]:
    if card.annual_fee == 0:
        fee_perk = "Zero annual fee structure"
    elif card.annual_fee <= 1000:
        fee_perk = f"Low annual fee (INR {format_inr(card.annual_fee)})"
    else:
        fee_perk = ""
    candidates = [
        *card.pros,
        fee_perk,
        f"{card.reward_rate_default:g}% base reward rate on eligible spends" if card.reward_rate_default > 0 else "",
        "Fuel surcharge waiver on eligible transactions" if card.fuel_surcharge_waiver else "",
        f"Lounge access support ({card.lounge_access.value})" if card.lounge_access != LoungeAccess.NONE else "",
        "EMI conversion available for large purchases" if card.emi_conversion else "",
    ]
    return unique_strings(candidates)[:4]


def _benefit_summary(profile: UserProfile, card: CardRecord, focus_text: str) -> list[str]:
    thin_file = (profile.age is not None and profile.age < 21) or profile.annual_income == 0
    candidates = [
        f"Better value on your {focus_text} spend pattern.",
        "Keeps yearly card cost controlled while you build credit history." if card.annual_fee <= 1000 else "",
        "Secured/FD-backed structure can improve approval chances for student or low-income profiles."
        if card.capabilities.secured_friendly and thin_file
        else "",
        f"Existing relationship with {card.bank_name} may make onboarding smoother."
        if bank_matches(card, profile.primary_bank)
        else "",
        "Your current income profile aligns with typical eligibility expectations for this card."
        if meets_income(card, profile)
        else "This card can still be explored, but approval may depend on additional bank-level checks.",
    ]
    return unique_strings(candidates)[:3]


def build_beginner_item(
    profile: UserProfile,
    card: CardRecord,
    score: float,
    ai_reasoning: str = "",
) -> BeginnerRecommendationItem:
    focus_text = _spend_focus_text(profile, card)

    reasoning = ai_reasoning.strip()
    if len(reasoning) < MIN_AI_REASONING_LENGTH or GENERIC_AI_REASONING in reasoning.lower():
        reasoning = (
            f"{card.card_name} suits you because it aligns with {focus_text}, keeps fee-to-value "
            "practical, and matches your current beginner eligibility profile."
        )

    return BeginnerRecommendationItem(
        card_id=card.id,
        card_name=card.card_name,
        bank=card.bank_name,
        score=clamp_score(score, BEGINNER_SCORE_RANGE),
        reasoning=reasoning,
        annual_value=estimate_annual_value(profile.monthly_spend, card),
        key_perks=_key_perks(card),
        benefit_summary=_benefit_summary(profile, card, focus_text),
    )


def assemble_beginner(
    profile: UserProfile,
    catalog: Sequence[CardRecord],
    *,
    min_results: int = 3,
    suggestions: Sequence[CardSuggestion] = (),
) -> list[BeginnerRecommendationItem]:
    """Beginner recommendations: model suggestions first (if any), then the ranking.

    Returns `min_results` distinct cards whenever the catalog holds that many.
    """
    ranked = rank_beginner(profile, catalog, min_results)
    fallback_scores = {entry.card.id: entry.score for entry in ranked}

    items: list[BeginnerRecommendationItem] = []
    used: set[str] = set()

    for suggestion in suggestions:
        if len(items) >= min_results:
            break
        card = suggestion.card
        if card.id in used:
            continue
        score = suggestion.score if suggestion.score is not None else fallback_scores.get(card.id, 68)
        items.append(build_beginner_item(profile, card, score, suggestion.reasoning))
        used.add(card.id)

    for entry in ranked:
        if len(items) >= min_results:
            break
        if entry.card.id in used:
            continue
        items.append(build_beginner_item(profile, entry.card, entry.score))
        used.add(entry.card.id)

    return items


# ── Advisor flow ────────────────────────────────────────────────────


def rank_advisor(
    profile: UserProfile,
    prefs: ScoringPreferences,
    catalog: Sequence[CardRecord],
    count: int,
) -> tuple[list[ScoredCard], bool]:
    """Top `count` of the eligible pool, backfilled from the catalog.

    Returns the ranked cards and whether eligibility had to be relaxed.
    """
    pool = filter_eligible(profile, catalog, age=prefs.estimated_age)
    scorer = partial(score_advisor_card, profile, prefs)
    ranked = rank_cards(pool.cards, scorer)[:count]
    return backfill(ranked, catalog, count, scorer), pool.relaxed


def advisor_reason(card: CardRecord, prefs: ScoringPreferences) -> str:
    return (
        f"{card.card_name} fits your {spend_label(prefs.spend_focus)} preference and current eligibility "
        "profile, while keeping fee-versus-benefit balance practical."
    )


def build_advisor_item(
    profile: UserProfile,
    card: CardRecord,
    score: float,
    reason: str,
    key_perks: Sequence[str] = (),
) -> AdvisorCardItem:
    perks = unique_strings([*key_perks, *card.pros[:4], card.description])[:3]
    return AdvisorCardItem(
        id=card.id,
        name=card.card_name,
        bank=card.bank_name,
        score=clamp_score(score, ADVISOR_SCORE_RANGE),
        reason=reason,
        annual_fee=card.annual_fee,
        pros=perks,
        best_categories=list(card.best_for),
        annual_value=estimate_annual_value(profile.monthly_spend, card),
    )


def advisor_analysis(reason: str, relaxed: bool) -> str:
    analysis = f"Generated recommendations with deterministic matching ({reason})."
    return analysis + RELAXED_ELIGIBILITY_NOTE if relaxed else analysis


def assemble_advisor(
    profile: UserProfile,
    prefs: ScoringPreferences,
    catalog: Sequence[CardRecord],
    *,
    count: int = 3,
    reason: str,
) -> AdvisorResult:
    """Deterministic advisor result for a profile whose follow-up answers are present."""
    ranked, relaxed = rank_advisor(profile, prefs, catalog, count)
    cards = [
        build_advisor_item(profile, entry.card, entry.score, advisor_reason(entry.card, prefs))
        for entry in ranked
    ]
    return AdvisorResult(
        cards=cards,
        analysis=advisor_analysis(reason, relaxed),
        used_relaxed_eligibility=relaxed,
    )
