"""Card catalog schemas.

CardRecord is the canonical, validated card shape every engine module reads.
It is frozen: the catalog is read-only for the lifetime of a request.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cardsense.catalog.capabilities import derive_capabilities
from cardsense.engine.categories import normalize_spend_category


class CardType(str, Enum):
    """Product tier / positioning of a card."""

    ENTRY_LEVEL = "entry_level"
    CASHBACK = "cashback"
    REWARDS = "rewards"
    TRAVEL = "travel"
    FUEL = "fuel"
    PREMIUM = "premium"
    SUPER_PREMIUM = "super_premium"
    BUSINESS = "business"
    SECURED = "secured"


class CardNetwork(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    RUPAY = "rupay"
    AMEX = "amex"
    DINERS = "diners"


class LoungeAccess(str, Enum):
    NONE = "none"
    DOMESTIC = "domestic"
    INTERNATIONAL = "international"
    UNLIMITED = "unlimited"


class CardCapabilities(BaseModel):
    """Structured flags tagged at ingestion (see catalog.capabilities)."""

    model_config = ConfigDict(frozen=True)

    secured_friendly: bool = False
    has_cashback: bool = False
    has_travel_perks: bool = False
    has_upi_support: bool = False
    has_points: bool = False
    spend_categories: tuple[str, ...] = ()


class CardRecord(BaseModel):
    """A credit card product in canonical form.

    Fees and incomes are INR; incomes are annual. Reward rates are percentages.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    bank_name: str
    card_name: str
    card_network: CardNetwork = CardNetwork.VISA
    card_type: CardType = CardType.REWARDS

    joining_fee: float = Field(default=0, ge=0)
    annual_fee: float = Field(default=0, ge=0)
    annual_fee_waiver_spend: float | None = None

    min_income_salaried: float | None = Field(default=None, ge=0)
    min_income_self_employed: float | None = Field(default=None, ge=0)
    min_cibil_score: int | None = None
    min_age: int | None = None
    max_age: int | None = None

    reward_rate_default: float = Field(default=1.0, ge=0)
    reward_rate_categories: dict[str, float] = Field(default_factory=dict)
    lounge_access: LoungeAccess = LoungeAccess.NONE

    fuel_surcharge_waiver: bool = False
    emi_conversion: bool = True
    golf_access: bool = False
    concierge: bool = False

    description: str = ""
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()
    best_for: tuple[str, ...] = ()

    popularity_score: int = 50
    is_active: bool = True

    capabilities: CardCapabilities = Field(default_factory=CardCapabilities)

    @model_validator(mode="before")
    @classmethod
    def _tag_capabilities(cls, data: Any) -> Any:
        """Derive capability flags unless the caller supplied them."""
        if isinstance(data, dict) and "capabilities" not in data:
            data = {**data, "capabilities": derive_capabilities(data)}
        return data

    @model_validator(mode="after")
    def _check_age_window(self) -> CardRecord:
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            msg = f"min_age {self.min_age} exceeds max_age {self.max_age} for card {self.id}"
            raise ValueError(msg)
        if any(rate < 0 for rate in self.reward_rate_categories.values()):
            msg = f"Negative category reward rate for card {self.id}"
            raise ValueError(msg)
        return self

    def admits_age(self, age: float) -> bool:
        """True if `age` falls inside the card's (possibly open) age window."""
        if self.min_age is not None and age < self.min_age:
            return False
        if self.max_age is not None and age > self.max_age:
            return False
        return True

    def min_income_for(self, self_employed: bool = False) -> float | None:
        """Annual income threshold for the applicant's employment kind."""
        if self_employed and self.min_income_self_employed is not None:
            return self.min_income_self_employed
        return self.min_income_salaried

    @property
    def normalized_name(self) -> str:
        return " ".join(self.card_name.lower().split())

    @property
    def best_for_categories(self) -> tuple[str, ...]:
        """Declared best-for tags in canonical category form."""
        return tuple(normalize_spend_category(tag) for tag in self.best_for)


class CardListItem(BaseModel):
    """Catalog browsing projection returned by GET /api/cards."""

    id: str
    bank_name: str
    card_name: str
    card_network: CardNetwork
    card_type: CardType
    joining_fee: float
    annual_fee: float
    min_income_salaried: float | None
    min_cibil_score: int | None
    reward_rate_default: float
    lounge_access: LoungeAccess
    best_for: list[str]
    pros: list[str]
    cons: list[str]
    capabilities: CardCapabilities

    @classmethod
    def from_record(cls, card: CardRecord) -> CardListItem:
        return cls(
            id=card.id,
            bank_name=card.bank_name,
            card_name=card.card_name,
            card_network=card.card_network,
            card_type=card.card_type,
            joining_fee=card.joining_fee,
            annual_fee=card.annual_fee,
            min_income_salaried=card.min_income_salaried,
            min_cibil_score=card.min_cibil_score,
            reward_rate_default=card.reward_rate_default,
            lounge_access=card.lounge_access,
            best_for=list(card.best_for),
            pros=list(card.pros),
            cons=list(card.cons),
            capabilities=card.capabilities,
        )
