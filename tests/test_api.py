"""HTTP tests for the recommendation, catalog, advisor session, spending and
profile endpoints.

Routers are mounted on a bare FastAPI app with the production error
handlers; storage, rate limiting and the event bus are patched out.
"""

from __future__ import annotations

import uuid
from contextlib import ExitStack
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.exceptions import RedisError

from cardsense.advisor.state import AdvisorFormState
from cardsense.api import advisor, beginner, cards, profile, recommend, recommendations, spending
from cardsense.api.context import load_catalog_and_history
from cardsense.catalog.fallback import fallback_catalog
from cardsense.catalog.provider import CatalogResult
from cardsense.config import settings
from cardsense.db.engine import get_redis, get_session
from cardsense.engine.assembler import DEFAULT_APPLICATION_GUIDE, DEFAULT_CREDIT_EDUCATION, CardSuggestion
from cardsense.errors import CatalogUnavailableError, RateLimitedError
from cardsense.llm.client import LLMError
from cardsense.llm.suggestions import BeginnerAISuggestions
from cardsense.main import app as main_app
from cardsense.main import register_error_handlers
from cardsense.schemas.events import EventType
from cardsense.schemas.profile import FlowType
from cardsense.schemas.recommendation import LatestRecommendation
from cardsense.schemas.spending import CreditScoreEntry, TransactionOut
from cardsense.security.auth import AuthenticatedUser, verify_user

SECURED_IDS = {"idfc-first-wow", "kotak-811-dream-different"}

# ── Helpers ──────────────────────────────────────────────────────────


def _make_app(*, authenticated: bool = True, redis=None) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)
    for module in (beginner, recommend, recommendations, cards, advisor, spending, profile):
        app.include_router(module.router)
    if authenticated:
        app.dependency_overrides[verify_user] = lambda: AuthenticatedUser(id="user-1", email="asha@example.com")
    app.dependency_overrides[get_session] = lambda: AsyncMock()
    app.dependency_overrides[get_redis] = lambda: redis or AsyncMock()
    return app


def _catalog(source: str = "fallback") -> CatalogResult:
    return CatalogResult(cards=fallback_catalog(), source=source)


def _advisor_body(**overrides) -> dict:
    body = {
        "cibilScore": 760,
        "monthlyIncome": 70000,
        "annualIncome": 840000,
        "employmentType": "salaried",
        "primaryBank": "HDFC Bank",
        "city": "Hyderabad",
        "spendingBreakdown": {"dining": 6000, "online_shopping": 4000},
    }
    body.update(overrides)
    return body


def _answers() -> dict[str, str]:
    return {
        "age_band": "25_30",
        "income_profile": "stable_income_above_6l",
        "secured_card_readiness": "unsecured_only",
        "primary_spend_focus": "dining",
        "value_priority": "cashback_everyday",
    }


def _emitted(mock_emit: AsyncMock) -> list[EventType]:
    return [call.args[0].event_type for call in mock_emit.await_args_list]


@pytest.fixture()
def recommend_mocks():
    with ExitStack() as stack:
        mocks = {
            name: stack.enter_context(patch(f"cardsense.api.recommend.{name}", new_callable=AsyncMock))
            for name in (
                "enforce_recommendation_limit",
                "load_catalog_and_history",
                "emit",
                "save_recommendation",
                "save_credit_snapshot",
                "update_profile_fields",
            )
        }
        stack.enter_context(patch.object(settings.llm, "llm_enabled", False))
        mocks["load_catalog_and_history"].return_value = (_catalog(), {})
        mocks["save_recommendation"].return_value = "rec-1"
        yield mocks


@pytest.fixture()
def beginner_mocks():
    with ExitStack() as stack:
        mocks = {
            name: stack.enter_context(patch(f"cardsense.api.beginner.{name}", new_callable=AsyncMock))
            for name in ("enforce_recommendation_limit", "load_catalog_and_history", "emit", "save_recommendation")
        }
        stack.enter_context(patch.object(settings.llm, "llm_enabled", False))
        mocks["load_catalog_and_history"].return_value = (_catalog(), {})
        mocks["save_recommendation"].return_value = "rec-1"
        yield mocks


# ── POST /api/ai/recommend ───────────────────────────────────────────


class TestAdvisorRecommend:
    def test_requires_authentication(self, recommend_mocks):
        client = TestClient(_make_app(authenticated=False))
        response = client.post("/api/ai/recommend", json=_advisor_body())
        assert response.status_code == 401
        recommend_mocks["load_catalog_and_history"].assert_not_awaited()

    def test_invalid_body(self, recommend_mocks):
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body(cibilScore=950))
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["errors"]

    def test_negative_spend_rejected(self, recommend_mocks):
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body(spendingBreakdown={"dining": -5}))
        assert response.status_code == 400

    def test_non_finite_spend_rejected(self, recommend_mocks):
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body(monthlySpending="inf"))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_huge_spend_still_recommends(self, recommend_mocks):
        client = TestClient(_make_app())
        body = _advisor_body(spendingBreakdown={"dining": 1e308, "travel": 1e308}, followUpAnswers=_answers())
        response = client.post("/api/ai/recommend", json=body)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert len(data["cards"]) == 3

    def test_needs_more_info_without_answers(self, recommend_mocks):
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body())
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "needs_more_info"
        assert len(data["questions"]) == 5
        assert [q["id"] for q in data["questions"]][0] == "age_band"
        assert data["metadata"]["model"] == "default_questions"
        assert data["metadata"]["catalogSource"] == "fallback"
        recommend_mocks["save_recommendation"].assert_not_awaited()
        assert _emitted(recommend_mocks["emit"]) == [EventType.ADVISOR_NEEDS_MORE_INFO]

    def test_success_with_answers(self, recommend_mocks):
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body(followUpAnswers=_answers()))
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert len(data["cards"]) == 3
        assert len({card["id"] for card in data["cards"]}) == 3
        assert {"annualFee", "bestCategories", "annualValue"} <= set(data["cards"][0])
        assert data["recommendationId"] == "rec-1"
        assert data["metadata"] == {"model": "rule_based", "catalogSource": "fallback", "fallbackReason": None}
        assert data["analysis"].startswith("Generated recommendations with deterministic matching")

        record = recommend_mocks["save_recommendation"].await_args.args[1]
        assert record.flow == FlowType.ADVISOR
        assert record.user_id == "user-1"
        assert recommend_mocks["save_credit_snapshot"].await_args.args[1:] == ("user-1", 760)
        recommend_mocks["update_profile_fields"].assert_awaited_once()
        assert _emitted(recommend_mocks["emit"]) == [
            EventType.RECOMMENDATION_GENERATED,
            EventType.RECOMMENDATION_PERSISTED,
        ]

    def test_persona_from_questionnaire_echoed(self, recommend_mocks):
        client = TestClient(_make_app())
        body = _advisor_body(followUpAnswers=_answers(), detectedPersona="online_shopper")
        assert client.post("/api/ai/recommend", json=body).json()["persona"] == "online_shopper"

    def test_persona_detected_when_missing(self, recommend_mocks):
        client = TestClient(_make_app())
        body = _advisor_body(employmentType="student", monthlyIncome=0, annualIncome=0)
        assert client.post("/api/ai/recommend", json=body).json()["persona"] == "student_firsttime"

    def test_persistence_failure_still_returns_cards(self, recommend_mocks):
        recommend_mocks["save_recommendation"].return_value = None
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body(followUpAnswers=_answers()))
        assert response.status_code == 200
        assert response.json()["recommendationId"] is None
        assert EventType.RECOMMENDATION_PERSIST_FAILED in _emitted(recommend_mocks["emit"])

    def test_rate_limited(self, recommend_mocks):
        recommend_mocks["enforce_recommendation_limit"].side_effect = RateLimitedError(30)
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body())
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"
        assert response.json()["error"]["code"] == "RATE_LIMITED"
        recommend_mocks["load_catalog_and_history"].assert_not_awaited()

    def test_catalog_unavailable(self, recommend_mocks):
        recommend_mocks["load_catalog_and_history"].side_effect = CatalogUnavailableError(
            "Card catalog is unavailable. Please retry in a moment."
        )
        client = TestClient(_make_app())
        response = client.post("/api/ai/recommend", json=_advisor_body(followUpAnswers=_answers()))
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "CATALOG_UNAVAILABLE"

    def test_llm_failure_falls_back_to_rules(self, recommend_mocks):
        error = LLMError("Model generation failed. qwen: resource_exhausted, retry in 20s")
        with (
            patch.object(settings.llm, "llm_enabled", True),
            patch("cardsense.api.recommend.generate_advisor_result", new_callable=AsyncMock, side_effect=error),
        ):
            client = TestClient(_make_app())
            response = client.post("/api/ai/recommend", json=_advisor_body(followUpAnswers=_answers()))

        data = response.json()
        assert response.status_code == 200
        assert len(data["cards"]) == 3
        assert data["metadata"]["model"] == "rule_based_fallback"
        assert data["metadata"]["fallbackReason"].startswith("AI quota is temporarily exhausted.")
        assert "because AI response was unavailable" in data["analysis"]

    def test_llm_questions_failure_uses_defaults(self, recommend_mocks):
        with (
            patch.object(settings.llm, "llm_enabled", True),
            patch(
                "cardsense.api.recommend.generate_follow_up_questions",
                new_callable=AsyncMock,
                side_effect=LLMError("Model generation failed. qwen: connection refused"),
            ),
        ):
            client = TestClient(_make_app())
            data = client.post("/api/ai/recommend", json=_advisor_body()).json()

        assert data["status"] == "needs_more_info"
        assert len(data["questions"]) == 5
        assert data["metadata"]["model"] == "default_questions"
        assert data["metadata"]["fallbackReason"] == "AI response could not be used. Using rule-based recommendations."


# ── POST /api/ai/beginner ────────────────────────────────────────────


class TestBeginnerRecommend:
    def test_student_gets_three_age_eligible_cards(self, beginner_mocks):
        client = TestClient(_make_app())
        body = {"age": 19, "employmentType": "student", "monthlyIncome": 0, "primarySpendCategories": ["shopping"]}
        response = client.post("/api/ai/beginner", json=body)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["recommendation_id"] == "rec-1"
        assert data["fallback_catalog"] is True
        assert data["fallback_reason"] is None

        items = data["data"]["recommendations"]
        assert {item["cardId"] for item in items} == SECURED_IDS | {"onecard"}
        assert items[0]["cardId"] in SECURED_IDS
        assert data["data"]["application_guide"]["documents_needed"]

        record = beginner_mocks["save_recommendation"].await_args.args[1]
        assert record.flow == FlowType.BEGINNER
        assert record.application_guide is not None

    def test_loose_body_never_rejected(self, beginner_mocks):
        client = TestClient(_make_app())
        response = client.post("/api/ai/beginner", json={"age": "nineteen", "monthlyIncome": [], "extra": {"x": 1}})
        assert response.status_code == 200
        assert len(response.json()["data"]["recommendations"]) == 3

    def test_huge_spend_still_recommends(self, beginner_mocks):
        client = TestClient(_make_app())
        body = {"age": 25, "monthlyIncome": 50000, "spendingBreakdown": {"dining": 1e308, "travel": 1e308}}
        response = client.post("/api/ai/beginner", json=body)
        assert response.status_code == 200
        assert len(response.json()["data"]["recommendations"]) == 3

    def test_non_object_body(self, beginner_mocks):
        client = TestClient(_make_app())
        response = client.post("/api/ai/beginner", json=["not", "an", "object"])
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_primary_catalog_flag(self, beginner_mocks):
        beginner_mocks["load_catalog_and_history"].return_value = (_catalog("primary"), {})
        client = TestClient(_make_app())
        assert client.post("/api/ai/beginner", json={"age": 30}).json()["fallback_catalog"] is False

    def test_llm_suggestions_used(self, beginner_mocks):
        pick = next(card for card in fallback_catalog() if card.id == "onecard")
        ai = BeginnerAISuggestions(
            suggestions=[CardSuggestion(card=pick, score=90, reasoning="Metal card with app-first controls for 18+.")],
            application_guide=DEFAULT_APPLICATION_GUIDE,
            credit_education=DEFAULT_CREDIT_EDUCATION,
            overall_analysis="Start with one app-first card and pay in full.",
            model="qwen-test",
        )
        with (
            patch.object(settings.llm, "llm_enabled", True),
            patch("cardsense.api.beginner.generate_beginner_suggestions", new_callable=AsyncMock, return_value=ai),
        ):
            client = TestClient(_make_app())
            data = client.post("/api/ai/beginner", json={"age": 19, "employmentType": "student"}).json()

        assert data["data"]["recommendations"][0]["cardId"] == "onecard"
        assert data["data"]["recommendations"][0]["score"] == 90
        assert data["data"]["overall_analysis"] == "Start with one app-first card and pay in full."
        assert beginner_mocks["save_recommendation"].await_args.args[1].model == "qwen-test"

    def test_llm_failure_reported(self, beginner_mocks):
        with (
            patch.object(settings.llm, "llm_enabled", True),
            patch(
                "cardsense.api.beginner.generate_beginner_suggestions",
                new_callable=AsyncMock,
                side_effect=LLMError("Model generation failed. qwen: connection refused"),
            ),
        ):
            client = TestClient(_make_app())
            data = client.post("/api/ai/beginner", json={"age": 25, "monthlyIncome": 40000}).json()

        assert data["fallback_reason"] == "AI response could not be used. Using rule-based recommendations."
        assert data["data"]["overall_analysis"].startswith("Used a rule-based recommendation path")
        assert len(data["data"]["recommendations"]) == 3
        assert beginner_mocks["save_recommendation"].await_args.args[1].model == "rule_based_fallback"


# ── /api/recommendations/latest ──────────────────────────────────────


class TestLatestRecommendation:
    def test_get(self):
        latest = LatestRecommendation(id="rec-1", cards=[{"id": "axis-ace"}], analysis="Solid picks.")
        with patch(
            "cardsense.api.recommendations.get_latest_recommendation",
            new_callable=AsyncMock,
            return_value=latest,
        ):
            data = TestClient(_make_app()).get("/api/recommendations/latest").json()
        assert data["recommendation"]["id"] == "rec-1"
        assert data["recommendation"]["cards"] == [{"id": "axis-ace"}]

    def test_get_none(self):
        with patch(
            "cardsense.api.recommendations.get_latest_recommendation",
            new_callable=AsyncMock,
            return_value=None,
        ):
            assert TestClient(_make_app()).get("/api/recommendations/latest").json() == {"recommendation": None}

    def test_delete(self):
        with (
            patch(
                "cardsense.api.recommendations.delete_latest_recommendation",
                new_callable=AsyncMock,
                return_value="rec-1",
            ),
            patch("cardsense.api.recommendations.emit", new_callable=AsyncMock) as mock_emit,
        ):
            data = TestClient(_make_app()).delete("/api/recommendations/latest").json()
        assert data == {"deleted_id": "rec-1"}
        assert _emitted(mock_emit) == [EventType.RECOMMENDATION_DELETED]

    def test_delete_nothing(self):
        with (
            patch(
                "cardsense.api.recommendations.delete_latest_recommendation",
                new_callable=AsyncMock,
                return_value=None,
            ),
            patch("cardsense.api.recommendations.emit", new_callable=AsyncMock) as mock_emit,
        ):
            data = TestClient(_make_app()).delete("/api/recommendations/latest").json()
        assert data == {"deleted_id": None}
        mock_emit.assert_not_awaited()


# ── /api/cards ───────────────────────────────────────────────────────


class TestCards:
    @pytest.fixture(autouse=True)
    def _patched_catalog(self):
        with patch("cardsense.api.cards.fetch_catalog", new_callable=AsyncMock, return_value=_catalog()):
            yield

    def test_list_all(self):
        data = TestClient(_make_app()).get("/api/cards").json()
        assert [card["id"] for card in data] == [card.id for card in fallback_catalog()]

    def test_filter_by_type(self):
        data = TestClient(_make_app()).get("/api/cards", params={"card_type": "secured"}).json()
        assert {card["id"] for card in data} == SECURED_IDS

    def test_filter_by_bank_and_fee(self):
        data = TestClient(_make_app()).get("/api/cards", params={"bank": "axis", "max_annual_fee": 600}).json()
        assert {card["id"] for card in data} == {"axis-ace", "axis-flipkart"}

    def test_filter_by_category_alias(self):
        data = TestClient(_make_app()).get("/api/cards", params={"category": "petrol"}).json()
        assert "hdfc-indian-oil" in {card["id"] for card in data}

    def test_unknown_card_type(self):
        response = TestClient(_make_app()).get("/api/cards", params={"card_type": "platinum"})
        assert response.status_code == 400

    def test_get_card(self):
        data = TestClient(_make_app()).get("/api/cards/axis-ace").json()
        assert data["card_name"] == "Axis Bank ACE Credit Card"
        assert data["capabilities"]["has_cashback"] is True

    def test_get_missing_card(self):
        response = TestClient(_make_app()).get("/api/cards/nope")
        assert response.status_code == 404
        assert response.json()["error"] == {
            "code": "CARD_NOT_FOUND",
            "message": "Card nope not found",
            "details": {"card_id": "nope"},
        }


# ── /api/advisor ─────────────────────────────────────────────────────


class TestAdvisorSession:
    def test_save_fills_persona(self):
        redis = AsyncMock()
        with patch("cardsense.api.advisor.emit", new_callable=AsyncMock) as mock_emit:
            client = TestClient(_make_app(redis=redis))
            response = client.put("/api/advisor/session", json={"employment_type": "student", "current_step": 2})
        assert response.status_code == 200
        assert response.json()["state"]["detected_persona"] == "student_firsttime"
        redis.setex.assert_awaited_once()
        assert redis.setex.await_args.args[0] == "advisor:session:user-1"
        assert _emitted(mock_emit) == [EventType.ADVISOR_SESSION_SAVED]

    def test_get_saved_state(self):
        redis = AsyncMock()
        redis.get = AsyncMock(return_value=AdvisorFormState(current_step=4, city="Pune").model_dump_json())
        data = TestClient(_make_app(redis=redis)).get("/api/advisor/session").json()
        assert data["state"]["current_step"] == 4
        assert data["state"]["city"] == "Pune"

    def test_get_nothing_saved(self):
        redis = AsyncMock()
        redis.get = AsyncMock(return_value=None)
        assert TestClient(_make_app(redis=redis)).get("/api/advisor/session").json() == {"state": None}

    def test_clear(self):
        redis = AsyncMock()
        redis.delete = AsyncMock(return_value=1)
        with patch("cardsense.api.advisor.emit", new_callable=AsyncMock) as mock_emit:
            data = TestClient(_make_app(redis=redis)).delete("/api/advisor/session").json()
        assert data == {"cleared": True}
        assert _emitted(mock_emit) == [EventType.ADVISOR_SESSION_CLEARED]

    def test_get_when_redis_down(self):
        redis = AsyncMock()
        redis.get = AsyncMock(side_effect=RedisError("down"))
        response = TestClient(_make_app(redis=redis)).get("/api/advisor/session")
        assert response.status_code == 200
        assert response.json() == {"state": None}

    def test_save_when_redis_down(self):
        redis = AsyncMock()
        redis.setex = AsyncMock(side_effect=RedisError("down"))
        with patch("cardsense.api.advisor.emit", new_callable=AsyncMock) as mock_emit:
            response = TestClient(_make_app(redis=redis)).put("/api/advisor/session", json={"current_step": 1})
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SESSION_STORE_UNAVAILABLE"
        mock_emit.assert_not_awaited()

    def test_clear_when_redis_down(self):
        redis = AsyncMock()
        redis.delete = AsyncMock(side_effect=RedisError("down"))
        with patch("cardsense.api.advisor.emit", new_callable=AsyncMock) as mock_emit:
            data = TestClient(_make_app(redis=redis)).delete("/api/advisor/session").json()
        assert data == {"cleared": False}
        mock_emit.assert_not_awaited()

    def test_detect_persona(self):
        body = {"primary_goal": "travel_perks", "top_spending_categories": ["travel"]}
        data = TestClient(_make_app()).post("/api/advisor/persona", json=body).json()
        assert data == {"persona": "frequent_traveller"}


# ── /api/spending ────────────────────────────────────────────────────


def _transaction(**overrides) -> TransactionOut:
    data = {
        "id": uuid.UUID("00000000-0000-0000-0000-000000000001"),
        "amount": 1200.0,
        "category": "dining",
        "merchant": "Swiggy",
        "transaction_date": date(2026, 3, 14),
        "source": "manual",
    }
    data.update(overrides)
    return TransactionOut(**data)


class TestSpending:
    def test_list_with_aggregates(self):
        transactions = [
            _transaction(),
            _transaction(id=uuid.uuid4(), amount=800.5, category="groceries"),
            _transaction(id=uuid.uuid4(), amount=300, category="dining"),
        ]
        with patch(
            "cardsense.api.spending.list_transactions", new_callable=AsyncMock, return_value=transactions
        ) as mock_list:
            response = TestClient(_make_app()).get("/api/spending?from=2026-03-01&to=2026-03-31")
        assert response.status_code == 200
        data = response.json()
        assert len(data["transactions"]) == 3
        assert data["aggregates"] == {
            "total": 2300.5,
            "by_category": {"dining": 1500.0, "groceries": 800.5},
            "count": 3,
        }
        assert mock_list.await_args.args[1:] == ("user-1", date(2026, 3, 1), date(2026, 3, 31))

    def test_inverted_range_rejected(self):
        with patch("cardsense.api.spending.list_transactions", new_callable=AsyncMock) as mock_list:
            response = TestClient(_make_app()).get("/api/spending?from=2026-04-01&to=2026-03-01")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        mock_list.assert_not_awaited()

    def test_requires_authentication(self):
        response = TestClient(_make_app(authenticated=False)).get("/api/spending")
        assert response.status_code == 401

    def test_create_normalizes_category(self):
        with (
            patch(
                "cardsense.api.spending.add_transaction",
                new_callable=AsyncMock,
                return_value=_transaction(category="shopping"),
            ) as mock_add,
            patch("cardsense.api.spending.emit", new_callable=AsyncMock) as mock_emit,
        ):
            body = {"amount": 1200, "category": "Online Shopping", "merchant": "  ", "transaction_date": "2026-03-14"}
            response = TestClient(_make_app()).post("/api/spending", json=body)
        assert response.status_code == 201
        assert response.json()["category"] == "shopping"
        entry = mock_add.await_args.args[2]
        assert entry.category == "shopping"
        assert entry.merchant is None
        assert entry.transaction_date == date(2026, 3, 14)
        assert _emitted(mock_emit) == [EventType.SPENDING_TRANSACTION_ADDED]

    @pytest.mark.parametrize("amount", [0, -10, "inf", 1e12])
    def test_create_rejects_bad_amount(self, amount):
        with patch("cardsense.api.spending.add_transaction", new_callable=AsyncMock) as mock_add:
            response = TestClient(_make_app()).post("/api/spending", json={"amount": amount, "category": "fuel"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        mock_add.assert_not_awaited()

    def test_delete(self):
        transaction_id = "00000000-0000-0000-0000-000000000001"
        with (
            patch("cardsense.api.spending.delete_transaction", new_callable=AsyncMock, return_value=True) as mock_del,
            patch("cardsense.api.spending.emit", new_callable=AsyncMock) as mock_emit,
        ):
            response = TestClient(_make_app()).delete(f"/api/spending/{transaction_id}")
        assert response.json() == {"deleted": True}
        assert mock_del.await_args.args[1:] == ("user-1", uuid.UUID(transaction_id))
        assert _emitted(mock_emit) == [EventType.SPENDING_TRANSACTION_DELETED]

    def test_delete_missing(self):
        with (
            patch("cardsense.api.spending.delete_transaction", new_callable=AsyncMock, return_value=False),
            patch("cardsense.api.spending.emit", new_callable=AsyncMock) as mock_emit,
        ):
            response = TestClient(_make_app()).delete(f"/api/spending/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TRANSACTION_NOT_FOUND"
        mock_emit.assert_not_awaited()

    def test_delete_malformed_id(self):
        response = TestClient(_make_app()).delete("/api/spending/not-a-uuid")
        assert response.status_code == 400


# ── /api/profile ─────────────────────────────────────────────────────


class TestCreditScoreHistory:
    def test_history(self):
        entries = [
            CreditScoreEntry(credit_score=760, score_date=date(2026, 3, 1)),
            CreditScoreEntry(credit_score=741, score_date=date(2025, 12, 1), score_source="cibil"),
        ]
        with patch(
            "cardsense.api.profile.get_credit_score_history", new_callable=AsyncMock, return_value=entries
        ) as mock_history:
            data = TestClient(_make_app()).get("/api/profile/credit-score-history?limit=10").json()
        assert [entry["credit_score"] for entry in data["history"]] == [760, 741]
        assert data["history"][0]["score_date"] == "2026-03-01"
        assert mock_history.await_args.kwargs["limit"] == 10

    def test_requires_authentication(self):
        response = TestClient(_make_app(authenticated=False)).get("/api/profile/credit-score-history")
        assert response.status_code == 401


# ── Shared request inputs ────────────────────────────────────────────


class TestLoadCatalogAndHistory:
    def _factory(self):
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=AsyncMock())
        factory.return_value.__aexit__ = AsyncMock(return_value=False)
        return factory

    @pytest.mark.asyncio()
    async def test_fallback_emits_event(self):
        with (
            patch("cardsense.api.context.async_session_factory", self._factory()),
            patch("cardsense.api.context.fetch_catalog", new_callable=AsyncMock, return_value=_catalog()) as mock_fetch,
            patch(
                "cardsense.api.context.category_totals",
                new_callable=AsyncMock,
                return_value={"dining": 4200.0},
            ),
            patch("cardsense.api.context.emit", new_callable=AsyncMock) as mock_emit,
        ):
            catalog, history = await load_catalog_and_history("user-1", limit=100, min_count=3)

        assert catalog.used_fallback
        assert history == {"dining": 4200.0}
        assert mock_fetch.await_args.kwargs["min_count"] == 3
        assert _emitted(mock_emit) == [EventType.CATALOG_FALLBACK_USED]

    @pytest.mark.asyncio()
    async def test_primary_catalog_is_quiet(self):
        with (
            patch("cardsense.api.context.async_session_factory", self._factory()),
            patch("cardsense.api.context.fetch_catalog", new_callable=AsyncMock, return_value=_catalog("primary")),
            patch("cardsense.api.context.category_totals", new_callable=AsyncMock, return_value={}),
            patch("cardsense.api.context.emit", new_callable=AsyncMock) as mock_emit,
        ):
            catalog, _ = await load_catalog_and_history("user-1", limit=100)

        assert catalog.source == "primary"
        mock_emit.assert_not_awaited()


def test_health():
    data = TestClient(main_app).get("/health").json()
    assert data["status"] == "ok"
    assert data["version"]
