"""Tests for the optional LLM layer: output parsing, the Ollama client, prompts and suggestions."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic import ValidationError

from cardsense.catalog.fallback import fallback_catalog
from cardsense.config import settings
from cardsense.engine.profile import normalize_advisor, normalize_beginner
from cardsense.engine.questions import DEFAULT_QUESTIONS, REQUIRED_FOLLOW_UP_IDS
from cardsense.engine.scoring import resolve_preferences
from cardsense.llm.client import LLMError, OllamaClient
from cardsense.llm.parsing import (
    ModelOutputError,
    is_quota_error,
    parse_model_json,
    parse_retry_seconds,
    safe_fallback_reason,
)
from cardsense.llm.prompts import (
    ADVISOR_CATALOG_CONTEXT_LIMIT,
    build_beginner_prompt,
    build_questions_prompt,
    build_recommendation_prompt,
    format_inr_compact,
)
from cardsense.llm.suggestions import (
    DEFAULT_OVERALL_ANALYSIS,
    AIQuestionSet,
    AIRecommendationReply,
    generate_advisor_result,
    generate_beginner_suggestions,
    generate_follow_up_questions,
    parse_beginner_reply,
    resolve_card,
)
from cardsense.schemas.profile import RecommendationInput

# ── Helpers ──────────────────────────────────────────────────────────

CHAT_URL = "http://ollama.test/api/chat"


def _chat_response(content: str) -> httpx.Response:
    return httpx.Response(
        200,
        request=httpx.Request("POST", CHAT_URL),
        json={"message": {"role": "assistant", "content": content}, "prompt_eval_count": 40, "eval_count": 12},
    )


def _quota_response(seconds: int = 20) -> httpx.Response:
    return httpx.Response(
        429,
        request=httpx.Request("POST", CHAT_URL),
        text=json.dumps({"error": f"too many requests, retry in {seconds}s"}),
    )


def _make_client(*responses) -> OllamaClient:
    client = OllamaClient()
    client._client.post = AsyncMock(side_effect=list(responses))
    return client


def _fake_llm(data):
    """Client stand-in whose generate_json runs the real validator on `data`."""
    client = MagicMock()
    client.generate_json = AsyncMock(side_effect=lambda system, prompt, validate: (validate(data), "qwen-test"))
    return client


def _make_input(**overrides) -> RecommendationInput:
    data = {
        "cibil_score": 760,
        "monthly_income": 70000,
        "annual_income": 840000,
        "employment_type": "salaried",
        "primary_bank": "HDFC Bank",
        "city": "Hyderabad",
        "spending_breakdown": {"dining": 6000, "online_shopping": 4000, "fuel": 2000},
        "follow_up_answers": {
            "age_band": "25_30",
            "income_profile": "stable_income_above_6l",
            "secured_card_readiness": "unsecured_only",
            "primary_spend_focus": "dining",
            "value_priority": "cashback_everyday",
        },
    }
    data.update(overrides)
    return RecommendationInput(**data)


def _question_dicts() -> list[dict]:
    return [question.model_dump() for question in DEFAULT_QUESTIONS]


# ── Parsing ──────────────────────────────────────────────────────────


class TestParseModelJson:
    def test_plain(self):
        assert parse_model_json('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert parse_model_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self):
        assert parse_model_json('Here you go: {"a": {"b": 2}} Hope this helps!') == {"a": {"b": 2}}

    def test_empty(self):
        with pytest.raises(ModelOutputError, match="empty response"):
            parse_model_json("   ")

    def test_no_object(self):
        with pytest.raises(ModelOutputError):
            parse_model_json("I cannot help with that.")

    def test_malformed_object(self):
        with pytest.raises(ModelOutputError, match="malformed"):
            parse_model_json("result: {not json}")


class TestQuotaClassification:
    @pytest.mark.parametrize(
        "message",
        ["RESOURCE_EXHAUSTED", "Quota exceeded for model", '{"code": 429}', "429 Too Many Requests"],
    )
    def test_quota_messages(self, message):
        assert is_quota_error(message) is True

    def test_other_message(self):
        assert is_quota_error("connection refused") is False

    def test_retry_in_hint_rounds_up(self):
        assert parse_retry_seconds("Please retry in 12.3s.") == 13

    def test_retry_delay_field(self):
        assert parse_retry_seconds('{"retryDelay": "30s"}') == 30

    def test_default(self):
        assert parse_retry_seconds("quota exceeded") == 45
        assert parse_retry_seconds("quota exceeded", default=10) == 10


class TestSafeFallbackReason:
    def test_quota(self):
        reason = safe_fallback_reason(RuntimeError("resource_exhausted, retry in 12.3s"))
        assert reason.startswith("AI quota is temporarily exhausted.")
        assert reason.endswith("retry after about 13s.")

    def test_configuration(self):
        assert safe_fallback_reason(RuntimeError("Invalid API key")) == (
            "AI configuration issue detected. Using rule-based recommendations."
        )

    def test_generic_hides_details(self):
        reason = safe_fallback_reason(RuntimeError("stack trace with secrets"))
        assert reason == "AI response could not be used. Using rule-based recommendations."

    def test_none(self):
        assert safe_fallback_reason(None).startswith("AI response could not be used.")


# ── OllamaClient ─────────────────────────────────────────────────────


class TestModelCandidates:
    def test_primary_only_by_default(self):
        with patch.object(settings.llm, "recommendation_fallback_model", ""):
            assert OllamaClient.model_candidates() == [settings.llm.recommendation_model]

    def test_fallback_deduplicated(self):
        with patch.object(settings.llm, "recommendation_fallback_model", settings.llm.recommendation_model):
            assert OllamaClient.model_candidates() == [settings.llm.recommendation_model]

    def test_fallback_appended(self):
        with patch.object(settings.llm, "recommendation_fallback_model", "llama3.2:3b"):
            assert OllamaClient.model_candidates()[-1] == "llama3.2:3b"


class TestGenerateJson:
    @pytest.mark.asyncio()
    async def test_returns_validated_value_and_model(self):
        client = _make_client(_chat_response('{"answer": 7}'))
        with (
            patch("cardsense.llm.client.emit", new_callable=AsyncMock) as mock_emit,
            patch.object(settings.llm, "recommendation_fallback_model", ""),
        ):
            value, model = await client.generate_json("system", "prompt", lambda data: data["answer"])

        assert value == 7
        assert model == settings.llm.recommendation_model
        body = client._client.post.await_args.kwargs["json"]
        assert body["think"] is False
        assert body["format"] == "json"
        assert body["messages"][0] == {"role": "system", "content": "system"}
        assert mock_emit.await_count == 2

    @pytest.mark.asyncio()
    async def test_bad_output_tries_fallback_model(self):
        client = _make_client(_chat_response("not json at all"), _chat_response('{"answer": 3}'))
        with (
            patch("cardsense.llm.client.emit", new_callable=AsyncMock),
            patch.object(settings.llm, "recommendation_fallback_model", "llama3.2:3b"),
        ):
            value, model = await client.generate_json("system", "prompt", lambda data: data["answer"])

        assert (value, model) == (3, "llama3.2:3b")
        assert client._client.post.await_count == 2

    @pytest.mark.asyncio()
    async def test_validation_failure_everywhere(self):
        client = _make_client(_chat_response('{"other": 1}'))
        with (
            patch("cardsense.llm.client.emit", new_callable=AsyncMock),
            patch.object(settings.llm, "recommendation_fallback_model", ""),
            pytest.raises(LLMError, match="Model generation failed"),
        ):
            await client.generate_json("system", "prompt", lambda data: data["answer"])

    @pytest.mark.asyncio()
    async def test_quota_starts_cooldown_and_stops(self):
        client = _make_client(_quota_response(20), _chat_response('{"answer": 1}'))
        with (
            patch("cardsense.llm.client.emit", new_callable=AsyncMock),
            patch.object(settings.llm, "recommendation_fallback_model", "llama3.2:3b"),
        ):
            with pytest.raises(LLMError) as exc_info:
                await client.generate_json("system", "prompt", lambda data: data)
            assert "resource_exhausted, retry in 20s" in str(exc_info.value)
            assert client._client.post.await_count == 1
            assert 0 < client.cooldown_remaining() <= 20

            with pytest.raises(LLMError, match="cooldown active"):
                await client.generate_json("system", "prompt", lambda data: data)
            assert client._client.post.await_count == 1

        assert safe_fallback_reason(exc_info.value).startswith("AI quota is temporarily exhausted.")

    @pytest.mark.asyncio()
    async def test_timeout_reported(self):
        client = _make_client(httpx.ReadTimeout("timed out"))
        with (
            patch("cardsense.llm.client.emit", new_callable=AsyncMock) as mock_emit,
            patch.object(settings.llm, "recommendation_fallback_model", ""),
            pytest.raises(LLMError, match="timed out"),
        ):
            await client.generate_json("system", "prompt", lambda data: data)
        assert mock_emit.await_args.args[0].data["error"] == "timeout"

    def test_reset_cooldown(self):
        client = OllamaClient()
        client.start_cooldown(30)
        assert client.cooldown_remaining() > 0
        client.reset_cooldown()
        assert client.cooldown_remaining() == 0


# ── Prompts ──────────────────────────────────────────────────────────


class TestPrompts:
    def test_compact_amounts(self):
        assert format_inr_compact(12_500_000) == "1.25 Cr"
        assert format_inr_compact(150_000) == "1.50 L"
        assert format_inr_compact(99_999) == "99,999"

    def test_beginner_prompt_lists_pool(self):
        profile = normalize_beginner({"age": 20, "monthlyIncome": 15000})
        prompt = build_beginner_prompt(profile, fallback_catalog()[:2])
        assert prompt.startswith("User Profile:")
        assert "Available Cards:" in prompt
        assert '"id": "hdfc-millennia"' in prompt
        assert '"monthlyIncome": "INR 15,000"' in prompt

    def test_questions_prompt_has_top_categories(self):
        prompt = build_questions_prompt(_make_input())
        snapshot = json.loads(prompt.split(":\n", 1)[1])
        assert snapshot["topSpendingCategories"] == ["dining", "shopping", "fuel"]

    def test_recommendation_prompt_caps_catalog(self):
        catalog = list(fallback_catalog()) * 6
        prompt = build_recommendation_prompt(_make_input(), catalog)
        profile_part, catalog_part = prompt.split("\n\n")
        assert len(json.loads(catalog_part.split(":\n", 1)[1])) == ADVISOR_CATALOG_CONTEXT_LIMIT
        assert "detectedPersona" not in json.loads(profile_part.split(":\n", 1)[1])


# ── Suggestions ──────────────────────────────────────────────────────


class TestResolveCard:
    def test_by_id(self):
        assert resolve_card(fallback_catalog(), card_id="axis-ace").id == "axis-ace"

    def test_exact_name_case_insensitive(self):
        assert resolve_card(fallback_catalog(), name="  swiggy hdfc BANK credit card").id == "hdfc-swiggy"

    def test_partial_name(self):
        assert resolve_card(fallback_catalog(), name="Millennia").id == "hdfc-millennia"

    def test_unknown(self):
        assert resolve_card(fallback_catalog(), name="Imaginary Platinum Card") is None
        assert resolve_card(fallback_catalog()) is None


class TestFollowUpQuestions:
    def test_question_set_accepts_defaults(self):
        assert len(AIQuestionSet.model_validate({"questions": _question_dicts()}).questions) == 5

    def test_rejects_four_questions(self):
        with pytest.raises(ValidationError):
            AIQuestionSet.model_validate({"questions": _question_dicts()[:4]})

    def test_rejects_duplicate_ids(self):
        questions = _question_dicts()
        questions[4]["id"] = questions[0]["id"]
        with pytest.raises(ValidationError):
            AIQuestionSet.model_validate({"questions": questions})

    def test_rejects_missing_required_id(self):
        questions = _question_dicts()
        questions[4]["id"] = "favourite_colour"
        with pytest.raises(ValidationError):
            AIQuestionSet.model_validate({"questions": questions})

    @pytest.mark.asyncio()
    async def test_generate(self):
        questions, model = await generate_follow_up_questions(
            _fake_llm({"questions": _question_dicts()}), _make_input()
        )
        assert [q.id for q in questions] == list(REQUIRED_FOLLOW_UP_IDS)
        assert model == "qwen-test"


class TestAdvisorSuggestions:
    def test_reply_needs_three_cards(self):
        card = {"cardName": "Axis Bank ACE", "bank": "Axis Bank", "score": 80, "reason": "Cashback on bill payments."}
        with pytest.raises(ValidationError):
            AIRecommendationReply.model_validate({"analysis": "Short list for bill payers.", "cards": [card, card]})

    @pytest.mark.asyncio()
    async def test_anchors_to_catalog_and_backfills(self):
        reply = {
            "analysis": "Dining-heavy profile with strong income; cashback cards lead.",
            "cards": [
                {
                    "cardName": "Swiggy HDFC Bank Credit Card",
                    "bank": "HDFC Bank",
                    "score": 91,
                    "reason": "Ten percent back on Swiggy orders fits your dining spend.",
                    "keyPerks": ["10% cashback on Swiggy"],
                },
                {"cardName": "Imaginary Platinum Card", "bank": "Nowhere Bank", "score": 99, "reason": "Made up card."},
                {
                    "cardName": "Swiggy HDFC Bank Credit Card",
                    "bank": "HDFC Bank",
                    "score": 90,
                    "reason": "Listed twice by the model.",
                },
            ],
        }
        payload = _make_input()
        profile = normalize_advisor(payload)
        result = await generate_advisor_result(
            _fake_llm(reply), payload, profile, resolve_preferences(profile), fallback_catalog(), count=3
        )

        ids = [card.id for card in result.cards]
        assert ids[0] == "hdfc-swiggy"
        assert len(ids) == 3
        assert len(set(ids)) == 3
        assert result.cards[0].score == 91
        assert result.cards[0].pros[0] == "10% cashback on Swiggy"
        assert "rounds out your shortlist" in result.cards[1].reason
        assert result.model == "qwen-test"
        assert result.analysis == reply["analysis"]

    @pytest.mark.asyncio()
    async def test_owned_cards_dropped(self):
        owned = "HDFC Millennia Credit Card"
        reply = {
            "analysis": "Balanced picks for online shopping and dining.",
            "cards": [
                {"cardName": owned, "bank": "HDFC Bank", "score": 90, "reason": "Five percent on partner merchants."},
                {"cardName": "Axis Bank ACE Credit Card", "bank": "Axis", "score": 85, "reason": "Cashback on bills."},
                {"cardName": "SBI Cashback Credit Card", "bank": "SBI", "score": 84, "reason": "Flat online cashback."},
            ],
        }
        payload = _make_input(existing_cards=[owned])
        profile = normalize_advisor(payload)
        result = await generate_advisor_result(
            _fake_llm(reply), payload, profile, resolve_preferences(profile), fallback_catalog(), count=3
        )
        assert "hdfc-millennia" not in [card.id for card in result.cards]
        assert [card.id for card in result.cards][:2] == ["axis-ace", "sbi-cashback"]


class TestBeginnerSuggestions:
    def test_parse_resolves_and_defaults(self):
        data = {
            "recommendations": [
                {"cardId": "idfc-first-wow", "score": 88, "reasoning": "FD-backed, so approval does not need income."},
                {"cardName": "kotak 811", "score": "n/a", "reason": "Low FD minimum."},
                {"cardName": "Unknown"},
            ],
            "application_guide": {"steps": ["Open an FD with the issuing bank"]},
            "overall_analysis": "",
        }
        parsed = parse_beginner_reply(data, fallback_catalog())
        suggestions = parsed["suggestions"]
        assert [s.card.id for s in suggestions] == ["idfc-first-wow", "kotak-811-dream-different"]
        assert suggestions[0].score == 88
        assert suggestions[1].score is None
        assert suggestions[1].reasoning == "Low FD minimum."
        assert parsed["application_guide"].steps == ["Open an FD with the issuing bank"]
        assert parsed["application_guide"].documents_needed
        assert parsed["credit_education"].topics
        assert parsed["overall_analysis"] == DEFAULT_OVERALL_ANALYSIS

    def test_parse_requires_list(self):
        with pytest.raises(ValueError, match="no recommendations list"):
            parse_beginner_reply({"recommendations": "none"}, fallback_catalog())

    def test_parse_requires_a_catalog_match(self):
        with pytest.raises(ValueError, match="matched the catalog"):
            parse_beginner_reply({"recommendations": [{"cardName": "Unknown"}]}, fallback_catalog())

    @pytest.mark.asyncio()
    async def test_generate(self):
        data = {
            "recommendations": [{"cardId": "onecard", "score": 80, "reasoning": "App-first card with 18+ access."}],
            "overall_analysis": "Start small and pay in full.",
        }
        profile = normalize_beginner({"age": 19, "employmentType": "student"})
        suggestions = await generate_beginner_suggestions(_fake_llm(data), profile, fallback_catalog())
        assert suggestions.model == "qwen-test"
        assert suggestions.suggestions[0].card.id == "onecard"
        assert suggestions.overall_analysis == "Start small and pay in full."
