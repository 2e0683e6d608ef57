"""Tests for LLM-backed moderation, enrichment and itinerary suggestions."""

import pytest

from app.services.content_ai_service import ContentAIService
from app.services.llm_client import LLMClient


class StubLLM:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    async def complete_json(self, system, user, **kwargs):
        if self.error:
            raise self.error
        return self.response


class TestModeration:

    async def test_reject_verdict(self):
        ai = ContentAIService(StubLLM({"score": 0.1, "flags": ["spam"], "action": "reject"}))
        result = await ai.moderate("cheap pills")
        assert result.rejected
        assert result.flags == ["spam"]

    async def test_unknown_action_goes_to_review(self):
        ai = ContentAIService(StubLLM({"score": 2.5, "action": "escalate"}))
        result = await ai.moderate("hmm")
        assert result.action == "review"
        assert result.score == 1.0

    async def test_provider_failure_approves(self):
        ai = ContentAIService(StubLLM(error=RuntimeError("down")))
        result = await ai.moderate("hello")
        assert result.action == "approve" and not result.rejected


class TestEnrichment:

    async def test_topics_capped_at_five(self):
        ai = ContentAIService(StubLLM({
            "sentiment": "negative", "topics": ["a", "b", "c", "d", "e", "f"],
            "readabilityScore": 4, "engagementPrediction": 3,
        }))
        result = await ai.enrich("rainy week", "Bergen")
        assert result.sentiment == "negative"
        assert result.topics == ["a", "b", "c", "d", "e"]

    async def test_malformed_output_uses_defaults(self):
        ai = ContentAIService(StubLLM({"readabilityScore": "very"}))
        result = await ai.enrich("text", "Bergen")
        assert result.topics == ["travel"]
        assert result.readability_score == 7


class TestSuggestions:

    async def test_fields_normalized(self):
        ai = ContentAIService(StubLLM({"activities": ["Kayak"], "dining": "not a list"}))
        result = await ai.suggest_itinerary({"destination": "Bergen", "tags": ["fjords"]})
        assert result == {
            "activities": ["Kayak"], "accommodation": [], "itinerary": [], "dining": [], "transportation": [],
        }

    async def test_failure_returns_none(self):
        ai = ContentAIService(StubLLM(error=TimeoutError()))
        assert await ai.suggest_itinerary({"destination": "Bergen"}) is None


class TestLLMClient:

    async def test_no_provider_configured(self):
        client = LLMClient()
        with pytest.raises(RuntimeError, match="no provider configured"):
            await client.complete("system", "user")

    async def test_json_strips_code_fences(self, monkeypatch):
        client = LLMClient()

        async def fenced(*args, **kwargs):
            return '```json\n{"action": "approve"}\n```'

        monkeypatch.setattr(client, "complete", fenced)
        assert await client.complete_json("system", "user") == {"action": "approve"}

    async def test_json_must_be_object(self, monkeypatch):
        client = LLMClient()

        async def listy(*args, **kwargs):
            return "[1, 2]"

        monkeypatch.setattr(client, "complete", listy)
        with pytest.raises(ValueError):
            await client.complete_json("system", "user")
