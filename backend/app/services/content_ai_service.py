"""Content AI service — moderation, post enrichment, and group-trip itinerary suggestions.

All three are advisory collaborators: on provider failure, timeout, or malformed
output each returns a fixed default instead of raising.
"""

import logging
from dataclasses import dataclass, field

from app.services.llm_client import LLMClient, llm_client

logger = logging.getLogger(__name__)

MODERATION_PROMPT = """You review user-generated content for a travel community.
Check for inappropriate language, spam or promotional content, harassment, and misinformation.

Respond ONLY with JSON:
{"score": 0.0-1.0, "flags": ["issue", ...], "action": "approve" | "review" | "reject"}
score: 1 = fully appropriate, 0 = inappropriate."""

ENRICHMENT_PROMPT = """You analyze travel posts.
Return sentiment (positive/neutral/negative), up to 5 key topics, readability (1-10),
and predicted engagement (1-10).

Respond ONLY with JSON:
{"sentiment": "positive", "topics": ["adventure", "culture"], "readabilityScore": 8, "engagementPrediction": 7}"""

SUGGESTION_PROMPT = """You plan group trips. Given the trip context, suggest 5 must-see activities,
3 accommodations, a day-by-day itinerary (max 7 days), local dining, and transportation tips.

Respond ONLY with JSON:
{"activities": [], "accommodation": [], "itinerary": [], "dining": [], "transportation": []}"""

MODERATION_ACTIONS = ("approve", "review", "reject")
SUGGESTION_FIELDS = ("activities", "accommodation", "itinerary", "dining", "transportation")


@dataclass
class ModerationResult:
    score: float = 0.8
    flags: list[str] = field(default_factory=lambda: ["appropriate"])
    action: str = "approve"

    @property
    def rejected(self) -> bool:
        return self.action == "reject"


@dataclass
class Enrichment:
    sentiment: str = "positive"
    topics: list[str] = field(default_factory=lambda: ["travel"])
    readability_score: float = 7
    engagement_prediction: float = 6


def _str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


class ContentAIService:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def moderate(self, text: str) -> ModerationResult:
        """Moderate a comment or discussion message. Defaults to approve when unavailable."""
        try:
            data = await self.llm.complete_json(
                MODERATION_PROMPT, f'Content: "{text}"', max_tokens=300, temperature=0.1
            )
            action = str(data.get("action", "approve")).lower()
            if action not in MODERATION_ACTIONS:
                action = "review"
            score = min(1.0, max(0.0, float(data.get("score", 0.8))))
            return ModerationResult(score=score, flags=_str_list(data.get("flags")), action=action)
        except Exception as e:
            logger.warning(f"Moderation unavailable, approving by default: {e!r}")
            return ModerationResult()

    async def enrich(self, text: str, destination: str) -> Enrichment:
        """Sentiment/topic enrichment attached to a new post."""
        try:
            data = await self.llm.complete_json(
                ENRICHMENT_PROMPT,
                f'Content: "{text}"\nDestination: "{destination}"',
                max_tokens=500,
                temperature=0.3,
            )
            topics = _str_list(data.get("topics"))[:5]
            return Enrichment(
                sentiment=str(data.get("sentiment", "neutral")),
                topics=topics or ["travel"],
                readability_score=float(data.get("readabilityScore", 7)),
                engagement_prediction=float(data.get("engagementPrediction", 6)),
            )
        except Exception as e:
            logger.warning(f"Post enrichment failed, using defaults: {e!r}")
            return Enrichment()

    async def suggest_itinerary(self, trip_context: dict) -> dict[str, list[str]] | None:
        """Non-binding itinerary suggestions for a group trip, or None when unavailable."""
        lines = [
            f"Destination: {trip_context.get('destination')}",
            f"Dates: {trip_context.get('start_date')} to {trip_context.get('end_date')}",
            f"Budget: {trip_context.get('budget_min')} - {trip_context.get('budget_max')} {trip_context.get('currency')}",
            f"Group size: {trip_context.get('capacity_min')} - {trip_context.get('capacity_max')} people",
            f"Tags: {', '.join(trip_context.get('tags') or [])}",
        ]
        try:
            data = await self.llm.complete_json(
                SUGGESTION_PROMPT, "\n".join(lines), max_tokens=1500, temperature=0.7
            )
        except Exception as e:
            logger.error(f"Itinerary suggestions failed: {e!r}")
            return None
        return {name: _str_list(data.get(name)) for name in SUGGESTION_FIELDS}


content_ai_service = ContentAIService(llm_client)
