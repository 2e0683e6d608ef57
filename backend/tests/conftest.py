"""Shared fixtures: SQLite databases, in-memory Redis, fake content AI, controllable clocks."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.database import Base, utcnow
from app.models.social import TravelPost
from app.services.collaboration_service import CollaborationService
from app.services.content_ai_service import Enrichment, ModerationResult
from app.services.notification_service import NotificationService
from app.services.post_service import PostService
from app.services.social_graph_service import SocialGraphService

START = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    """Datetime clock that only moves when a test says so."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class TickClock:
    """Epoch-seconds clock for TTL caches."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeContentAI:
    """Stands in for the LLM-backed moderation/enrichment/suggestion collaborator."""

    def __init__(self):
        self.moderation = ModerationResult()
        self.enrichment = Enrichment(sentiment="positive", topics=["beaches", "food"], readability_score=8, engagement_prediction=7)
        self.suggestions: dict | None = {
            "activities": ["Sunrise hike"],
            "accommodation": ["Harbor hostel"],
            "itinerary": ["Day 1: old town"],
            "dining": ["Night market"],
            "transportation": ["Rent scooters"],
        }
        self.moderated: list[str] = []
        self.suggestion_calls = 0

    async def moderate(self, text: str) -> ModerationResult:
        self.moderated.append(text)
        return self.moderation

    async def enrich(self, text: str, destination: str) -> Enrichment:
        return self.enrichment

    async def suggest_itinerary(self, trip_context: dict) -> dict | None:
        self.suggestion_calls += 1
        return self.suggestions


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on separate connections to one SQLite file, for interleaved writers."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tripcircle.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis_client():
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def clock():
    return MutableClock(utcnow().replace(microsecond=0))


@pytest.fixture
def content_ai():
    return FakeContentAI()


@pytest.fixture
def graph():
    return SocialGraphService()


@pytest.fixture
def coordinator(content_ai, graph, clock):
    return CollaborationService(content_ai, NotificationService(), graph, clock=clock)


@pytest.fixture
def posts(content_ai, graph):
    return PostService(content_ai, graph)


@pytest.fixture
def make_profile(db, graph):
    async def _make(user_id: str, **fields):
        profile = await graph.get_or_create_profile(db, user_id)
        for name, value in fields.items():
            setattr(profile, name, value)
        await db.commit()
        return profile
    return _make


@pytest.fixture
def make_post(db):
    async def _make(user_id: str, destination: str = "Lisbon", **fields):
        fields.setdefault("content", f"Loved {destination}")
        post = TravelPost(user_id=user_id, destination_name=destination, **fields)
        db.add(post)
        await db.commit()
        return post
    return _make
