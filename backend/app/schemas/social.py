import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


# ─── Profiles & posts ───

class ProfileUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=64)
    full_name: str | None = None
    bio: str | None = Field(default=None, max_length=500)
    avatar: str | None = None
    age: int | None = Field(default=None, ge=13, le=120)
    city: str | None = None
    country: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    travel_style: list[str] | None = None
    interests: list[str] | None = None
    languages: list[str] | None = None
    profile_visibility: str | None = None
    post_visibility: str | None = None


class PostCreate(BaseModel):
    destination: str
    country: str | None = None
    city: str | None = None
    coordinates: Coordinates | None = None
    content: str = Field(max_length=2000)
    images: list[str] = []
    videos: list[str] = []
    duration: str | None = None
    budget: Decimal | None = None
    travel_type: str = "solo"
    rating: int = Field(default=5, ge=1, le=5)
    season: str | None = None
    accommodation: str | None = None
    transportation: str | None = None
    tags: list[str] = []
    privacy: str = "public"


class CommentCreate(BaseModel):
    content: str = Field(max_length=500)
    parent_comment_id: uuid.UUID | None = None


class GroupCreate(BaseModel):
    name: str
    description: str
    category: str | None = None
    cover: str | None = None
    privacy: str = "public"
    post_approval: bool = False
    member_approval: bool = False
    tags: list[str] = []
    location: str | None = None


# ─── Group trips ───

class TripDestination(BaseModel):
    name: str
    country: str | None = None
    coordinates: Coordinates | None = None


class TripDates(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    flexible: bool = False


class TripBudget(BaseModel):
    min: Decimal | None = Field(default=None, ge=0)
    max: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    shared: bool = False


class TripCapacity(BaseModel):
    min: int = Field(default=2, ge=1)
    max: int = Field(default=10, ge=1)


class AgeRange(BaseModel):
    min: int | None = None
    max: int | None = None


class TripRequirements(BaseModel):
    age_range: AgeRange | None = None
    experience: str = "any"
    languages: list[str] = []


class GroupTripCreate(BaseModel):
    title: str
    description: str | None = None
    destination: TripDestination
    dates: TripDates = TripDates()
    budget: TripBudget = TripBudget()
    capacity: TripCapacity = TripCapacity()
    requirements: TripRequirements = TripRequirements()
    privacy: str = "public"
    tags: list[str] = []


class JoinTripRequest(BaseModel):
    preferences: dict = {}


class JoinDecision(BaseModel):
    user_id: str
    accept: bool


class PollCreate(BaseModel):
    question: str
    options: list[str]
    deadline: datetime | None = None


class VoteRequest(BaseModel):
    option: str


class DiscussionCreate(BaseModel):
    message: str = Field(max_length=2000)


class PhaseUpdate(BaseModel):
    phase: str


class ExpenseCreate(BaseModel):
    description: str
    amount: Decimal
    split_between: list[str] | None = None
