from __future__ import annotations

import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PlaceType = Literal["attraction", "restaurant", "bar", "club", "experience", "view", "zone"]
ProductType = Literal[
    "guided_tour",
    "tasting",
    "workshop",
    "dining_experience",
    "transport",
    "photo_experience",
    "ticket",
]
TimeBucket = Literal["morning", "lunch", "afternoon", "aperitivo", "dinner", "evening", "night"]
SlotType = Literal["activity", "meal", "break", "transfer"]

# HH:MM, single-digit hours tolerated ("9:30")
TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"


class CamelModel(BaseModel):
    """Base for models exchanged with the web client (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ------- Request models -------
class Travelers(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    adults: int = Field(2, ge=0)
    children: int = Field(0, ge=0)
    seniors: int = Field(0, ge=0)

    @property
    def total(self) -> int:
        return self.adults + self.children + self.seniors


class Accommodation(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    zone: str


class TripPreferences(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore"
    )

    city: str = Field(..., min_length=1)
    nearby_areas: bool = False
    num_days: int = Field(2, ge=1, le=14)
    travelers: Travelers = Travelers()
    travel_with: Literal["solo", "couple", "family", "friends"] = "couple"
    interests: List[str] = Field(default_factory=list)
    top_interests: List[str] = Field(default_factory=list)
    rhythm: int = Field(3, ge=1, le=5)
    start_time: Literal["early", "normal", "late"] = "normal"
    lunch_style: Literal["long", "quick"] = "long"
    cuisine_preferences: List[str] = Field(default_factory=list)
    budget: int = Field(2, ge=1, le=3)
    dietary_restrictions: List[str] = Field(default_factory=list)
    activity_style: Literal["highlights", "maximize"] = "highlights"
    guided_tours: bool = False
    walking_tolerance: Literal["low", "medium", "high"] = "medium"
    accommodation: Optional[Accommodation] = None
    transport: Literal["walking", "car", "public", "taxi"] = "walking"
    constraints: List[str] = Field(default_factory=list)
    wishes: str = ""
    avoid: List[str] = Field(default_factory=list)


# ------- Catalog records (backend rows) -------
class _CatalogRow(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_lists(cls, value: Any, info) -> Any:
        # Postgres array columns come back as null when unset.
        field = cls.model_fields.get(info.field_name)
        if value is None and field is not None and field.default_factory is list:
            return []
        return value


class CityRecord(_CatalogRow):
    id: str
    slug: str = ""
    name: str
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class CatalogPlace(_CatalogRow):
    id: str
    name: str
    place_type: PlaceType
    zone: Optional[str] = None
    zone_id: Optional[str] = None
    address: Optional[str] = None
    local_one_liner: Optional[str] = None
    local_warning: Optional[str] = None
    duration_minutes: Optional[int] = None
    price_range: Optional[str] = None
    cuisine_type: Optional[str] = None
    meal_time: Optional[str] = None
    photo_url: Optional[str] = None
    indoor_outdoor: Optional[str] = None
    crowd_level: Optional[str] = None
    best_times: List[str] = Field(default_factory=list)
    ideal_for: List[str] = Field(default_factory=list)
    vibe_touristy_to_local: Optional[int] = None
    physical_effort: Optional[int] = None
    mood_primary: Optional[str] = None
    why_people_go: List[str] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class CatalogProduct(_CatalogRow):
    id: str
    title: str
    short_pitch: str = ""
    price_cents: int = 0
    duration_minutes: Optional[int] = None
    product_type: ProductType
    preferred_time_buckets: List[TimeBucket] = Field(default_factory=list)
    meeting_point: Optional[str] = None
    description: Optional[str] = None

    @field_validator("price_cents", mode="before")
    @classmethod
    def _null_price(cls, value: Any) -> Any:
        return 0 if value is None else value


class CityZone(_CatalogRow):
    id: str
    name: str
    vibe_primary: Optional[str] = None
    best_time: Optional[str] = None
    touristy_score: Optional[int] = None
    local_tip: Optional[str] = None


class CatalogSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: CityRecord
    places: List[CatalogPlace] = Field(default_factory=list)
    products: List[CatalogProduct] = Field(default_factory=list)
    zones: List[CityZone] = Field(default_factory=list)

    @property
    def place_map(self) -> Dict[str, CatalogPlace]:
        return {p.id: p for p in self.places}

    @property
    def product_map(self) -> Dict[str, CatalogProduct]:
        return {p.id: p for p in self.products}


# ------- Planner contract (structured output) -------
class _PlannerModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, extra="forbid", strict=True)


class PlannerSlot(_PlannerModel):
    type: SlotType
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    place_id: Optional[str] = None
    reason: str
    alternative_ids: List[str] = Field(default_factory=list, max_length=2)
    walking_minutes: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    product_ids: Optional[List[str]] = None


class PlannerDay(_PlannerModel):
    day_number: int = Field(..., ge=1)
    slots: List[PlannerSlot]
    summary: str


class PlannerResponse(_PlannerModel):
    days: List[PlannerDay] = Field(..., min_length=1)


# ------- Response models -------
class PlaceSummary(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    type: PlaceType
    zone: Optional[str] = None
    address: Optional[str] = None
    local_one_liner: Optional[str] = None
    duration_minutes: Optional[int] = None
    price_range: Optional[str] = None
    cuisine_type: Optional[str] = None
    photo_url: Optional[str] = None
    indoor_outdoor: Optional[str] = None
    crowd_level: Optional[str] = None
    vibe_touristy_to_local: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AlternativePlace(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    type: PlaceType


class ProductSuggestion(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    title: str
    short_pitch: str = ""
    price_cents: int = 0
    duration_minutes: Optional[int] = None
    product_type: Optional[ProductType] = None


class GeneratedSlot(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    type: SlotType
    start_time: str
    end_time: str
    place: Optional[PlaceSummary] = None
    reason: str
    alternatives: List[AlternativePlace] = Field(default_factory=list)
    notes: Optional[str] = None
    walking_minutes: Optional[int] = None
    product_suggestions: List[ProductSuggestion] = Field(default_factory=list)


class GeneratedDay(CamelModel):
    day_number: int
    date: datetime.date
    date_label: str
    slots: List[GeneratedSlot] = Field(default_factory=list)
    summary: str = ""


class ItineraryMeta(CamelModel):
    places_used: int
    products_available: int


class GeneratedItinerary(CamelModel):
    itinerary: List[GeneratedDay]
    city: CityRecord
    meta: ItineraryMeta


class MapPoint(CamelModel):
    id: str
    slot_id: str
    name: str
    category: PlaceType
    lat: float
    lng: float
    sequence: int
    time: str
    source: Literal["stored", "gazetteer", "synthetic"]


class WalkingSegment(CamelModel):
    from_id: str
    to_id: str
    distance_km: float
    walking_minutes: int


class DayRoute(CamelModel):
    day_index: int
    center_lat: float
    center_lng: float
    points: List[MapPoint] = Field(default_factory=list)
    segments: List[WalkingSegment] = Field(default_factory=list)
    total_walking_minutes: int = 0
    total_distance_km: float = 0.0


# ------- API bodies -------
class GenerateRequest(CamelModel):
    preferences: TripPreferences


class RouteRequest(CamelModel):
    itinerary: GeneratedItinerary
    day_index: int = Field(0, ge=0)
