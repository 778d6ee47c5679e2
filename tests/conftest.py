from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from itinerary_engine.schemas import CatalogSnapshot


CITY_ROW = {
    "id": "city-napoli",
    "slug": "napoli",
    "name": "Napoli",
    "region": "Campania",
    "latitude": 40.8518,
    "longitude": 14.2681,
}

PLACE_ROWS: List[Dict[str, Any]] = [
    {
        "id": "pl-museo",
        "name": "Museo Archeologico Nazionale",
        "place_type": "attraction",
        "zone": "Centro Storico",
        "local_one_liner": "Pompeii's treasures without the crowds",
        "duration_minutes": 120,
        "best_times": ["morning"],
        "ideal_for": None,
        "latitude": 40.8535,
        "longitude": 14.2507,
    },
    {
        "id": "pl-ovo",
        "name": "Castel dell'Ovo",
        "place_type": "attraction",
        "zone": "Lungomare",
        "duration_minutes": 60,
        # stored coordinate is off the coast of Africa
        "latitude": 0.0,
        "longitude": 0.0,
    },
    {
        "id": "pl-sotterranea",
        "name": "Napoli Sotterranea",
        "place_type": "attraction",
        "zone": "Centro Storico",
        "duration_minutes": 90,
    },
    {
        "id": "pl-michele",
        "name": "L'Antica Pizzeria Da Michele",
        "place_type": "restaurant",
        "cuisine_type": "pizza",
        "price_range": "budget",
        "latitude": 40.8500,
        "longitude": 14.2611,
    },
    {
        "id": "pl-tandem",
        "name": "Tandem Ragu",
        "place_type": "restaurant",
        "cuisine_type": "traditional",
        "price_range": "moderate",
    },
]

PRODUCT_ROWS: List[Dict[str, Any]] = [
    {
        "id": "pr-tour",
        "title": "Skip-the-line museum tour",
        "short_pitch": "Two hours with an archaeologist",
        "price_cents": 4500,
        "duration_minutes": 120,
        "product_type": "guided_tour",
        "preferred_time_buckets": ["morning"],
    },
    {
        "id": "pr-ticket",
        "title": "Castle entry ticket",
        "short_pitch": "Timed entry",
        "price_cents": 1200,
        "product_type": "ticket",
        "preferred_time_buckets": None,
    },
    {
        "id": "pr-tasting",
        "title": "Pizza tasting",
        "short_pitch": "Three pizzerias, one evening",
        "price_cents": 3900,
        "product_type": "tasting",
        "preferred_time_buckets": ["lunch", "dinner"],
    },
    {
        "id": "pr-photo",
        "title": "Golden hour photo walk",
        "short_pitch": "Lungomare at sunset",
        "price_cents": 2500,
        "product_type": "photo_experience",
        "preferred_time_buckets": ["aperitivo"],
    },
    {
        "id": "pr-workshop",
        "title": "Pizza making workshop",
        "short_pitch": "Make your own margherita",
        "price_cents": 5500,
        "product_type": "workshop",
        "preferred_time_buckets": ["afternoon"],
    },
]

ZONE_ROWS: List[Dict[str, Any]] = [
    {"id": "z-centro", "name": "Centro Storico", "vibe_primary": "authentic", "touristy_score": 3},
    {"id": "z-lungomare", "name": "Lungomare", "best_time": "aperitivo", "local_tip": "Walk it at dusk"},
]


class FakeBackend:
    """In-memory stand-in for the PostgREST catalog backend."""

    def __init__(
        self,
        city: Optional[Dict[str, Any]] = None,
        places: Optional[List[Dict[str, Any]]] = None,
        products: Optional[List[Dict[str, Any]]] = None,
        zones: Optional[List[Dict[str, Any]]] = None,
    ):
        self.city = CITY_ROW if city is None else city
        self.places = PLACE_ROWS if places is None else places
        self.products = PRODUCT_ROWS if products is None else products
        self.zones = ZONE_ROWS if zones is None else zones
        self.calls: List[str] = []

    async def find_city(self, ref: str):
        self.calls.append("city")
        if self.city and ref in (self.city.get("slug"), self.city.get("id")):
            return self.city
        return None

    async def fetch_places(self, city_id: str):
        self.calls.append("places")
        if isinstance(self.places, Exception):
            raise self.places
        return self.places

    async def fetch_products(self, city_id: str):
        self.calls.append("products")
        if isinstance(self.products, Exception):
            raise self.products
        return self.products

    async def fetch_zones(self, city_id: str):
        self.calls.append("zones")
        if isinstance(self.zones, Exception):
            raise self.zones
        return self.zones


def tool_response(payload: Any, name: str = "create_itinerary") -> SimpleNamespace:
    arguments = payload if isinstance(payload, str) else json.dumps(payload)
    call = SimpleNamespace(function=SimpleNamespace(name=name, arguments=arguments))
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(tool_calls=[call]))])


def fake_planner_client(response: Any = None, side_effect: Any = None) -> SimpleNamespace:
    create = AsyncMock(return_value=response, side_effect=side_effect)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.fixture
def catalog() -> CatalogSnapshot:
    return CatalogSnapshot.model_validate(
        {"city": CITY_ROW, "places": PLACE_ROWS, "products": PRODUCT_ROWS, "zones": ZONE_ROWS}
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
