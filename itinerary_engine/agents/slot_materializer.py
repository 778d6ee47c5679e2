"""Turns a validated planner response into catalog-backed itinerary days."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, List, Optional
import logging
import os

from itinerary_engine.agents.product_matcher import match_products, to_suggestion
from itinerary_engine.llm import activity_ceiling
from itinerary_engine.schemas import (
    AlternativePlace,
    CatalogPlace,
    CatalogProduct,
    CatalogSnapshot,
    GeneratedDay,
    GeneratedItinerary,
    GeneratedSlot,
    ItineraryMeta,
    PlaceSummary,
    PlannerDay,
    PlannerResponse,
    PlannerSlot,
    TripPreferences,
)

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("ITINERARY_ENGINE_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Labels stay English whatever the host locale is.
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def date_label(day: date) -> str:
    return f"{WEEKDAYS[day.weekday()]} {day.day} {MONTHS[day.month - 1]}"


def materialize_plan(
    plan: PlannerResponse,
    catalog: CatalogSnapshot,
    preferences: TripPreferences,
    today: Optional[date] = None,
) -> GeneratedItinerary:
    """Rehydrate planner slots with full catalog records.

    Ids the catalog does not know are dropped rather than failing the run: the
    catalog may have drifted between load time and plan time.
    """
    today = today or date.today()
    places = catalog.place_map
    products = catalog.product_map
    ceiling = activity_ceiling(preferences.rhythm)

    days: List[GeneratedDay] = []
    for planned_day in plan.days:
        days.append(_materialize_day(planned_day, places, products, catalog.products, ceiling, today))

    total_slots = sum(len(d.slots) for d in days)
    logger.info("Materialized itinerary: %d day(s), %d slot(s)", len(days), total_slots)

    return GeneratedItinerary(
        itinerary=days,
        city=catalog.city,
        meta=ItineraryMeta(
            places_used=len(catalog.places),
            products_available=len(catalog.products),
        ),
    )


def _materialize_day(
    planned_day: PlannerDay,
    places: Dict[str, CatalogPlace],
    products: Dict[str, CatalogProduct],
    catalog_products: List[CatalogProduct],
    ceiling: int,
    today: date,
) -> GeneratedDay:
    day_date = today + timedelta(days=planned_day.day_number - 1)
    slots: List[GeneratedSlot] = []
    activities = 0

    for position, planned in enumerate(planned_day.slots):
        if planned.type == "activity":
            if activities >= ceiling:
                logger.warning(
                    "Day %d: dropping activity slot at %s beyond the %d-per-day ceiling",
                    planned_day.day_number,
                    planned.start_time,
                    ceiling,
                )
                continue
            activities += 1

        slot_id = f"day{planned_day.day_number}-slot{position}"
        slots.append(_materialize_slot(slot_id, planned, places, products, catalog_products))

    _warn_on_overlaps(planned_day.day_number, slots)

    return GeneratedDay(
        day_number=planned_day.day_number,
        date=day_date,
        date_label=date_label(day_date),
        slots=slots,
        summary=planned_day.summary,
    )


def _materialize_slot(
    slot_id: str,
    planned: PlannerSlot,
    places: Dict[str, CatalogPlace],
    products: Dict[str, CatalogProduct],
    catalog_products: List[CatalogProduct],
) -> GeneratedSlot:
    place = places.get(planned.place_id) if planned.place_id else None
    if planned.place_id and place is None:
        logger.debug("Slot %s: unknown place id %s omitted", slot_id, planned.place_id)

    alternatives = [
        AlternativePlace(id=alt.id, name=alt.name, type=alt.place_type)
        for alt in (places.get(alt_id) for alt_id in planned.alternative_ids)
        if alt is not None
    ]

    suggestions = [
        to_suggestion(product)
        for product in (products.get(pid) for pid in planned.product_ids or [])
        if product is not None
    ]
    # Rule-based fallback only when the planner gave us nothing usable.
    if not suggestions and place is not None:
        suggestions = match_products(place, planned.start_time, catalog_products)

    return GeneratedSlot(
        id=slot_id,
        type=planned.type,
        start_time=planned.start_time,
        end_time=planned.end_time,
        place=_summarise_place(place) if place else None,
        reason=planned.reason,
        alternatives=alternatives,
        notes=planned.notes,
        walking_minutes=round(planned.walking_minutes) if planned.walking_minutes is not None else None,
        product_suggestions=suggestions,
    )


def _summarise_place(place: CatalogPlace) -> PlaceSummary:
    return PlaceSummary(
        id=place.id,
        name=place.name,
        type=place.place_type,
        zone=place.zone,
        address=place.address,
        local_one_liner=place.local_one_liner,
        duration_minutes=place.duration_minutes,
        price_range=place.price_range,
        cuisine_type=place.cuisine_type,
        photo_url=place.photo_url,
        indoor_outdoor=place.indoor_outdoor,
        crowd_level=place.crowd_level,
        vibe_touristy_to_local=place.vibe_touristy_to_local,
        latitude=place.latitude,
        longitude=place.longitude,
    )


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":", 1)
    return int(hours) * 60 + int(minutes)


def _warn_on_overlaps(day_number: int, slots: List[GeneratedSlot]) -> None:
    # No de-overlap policy exists yet; surface it for operators only.
    for previous, current in zip(slots, slots[1:]):
        if _minutes(current.start_time) < _minutes(previous.end_time):
            logger.warning(
                "Day %d: slot %s (%s) starts before %s ends (%s)",
                day_number,
                current.id,
                current.start_time,
                previous.id,
                previous.end_time,
            )
