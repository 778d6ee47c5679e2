"""Catalog loading: the typed boundary between backend rows and the engine."""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from itinerary_engine.errors import CatalogUnavailableError, CityNotFoundError, NoCatalogError
from itinerary_engine.schemas import (
    CatalogPlace,
    CatalogProduct,
    CatalogSnapshot,
    CityRecord,
    CityZone,
)
from itinerary_engine.tools.backend import BackendError, CatalogBackend

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("ITINERARY_ENGINE_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

RecordT = TypeVar("RecordT", bound=BaseModel)


async def load_catalog(backend: CatalogBackend, city_ref: str) -> CatalogSnapshot:
    """Return the approved places, products and zones for ``city_ref``.

    The three reads are independent and go out concurrently. A failed places
    read is fatal; products and zones degrade to empty collections since the
    itinerary can still be built without them. Zero approved places raises
    ``NoCatalogError`` so callers never reach the planner with nothing to plan.
    """
    try:
        city_row = await backend.find_city(city_ref)
    except BackendError as exc:
        raise CatalogUnavailableError(str(exc)) from exc
    if not city_row:
        raise CityNotFoundError(f"City not found: {city_ref}")

    try:
        city = CityRecord.model_validate(city_row)
    except ValidationError as exc:
        raise CatalogUnavailableError(f"Malformed city record for {city_ref}") from exc
    logger.info("Loading catalog for %s (%s)", city.name, city.id)

    place_rows, product_rows, zone_rows = await asyncio.gather(
        backend.fetch_places(city.id),
        backend.fetch_products(city.id),
        backend.fetch_zones(city.id),
        return_exceptions=True,
    )

    if isinstance(place_rows, BaseException):
        logger.error("Places read failed for %s: %s", city.id, place_rows)
        raise CatalogUnavailableError(f"Places could not be loaded: {place_rows}") from place_rows
    if isinstance(product_rows, BaseException):
        logger.warning("Products read failed for %s; continuing without add-ons", city.id, exc_info=product_rows)
        product_rows = []
    if isinstance(zone_rows, BaseException):
        logger.warning("Zones read failed for %s; continuing without zone metadata", city.id, exc_info=zone_rows)
        zone_rows = []

    places = _parse_rows(CatalogPlace, place_rows, "place")
    products = _parse_rows(CatalogProduct, product_rows, "product")
    zones = _parse_rows(CityZone, zone_rows, "zone")

    logger.info(
        "Found %d places, %d products, %d zones for %s",
        len(places),
        len(products),
        len(zones),
        city.name,
    )

    if not places:
        raise NoCatalogError(f"No approved places for {city.name}")

    return CatalogSnapshot(city=city, places=places, products=products, zones=zones)


def _parse_rows(model: Type[RecordT], rows: Iterable[Dict[str, Any]], label: str) -> List[RecordT]:
    parsed: List[RecordT] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "Dropping malformed %s row %s: %d validation error(s)",
                label,
                row.get("id", "?") if isinstance(row, dict) else "?",
                exc.error_count(),
            )
    return parsed
