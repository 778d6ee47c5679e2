# itinerary_engine/orchestrator.py
from __future__ import annotations

import itertools
import logging
import os
from datetime import date
from typing import Optional

from itinerary_engine.agents.catalog_loader import load_catalog
from itinerary_engine.agents.slot_materializer import materialize_plan
from itinerary_engine.errors import GenerationCancelled
from itinerary_engine.llm import PlanRequester
from itinerary_engine.schemas import GeneratedItinerary, TripPreferences
from itinerary_engine.tools.backend import CatalogBackend

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("ITINERARY_ENGINE_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


class GenerationToken:
    """Handle for one generation request; cancelled once it goes stale."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self, stage: str) -> None:
        if self._cancelled:
            logger.info("Generation #%d discarded after %s", self.request_id, stage)
            raise GenerationCancelled(f"request #{self.request_id} cancelled after {stage}")


class GenerationSession:
    """Issues tokens so that only the most recent request may apply its result."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._current: Optional[GenerationToken] = None

    def begin(self) -> GenerationToken:
        if self._current is not None:
            self._current.cancel()
        self._current = GenerationToken(next(self._ids))
        return self._current

    def is_current(self, token: GenerationToken) -> bool:
        return token is self._current and not token.cancelled

    def abandon(self) -> None:
        if self._current is not None:
            self._current.cancel()
            self._current = None


async def generate_itinerary(
    preferences: TripPreferences,
    backend: CatalogBackend,
    requester: PlanRequester,
    *,
    token: Optional[GenerationToken] = None,
    today: Optional[date] = None,
) -> GeneratedItinerary:
    """Catalog -> planner -> materialized itinerary.

    ``NoCatalogError`` surfaces before the planner is ever contacted. Planner
    failures propagate untouched; regenerating is the caller's decision.
    """
    logger.info(
        "Generating itinerary for %s, %d day(s), rhythm %d",
        preferences.city,
        preferences.num_days,
        preferences.rhythm,
    )
    catalog = await load_catalog(backend, preferences.city)
    if token is not None:
        token.raise_if_cancelled("catalog load")

    plan = await requester.request_plan(preferences, catalog)
    if token is not None:
        token.raise_if_cancelled("planner response")

    itinerary = materialize_plan(plan, catalog, preferences, today=today)
    logger.info("Generated itinerary with %d day(s) for %s", len(itinerary.itinerary), catalog.city.name)
    return itinerary
