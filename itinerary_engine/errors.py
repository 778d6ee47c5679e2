"""Error taxonomy for the itinerary engine.

Only ``NoCatalogError`` and the ``PlanRequest*`` family are meant to reach the
traveler as distinct, actionable messages. Everything else is either an
operator problem (backend down) or absorbed by the component that raised it.
"""
from __future__ import annotations


class ItineraryEngineError(Exception):
    code = "engine_error"
    message = "Itinerary generation failed"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)
        self.detail = detail or self.message


class CityNotFoundError(ItineraryEngineError):
    code = "city_not_found"
    message = "City not found"


class CatalogUnavailableError(ItineraryEngineError):
    code = "catalog_unavailable"
    message = "Catalog could not be loaded"


class NoCatalogError(ItineraryEngineError):
    code = "no_catalog"
    message = "No approved places for this city yet"


class PlanRequestError(ItineraryEngineError):
    code = "plan_request_failed"
    message = "The planning service could not build an itinerary"


class PlanRequestRateLimited(PlanRequestError):
    code = "rate_limit"
    message = "Too many planning requests, try again shortly"


class PlanCreditsExhausted(PlanRequestError):
    code = "credits"
    message = "Planning credits exhausted"


class PlanSchemaInvalid(PlanRequestError):
    code = "schema_invalid"
    message = "The planning service returned an itinerary we could not read"


class PlanServiceUnavailable(PlanRequestError):
    code = "unavailable"
    message = "The planning service is unavailable"


class GenerationCancelled(ItineraryEngineError):
    code = "cancelled"
    message = "Generation request was superseded"


class GeocodeUnresolvable(ItineraryEngineError):
    code = "geocode_unresolvable"
    message = "No coordinate could be resolved for this place"


class LedgerConfirmedError(ItineraryEngineError):
    code = "ledger_confirmed"
    message = "Selection already confirmed"
