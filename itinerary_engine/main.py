from __future__ import annotations

import os
from typing import Dict, Type

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from itinerary_engine.errors import (
    CatalogUnavailableError,
    CityNotFoundError,
    GenerationCancelled,
    ItineraryEngineError,
    NoCatalogError,
    PlanCreditsExhausted,
    PlanRequestRateLimited,
    PlanSchemaInvalid,
    PlanServiceUnavailable,
)
from itinerary_engine.llm import PlanRequester
from itinerary_engine.orchestrator import generate_itinerary
from itinerary_engine.schemas import DayRoute, GeneratedItinerary, GenerateRequest, RouteRequest
from itinerary_engine.tools.backend import SupabaseCatalogBackend
from itinerary_engine.tools.geometry import resolve_day_route

app = FastAPI(title="Itinerary Engine API")

# The planning wizard runs on a separate origin in development. Operators can
# scope this via ITINERARY_ENGINE_ALLOWED_ORIGINS.
raw_origins = os.getenv("ITINERARY_ENGINE_ALLOWED_ORIGINS") or "*"
allowed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR: Dict[Type[ItineraryEngineError], int] = {
    CityNotFoundError: 404,
    NoCatalogError: 404,
    PlanRequestRateLimited: 429,
    PlanCreditsExhausted: 402,
    PlanSchemaInvalid: 502,
    PlanServiceUnavailable: 503,
    CatalogUnavailableError: 503,
    GenerationCancelled: 409,
}


@app.exception_handler(ItineraryEngineError)
async def _engine_error_handler(request: Request, exc: ItineraryEngineError) -> JSONResponse:
    status = _STATUS_BY_ERROR.get(type(exc), 500)
    return JSONResponse(status_code=status, content={"error": exc.code, "message": exc.message})


def get_backend() -> SupabaseCatalogBackend:
    return SupabaseCatalogBackend()


_requester: PlanRequester | None = None


def get_requester() -> PlanRequester:
    global _requester
    if _requester is None:
        _requester = PlanRequester()
    return _requester


@app.post("/api/itinerary", response_model=GeneratedItinerary)
async def api_generate_itinerary(
    body: GenerateRequest,
    backend: SupabaseCatalogBackend = Depends(get_backend),
    requester: PlanRequester = Depends(get_requester),
) -> GeneratedItinerary:
    """Primary endpoint consumed by the planning wizard."""
    return await generate_itinerary(body.preferences, backend, requester)


@app.post("/api/itinerary/route", response_model=DayRoute)
async def api_day_route(body: RouteRequest) -> DayRoute:
    """Map points and walking segments for one day of a generated itinerary."""
    days = body.itinerary.itinerary
    if body.day_index >= len(days):
        raise HTTPException(status_code=404, detail=f"Day index {body.day_index} out of range")
    return resolve_day_route(days[body.day_index], body.itinerary.city, body.day_index)
