# itinerary_engine/llm.py
import os
import json
import logging
from typing import Any, Dict, List, Optional

import openai
from dotenv import load_dotenv
from openai import AsyncOpenAI
from pydantic import ValidationError

from itinerary_engine.errors import (
    PlanCreditsExhausted,
    PlanRequestRateLimited,
    PlanSchemaInvalid,
    PlanServiceUnavailable,
)
from itinerary_engine.schemas import CatalogSnapshot, PlannerResponse, TripPreferences

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("ITINERARY_ENGINE_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Load .env file if present
load_dotenv()

DEFAULT_MODEL = os.getenv("PLANNER_MODEL", "google/gemini-3-flash-preview")
DEFAULT_TIMEOUT = float(os.getenv("PLANNER_TIMEOUT_SECONDS", "60"))
TOOL_NAME = "create_itinerary"

SYSTEM_TEMPLATE = """You are a local travel planner building personalised day-by-day itineraries.
You have access to a curated database of places, restaurants, bars and experiences verified by local contributors.

CRITICAL RULES:
1. Use ONLY places from the provided database; never invent places.
2. Respect the chosen rhythm: {rhythm_rule}.
3. Food preferences: meal budget {budget}/3, preferred cuisines: {cuisines}.
4. Avoid: {avoid}.
5. Main interests: {interests}.
6. Travelling: {travel_with} ({party}); adapt the mood accordingly.
7. Walking tolerance: {walking}.
8. Day start: {start_band}.
9. Lunch style: {lunch_style}.

Suggest add-on products for a slot ONLY when relevant and when they improve the experience.
Use each place's "one_liner" as the basis for your reasons; it is the place's DNA.
"""

USER_TEMPLATE = """Create a {num_days}-day itinerary in {city}.

AVAILABLE PLACES:
{places}

AVAILABLE ADD-ON PRODUCTS:
{products}

CITY ZONES:
{zones}

TRAVELER PREFERENCES:
- Interests: {interests}
- Top priority: {top_interests}
- Meal budget: {budget}/3
- Rhythm: {rhythm}/5
- Travelling: {travel_with}
- Dietary restrictions: {dietary}
- Transport: {transport}
- Staying in: {accommodation}
- Special wishes: {wishes}

Build the best itinerary using ONLY places from the database, grouping by zone where possible to minimise transfers.
Give every slot a personalised reason based on the preferences.
Suggest add-on products where appropriate (e.g. a guided tour before a museum, a tasting after lunch).
"""

_SLOT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": ["activity", "meal", "break", "transfer"]},
        "startTime": {"type": "string", "description": "HH:MM format"},
        "endTime": {"type": "string", "description": "HH:MM format"},
        "placeId": {"type": "string", "description": "Place id from the database"},
        "reason": {"type": "string", "description": "Personalised reason for this choice"},
        "alternativeIds": {
            "type": "array",
            "items": {"type": "string"},
            "maxItems": 2,
            "description": "Ids of 1-2 alternative places",
        },
        "walkingMinutes": {
            "type": "number",
            "description": "Walking minutes from the previous slot",
        },
        "notes": {"type": "string"},
        "productIds": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Ids of add-on products suggested for this slot",
        },
    },
    "required": ["type", "startTime", "endTime", "reason"],
    "additionalProperties": False,
}

CREATE_ITINERARY_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": TOOL_NAME,
        "description": "Create a structured itinerary with days and time slots",
        "parameters": {
            "type": "object",
            "properties": {
                "days": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "dayNumber": {"type": "integer"},
                            "slots": {"type": "array", "items": _SLOT_SCHEMA},
                            "summary": {"type": "string"},
                        },
                        "required": ["dayNumber", "slots", "summary"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["days"],
            "additionalProperties": False,
        },
    },
}


def activity_ceiling(rhythm: int) -> int:
    """Maximum activity slots per day for a 1-5 rhythm score."""
    if rhythm <= 2:
        return 2
    if rhythm == 3:
        return 4
    return 5


def _rhythm_rule(rhythm: int) -> str:
    if rhythm <= 2:
        return "calm - at most 2 activities per day"
    if rhythm == 3:
        return "moderate - 3-4 activities per day"
    return "intense - 4-5 activities per day"


def _start_band(start_time: str) -> str:
    return {"early": "8:00-9:00", "normal": "9:30-10:00"}.get(start_time, "11:00 or later")


def _summarise_party(preferences: TripPreferences) -> str:
    travelers = preferences.travelers
    bits: List[str] = []
    if travelers.adults:
        bits.append(f"{travelers.adults} adults")
    if travelers.children:
        bits.append(f"{travelers.children} children")
    if travelers.seniors:
        bits.append(f"{travelers.seniors} seniors")
    return ", ".join(bits) if bits else "unspecified"


def _or(values: List[str], fallback: str) -> str:
    return ", ".join(values) if values else fallback


def _catalog_for_prompt(catalog: CatalogSnapshot) -> Dict[str, List[Dict[str, Any]]]:
    """Trim catalog records to the fields that matter for scheduling."""
    places = [
        {
            "id": p.id,
            "name": p.name,
            "type": p.place_type,
            "zone": p.zone,
            "one_liner": p.local_one_liner,
            "warning": p.local_warning,
            "duration": p.duration_minutes or 60,
            "price": p.price_range,
            "cuisine": p.cuisine_type,
            "meal_time": p.meal_time,
            "best_times": p.best_times,
            "ideal_for": p.ideal_for,
            "touristy": p.vibe_touristy_to_local,
            "effort": p.physical_effort,
            "indoor_outdoor": p.indoor_outdoor,
            "crowd": p.crowd_level,
            "mood": p.mood_primary,
            "why": p.why_people_go,
        }
        for p in catalog.places
    ]
    products = [
        {
            "id": p.id,
            "title": p.title,
            "pitch": p.short_pitch,
            "price": p.price_cents,
            "duration": p.duration_minutes,
            "type": p.product_type,
            "times": p.preferred_time_buckets,
        }
        for p in catalog.products
    ]
    zones = [
        {
            "id": z.id,
            "name": z.name,
            "vibe": z.vibe_primary,
            "best_time": z.best_time,
            "touristy": z.touristy_score,
            "tip": z.local_tip,
        }
        for z in catalog.zones
    ]
    return {"places": places, "products": products, "zones": zones}


def build_messages(preferences: TripPreferences, catalog: CatalogSnapshot) -> List[Dict[str, str]]:
    interests = _or(preferences.top_interests or preferences.interests, "none stated")
    system_prompt = SYSTEM_TEMPLATE.format(
        rhythm_rule=_rhythm_rule(preferences.rhythm),
        budget=preferences.budget,
        cuisines=_or(preferences.cuisine_preferences, "any"),
        avoid=_or(preferences.avoid, "nothing specific"),
        interests=interests,
        travel_with=preferences.travel_with,
        party=_summarise_party(preferences),
        walking=preferences.walking_tolerance,
        start_band=_start_band(preferences.start_time),
        lunch_style="long (90 min)" if preferences.lunch_style == "long" else "quick (45 min)",
    )

    trimmed = _catalog_for_prompt(catalog)
    user_prompt = USER_TEMPLATE.format(
        num_days=preferences.num_days,
        city=catalog.city.name,
        places=json.dumps(trimmed["places"], indent=2, ensure_ascii=False),
        products=json.dumps(trimmed["products"], indent=2, ensure_ascii=False),
        zones=json.dumps(trimmed["zones"], indent=2, ensure_ascii=False),
        interests=_or(preferences.interests, "none stated"),
        top_interests=_or(preferences.top_interests, "none stated"),
        budget=preferences.budget,
        rhythm=preferences.rhythm,
        travel_with=preferences.travel_with,
        dietary=_or(preferences.dietary_restrictions, "none"),
        transport=preferences.transport,
        accommodation=preferences.accommodation.zone if preferences.accommodation else "unspecified",
        wishes=preferences.wishes or "none",
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def parse_plan_response(resp: Any) -> PlannerResponse:
    """Extract and validate the ``create_itinerary`` tool call. Any mismatch is fatal."""
    try:
        tool_call = resp.choices[0].message.tool_calls[0]
    except (AttributeError, IndexError, TypeError) as exc:
        raise PlanSchemaInvalid("Planner response carried no tool call") from exc

    function = getattr(tool_call, "function", None)
    if function is None or getattr(function, "name", None) != TOOL_NAME:
        raise PlanSchemaInvalid("Planner response called an unexpected tool")

    arguments = getattr(function, "arguments", None)
    if not isinstance(arguments, str):
        raise PlanSchemaInvalid("Planner tool call has no JSON arguments")

    try:
        plan = PlannerResponse.model_validate_json(arguments)
    except ValidationError as exc:
        logger.warning("Planner response rejected: %d schema error(s)", exc.error_count())
        raise PlanSchemaInvalid(f"Planner response does not match schema: {exc.error_count()} error(s)") from exc

    logger.info("Planner JSON parsed successfully: %d day(s)", len(plan.days))
    return plan


class PlanRequester:
    """Sends one structured planning request to the external generative planner.

    The client is built with ``max_retries=0``: retrying is the caller's call.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        *,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.model = model or DEFAULT_MODEL
        if client is not None:
            self._client = client
            return

        api_key = api_key or os.getenv("PLANNER_API_KEY")
        base_url = base_url or os.getenv("PLANNER_BASE_URL")
        if api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout or DEFAULT_TIMEOUT,
                max_retries=0,
            )
        else:  # pragma: no cover - depends on deployment env
            self._client = None
            logger.warning("PLANNER_API_KEY not set; itinerary generation will fail until configured")

    async def request_plan(
        self, preferences: TripPreferences, catalog: CatalogSnapshot
    ) -> PlannerResponse:
        if self._client is None:
            raise PlanServiceUnavailable("Planning service is not configured")

        messages = build_messages(preferences, catalog)
        logger.info(
            "Invoking planner model %s for %d day(s) in %s with %d places / %d products",
            self.model,
            preferences.num_days,
            catalog.city.name,
            len(catalog.places),
            len(catalog.products),
        )

        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=[CREATE_ITINERARY_TOOL],
                tool_choice={"type": "function", "function": {"name": TOOL_NAME}},
            )
        except openai.RateLimitError as exc:
            logger.warning("Planner rate limited: %s", exc)
            raise PlanRequestRateLimited() from exc
        except openai.APIStatusError as exc:
            if exc.status_code == 402:
                logger.warning("Planner credits exhausted")
                raise PlanCreditsExhausted() from exc
            logger.error("Planner gateway error: %s", exc.status_code)
            raise PlanServiceUnavailable(f"Planner gateway error: {exc.status_code}") from exc
        except openai.APIConnectionError as exc:
            logger.error("Planner unreachable: %s", exc)
            raise PlanServiceUnavailable("Planner unreachable") from exc

        return parse_plan_response(resp)
