# debug_generate.py
import asyncio
import json

from itinerary_engine.llm import PlanRequester
from itinerary_engine.orchestrator import generate_itinerary
from itinerary_engine.schemas import TripPreferences
from itinerary_engine.tools.backend import SupabaseCatalogBackend
from itinerary_engine.tools.geometry import resolve_day_route


async def main():
    preferences = TripPreferences.model_validate(
        {
            "city": "napoli",
            "numDays": 2,
            "travelWith": "family",
            "travelers": {"adults": 2, "children": 1, "seniors": 0},
            "interests": ["history", "food"],
            "rhythm": 3,
            "budget": 2,
            "dietaryRestrictions": ["vegetarian"],
        }
    )
    itinerary = await generate_itinerary(preferences, SupabaseCatalogBackend(), PlanRequester())
    print(json.dumps(itinerary.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))

    for index, day in enumerate(itinerary.itinerary):
        route = resolve_day_route(day, itinerary.city, index)
        print(
            f"Day {day.day_number}: {len(route.points)} stops, "
            f"{route.total_walking_minutes} min walking ({route.total_distance_km} km)"
        )


if __name__ == "__main__":
    asyncio.run(main())
