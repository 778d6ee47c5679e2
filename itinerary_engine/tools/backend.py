from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Protocol

import httpx
from dotenv import load_dotenv

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("ITINERARY_ENGINE_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

load_dotenv()

Row = Dict[str, Any]

CITY_COLUMNS = "id,slug,name,region,latitude,longitude"
PLACE_COLUMNS = ",".join(
    [
        "id",
        "name",
        "place_type",
        "zone",
        "zone_id",
        "address",
        "local_one_liner",
        "local_warning",
        "duration_minutes",
        "price_range",
        "cuisine_type",
        "meal_time",
        "photo_url",
        "indoor_outdoor",
        "crowd_level",
        "best_times",
        "ideal_for",
        "vibe_touristy_to_local",
        "physical_effort",
        "mood_primary",
        "why_people_go",
        "latitude",
        "longitude",
    ]
)
PRODUCT_COLUMNS = (
    "id,title,short_pitch,price_cents,duration_minutes,product_type,"
    "preferred_time_buckets,meeting_point,description"
)
ZONE_COLUMNS = "id,name,vibe_primary,best_time,touristy_score,local_tip"


class BackendError(RuntimeError):
    """Raised when a backend read fails (transport or non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CatalogBackend(Protocol):
    async def find_city(self, ref: str) -> Optional[Row]: ...

    async def fetch_places(self, city_id: str) -> List[Row]: ...

    async def fetch_products(self, city_id: str) -> List[Row]: ...

    async def fetch_zones(self, city_id: str) -> List[Row]: ...


class SupabaseCatalogBackend:
    """
    Read-only access to the curated catalog through the Supabase REST (PostgREST) API.
    Every read is scoped to one city and to ``status = approved`` rows.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.api_key = api_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    async def _select(self, table: str, params: Dict[str, str]) -> List[Row]:
        if not self.base_url or not self.api_key:
            raise BackendError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")

        url = f"{self.base_url}/rest/v1/{table}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(url, params=params, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"read from {table} failed: {exc}", status_code=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"read from {table} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendError(f"non-JSON payload from {table}", status_code=response.status_code) from exc
        if not isinstance(data, list):
            raise BackendError(f"unexpected payload from {table}: {type(data).__name__}")
        logger.debug("Backend %s returned %d row(s)", table, len(data))
        return [row for row in data if isinstance(row, dict)]

    async def find_city(self, ref: str) -> Optional[Row]:
        # Travelers pick cities by slug; older clients still send the id.
        rows = await self._select("cities", {"select": CITY_COLUMNS, "slug": f"eq.{ref}", "limit": "1"})
        if not rows:
            try:
                rows = await self._select(
                    "cities", {"select": CITY_COLUMNS, "id": f"eq.{ref}", "limit": "1"}
                )
            except BackendError as exc:
                # ids are uuids; a slug-shaped ref makes PostgREST answer 400
                if exc.status_code != 400:
                    raise
                logger.debug("City id lookup rejected for %r", ref)
                rows = []
        return rows[0] if rows else None

    async def fetch_places(self, city_id: str) -> List[Row]:
        return await self._select(
            "places",
            {"select": PLACE_COLUMNS, "city_id": f"eq.{city_id}", "status": "eq.approved"},
        )

    async def fetch_products(self, city_id: str) -> List[Row]:
        return await self._select(
            "products",
            {"select": PRODUCT_COLUMNS, "city_id": f"eq.{city_id}", "status": "eq.approved"},
        )

    async def fetch_zones(self, city_id: str) -> List[Row]:
        return await self._select(
            "city_zones",
            {"select": ZONE_COLUMNS, "city_id": f"eq.{city_id}", "status": "eq.approved"},
        )
