"""Display coordinates and walking estimates for one itinerary day.

Everything here is pure: the map view recomputes a route on every active-day
change, so the same input must always give the same points and segments.
"""
from __future__ import annotations

from math import asin, cos, radians, sin, sqrt
from typing import List, Optional, Tuple

from itinerary_engine.errors import GeocodeUnresolvable
from itinerary_engine.schemas import (
    CityRecord,
    DayRoute,
    GeneratedDay,
    MapPoint,
    PlaceSummary,
    WalkingSegment,
)

EARTH_RADIUS_KM = 6371.0
MAX_DISTANCE_FROM_CENTER_KM = 200.0
WALKING_SPEED_KMH = 5.0
KM_PER_DEGREE_LAT = 111.32

# Central Naples; used when the city record carries no coordinates.
DEFAULT_CENTER: Tuple[float, float] = (40.851799, 14.268124)

# Normalized landmark name -> (lat, lng)
GAZETTEER = {
    "scavi di pompei": (40.7508, 14.4869),
    "pompei": (40.7508, 14.4869),
    "villa dei misteri": (40.7544, 14.4785),
    "anfiteatro di pompei": (40.7489, 14.4946),
    "spaccanapoli": (40.8498, 14.2565),
    "museo archeologico nazionale": (40.8535, 14.2507),
    "castel dell'ovo": (40.8284, 14.2478),
    "cappella sansevero": (40.8489, 14.2544),
    "lungomare caracciolo": (40.8305, 14.2385),
    "da michele": (40.8500, 14.2611),
    "tandem ragu": (40.8471, 14.2553),
    "piazza del plebiscito": (40.8359, 14.2488),
    "castel sant'elmo": (40.8437, 14.2389),
    "maschio angioino": (40.8384, 14.2527),
    "galleria umberto": (40.8386, 14.2496),
    "vesuvio": (40.8210, 14.4261),
}


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = radians(lat2 - lat1)
    d_lng = radians(lng2 - lng1)
    a = sin(d_lat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(sqrt(min(1.0, a)))


def walking_minutes(distance_km: float) -> int:
    """Minutes on foot at 5 km/h, never less than one."""
    return max(1, round(distance_km / WALKING_SPEED_KMH * 60))


def city_center(city: Optional[CityRecord]) -> Tuple[float, float]:
    if city is not None and city.latitude is not None and city.longitude is not None:
        return city.latitude, city.longitude
    return DEFAULT_CENTER


def is_plausible(lat: float, lng: float, center: Tuple[float, float]) -> bool:
    return haversine_km(lat, lng, center[0], center[1]) <= MAX_DISTANCE_FROM_CENTER_KM


def lookup_gazetteer(name: str) -> Tuple[float, float]:
    normalized = name.strip().lower()
    if not normalized:
        raise GeocodeUnresolvable("empty place name")
    if normalized in GAZETTEER:
        return GAZETTEER[normalized]
    for landmark, coords in GAZETTEER.items():
        if landmark in normalized or normalized in landmark:
            return coords
    raise GeocodeUnresolvable(f"no gazetteer entry for {name!r}")


def synthetic_coordinate(index: int, center: Tuple[float, float]) -> Tuple[float, float]:
    """Place point ``index`` on a widening ring around the center, 72 degrees apart."""
    angle = radians(index * 72 + 30)
    radius_km = 0.6 + 0.15 * index
    lat = center[0] + (radius_km / KM_PER_DEGREE_LAT) * cos(angle)
    lng = center[1] + (radius_km / (KM_PER_DEGREE_LAT * cos(radians(center[0])))) * sin(angle)
    return lat, lng


def resolve_coordinate(
    place: PlaceSummary, index: int, center: Tuple[float, float]
) -> Tuple[float, float, str]:
    if place.latitude is not None and place.longitude is not None:
        if is_plausible(place.latitude, place.longitude, center):
            return place.latitude, place.longitude, "stored"
    try:
        lat, lng = lookup_gazetteer(place.name)
    except GeocodeUnresolvable:
        pass
    else:
        # the gazetteer only knows Campania landmarks
        if is_plausible(lat, lng, center):
            return lat, lng, "gazetteer"
    lat, lng = synthetic_coordinate(index, center)
    return lat, lng, "synthetic"


def resolve_day_route(day: GeneratedDay, city: Optional[CityRecord], day_index: int = 0) -> DayRoute:
    center = city_center(city)

    points: List[MapPoint] = []
    for slot in day.slots:
        if slot.place is None:
            continue
        index = len(points)
        lat, lng, source = resolve_coordinate(slot.place, index, center)
        points.append(
            MapPoint(
                id=slot.place.id,
                slot_id=slot.id,
                name=slot.place.name,
                category=slot.place.type,
                lat=lat,
                lng=lng,
                sequence=index + 1,
                time=slot.start_time,
                source=source,
            )
        )

    segments: List[WalkingSegment] = []
    for current, following in zip(points, points[1:]):
        distance = haversine_km(current.lat, current.lng, following.lat, following.lng)
        segments.append(
            WalkingSegment(
                from_id=current.id,
                to_id=following.id,
                distance_km=round(distance, 2),
                walking_minutes=walking_minutes(distance),
            )
        )

    return DayRoute(
        day_index=day_index,
        center_lat=center[0],
        center_lng=center[1],
        points=points,
        segments=segments,
        total_walking_minutes=sum(s.walking_minutes for s in segments),
        total_distance_km=round(sum(s.distance_km for s in segments), 2),
    )
