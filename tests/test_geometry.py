from datetime import date
from math import atan2, cos, degrees, radians

import pytest

from itinerary_engine.errors import GeocodeUnresolvable
from itinerary_engine.schemas import CityRecord, GeneratedDay, GeneratedSlot, PlaceSummary
from itinerary_engine.tools.geometry import (
    DEFAULT_CENTER,
    KM_PER_DEGREE_LAT,
    haversine_km,
    lookup_gazetteer,
    resolve_coordinate,
    resolve_day_route,
    synthetic_coordinate,
    walking_minutes,
)

NAPOLI = CityRecord(id="city-napoli", slug="napoli", name="Napoli", latitude=40.8518, longitude=14.2681)
CENTER = (40.8518, 14.2681)


def _slot(idx: int, place: PlaceSummary | None, start: str = "10:00") -> GeneratedSlot:
    return GeneratedSlot(
        id=f"day1-slot{idx}",
        type="activity" if place else "break",
        start_time=start,
        end_time=start,
        place=place,
        reason="because",
    )


def _day(*slots: GeneratedSlot) -> GeneratedDay:
    return GeneratedDay(day_number=1, date=date(2026, 5, 4), date_label="Monday 4 May", slots=list(slots))


def _bearing(point, center) -> float:
    d_north = (point[0] - center[0]) * KM_PER_DEGREE_LAT
    d_east = (point[1] - center[1]) * KM_PER_DEGREE_LAT * cos(radians(center[0]))
    return degrees(atan2(d_east, d_north)) % 360


def test_haversine_naples_to_pompei():
    distance = haversine_km(40.8518, 14.2681, 40.7508, 14.4869)
    assert 20 < distance < 23
    assert haversine_km(40.0, 14.0, 40.0, 14.0) == 0


def test_walking_minutes_floor_and_monotonic():
    assert walking_minutes(0.0) == 1
    assert walking_minutes(0.01) == 1
    assert walking_minutes(1.0) == 12
    distances = [0.05, 0.3, 0.9, 1.5, 4.2, 10.0]
    minutes = [walking_minutes(d) for d in distances]
    assert minutes == sorted(minutes)


def test_stored_coordinate_within_range_is_kept():
    place = PlaceSummary(id="p", name="Somewhere", type="attraction", latitude=40.85, longitude=14.25)
    assert resolve_coordinate(place, 0, CENTER) == (40.85, 14.25, "stored")


def test_far_stored_coordinate_is_rejected():
    # Milan is ~660 km from Naples
    place = PlaceSummary(id="p", name="Mystery Spot", type="attraction", latitude=45.4642, longitude=9.19)
    lat, lng, source = resolve_coordinate(place, 0, CENTER)

    assert source == "synthetic"
    assert haversine_km(lat, lng, *CENTER) < 5


def test_gazetteer_exact_and_substring_match():
    assert lookup_gazetteer("  Castel dell'Ovo ") == (40.8284, 14.2478)
    assert lookup_gazetteer("L'Antica Pizzeria Da Michele") == (40.8500, 14.2611)
    with pytest.raises(GeocodeUnresolvable):
        lookup_gazetteer("Bar Nowhere")


def test_bad_coordinate_falls_back_to_gazetteer():
    place = PlaceSummary(id="p", name="Castel dell'Ovo", type="attraction", latitude=0.0, longitude=0.0)
    assert resolve_coordinate(place, 3, CENTER) == (40.8284, 14.2478, "gazetteer")


def test_gazetteer_hit_far_from_city_center_falls_back_to_synthetic():
    milano = (45.4642, 9.19)
    place = PlaceSummary(id="p", name="Museo", type="attraction")
    lat, lng, source = resolve_coordinate(place, 0, milano)

    assert source == "synthetic"
    assert haversine_km(lat, lng, *milano) < 5


def test_synthetic_points_are_72_degrees_apart():
    first = synthetic_coordinate(0, CENTER)
    second = synthetic_coordinate(1, CENTER)

    assert first != second
    assert _bearing(first, CENTER) == pytest.approx(30, abs=1e-6)
    assert _bearing(second, CENTER) == pytest.approx(102, abs=1e-6)
    assert haversine_km(*second, *CENTER) > haversine_km(*first, *CENTER)


def test_resolve_day_route_builds_points_and_segments():
    day = _day(
        _slot(0, PlaceSummary(id="a", name="Museo Archeologico Nazionale", type="attraction", latitude=40.8535, longitude=14.2507)),
        _slot(1, None, "12:00"),
        _slot(2, PlaceSummary(id="b", name="Da Michele", type="restaurant"), "13:00"),
        _slot(3, PlaceSummary(id="c", name="Hidden Courtyard", type="view"), "17:00"),
    )

    route = resolve_day_route(day, NAPOLI, day_index=0)

    assert [p.id for p in route.points] == ["a", "b", "c"]
    assert [p.sequence for p in route.points] == [1, 2, 3]
    assert [p.source for p in route.points] == ["stored", "gazetteer", "synthetic"]
    assert route.points[1].slot_id == "day1-slot2"
    assert len(route.segments) == 2
    assert all(s.walking_minutes >= 1 for s in route.segments)
    assert route.total_walking_minutes == sum(s.walking_minutes for s in route.segments)


def test_resolve_day_route_is_idempotent():
    day = _day(
        _slot(0, PlaceSummary(id="a", name="Alpha", type="attraction")),
        _slot(1, PlaceSummary(id="b", name="Beta", type="view")),
    )

    assert resolve_day_route(day, NAPOLI) == resolve_day_route(day, NAPOLI)


def test_city_without_coordinates_uses_default_center():
    city = CityRecord(id="c", name="Nowhere")
    route = resolve_day_route(_day(), city)

    assert (route.center_lat, route.center_lng) == DEFAULT_CENTER
    assert route.points == []
    assert route.total_walking_minutes == 0
