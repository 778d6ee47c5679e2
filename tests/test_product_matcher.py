import pytest

from itinerary_engine.agents.product_matcher import match_products, score_product, time_bucket
from itinerary_engine.schemas import CatalogPlace, CatalogProduct


def _place(place_type: str) -> CatalogPlace:
    return CatalogPlace(id=f"pl-{place_type}", name=place_type.title(), place_type=place_type)


@pytest.mark.parametrize(
    "start, bucket",
    [
        ("08:00", "morning"),
        ("11:59", "morning"),
        ("12:00", "lunch"),
        ("13:59", "lunch"),
        ("14:00", "afternoon"),
        ("17:00", "aperitivo"),
        ("18:00", "dinner"),
        ("20:59", "dinner"),
        ("21:00", "evening"),
        ("9:30", "morning"),
    ],
)
def test_time_bucket_boundaries(start, bucket):
    assert time_bucket(start) == bucket


def test_attraction_prefers_tours_and_tickets(catalog):
    matched = match_products(_place("attraction"), "10:00", catalog.products)

    # tour: type +3, morning +2; ticket: type +3; the rest get the baseline 1
    assert [p.id for p in matched] == ["pr-tour", "pr-ticket", "pr-tasting"]
    assert matched[0].product_type == "guided_tour"


def test_restaurant_only_gets_food_products(catalog):
    matched = match_products(_place("restaurant"), "13:00", catalog.products)

    assert [p.id for p in matched] == ["pr-tasting"]


def test_view_and_experience_affinities(catalog):
    assert [p.id for p in match_products(_place("view"), "17:30", catalog.products)] == ["pr-photo"]
    assert [p.id for p in match_products(_place("experience"), "15:00", catalog.products)] == ["pr-workshop"]


def test_time_bucket_alone_is_enough_for_other_place_types(catalog):
    assert [p.id for p in match_products(_place("bar"), "10:00", catalog.products)] == ["pr-tour"]
    assert match_products(_place("club"), "23:00", catalog.products) == []


def test_attraction_baseline_applies_only_without_other_matches():
    attraction = _place("attraction")
    tasting = CatalogProduct(id="t", title="Tasting", product_type="tasting", preferred_time_buckets=[])
    timed_tasting = CatalogProduct(
        id="tt", title="Tasting", product_type="tasting", preferred_time_buckets=["morning"]
    )

    assert score_product(attraction, tasting, "morning") == 1
    assert score_product(attraction, timed_tasting, "morning") == 2


def test_ties_keep_catalog_order_and_limit_to_three():
    products = [
        CatalogProduct(id=f"ticket-{i}", title=f"Ticket {i}", product_type="ticket")
        for i in range(5)
    ]

    matched = match_products(_place("attraction"), "15:00", products)

    assert [p.id for p in matched] == ["ticket-0", "ticket-1", "ticket-2"]


def test_matching_is_deterministic(catalog):
    runs = [
        [p.id for p in match_products(_place("attraction"), "10:00", catalog.products)]
        for _ in range(5)
    ]

    assert all(run == runs[0] for run in runs)
