"""Rule-based add-on matching for slots the planner left without products."""
from __future__ import annotations

from typing import Iterable, List, Tuple

from itinerary_engine.schemas import CatalogPlace, CatalogProduct, ProductSuggestion

MAX_SUGGESTIONS = 3

# (place type, product types, points)
_TYPE_AFFINITY: Tuple[Tuple[str, frozenset, int], ...] = (
    ("attraction", frozenset({"guided_tour", "ticket"}), 3),
    ("restaurant", frozenset({"tasting", "dining_experience"}), 3),
    ("view", frozenset({"photo_experience"}), 2),
    ("experience", frozenset({"workshop"}), 2),
)


def time_bucket(start_time: str) -> str:
    """Map an ``HH:MM`` start time onto the catalog's time-of-day buckets."""
    hour = int(start_time.split(":", 1)[0])
    if hour < 12:
        return "morning"
    if hour < 14:
        return "lunch"
    if hour < 17:
        return "afternoon"
    if hour < 18:
        return "aperitivo"
    if hour < 21:
        return "dinner"
    return "evening"


def score_product(place: CatalogPlace, product: CatalogProduct, bucket: str) -> int:
    score = 0
    if bucket in product.preferred_time_buckets:
        score += 2
    for place_type, product_types, points in _TYPE_AFFINITY:
        if place.place_type == place_type and product.product_type in product_types:
            score += points
    # attractions always surface at least weak candidates
    if place.place_type == "attraction" and score == 0:
        score = 1
    return score


def match_products(
    place: CatalogPlace,
    start_time: str,
    products: Iterable[CatalogProduct],
    limit: int = MAX_SUGGESTIONS,
) -> List[ProductSuggestion]:
    """Return up to ``limit`` add-ons for a slot, best score first.

    Ties keep catalog order (``sorted`` is stable), so identical inputs always
    yield the identical list.
    """
    bucket = time_bucket(start_time)
    scored = [(score_product(place, product, bucket), product) for product in products]
    candidates = [pair for pair in scored if pair[0] > 0]
    ranked = sorted(candidates, key=lambda pair: pair[0], reverse=True)
    return [to_suggestion(product) for _, product in ranked[:limit]]


def to_suggestion(product: CatalogProduct) -> ProductSuggestion:
    return ProductSuggestion(
        id=product.id,
        title=product.title,
        short_pitch=product.short_pitch,
        price_cents=product.price_cents,
        duration_minutes=product.duration_minutes,
        product_type=product.product_type,
    )
