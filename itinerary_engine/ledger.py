"""Session-scoped record of add-ons the traveler selected or dismissed."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from itinerary_engine.errors import LedgerConfirmedError
from itinerary_engine.schemas import ProductSuggestion


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SelectedProduct:
    product: ProductSuggestion
    day_index: int
    anchor_place_id: Optional[str] = None
    anchor_place_name: Optional[str] = None
    added_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class DismissedProduct:
    product_id: str
    day_index: int
    dismissed_at: datetime = field(default_factory=_now)


class SelectionLedger:
    """
    Cart plus dismissal history for one planning session. Created when the
    traveler opens an itinerary, discarded with the session; nothing here is
    persisted. Once checkout confirms, the ledger is read-only.
    """

    def __init__(self, max_per_day: int = 2, max_dismissals_before_hide: int = 2):
        self.max_per_day = max_per_day
        self.max_dismissals_before_hide = max_dismissals_before_hide
        self._selected: List[SelectedProduct] = []
        self._dismissed: List[DismissedProduct] = []
        self._confirmed = False

    @property
    def selected(self) -> List[SelectedProduct]:
        return list(self._selected)

    @property
    def dismissed(self) -> List[DismissedProduct]:
        return list(self._dismissed)

    @property
    def confirmed(self) -> bool:
        return self._confirmed

    def _ensure_open(self) -> None:
        if self._confirmed:
            raise LedgerConfirmedError()

    def add(
        self,
        product: ProductSuggestion,
        day_index: int,
        anchor_place_id: Optional[str] = None,
        anchor_place_name: Optional[str] = None,
    ) -> bool:
        """Select ``product`` for a day. Returns False when nothing changed."""
        self._ensure_open()
        if self.is_selected(product.id, day_index):
            return False
        if len(self.products_for_day(day_index)) >= self.max_per_day:
            return False
        self._selected.append(
            SelectedProduct(
                product=product,
                day_index=day_index,
                anchor_place_id=anchor_place_id,
                anchor_place_name=anchor_place_name,
            )
        )
        return True

    def remove(self, product_id: str, day_index: int) -> None:
        # A removal counts as a dismissal for suggestion purposes.
        self._ensure_open()
        self._selected = [
            s for s in self._selected if not (s.product.id == product_id and s.day_index == day_index)
        ]
        self._dismissed.append(DismissedProduct(product_id=product_id, day_index=day_index))

    def dismiss(self, product_id: str, day_index: int) -> None:
        self._ensure_open()
        self._dismissed.append(DismissedProduct(product_id=product_id, day_index=day_index))

    def is_selected(self, product_id: str, day_index: int) -> bool:
        return any(s.product.id == product_id and s.day_index == day_index for s in self._selected)

    def products_for_day(self, day_index: int) -> List[SelectedProduct]:
        return [s for s in self._selected if s.day_index == day_index]

    def dismissal_count(self, day_index: int) -> int:
        return sum(1 for d in self._dismissed if d.day_index == day_index)

    def should_show_suggestions(self, day_index: int) -> bool:
        return (
            self.dismissal_count(day_index) < self.max_dismissals_before_hide
            and len(self.products_for_day(day_index)) < self.max_per_day
        )

    def total_price(self) -> int:
        return sum(s.product.price_cents or 0 for s in self._selected)

    def cart_by_day(self) -> Dict[int, List[SelectedProduct]]:
        cart: Dict[int, List[SelectedProduct]] = {}
        for selection in self._selected:
            cart.setdefault(selection.day_index, []).append(selection)
        return dict(sorted(cart.items()))

    def clear(self) -> None:
        self._ensure_open()
        self._selected = []

    def confirm(self) -> None:
        """Called back by checkout once payment succeeded."""
        self._confirmed = True
