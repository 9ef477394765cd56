"""
Stone Resolver - map a loosely-typed stone reference to an inventory record

Lookup order, first hit wins:
  1. internal id, when the reference is UUID-shaped
  2. gem code (case-insensitive)
  3. fuzzy (stone_type, carat) match within the carat tolerance

Fuzzy hits exist for legacy/malformed references. They are flagged on the
result and logged so they can be audited; callers never get an unflagged guess.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from gemtrade.config import settings
from gemtrade.models import InventoryItem
from gemtrade.services.stores import InventoryStore
from gemtrade.utils.gst import to_decimal

logger = logging.getLogger(__name__)


class MatchKind(str, enum.Enum):
    EXACT = "EXACT"
    CODE = "CODE"
    FUZZY = "FUZZY"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class StoneResolution:
    reference: str
    kind: MatchKind
    item: Optional[InventoryItem] = None
    # 1.0 for id/code matches; (0.5, 1.0] for fuzzy, falling with carat distance
    confidence: float = 0.0

    @property
    def found(self) -> bool:
        return self.item is not None

    @property
    def is_fallback(self) -> bool:
        return self.kind == MatchKind.FUZZY


def parse_uuid(reference: str) -> Optional[UUID]:
    try:
        return UUID(str(reference).strip())
    except (ValueError, AttributeError, TypeError):
        return None


class StoneResolver:
    """Resolves stone references against the inventory store."""

    def __init__(self, store: InventoryStore, carat_tolerance=None):
        self.store = store
        tolerance = settings.FUZZY_CARAT_TOLERANCE if carat_tolerance is None else carat_tolerance
        self.carat_tolerance = to_decimal(tolerance)

    def resolve(
        self,
        reference: str,
        stone_type: Optional[str] = None,
        carat=None,
    ) -> StoneResolution:
        ref = (reference or "").strip()

        item_id = parse_uuid(ref)
        if item_id is not None:
            item = self.store.get_item(item_id)
            if item is not None:
                return StoneResolution(ref, MatchKind.EXACT, item, 1.0)

        if ref:
            item = self.store.get_item_by_code(ref)
            if item is not None:
                return StoneResolution(ref, MatchKind.CODE, item, 1.0)

        if stone_type and carat is not None:
            resolution = self._fuzzy(ref, stone_type, to_decimal(carat))
            if resolution is not None:
                return resolution

        return StoneResolution(ref, MatchKind.NOT_FOUND)

    def _fuzzy(self, reference: str, stone_type: str, carat: Decimal) -> Optional[StoneResolution]:
        candidates = self.store.find_by_type_and_carat(
            stone_type, carat - self.carat_tolerance, carat + self.carat_tolerance
        )
        if not candidates:
            return None
        # Closest carat wins; prefer stones with stock; gem code breaks ties deterministically
        best = min(
            candidates,
            key=lambda it: (abs(to_decimal(it.carat) - carat), not it.is_available, it.gem_code),
        )
        distance = abs(to_decimal(best.carat) - carat)
        if self.carat_tolerance > 0:
            confidence = float(1 - (distance / self.carat_tolerance) / 2)
        else:
            confidence = 1.0
        logger.warning(
            "Fuzzy stone match: reference=%r type=%s carat=%s -> %s (carat %s, confidence %.2f, %d candidates)",
            reference, stone_type, carat, best.gem_code, best.carat, confidence, len(candidates),
        )
        return StoneResolution(reference, MatchKind.FUZZY, best, round(confidence, 2))
