"""Shop proximity ranking.

Shops arrive from the store ordered by rating (best first). When the user's
position is known every shop is annotated with its haversine distance and the
list is re-ordered nearest first; otherwise the store order is kept.
"""
import logging
from typing import Iterable, List, Optional

from ..models import Coordinate, RankedShop, Shop
from .geo import haversine_km

logger = logging.getLogger(__name__)


def rank_shops(shops: Iterable[Shop], origin: Optional[Coordinate] = None) -> List[RankedShop]:
    """Return a ranked copy of `shops`.

    With an `origin` each entry carries `distance_km` and the list is sorted
    ascending by it (stable, so equal distances keep their rating order).
    Without one the input order is returned untouched and no distance is set.
    """
    ranked = [RankedShop(**shop.model_dump()) for shop in shops]
    if origin is None:
        return ranked

    here = origin.as_tuple()
    for entry in ranked:
        entry.distance_km = haversine_km(here, (float(entry.latitude), float(entry.longitude)))
    ranked.sort(key=lambda s: s.distance_km)
    return ranked


def filter_by_radius(ranked: List[RankedShop], radius_km: float) -> List[RankedShop]:
    """Keep ranked shops within `radius_km`; entries without a distance are kept."""
    out = [s for s in ranked if s.distance_km is None or s.distance_km <= float(radius_km)]
    logger.debug("[filter_by_radius] radius=%s kept=%d of %d", radius_km, len(out), len(ranked))
    return out
