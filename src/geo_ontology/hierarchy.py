"""
Parent assignment from containment lists.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from .area import Area

logger = logging.getLogger(__name__)

SIZE_TOLERANCE = 1e-9
"""Relative difference under which two surfaces count as equal."""


def _level_key(area: Area) -> int:
    # Areas without level rank as the most local ones
    return area.admin_level if area.admin_level is not None else 1 << 30


def same_size(a: Area, b: Area) -> bool:
    """True for surfaces equal up to float noise (duplicate polygons)."""
    return math.isclose(a.size, b.size, rel_tol=SIZE_TOLERANCE)


def tie_key(area: Area) -> Tuple[int, int]:
    """Order among areas of the same surface: lower admin level, then lower id, is outer."""
    return (-_level_key(area), -area.id)


def is_outer(candidate: Area, area: Area) -> bool:
    """
    Check if candidate ranks strictly above area.

    Larger areas are outer; surfaces equal up to SIZE_TOLERANCE are
    compared with tie_key(). Vertex order changes the computed surface
    of a duplicate polygon in its last digits, hence the tolerance.
    """
    if same_size(candidate, area):
        return tie_key(candidate) > tie_key(area)
    return candidate.size > area.size


def can_be_parent(candidate: Area, area: Area) -> bool:
    """
    Check if candidate, known to contain area, may be its parent.

    The parent must be typed administrative, strictly coarser than a typed
    administrative child, and outer (see is_outer()). Untyped and
    non-administrative areas are never parents, so every chain of parents
    climbs strictly in rank after its first step and cannot loop.
    """
    if not candidate.is_admin():
        return False
    if area.is_admin() and candidate.area_type.rank <= area.area_type.rank:
        return False
    return is_outer(candidate, area)


def select_parent(area: Area, inclusions: Sequence[int], areas: Sequence[Area]) -> Optional[int]:
    """
    Choose the parent of an area among its containers.

    The tightest eligible container wins; ties on surface prefer the higher
    admin level, then the lowest id.

    Returns:
        The parent id, or None when the area is a root
    """
    candidates = [areas[i] for i in inclusions if can_be_parent(areas[i], area)]
    if not candidates:
        return None

    smallest = min(candidates, key=lambda c: c.size)
    tied = [c for c in candidates if same_size(c, smallest)]
    best = min(tied, key=lambda c: (-_level_key(c), c.id))
    return best.id


def build_hierarchy(areas: List[Area], inclusions: Sequence[Sequence[int]]) -> None:
    """
    Set the parent of every area.

    Args:
        areas: All areas, mutated in place
        inclusions: Containment list of every area, tightest first
    """
    logger.info("building the hierarchy")
    parents = [select_parent(area, inclusions[area.id], areas) for area in areas]
    for area, parent in zip(areas, parents):
        area.parent = parent
    logger.info("%d root areas", sum(1 for p in parents if p is None))
