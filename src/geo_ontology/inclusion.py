"""
Inclusion resolution: which areas geometrically contain each area.

Candidates are pruned with the geometry index before the exact polygon
test, so that only areas whose boxes intersect are ever compared.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from shapely.prepared import prep

from .area import Area
from .builder import IndexConfig, QuadTreeBuilder
from .quadtree import QuadTree

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.01
"""Share of an area's surface allowed to fall outside its container."""


def contains(container: Area, area: Area, tolerance: float = DEFAULT_TOLERANCE, prepared=None) -> bool:
    """
    Check if container holds area, up to tolerance.

    Source boundaries that share a border rarely match exactly, so an area
    counts as contained when the intersection covers at least
    (1 - tolerance) of its surface.

    Args:
        container: Enclosing candidate
        area: Area tested
        tolerance: Fraction of area's surface allowed outside container
        prepared: Prepared geometry of container, if already computed
    """
    if container.id == area.id or container.size <= 0.0 or area.size <= 0.0:
        return False
    if container.size < area.size * (1.0 - tolerance):
        return False

    prepared = prepared or prep(container.geometry)
    if prepared.contains(area.geometry):
        return True
    if tolerance <= 0.0 or not prepared.intersects(area.geometry):
        return False
    shared = container.geometry.intersection(area.geometry).area
    return shared >= (1.0 - tolerance) * area.size


def build_area_index(areas: Sequence[Area], config: Optional[IndexConfig] = None) -> QuadTree:
    """Index the areas with a surface by their bounding boxes; payloads are area ids."""
    builder = QuadTreeBuilder(config)
    return builder.build(
        (area.geometry if area.size > 0.0 else None, area.id) for area in areas
    )


def find_inclusions(
    areas: Sequence[Area],
    tolerance: float = DEFAULT_TOLERANCE,
    config: Optional[IndexConfig] = None,
) -> Tuple[List[List[int]], QuadTree]:
    """
    Compute the containment list of every area.

    Args:
        areas: All areas, indexed by id
        tolerance: Containment tolerance (see contains())
        config: Index configuration

    Returns:
        Tuple of (inclusions, index) where inclusions[i] lists the ids of
        the areas containing area i, tightest first, and index is the
        geometry index built over the areas
    """
    logger.info("computing inclusions of %d areas", len(areas))
    index = build_area_index(areas, config)
    prepared_cache: Dict[int, object] = {}
    inclusions: List[List[int]] = []

    for area in areas:
        if area.size <= 0.0:
            inclusions.append([])
            continue

        containers = []
        for candidate_id in index.query(area.bounds):
            candidate = areas[candidate_id]
            if candidate_id == area.id or candidate.size < area.size * (1.0 - tolerance):
                continue
            prepared = prepared_cache.get(candidate_id)
            if prepared is None:
                prepared = prepared_cache[candidate_id] = prep(candidate.geometry)
            if contains(candidate, area, tolerance, prepared):
                containers.append(candidate_id)

        containers.sort(key=lambda i: (areas[i].size, i))
        inclusions.append(containers)

    logger.info(
        "%d containment links found",
        sum(len(containers) for containers in inclusions),
    )
    return inclusions, index
