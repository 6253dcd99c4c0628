"""
Attribution of orphan place nodes to synthetic areas.

Many named places (villages, neighbourhoods) exist only as nodes. Each
such place is attached to the tightest administrative area enclosing it,
and receives the cell of a Voronoi tessellation of that area: the seeds
are the places of the area plus the centers of its administrative
children, and a place keeps the part of its cell that lies in the area
and outside every child.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from shapely.geometry import MultiPoint, Point
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union, voronoi_diagram

from .area import Area, AreaType
from .builder import build_index
from .osm import OsmObject, is_place, names_from_tags, polygonal
from .quadtree import QuadTree
from .stats import OntologyStats

logger = logging.getLogger(__name__)


def find_enclosing_area(point: Point, areas: Sequence[Area], index: QuadTree) -> Optional[Area]:
    """
    Find the smallest administrative area covering a point.

    Args:
        point: Location searched
        areas: All areas, indexed by id
        index: Geometry index over the areas (payloads are ids)
    """
    best = None
    for area_id in index.query_point(point.x, point.y):
        area = areas[area_id]
        if not area.is_admin() or area.synthetic:
            continue
        if not area.geometry.covers(point):
            continue
        if best is None or (area.size, area.id) < (best.size, best.id):
            best = area
    return best


def tessellate(seeds: Sequence[Point], envelope: BaseGeometry) -> List[Optional[BaseGeometry]]:
    """
    Compute the Voronoi cell of every seed.

    Cells come back from the diagram in no particular order; each one is
    matched to its seed by a nearest-neighbour query on the seeds, since
    any point inside a cell is closest to that cell's seed. Duplicate
    seeds share one cell, which goes to the first of them.

    Args:
        seeds: Seed points
        envelope: Area the diagram must at least cover

    Returns:
        One cell per seed, None for seeds that got no cell
    """
    if not seeds:
        return []
    if len(seeds) == 1:
        return [envelope]

    diagram = voronoi_diagram(MultiPoint(list(seeds)), envelope=envelope)
    seed_index = build_index((seed, i) for i, seed in enumerate(seeds))

    cells: List[Optional[BaseGeometry]] = [None] * len(seeds)
    for cell in diagram.geoms:
        if cell.is_empty:
            continue
        inside = cell.representative_point()
        nearest = seed_index.nearest(inside.x, inside.y)
        if nearest and cells[nearest[0]] is None:
            cells[nearest[0]] = cell
    return cells


def _same_name(place: OsmObject, area: Area) -> bool:
    return place.tags.get("name", "").casefold() == area.name.casefold()


def _collect_places(
    areas: Sequence[Area],
    raw_objects: Mapping[str, OsmObject],
    index: QuadTree,
) -> Tuple[Dict[int, List[OsmObject]], int]:
    label_nodes = {obj.label_node for obj in raw_objects.values() if obj.label_node}
    known = {area.source_id for area in areas}

    places_by_parent: Dict[int, List[OsmObject]] = defaultdict(list)
    uncovered = 0
    for obj in raw_objects.values():
        if not is_place(obj) or obj.source_id in label_nodes or obj.source_id in known:
            continue
        if obj.geometry is None or obj.geometry.geom_type != "Point":
            continue
        parent = find_enclosing_area(obj.geometry, areas, index)
        if parent is None:
            uncovered += 1
            continue
        if _same_name(obj, parent):
            continue
        places_by_parent[parent.id].append(obj)
    return places_by_parent, uncovered


def compute_additional_places(
    areas: List[Area],
    raw_objects: Mapping[str, OsmObject],
    index: QuadTree,
    stats: Optional[OntologyStats] = None,
) -> List[Area]:
    """
    Create synthetic areas for the places not covered by any relation.

    A place at the same location as an earlier seed (another place or a
    child center) gets no cell; it is counted in colocated_places, not
    in uncovered_places.

    Args:
        areas: All areas with their hierarchy built; new areas are appended
        raw_objects: Raw objects, place nodes among them
        index: Geometry index over the areas (see find_inclusions())
        stats: Statistics to update, if any

    Returns:
        The created areas
    """
    logger.info("computing additional places")
    places_by_parent, uncovered = _collect_places(areas, raw_objects, index)

    admin_children: Dict[int, List[Area]] = defaultdict(list)
    for area in areas:
        if area.parent is not None and area.is_admin():
            admin_children[area.parent].append(area)

    created: List[Area] = []
    colocated = 0
    for parent_id in sorted(places_by_parent):
        parent = areas[parent_id]
        places = places_by_parent[parent_id]
        children = admin_children.get(parent_id, [])

        seeds = [child.center for child in children] + [place.geometry for place in places]
        cells = tessellate(seeds, parent.geometry.envelope)
        occupied = unary_union([child.geometry for child in children]) if children else None

        for place, cell in zip(places, cells[len(children):]):
            if cell is None:
                logger.debug("place %s shares its location with another seed", place.source_id)
                colocated += 1
                continue
            boundary = cell.intersection(parent.geometry)
            if occupied is not None:
                boundary = boundary.difference(occupied)
            boundary = polygonal(boundary)
            if boundary is None:
                logger.debug("no room left for place %s in %s", place.source_id, parent.source_id)
                uncovered += 1
                continue

            area = Area(
                id=len(areas),
                source_id=place.source_id,
                name=place.tags["name"],
                geometry=boundary,
                names=names_from_tags(place.tags),
                tags=dict(place.tags),
                area_type=AreaType.NON_ADMINISTRATIVE,
                country_code=parent.country_code,
                parent=parent.id,
                center=place.geometry,
                synthetic=True,
            )
            areas.append(area)
            created.append(area)

    if stats is not None:
        stats.additional_places += len(created)
        stats.uncovered_places += uncovered
        stats.colocated_places += colocated
    logger.info(
        "%d additional places created, %d places uncovered, %d places colocated",
        len(created),
        uncovered,
        colocated,
    )
    return created
