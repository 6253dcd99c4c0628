"""
Raw geographic objects and their conversion to areas.

The reader (see duckdb_source.py) produces a mapping from source
identifier to OsmObject. Administrative relations become Areas; named
place nodes are kept aside for the orphan place attribution.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid

from .area import Area
from .stats import OntologyStats


# Values of the place tag turned into synthetic areas
PLACE_KINDS = frozenset({
    "city",
    "town",
    "village",
    "hamlet",
    "suburb",
    "quarter",
    "neighbourhood",
})


@dataclass
class OsmObject:
    """A raw object handed over by the reader."""

    source_id: str
    """Identifier as "<kind>:<id>", e.g. "relation:7444"."""

    kind: str
    """One of "relation", "way" or "node"."""

    tags: Dict[str, str] = field(default_factory=dict)

    geometry: Optional[BaseGeometry] = None
    """Boundary of a relation or location of a node; None when unresolved."""

    label_node: Optional[str] = None
    """Source id of the relation's label node, if known."""


def is_admin(obj: OsmObject) -> bool:
    return (
        obj.kind == "relation"
        and obj.tags.get("boundary") == "administrative"
        and "admin_level" in obj.tags
    )


def is_place(obj: OsmObject) -> bool:
    return (
        obj.kind == "node"
        and obj.tags.get("place") in PLACE_KINDS
        and bool(obj.tags.get("name"))
    )


def parse_admin_level(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def names_from_tags(tags: Mapping[str, str]) -> Dict[str, str]:
    """Collect the "name:<lang>" tags into a lang -> name mapping."""
    names = {}
    for key, value in tags.items():
        if key.startswith("name:") and value:
            lang = key[len("name:"):]
            if lang:
                names[lang] = value
    return names


def polygonal(geometry: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """
    Keep the polygonal part of a geometry, repairing it if needed.

    Returns:
        A valid Polygon or MultiPolygon, or None if nothing is left
    """
    if geometry is None or geometry.is_empty:
        return None
    if not geometry.is_valid:
        geometry = make_valid(geometry)

    if isinstance(geometry, (Polygon, MultiPolygon)):
        polygons = [geometry]
    elif hasattr(geometry, "geoms"):
        polygons = [g for g in geometry.geoms if isinstance(g, (Polygon, MultiPolygon))]
    else:
        polygons = []

    parts: List[Polygon] = []
    for polygon in polygons:
        if isinstance(polygon, MultiPolygon):
            parts.extend(p for p in polygon.geoms if not p.is_empty)
        elif not polygon.is_empty:
            parts.append(polygon)

    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return MultiPolygon(parts)


def area_from_relation(
    obj: OsmObject,
    index: int,
    objects: Mapping[str, OsmObject],
) -> Optional[Area]:
    """
    Build the Area of an administrative relation.

    Args:
        obj: Administrative relation
        index: Position the area will take in the area list
        objects: All raw objects, used to resolve the label node

    Returns:
        The Area, or None when the relation has no usable boundary
    """
    boundary = polygonal(obj.geometry)
    if boundary is None:
        return None

    center = None
    if obj.label_node is not None:
        node = objects.get(obj.label_node)
        if node is not None and node.geometry is not None and node.geometry.geom_type == "Point":
            center = node.geometry

    return Area(
        id=index,
        source_id=obj.source_id,
        name=obj.tags.get("name", ""),
        geometry=boundary,
        admin_level=parse_admin_level(obj.tags.get("admin_level")),
        names=names_from_tags(obj.tags),
        tags=dict(obj.tags),
        center=center,
    )


def get_areas_and_stats(objects: Mapping[str, OsmObject]) -> Tuple[List[Area], OntologyStats]:
    """
    Turn every administrative relation with a boundary into an Area.

    Relations without a boundary are counted and left out.
    """
    stats = OntologyStats()
    areas: List[Area] = []

    for obj in objects.values():
        if not is_admin(obj):
            continue
        area = area_from_relation(obj, len(areas), objects)
        if area is None:
            stats.areas_without_boundary += 1
            continue
        areas.append(area)

    return areas, stats
