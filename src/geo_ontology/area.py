"""
Area model of the geographic ontology.

An Area is identified by its position in the area list of a run. Indices
stay valid until the final prune of untyped areas (see ontology.py),
which renumbers every area and parent reference.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Dict, Iterator, Optional, Sequence

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from .quadtree import Rectangle


class AreaType(Enum):
    """Semantic type of an area, finest first."""

    SUBURB = "suburb"
    CITY_DISTRICT = "city_district"
    CITY = "city"
    STATE_DISTRICT = "state_district"
    STATE = "state"
    REGION = "country_region"
    COUNTRY = "country"
    NON_ADMINISTRATIVE = "non_administrative"

    @classmethod
    def parse(cls, value: str) -> Optional[AreaType]:
        """Parse a rule-table type name; unknown names give None."""
        return _TYPE_NAMES.get(str(value).strip().lower())

    @property
    def rank(self) -> Optional[int]:
        """Position in the administrative order; None for non-administrative."""
        return _RANKS.get(self)

    def is_administrative(self) -> bool:
        return self.rank is not None


_RANKS: Dict[AreaType, int] = {
    t: rank for rank, t in enumerate([
        AreaType.SUBURB,
        AreaType.CITY_DISTRICT,
        AreaType.CITY,
        AreaType.STATE_DISTRICT,
        AreaType.STATE,
        AreaType.REGION,
        AreaType.COUNTRY,
    ])
}

_TYPE_NAMES: Dict[str, AreaType] = {t.value: t for t in AreaType}
_TYPE_NAMES["region"] = AreaType.REGION

ISO_COUNTRY_TAGS = ("ISO3166-1:alpha2", "ISO3166-1")


def geometry_center(geometry: BaseGeometry) -> Point:
    """Centroid of a geometry, or a point guaranteed inside it when the centroid is not."""
    centroid = geometry.centroid
    if geometry.contains(centroid):
        return centroid
    return geometry.representative_point()


@dataclass(eq=False)
class Area:
    """A unit of the ontology, administrative or synthetic."""

    id: int
    source_id: str
    name: str
    geometry: Optional[BaseGeometry] = None
    admin_level: Optional[int] = None
    names: Dict[str, str] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)
    area_type: Optional[AreaType] = None
    country_code: Optional[str] = None
    parent: Optional[int] = None
    labels: Dict[str, str] = field(default_factory=dict)
    label: str = ""
    center: Optional[Point] = None
    synthetic: bool = False

    def __post_init__(self):
        if self.center is None and self.has_geometry():
            self.center = geometry_center(self.geometry)

    def has_geometry(self) -> bool:
        return self.geometry is not None and not self.geometry.is_empty

    @cached_property
    def size(self) -> float:
        """Surface of the geometry, 0 when there is none."""
        return self.geometry.area if self.has_geometry() else 0.0

    @property
    def bounds(self) -> Optional[Rectangle]:
        if not self.has_geometry():
            return None
        return Rectangle.from_bounds(self.geometry.bounds)

    def representative_point(self) -> Optional[Point]:
        if self.has_geometry():
            return self.geometry.representative_point()
        return self.center

    def is_admin(self) -> bool:
        """True once typed with an administrative type."""
        return self.area_type is not None and self.area_type.is_administrative()

    def iso_country_code(self) -> Optional[str]:
        """Country code carried by the source tags, if any."""
        for tag in ISO_COUNTRY_TAGS:
            value = self.tags.get(tag)
            if value:
                return value.upper()
        return None

    def localized_name(self, lang: Optional[str] = None) -> str:
        if lang is None:
            return self.name
        return self.names.get(lang) or self.name

    def iter_hierarchy(self, areas: Sequence[Area]) -> Iterator[Area]:
        """
        Iterate over this area then its ancestors, closest first.

        Raises:
            ValueError: if the parent references loop
        """
        seen = set()
        area: Optional[Area] = self
        while area is not None:
            if area.id in seen:
                raise ValueError(f"cycle in the hierarchy of {self.source_id}")
            seen.add(area.id)
            yield area
            area = areas[area.parent] if area.parent is not None else None

    def __repr__(self) -> str:
        kind = self.area_type.value if self.area_type else None
        return f"Area(id={self.id}, source_id={self.source_id!r}, name={self.name!r}, type={kind})"
