"""
Country lookup for areas lacking an explicit country code.
"""

import logging
from typing import Dict, Optional, Sequence

from .area import Area
from .builder import IndexConfig, QuadTreeBuilder
from .quadtree import QuadTree, Rectangle

logger = logging.getLogger(__name__)

COUNTRY_ADMIN_LEVEL = 2


class CountryFinder:
    """
    Geometry index restricted to the areas representing whole countries.

    A country is an area of admin level 2 carrying an ISO 3166-1 tag.
    """

    def __init__(self, countries: Dict[int, str], geometries: Dict[int, object], index: QuadTree):
        self.countries = countries
        self._geometries = geometries
        self._index = index

    @classmethod
    def init(cls, areas: Sequence[Area], config: Optional[IndexConfig] = None) -> "CountryFinder":
        countries: Dict[int, str] = {}
        geometries: Dict[int, object] = {}
        for area in areas:
            if area.admin_level != COUNTRY_ADMIN_LEVEL or not area.has_geometry():
                continue
            code = area.iso_country_code()
            if code is None:
                continue
            countries[area.id] = code
            geometries[area.id] = area.geometry

        index = QuadTreeBuilder(config).build((geometries[i], i) for i in countries)
        logger.info("%d countries found", len(countries))
        return cls(countries, geometries, index)

    def __len__(self) -> int:
        return len(self.countries)

    def is_empty(self) -> bool:
        return not self.countries

    def find_country(self, area: Area, inclusions: Sequence[int]) -> Optional[str]:
        """
        Find the country code of an area.

        Args:
            area: Area to locate
            inclusions: Containment list of the area, tightest first

        Returns:
            The upper-case country code, or None if no country encloses it
        """
        own = self.countries.get(area.id)
        if own is not None:
            return own

        for container_id in inclusions:
            code = self.countries.get(container_id)
            if code is not None:
                return code

        point = area.representative_point()
        if point is None:
            return None
        for country_id in self._index.query(Rectangle.from_point(point.x, point.y)):
            if self._geometries[country_id].covers(point):
                return self.countries[country_id]
        return None
