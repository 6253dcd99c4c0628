"""Shared fixtures: small synthetic boundary datasets."""

import pytest
from shapely.geometry import Point, box

from geo_ontology.area import Area
from geo_ontology.osm import OsmObject
from geo_ontology.rules import RuleSet


def _relation(osm_id, name, level, geometry, **tags):
    all_tags = {
        "boundary": "administrative",
        "admin_level": str(level),
        "name": name,
    }
    all_tags.update(tags)
    return OsmObject(
        source_id=f"relation:{osm_id}",
        kind="relation",
        tags=all_tags,
        geometry=geometry,
    )


def _place(osm_id, name, x, y, kind="village", **tags):
    all_tags = {"place": kind, "name": name}
    all_tags.update(tags)
    return OsmObject(
        source_id=f"node:{osm_id}",
        kind="node",
        tags=all_tags,
        geometry=Point(x, y),
    )


@pytest.fixture
def make_relation():
    """Factory for administrative relations."""
    return _relation


@pytest.fixture
def make_place():
    """Factory for place nodes."""
    return _place


@pytest.fixture
def make_area():
    """Factory for bare areas, id given explicitly."""
    def factory(area_id, geometry, admin_level=None, name=None, **kwargs):
        return Area(
            id=area_id,
            source_id=f"relation:{area_id}",
            name=name or f"area{area_id}",
            geometry=geometry,
            admin_level=admin_level,
            **kwargs,
        )
    return factory


@pytest.fixture
def nested_objects():
    """Country (2) > region (4) > city (8), properly nested squares."""
    objects = [
        _relation(1, "France", 2, box(0, 0, 100, 100), **{"ISO3166-1:alpha2": "FR", "name:en": "France"}),
        _relation(2, "Bretagne", 4, box(10, 10, 60, 60), **{"name:en": "Brittany"}),
        _relation(3, "Rennes", 8, box(20, 20, 30, 30)),
    ]
    return {obj.source_id: obj for obj in objects}


@pytest.fixture
def fr_rules():
    """Rule table {2: country, 4: region, 8: city} for FR."""
    return RuleSet.from_mapping({"fr": {2: "country", 4: "region", 8: "city"}})
