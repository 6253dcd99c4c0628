"""
geo-ontology: hierarchical geographic ontology builder.

This package turns administrative boundaries and named places into a
typed hierarchy of areas: every area is placed under the tightest area
containing it, typed from per-country rules, and labeled; places not
covered by any boundary become synthetic areas.
"""

__version__ = "0.1.0"

from .area import Area, AreaType
from .quadtree import QuadTree, Rectangle
from .builder import QuadTreeBuilder, IndexConfig, build_index
from .inclusion import find_inclusions
from .country_finder import CountryFinder
from .rules import RuleSet, CountryRules, RuleLoadError, load_rules
from .typer import AreaTyper, TypingError, UnknownCountryRules, UnknownAdminLevel
from .hierarchy import build_hierarchy
from .additional_places import compute_additional_places
from .labels import compute_labels
from .osm import OsmObject, get_areas_and_stats
from .stats import OntologyStats
from .ontology import (
    Ontology,
    OntologyConfig,
    OntologyError,
    NoCountrySourceError,
    create_ontology,
    build_ontology,
    merge_ontologies,
)
from .serialize import read_ontology, write_ontology

__all__ = [
    "Area",
    "AreaType",
    "QuadTree",
    "Rectangle",
    "QuadTreeBuilder",
    "IndexConfig",
    "build_index",
    "find_inclusions",
    "CountryFinder",
    "RuleSet",
    "CountryRules",
    "RuleLoadError",
    "load_rules",
    "AreaTyper",
    "TypingError",
    "UnknownCountryRules",
    "UnknownAdminLevel",
    "build_hierarchy",
    "compute_additional_places",
    "compute_labels",
    "OsmObject",
    "get_areas_and_stats",
    "OntologyStats",
    "Ontology",
    "OntologyConfig",
    "OntologyError",
    "NoCountrySourceError",
    "create_ontology",
    "build_ontology",
    "merge_ontologies",
    "write_ontology",
    "read_ontology",
]
