"""
Ontology construction pipeline.

Steps, in order:
1. containment lists of every area
2. country resolution and typing (parallel map, sequential merge)
3. parent links
4. synthetic areas for orphan places (optional)
5. names and labels
6. removal of the untyped areas, which renumbers every area

Only the absence of any country source aborts a run; every per-area
problem ends up in the statistics.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence

from .additional_places import compute_additional_places
from .area import Area
from .builder import IndexConfig
from .country_finder import CountryFinder
from .hierarchy import build_hierarchy
from .inclusion import DEFAULT_TOLERANCE, find_inclusions
from .labels import compute_labels, compute_names
from .osm import OsmObject, get_areas_and_stats
from .rules import RuleSet
from .stats import OntologyStats
from .typer import AreaTyper, TypingOutcome, UnknownAdminLevel, UnknownCountryRules

logger = logging.getLogger(__name__)


class OntologyError(Exception):
    """The ontology cannot be built."""


class NoCountrySourceError(OntologyError):
    """Neither a global country code nor any country area is available."""


@dataclass
class OntologyConfig:
    """Configuration of an ontology build."""

    country_code: Optional[str] = None
    """Country of every area; skips the per-area country resolution."""

    attribute_places: bool = True
    """Create synthetic areas for orphan place nodes."""

    langs: List[str] = field(default_factory=list)
    """Languages to compute names and labels for."""

    max_workers: Optional[int] = None
    """Threads used for typing (None lets the executor decide)."""

    containment_tolerance: float = DEFAULT_TOLERANCE
    index_max_items: int = 16
    index_max_depth: int = 24

    def __post_init__(self):
        if self.country_code is not None:
            self.country_code = self.country_code.strip().upper()
            if not self.country_code:
                raise ValueError("country_code must not be empty")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if not 0.0 <= self.containment_tolerance < 1.0:
            raise ValueError("containment_tolerance must be in [0, 1)")
        self.langs = [lang.strip() for lang in self.langs if lang.strip()]

    @property
    def index_config(self) -> IndexConfig:
        return IndexConfig(max_items=self.index_max_items, max_depth=self.index_max_depth)


@dataclass
class Ontology:
    """The typed, parented and labeled areas of a run."""

    areas: List[Area]
    stats: OntologyStats
    source_name: str = ""


def apply_outcome(area: Area, outcome: Optional[TypingOutcome], stats: OntologyStats) -> None:
    """Write a typing outcome to its area and count it."""
    stats.typing_candidates += 1
    if outcome is None or outcome.country_code is None:
        logger.info("impossible to find a country for %s (%s), skipping", area.source_id, area.name)
        stats.areas_without_country += 1
        return

    area.country_code = outcome.country_code
    if isinstance(outcome.error, UnknownCountryRules):
        logger.info("impossible to find rules for country %s", outcome.country_code)
        stats.record_unknown_country(outcome.country_code)
    elif isinstance(outcome.error, UnknownAdminLevel):
        logger.debug(
            "impossible to find a rule for level %s for country %s",
            outcome.error.admin_level,
            outcome.country_code,
        )
        stats.record_unhandled_level(outcome.country_code, outcome.error.admin_level)
    else:
        area.area_type = outcome.area_type
        stats.typed_areas += 1


def type_areas(
    areas: List[Area],
    stats: OntologyStats,
    inclusions: List[List[int]],
    typer: AreaTyper,
    country_code: Optional[str] = None,
    max_workers: Optional[int] = None,
    index_config: Optional[IndexConfig] = None,
) -> None:
    """
    Resolve the country and the type of every area.

    The outcomes are computed in parallel from read-only inputs and
    applied afterwards in a single sequential pass.

    Raises:
        NoCountrySourceError: no country_code and no country area
    """
    logger.info("creating a countries index")
    finder = CountryFinder.init(areas, index_config)
    if country_code is None and finder.is_empty():
        raise NoCountrySourceError(
            "no country code has been provided and no country has been found, "
            "the ontology cannot be typed"
        )

    def classify(area: Area) -> Optional[TypingOutcome]:
        code = country_code or finder.find_country(area, inclusions[area.id])
        if code is None:
            return None
        return typer.classify(area, code, inclusions[area.id], areas)

    logger.info("typing %d areas", len(areas))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        outcomes = list(executor.map(classify, areas))

    typing_stats = OntologyStats()
    for area, outcome in zip(areas, outcomes):
        apply_outcome(area, outcome, typing_stats)
    stats.merge(typing_stats)


def clean_untagged_areas(areas: List[Area]) -> int:
    """
    Remove the areas without type and renumber the others.

    Ids and parent references are rewritten to the new positions, so this
    must be the last step reading areas by index.

    Returns:
        Number of areas removed

    Raises:
        OntologyError: a kept area has a removed parent
    """
    logger.info("cleaning untagged areas")
    new_ids = {}
    kept: List[Area] = []
    for area in areas:
        if area.area_type is not None:
            new_ids[area.id] = len(kept)
            kept.append(area)

    for area in kept:
        if area.parent is not None:
            if area.parent not in new_ids:
                raise OntologyError(f"parent of {area.source_id} has no type")
            area.parent = new_ids[area.parent]
        area.id = new_ids[area.id]

    removed = len(areas) - len(kept)
    areas[:] = kept
    logger.info("%d areas cleaned", removed)
    return removed


def create_ontology(
    areas: List[Area],
    stats: OntologyStats,
    config: Optional[OntologyConfig] = None,
    raw_objects: Optional[Mapping[str, OsmObject]] = None,
    rules: Optional[RuleSet] = None,
) -> None:
    """
    Run the whole pipeline on a list of areas, in place.

    Args:
        areas: Areas built from the raw objects, ids matching positions
        stats: Statistics to update
        config: Build configuration
        raw_objects: Raw objects holding the place nodes
        rules: Typing rules (bundled rules by default)

    Raises:
        NoCountrySourceError: no country source is available
    """
    config = config or OntologyConfig()
    rules = rules if rules is not None else RuleSet.default()
    logger.info("creating ontology for %d areas", len(areas))

    inclusions, index = find_inclusions(areas, config.containment_tolerance, config.index_config)

    type_areas(
        areas,
        stats,
        inclusions,
        AreaTyper(rules),
        country_code=config.country_code,
        max_workers=config.max_workers,
        index_config=config.index_config,
    )

    build_hierarchy(areas, inclusions)

    if config.attribute_places and raw_objects:
        compute_additional_places(areas, raw_objects, index, stats)

    for area in areas:
        compute_names(area, config.langs)

    compute_labels(areas, config.langs)

    stats.pruned_areas += clean_untagged_areas(areas)


def build_ontology(
    raw_objects: Mapping[str, OsmObject],
    config: Optional[OntologyConfig] = None,
    rules: Optional[RuleSet] = None,
    source_name: str = "",
) -> Ontology:
    """
    Build the ontology of a set of raw objects.

    Args:
        raw_objects: Raw objects keyed by source id
        config: Build configuration
        rules: Typing rules (bundled rules by default)
        source_name: Name of the input, kept in the result

    Returns:
        The Ontology with its final statistics
    """
    areas, stats = get_areas_and_stats(raw_objects)
    create_ontology(areas, stats, config, raw_objects, rules)
    stats.compute(areas)
    return Ontology(areas=areas, stats=stats, source_name=source_name)


def merge_ontologies(ontologies: Sequence[Ontology]) -> Ontology:
    """
    Merge several ontologies into one.

    Areas are concatenated in input order and renumbered. An area whose
    source id already appeared in an earlier ontology is dropped and the
    references to it point to the kept copy. The inputs are not modified.

    Returns:
        The merged Ontology; its statistics are the sum of the inputs',
        with the per-level and per-type counts recomputed
    """
    merged: List[Area] = []
    by_source_id: Dict[str, int] = {}
    stats = OntologyStats()
    duplicates = 0

    for ontology in ontologies:
        new_ids: Dict[int, int] = {}
        kept: List[Area] = []
        for area in ontology.areas:
            existing = by_source_id.get(area.source_id)
            if existing is not None:
                new_ids[area.id] = existing
                duplicates += 1
                continue
            new_ids[area.id] = by_source_id[area.source_id] = len(merged) + len(kept)
            kept.append(area)

        for area in kept:
            parent = new_ids.get(area.parent) if area.parent is not None else None
            if area.parent is not None and parent is None:
                raise OntologyError(f"parent of {area.source_id} is missing from {ontology.source_name}")
            merged.append(replace(area, id=new_ids[area.id], parent=parent))

        stats.merge(ontology.stats)

    stats.compute(merged)
    logger.info("%d areas merged, %d duplicates dropped", len(merged), duplicates)
    source_name = ",".join(o.source_name for o in ontologies if o.source_name)
    return Ontology(areas=merged, stats=stats, source_name=source_name)
