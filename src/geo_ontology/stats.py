"""
Statistics collected while building an ontology.

Counters are written once per area and combined by addition, so that the
typing pass can collect into a fresh instance and merge it into the run
statistics afterwards.
"""

from collections import Counter
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Iterable, Optional


@dataclass
class OntologyStats:
    """Aggregate counters of an ontology build."""

    level_counts: Dict[int, int] = field(default_factory=dict)
    """Final areas per admin level (0 for areas without level)."""

    area_type_counts: Dict[str, int] = field(default_factory=dict)
    """Final areas per semantic type."""

    unknown_country_rules: Dict[str, int] = field(default_factory=dict)
    """Areas whose country has no rule table, per country code."""

    unhandled_admin_level: Dict[str, Dict[int, int]] = field(default_factory=dict)
    """Areas whose level is missing from their country's table."""

    areas_without_country: int = 0
    areas_without_boundary: int = 0
    typing_candidates: int = 0
    typed_areas: int = 0
    additional_places: int = 0
    uncovered_places: int = 0
    colocated_places: int = 0
    pruned_areas: int = 0

    def record_unknown_country(self, country_code: str) -> None:
        self.unknown_country_rules[country_code] = self.unknown_country_rules.get(country_code, 0) + 1

    def record_unhandled_level(self, country_code: str, admin_level: Optional[int]) -> None:
        levels = self.unhandled_admin_level.setdefault(country_code, {})
        level = admin_level or 0
        levels[level] = levels.get(level, 0) + 1

    @property
    def unmapped_areas(self) -> int:
        """Areas that had a country but no applicable rule."""
        return sum(self.unknown_country_rules.values()) + sum(
            count for levels in self.unhandled_admin_level.values() for count in levels.values()
        )

    def merge(self, other: "OntologyStats") -> "OntologyStats":
        """Add every counter of other into this instance and return it."""
        _add_counts(self.level_counts, other.level_counts)
        _add_counts(self.area_type_counts, other.area_type_counts)
        _add_counts(self.unknown_country_rules, other.unknown_country_rules)
        for country, levels in other.unhandled_admin_level.items():
            _add_counts(self.unhandled_admin_level.setdefault(country, {}), levels)

        self.areas_without_country += other.areas_without_country
        self.areas_without_boundary += other.areas_without_boundary
        self.typing_candidates += other.typing_candidates
        self.typed_areas += other.typed_areas
        self.additional_places += other.additional_places
        self.uncovered_places += other.uncovered_places
        self.colocated_places += other.colocated_places
        self.pruned_areas += other.pruned_areas
        return self

    def compute(self, areas: Iterable[Any]) -> None:
        """Recount the per-level and per-type counters from the final areas."""
        levels: Counter = Counter()
        types: Counter = Counter()
        for area in areas:
            levels[area.admin_level or 0] += 1
            if area.area_type is not None:
                types[area.area_type.value] += 1
        self.level_counts = dict(sorted(levels.items()))
        self.area_type_counts = dict(sorted(types.items()))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OntologyStats":
        """
        Rebuild statistics written by to_dict(), possibly through JSON.

        JSON turns the admin level keys into strings; they are read back
        as integers. Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        stats = cls(**values)
        stats.level_counts = {int(level): count for level, count in stats.level_counts.items()}
        stats.unhandled_admin_level = {
            country: {int(level): count for level, count in levels.items()}
            for country, levels in stats.unhandled_admin_level.items()
        }
        return stats


def _add_counts(target: Dict[Any, int], source: Dict[Any, int]) -> None:
    for key, count in source.items():
        target[key] = target.get(key, 0) + count
