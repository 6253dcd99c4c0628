"""
Per-country typing rules.

Rules follow the libpostal boundary file layout, one YAML file per
country named after its lower-case ISO code:

    admin_level:
        "2": "country"
        "4": "state"
        "8": "city"
    overrides:
        id:
            relation:
                "1234": "city"
        contained_by:
            relation:
                "5678":
                    admin_level:
                        "8": "city_district"

The rule set is loaded once per run and only read afterwards.
"""

import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from .area import Area, AreaType

logger = logging.getLogger(__name__)

RULE_SUFFIXES = (".yaml", ".yml")


class RuleLoadError(ValueError):
    """A rule file could not be read or parsed."""


def _parse_levels(country_code: str, table: Optional[Mapping[Any, Any]]) -> Dict[int, AreaType]:
    levels: Dict[int, AreaType] = {}
    for level, type_name in (table or {}).items():
        if type_name is None:
            continue
        try:
            level_number = int(level)
        except (TypeError, ValueError):
            raise RuleLoadError(f"{country_code}: invalid admin level {level!r}")
        area_type = AreaType.parse(type_name)
        if area_type is None:
            logger.warning("%s: unknown type %r for level %s, ignored", country_code, type_name, level)
            continue
        levels[level_number] = area_type
    return levels


class CountryRules:
    """Typing rules of one country."""

    def __init__(
        self,
        country_code: str,
        admin_levels: Dict[int, AreaType],
        id_overrides: Optional[Dict[str, AreaType]] = None,
        contained_by: Optional[Dict[str, Dict[int, AreaType]]] = None,
    ):
        self.country_code = country_code
        self.admin_levels = admin_levels
        self.id_overrides = id_overrides or {}
        self.contained_by = contained_by or {}

    @classmethod
    def from_dict(cls, country_code: str, data: Mapping[str, Any]) -> "CountryRules":
        """Parse the content of a libpostal-style rule file."""
        if not isinstance(data, Mapping):
            raise RuleLoadError(f"{country_code}: rule file is not a mapping")

        admin_levels = _parse_levels(country_code, data.get("admin_level"))
        overrides = data.get("overrides") or {}

        id_overrides: Dict[str, AreaType] = {}
        for kind, entries in (overrides.get("id") or {}).items():
            for object_id, type_name in (entries or {}).items():
                area_type = AreaType.parse(type_name)
                if area_type is None:
                    logger.warning("%s: unknown type %r for %s:%s, ignored", country_code, type_name, kind, object_id)
                    continue
                id_overrides[f"{kind}:{object_id}"] = area_type

        contained_by: Dict[str, Dict[int, AreaType]] = {}
        for kind, entries in (overrides.get("contained_by") or {}).items():
            for object_id, sub_rules in (entries or {}).items():
                contained_by[f"{kind}:{object_id}"] = _parse_levels(
                    country_code, (sub_rules or {}).get("admin_level")
                )

        return cls(country_code, admin_levels, id_overrides, contained_by)

    def get_type(self, area: Area, inclusions: Sequence[int], all_areas: Sequence[Area]) -> Optional[AreaType]:
        """
        Find the type of an area with these rules.

        Lookup order: an override on the area itself, then the level table
        of the tightest container having one, then the country table.

        Returns:
            The type, or None if no rule applies
        """
        override = self.id_overrides.get(area.source_id)
        if override is not None:
            return override
        if area.admin_level is None:
            return None

        for container_id in inclusions:
            levels = self.contained_by.get(all_areas[container_id].source_id)
            if levels is not None:
                return levels.get(area.admin_level)

        return self.admin_levels.get(area.admin_level)


class RuleSet:
    """Rules of every known country, keyed by lower-case country code."""

    def __init__(self, rules: Optional[Dict[str, CountryRules]] = None):
        self._rules = {code.lower(): r for code, r in (rules or {}).items()}

    def get(self, country_code: str) -> Optional[CountryRules]:
        return self._rules.get(country_code.lower())

    def __contains__(self, country_code: str) -> bool:
        return country_code.lower() in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def countries(self) -> List[str]:
        return sorted(self._rules)

    @classmethod
    def from_mapping(cls, tables: Mapping[str, Mapping[Any, Union[str, AreaType]]]) -> "RuleSet":
        """
        Build a rule set from plain level tables.

        Args:
            tables: country code -> {admin level -> type or type name}
        """
        rules = {}
        for code, table in tables.items():
            levels: Dict[int, AreaType] = {}
            for level, value in table.items():
                area_type = value if isinstance(value, AreaType) else AreaType.parse(value)
                if area_type is None:
                    raise RuleLoadError(f"{code}: unknown type {value!r} for level {level}")
                levels[int(level)] = area_type
            rules[code] = CountryRules(code.lower(), levels)
        return cls(rules)

    @classmethod
    def from_files(cls, files: Iterable[Tuple[str, str]]) -> "RuleSet":
        """
        Parse rule files.

        Args:
            files: (file name, YAML text) pairs; the country code is the
                file name without its suffix
        """
        rules = {}
        for name, text in files:
            code = name.rsplit(".", 1)[0].lower()
            try:
                data = yaml.safe_load(text) or {}
            except yaml.YAMLError as e:
                raise RuleLoadError(f"{name}: {e}") from e
            rules[code] = CountryRules.from_dict(code, data)
        logger.info("rules loaded for %d countries", len(rules))
        return cls(rules)

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "RuleSet":
        path = Path(path)
        if not path.is_dir():
            raise FileNotFoundError(f"rules directory not found: {path}")
        files = sorted(p for p in path.iterdir() if p.suffix in RULE_SUFFIXES)
        return cls.from_files((p.name, p.read_text(encoding="utf-8")) for p in files)

    @classmethod
    def default(cls) -> "RuleSet":
        """Rules bundled with the package."""
        folder = resources.files("geo_ontology") / "data" / "rules"
        files = sorted(
            (entry.name, entry.read_text(encoding="utf-8"))
            for entry in folder.iterdir()
            if entry.name.endswith(RULE_SUFFIXES)
        )
        return cls.from_files(files)


def load_rules(rules_dir: Optional[Union[str, Path]] = None) -> RuleSet:
    """Load rules from a directory, or the bundled ones if none is given."""
    if rules_dir is None:
        return RuleSet.default()
    return RuleSet.from_directory(rules_dir)
