"""
Rule-based typing of areas.

The typer is a pure function of its inputs: it reads the area, its
containment list and the whole area list, and never writes to any of them.
This lets the orchestrator run it over every area in parallel.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from .area import Area, AreaType
from .rules import RuleSet


class TypingError(Exception):
    """An area could not be typed; recorded in the statistics, never fatal."""


class UnknownCountryRules(TypingError):
    """The country has no rule table."""

    def __init__(self, country_code: str):
        super().__init__(f"no rules for country {country_code}")
        self.country_code = country_code


class UnknownAdminLevel(TypingError):
    """The country's rules have no entry for the area's level."""

    def __init__(self, admin_level: Optional[int], country_code: str):
        super().__init__(f"no rule for level {admin_level} in country {country_code}")
        self.admin_level = admin_level
        self.country_code = country_code


@dataclass(frozen=True)
class TypingOutcome:
    """
    Result of typing one area.

    country_code is None when no country could be found; otherwise either
    area_type or error is set.
    """

    country_code: Optional[str] = None
    area_type: Optional[AreaType] = None
    error: Optional[TypingError] = None


class AreaTyper:
    """Assigns semantic types from per-country rule tables."""

    def __init__(self, rules: RuleSet):
        self.rules = rules

    def get_area_type(
        self,
        area: Area,
        country_code: str,
        inclusions: Sequence[int],
        all_areas: Sequence[Area],
    ) -> AreaType:
        """
        Get the type of an area.

        Raises:
            UnknownCountryRules: the country has no rules
            UnknownAdminLevel: no rule covers the area's level
        """
        country_rules = self.rules.get(country_code)
        if country_rules is None:
            raise UnknownCountryRules(country_code)

        area_type = country_rules.get_type(area, inclusions, all_areas)
        if area_type is None:
            raise UnknownAdminLevel(area.admin_level, country_code)
        return area_type

    def classify(
        self,
        area: Area,
        country_code: str,
        inclusions: Sequence[int],
        all_areas: Sequence[Area],
    ) -> TypingOutcome:
        """Like get_area_type(), with the failure captured in the outcome."""
        try:
            area_type = self.get_area_type(area, country_code, inclusions, all_areas)
        except TypingError as e:
            return TypingOutcome(country_code=country_code, error=e)
        return TypingOutcome(country_code=country_code, area_type=area_type)
