"""
Names and hierarchical labels.

A label is the area's own name followed by the names of the ancestors
that locate it for a reader: its city, its state and its country, e.g.
"Montmartre, Paris, Île-de-France, France".
"""

import logging
from typing import List, Optional, Sequence

from .area import Area, AreaType

logger = logging.getLogger(__name__)

LABEL_TYPES = frozenset({AreaType.CITY, AreaType.STATE, AreaType.COUNTRY})


def compute_names(area: Area, langs: Sequence[str]) -> None:
    """Keep only the requested languages in the area's name table."""
    if langs:
        area.names = {lang: area.names[lang] for lang in langs if area.names.get(lang)}


def build_label(area: Area, areas: Sequence[Area], lang: Optional[str] = None) -> str:
    """
    Build the label of an area in a language.

    Reads the names and types of the area's ancestors, never their labels.
    """
    parts: List[str] = []
    for ancestor in area.iter_hierarchy(areas):
        if ancestor is not area and ancestor.area_type not in LABEL_TYPES:
            continue
        name = ancestor.localized_name(lang)
        if name and (not parts or parts[-1] != name):
            parts.append(name)
    return ", ".join(parts)


def compute_labels(areas: List[Area], langs: Sequence[str]) -> None:
    """
    Compute the default label and the per-language labels of every area.

    Areas are handled one at a time: only the current one is written to,
    the rest of the list is only read.
    """
    logger.info("computing all areas' labels")
    for i in range(len(areas)):
        area = areas[i]
        area.label = build_label(area, areas)
        area.labels = {lang: build_label(area, areas, lang) for lang in langs}
