"""
Ontology serialization module.

Formats, chosen from the output file name:
- .json: one document {"zones": [...], "meta": {...}}
- .jsonl: one area per line, no metadata
Either may end with .gz for gzip compression.

Geometries are written as GeoJSON objects.
"""

from pathlib import Path
from typing import Any, Dict, IO, Iterator, Optional, Union
import gzip
import json

from shapely.geometry import Point, mapping, shape

from .area import Area, AreaType
from .ontology import Ontology
from .stats import OntologyStats


def _open(path: Path, mode: str) -> IO[str]:
    if path.suffix == ".gz":
        return gzip.open(path, mode + "t", encoding="utf-8")
    return open(path, mode, encoding="utf-8")


def _is_jsonl(path: Path) -> bool:
    suffixes = path.suffixes
    if suffixes and suffixes[-1] == ".gz":
        suffixes = suffixes[:-1]
    return bool(suffixes) and suffixes[-1] == ".jsonl"


def area_to_dict(area: Area) -> Dict[str, Any]:
    """Serialize one area."""
    return {
        "id": area.id,
        "osm_id": area.source_id,
        "name": area.name,
        "label": area.label,
        "international_names": area.names,
        "international_labels": area.labels,
        "admin_level": area.admin_level,
        "zone_type": area.area_type.value if area.area_type else None,
        "country_code": area.country_code,
        "parent": area.parent,
        "is_generated": area.synthetic,
        "center": [area.center.x, area.center.y] if area.center is not None else None,
        "bbox": list(area.geometry.bounds) if area.has_geometry() else None,
        "geometry": mapping(area.geometry) if area.has_geometry() else None,
        "tags": area.tags,
    }


def ontology_to_dict(ontology: Ontology) -> Dict[str, Any]:
    return {
        "zones": [area_to_dict(area) for area in ontology.areas],
        "meta": {
            "source": ontology.source_name,
            "stats": ontology.stats.to_dict(),
        },
    }


def write_ontology(ontology: Ontology, path: Union[str, Path]) -> Path:
    """
    Write an ontology to a file.

    Args:
        ontology: The ontology to write
        path: Output path; its suffixes select the format

    Returns:
        The path written
    """
    path = Path(path)
    with _open(path, "w") as f:
        if _is_jsonl(path):
            for area in ontology.areas:
                f.write(json.dumps(area_to_dict(area), ensure_ascii=False))
                f.write("\n")
        else:
            json.dump(ontology_to_dict(ontology), f, ensure_ascii=False)
    return path


def iter_zones(path: Union[str, Path]) -> Iterator[Dict[str, Any]]:
    """Iterate over the serialized areas of a file written by write_ontology()."""
    path = Path(path)
    with _open(path, "r") as f:
        if _is_jsonl(path):
            for line in f:
                if line.strip():
                    yield json.loads(line)
        else:
            yield from json.load(f)["zones"]


def read_metadata(path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """Read the metadata of a .json output; JSON-lines files have none."""
    path = Path(path)
    if _is_jsonl(path):
        return None
    with _open(path, "r") as f:
        return json.load(f).get("meta")


def area_from_dict(data: Dict[str, Any]) -> Area:
    """Rebuild an area serialized by area_to_dict()."""
    center = data.get("center")
    zone_type = data.get("zone_type")
    return Area(
        id=data["id"],
        source_id=data["osm_id"],
        name=data.get("name", ""),
        geometry=shape(data["geometry"]) if data.get("geometry") else None,
        admin_level=data.get("admin_level"),
        names=data.get("international_names") or {},
        tags=data.get("tags") or {},
        area_type=AreaType(zone_type) if zone_type else None,
        country_code=data.get("country_code"),
        parent=data.get("parent"),
        labels=data.get("international_labels") or {},
        label=data.get("label", ""),
        center=Point(center) if center else None,
        synthetic=data.get("is_generated", False),
    )


def read_ontology(path: Union[str, Path]) -> Ontology:
    """
    Read an ontology written by write_ontology().

    JSON-lines files carry no metadata: their statistics are only the
    per-level and per-type counts of the areas read.
    """
    path = Path(path)
    areas = [area_from_dict(zone) for zone in iter_zones(path)]
    meta = read_metadata(path) or {}
    stats = OntologyStats.from_dict(meta.get("stats", {}))
    if not meta:
        stats.compute(areas)
    return Ontology(areas=areas, stats=stats, source_name=meta.get("source", path.name))
