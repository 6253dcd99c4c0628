"""
DuckDB-based reader of raw geographic objects.

This module reads any vector file supported by DuckDB's spatial extension
(GeoJSON, GeoPackage, shapefile, FlatGeobuf...) and turns every feature
into an OsmObject. Feature properties become tags; the optional columns
"osm_id", "osm_type" and "label_node" give the source identifier and the
label node of relations.
"""

from pathlib import Path
from typing import Any, Dict, List, Union

import duckdb
from shapely import wkb

from .osm import OsmObject

ID_FIELD = "osm_id"
TYPE_FIELD = "osm_type"
LABEL_FIELD = "label_node"
_WKB_COLUMN = "__wkb"


def _tag_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class DuckDBSource:
    """
    Raw object reader using DuckDB spatial extension.
    """

    def __init__(self, path: Path, id_field: str = ID_FIELD, type_field: str = TYPE_FIELD):
        """
        Initialize the reader.

        Args:
            path: Path to the vector file
            id_field: Column holding the object identifier
            type_field: Column holding the object kind (relation, way, node)
        """
        self.path = Path(path)
        self.id_field = id_field
        self.type_field = type_field

        # Initialize DuckDB connection
        self._con = duckdb.connect(":memory:")
        self._con.install_extension("spatial")
        self._con.load_extension("spatial")

        self._load_features()

    def _load_features(self) -> None:
        """Load the file into DuckDB."""
        self._con.execute(
            "CREATE TABLE features AS SELECT * FROM st_read(?)",
            [str(self.path)],
        )

    def read_objects(self) -> Dict[str, OsmObject]:
        """
        Read every feature.

        Returns:
            Mapping from source id ("<kind>:<id>") to OsmObject, in file order
        """
        cursor = self._con.execute(
            f"SELECT * EXCLUDE (geom), ST_AsWKB(geom) AS {_WKB_COLUMN} FROM features"
        )
        columns: List[str] = [d[0] for d in cursor.description]

        objects: Dict[str, OsmObject] = {}
        for row_number, row in enumerate(cursor.fetchall()):
            record = dict(zip(columns, row))
            raw_geometry = record.pop(_WKB_COLUMN)
            geometry = wkb.loads(bytes(raw_geometry)) if raw_geometry is not None else None

            object_id = record.pop(self.id_field, None)
            kind = record.pop(self.type_field, None)
            label_node = record.pop(LABEL_FIELD, None)
            if kind is None:
                kind = "node" if geometry is not None and geometry.geom_type == "Point" else "relation"
            if object_id is None:
                object_id = row_number

            tags = {key: _tag_value(value) for key, value in record.items() if value is not None}
            source_id = f"{kind}:{_tag_value(object_id)}"
            objects[source_id] = OsmObject(
                source_id=source_id,
                kind=str(kind),
                tags=tags,
                geometry=geometry,
                label_node=str(label_node) if label_node is not None else None,
            )

        return objects

    def close(self) -> None:
        """Close the database connection."""
        if getattr(self, "_con", None):
            self._con.close()
            self._con = None

    def __del__(self):
        """Cleanup on garbage collection."""
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def open_source(path: Union[str, Path]) -> DuckDBSource:
    """
    Convenience function to open an input file.

    Raises:
        FileNotFoundError: the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Could not find input file {path}")
    return DuckDBSource(path)


def read_objects(path: Union[str, Path]) -> Dict[str, OsmObject]:
    """Read all raw objects of a file."""
    with open_source(path) as source:
        return source.read_objects()
