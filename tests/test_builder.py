"""Tests for the geometry index builder."""

import pytest
from shapely.geometry import Point, Polygon, box

from geo_ontology.builder import (
    QuadTreeBuilder,
    IndexConfig,
    build_index,
    shape_rectangle,
)
from geo_ontology.quadtree import Rectangle


class TestIndexConfig:
    """Tests for IndexConfig."""

    def test_default_config(self):
        """Test default configuration values."""
        config = IndexConfig()
        assert config.max_items == 16
        assert config.max_depth == 24

    def test_invalid_max_items(self):
        """Test that max_items < 1 raises error."""
        with pytest.raises(ValueError):
            IndexConfig(max_items=0)

    def test_invalid_max_depth(self):
        """Test that max_depth < 1 raises error."""
        with pytest.raises(ValueError):
            IndexConfig(max_depth=0)


class TestShapeRectangle:
    """Tests for shape_rectangle."""

    def test_polygon(self):
        """Test bounds of a polygon."""
        assert shape_rectangle(box(1, 2, 3, 4)) == Rectangle(1, 3, 2, 4)

    def test_point(self):
        """Test that points give zero-size rectangles."""
        assert shape_rectangle(Point(1, 2)).is_point()

    def test_rectangle_passthrough(self):
        """Test that rectangles are returned as is."""
        r = Rectangle(0, 1, 0, 1)
        assert shape_rectangle(r) is r

    def test_degenerate(self):
        """Test that missing and empty shapes give None."""
        assert shape_rectangle(None) is None
        assert shape_rectangle(Polygon()) is None


class TestQuadTreeBuilder:
    """Tests for QuadTreeBuilder."""

    def test_empty_input(self):
        """Test building from no entries."""
        tree = QuadTreeBuilder().build([])
        assert tree.is_empty()
        assert tree.query(Rectangle(0, 1, 0, 1)) == []

    def test_small_input_single_leaf(self):
        """Test that few items stay in one leaf."""
        entries = [(box(i, i, i + 1, i + 1), i) for i in range(5)]
        tree = build_index(entries)

        assert len(tree) == 5
        assert tree.node_count == 1
        assert tree.leaf_count == 1

    def test_bounds(self):
        """Test that tree bounds cover every item."""
        tree = build_index([(box(0, 0, 1, 1), "a"), (box(5, -3, 6, 2), "b")])
        assert tree.bounds == Rectangle(0, 6, -3, 2)

    def test_degenerate_entries_skipped(self):
        """Test that empty shapes are skipped and counted."""
        builder = QuadTreeBuilder()
        tree = builder.build([(box(0, 0, 1, 1), "a"), (None, "b"), (Polygon(), "c")])

        assert len(tree) == 1
        assert builder.stats.items_indexed == 1
        assert builder.stats.items_skipped == 2
        assert tree.query(Rectangle(-10, 10, -10, 10)) == ["a"]

    def test_split(self):
        """Test that many items are split into quadrants."""
        entries = [(box(x, y, x + 0.5, y + 0.5), (x, y)) for x in range(10) for y in range(10)]
        builder = QuadTreeBuilder(IndexConfig(max_items=4))
        tree = builder.build(entries)

        assert tree.node_count > 1
        assert builder.stats.internal_nodes_created > 0
        assert builder.stats.nodes_created == tree.node_count

    def test_split_query_matches_brute_force(self):
        """Test that queries on a split tree find exactly the intersecting boxes."""
        shapes = [box(x, y, x + 1.5, y + 1.5) for x in range(10) for y in range(10)]
        tree = build_index(list(zip(shapes, range(len(shapes)))), max_items=3)
        query = box(2.2, 3.1, 5.7, 4.4)

        expected = [i for i, s in enumerate(shapes) if s.intersects(query)]
        assert tree.query(Rectangle.from_bounds(query.bounds)) == expected

    def test_straddling_items_stay_queryable(self):
        """Test that a box covering every quadrant is still found."""
        entries = [(box(x, y, x + 0.1, y + 0.1), "small") for x in range(10) for y in range(10)]
        entries.append((box(0, 0, 10, 10), "big"))
        tree = build_index(entries, max_items=2)

        assert "big" in tree.query_point(7.05, 7.05)
        assert tree.query_point(7.05, 7.05).count("small") == 1

    def test_identical_boxes_depth_limited(self):
        """Test that stacked identical boxes do not recurse forever."""
        entries = [(box(0, 0, 1, 1), i) for i in range(50)]
        builder = QuadTreeBuilder(IndexConfig(max_items=2, max_depth=4))
        tree = builder.build(entries)

        assert len(tree.query_point(0.5, 0.5)) == 50
        assert builder.stats.max_depth_reached <= 4

    def test_nearest_uses_geometry(self):
        """Test that nearest uses exact geometry distance."""
        # An L-shaped polygon whose box holds the query point
        ell = Polygon([(0, 0), (10, 0), (10, 1), (1, 1), (1, 10), (0, 10)])
        square = box(6, 6, 7, 7)
        tree = build_index([(ell, "ell"), (square, "square")])

        assert tree.nearest(6.5, 5) == ["square"]
        assert tree.nearest(0.5, 0.5) == ["ell"]
