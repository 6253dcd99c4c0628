"""Tests for quadtree data structures."""

import pytest
from shapely.geometry import Point, box

from geo_ontology.quadtree import (
    Rectangle,
    IndexItem,
    LeafNode,
    InternalNode,
    QuadTree,
)


def _item(rect, payload, order=0, geometry=None):
    return IndexItem(rect, payload, order, geometry)


class TestRectangle:
    """Tests for Rectangle class."""

    def test_basic_creation(self):
        """Test basic rectangle creation."""
        r = Rectangle(0, 10, 0, 10)
        assert r.x0 == 0
        assert r.x1 == 10
        assert r.y0 == 0
        assert r.y1 == 10

    def test_invalid_rectangle(self):
        """Test that invalid rectangles raise errors."""
        with pytest.raises(ValueError):
            Rectangle(10, 0, 0, 10)  # x0 > x1

        with pytest.raises(ValueError):
            Rectangle(0, 10, 10, 0)  # y0 > y1

    def test_from_bounds(self):
        """Test conversion from shapely bounds order."""
        r = Rectangle.from_bounds(box(1, 2, 3, 4).bounds)
        assert r == Rectangle(1, 3, 2, 4)

    def test_point_rectangle(self):
        """Test zero-size rectangles."""
        r = Rectangle.from_point(5, 5)
        assert r.is_point()
        assert r.area == 0
        assert not Rectangle(0, 1, 0, 1).is_point()

    def test_width_height_area(self):
        """Test width, height and area properties."""
        r = Rectangle(0, 10, 0, 20)
        assert r.width == 10
        assert r.height == 20
        assert r.area == 200

    def test_contains_point(self):
        """Test point containment, edges included."""
        r = Rectangle(0, 10, 0, 10)
        assert r.contains_point(5, 5)
        assert r.contains_point(0, 0)
        assert r.contains_point(10, 10)
        assert not r.contains_point(11, 5)
        assert not r.contains_point(-1, 5)

    def test_contains_rectangle(self):
        """Test rectangle containment."""
        r = Rectangle(0, 10, 0, 10)
        assert r.contains(Rectangle(2, 3, 2, 3))
        assert r.contains(r)
        assert not r.contains(Rectangle(5, 15, 5, 6))

    def test_intersects(self):
        """Test intersection, touching edges included."""
        r = Rectangle(0, 10, 0, 10)
        assert r.intersects(Rectangle(5, 15, 5, 15))
        assert r.intersects(Rectangle(10, 20, 0, 10))
        assert not r.intersects(Rectangle(11, 20, 0, 10))

    def test_union(self):
        """Test bounding union."""
        assert Rectangle(0, 1, 0, 1).union(Rectangle(5, 6, -2, 0)) == Rectangle(0, 6, -2, 1)

    def test_distance_to_point(self):
        """Test distance from a point to the rectangle."""
        r = Rectangle(0, 10, 0, 10)
        assert r.distance_to_point(5, 5) == 0
        assert r.distance_to_point(13, 5) == 3
        assert r.distance_to_point(13, 14) == pytest.approx(5.0)

    def test_subdivide(self):
        """Test subdivision order NW, NE, SW, SE."""
        r = Rectangle(0, 10, 0, 10)
        children = r.subdivide()

        assert len(children) == 4
        assert children[0] == Rectangle(0, 5, 5, 10)
        assert children[1] == Rectangle(5, 10, 5, 10)
        assert children[2] == Rectangle(0, 5, 0, 5)
        assert children[3] == Rectangle(5, 10, 0, 5)

    def test_child_index_for_rect(self):
        """Test child index determination."""
        r = Rectangle(0, 10, 0, 10)

        assert r.child_index_for_rect(Rectangle(1, 2, 8, 9)) == 0  # NW
        assert r.child_index_for_rect(Rectangle(8, 9, 8, 9)) == 1  # NE
        assert r.child_index_for_rect(Rectangle(1, 2, 1, 2)) == 2  # SW
        assert r.child_index_for_rect(Rectangle(8, 9, 1, 2)) == 3  # SE

    def test_child_index_straddling(self):
        """Test that a rectangle crossing a split line has no child."""
        r = Rectangle(0, 10, 0, 10)
        assert r.child_index_for_rect(Rectangle(4, 6, 1, 2)) is None
        assert r.child_index_for_rect(Rectangle(1, 2, 4, 6)) is None


class TestLeafNode:
    """Tests for LeafNode class."""

    def test_counts(self):
        """Test node and leaf counts."""
        leaf = LeafNode([])
        assert leaf.is_leaf()
        assert leaf.node_count() == 1
        assert leaf.leaf_count() == 1
        assert leaf.max_depth() == 0

    def test_query(self):
        """Test that a leaf returns its intersecting items."""
        a = _item(Rectangle(0, 1, 0, 1), "a")
        b = _item(Rectangle(5, 6, 5, 6), "b")
        leaf = LeafNode([a, b])

        found = []
        leaf.query(Rectangle(0, 2, 0, 2), Rectangle(0, 6, 0, 6), found)
        assert found == [a]


class TestInternalNode:
    """Tests for InternalNode class."""

    def test_invalid_children_count(self):
        """Test that wrong number of children raises error."""
        with pytest.raises(ValueError):
            InternalNode([LeafNode([]), LeafNode([])], [])

    def test_counts_with_none_children(self):
        """Test counts with some None children."""
        node = InternalNode([LeafNode([]), None, LeafNode([]), None], [])
        assert not node.is_leaf()
        assert node.node_count() == 3
        assert node.leaf_count() == 2
        assert node.max_depth() == 1

    def test_query_routes_to_children(self):
        """Test that queries only descend into intersecting quadrants."""
        nw = _item(Rectangle(1, 2, 8, 9), "nw")
        se = _item(Rectangle(8, 9, 1, 2), "se")
        middle = _item(Rectangle(4, 6, 4, 6), "middle")
        node = InternalNode([LeafNode([nw]), None, None, LeafNode([se])], [middle])

        found = []
        node.query(Rectangle(0, 3, 7, 10), Rectangle(0, 10, 0, 10), found)
        assert found == [nw]

        found = []
        node.query(Rectangle(5, 9, 1, 5), Rectangle(0, 10, 0, 10), found)
        assert set(i.payload for i in found) == {"middle", "se"}


class TestQuadTree:
    """Tests for QuadTree class."""

    def _tree(self):
        items = [
            _item(Rectangle(0, 1, 0, 1), "a", 0, box(0, 0, 1, 1)),
            _item(Rectangle(8, 9, 8, 9), "b", 1, box(8, 8, 9, 9)),
            _item(Rectangle(4, 6, 4, 6), "c", 2, box(4, 4, 6, 6)),
        ]
        root = InternalNode(
            [None, LeafNode([items[1]]), LeafNode([items[0]]), None],
            [items[2]],
        )
        return QuadTree(root, Rectangle(0, 9, 0, 9), 3)

    def test_empty_tree(self):
        """Test queries on an empty tree."""
        tree = QuadTree(LeafNode([]), Rectangle(0, 0, 0, 0), 0)
        assert tree.is_empty()
        assert tree.query(Rectangle(0, 1, 0, 1)) == []
        assert tree.nearest(0, 0) == []

    def test_query_insertion_order(self):
        """Test that results come back in insertion order."""
        tree = self._tree()
        assert tree.query(Rectangle(0, 9, 0, 9)) == ["a", "b", "c"]

    def test_query_outside_bounds(self):
        """Test that a query outside the tree finds nothing."""
        tree = self._tree()
        assert tree.query(Rectangle(20, 30, 20, 30)) == []

    def test_query_point(self):
        """Test point queries."""
        tree = self._tree()
        assert tree.query_point(5, 5) == ["c"]
        assert tree.query_point(3, 3) == []

    def test_nearest(self):
        """Test nearest neighbour ordering."""
        tree = self._tree()
        assert tree.nearest(0.5, 0.5) == ["a"]
        assert tree.nearest(7.5, 7.5, k=2) == ["b", "c"]
        assert tree.nearest(100, 100, k=5) == ["b", "c", "a"]

    def test_nearest_custom_distance(self):
        """Test nearest with an explicit distance function."""
        tree = self._tree()
        # Distance from each item's geometry centroid to the origin
        origin = Point(0, 0)
        result = tree.nearest(0, 0, k=3, distance=lambda item: item.geometry.centroid.distance(origin))
        assert result == ["a", "c", "b"]

    def test_nearest_invalid_k(self):
        """Test that k must be positive."""
        with pytest.raises(ValueError):
            self._tree().nearest(0, 0, k=0)

    def test_counts(self):
        """Test node, leaf and depth counts."""
        tree = self._tree()
        assert len(tree) == 3
        assert tree.node_count == 3
        assert tree.leaf_count == 2
        assert tree.depth == 1
