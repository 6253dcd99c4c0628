"""
Geometry index builder.

This module builds the static quadtree used as the geometry index. The
builder recursively splits a rectangle into quadrants until every bucket
is small enough, keeping items that straddle a split line on the node
where the split happened.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple
import math

from shapely.geometry.base import BaseGeometry

from .quadtree import QuadTreeNode, LeafNode, InternalNode, Rectangle, QuadTree, IndexItem


@dataclass
class IndexConfig:
    """Configuration for the index builder."""

    max_items: int = 16
    """Maximum items in a leaf before it is split."""

    max_depth: int = 24
    """Maximum tree depth (safety limit for stacked identical boxes)."""

    def __post_init__(self):
        if self.max_items < 1:
            raise ValueError("max_items must be at least 1")
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")


@dataclass
class BuilderStats:
    """Statistics collected during index building."""

    nodes_created: int = 0
    leaves_created: int = 0
    internal_nodes_created: int = 0
    items_indexed: int = 0
    items_skipped: int = 0
    max_depth_reached: int = 0


def shape_rectangle(shape: Any) -> Optional[Rectangle]:
    """
    Get the bounding rectangle of a shapely geometry or a Rectangle.

    Returns:
        The rectangle, or None for missing, empty or non-finite shapes
    """
    if shape is None:
        return None
    if isinstance(shape, Rectangle):
        return shape
    if shape.is_empty:
        return None
    bounds = shape.bounds
    if not all(math.isfinite(b) for b in bounds):
        return None
    return Rectangle.from_bounds(bounds)


class QuadTreeBuilder:
    """
    Builder for static bucket quadtrees.

    The builder constructs a quadtree by:
    1. Computing the bounding rectangle of all valid items
    2. Keeping a bucket as a leaf when it is small enough
    3. Otherwise splitting into quadrants, pushing each item down to the
       quadrant that fully holds it
    """

    def __init__(self, config: Optional[IndexConfig] = None):
        self.config = config or IndexConfig()
        self.stats = BuilderStats()

    def build(self, entries: Iterable[Tuple[Any, Any]]) -> QuadTree:
        """
        Build the complete quadtree.

        Args:
            entries: (shape, payload) pairs where shape is a shapely
                geometry or a Rectangle. Degenerate shapes are skipped.

        Returns:
            QuadTree over every valid entry
        """
        self.stats = BuilderStats()  # Reset stats
        items: List[IndexItem] = []
        bounds: Optional[Rectangle] = None

        for order, (shape, payload) in enumerate(entries):
            rect = shape_rectangle(shape)
            if rect is None:
                self.stats.items_skipped += 1
                continue
            geometry = shape if isinstance(shape, BaseGeometry) else None
            items.append(IndexItem(rect, payload, order, geometry))
            bounds = rect if bounds is None else bounds.union(rect)

        self.stats.items_indexed = len(items)
        if bounds is None:
            return QuadTree(LeafNode([]), Rectangle(0.0, 0.0, 0.0, 0.0), 0)

        root = self._build_node(bounds, items, depth=0)
        return QuadTree(root, bounds, len(items))

    def _build_node(self, rect: Rectangle, items: List[IndexItem], depth: int) -> QuadTreeNode:
        """
        Build a node for the given rectangle.

        Args:
            rect: Rectangle this node represents
            items: Items fully inside rect
            depth: Current depth in the tree

        Returns:
            QuadTreeNode (either Leaf or Internal)
        """
        self.stats.max_depth_reached = max(self.stats.max_depth_reached, depth)

        if len(items) <= self.config.max_items or depth >= self.config.max_depth:
            return self._leaf(items)

        buckets: List[List[IndexItem]] = [[], [], [], []]
        straddling: List[IndexItem] = []
        for item in items:
            idx = rect.child_index_for_rect(item.rect)
            if idx is None:
                straddling.append(item)
            else:
                buckets[idx].append(item)

        # Nothing can be pushed down: splitting would not help
        if len(straddling) == len(items):
            return self._leaf(items)

        return self._split_node(rect, buckets, straddling, depth)

    def _leaf(self, items: List[IndexItem]) -> LeafNode:
        self.stats.nodes_created += 1
        self.stats.leaves_created += 1
        return LeafNode(items)

    def _split_node(
        self,
        rect: Rectangle,
        buckets: List[List[IndexItem]],
        straddling: List[IndexItem],
        depth: int,
    ) -> InternalNode:
        children: List[Optional[QuadTreeNode]] = []
        for child_rect, bucket in zip(rect.subdivide(), buckets):
            if bucket:
                children.append(self._build_node(child_rect, bucket, depth + 1))
            else:
                children.append(None)

        self.stats.nodes_created += 1
        self.stats.internal_nodes_created += 1
        return InternalNode(children, straddling)


def build_index(
    entries: Iterable[Tuple[Any, Any]],
    max_items: int = 16,
    max_depth: int = 24,
) -> QuadTree:
    """
    Convenience function to build a geometry index.

    Args:
        entries: (shape, payload) pairs
        max_items: Maximum items per leaf
        max_depth: Maximum tree depth

    Returns:
        The built QuadTree
    """
    builder = QuadTreeBuilder(IndexConfig(max_items=max_items, max_depth=max_depth))
    return builder.build(entries)
