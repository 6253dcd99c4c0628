"""
Quadtree data structures for the geometry index.

This module defines the rectangle representation and the quadtree nodes
used to index area bounding boxes. A tree is built once (see builder.py)
and only queried afterwards: range queries return every payload whose
box intersects a query box, nearest queries return the payloads closest
to a point.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple
import heapq
import itertools
import math


@dataclass(frozen=True)
class Rectangle:
    """
    An axis-aligned rectangle in map coordinates.

    Represents closed ranges [x0, x1] and [y0, y1] where:
    - x corresponds to longitude
    - y corresponds to latitude

    Zero-width or zero-height rectangles are valid and stand for points
    and axis-parallel segments.
    """
    x0: float  # min longitude
    x1: float  # max longitude
    y0: float  # min latitude
    y1: float  # max latitude

    def __post_init__(self):
        if self.x0 > self.x1 or self.y0 > self.y1:
            raise ValueError(
                f"Invalid rectangle: x0={self.x0}, x1={self.x1}, y0={self.y0}, y1={self.y1}"
            )

    @classmethod
    def from_bounds(cls, bounds: Tuple[float, float, float, float]) -> Rectangle:
        """Build a rectangle from shapely-style (minx, miny, maxx, maxy) bounds."""
        minx, miny, maxx, maxy = bounds
        return cls(minx, maxx, miny, maxy)

    @classmethod
    def from_point(cls, x: float, y: float) -> Rectangle:
        return cls(x, x, y, y)

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def area(self) -> float:
        return self.width * self.height

    def is_point(self) -> bool:
        """Check if rectangle is reduced to a single point."""
        return self.x0 == self.x1 and self.y0 == self.y1

    def contains_point(self, x: float, y: float) -> bool:
        """Check if point (x, y) is within this rectangle."""
        return self.x0 <= x <= self.x1 and self.y0 <= y <= self.y1

    def contains(self, other: Rectangle) -> bool:
        """Check if other lies entirely within this rectangle."""
        return (
            self.x0 <= other.x0 and other.x1 <= self.x1
            and self.y0 <= other.y0 and other.y1 <= self.y1
        )

    def intersects(self, other: Rectangle) -> bool:
        """Check if the two rectangles share at least one point."""
        return (
            self.x0 <= other.x1 and other.x0 <= self.x1
            and self.y0 <= other.y1 and other.y0 <= self.y1
        )

    def union(self, other: Rectangle) -> Rectangle:
        return Rectangle(
            min(self.x0, other.x0),
            max(self.x1, other.x1),
            min(self.y0, other.y0),
            max(self.y1, other.y1),
        )

    def distance_to_point(self, x: float, y: float) -> float:
        """Euclidean distance from (x, y) to the closest point of the rectangle."""
        dx = max(self.x0 - x, 0.0, x - self.x1)
        dy = max(self.y0 - y, 0.0, y - self.y1)
        return math.hypot(dx, dy)

    def midpoints(self) -> Tuple[float, float]:
        """
        Calculate the split coordinates for subdivision.

        Returns:
            Tuple of (xm, ym), the center of the rectangle
        """
        return (self.x0 + self.x1) / 2.0, (self.y0 + self.y1) / 2.0

    def subdivide(self) -> List[Rectangle]:
        """
        Subdivide rectangle into 4 children (quadrants).

        Child order (fixed for consistency): NW, NE, SW, SE.
        Quadrants are closed, so neighbours share their common edge.
        """
        xm, ym = self.midpoints()
        return [
            Rectangle(self.x0, xm, ym, self.y1),  # NW
            Rectangle(xm, self.x1, ym, self.y1),  # NE
            Rectangle(self.x0, xm, self.y0, ym),  # SW
            Rectangle(xm, self.x1, self.y0, ym),  # SE
        ]

    def child_index_for_rect(self, other: Rectangle) -> Optional[int]:
        """
        Determine which child quadrant fully holds another rectangle.

        Returns:
            Child index (0=NW, 1=NE, 2=SW, 3=SE), or None when the other
            rectangle straddles a split line.
        """
        for idx, child in enumerate(self.subdivide()):
            if child.contains(other):
                return idx
        return None


@dataclass(frozen=True)
class IndexItem:
    """A payload stored in the tree with its bounding box."""

    rect: Rectangle
    payload: Any
    order: int
    """Insertion rank, used to return results deterministically."""

    geometry: Any = None
    """Optional shapely geometry used for exact nearest distances."""


class QuadTreeNode(ABC):
    """Abstract base class for quadtree nodes."""

    items: List[IndexItem]

    @abstractmethod
    def is_leaf(self) -> bool:
        """Return True if this is a leaf node."""
        pass

    @abstractmethod
    def children_with_bounds(self, rect: Rectangle) -> Iterator[Tuple[QuadTreeNode, Rectangle]]:
        """Yield the non-empty children with the rectangle each one covers."""
        pass

    @abstractmethod
    def node_count(self) -> int:
        """Return total number of nodes in this subtree."""
        pass

    @abstractmethod
    def leaf_count(self) -> int:
        """Return number of leaf nodes in this subtree."""
        pass

    @abstractmethod
    def max_depth(self) -> int:
        """Return maximum depth of this subtree."""
        pass

    def query(self, query: Rectangle, rect: Rectangle, found: List[IndexItem]) -> None:
        """
        Collect items whose box intersects the query rectangle.

        Args:
            query: Rectangle searched for
            rect: The rectangle this node represents
            found: Output list, extended in place
        """
        for item in self.items:
            if item.rect.intersects(query):
                found.append(item)
        for child, child_rect in self.children_with_bounds(rect):
            if child_rect.intersects(query):
                child.query(query, child_rect, found)


@dataclass
class LeafNode(QuadTreeNode):
    """A bucket of items that was small enough not to be split."""

    items: List[IndexItem]

    def is_leaf(self) -> bool:
        return True

    def children_with_bounds(self, rect: Rectangle) -> Iterator[Tuple[QuadTreeNode, Rectangle]]:
        return iter(())

    def node_count(self) -> int:
        return 1

    def leaf_count(self) -> int:
        return 1

    def max_depth(self) -> int:
        return 0


@dataclass
class InternalNode(QuadTreeNode):
    """
    An internal node with up to 4 children.

    Children are ordered: NW, NE, SW, SE (indices 0-3); empty quadrants
    are None. Items straddling a split line stay on the node itself.
    """

    children: List[Optional[QuadTreeNode]]
    items: List[IndexItem]

    def __post_init__(self):
        if len(self.children) != 4:
            raise ValueError("InternalNode must have exactly 4 children slots")

    def is_leaf(self) -> bool:
        return False

    def children_with_bounds(self, rect: Rectangle) -> Iterator[Tuple[QuadTreeNode, Rectangle]]:
        for child, child_rect in zip(self.children, rect.subdivide()):
            if child is not None:
                yield child, child_rect

    def node_count(self) -> int:
        count = 1  # This node
        for child in self.children:
            if child is not None:
                count += child.node_count()
        return count

    def leaf_count(self) -> int:
        count = 0
        for child in self.children:
            if child is not None:
                count += child.leaf_count()
        return count

    def max_depth(self) -> int:
        max_child_depth = 0
        for child in self.children:
            if child is not None:
                max_child_depth = max(max_child_depth, child.max_depth())
        return 1 + max_child_depth


# Priorities of heap entries in nearest(): at equal distance, nodes are
# expanded before items are reported.
_NODE, _ITEM_BOX, _ITEM_EXACT = 0, 1, 2


class QuadTree:
    """
    A static quadtree over bounding boxes.
    """

    def __init__(self, root: QuadTreeNode, bounds: Rectangle, size: int):
        """
        Initialize a quadtree.

        Args:
            root: The root node of the tree
            bounds: The bounding rectangle of every indexed item
            size: Number of indexed items
        """
        self.root = root
        self.bounds = bounds
        self.size = size

    def __len__(self) -> int:
        return self.size

    def is_empty(self) -> bool:
        return self.size == 0

    def query(self, rect: Rectangle) -> List[Any]:
        """
        Find every payload whose bounding box intersects a rectangle.

        Args:
            rect: Query rectangle

        Returns:
            Payloads in insertion order
        """
        if self.is_empty() or not self.bounds.intersects(rect):
            return []
        found: List[IndexItem] = []
        self.root.query(rect, self.bounds, found)
        found.sort(key=lambda item: item.order)
        return [item.payload for item in found]

    def query_point(self, x: float, y: float) -> List[Any]:
        """Find every payload whose bounding box holds the point (x, y)."""
        return self.query(Rectangle.from_point(x, y))

    def nearest(
        self,
        x: float,
        y: float,
        k: int = 1,
        distance: Optional[Callable[[IndexItem], float]] = None,
    ) -> List[Any]:
        """
        Find the k payloads closest to a point.

        Best-first search: nodes and items are visited in order of the
        distance from the point to their bounding box, which is a lower
        bound of the exact distance.

        Args:
            x: Longitude of the query point
            y: Latitude of the query point
            k: Number of payloads to return
            distance: Exact distance of an item to the point. Defaults to
                the distance to the item's geometry when it has one (0 for
                a point inside a polygon), to its box otherwise.

        Returns:
            Up to k payloads, closest first; equal distances are ordered
            by insertion rank
        """
        if k < 1:
            raise ValueError("k must be at least 1")
        if self.is_empty():
            return []

        if distance is None:
            distance = _default_distance(x, y)

        seq = itertools.count()
        heap: List[tuple] = [
            (self.bounds.distance_to_point(x, y), _NODE, 0, next(seq), self.root, self.bounds)
        ]
        results: List[Any] = []

        while heap and len(results) < k:
            dist, kind, order, _, obj, rect = heapq.heappop(heap)
            if kind == _ITEM_EXACT:
                results.append(obj.payload)
            elif kind == _ITEM_BOX:
                heapq.heappush(heap, (distance(obj), _ITEM_EXACT, obj.order, next(seq), obj, None))
            else:
                for item in obj.items:
                    heapq.heappush(
                        heap,
                        (item.rect.distance_to_point(x, y), _ITEM_BOX, item.order, next(seq), item, None),
                    )
                for child, child_rect in obj.children_with_bounds(rect):
                    heapq.heappush(
                        heap,
                        (child_rect.distance_to_point(x, y), _NODE, 0, next(seq), child, child_rect),
                    )

        return results

    @property
    def node_count(self) -> int:
        """Total number of nodes in the tree."""
        return self.root.node_count()

    @property
    def leaf_count(self) -> int:
        """Number of leaf nodes in the tree."""
        return self.root.leaf_count()

    @property
    def depth(self) -> int:
        """Maximum depth of the tree."""
        return self.root.max_depth()


def _default_distance(x: float, y: float) -> Callable[[IndexItem], float]:
    from shapely.geometry import Point

    point = Point(x, y)

    def distance(item: IndexItem) -> float:
        if item.geometry is not None:
            return item.geometry.distance(point)
        return item.rect.distance_to_point(x, y)

    return distance
