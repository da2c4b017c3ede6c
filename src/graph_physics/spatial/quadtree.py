"""
Quadtree implementation for Barnes-Hut force approximation.

The quadtree recursively subdivides 2D space into quadrants,
enabling O(n log n) approximate n-body force calculations and
fast range queries for collision detection.

A tree is built from scratch for every tick; there is no incremental
update since particle positions change continuously.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..types import Particle

logger = logging.getLogger(__name__)

# Coincident bodies are separated on a grid this many halvings below the root
# size, so insertion depth stays bounded.
_JITTER_DEPTH = 40


def _grid_cell(min_x: float, min_y: float, max_x: float, max_y: float) -> float:
    """Side of the coincidence grid for a root spanning the given box."""
    width = max(max_x - min_x, max_y - min_y)
    scale = max(abs(min_x), abs(min_y), abs(max_x), abs(max_y), 1.0)
    # Grid cells stay well above float resolution at this magnitude
    return max(width / (1 << _JITTER_DEPTH), 1024 * math.ulp(scale))


def _nudge_margin(min_x: float, min_y: float, max_x: float, max_y: float, count: int) -> float:
    """
    Extra width on the +x side so nudged bodies stay inside the root.

    A body is nudged by at most three cells per earlier body. The factor of
    eight also covers the cell growing with the widened root.
    """
    return 8 * (count + 1) * _grid_cell(min_x, min_y, max_x, max_y)


@dataclass
class Body:
    """
    Tree-side copy of a particle's position and mass.

    The position may differ from the particle's by a sub-cell nudge when two
    particles coincide; the particle itself is never moved by the tree.
    """

    x: float
    y: float
    mass: float = 1.0
    particle: Optional[Particle] = None
    index: int = -1  # Insertion order within the tree


@dataclass
class QuadTreeNode:
    """
    A node in the quadtree.

    Attributes:
        x, y: Center of this region
        half_size: Half the width/height of this region
        center_of_mass_x/y: Center of mass of bodies in this subtree
        total_mass: Total mass of bodies in this subtree
        body: Single body if this is a leaf (external) node
        children: Four child quadrants [NW, NE, SW, SE] if internal
    """

    x: float
    y: float
    half_size: float

    # Aggregated properties
    center_of_mass_x: float = 0.0
    center_of_mass_y: float = 0.0
    total_mass: float = 0.0

    # Content
    body: Optional[Body] = None
    children: Optional[List[Optional[QuadTreeNode]]] = None

    @property
    def width(self) -> float:
        """Side length of this node's square."""
        return self.half_size * 2

    def is_leaf(self) -> bool:
        """True if this node has no children."""
        return self.children is None

    def is_empty(self) -> bool:
        """True if this node contains no bodies."""
        return self.body is None and self.children is None

    def contains(self, x: float, y: float) -> bool:
        """Check if point (x, y) is within this node's region."""
        return abs(x - self.x) <= self.half_size and abs(y - self.y) <= self.half_size

    def intersects(self, min_x: float, min_y: float, max_x: float, max_y: float) -> bool:
        """Check if this node's square overlaps an axis-aligned box."""
        hs = self.half_size
        return not (
            self.x + hs < min_x or self.x - hs > max_x or self.y + hs < min_y or self.y - hs > max_y
        )

    def get_quadrant(self, x: float, y: float) -> int:
        """
        Get quadrant index for a point.

        Returns:
            0=NW, 1=NE, 2=SW, 3=SE
        """
        east = x >= self.x
        south = y >= self.y
        return (2 if south else 0) + (1 if east else 0)


class QuadTree:
    """
    Barnes-Hut quadtree over a set of particles.

    For distant clusters the tree stands in a single pseudo-particle at the
    cluster's center of mass, reducing the cost of an n-body sum from
    O(n^2) to O(n log n).

    Usage:
        tree = QuadTree.build(particles, theta=0.9)
        dx, dy = tree.accumulate(tree.bodies[0], strength=40.0)

    The theta parameter controls the accuracy/speed tradeoff:
    - theta = 0: Exact calculation (no approximation)
    - theta = 0.5: Good balance
    - theta = 1.0+: Fast but less accurate
    """

    def __init__(
        self,
        bounds: Tuple[float, float, float, float],
        theta: float = 0.9,
    ):
        """
        Initialize an empty quadtree.

        Args:
            bounds: (min_x, min_y, max_x, max_y) bounding box
            theta: Barnes-Hut threshold (0 = exact, higher = more approximation)
        """
        min_x, min_y, max_x, max_y = bounds
        center_x = (min_x + max_x) / 2
        center_y = (min_y + max_y) / 2
        # Use max dimension to ensure square region
        half_size = max(max_x - min_x, max_y - min_y) / 2

        self.root = QuadTreeNode(center_x, center_y, half_size)
        self.theta = theta
        self.bodies: list[Body] = []
        self._cell = _grid_cell(min_x, min_y, max_x, max_y)
        self._occupied: set[tuple[int, int]] = set()

    @property
    def body_count(self) -> int:
        """Number of bodies inserted."""
        return len(self.bodies)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        particles: Iterable[Particle],
        bounds: Optional[Tuple[float, float, float, float]] = None,
        theta: float = 0.9,
        padding: float = 10.0,
    ) -> QuadTree:
        """
        Build a quadtree from the current particle positions.

        Args:
            particles: Particles to insert, in a deterministic order
            bounds: Optional (min_x, min_y, max_x, max_y); grown to contain
                every particle
            theta: Barnes-Hut threshold
            padding: Margin added around the particle bounding box

        Returns:
            QuadTree with all particles inserted and mass computed
        """
        members = list(particles)

        if members:
            min_x = min(p.x for p in members) - padding
            min_y = min(p.y for p in members) - padding
            max_x = max(p.x for p in members) + padding
            max_y = max(p.y for p in members) + padding
            if bounds is not None:
                min_x = min(min_x, bounds[0])
                min_y = min(min_y, bounds[1])
                max_x = max(max_x, bounds[2])
                max_y = max(max_y, bounds[3])
        elif bounds is not None:
            min_x, min_y, max_x, max_y = bounds
        else:
            min_x, min_y, max_x, max_y = 0.0, 0.0, 100.0, 100.0

        if members:
            # Room for every coincident body to be nudged along +x inside the root
            max_x += _nudge_margin(min_x, min_y, max_x, max_y, len(members))

        tree = cls((min_x, min_y, max_x, max_y), theta=theta)
        for particle in members:
            tree.insert(Body(particle.x, particle.y, mass=particle.mass, particle=particle))

        tree.compute_mass_distribution()
        return tree

    def insert(self, body: Body) -> None:
        """
        Insert a body into the quadtree.

        A body within one cell of the fine jitter grid of an earlier body is
        nudged along +x by whole cells until it is clear.
        """
        self._separate(body)
        self._insert_into(self.root, body)
        body.index = len(self.bodies)
        self.bodies.append(body)

    def _separate(self, body: Body) -> None:
        """Nudge a body off any coincident or near-coincident predecessor."""
        origin_x = self.root.x - self.root.half_size
        origin_y = self.root.y - self.root.half_size
        row = math.floor((body.y - origin_y) / self._cell)
        col = math.floor((body.x - origin_x) / self._cell)

        shift = 0
        while self._cell_taken(col + shift, row):
            shift += 1
        if shift:
            body.x += shift * self._cell
            logger.debug("Jittered coincident body by %d cell(s) at (%g, %g)", shift, body.x, body.y)
        self._occupied.add((col + shift, row))

    def _cell_taken(self, col: int, row: int) -> bool:
        """True if the cell or any of its eight neighbours holds a body."""
        occupied = self._occupied
        for dc in (-1, 0, 1):
            for dr in (-1, 0, 1):
                if (col + dc, row + dr) in occupied:
                    return True
        return False

    def _insert_into(self, node: QuadTreeNode, body: Body) -> None:
        """Recursively insert body into subtree rooted at node."""
        if node.is_empty():
            # Empty node becomes a leaf with this body
            node.body = body
            return

        if node.is_leaf():
            # Leaf with existing body - must subdivide
            existing = node.body
            node.body = None
            node.children = [None, None, None, None]

            if existing is not None:
                self._insert_into_child(node, existing)

        self._insert_into_child(node, body)

    def _insert_into_child(self, node: QuadTreeNode, body: Body) -> None:
        """Insert body into the appropriate child of node."""
        assert node.children is not None
        quadrant = node.get_quadrant(body.x, body.y)

        child = node.children[quadrant]
        if child is None:
            hs = node.half_size / 2
            cx = node.x + hs * (1 if quadrant & 1 else -1)
            cy = node.y + hs * (1 if quadrant & 2 else -1)
            child = node.children[quadrant] = QuadTreeNode(cx, cy, hs)

        self._insert_into(child, body)

    def compute_mass_distribution(self) -> None:
        """Compute center of mass for all nodes (post-order traversal)."""
        self._compute_mass(self.root)

    def _compute_mass(self, node: QuadTreeNode) -> None:
        """Recursively compute mass distribution."""
        if node.is_leaf():
            if node.body is not None:
                node.total_mass = node.body.mass
                node.center_of_mass_x = node.body.x
                node.center_of_mass_y = node.body.y
            return

        total_mass = 0.0
        weighted_x = 0.0
        weighted_y = 0.0

        if node.children:
            for child in node.children:
                if child is not None:
                    self._compute_mass(child)
                    total_mass += child.total_mass
                    weighted_x += child.center_of_mass_x * child.total_mass
                    weighted_y += child.center_of_mass_y * child.total_mass

        node.total_mass = total_mass
        if total_mass > 0:
            node.center_of_mass_x = weighted_x / total_mass
            node.center_of_mass_y = weighted_y / total_mass

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def accumulate(
        self,
        probe: Body,
        strength: float,
        theta: Optional[float] = None,
        min_distance: float = 1e-6,
        max_distance: Optional[float] = None,
    ) -> Tuple[float, float]:
        """
        Sum the inverse-square displacement exerted on a probe body.

        If a node's width divided by the distance from its centroid to the
        probe is below theta, the node acts as one body of its total mass at
        its centroid; otherwise the walk descends into its children.

        Args:
            probe: Body to evaluate (skipped as its own source)
            strength: Scale factor; positive pushes the probe away from sources
            theta: Barnes-Hut threshold. Defaults to the tree's theta.
            min_distance: Distances below this are clamped to it
            max_distance: Sources farther than this contribute nothing

        Returns:
            (dx, dy) displacement on the probe
        """
        if theta is None:
            theta = self.theta
        return self._accumulate(self.root, probe, strength, theta, min_distance, max_distance)

    def _accumulate(
        self,
        node: QuadTreeNode,
        probe: Body,
        strength: float,
        theta: float,
        min_distance: float,
        max_distance: Optional[float],
    ) -> Tuple[float, float]:
        """Recursively accumulate displacement contribution from node."""
        if node.is_empty():
            return 0.0, 0.0

        # Skip self-interaction (same body)
        if node.is_leaf() and node.body is probe:
            return 0.0, 0.0

        dx = probe.x - node.center_of_mass_x
        dy = probe.y - node.center_of_mass_y
        dist = math.sqrt(dx * dx + dy * dy)

        if node.is_leaf() or (dist > 0 and node.width / dist < theta):
            if dist == 0:
                # Direction undefined; only possible against the probe's own centroid
                return 0.0, 0.0
            if max_distance is not None and dist > max_distance:
                return 0.0, 0.0
            clamped = max(dist, min_distance)
            magnitude = strength * node.total_mass / (clamped * clamped)
            return (dx / dist) * magnitude, (dy / dist) * magnitude

        # Node is too close - recurse into children
        fx, fy = 0.0, 0.0
        if node.children:
            for child in node.children:
                if child is not None:
                    cfx, cfy = self._accumulate(
                        child, probe, strength, theta, min_distance, max_distance
                    )
                    fx += cfx
                    fy += cfy

        return fx, fy

    def query(self, min_x: float, min_y: float, max_x: float, max_y: float) -> list[Body]:
        """
        Find every body inside an axis-aligned box.

        Returns:
            Bodies in insertion order
        """
        found: list[Body] = []
        self._query(self.root, min_x, min_y, max_x, max_y, found)
        found.sort(key=lambda b: b.index)
        return found

    def _query(
        self,
        node: QuadTreeNode,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        found: list[Body],
    ) -> None:
        if node.is_empty() or not node.intersects(min_x, min_y, max_x, max_y):
            return
        if node.is_leaf():
            body = node.body
            if body is not None and min_x <= body.x <= max_x and min_y <= body.y <= max_y:
                found.append(body)
            return
        if node.children:
            for child in node.children:
                if child is not None:
                    self._query(child, min_x, min_y, max_x, max_y, found)

    def neighbors(self, x: float, y: float, radius: float) -> list[Body]:
        """Bodies within radius of (x, y), including any body at (x, y)."""
        candidates = self.query(x - radius, y - radius, x + radius, y + radius)
        r_sq = radius * radius
        return [b for b in candidates if (b.x - x) ** 2 + (b.y - y) ** 2 <= r_sq]


__all__ = ["Body", "QuadTree", "QuadTreeNode"]
