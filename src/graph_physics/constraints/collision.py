"""
Collision constraint: keep particles from overlapping.

Particles are treated as discs. Overlapping pairs are found with a quadtree
range search and pushed apart along the line joining their centers.
"""

from __future__ import annotations

import math
import warnings
from typing import Callable, Union

from ..particles import ParticleSet
from ..spatial.quadtree import QuadTree
from ..types import Particle
from ..validation import InvalidParameterError, validate_non_negative
from .base import Constraint

RadiusLike = Union[float, Callable[[Particle], float]]


class CollisionConstraint(Constraint):
    """
    Resolve overlaps between particle discs.

    Each pass builds a quadtree of the current positions, then visits the
    particles in insertion order and separates every overlapping pair so
    they just touch. The correction is shared by inverse mass, so a fixed
    particle never moves and heavier particles move less. Groups of exactly
    coincident particles are first laid out in a row along +x, one diameter
    apart in insertion order; pairs that coincide later in a pass are split
    along the x axis.

    Passes repeat until one finds no overlap deeper than the tolerance. If
    max_passes runs out first a RuntimeWarning is emitted.

    Example:
        collide = CollisionConstraint(radius=lambda p: 4.0 * p.mass)
        simulation.add_constraint(collide)
    """

    def __init__(
        self,
        *,
        radius: RadiusLike = 10.0,
        tolerance: float = 1e-3,
        max_passes: int = 100,
    ) -> None:
        """
        Args:
            radius: Disc radius, as a number or a callable per particle
            tolerance: Overlap depth accepted as resolved
            max_passes: Upper bound on resolution passes per apply()
        """
        self._radius: RadiusLike = 10.0
        self.radius = radius
        self._tolerance: float = validate_non_negative(tolerance, "tolerance")
        if max_passes < 1:
            raise InvalidParameterError(f"max_passes must be >= 1, got {max_passes}")
        self._max_passes: int = int(max_passes)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def radius(self) -> RadiusLike:
        """Get radius (number or callable)."""
        return self._radius

    @radius.setter
    def radius(self, value: RadiusLike) -> None:
        if callable(value):
            self._radius = value
        else:
            self._radius = validate_non_negative(value, "radius")

    @property
    def tolerance(self) -> float:
        """Get accepted overlap depth."""
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        self._tolerance = validate_non_negative(value, "tolerance")

    @property
    def max_passes(self) -> int:
        """Get maximum number of resolution passes."""
        return self._max_passes

    @max_passes.setter
    def max_passes(self, value: int) -> None:
        if value < 1:
            raise InvalidParameterError(f"max_passes must be >= 1, got {value}")
        self._max_passes = int(value)

    def radius_of(self, particle: Particle) -> float:
        """Resolve the radius of one particle."""
        if callable(self._radius):
            return validate_non_negative(self._radius(particle), "radius")
        return self._radius

    # -------------------------------------------------------------------------
    # Constraint Implementation
    # -------------------------------------------------------------------------

    def apply(self, particles: ParticleSet) -> None:
        members = list(particles)
        if len(members) < 2:
            return

        radii = [self.radius_of(p) for p in members]
        max_radius = max(radii)
        if max_radius == 0:
            return

        self._spread_coincident(members, radii)
        for _ in range(self._max_passes):
            if self._resolve_pass(members, radii, max_radius) == 0:
                return

        warnings.warn(
            f"Collision constraint did not converge within {self._max_passes} passes; "
            "some particles still overlap.",
            RuntimeWarning,
            stacklevel=2,
        )

    def _spread_coincident(self, members: list[Particle], radii: list[float]) -> None:
        """
        Lay out exactly coincident particles along +x in insertion order.

        The k-th member of a group lands k diameters along the axis, so the
        group touches end to end after a single step. The row is shifted so
        its mass-weighted center stays put, or so that the first fixed
        member keeps its place.
        """
        groups: dict[tuple[float, float], list[int]] = {}
        for i, p in enumerate(members):
            groups.setdefault((p.x, p.y), []).append(i)

        for (x0, _), group in groups.items():
            if len(group) < 2:
                continue
            spacing = 2 * max(radii[i] for i in group)
            anchor = next((k for k, i in enumerate(group) if members[i].fixed), None)
            if anchor is not None:
                shift = anchor * spacing
            else:
                total = sum(members[i].mass for i in group)
                shift = sum(k * spacing * members[i].mass for k, i in enumerate(group)) / total

            for k, i in enumerate(group):
                p = members[i]
                if not p.fixed:
                    p.x = x0 + k * spacing - shift

    def _resolve_pass(self, members: list[Particle], radii: list[float], max_radius: float) -> int:
        """Run one pass; return the number of pairs that had to be separated."""
        tree = QuadTree.build(members, padding=max_radius)
        tolerance = self._tolerance
        resolved = 0

        for i, p in enumerate(members):
            reach = radii[i] + max_radius + tolerance
            for body in tree.query(p.x - reach, p.y - reach, p.x + reach, p.y + reach):
                j = body.index
                if j <= i:
                    continue
                q = members[j]

                wa = p.inverse_mass
                wb = q.inverse_mass
                w = wa + wb
                if w == 0:
                    continue

                dx = q.x - p.x
                dy = q.y - p.y
                dist = math.sqrt(dx * dx + dy * dy)
                overlap = radii[i] + radii[j] - dist
                if overlap <= tolerance:
                    continue

                if dist == 0:
                    ux, uy = 1.0, 0.0
                else:
                    ux, uy = dx / dist, dy / dist

                p.x -= ux * overlap * wa / w
                p.y -= uy * overlap * wa / w
                q.x += ux * overlap * wb / w
                q.y += uy * overlap * wb / w
                resolved += 1

        return resolved


__all__ = ["CollisionConstraint"]
