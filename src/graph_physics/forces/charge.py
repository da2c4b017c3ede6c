"""
N-body charge force.

Every particle pushes (or pulls) every other particle with a magnitude that
falls off with the square of their distance. Evaluated with the Barnes-Hut
quadtree for O(n log n) cost; an exact O(n^2) path is kept for small systems
and for checking the approximation.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ..particles import ParticleSet
from ..spatial.quadtree import Body, QuadTree
from ..types import Spring
from ..validation import InvalidParameterError, validate_distance_range, validate_non_negative
from .base import Force


class ChargeForce(Force):
    """
    Inverse-square repulsion (or attraction) between all particles.

    The force between two particles scales with both masses; dividing by the
    probe's inertia leaves a displacement of

        alpha * constant * mass_source / d^2

    directed away from the source when constant is positive (repel) and
    toward it when negative (attract).

    Example:
        charge = ChargeForce(constant=40.0, theta=0.9)
        simulation.add_force(charge)
    """

    def __init__(
        self,
        *,
        constant: float = 40.0,
        theta: Optional[float] = None,
        min_distance: float = 2.0,
        max_distance: Optional[float] = 500.0,
        use_barnes_hut: bool = True,
    ) -> None:
        """
        Initialize charge force.

        Args:
            constant: Charge constant. Positive repels, negative attracts.
            theta: Barnes-Hut accuracy (0 = exact). None uses the tree's theta.
            min_distance: Distances are clamped to at least this value.
            max_distance: Pairs farther apart contribute nothing. None = unbounded.
            use_barnes_hut: Use the quadtree approximation instead of exact sums.

        Raises:
            InvalidParameterError: If theta is negative or distances are invalid
        """
        validate_distance_range(min_distance, max_distance)
        self._constant: float = float(constant)
        self._theta: Optional[float] = None
        self.theta = theta
        self._min_distance: float = float(min_distance)
        self._max_distance: Optional[float] = (
            float(max_distance) if max_distance is not None else None
        )
        self._use_barnes_hut: bool = bool(use_barnes_hut)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def constant(self) -> float:
        """Get charge constant (sign selects repel/attract)."""
        return self._constant

    @constant.setter
    def constant(self, value: float) -> None:
        self._constant = float(value)

    @property
    def theta(self) -> Optional[float]:
        """Get Barnes-Hut theta, or None to follow the tree."""
        return self._theta

    @theta.setter
    def theta(self, value: Optional[float]) -> None:
        self._theta = None if value is None else validate_non_negative(value, "theta")

    @property
    def min_distance(self) -> float:
        """Get minimum interaction distance (clamp)."""
        return self._min_distance

    @min_distance.setter
    def min_distance(self, value: float) -> None:
        validate_distance_range(value, self._max_distance)
        self._min_distance = float(value)

    @property
    def max_distance(self) -> Optional[float]:
        """Get maximum interaction distance (cutoff)."""
        return self._max_distance

    @max_distance.setter
    def max_distance(self, value: Optional[float]) -> None:
        validate_distance_range(self._min_distance, value)
        self._max_distance = float(value) if value is not None else None

    @property
    def use_barnes_hut(self) -> bool:
        """Get whether Barnes-Hut approximation is enabled."""
        return self._use_barnes_hut

    @use_barnes_hut.setter
    def use_barnes_hut(self, value: bool) -> None:
        self._use_barnes_hut = bool(value)

    # -------------------------------------------------------------------------
    # Force Implementation
    # -------------------------------------------------------------------------

    def apply(
        self,
        particles: ParticleSet,
        tree: QuadTree,
        springs: Sequence[Spring],
        alpha: float,
    ) -> None:
        """Accumulate charge displacement on every free particle."""
        if self._constant == 0 or alpha == 0 or tree.body_count < 2:
            return

        strength = alpha * self._constant
        if self._use_barnes_hut:
            self._apply_barnes_hut(tree, strength)
        else:
            self._apply_exact(tree.bodies, strength)

    def _apply_barnes_hut(self, tree: QuadTree, strength: float) -> None:
        """Accumulate using the quadtree approximation."""
        theta = tree.theta if self._theta is None else self._theta
        for body in tree.bodies:
            particle = body.particle
            if particle is None or particle.fixed:
                continue
            dx, dy = tree.accumulate(
                body,
                strength,
                theta=theta,
                min_distance=self._min_distance,
                max_distance=self._max_distance,
            )
            particle.fx += dx
            particle.fy += dy

    def _apply_exact(self, bodies: Sequence[Body], strength: float) -> None:
        """Accumulate using exact O(n^2) pairwise evaluation."""
        disp = exact_displacements(
            bodies,
            strength,
            min_distance=self._min_distance,
            max_distance=self._max_distance,
        )
        for body, (dx, dy) in zip(bodies, disp):
            particle = body.particle
            if particle is None or particle.fixed:
                continue
            particle.fx += float(dx)
            particle.fy += float(dy)


def exact_displacements(
    bodies: Sequence[Body],
    strength: float,
    min_distance: float = 1e-6,
    max_distance: Optional[float] = None,
) -> np.ndarray:
    """
    Exact pairwise inverse-square displacement for every body.

    Uses the same law as QuadTree.accumulate with theta = 0.

    Args:
        bodies: Bodies to evaluate (positions as stored in the tree)
        strength: Scale factor; positive pushes bodies apart
        min_distance: Distances below this are clamped to it
        max_distance: Pairs farther apart contribute nothing

    Returns:
        (n, 2) array of displacements, in body order
    """
    n = len(bodies)
    if n == 0:
        return np.zeros((0, 2))
    if min_distance <= 0:
        raise InvalidParameterError(f"min_distance must be positive, got {min_distance}")

    pos = np.array([(b.x, b.y) for b in bodies], dtype=np.float64)
    mass = np.array([b.mass for b in bodies], dtype=np.float64)

    # diff[i, j] points from body j to body i
    diff = pos[:, np.newaxis, :] - pos[np.newaxis, :, :]
    dist = np.sqrt(np.einsum("ijk,ijk->ij", diff, diff))

    active = dist > 0
    if max_distance is not None:
        active &= dist <= max_distance

    safe = np.where(active, dist, 1.0)
    clamped = np.maximum(safe, min_distance)
    scale = np.where(active, strength * mass[np.newaxis, :] / (clamped * clamped * safe), 0.0)

    return np.einsum("ij,ijk->ik", scale, diff)


__all__ = ["ChargeForce", "exact_displacements"]
