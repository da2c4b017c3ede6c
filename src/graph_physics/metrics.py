"""
Simulation diagnostics.

Provides quantitative measures of a particle system's state:
- Kinetic energy: How much the system is still moving
- Separation: Distance between particles
- Overlap violations: Pairs of discs closer than their radii allow
- Bounding box: Extent of the current layout

All metrics read positions only; none of them mutate particles.
"""

from __future__ import annotations

import math
from typing import Callable, Iterable, List, Optional, Tuple, Union

import numpy as np

from .types import Particle


def kinetic_energy(particles: Iterable[Particle]) -> float:
    """
    Total kinetic energy from implicit (Verlet) velocities.

    KE = sum_i 0.5 * m_i * |x_i - px_i|^2

    Fixed particles contribute nothing.

    Args:
        particles: Particles to measure

    Returns:
        Kinetic energy (0 = at rest)
    """
    energy = 0.0
    for p in particles:
        if p.fixed:
            continue
        vx = p.x - p.px
        vy = p.y - p.py
        energy += 0.5 * p.mass * (vx * vx + vy * vy)
    return energy


def separation(a: Particle, b: Particle) -> float:
    """Euclidean distance between two particles."""
    return math.hypot(b.x - a.x, b.y - a.y)


def _positions(particles: Iterable[Particle]) -> Tuple[List[Particle], np.ndarray]:
    members = list(particles)
    coords = np.array([(p.x, p.y) for p in members], dtype=np.float64).reshape(-1, 2)
    return members, coords


def _pairwise_distances(coords: np.ndarray) -> np.ndarray:
    diff = coords[:, np.newaxis, :] - coords[np.newaxis, :, :]
    return np.sqrt(np.einsum("ijk,ijk->ij", diff, diff))


def min_separation(particles: Iterable[Particle]) -> float:
    """
    Smallest distance between any two particles.

    Returns:
        Minimum pairwise distance, or inf for fewer than two particles

    Time Complexity: O(n^2)
    """
    _, coords = _positions(particles)
    if len(coords) < 2:
        return math.inf
    dist = _pairwise_distances(coords)
    upper = np.triu_indices(len(coords), k=1)
    return float(dist[upper].min())


def overlap_violations(
    particles: Iterable[Particle],
    radius: Union[float, Callable[[Particle], float]],
    tolerance: float = 0.0,
) -> List[Tuple[int, int, float]]:
    """
    Find pairs of discs that overlap by more than the tolerance.

    Args:
        particles: Particles to check
        radius: Disc radius as a number or a callable per particle
        tolerance: Overlap depth that is still accepted

    Returns:
        List of (i, j, depth) with i < j in iteration order

    Time Complexity: O(n^2)
    """
    members, coords = _positions(particles)
    n = len(members)
    if n < 2:
        return []

    if callable(radius):
        radii = np.array([radius(p) for p in members], dtype=np.float64)
    else:
        radii = np.full(n, float(radius))

    depth = radii[:, np.newaxis] + radii[np.newaxis, :] - _pairwise_distances(coords)
    rows, cols = np.nonzero(np.triu(depth > tolerance, k=1))
    return [(int(i), int(j), float(depth[i, j])) for i, j in zip(rows, cols)]


def bounding_box(
    particles: Iterable[Particle],
) -> Optional[Tuple[float, float, float, float]]:
    """
    Axis-aligned extent of the particles.

    Returns:
        (min_x, min_y, max_x, max_y), or None if there are no particles
    """
    _, coords = _positions(particles)
    if len(coords) == 0:
        return None
    lo = coords.min(axis=0)
    hi = coords.max(axis=0)
    return float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1])


__all__ = [
    "kinetic_energy",
    "separation",
    "min_separation",
    "overlap_violations",
    "bounding_box",
]
