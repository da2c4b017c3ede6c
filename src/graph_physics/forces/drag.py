"""
Drag (friction) force.
"""

from __future__ import annotations

from typing import Sequence

from ..particles import ParticleSet
from ..spatial.quadtree import QuadTree
from ..types import Spring
from ..validation import validate_fraction
from .base import Force


class DragForce(Force):
    """
    Velocity damping.

    Removes a fixed fraction of each particle's implicit velocity every tick,
    pulling (x, y) back toward (px, py). Independent of the quadtree and of
    alpha.
    """

    def __init__(self, *, coefficient: float = 0.1) -> None:
        """
        Args:
            coefficient: Fraction of velocity removed per tick (0 to 1)
        """
        self._coefficient: float = validate_fraction(coefficient, "drag coefficient")

    @property
    def coefficient(self) -> float:
        """Get drag coefficient."""
        return self._coefficient

    @coefficient.setter
    def coefficient(self, value: float) -> None:
        self._coefficient = validate_fraction(value, "drag coefficient")

    def apply(
        self,
        particles: ParticleSet,
        tree: QuadTree,
        springs: Sequence[Spring],
        alpha: float,
    ) -> None:
        k = self._coefficient
        if k == 0:
            return
        for p in particles:
            if p.fixed:
                continue
            p.fx -= k * (p.x - p.px)
            p.fy -= k * (p.y - p.py)


__all__ = ["DragForce"]
