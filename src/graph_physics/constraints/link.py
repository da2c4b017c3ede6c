"""
Link constraint: rigid separation between linked particles.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from ..particles import ParticleSet
from ..types import Link, ParticleId
from ..validation import InvalidParameterError, validate_non_negative
from .base import Constraint


class LinkConstraint(Constraint):
    """
    Hold linked particles at an exact separation.

    Unlike a Spring, which pulls softly over many ticks, each application
    moves both endpoints so their distance equals the link length. The
    correction is shared by inverse mass: heavier particles move less and
    fixed particles do not move at all. Coincident endpoints are split along
    the x axis.

    Links are relaxed one after another (Gauss-Seidel), so a chain of links
    converges over `iterations` sweeps rather than in a single step.
    """

    def __init__(
        self,
        links: Iterable[Link] = (),
        *,
        tolerance: float = 1e-6,
        iterations: int = 1,
    ) -> None:
        """
        Args:
            links: Rigid links to enforce
            tolerance: Length error accepted without correction
            iterations: Relaxation sweeps per apply()
        """
        self._links: list[Link] = list(links)
        self._tolerance: float = validate_non_negative(tolerance, "tolerance")
        if iterations < 1:
            raise InvalidParameterError(f"iterations must be >= 1, got {iterations}")
        self._iterations: int = int(iterations)

    @property
    def links(self) -> list[Link]:
        """Get the list of links."""
        return self._links

    @property
    def tolerance(self) -> float:
        """Get accepted length error."""
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        self._tolerance = validate_non_negative(value, "tolerance")

    @property
    def iterations(self) -> int:
        """Get relaxation sweeps per apply()."""
        return self._iterations

    @iterations.setter
    def iterations(self, value: int) -> None:
        if value < 1:
            raise InvalidParameterError(f"iterations must be >= 1, got {value}")
        self._iterations = int(value)

    def references(self) -> Sequence[Link]:
        return self._links

    def discard_particle(self, pid: ParticleId) -> None:
        self._links = [lk for lk in self._links if lk.source != pid and lk.target != pid]

    def apply(self, particles: ParticleSet) -> None:
        for _ in range(self._iterations):
            for link in self._links:
                a = particles.get(link.source)
                b = particles.get(link.target)

                wa = a.inverse_mass
                wb = b.inverse_mass
                w = wa + wb
                if w == 0:
                    continue

                dx = b.x - a.x
                dy = b.y - a.y
                dist = math.sqrt(dx * dx + dy * dy)
                error = dist - link.length
                if abs(error) <= self._tolerance:
                    continue

                if dist == 0:
                    ux, uy = 1.0, 0.0
                else:
                    ux, uy = dx / dist, dy / dist

                a.x += ux * error * wa / w
                a.y += uy * error * wa / w
                b.x -= ux * error * wb / w
                b.y -= uy * error * wb / w


__all__ = ["LinkConstraint"]
