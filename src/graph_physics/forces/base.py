"""
Base class for forces.

A force adds to the per-tick displacement (fx, fy) of the particles it acts
on. Forces run before integration, in the order the simulation lists them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..particles import ParticleSet
from ..spatial.quadtree import QuadTree
from ..types import ParticleId, Spring


class Force(ABC):
    """
    Abstract force.

    Implementations must only touch fx/fy of non-fixed particles and must
    never mutate the quadtree.
    """

    @abstractmethod
    def apply(
        self,
        particles: ParticleSet,
        tree: QuadTree,
        springs: Sequence[Spring],
        alpha: float,
    ) -> None:
        """
        Accumulate this force's displacement for one tick.

        Args:
            particles: Live particles
            tree: Quadtree built from this tick's positions
            springs: Springs registered with the simulation
            alpha: Current cooling coefficient
        """
        pass

    def discard_particle(self, pid: ParticleId) -> None:
        """Forget any per-particle state held for a removed particle."""
        return None


__all__ = ["Force"]
