"""
Base class for constraints.

Constraints run after integration and edit particle positions directly, so
their corrections are visible to the next tick's forces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..particles import ParticleSet
from ..types import Link, ParticleId


class Constraint(ABC):
    """
    Abstract positional constraint.

    Implementations must never move a fixed particle.
    """

    @abstractmethod
    def apply(self, particles: ParticleSet) -> None:
        """
        Correct particle positions in place.

        Args:
            particles: Live particles, already integrated for this tick
        """
        pass

    def references(self) -> Sequence[Link]:
        """Particle pairs this constraint depends on (validated on registration)."""
        return ()

    def discard_particle(self, pid: ParticleId) -> None:
        """Forget any state held for a removed particle."""
        return None


__all__ = ["Constraint"]
