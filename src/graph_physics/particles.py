"""
Particle storage with stable identity.

ParticleSet is an arena addressed by generational indices. Removing a
particle frees its slot for reuse but never renumbers the others, so
springs and links holding ParticleIds stay valid across insertions and
removals. Iteration follows insertion order, which keeps every per-tick
pass over the particles deterministic.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

import numpy as np

from .types import Particle, ParticleId
from .validation import InvalidParticleError, UnknownParticleError


class ParticleSet:
    """
    Arena of particles with generational ids.

    Example:
        particles = ParticleSet()
        a = particles.add(Particle(0, 0))
        b = particles.add(Particle(10, 0))
        particles.remove(a)
        particles.get(b).x  # still valid
    """

    def __init__(self, particles: Optional[Iterable[Particle]] = None) -> None:
        self._slots: list[Optional[Particle]] = []
        self._generations: list[int] = []
        self._free: list[int] = []
        # Live slot indices in insertion order (dict preserves order)
        self._order: dict[int, None] = {}

        if particles is not None:
            for particle in particles:
                self.add(particle)

    def add(self, particle: Particle) -> ParticleId:
        """
        Add a particle and return its stable id.

        Raises:
            InvalidParticleError: If the particle already belongs to a set
        """
        if particle.id is not None:
            raise InvalidParticleError(f"{particle!r} already belongs to a particle set")

        if self._free:
            index = self._free.pop()
            self._generations[index] += 1
            self._slots[index] = particle
        else:
            index = len(self._slots)
            self._slots.append(particle)
            self._generations.append(0)

        pid = ParticleId(index, self._generations[index])
        particle.id = pid
        self._order[index] = None
        return pid

    def get(self, pid: ParticleId) -> Particle:
        """
        Look up a live particle.

        Raises:
            UnknownParticleError: If the id is stale or was never issued
        """
        index, generation = pid
        if 0 <= index < len(self._slots) and self._generations[index] == generation:
            particle = self._slots[index]
            if particle is not None:
                return particle
        raise UnknownParticleError(f"Unknown particle {pid!r}")

    def remove(self, pid: ParticleId) -> Particle:
        """
        Remove a particle; its id becomes stale.

        Raises:
            UnknownParticleError: If the id is stale or was never issued
        """
        particle = self.get(pid)
        index = pid.index
        self._slots[index] = None
        del self._order[index]
        self._free.append(index)
        particle.id = None
        return particle

    def clear(self) -> None:
        """Remove every particle."""
        for pid in self.ids():
            self.remove(pid)

    def ids(self) -> list[ParticleId]:
        """Ids of live particles in insertion order."""
        return [ParticleId(i, self._generations[i]) for i in self._order]

    def positions(self) -> np.ndarray:
        """Current positions as an (n, 2) array in iteration order."""
        coords = np.empty((len(self._order), 2), dtype=np.float64)
        for row, particle in enumerate(self):
            coords[row, 0] = particle.x
            coords[row, 1] = particle.y
        return coords

    def __contains__(self, pid: object) -> bool:
        if not isinstance(pid, tuple) or len(pid) != 2:
            return False
        index, generation = pid
        return (
            isinstance(index, int)
            and 0 <= index < len(self._slots)
            and self._generations[index] == generation
            and self._slots[index] is not None
        )

    def __iter__(self) -> Iterator[Particle]:
        slots = self._slots
        for index in list(self._order):
            particle = slots[index]
            if particle is not None:
                yield particle

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        return f"ParticleSet(n={len(self)})"


__all__ = ["ParticleSet"]
