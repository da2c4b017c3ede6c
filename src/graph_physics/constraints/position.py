"""
Position constraint: pull particles toward target positions.
"""

from __future__ import annotations

from typing import Callable, Mapping, Optional, Tuple, Union

from ..particles import ParticleSet
from ..types import Particle, ParticleId
from ..validation import validate_alpha
from .base import Constraint

Point = Tuple[float, float]
TargetLike = Union[Mapping[ParticleId, Point], Callable[[Particle], Optional[Point]]]


class PositionConstraint(Constraint):
    """
    Blend particles toward target positions.

    Each tick a constrained particle moves by (target - position) * alpha.
    With alpha = 1 the particle is placed exactly on its target; with
    alpha = 0 the constraint does nothing. Fixed particles are left alone.

    Example:
        anchor = PositionConstraint({hub_id: (400.0, 300.0)}, alpha=0.5)
        simulation.add_constraint(anchor)
    """

    def __init__(self, target: TargetLike, *, alpha: float = 1.0) -> None:
        """
        Args:
            target: Mapping of particle id to (x, y), or a callable returning a
                target for a particle (None leaves that particle unconstrained)
            alpha: Blend fraction in [0, 1]
        """
        self._target = target
        self._alpha: float = validate_alpha(alpha)

    @property
    def alpha(self) -> float:
        """Get blend fraction."""
        return self._alpha

    @alpha.setter
    def alpha(self, value: float) -> None:
        self._alpha = validate_alpha(value)

    @property
    def target(self) -> TargetLike:
        """Get target mapping or callable."""
        return self._target

    @target.setter
    def target(self, value: TargetLike) -> None:
        self._target = value

    def _target_of(self, particle: Particle) -> Optional[Point]:
        if callable(self._target):
            return self._target(particle)
        if particle.id is None:
            return None
        return self._target.get(particle.id)

    def apply(self, particles: ParticleSet) -> None:
        a = self._alpha
        if a == 0:
            return

        for p in particles:
            if p.fixed:
                continue
            goal = self._target_of(p)
            if goal is None:
                continue
            tx, ty = goal
            if a == 1:
                p.x = float(tx)
                p.y = float(ty)
            else:
                p.x += (tx - p.x) * a
                p.y += (ty - p.y) * a

    def discard_particle(self, pid: ParticleId) -> None:
        if isinstance(self._target, dict):
            self._target.pop(pid, None)


__all__ = ["PositionConstraint"]
