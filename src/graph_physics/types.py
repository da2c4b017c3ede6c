"""
Common types for the physics engine.

This module provides the fundamental records shared by every component:
- ParticleId: Stable generational handle into a ParticleSet
- Particle: Point mass with current/previous position
- Spring: Soft Hooke's-law connection between two particles
- Link: Rigid distance requirement between two particles
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

from .validation import (
    InvalidLinkError,
    validate_coordinate,
    validate_mass,
    validate_rest_length,
    validate_spring,
)


class ParticleId(NamedTuple):
    """
    Generational arena handle.

    The index addresses a slot in the owning ParticleSet; the generation
    distinguishes successive occupants of a reused slot so stale handles
    are detected instead of silently aliasing a newer particle.
    """

    index: int
    generation: int

    def __repr__(self) -> str:
        return f"ParticleId({self.index}v{self.generation})"


class Particle:
    """
    Point mass used by the simulation.

    Attributes:
        x, y: Current position
        px, py: Position one tick ago (implicit velocity is x - px, y - py)
        fx, fy: Displacement accumulated for the current tick
        mass: Positive mass
        fixed: If True, nothing in the simulation moves this particle
        id: Stable handle, set when the particle joins a ParticleSet
    """

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        *,
        mass: float = 1.0,
        fixed: bool = False,
        px: Optional[float] = None,
        py: Optional[float] = None,
    ) -> None:
        """
        Create a particle at rest at (x, y).

        Args:
            x, y: Initial position
            mass: Particle mass (must be positive)
            fixed: Pin the particle in place
            px, py: Previous position. Defaults to (x, y), i.e. zero velocity.

        Raises:
            InvalidParticleError: If mass <= 0 or a coordinate is not finite
        """
        self.x: float = validate_coordinate(x, "x")
        self.y: float = validate_coordinate(y, "y")
        self.px: float = self.x if px is None else validate_coordinate(px, "px")
        self.py: float = self.y if py is None else validate_coordinate(py, "py")
        self.fx: float = 0.0
        self.fy: float = 0.0
        self.mass: float = validate_mass(mass)
        self.fixed: bool = bool(fixed)
        self.id: Optional[ParticleId] = None

    @property
    def vx(self) -> float:
        """Implicit x velocity."""
        return self.x - self.px

    @property
    def vy(self) -> float:
        """Implicit y velocity."""
        return self.y - self.py

    @property
    def inverse_mass(self) -> float:
        """Share of a positional correction this particle absorbs (0 if fixed)."""
        return 0.0 if self.fixed else 1.0 / self.mass

    def __repr__(self) -> str:
        return f"Particle(id={self.id}, x={self.x:.2f}, y={self.y:.2f})"


@dataclass
class Spring:
    """
    Soft connection between two particles.

    Attributes:
        source: Id of the first particle
        target: Id of the second particle
        rest_length: Separation at which the spring exerts no pull
        stiffness: Hooke's law constant
        damping: Fraction of relative velocity along the axis removed per tick

    Only rest_length is expected to change after the spring is registered;
    every assignment to it is validated.
    """

    source: ParticleId
    target: ParticleId
    rest_length: float = 20.0
    stiffness: float = 0.1
    damping: float = 0.3

    def __post_init__(self) -> None:
        self.stiffness = float(self.stiffness)
        self.damping = float(self.damping)
        validate_spring(self.rest_length, self.stiffness, self.damping)

    def __setattr__(self, name: str, value: Any) -> None:
        # rest_length is checked on every assignment, including __init__
        if name == "rest_length":
            value = validate_rest_length(value)
        super().__setattr__(name, value)


@dataclass
class Link:
    """
    Rigid distance requirement between two particles.

    Attributes:
        source: Id of the first particle
        target: Id of the second particle
        length: Required separation
    """

    source: ParticleId
    target: ParticleId
    length: float = 20.0

    def __post_init__(self) -> None:
        self.length = float(self.length)
        if not math.isfinite(self.length) or self.length < 0:
            raise InvalidLinkError(f"Link length must be >= 0, got {self.length}")

    @classmethod
    def from_spring(cls, spring: Spring) -> Link:
        """Rigid link holding a spring's endpoints at its rest length."""
        return cls(spring.source, spring.target, spring.rest_length)


__all__ = [
    "ParticleId",
    "Particle",
    "Spring",
    "Link",
]
