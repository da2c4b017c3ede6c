"""
Simulation configuration.

SimulationConfig gathers every tunable of a force-directed layout in one
immutable record and knows how to wire a Simulation from it. Options can be
given in snake_case or in the camelCase used by layout front ends.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any, Iterable, Mapping, Optional, Union

from .constraints import CollisionConstraint, Constraint
from .forces import ChargeForce, DragForce, SpringForce
from .particles import ParticleSet
from .simulation import Simulation
from .types import Particle, ParticleId, Spring
from .validation import (
    ValidationError,
    validate_alpha,
    validate_distance_range,
    validate_fraction,
    validate_non_negative,
    validate_spring,
)


@dataclass(frozen=True)
class SimulationConfig:
    """
    Tunables for a force-directed simulation.

    Attributes:
        charge_constant: Pairwise charge; positive repels, negative attracts
        theta: Barnes-Hut approximation threshold (0 = exact)
        min_distance: Charge distance clamp
        max_distance: Charge cutoff distance (None = unbounded)
        drag_coefficient: Fraction of velocity removed per tick
        spring_stiffness: Default spring stiffness
        spring_damping: Default spring damping
        rest_length: Default spring rest length
        initial_alpha: Starting cooling coefficient
        alpha_decay: Multiplicative alpha decay per tick
        alpha_epsilon: Alpha below which the simulation is settled
        collision_radius: Disc radius for collision resolution (None = off)
    """

    charge_constant: float = 40.0
    theta: float = 0.9
    min_distance: float = 2.0
    max_distance: Optional[float] = 500.0
    drag_coefficient: float = 0.1
    spring_stiffness: float = 0.1
    spring_damping: float = 0.3
    rest_length: float = 20.0
    initial_alpha: float = 1.0
    alpha_decay: float = 0.99
    alpha_epsilon: float = 0.001
    collision_radius: Optional[float] = None

    def __post_init__(self) -> None:
        validate_non_negative(self.theta, "theta")
        validate_distance_range(self.min_distance, self.max_distance)
        validate_fraction(self.drag_coefficient, "drag_coefficient")
        validate_spring(self.rest_length, self.spring_stiffness, self.spring_damping)
        validate_alpha(self.initial_alpha)
        validate_fraction(self.alpha_decay, "alpha_decay")
        validate_non_negative(self.alpha_epsilon, "alpha_epsilon")
        if self.collision_radius is not None:
            validate_non_negative(self.collision_radius, "collision_radius")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> SimulationConfig:
        """
        Build a config from a mapping of option names.

        Keys may be snake_case ("alpha_decay") or camelCase ("alphaDecay").

        Raises:
            ValidationError: On unknown keys or out-of-range values
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        unknown: list[str] = []

        for key, value in options.items():
            name = _snake_case(key)
            if name in known:
                values[name] = value
            else:
                unknown.append(key)

        if unknown:
            raise ValidationError(f"Unknown simulation option(s): {', '.join(sorted(unknown))}")
        return cls(**values)

    def with_options(self, **changes: Any) -> SimulationConfig:
        """Copy of this config with some options replaced."""
        return replace(self, **changes)

    def spring(
        self,
        source: ParticleId,
        target: ParticleId,
        rest_length: Optional[float] = None,
    ) -> Spring:
        """Create a spring using the configured defaults."""
        return Spring(
            source,
            target,
            rest_length=self.rest_length if rest_length is None else rest_length,
            stiffness=self.spring_stiffness,
            damping=self.spring_damping,
        )

    def create_simulation(
        self,
        particles: Union[ParticleSet, Iterable[Particle]] = (),
        springs: Iterable[Spring] = (),
    ) -> Simulation:
        """
        Wire a simulation from this config.

        Springs can only refer to particles that already have ids, so pass a
        ParticleSet when supplying springs up front.

        Forces run in the order charge, drag, spring. A collision constraint
        is added when collision_radius is set.
        """
        forces = [
            ChargeForce(
                constant=self.charge_constant,
                min_distance=self.min_distance,
                max_distance=self.max_distance,
            ),
            DragForce(coefficient=self.drag_coefficient),
            SpringForce(),
        ]
        constraints: list[Constraint] = []
        if self.collision_radius:
            constraints.append(CollisionConstraint(radius=self.collision_radius))

        return Simulation(
            particles=particles,
            springs=springs,
            forces=forces,
            constraints=constraints,
            initial_alpha=self.initial_alpha,
            alpha_decay=self.alpha_decay,
            alpha_epsilon=self.alpha_epsilon,
            theta=self.theta,
        )


def _snake_case(name: str) -> str:
    """Convert camelCase to snake_case (snake_case passes through)."""
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


__all__ = ["SimulationConfig"]
