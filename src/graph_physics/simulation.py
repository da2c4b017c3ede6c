"""
Simulation loop.

The Simulation owns the particles, springs, forces and constraints, and a
cooling coefficient alpha. An external driver (render loop, timer, or the
`settle` helper below) calls `tick()` repeatedly until it reports that the
simulation has settled.

Each tick runs in a fixed order:
1. build a quadtree from the current positions
2. seed every displacement with the particle's implicit velocity, then
   apply forces in list order
3. integrate free particles
4. apply constraints in list order
5. cool alpha; below epsilon the simulation is settled
"""

from __future__ import annotations

import itertools
import logging
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Union

if TYPE_CHECKING:
    from typing_extensions import Self

from .constraints.base import Constraint
from .forces.base import Force
from .particles import ParticleSet
from .spatial.quadtree import QuadTree
from .types import Particle, ParticleId, Spring
from .validation import (
    InvalidParameterError,
    validate_alpha,
    validate_fraction,
    validate_non_negative,
    validate_references,
)

logger = logging.getLogger(__name__)


class SimulationState(Enum):
    """
    Simulation lifecycle.

    - ACTIVE: alpha >= epsilon, ticks move particles
    - SETTLED: alpha < epsilon or stopped, ticks are no-ops
    """

    ACTIVE = "active"
    SETTLED = "settled"


class Simulation:
    """
    Particle simulation with a cooling schedule.

    Example:
        sim = Simulation(alpha_decay=0.99)
        a = sim.add_particle(Particle(0, 0))
        b = sim.add_particle(Particle(200, 0))
        sim.add_spring(Spring(a, b, rest_length=50))
        sim.add_force(DragForce()).add_force(SpringForce())

        while not sim.tick():
            draw(sim.particles.positions())
    """

    def __init__(
        self,
        *,
        particles: Optional[Union[ParticleSet, Iterable[Particle]]] = None,
        springs: Optional[Iterable[Spring]] = None,
        forces: Optional[Iterable[Force]] = None,
        constraints: Optional[Iterable[Constraint]] = None,
        initial_alpha: float = 1.0,
        alpha_decay: float = 0.99,
        alpha_epsilon: float = 0.001,
        theta: float = 0.9,
        padding: float = 10.0,
    ) -> None:
        """
        Initialize simulation.

        Args:
            particles: A ParticleSet to adopt, or particles to add to a new one
            springs: Springs between particles of the set
            forces: Forces, applied in the given order
            constraints: Constraints, applied in the given order
            initial_alpha: Starting cooling coefficient (0 to 1)
            alpha_decay: Multiplicative alpha decay per tick (0 to 1). 1 disables
                cooling, so the simulation never settles on its own.
            alpha_epsilon: Alpha below which the simulation is settled
            theta: Barnes-Hut accuracy for the per-tick quadtree
            padding: Margin around the particles when sizing the quadtree

        Raises:
            ValidationError: If any parameter or reference is invalid
        """
        if isinstance(particles, ParticleSet):
            self._particles = particles
        else:
            self._particles = ParticleSet(particles)

        self._springs: list[Spring] = []
        self._forces: list[Force] = []
        self._constraints: list[Constraint] = []

        self._alpha: float = validate_alpha(initial_alpha)
        self._alpha_decay: float = validate_fraction(alpha_decay, "alpha_decay")
        self._alpha_epsilon: float = validate_non_negative(alpha_epsilon, "alpha_epsilon")
        self._theta: float = validate_non_negative(theta, "theta")
        self._padding: float = validate_non_negative(padding, "padding")
        self._tick_count: int = 0
        self._stopped: bool = False

        for spring in springs or ():
            self.add_spring(spring)
        for force in forces or ():
            self.add_force(force)
        for constraint in constraints or ():
            self.add_constraint(constraint)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def particles(self) -> ParticleSet:
        """
        Get the particle set.

        Prefer `remove_particle` for removals. Particles removed from the set
        directly are noticed at the next tick, which then drops their springs
        and tells forces and constraints to forget them.
        """
        return self._particles

    @property
    def springs(self) -> tuple[Spring, ...]:
        """Get registered springs."""
        return tuple(self._springs)

    @property
    def forces(self) -> tuple[Force, ...]:
        """Get forces in application order."""
        return tuple(self._forces)

    @property
    def constraints(self) -> tuple[Constraint, ...]:
        """Get constraints in application order."""
        return tuple(self._constraints)

    @property
    def alpha(self) -> float:
        """Get current alpha (cooling coefficient)."""
        return self._alpha

    @property
    def alpha_decay(self) -> float:
        """Get alpha decay factor."""
        return self._alpha_decay

    @alpha_decay.setter
    def alpha_decay(self, value: float) -> None:
        self._alpha_decay = validate_fraction(value, "alpha_decay")

    @property
    def alpha_epsilon(self) -> float:
        """Get convergence threshold."""
        return self._alpha_epsilon

    @alpha_epsilon.setter
    def alpha_epsilon(self, value: float) -> None:
        self._alpha_epsilon = validate_non_negative(value, "alpha_epsilon")

    @property
    def theta(self) -> float:
        """Get Barnes-Hut theta used for the per-tick quadtree."""
        return self._theta

    @theta.setter
    def theta(self, value: float) -> None:
        self._theta = validate_non_negative(value, "theta")

    @property
    def tick_count(self) -> int:
        """Number of ticks that did work."""
        return self._tick_count

    @property
    def state(self) -> SimulationState:
        """Current lifecycle state."""
        if self._stopped or self._alpha < self._alpha_epsilon:
            return SimulationState.SETTLED
        return SimulationState.ACTIVE

    @property
    def settled(self) -> bool:
        """True once alpha has dropped below epsilon or the simulation was stopped."""
        return self.state is SimulationState.SETTLED

    # -------------------------------------------------------------------------
    # Mutators (between ticks)
    # -------------------------------------------------------------------------

    def add_particle(self, particle: Particle) -> ParticleId:
        """Add a particle and return its stable id."""
        return self._particles.add(particle)

    def remove_particle(self, pid: ParticleId) -> Particle:
        """
        Remove a particle.

        Springs touching the particle are dropped and every force and
        constraint is told to forget it.

        Raises:
            UnknownParticleError: If the id is stale or unknown
        """
        particle = self._particles.remove(pid)
        self._forget(pid)
        return particle

    def _forget(self, pid: ParticleId) -> None:
        """Drop every reference to a particle that left the set."""
        self._springs = [s for s in self._springs if s.source != pid and s.target != pid]
        for force in self._forces:
            force.discard_particle(pid)
        for constraint in self._constraints:
            constraint.discard_particle(pid)

    def _forget_departed(self) -> None:
        """Forget particles removed from the set behind the simulation's back."""
        particles = self._particles
        departed: dict[ParticleId, None] = {}
        for record in itertools.chain(
            self._springs, *(c.references() for c in self._constraints)
        ):
            for pid in (record.source, record.target):
                if pid not in particles:
                    departed[pid] = None

        for pid in departed:
            logger.debug("Dropping references to removed particle %r", pid)
            self._forget(pid)

    def add_spring(self, spring: Spring) -> Spring:
        """
        Register a spring.

        Raises:
            UnknownParticleError: If either endpoint is not in the particle set
        """
        validate_references([spring], self._particles, kind="Spring")
        self._springs.append(spring)
        return spring

    def remove_spring(self, spring: Spring) -> None:
        """Unregister a spring (by identity)."""
        for i, existing in enumerate(self._springs):
            if existing is spring:
                del self._springs[i]
                return
        raise InvalidParameterError("Spring is not registered with this simulation")

    def add_force(self, force: Force) -> Self:
        """Append a force to the application order."""
        self._forces.append(force)
        return self

    def remove_force(self, force: Force) -> Self:
        """Remove a force."""
        self._forces.remove(force)
        return self

    def add_constraint(self, constraint: Constraint) -> Self:
        """
        Append a constraint to the application order.

        Raises:
            UnknownParticleError: If the constraint links unknown particles
        """
        validate_references(constraint.references(), self._particles, kind="Link")
        self._constraints.append(constraint)
        return self

    def remove_constraint(self, constraint: Constraint) -> Self:
        """Remove a constraint."""
        self._constraints.remove(constraint)
        return self

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    def tick(self) -> bool:
        """
        Advance the simulation by one step.

        Returns:
            True if the simulation is settled (further ticks are no-ops).
        """
        if self.settled:
            return True

        self._forget_departed()
        particles = self._particles
        tree = QuadTree.build(particles, theta=self._theta, padding=self._padding)

        # Verlet inertia: start from the implicit velocity
        for p in particles:
            p.fx = p.x - p.px
            p.fy = p.y - p.py

        for force in self._forces:
            force.apply(particles, tree, self._springs, self._alpha)

        for p in particles:
            if p.fixed:
                continue
            p.px = p.x
            p.py = p.y
            p.x += p.fx
            p.y += p.fy

        for constraint in self._constraints:
            constraint.apply(particles)

        self._alpha *= self._alpha_decay
        self._tick_count += 1

        if self.settled:
            logger.debug("Simulation settled after %d ticks (alpha=%g)", self._tick_count, self._alpha)
            return True
        return False

    def resume(self, alpha: float = 0.1) -> Self:
        """Reheat the simulation, e.g. after adding particles."""
        self._alpha = validate_alpha(alpha)
        self._stopped = False
        logger.debug("Simulation resumed with alpha=%g", self._alpha)
        return self

    def stop(self) -> Self:
        """Cool the simulation to zero; it is settled until resumed."""
        self._alpha = 0.0
        self._stopped = True
        return self


def settle(simulation: Simulation, max_ticks: int = 1000) -> int:
    """
    Tick a simulation until it settles or the tick budget runs out.

    This is a convenience driver; interactive callers usually tick from
    their own render loop instead.

    Args:
        simulation: Simulation to drive
        max_ticks: Maximum number of ticks to run

    Returns:
        Number of ticks run
    """
    if max_ticks < 0:
        raise InvalidParameterError(f"max_ticks must be >= 0, got {max_ticks}")
    ticks = 0
    while ticks < max_ticks and not simulation.settled:
        simulation.tick()
        ticks += 1
    return ticks


__all__ = ["Simulation", "SimulationState", "settle"]
