"""
graph-physics: A particle physics engine for force-directed graph layout.

This package simulates attractive and repulsive forces among point masses
connected by springs, subject to positional and collision constraints, to
compute stable 2D node-link layouts.

Available components:
- spatial: Barnes-Hut quadtree
- forces: Charge, drag and spring forces
- constraints: Position, collision and link constraints
- simulation: The stepping/cooling loop driven by an external scheduler
"""

__version__ = "0.1.0"

# Configuration
from .config import SimulationConfig

# Constraints
from .constraints import (
    CollisionConstraint,
    Constraint,
    LinkConstraint,
    PositionConstraint,
)

# Forces
from .forces import (
    ChargeForce,
    DragForce,
    Force,
    SpringForce,
)

# Diagnostics
from .metrics import (
    bounding_box,
    kinetic_energy,
    min_separation,
    overlap_violations,
    separation,
)
from .particles import ParticleSet

# Simulation loop
from .simulation import Simulation, SimulationState, settle

# Spatial data structures
from .spatial import Body, QuadTree, QuadTreeNode

# Shared types
from .types import Link, Particle, ParticleId, Spring

# Validation errors
from .validation import (
    InvalidLinkError,
    InvalidParameterError,
    InvalidParticleError,
    InvalidSpringError,
    UnknownParticleError,
    ValidationError,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Particle",
    "ParticleId",
    "ParticleSet",
    "Spring",
    "Link",
    # Spatial data structures
    "Body",
    "QuadTree",
    "QuadTreeNode",
    # Forces
    "Force",
    "ChargeForce",
    "DragForce",
    "SpringForce",
    # Constraints
    "Constraint",
    "PositionConstraint",
    "CollisionConstraint",
    "LinkConstraint",
    # Simulation
    "Simulation",
    "SimulationState",
    "settle",
    "SimulationConfig",
    # Metrics
    "kinetic_energy",
    "separation",
    "min_separation",
    "overlap_violations",
    "bounding_box",
    # Validation
    "ValidationError",
    "InvalidParticleError",
    "InvalidSpringError",
    "InvalidLinkError",
    "InvalidParameterError",
    "UnknownParticleError",
]
