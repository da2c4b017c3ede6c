"""
Input validation utilities for the physics engine.

Provides centralized validation functions for particles, springs, links and
simulation parameters. Raises descriptive exceptions on invalid input.

Only setup-time misconfiguration is rejected here. Once a simulation is
configured, per-tick arithmetic never raises.
"""

from __future__ import annotations

import math
from typing import Any, Container, Optional, Sequence


class ValidationError(ValueError):
    """Base exception for simulation configuration errors."""

    pass


class InvalidParticleError(ValidationError):
    """Raised when a particle is malformed (non-positive mass, NaN position)."""

    pass


class InvalidSpringError(ValidationError):
    """Raised when a spring has invalid parameters."""

    pass


class InvalidLinkError(ValidationError):
    """Raised when a rigid link has invalid parameters."""

    pass


class UnknownParticleError(ValidationError):
    """Raised when a spring, link or lookup references an unknown particle."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a force, constraint or cooling parameter is out of range."""

    pass


def validate_mass(mass: float) -> float:
    """
    Validate particle mass is positive and finite.

    Args:
        mass: Particle mass

    Returns:
        Validated mass as float

    Raises:
        InvalidParticleError: If mass <= 0 or not finite
    """
    value = float(mass)
    if not math.isfinite(value) or value <= 0:
        raise InvalidParticleError(f"Particle mass must be positive, got {mass}")
    return value


def validate_coordinate(value: float, name: str) -> float:
    """
    Validate a position coordinate is finite.

    Raises:
        InvalidParticleError: If value is NaN or infinite
    """
    result = float(value)
    if not math.isfinite(result):
        raise InvalidParticleError(f"Particle {name} must be finite, got {value}")
    return result


def validate_rest_length(rest_length: float) -> float:
    """
    Validate a spring rest length is finite and >= 0.

    Raises:
        InvalidSpringError: If rest_length is negative or not finite
    """
    value = float(rest_length)
    if not math.isfinite(value) or value < 0:
        raise InvalidSpringError(f"Spring rest_length must be >= 0, got {rest_length}")
    return value


def validate_spring(rest_length: float, stiffness: float, damping: float) -> None:
    """
    Validate spring parameters.

    Args:
        rest_length: Natural length of the spring (>= 0)
        stiffness: Hooke's law constant (>= 0)
        damping: Fraction of relative velocity removed per tick (0 to 1)

    Raises:
        InvalidSpringError: If any parameter is out of range
    """
    validate_rest_length(rest_length)
    if not math.isfinite(stiffness) or stiffness < 0:
        raise InvalidSpringError(f"Spring stiffness must be >= 0, got {stiffness}")
    if damping < 0 or damping > 1:
        raise InvalidSpringError(f"Spring damping must be in [0, 1], got {damping}")


def validate_references(
    records: Sequence[Any],
    known: Container[Any],
    kind: str = "Spring",
) -> None:
    """
    Validate that every record's source/target refers to a known particle.

    Args:
        records: Sequence of Spring or Link records with source/target ids
        known: Container answering membership for particle ids
        kind: Record name used in the error message

    Raises:
        UnknownParticleError: If any source or target is unknown
    """
    issues: list[str] = []

    for i, record in enumerate(records):
        if record.source not in known:
            issues.append(f"{kind} {i}: unknown source particle {record.source}")
        if record.target not in known:
            issues.append(f"{kind} {i}: unknown target particle {record.target}")

    if issues:
        raise UnknownParticleError(f"Invalid {kind.lower()} references:\n" + "\n".join(issues))


def validate_fraction(value: float, name: str) -> float:
    """
    Validate a parameter lies in the unit interval.

    Args:
        value: Parameter value
        name: Parameter name used in the error message

    Returns:
        Validated value as float

    Raises:
        InvalidParameterError: If value not in [0, 1]
    """
    result = float(value)
    if not (0.0 <= result <= 1.0):
        raise InvalidParameterError(f"{name} must be in [0, 1], got {value}")
    return result


def validate_alpha(alpha: float) -> float:
    """
    Validate alpha is in valid range.

    Raises:
        InvalidParameterError: If alpha not in [0, 1]
    """
    return validate_fraction(alpha, "alpha")


def validate_non_negative(value: float, name: str) -> float:
    """
    Validate a parameter is finite and >= 0.

    Raises:
        InvalidParameterError: If value is negative or not finite
    """
    result = float(value)
    if not math.isfinite(result) or result < 0:
        raise InvalidParameterError(f"{name} must be >= 0, got {value}")
    return result


def validate_distance_range(min_distance: float, max_distance: Optional[float]) -> None:
    """
    Validate charge interaction distances.

    Raises:
        InvalidParameterError: If min_distance <= 0 or max_distance < min_distance
    """
    if not math.isfinite(min_distance) or min_distance <= 0:
        raise InvalidParameterError(f"min_distance must be positive, got {min_distance}")
    if max_distance is not None and max_distance < min_distance:
        raise InvalidParameterError(
            f"max_distance ({max_distance}) must be >= min_distance ({min_distance})"
        )


__all__ = [
    "ValidationError",
    "InvalidParticleError",
    "InvalidSpringError",
    "InvalidLinkError",
    "UnknownParticleError",
    "InvalidParameterError",
    "validate_mass",
    "validate_coordinate",
    "validate_rest_length",
    "validate_spring",
    "validate_references",
    "validate_fraction",
    "validate_alpha",
    "validate_non_negative",
    "validate_distance_range",
]
