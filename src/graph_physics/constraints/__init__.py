"""
Constraints applied after integration.

This module provides the constraint abstraction and its variants:
- PositionConstraint: pull particles toward target positions
- CollisionConstraint: resolve disc overlaps via quadtree neighbor search
- LinkConstraint: rigid distance between linked particles
"""

from .base import Constraint
from .collision import CollisionConstraint
from .link import LinkConstraint
from .position import PositionConstraint

__all__ = [
    "Constraint",
    "PositionConstraint",
    "CollisionConstraint",
    "LinkConstraint",
]
