"""
Forces acting on particles.

This module provides the force abstraction and its variants:
- ChargeForce: n-body repulsion/attraction via the Barnes-Hut quadtree
- DragForce: velocity damping
- SpringForce: Hooke's law attraction along springs
"""

from .base import Force
from .charge import ChargeForce, exact_displacements
from .drag import DragForce
from .spring import SpringForce

__all__ = [
    "Force",
    "ChargeForce",
    "DragForce",
    "SpringForce",
    "exact_displacements",
]
