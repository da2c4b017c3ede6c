"""
Hooke's law spring force.

Each Spring record pulls its endpoints toward its rest length and damps
their relative motion along the spring axis.
"""

from __future__ import annotations

import math
from typing import Sequence

from ..particles import ParticleSet
from ..spatial.quadtree import QuadTree
from ..types import Spring
from .base import Force


class SpringForce(Force):
    """
    Soft attraction along explicit springs.

    For a spring of rest length L between particles a and b at distance d,
    the gap is closed by

        alpha * (stiffness * (d - L) + damping * v_rel)

    where v_rel is the rate at which the gap is currently growing (from the
    particles' implicit velocities). The correction is shared between the
    endpoints in proportion to their inverse masses; a fixed endpoint takes
    none of it. A spring at rest at exactly its rest length contributes
    nothing.

    Stiffness, damping and rest length live on each Spring record.
    """

    def apply(
        self,
        particles: ParticleSet,
        tree: QuadTree,
        springs: Sequence[Spring],
        alpha: float,
    ) -> None:
        if alpha == 0:
            return

        for spring in springs:
            a = particles.get(spring.source)
            b = particles.get(spring.target)

            wa = a.inverse_mass
            wb = b.inverse_mass
            w = wa + wb
            if w == 0:
                continue

            dx = b.x - a.x
            dy = b.y - a.y
            dist = math.sqrt(dx * dx + dy * dy)
            if dist == 0:
                # No axis to pull along; charge or collision separates them
                continue

            ux = dx / dist
            uy = dy / dist
            v_rel = (b.vx - a.vx) * ux + (b.vy - a.vy) * uy

            magnitude = alpha * (
                spring.stiffness * (dist - spring.rest_length) + spring.damping * v_rel
            )
            if magnitude == 0:
                continue

            share_a = magnitude * wa / w
            share_b = magnitude * wb / w
            a.fx += ux * share_a
            a.fy += uy * share_a
            b.fx -= ux * share_b
            b.fy -= uy * share_b


__all__ = ["SpringForce"]
