"""Tests for particle records and the generational particle arena."""

import math

import numpy as np
import pytest

from graph_physics import (
    InvalidLinkError,
    InvalidParticleError,
    InvalidSpringError,
    Link,
    Particle,
    ParticleId,
    ParticleSet,
    Spring,
    UnknownParticleError,
)


class TestParticle:
    """Tests for the Particle entity."""

    def test_defaults(self):
        """A new particle is at rest with unit mass."""
        p = Particle(3.0, 4.0)
        assert (p.x, p.y) == (3.0, 4.0)
        assert (p.px, p.py) == (3.0, 4.0)
        assert p.mass == 1.0
        assert not p.fixed
        assert p.id is None

    def test_implicit_velocity(self):
        """Velocity is the difference to the previous position."""
        p = Particle(10.0, 5.0, px=7.0, py=6.0)
        assert p.vx == 3.0
        assert p.vy == -1.0

    def test_inverse_mass(self):
        """Fixed particles absorb no correction."""
        assert Particle(mass=4.0).inverse_mass == 0.25
        assert Particle(mass=4.0, fixed=True).inverse_mass == 0.0

    @pytest.mark.parametrize("mass", [0, -1.0, math.nan])
    def test_non_positive_mass_raises(self, mass):
        """Mass must be positive."""
        with pytest.raises(InvalidParticleError, match="mass must be positive"):
            Particle(0.0, 0.0, mass=mass)

    def test_non_finite_position_raises(self):
        """Coordinates must be finite."""
        with pytest.raises(InvalidParticleError, match="must be finite"):
            Particle(math.inf, 0.0)
        with pytest.raises(InvalidParticleError, match="must be finite"):
            Particle(0.0, 0.0, py=math.nan)


class TestSpringAndLink:
    """Tests for Spring and Link records."""

    def test_spring_defaults(self):
        """Springs default to the classic layout parameters."""
        spring = Spring(ParticleId(0, 0), ParticleId(1, 0))
        assert spring.rest_length == 20.0
        assert spring.stiffness == 0.1
        assert spring.damping == 0.3

    def test_spring_rest_length_reconfigurable(self):
        """rest_length may be changed after creation."""
        spring = Spring(ParticleId(0, 0), ParticleId(1, 0), rest_length=10)
        spring.rest_length = 30.0
        assert spring.rest_length == 30.0

    @pytest.mark.parametrize("value", [-5.0, math.inf, math.nan])
    def test_invalid_rest_length_reassignment(self, value):
        """Reassigning rest_length is validated and leaves the old value."""
        spring = Spring(ParticleId(0, 0), ParticleId(1, 0), rest_length=10)
        with pytest.raises(InvalidSpringError, match="rest_length must be >= 0"):
            spring.rest_length = value
        assert spring.rest_length == 10.0

    def test_invalid_spring_raises(self):
        """Negative parameters are configuration errors."""
        a, b = ParticleId(0, 0), ParticleId(1, 0)
        with pytest.raises(InvalidSpringError, match="rest_length"):
            Spring(a, b, rest_length=-1)
        with pytest.raises(InvalidSpringError, match="stiffness"):
            Spring(a, b, stiffness=-0.5)
        with pytest.raises(InvalidSpringError, match="damping"):
            Spring(a, b, damping=1.5)

    def test_link_from_spring(self):
        """A rigid link can mirror a spring's rest length."""
        spring = Spring(ParticleId(0, 0), ParticleId(1, 0), rest_length=42.0)
        link = Link.from_spring(spring)
        assert (link.source, link.target, link.length) == (spring.source, spring.target, 42.0)

    def test_negative_link_length_raises(self):
        """Link length must be non-negative."""
        with pytest.raises(InvalidLinkError):
            Link(ParticleId(0, 0), ParticleId(1, 0), length=-3.0)


class TestParticleSet:
    """Tests for the generational arena."""

    def test_add_assigns_ids(self):
        """Each particle receives a distinct id."""
        particles = ParticleSet()
        a = particles.add(Particle(0, 0))
        b = particles.add(Particle(1, 1))

        assert a != b
        assert particles.get(a).id == a
        assert len(particles) == 2
        assert a in particles and b in particles

    def test_construct_from_iterable(self):
        """Particles passed to the constructor are added in order."""
        items = [Particle(i, 0) for i in range(3)]
        particles = ParticleSet(items)
        assert list(particles) == items

    def test_add_twice_raises(self):
        """A particle cannot join two sets."""
        p = Particle(0, 0)
        ParticleSet([p])
        with pytest.raises(InvalidParticleError, match="already belongs"):
            ParticleSet([p])

    def test_remove_keeps_other_ids(self):
        """Removal does not renumber remaining particles."""
        particles = ParticleSet()
        ids = [particles.add(Particle(i, 0)) for i in range(4)]

        removed = particles.remove(ids[1])
        assert removed.x == 1
        assert removed.id is None
        for pid, x in zip([ids[0], ids[2], ids[3]], [0, 2, 3]):
            assert particles.get(pid).x == x

    def test_stale_id_after_slot_reuse(self):
        """A reused slot gets a new generation; the old id stays invalid."""
        particles = ParticleSet()
        old = particles.add(Particle(0, 0))
        particles.remove(old)
        new = particles.add(Particle(5, 5))

        assert new.index == old.index
        assert new.generation == old.generation + 1
        assert old not in particles
        with pytest.raises(UnknownParticleError):
            particles.get(old)

    def test_unknown_id_raises(self):
        """Ids never issued are rejected."""
        particles = ParticleSet([Particle(0, 0)])
        with pytest.raises(UnknownParticleError, match="Unknown particle"):
            particles.get(ParticleId(7, 0))
        with pytest.raises(UnknownParticleError):
            particles.remove(ParticleId(7, 0))

    def test_iteration_is_insertion_order(self):
        """Iteration order follows insertion, including after slot reuse."""
        particles = ParticleSet()
        a = particles.add(Particle(0, 0))
        particles.add(Particle(1, 0))
        particles.remove(a)
        particles.add(Particle(2, 0))

        assert [p.x for p in particles] == [1, 2]
        assert [particles.get(pid).x for pid in particles.ids()] == [1, 2]

    def test_positions_array(self):
        """positions() exposes coordinates for renderers."""
        particles = ParticleSet([Particle(1, 2), Particle(3, 4)])
        coords = particles.positions()

        assert coords.shape == (2, 2)
        np.testing.assert_array_equal(coords, [[1.0, 2.0], [3.0, 4.0]])
        assert ParticleSet().positions().shape == (0, 2)

    def test_clear(self):
        """clear() removes every particle."""
        particles = ParticleSet([Particle(0, 0), Particle(1, 1)])
        particles.clear()
        assert len(particles) == 0
        assert list(particles) == []

    def test_contains_rejects_garbage(self):
        """Membership on non-ids is simply False."""
        particles = ParticleSet([Particle(0, 0)])
        assert "nope" not in particles
        assert (0,) not in particles
