"""Tests for the simulation loop, cooling schedule and end-to-end layouts."""

import logging
import math

import pytest

from graph_physics import (
    ChargeForce,
    CollisionConstraint,
    Constraint,
    DragForce,
    Force,
    InvalidParameterError,
    Link,
    LinkConstraint,
    Particle,
    ParticleId,
    ParticleSet,
    PositionConstraint,
    Simulation,
    SimulationState,
    Spring,
    SpringForce,
    UnknownParticleError,
    kinetic_energy,
    separation,
    settle,
)


class RecordingForce(Force):
    """Force that records when it runs and what it sees."""

    def __init__(self, name, log):
        self.name = name
        self.log = log

    def apply(self, particles, tree, springs, alpha):
        self.log.append((self.name, alpha, tree.body_count))


class RecordingConstraint(Constraint):
    """Constraint that records particle positions when applied."""

    def __init__(self, name, log):
        self.name = name
        self.log = log

    def apply(self, particles):
        self.log.append((self.name, [(p.x, p.y) for p in particles]))


class TestSimulationSetup:
    """Tests for construction and registration."""

    def test_defaults(self):
        """A new simulation starts active at alpha 1."""
        sim = Simulation()
        assert sim.alpha == 1.0
        assert sim.alpha_decay == 0.99
        assert sim.alpha_epsilon == 0.001
        assert sim.state is SimulationState.ACTIVE
        assert not sim.settled
        assert sim.tick_count == 0
        assert len(sim.particles) == 0

    def test_adopts_particle_set(self):
        """A ParticleSet passed in is used directly."""
        particles = ParticleSet([Particle(0, 0)])
        sim = Simulation(particles=particles)
        assert sim.particles is particles

    def test_particles_from_iterable(self):
        """Plain particles are collected into a new set."""
        sim = Simulation(particles=[Particle(0, 0), Particle(1, 1)])
        assert len(sim.particles) == 2

    def test_add_spring_unknown_particle(self):
        """Springs must reference particles in the set."""
        sim = Simulation()
        a = sim.add_particle(Particle(0, 0))
        with pytest.raises(UnknownParticleError, match="Invalid spring references"):
            sim.add_spring(Spring(a, ParticleId(9, 0)))

    def test_add_constraint_unknown_particle(self):
        """Link constraints must reference particles in the set."""
        sim = Simulation()
        a = sim.add_particle(Particle(0, 0))
        with pytest.raises(UnknownParticleError, match="Invalid link references"):
            sim.add_constraint(LinkConstraint([Link(a, ParticleId(3, 0))]))
        assert sim.constraints == ()

    def test_remove_spring(self):
        """Springs are removed by identity."""
        sim = Simulation()
        a = sim.add_particle(Particle(0, 0))
        b = sim.add_particle(Particle(10, 0))
        spring = sim.add_spring(Spring(a, b))

        sim.remove_spring(spring)
        assert sim.springs == ()
        with pytest.raises(InvalidParameterError):
            sim.remove_spring(spring)

    def test_remove_particle_cascades(self):
        """Removing a particle drops its springs and links."""
        sim = Simulation()
        a = sim.add_particle(Particle(0, 0))
        b = sim.add_particle(Particle(10, 0))
        c = sim.add_particle(Particle(20, 0))
        sim.add_spring(Spring(a, b))
        kept = sim.add_spring(Spring(b, c))
        links = LinkConstraint([Link(a, c)])
        targets = {a: (0.0, 0.0), c: (5.0, 5.0)}
        sim.add_constraint(links).add_constraint(PositionConstraint(targets))

        removed = sim.remove_particle(a)

        assert removed.id is None
        assert a not in sim.particles
        assert sim.springs == (kept,)
        assert links.links == []
        assert a not in targets
        with pytest.raises(UnknownParticleError):
            sim.remove_particle(a)

    def test_direct_set_removal_is_reconciled(self):
        """Particles removed from the set directly are forgotten at the next tick."""
        sim = Simulation(forces=[ChargeForce(), DragForce(), SpringForce()])
        a = sim.add_particle(Particle(0, 0))
        b = sim.add_particle(Particle(10, 0))
        c = sim.add_particle(Particle(20, 0))
        sim.add_spring(Spring(a, b))
        kept = sim.add_spring(Spring(a, c))
        links = LinkConstraint([Link(b, c), Link(a, c)])
        sim.add_constraint(links)

        sim.particles.remove(b)
        sim.tick()

        assert sim.tick_count == 1
        assert sim.springs == (kept,)
        assert [(lk.source, lk.target) for lk in links.links] == [(a, c)]

    def test_fluent_registration(self):
        """add_force/add_constraint return the simulation."""
        sim = Simulation()
        drag = DragForce()
        assert sim.add_force(drag).add_force(SpringForce()) is sim
        assert sim.forces[0] is drag
        sim.remove_force(drag)
        assert len(sim.forces) == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"initial_alpha": 1.5},
            {"alpha_decay": -0.1},
            {"alpha_decay": 1.01},
            {"alpha_epsilon": -1.0},
            {"theta": -0.5},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        """Cooling and tree parameters are validated."""
        with pytest.raises(InvalidParameterError):
            Simulation(**kwargs)


class TestTick:
    """Tests for the per-tick pipeline."""

    def test_forces_then_constraints_in_order(self):
        """Forces run in list order before integration, constraints after."""
        log = []
        sim = Simulation(
            particles=[Particle(0, 0), Particle(10, 0)],
            forces=[RecordingForce("first", log), RecordingForce("second", log)],
            constraints=[RecordingConstraint("c1", log), RecordingConstraint("c2", log)],
        )

        sim.tick()

        assert [entry[0] for entry in log] == ["first", "second", "c1", "c2"]
        assert log[0][1] == 1.0
        assert log[0][2] == 2

    def test_constraints_see_integrated_positions(self):
        """Constraint input already includes this tick's displacement."""
        log = []
        sim = Simulation(
            particles=[Particle(0, 0, px=-1.0, py=0.0)],
            constraints=[RecordingConstraint("after", log)],
        )

        sim.tick()

        # Inertia carries the particle one unit further
        assert log[0][1] == [(1.0, 0.0)]

    def test_inertia_without_forces(self):
        """With no forces particles keep moving at constant velocity."""
        sim = Simulation(particles=[Particle(5, 5, px=4, py=3)])
        p = next(iter(sim.particles))

        sim.tick()
        sim.tick()

        assert (p.x, p.y) == (7.0, 9.0)
        assert (p.vx, p.vy) == (1.0, 2.0)

    def test_empty_simulation_ticks(self):
        """An empty particle set cools without error."""
        sim = Simulation(forces=[ChargeForce(), DragForce(), SpringForce()])
        sim.tick()
        assert sim.tick_count == 1
        assert sim.alpha == pytest.approx(0.99)

    def test_unpadded_tree_with_coincident_edge_particles(self):
        """Coincident particles on the layout edge tick cleanly without tree padding."""
        sim = Simulation(
            particles=[Particle(0, 0), Particle(5, 5), Particle(5, 5)],
            forces=[ChargeForce()],
            padding=0.0,
        )

        sim.tick()

        assert all(math.isfinite(p.x) and math.isfinite(p.y) for p in sim.particles)
        _, b, c = sim.particles
        assert b.x < c.x

    def test_fixed_particles_never_move(self):
        """Fixed particles are bit-identical after any number of ticks."""
        sim = Simulation()
        anchor = sim.add_particle(Particle(1.25, -3.5, fixed=True, mass=2.0))
        others = [sim.add_particle(Particle(x, y)) for x, y in [(2, -3), (1.25, -3.5), (-4, 6)]]
        for pid in others:
            sim.add_spring(Spring(anchor, pid, rest_length=15))
        sim.add_force(ChargeForce()).add_force(DragForce()).add_force(SpringForce())
        sim.add_constraint(PositionConstraint(lambda p: (100.0, 100.0), alpha=0.3))
        sim.add_constraint(CollisionConstraint(radius=3.0))
        sim.add_constraint(LinkConstraint([Link(anchor, others[0], length=8.0)]))

        fixed = sim.particles.get(anchor)
        before = (fixed.x, fixed.y, fixed.px, fixed.py)
        for _ in range(25):
            sim.tick()

        assert (fixed.x, fixed.y, fixed.px, fixed.py) == before

    def test_deterministic(self):
        """Identical setups produce identical trajectories."""

        def run():
            sim = Simulation(
                particles=[Particle(i * 3.0, (i * 7) % 5) for i in range(12)],
                forces=[ChargeForce(), DragForce()],
                constraints=[CollisionConstraint(radius=2.0)],
            )
            for _ in range(30):
                sim.tick()
            return sim.particles.positions().tolist()

        assert run() == run()


class TestCooling:
    """Tests for the alpha schedule and lifecycle."""

    def test_alpha_strictly_decreasing_until_settled(self):
        """Alpha decays geometrically and settling is reported once below epsilon."""
        sim = Simulation(particles=[Particle(0, 0)], alpha_decay=0.9, alpha_epsilon=0.01)

        alphas = [sim.alpha]
        while not sim.tick():
            alphas.append(sim.alpha)
        alphas.append(sim.alpha)

        assert all(b < a for a, b in zip(alphas, alphas[1:]))
        assert sim.tick_count == 44
        assert sim.alpha < 0.01
        assert sim.state is SimulationState.SETTLED

    def test_settled_ticks_are_noops(self):
        """Ticks after settling change nothing."""
        sim = Simulation(
            particles=[Particle(0, 0), Particle(1, 0)],
            forces=[ChargeForce()],
            alpha_decay=0.5,
            alpha_epsilon=0.1,
        )
        settle(sim)
        snapshot = sim.particles.positions().tolist()
        count, alpha = sim.tick_count, sim.alpha

        assert sim.tick() is True
        assert sim.particles.positions().tolist() == snapshot
        assert (sim.tick_count, sim.alpha) == (count, alpha)

    def test_resume_reheats(self):
        """resume() makes a settled simulation active again."""
        sim = Simulation()
        sim.stop()
        assert sim.settled
        assert sim.alpha == 0.0

        sim.resume()
        assert sim.alpha == 0.1
        assert sim.state is SimulationState.ACTIVE

        sim.resume(alpha=0.5)
        assert sim.alpha == 0.5

    def test_stop_then_tick(self):
        """A stopped simulation reports settled immediately."""
        sim = Simulation(particles=[Particle(0, 0, px=-1, py=0)])
        sim.stop()
        assert sim.tick() is True
        assert sim.tick_count == 0

    def test_stop_settles_with_zero_epsilon(self):
        """stop() settles even when alpha_epsilon is zero, until resumed."""
        sim = Simulation(particles=[Particle(0, 0, px=-1, py=0)], alpha_epsilon=0.0)
        p = next(iter(sim.particles))

        sim.stop()
        assert sim.settled
        assert sim.state is SimulationState.SETTLED
        assert sim.tick() is True
        assert (p.x, sim.tick_count) == (0.0, 0)

        sim.resume()
        assert not sim.settled
        assert sim.tick() is False
        assert p.x == 1.0

    def test_no_decay_never_settles(self):
        """alpha_decay = 1 keeps the simulation running."""
        sim = Simulation(alpha_decay=1.0)
        assert settle(sim, max_ticks=50) == 50
        assert not sim.settled
        assert sim.alpha == 1.0

    def test_settle_returns_ticks_run(self):
        """settle() reports the ticks it ran."""
        sim = Simulation(alpha_decay=0.9, alpha_epsilon=0.01)
        assert settle(sim) == 44
        assert settle(sim) == 0

    def test_settle_rejects_negative_budget(self):
        """The tick budget must be non-negative."""
        with pytest.raises(InvalidParameterError, match="max_ticks"):
            settle(Simulation(), max_ticks=-1)

    def test_settling_is_logged(self, caplog):
        """Settling emits a debug record."""
        caplog.set_level(logging.DEBUG, logger="graph_physics.simulation")
        sim = Simulation(alpha_decay=0.5, alpha_epsilon=0.1)
        settle(sim)
        assert any("settled after 4 ticks" in r.getMessage() for r in caplog.records)


class TestLayouts:
    """End-to-end layout behavior."""

    def test_two_charges_repel(self):
        """Two nearby charges fly apart and the simulation settles."""
        sim = Simulation(
            particles=[Particle(0, 0), Particle(1, 0)],
            forces=[ChargeForce(constant=40.0), DragForce(coefficient=0.1)],
        )
        a, b = sim.particles

        sim.tick()
        assert separation(a, b) == pytest.approx(21.0)

        previous = separation(a, b)
        ticks = 1
        while not sim.tick():
            ticks += 1
            current = separation(a, b)
            assert current >= previous
            previous = current

        assert ticks < 1000
        assert sim.settled
        # Symmetric pair keeps its midpoint
        assert (a.x + b.x) / 2 == pytest.approx(0.5)
        assert a.y == b.y == 0.0

    def test_spring_relaxes_to_rest_length(self):
        """A stretched spring contracts without overshooting its rest length."""
        sim = Simulation(particles=[Particle(0, 0), Particle(200, 0)])
        a, b = sim.particles
        sim.add_spring(Spring(a.id, b.id, rest_length=50.0, stiffness=0.1, damping=0.2))
        sim.add_force(DragForce(coefficient=0.5)).add_force(SpringForce())

        previous = separation(a, b)
        while not sim.tick():
            current = separation(a, b)
            assert current <= previous + 1e-9
            assert current >= 50.0 - 1e-9
            previous = current

        assert abs(separation(a, b) - 50.0) < 0.5
        assert (a.x + b.x) / 2 == pytest.approx(100.0)

    def test_triangle_stays_equilateral(self):
        """A symmetric triangle keeps equal sides while it relaxes."""
        h = 15.0 * math.sqrt(3.0)
        sim = Simulation(particles=[Particle(0, 0), Particle(30, 0), Particle(15, h)], theta=0.0)
        ids = sim.particles.ids()
        for i in range(3):
            sim.add_spring(Spring(ids[i], ids[(i + 1) % 3], rest_length=40.0))
        sim.add_force(ChargeForce(constant=40.0)).add_force(DragForce()).add_force(SpringForce())

        settle(sim, max_ticks=1000)

        a, b, c = sim.particles
        sides = [separation(a, b), separation(b, c), separation(c, a)]
        assert sides[0] > 30.0
        assert sides[1] == pytest.approx(sides[0], rel=1e-6)
        assert sides[2] == pytest.approx(sides[0], rel=1e-6)

    def test_energy_decays(self):
        """A damped system loses kinetic energy as it cools."""
        sim = Simulation(
            particles=[Particle(x, y) for x, y in [(0, 0), (3, 1), (1, 4), (5, 5)]],
            forces=[ChargeForce(), DragForce(coefficient=0.3)],
        )
        for _ in range(20):
            sim.tick()
        early = kinetic_energy(sim.particles)
        settle(sim)
        assert kinetic_energy(sim.particles) < early
