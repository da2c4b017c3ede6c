#!/usr/bin/env python3
"""
Benchmark the charge force: Barnes-Hut at several theta values vs exact sums.

Usage:
    uv run python scripts/benchmark_charge.py [--sizes N,...] [--thetas T,...] [--ticks K]

Examples:
    uv run python scripts/benchmark_charge.py
    uv run python scripts/benchmark_charge.py --sizes 100,1000,5000 --ticks 5
    uv run python scripts/benchmark_charge.py --thetas 0.3,0.9 --output results.json
"""

from __future__ import annotations

import argparse
import json
import random
import time
from typing import Any

import numpy as np

from graph_physics import ChargeForce, Particle, ParticleSet, Simulation


def random_particles(n: int, seed: int = 42, extent: float = 1000.0) -> list[tuple[float, float]]:
    """Random positions in a square."""
    rng = random.Random(seed)
    return [(rng.uniform(0, extent), rng.uniform(0, extent)) for _ in range(n)]


def run_case(
    positions: list[tuple[float, float]],
    ticks: int,
    theta: float | None,
) -> tuple[float, np.ndarray]:
    """
    Tick a charge-only simulation.

    Args:
        positions: Initial particle positions
        ticks: Number of ticks to time
        theta: Barnes-Hut theta, or None for exact evaluation

    Returns:
        (elapsed seconds, final positions)
    """
    particles = ParticleSet([Particle(x, y) for x, y in positions])
    charge = ChargeForce(
        constant=40.0,
        theta=theta,
        max_distance=None,
        use_barnes_hut=theta is not None,
    )
    sim = Simulation(particles=particles, forces=[charge], alpha_decay=1.0)

    start = time.perf_counter()
    for _ in range(ticks):
        sim.tick()
    elapsed = time.perf_counter() - start

    return elapsed, particles.positions()


def run_benchmarks(sizes: list[int], thetas: list[float], ticks: int) -> list[dict[str, Any]]:
    """Time every (size, theta) pair and measure drift from the exact result."""
    results: list[dict[str, Any]] = []

    print(f"\nBenchmarking charge force over {ticks} tick(s)")
    print("=" * 72)

    for n in sizes:
        positions = random_particles(n)
        print(f"\n{n} particles")
        print("-" * 60)

        exact_time, exact_pos = run_case(positions, ticks, None)
        print(f"  {'exact':12s}: {exact_time:.4f}s")
        results.append({"size": n, "method": "exact", "time_seconds": exact_time, "max_error": 0.0})

        for theta in thetas:
            bh_time, bh_pos = run_case(positions, ticks, theta)
            error = float(np.abs(bh_pos - exact_pos).max()) if n else 0.0
            label = f"BH {theta:g}"
            print(f"  {label:12s}: {bh_time:.4f}s  max drift {error:.3e}  speedup {exact_time / bh_time:5.1f}x")
            results.append(
                {"size": n, "method": label, "time_seconds": bh_time, "max_error": error}
            )

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark Barnes-Hut charge evaluation")
    parser.add_argument("--sizes", default="100,500,1000", help="Comma-separated particle counts")
    parser.add_argument("--thetas", default="0.5,0.9,1.2", help="Comma-separated theta values")
    parser.add_argument("--ticks", type=int, default=3, help="Ticks per measurement")
    parser.add_argument("--output", help="Output JSON file for results")

    args = parser.parse_args()

    sizes = [int(s) for s in args.sizes.split(",")]
    thetas = [float(t) for t in args.thetas.split(",")]

    results = run_benchmarks(sizes, thetas, args.ticks)

    if args.output and results:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
