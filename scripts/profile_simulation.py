"""
Profiling script for PyAlgoViz simulation performance analysis.

This script profiles force simulation scenarios of increasing size to
identify bottlenecks.
"""

import cProfile
import pstats
import io
from pstats import SortKey
import time

import numpy as np
from pyalgoviz.simulation import Simulation
from pyalgoviz.structure import Connection, Element, VisualState, VizState


def create_graph(n_nodes, n_edges):
    """Create a random graph state with n nodes and approximately n_edges edges."""
    elements = [Element(f"n{i}", i) for i in range(n_nodes)]

    # Create random edges
    connections = []
    np.random.seed(42)
    for _ in range(n_edges):
        source = np.random.randint(0, n_nodes)
        target = np.random.randint(0, n_nodes)
        if source != target:
            connections.append(Connection(f"n{source}", f"n{target}", directed=False))

    return VisualState('GRAPH', elements, connections)


def create_tree(n_nodes):
    """Create a complete binary tree state in level order."""
    elements = [Element(f"t{i}", i) for i in range(n_nodes)]
    connections = [Connection(f"t{(i - 1) // 2}", f"t{i}") for i in range(1, n_nodes)]
    return VisualState('TREE', elements, connections)


def run_simulation(state, ticks):
    sim = Simulation(size=(1600, 1000)).state(state)
    for _ in range(ticks):
        sim.tick()
    sim.stop()


def profile_small_graph():
    """Profile a small graph (20 nodes, 30 edges)."""
    run_simulation(create_graph(20, 30), 300)


def profile_medium_graph():
    """Profile a medium graph (100 nodes, 200 edges)."""
    run_simulation(create_graph(100, 200), 300)


def profile_large_graph():
    """Profile a large graph (500 nodes, 1000 edges)."""
    run_simulation(create_graph(500, 1000), 100)


def profile_tree():
    """Profile a tree (127 nodes)."""
    run_simulation(create_tree(127), 300)


def profile_array():
    """Profile an array (64 slots, no links)."""
    run_simulation(VizState('ARRAY', list(range(64))), 300)


def profile_dragged_graph():
    """Profile a graph with one node held and moved every tick."""
    sim = Simulation(size=(1600, 1000)).state(create_graph(100, 200))
    sim.grab('n0')
    for i in range(300):
        sim.drag('n0', 800 + i, 500)
        sim.tick()
    sim.stop()


def benchmark_scenario(name, func):
    """Benchmark a scenario and print timing."""
    print(f"\n{'='*60}")
    print(f"Profiling: {name}")
    print('='*60)

    profiler = cProfile.Profile()

    start_time = time.time()
    profiler.enable()
    func()
    profiler.disable()
    elapsed = time.time() - start_time

    print(f"\nTotal time: {elapsed:.3f}s")

    s = io.StringIO()
    ps = pstats.Stats(profiler, stream=s).sort_stats(SortKey.CUMULATIVE)
    ps.print_stats(20)

    print("\nTop 20 functions by cumulative time:")
    print(s.getvalue())

    return profiler


def main():
    """Run all profiling scenarios."""
    print("PyAlgoViz Simulation Profiling")
    print("=" * 60)

    scenarios = [
        ("Small Graph (20 nodes, 30 edges)", profile_small_graph),
        ("Medium Graph (100 nodes, 200 edges)", profile_medium_graph),
        ("Large Graph (500 nodes, 1000 edges)", profile_large_graph),
        ("Tree (127 nodes)", profile_tree),
        ("Array (64 slots)", profile_array),
        ("Dragged Graph (100 nodes, one held)", profile_dragged_graph),
    ]

    profilers = {}
    for name, func in scenarios:
        profilers[name] = benchmark_scenario(name, func)

    print("\n" + "="*60)
    print("Saving detailed profiles...")
    print("="*60)

    for name, profiler in profilers.items():
        filename = f"profile_{name.lower().replace(' ', '_').replace('(', '').replace(')', '').replace(',', '')}.prof"
        profiler.dump_stats(filename)
        print(f"Saved: {filename}")

    print("\nTo view detailed profile, use:")
    print("  python -m pstats <profile_file>")


if __name__ == "__main__":
    main()
