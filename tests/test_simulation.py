"""Tests for the force-directed simulation."""

import math
import pytest
import numpy as np
from pyalgoviz.errors import SimulationError, ValidationError
from pyalgoviz.simulation import (
    EventType, Node, PseudoRandom, Simulation,
    REPULSION_RADIUS, REPULSION_STRENGTH, DAMPING, DISTANCE_EPSILON
)
from pyalgoviz.structure import Connection, Element, VisualState, VizState


def placed(type_, coords, connections=None):
    """State whose elements have explicit coordinates, ids n0..nk."""
    els = [Element(f"n{i}", i, x=x, y=y) for i, (x, y) in enumerate(coords)]
    conns = [Connection(a, b) for a, b in (connections or [])]
    return VisualState(type_, els, conns)


class TestEventType:
    """Test EventType enum."""

    def test_event_values(self):
        """Test event type values."""
        assert EventType.start == 0
        assert EventType.tick == 1
        assert EventType.end == 2

    def test_string_access(self):
        """Test accessing by string name."""
        assert EventType['tick'] == EventType.tick


class TestNode:
    """Test Node class."""

    def test_create_node(self):
        """Test node defaults."""
        node = Node('a', 7, 10.0, 20.0)
        assert (node.x, node.y) == (10.0, 20.0)
        assert (node.vx, node.vy) == (0.0, 0.0)
        assert not node.held

    def test_stop(self):
        """Test velocity reset."""
        node = Node('a')
        node.vx, node.vy = 3.0, -1.0
        node.stop()
        assert (node.vx, node.vy) == (0.0, 0.0)


class TestPseudoRandom:
    """Test PseudoRandom class."""

    def test_deterministic(self):
        """Test same seed gives same sequence."""
        a = PseudoRandom(5)
        b = PseudoRandom(5)
        assert [a.get_next() for _ in range(5)] == [b.get_next() for _ in range(5)]

    def test_unit_vector(self):
        """Test unit vector has length one."""
        u = PseudoRandom().unit_vector()
        assert np.linalg.norm(u) == pytest.approx(1.0)


class TestConfiguration:
    """Test fluent accessors."""

    def test_defaults(self):
        """Test default constants."""
        sim = Simulation()
        assert sim.repulsion_radius() == 150.0
        assert sim.repulsion_strength() == 0.05
        assert sim.attraction_strength() == 0.02
        assert sim.damping() == 0.9
        assert sim.size() == (1000.0, 600.0)

    def test_chaining(self):
        """Test setters return the simulation."""
        sim = Simulation()
        result = sim.repulsion_radius(200).damping(0.5).attraction_strength(0.1)
        assert result is sim
        assert sim.repulsion_radius() == 200.0
        assert sim.damping() == 0.5

    def test_invalid_damping(self):
        """Test damping must dissipate energy."""
        with pytest.raises(ValidationError):
            Simulation().damping(1.0)
        with pytest.raises(ValidationError):
            Simulation().damping(0)

    def test_invalid_size(self):
        """Test viewport validation."""
        with pytest.raises(ValidationError):
            Simulation(size=(-1, 10))

    def test_link_distance_by_type(self):
        """Test trees use the tighter link distance."""
        sim = Simulation()
        assert sim.link_distance() == 150.0
        sim.state(placed('TREE', [(0, 0)]))
        assert sim.link_distance() == 100.0
        sim.state(placed('GRAPH', [(0, 0)]))
        assert sim.link_distance() == 150.0

    def test_link_distance_override(self):
        """Test explicit link distance wins."""
        sim = Simulation().link_distance(42)
        sim.state(placed('TREE', [(0, 0)]))
        assert sim.link_distance() == 42.0


class TestState:
    """Test loading structure descriptions."""

    def test_tick_without_state(self):
        """Test stepping before loading raises."""
        with pytest.raises(SimulationError):
            Simulation().tick()

    def test_nodes_from_initializer(self):
        """Test nodes without coordinates are placed."""
        sim = Simulation(size=(1000, 600)).state(VizState('ARRAY', [1, 2, 3, 4]))
        assert sim.positions() == {
            'item-0': (365.0, 300.0),
            'item-1': (455.0, 300.0),
            'item-2': (545.0, 300.0),
            'item-3': (635.0, 300.0),
        }

    def test_accepts_dict(self):
        """Test producer JSON is accepted."""
        sim = Simulation().state({'type': 'GRAPH', 'elements': [{'id': 'a'}, {'id': 'b'}]})
        assert [n.id for n in sim.nodes()] == ['a', 'b']

    def test_incomplete_dict_entries(self):
        """Test half-specified connections and pointers are skipped, not raised."""
        sim = Simulation().state({
            'type': 'GRAPH',
            'elements': [{'id': 'a'}, {'id': 'b'}],
            'connections': [{'from': 'a'}],
            'pointers': [{'name': 'i'}],
        })
        assert len(sim.nodes()) == 2
        assert sim.state().connections == []
        sim.tick()

    def test_carry_over_same_type(self):
        """Test surviving ids keep position and velocity."""
        sim = Simulation().state(VisualState('GRAPH', [Element('a'), Element('b')]))
        for _ in range(5):
            sim.tick()
        a = sim.node('a')
        before = (a.x, a.y, a.vx, a.vy)
        sim.state(VisualState('GRAPH', [Element('a'), Element('c'), Element('d')]))
        a = sim.node('a')
        assert (a.x, a.y, a.vx, a.vy) == before
        assert sim.node('b') is None
        assert sim.node('c') is not None

    def test_no_carry_over_on_type_change(self):
        """Test a new structure type starts fresh."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (10, 0)]))
        sim.grab('n0')
        sim.drag('n0', 999, 999)
        sim.state(VisualState('ARRAY', [Element('n0'), Element('n1')]))
        n0 = sim.node('n0')
        assert (n0.x, n0.y) == (455.0, 300.0)
        assert not n0.held

    def test_held_survives_same_type(self):
        """Test a hold persists across a same-type update."""
        sim = Simulation().state(VisualState('GRAPH', [Element('a'), Element('b')]))
        sim.grab('a')
        sim.state(VisualState('GRAPH', [Element('a'), Element('b'), Element('c')]))
        assert sim.held().id == 'a'


class TestForces:
    """Test the integration step."""

    def test_settled_configuration_is_unchanged(self):
        """Test a step with no forces and no velocity moves nothing."""
        coords = [(0, 0), (500, 0), (0, 500), (500, 500)]
        sim = Simulation().state(placed('GRAPH', coords))
        energy = sim.tick()
        assert energy == 0.0
        assert list(sim.positions().values()) == [(float(x), float(y)) for x, y in coords]
        assert sim.settled()

    def test_repulsion_pair(self):
        """Test two close nodes push apart by the expected amount."""
        sim = Simulation().state(placed('ARRAY', [(0, 0), (100, 0)]))
        sim.tick()
        dist = math.sqrt(100 ** 2 + DISTANCE_EPSILON)
        force = (REPULSION_RADIUS - dist) * REPULSION_STRENGTH
        step = (100 / dist) * force * DAMPING
        assert sim.node('n0').x == pytest.approx(-step)
        assert sim.node('n1').x == pytest.approx(100 + step)
        assert sim.node('n0').y == pytest.approx(0.0)
        assert sim.node('n0').vx == pytest.approx(-step)

    def test_no_repulsion_beyond_radius(self):
        """Test nodes further than the radius do not interact."""
        sim = Simulation().state(placed('ARRAY', [(0, 0), (151, 0)]))
        sim.tick()
        assert sim.positions() == {'n0': (0.0, 0.0), 'n1': (151.0, 0.0)}

    def test_attraction_graph(self):
        """Test a stretched graph edge pulls both ends together."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (400, 0)], [('n0', 'n1')]))
        sim.tick()
        # (400 - 150) * 0.02 = 5, damped to 4.5
        assert sim.node('n0').x == pytest.approx(4.5)
        assert sim.node('n1').x == pytest.approx(395.5)

    def test_attraction_tree(self):
        """Test trees pull towards the shorter target distance."""
        sim = Simulation().state(placed('TREE', [(0, 0), (0, 300)], [('n0', 'n1')]))
        sim.tick()
        # (300 - 100) * 0.02 = 4, damped to 3.6
        assert sim.node('n0').y == pytest.approx(3.6)
        assert sim.node('n1').y == pytest.approx(296.4)

    def test_no_compression(self):
        """Test an edge shorter than its target applies no force."""
        sim = Simulation().link_distance(500)
        sim.state(placed('GRAPH', [(0, 0), (400, 0)], [('n0', 'n1')]))
        sim.tick()
        assert sim.positions() == {'n0': (0.0, 0.0), 'n1': (400.0, 0.0)}

    def test_dangling_connection_skipped(self):
        """Test connections to missing nodes are ignored."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (400, 0)], [('n0', 'ghost'), ('ghost', 'n1')]))
        sim.tick()
        assert sim.positions() == {'n0': (0.0, 0.0), 'n1': (400.0, 0.0)}

    def test_self_loop_skipped(self):
        """Test a node connected to itself feels nothing."""
        sim = Simulation().state(placed('GRAPH', [(0, 0)], [('n0', 'n0')]))
        assert sim.tick() == 0.0
        assert sim.positions() == {'n0': (0.0, 0.0)}

    def test_duplicate_connections_add_up(self):
        """Test each declared connection contributes its own pull."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (400, 0)], [('n0', 'n1'), ('n1', 'n0')]))
        sim.tick()
        assert sim.node('n0').x == pytest.approx(9.0)

    def test_coincident_nodes_separate(self):
        """Test exactly overlapping nodes are pushed apart."""
        sim = Simulation().state(placed('GRAPH', [(100, 100), (100, 100)]))
        sim.tick()
        a = sim.node('n0')
        b = sim.node('n1')
        assert np.isfinite([a.x, a.y, b.x, b.y]).all()
        assert math.hypot(a.x - b.x, a.y - b.y) > 1.0
        # pushed in opposite directions around the shared point
        assert (a.x + b.x) / 2 == pytest.approx(100.0)
        assert (a.y + b.y) / 2 == pytest.approx(100.0)

    def test_velocity_damped(self):
        """Test free motion decays by the damping factor."""
        sim = Simulation().state(placed('GRAPH', [(0, 0)]))
        node = sim.node('n0')
        node.vx = 10.0
        sim.tick()
        assert node.vx == pytest.approx(9.0)
        assert node.x == pytest.approx(9.0)

    def test_run_settles_array(self):
        """Test crowded array nodes spread out and come to rest."""
        sim = Simulation().state(VizState('ARRAY', [1, 2, 3]))
        sim.run(2000)
        assert sim.settled()
        xs = [n.x for n in sim.nodes()]
        assert xs == sorted(xs)
        assert xs[1] - xs[0] >= 149.0
        assert xs[2] - xs[1] >= 149.0
        assert xs[1] == pytest.approx(500.0)

    def test_empty_state(self):
        """Test stepping an empty structure."""
        sim = Simulation().state(VisualState('GRAPH'))
        assert sim.tick() == 0.0


class TestHolding:
    """Test grab, drag and release."""

    def test_held_node_follows_pointer_exactly(self):
        """Test held position ignores every force for many frames."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (20, 0), (0, 20)], [('n0', 'n1'), ('n0', 'n2')]))
        assert sim.grab('n0')
        for frame in range(20):
            px, py = 123.0 + frame, 456.0 - frame
            sim.drag('n0', px, py)
            sim.tick()
            node = sim.node('n0')
            assert (node.x, node.y) == (px, py)
            assert (node.vx, node.vy) == (0.0, 0.0)

    def test_held_node_still_repels(self):
        """Test free neighbours still feel a held node."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (100, 0)]))
        sim.grab('n0')
        sim.tick()
        assert sim.node('n0').x == 0.0
        assert sim.node('n1').x > 100.0

    def test_grab_zeroes_velocity(self):
        """Test grabbing stops the node."""
        sim = Simulation().state(placed('GRAPH', [(0, 0)]))
        sim.node('n0').vx = 5.0
        sim.grab('n0')
        assert sim.node('n0').vx == 0.0

    def test_single_hold(self):
        """Test only one node may be held."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (300, 0)]))
        assert sim.grab('n0')
        assert not sim.grab('n1')
        assert sim.grab('n0')
        assert sim.held().id == 'n0'

    def test_grab_unknown(self):
        """Test grabbing a missing id."""
        sim = Simulation().state(placed('GRAPH', [(0, 0)]))
        assert not sim.grab('zzz')

    def test_drag_requires_hold(self):
        """Test free nodes are not moved by drag."""
        sim = Simulation().state(placed('GRAPH', [(0, 0)]))
        assert not sim.drag('n0', 10, 10)
        assert not sim.move_held(10, 10)
        assert sim.positions() == {'n0': (0.0, 0.0)}

    def test_move_held(self):
        """Test moving whichever node is held."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (300, 0)]))
        sim.grab('n1')
        assert sim.move_held(5, 6)
        assert sim.positions()['n1'] == (5.0, 6.0)

    def test_release_resumes_physics(self):
        """Test a released node moves again."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (100, 0)]))
        sim.grab('n0')
        sim.tick()
        sim.release()
        assert sim.held() is None
        sim.tick()
        assert sim.node('n0').x < 0.0

    def test_release_specific(self):
        """Test releasing another id leaves the hold alone."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (300, 0)]))
        sim.grab('n0')
        sim.release('n1')
        assert sim.held().id == 'n0'


class TestEvents:
    """Test the event system."""

    def test_start_tick_end(self):
        """Test events fire in lifecycle order."""
        seen = []
        sim = Simulation()
        sim.on('start', lambda e: seen.append(('start', e['nodes'])))
        sim.on(EventType.tick, lambda e: seen.append(('tick', e['settled'])))
        sim.on('end', lambda e: seen.append(('end',)))
        sim.state(placed('GRAPH', [(0, 0), (500, 0)]))
        sim.tick()
        sim.stop()
        assert seen == [('start', 2), ('tick', True), ('end',)]

    def test_stop_releases(self):
        """Test stopping releases the held node."""
        sim = Simulation().state(placed('GRAPH', [(0, 0)]))
        sim.grab('n0')
        sim.stop()
        assert sim.held() is None

    def test_energy(self):
        """Test energy is the sum of speeds."""
        sim = Simulation().state(placed('GRAPH', [(0, 0), (1000, 0)]))
        sim.node('n0').vx = 3.0
        sim.node('n1').vy = 4.0
        assert sim.tick() == pytest.approx(0.9 * 3.0 + 0.9 * 4.0)
        assert sim.energy() == pytest.approx(6.3)
        assert not sim.settled()
