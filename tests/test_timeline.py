"""Tests for step playback."""

import pytest
from pyalgoviz.errors import ValidationError
from pyalgoviz.simulation import Simulation
from pyalgoviz.structure import AnimationStep, VizState
from pyalgoviz.timeline import Timeline


def steps(n):
    return [AnimationStep(VizState('ARRAY', [i, i + 1]), code_line=i, message=f"step {i}") for i in range(n)]


class TestNavigation:
    """Test manual navigation."""

    def test_initial(self):
        """Test a new timeline sits on the first step."""
        t = Timeline(steps(3))
        assert t.index == 0
        assert t.current.message == "step 0"
        assert not t.playing
        assert t.progress == 0

    def test_next_prev_clamped(self):
        """Test stepping stops at both ends."""
        t = Timeline(steps(3))
        assert not t.prev()
        assert t.next()
        assert t.next()
        assert not t.next()
        assert t.at_end
        assert t.prev()
        assert t.index == 1

    def test_seek_clamped(self):
        """Test seeking outside the range clamps."""
        t = Timeline(steps(5))
        t.seek(99)
        assert t.index == 4
        t.seek(-3)
        assert t.index == 0

    def test_progress(self):
        """Test progress percentages."""
        t = Timeline(steps(4))
        t.seek(1)
        assert t.progress == 33
        t.seek(3)
        assert t.progress == 100
        assert Timeline(steps(1)).progress == 0

    def test_empty(self):
        """Test an empty trace."""
        t = Timeline([])
        assert t.current is None
        assert not t.next()
        t.play()
        assert not t.playing


class TestListeners:
    """Test step notification."""

    def test_notified_on_change(self):
        """Test listeners receive each new step once."""
        seen = []
        t = Timeline(steps(3)).on_step(lambda s: seen.append(s.code_line))
        t.next()
        t.seek(2)
        t.seek(2)
        t.next()
        assert seen == [1, 2]

    def test_drives_simulation(self):
        """Test a listener feeding states into a simulation."""
        sim = Simulation()
        t = Timeline(steps(2)).on_step(lambda s: sim.state(s.viz))
        t.next()
        assert [n.value for n in sim.nodes()] == [1, 2]


class TestPlayback:
    """Test automatic advance."""

    def test_interval(self):
        """Test interval validation."""
        t = Timeline(steps(2), interval=0.5)
        assert t.interval == 0.5
        with pytest.raises(ValidationError):
            t.set_interval(0)
        with pytest.raises(ValidationError):
            Timeline(steps(2), interval=-1)

    def test_paused_does_not_advance(self):
        """Test time passes without effect while paused."""
        t = Timeline(steps(3))
        assert t.advance(10.0) == 0
        assert t.index == 0

    def test_advance_per_interval(self):
        """Test one step per whole interval."""
        t = Timeline(steps(5), interval=1.0)
        t.play()
        assert t.advance(0.5) == 0
        assert t.advance(0.6) == 1
        assert t.advance(2.0) == 2
        assert t.index == 3

    def test_stops_at_end(self):
        """Test playback stops one interval after reaching the last step."""
        t = Timeline(steps(2), interval=1.0)
        t.play()
        t.advance(1.0)
        assert t.at_end
        assert t.playing
        assert t.advance(1.0) == 0
        assert not t.playing

    def test_toggle(self):
        """Test play and pause toggle."""
        t = Timeline(steps(2))
        t.toggle()
        assert t.playing
        t.toggle()
        assert not t.playing

    def test_speed_change(self):
        """Test a shorter interval advances faster."""
        t = Timeline(steps(10), interval=1.0)
        t.play()
        t.set_interval(0.25)
        assert t.advance(1.0) == 4

    def test_seek_resets_elapsed(self):
        """Test seeking restarts the interval."""
        t = Timeline(steps(5), interval=1.0)
        t.play()
        t.advance(0.9)
        t.seek(2)
        assert t.advance(0.2) == 0
        assert t.index == 2
