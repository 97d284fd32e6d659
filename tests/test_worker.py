"""Tests for the simulation worker thread."""

import threading

import pytest
from py_planetsim.core.climate import SimulationOptions
from py_planetsim.core.lifeform import LifeformKind
from py_planetsim.core.surface import WaterInvariantError
from py_planetsim.runtime import worker as worker_module
from py_planetsim.runtime.worker import SimulationWorker, terminate_process

SUN = (1.0, 0.0, 0.0)


class TestSimulationWorker:
    """Test ticking on a dedicated thread."""

    def test_ticks_in_order(self, make_simulation, quiet_options):
        simulation = make_simulation()

        with SimulationWorker(simulation) as worker:
            futures = [worker.submit_tick(SUN, quiet_options) for _ in range(3)]
            results = [f.result(timeout=10) for f in futures]

        assert results == [1, 2, 3]
        assert simulation.tick_count == 3
        assert not worker.running

    def test_submit_requires_start(self, make_simulation):
        worker = SimulationWorker(make_simulation())

        with pytest.raises(RuntimeError):
            worker.submit_tick(SUN)

    def test_place_lifeform(self, make_simulation):
        simulation = make_simulation()

        with SimulationWorker(simulation) as worker:
            lifeform_id = worker.place_lifeform(
                LifeformKind.RABBIT, simulation.surface_point(0), 0.0
            )
            worker.submit_tick(SUN, SimulationOptions(solar_constant=0.0)).result(timeout=10)

        assert lifeform_id == 0
        assert len(simulation.lifeforms) == 1

    def test_fatal_handler(self, make_simulation):
        simulation = make_simulation(water=1.0)
        simulation.surface.water_elevation[2] = -1.0
        errors = []
        called = threading.Event()

        def on_fatal(error):
            errors.append(error)
            called.set()

        worker = SimulationWorker(simulation, on_fatal=on_fatal).start()
        future = worker.submit_tick(SUN)

        assert called.wait(timeout=10)
        assert isinstance(future.exception(timeout=10), WaterInvariantError)
        worker.stop(timeout=10)

        assert len(errors) == 1
        assert errors[0].context["vertex"] == 2
        assert not worker.running

    def test_default_handler_exits(self, monkeypatch):
        codes = []
        monkeypatch.setattr(worker_module.os, "_exit", codes.append)

        terminate_process(WaterInvariantError("Negative water elevation", vertex=1))

        assert codes == [70]


class TestWorkerFailure:
    """Test request handling once a tick has failed."""

    @pytest.fixture
    def broken_simulation(self, make_simulation):
        simulation = make_simulation(water=1.0)
        simulation.surface.water_elevation[2] = -1.0
        return simulation

    def test_submit_during_fatal_handler_fails(self, broken_simulation):
        """Test that a tick submitted while the fatal handler runs is failed, not lost."""
        entered = threading.Event()
        release = threading.Event()

        def on_fatal(error):
            entered.set()
            release.wait(timeout=10)

        worker = SimulationWorker(broken_simulation, on_fatal=on_fatal).start()
        first = worker.submit_tick(SUN)
        assert entered.wait(timeout=10)

        late = worker.submit_tick(SUN)

        assert late.done()
        assert late.exception() is first.exception(timeout=10)
        release.set()
        worker.stop(timeout=10)
        assert not worker.running

    def test_submit_after_failure_fails_immediately(self, broken_simulation):
        worker = SimulationWorker(broken_simulation, on_fatal=lambda error: None).start()
        first = worker.submit_tick(SUN)
        assert isinstance(first.exception(timeout=10), WaterInvariantError)
        worker.stop(timeout=10)

        later = worker.submit_tick(SUN)

        assert isinstance(later.exception(timeout=0), WaterInvariantError)

    def test_submit_to_halted_simulation(self, broken_simulation):
        """Test that a worker fails requests for a simulation that halted before it started."""
        with pytest.raises(WaterInvariantError) as exc_info:
            broken_simulation.tick(SUN)
        worker = SimulationWorker(broken_simulation)

        future = worker.submit_tick(SUN)

        assert future.exception(timeout=0) is exc_info.value
        assert not worker.running


class TestWorkerStop:
    """Test stopping a busy worker."""

    def test_stop_timeout_keeps_thread(self, make_simulation):
        simulation = make_simulation(water=1.0)
        simulation.surface.water_elevation[2] = -1.0
        entered = threading.Event()
        release = threading.Event()

        def on_fatal(error):
            entered.set()
            release.wait(timeout=10)

        worker = SimulationWorker(simulation, on_fatal=on_fatal).start()
        worker.submit_tick(SUN)
        assert entered.wait(timeout=10)
        before = sum(t.name == "simulation" for t in threading.enumerate())

        worker.stop(timeout=0.01)
        assert worker.running
        worker.start()

        assert sum(t.name == "simulation" for t in threading.enumerate()) == before
        release.set()
        worker.stop(timeout=10)
        assert not worker.running
