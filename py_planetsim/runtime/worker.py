"""
Dedicated simulation thread.

The render/input loop never runs a tick itself: it submits one tick request
per frame and keeps drawing from snapshots while the worker thread advances
the simulation. Requests are executed strictly in submission order, each to
completion.

An invariant violation inside a tick means the planet state is corrupt. The
worker then fails every pending request, calls its fatal handler (which by
default terminates the process) and stops. Requests submitted after that
are returned already failed with the same error.
"""

import os
import queue
import threading
from concurrent.futures import Future
from typing import Callable, Optional

import structlog

from ..core.climate import SimulationOptions
from ..core.lifeform import LifeformKind
from ..core.simulation import Simulation
from ..core.surface import SimulationInvariantError

logger = structlog.get_logger()

# sysexits.h EX_SOFTWARE: internal software error
EXIT_INVARIANT_VIOLATION = 70

_STOP = object()


def terminate_process(error: SimulationInvariantError) -> None:
    """Default fatal handler: log and exit without running cleanup code."""
    logger.critical("Terminating after invariant violation", message=str(error), **error.context)
    os._exit(EXIT_INVARIANT_VIOLATION)


class SimulationWorker:
    """Runs Simulation.tick on its own thread."""

    def __init__(
        self,
        simulation: Simulation,
        on_fatal: Callable[[SimulationInvariantError], None] = terminate_process,
    ):
        """
        Args:
            simulation: Simulation to advance
            on_fatal: Called on the worker thread when a tick violates an
                invariant; the worker stops afterwards
        """
        self.simulation = simulation
        self.on_fatal = on_fatal
        self._requests: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        # Guards _error and enqueueing, so no request lands after the failure drain
        self._lock = threading.Lock()
        self._error: Optional[SimulationInvariantError] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "SimulationWorker":
        if self.running:
            return self
        self._thread = threading.Thread(target=self._run, name="simulation", daemon=True)
        self._thread.start()
        logger.info("Simulation worker started")
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Finish queued ticks, then stop the thread.

        If the thread is still busy when the timeout expires, the worker keeps
        tracking it, so start() will not launch a second one.
        """
        if self._thread is None:
            return
        self._requests.put(_STOP)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Simulation worker still busy after stop", timeout=timeout)
            return
        self._thread = None
        logger.info("Simulation worker stopped")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def submit_tick(self, solar_direction, options: Optional[SimulationOptions] = None) -> Future:
        """
        Queue one tick.

        Returns:
            Future resolved when the tick has completed. If the simulation has
            already failed, the future is returned failed with that error.
        """
        future: Future = Future()
        with self._lock:
            error = self._error or self.simulation.halted_error
            if error is not None:
                future.set_exception(error)
                return future
            if not self.running:
                raise RuntimeError("Simulation worker is not running")
            self._requests.put((future, solar_direction, options))
        return future

    def place_lifeform(self, kind: LifeformKind, position, game_time: float) -> Optional[int]:
        """Place a lifeform from the calling (UI) thread."""
        return self.simulation.place_lifeform(kind, position, game_time)

    def _run(self) -> None:
        while True:
            request = self._requests.get()
            if request is _STOP:
                break

            future, solar_direction, options = request
            if not future.set_running_or_notify_cancel():
                continue
            try:
                self.simulation.tick(solar_direction, options)
            except SimulationInvariantError as e:
                with self._lock:
                    self._error = e
                    self._fail_pending(e)
                future.set_exception(e)
                self.on_fatal(e)
                self._fail_pending(e)
                break
            except Exception as e:
                future.set_exception(e)
                logger.exception("Tick failed")
            else:
                future.set_result(self.simulation.tick_count)

    def _fail_pending(self, error: Exception) -> None:
        while True:
            try:
                request = self._requests.get_nowait()
            except queue.Empty:
                return
            if request is not _STOP:
                request[0].set_exception(error)
