"""
Lifecycle controller.

A single-threaded cooperative asyncio loop drives the serve cycle through an
explicit state machine:

    STARTING -> RUNNING -> RELAUNCH -> STARTING ...
                        -> SHUTDOWN (terminal)

While RUNNING the loop multiplexes a 1 s idle timer (only when an idle
timeout is configured), SIGINT/SIGTERM, and the video renderer's event
source. Idle timeout and renderer end-of-stream request RELAUNCH; a
termination signal requests SHUTDOWN and wins over any relaunch in flight.
A start failure ends the process with the failing step's exit code, also
during a relaunch. Orchestrator start and stop run on a worker thread so the
loop thread never blocks on a collaborator.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections import deque
from contextlib import suppress
from enum import Enum
from typing import Callable, Iterable, Protocol

from uxlaunch.common.config import ServerConfig
from uxlaunch.common.errors import ResourceInitError
from uxlaunch.common.settings import settings
from uxlaunch.common.types import DeviceIdentifier
from uxlaunch.server.orchestrator import ServiceHandles
from uxlaunch.server.state import RuntimeState

__all__ = [
    "LifecycleController",
    "LifecycleState",
]

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class LifecycleState(Enum):
    """States of the serve-cycle state machine"""
    STARTING = "starting"
    RUNNING = "running"
    RELAUNCH = "relaunch"
    SHUTDOWN = "shutdown"


class OrchestratorProtocol(Protocol):
    """Start/stop contract the controller drives."""

    def start(
        self,
        config: ServerConfig,
        identifier: DeviceIdentifier,
        runtime_state: RuntimeState,
    ) -> ServiceHandles:
        """Bring up one serve cycle."""
        ...

    def stop(self, handles: ServiceHandles | None) -> None:
        """Tear down one serve cycle."""
        ...


class LifecycleController:
    """Event-driven supervisor of the serve cycle."""

    def __init__(
        self,
        config: ServerConfig,
        identifier: DeviceIdentifier,
        orchestrator: OrchestratorProtocol,
        runtime_state: RuntimeState | None = None,
        tick_seconds: float = settings.IDLE_TICK_SECONDS,
        termination_signals: Iterable[signal.Signals] = TERMINATION_SIGNALS,
    ) -> None:
        """
        Initialize controller.

        Args:
            config:
                Validated configuration, reused unchanged across relaunches.
            identifier:
                Device identifier, reused unchanged across relaunches.
            orchestrator:
                Serve-cycle start/stop implementation.
            runtime_state:
                Activity state; a fresh one is created when omitted.
            tick_seconds:
                Idle timer period.
            termination_signals:
                Signals that request SHUTDOWN.
        """
        self.config: ServerConfig = config
        self.identifier: DeviceIdentifier = identifier
        self.orchestrator: OrchestratorProtocol = orchestrator
        self.runtime_state: RuntimeState = runtime_state if runtime_state is not None else RuntimeState()
        self.tick_seconds: float = tick_seconds
        self.termination_signals: tuple[signal.Signals, ...] = tuple(termination_signals)

        self.state: LifecycleState = LifecycleState.STARTING
        self.shutdown_requested: bool = False
        self.relaunch_count: int = 0
        self.history: deque[LifecycleState] = deque(maxlen=settings.LIFECYCLE_HISTORY_SIZE)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._transition: asyncio.Future[LifecycleState] | None = None

    def run(self) -> int:
        """
        Run the state machine until SHUTDOWN or a fatal start failure.

        Returns:
            Process exit code.
        """
        return asyncio.run(self.states_drive())

    async def states_drive(self) -> int:
        """
        Drive state transitions inside the running event loop.

        Returns:
            Process exit code.
        """
        self._loop = asyncio.get_running_loop()
        self.signalHandlers_install()
        handles: ServiceHandles | None = None
        try:
            while True:
                self.history.append(self.state)
                if self.state is LifecycleState.STARTING:
                    try:
                        handles = await self.cycle_start()
                    except ResourceInitError as exc:
                        if self.relaunch_count:
                            logger.error(f"Relaunch failed, stopping: {exc}")
                        return exc.exit_code
                    self.state = LifecycleState.RUNNING

                elif self.state is LifecycleState.RUNNING:
                    self.state = await self.running_await(handles)

                elif self.state is LifecycleState.RELAUNCH:
                    logger.info("Re-launching server...")
                    await self.cycle_stop(handles)
                    handles = None
                    self.runtime_state.reset()
                    self.relaunch_count += 1
                    self.state = (
                        LifecycleState.SHUTDOWN if self.shutdown_requested else LifecycleState.STARTING
                    )

                else:
                    logger.info("Stopping...")
                    await self.cycle_stop(handles)
                    return 0
        finally:
            self.signalHandlers_remove()
            self._loop = None

    async def running_await(self, handles: ServiceHandles | None) -> LifecycleState:
        """
        Serve until a relaunch or shutdown is requested.

        Args:
            handles: Handles of the current serve cycle.

        Returns:
            Next state (RELAUNCH or SHUTDOWN).
        """
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        self._transition = loop.create_future()
        if self.shutdown_requested:
            self._transition = None
            return LifecycleState.SHUTDOWN

        timer_task: asyncio.Task[None] | None = None
        if self.config.idle_timeout > 0:
            timer_task = asyncio.create_task(self.idleTimer_run())

        detach: Callable[[], None] | None = None
        if handles is not None and handles.video_renderer is not None:
            detach = handles.video_renderer.eventSource_attach(self.rendererQuit_request)

        try:
            return await self._transition
        finally:
            self._transition = None
            if timer_task is not None:
                timer_task.cancel()
                with suppress(asyncio.CancelledError):
                    await timer_task
            if detach is not None:
                try:
                    detach()
                except Exception as exc:
                    logger.warning(f"Error detaching renderer event source: {exc}")

    async def idleTimer_run(self) -> None:
        """Tick once per period, requesting RELAUNCH when idle too long."""
        while True:
            await asyncio.sleep(self.tick_seconds)
            if self.runtime_state.idleTick_advance(self.config.idle_timeout):
                logger.info(
                    f"No connections for {self.config.idle_timeout} seconds: relaunch server"
                )
                self.transition_request(LifecycleState.RELAUNCH)
                return

    def transition_request(self, target: LifecycleState) -> None:
        """
        Resolve the pending RUNNING exit with `target`.

        Only the first request per RUNNING period takes effect. Must be
        called on the loop thread.
        """
        if self._transition is not None and not self._transition.done():
            self._transition.set_result(target)

    def shutdown_request(self) -> None:
        """Request SHUTDOWN; overrides any relaunch in progress. Loop thread only."""
        self.shutdown_requested = True
        self.transition_request(LifecycleState.SHUTDOWN)

    def rendererQuit_request(self) -> None:
        """
        Request RELAUNCH after the renderer pipeline ended.

        Safe to call from renderer threads.
        """
        loop: asyncio.AbstractEventLoop | None = self._loop
        if loop is None or loop.is_closed():
            return
        logger.info("Renderer pipeline ended")
        try:
            loop.call_soon_threadsafe(self.transition_request, LifecycleState.RELAUNCH)
        except RuntimeError:
            logger.debug("Renderer quit after loop shutdown ignored")

    def signal_handle(self, signum: int) -> None:
        """
        Handle a termination signal.

        Args:
            signum: Received signal number.
        """
        logger.info(f"Received {signal.Signals(signum).name}")
        self.shutdown_request()

    def signalHandlers_install(self) -> None:
        """Subscribe to termination signals on the running loop."""
        if self._loop is None:
            return
        for signum in self.termination_signals:
            self._loop.add_signal_handler(signum, self.signal_handle, signum)

    def signalHandlers_remove(self) -> None:
        """Unsubscribe from termination signals."""
        if self._loop is None:
            return
        for signum in self.termination_signals:
            self._loop.remove_signal_handler(signum)

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        """Event loop of the current run, None outside `run()`."""
        return self._loop

    async def cycle_start(self) -> ServiceHandles:
        """
        Start one serve cycle on a worker thread.

        Collaborators may block while starting (socket binds, mDNS name checks);
        the loop thread only awaits the result.

        Returns:
            Live handles.
        """
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self.orchestrator.start, self.config, self.identifier, self.runtime_state
        )

    async def cycle_stop(self, handles: ServiceHandles | None) -> None:
        """Tear down the serve cycle on a worker thread and drop handles from the runtime state."""
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.orchestrator.stop, handles)
        self.runtime_state.handles = None
