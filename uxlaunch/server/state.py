"""Runtime state shared between the lifecycle loop and engine callbacks"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from uxlaunch.server.orchestrator import ServiceHandles

logger = logging.getLogger(__name__)


class RuntimeState:
    """
    Connection activity and live handles for one launcher process.

    Owned by the lifecycle controller. Connection notifications arrive on
    engine threads while timer ticks run on the loop thread, so every
    counter mutation happens under one short-lived lock.
    """

    def __init__(self) -> None:
        """Initialize state for a fresh serve cycle"""
        self._lock: threading.Lock = threading.Lock()

        # Number of client sessions currently open
        self.open_connections: int = 0

        # True while no session is open and none opened since the last tick
        self.sessions_idle: bool = True

        # Consecutive idle timer ticks
        self.idle_seconds: int = 0

        # Handles of the current serve cycle, None between cycles
        self.handles: Optional["ServiceHandles"] = None

    def reset(self) -> None:
        """Reset activity tracking before a new serve cycle"""
        with self._lock:
            self.open_connections = 0
            self.sessions_idle = True
            self.idle_seconds = 0

    def connection_open(self) -> int:
        """
        Record a newly opened session

        Returns:
            Open session count after the change
        """
        with self._lock:
            self.open_connections += 1
            self.sessions_idle = False
            return self.open_connections

    def connection_close(self) -> int:
        """
        Record a closed session

        Returns:
            Open session count after the change
        """
        with self._lock:
            if self.open_connections == 0:
                logger.warning("Connection close reported with no open connections")
                return 0
            self.open_connections -= 1
            return self.open_connections

    def openConnections_get(self) -> int:
        """Get the current open session count"""
        with self._lock:
            return self.open_connections

    def idleTick_advance(self, idle_timeout: int) -> bool:
        """
        Advance the idle counter by one timer tick

        The counter restarts from zero when a session is open now or was
        opened at any point since the previous tick.

        Args:
            idle_timeout: Idle seconds that trigger a relaunch (0 = never)

        Returns:
            True when the idle counter reached the timeout on this tick
        """
        with self._lock:
            if self.open_connections > 0 or not self.sessions_idle:
                self.idle_seconds = 0
                self.sessions_idle = self.open_connections == 0
                return False
            self.idle_seconds += 1
            return idle_timeout > 0 and self.idle_seconds >= idle_timeout
