"""Application settings - single source of truth for launch constants

This module provides a Settings class that consolidates:
1. Network constants (port bounds, legacy fixed ports)
2. Validation ceilings and built-in defaults
3. Lifecycle timing used by the controller

Usage:
    from uxlaunch.common.settings import settings

    if port < settings.LOWEST_ALLOWED_PORT:
        ...
"""

from typing import Optional


class Settings:
    """Singleton holder for launch and lifecycle constants

    The singleton pattern ensures validators, orchestrator and controller
    agree on the same bounds and defaults.
    """

    _instance: Optional["Settings"] = None

    def __new__(cls) -> "Settings":
        """Ensure only one Settings instance exists"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    # =========================================================================
    # Network Constants
    # =========================================================================

    LOWEST_ALLOWED_PORT: int = 1024
    """Lowest port accepted from configuration (unprivileged range)"""

    HIGHEST_PORT: int = 65535
    """Highest valid TCP/UDP port"""

    PORT_GROUP_SIZE: int = 3
    """Number of ports in each TCP and UDP group"""

    LEGACY_TCP_PORTS: tuple[int, int, int] = (7100, 7000, 7001)
    """Fixed TCP ports selected by a bare `-p`"""

    LEGACY_UDP_PORTS: tuple[int, int, int] = (7011, 6001, 6000)
    """Fixed UDP ports selected by a bare `-p`"""

    # =========================================================================
    # Validation Ceilings
    # =========================================================================

    MAX_GEOMETRY_DIGITS: int = 4
    MAX_REFRESH_DIGITS: int = 3
    MAX_REFRESH_RATE: int = 255
    MAX_COUNT_DIGITS: int = 10
    MAX_PORT_DIGITS: int = 5

    MAX_FPS: int = 255
    """Ceiling for `-fps`; the engine stores framerate in one byte"""

    # =========================================================================
    # Defaults
    # =========================================================================

    DEFAULT_NAME: str = "UxPlay"
    DEFAULT_VIDEO_SINK: str = "autovideosink"
    DEFAULT_AUDIO_SINK: str = "autoaudiosink"

    SINK_DISABLED: str = "0"
    """Reserved sink selector meaning the renderer is not created"""

    DISABLED_VIDEO_FPS: int = 1
    """Framerate requested from the engine when no video is rendered"""

    # =========================================================================
    # Orchestration and Lifecycle
    # =========================================================================

    ENGINE_CONNECTION_CAPACITY: int = 10
    """Maximum concurrent sessions accepted by the protocol engine"""

    IDLE_TICK_SECONDS: float = 1.0
    """Period of the idle-relaunch timer"""

    LIFECYCLE_HISTORY_SIZE: int = 64
    """Most recent lifecycle states kept for diagnostics"""

    HARDWARE_ADDRESS_PATHS: tuple[str, ...] = (
        "/sys/class/net/eth0/address",
        "/sys/class/net/wlan0/address",
    )
    """Host interface identity sources, in priority order"""

    IDENTIFIER_OCTETS: int = 6

    CONFIG_ENV_VAR: str = "UXLAUNCH_CONFIG"


# Global singleton instance
settings = Settings()
"""Global settings singleton instance

Import this anywhere in the application:
    from uxlaunch.common.settings import settings
"""
