"""
Error taxonomy for launch and lifecycle control.

Configuration problems are raised as `ConfigValidationError` before any
resource exists. Collaborator start failures are raised as a
`ResourceInitError` subclass whose `exit_code` identifies the failing step.
"""

from __future__ import annotations

__all__ = [
    "ConfigValidationError",
    "ResourceInitError",
    "EngineInitError",
    "LogSinkInitError",
    "VideoRendererInitError",
    "AudioRendererInitError",
    "DiscoveryInitError",
]


class ConfigValidationError(ValueError):
    """
    Raised when a configuration token is malformed or out of range.

    Attributes:
        flag:
            Option that carried the value (for example `-s` or `-p tcp`).
        value:
            Offending raw value.
        reason:
            Human-readable constraint that was violated.
    """

    def __init__(self, flag: str, value: object, reason: str) -> None:
        self.flag: str = flag
        self.value: object = value
        self.reason: str = reason
        super().__init__(f'invalid "{flag} {value}"; {reason}')


class ResourceInitError(RuntimeError):
    """Base class for collaborator initialization failures."""

    exit_code: int = 2
    resource: str = "resource"

    def __init__(self, detail: str | None = None) -> None:
        message: str = f"Could not init {self.resource}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class EngineInitError(ResourceInitError):
    """Protocol engine could not be created or configured."""

    exit_code = 2
    resource = "protocol engine"


class LogSinkInitError(ResourceInitError):
    """Collaborator log sink could not be created."""

    exit_code = 3
    resource = "render logger"


class VideoRendererInitError(ResourceInitError):
    """Video renderer could not be created."""

    exit_code = 4
    resource = "video renderer"


class AudioRendererInitError(ResourceInitError):
    """Audio renderer could not be created."""

    exit_code = 5
    resource = "audio renderer"


class DiscoveryInitError(ResourceInitError):
    """Discovery registrar could not be created."""

    exit_code = 6
    resource = "discovery registrar"
