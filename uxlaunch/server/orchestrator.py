"""
Service orchestrator.

This module brings up the protocol engine, the collaborator log sink, the
renderers and discovery registration in a fixed dependency order for one
serve cycle, and tears them down again. Any start failure rolls back every
handle created so far before the step's `ResourceInitError` propagates.

Start sequence:
1. Create the protocol engine with the callback bridge.
2. Push display settings (video disabled forces the minimum framerate).
3. Push TCP/UDP port triples (0 entries are dynamic).
4. Create the log sink and bind it to the engine.
5. Create the video renderer unless video is disabled.
6. Create the audio renderer unless audio is disabled.
7. Start the renderers.
8. Start the engine listener and read back the primary port.
9. Create the discovery registrar and register the primary service.
10. Register the companion service port.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from uxlaunch.collaborators.backend import (
    AudioRenderer,
    DiscoveryRegistrar,
    LogSinkProtocol,
    ProtocolEngine,
    VideoRenderer,
)
from uxlaunch.collaborators.factory import CollaboratorSet
from uxlaunch.common.config import ServerConfig
from uxlaunch.common.errors import (
    AudioRendererInitError,
    DiscoveryInitError,
    EngineInitError,
    LogSinkInitError,
    ResourceInitError,
    VideoRendererInitError,
)
from uxlaunch.common.settings import settings
from uxlaunch.common.types import (
    CollaboratorLogLevel,
    DeviceIdentifier,
    DisplaySettings,
    ServiceKind,
)
from uxlaunch.server.callbacks import ServiceCallbackBridge
from uxlaunch.server.state import RuntimeState

__all__ = [
    "ServiceHandles",
    "ServiceOrchestrator",
    "companionPort_resolve",
]

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass
class ServiceHandles:
    """
    Live collaborator handles of one serve cycle.

    Attributes:
        engine:
            Protocol engine.
        log_sink:
            Collaborator log sink.
        video_renderer:
            Video renderer, unset when video is disabled.
        audio_renderer:
            Audio renderer, unset when audio is disabled.
        discovery:
            Discovery registrar.
        callbacks:
            Callback bridge handed to the engine.
        primary_port:
            Bound engine port once the listener started.
        companion_port:
            Port of the companion discovery record.
        registered:
            Discovery records registered so far.
    """

    engine: ProtocolEngine | None = None
    log_sink: LogSinkProtocol | None = None
    video_renderer: VideoRenderer | None = None
    audio_renderer: AudioRenderer | None = None
    discovery: DiscoveryRegistrar | None = None
    callbacks: ServiceCallbackBridge | None = None
    primary_port: int | None = None
    companion_port: int | None = None
    registered: list[ServiceKind] = field(default_factory=list)


def companionPort_resolve(primary_port: int, configured_port: int) -> int:
    """
    Resolve the companion service port.

    Args:
        primary_port:
            Bound primary engine port.
        configured_port:
            Third TCP port from configuration (0 when unset).

    Returns:
        Configured port when set, else `primary + 1`, or `primary - 1`
        when the primary already sits on the highest port.
    """
    if configured_port:
        return configured_port
    if primary_port != settings.HIGHEST_PORT:
        return primary_port + 1
    return primary_port - 1


def collaborator_create(
    factory: Callable[..., _T | None],
    error_type: type[ResourceInitError],
    *args: object,
) -> _T:
    """
    Call a collaborator factory, mapping failure to the step's error type.

    Args:
        factory:
            Collaborator factory.
        error_type:
            Error raised when the factory raises or returns `None`.
        *args:
            Factory arguments.

    Returns:
        Created collaborator handle.
    """
    try:
        handle: _T | None = factory(*args)
    except Exception as exc:
        raise error_type(str(exc)) from exc
    if handle is None:
        raise error_type()
    return handle


class ServiceOrchestrator:
    """Ordered start and teardown of one serve cycle's collaborators."""

    def __init__(self, collaborators: CollaboratorSet) -> None:
        """
        Initialize orchestrator.

        Args:
            collaborators: Factories for the engine, sink, renderers and discovery.
        """
        self.collaborators: CollaboratorSet = collaborators

    def start(
        self,
        config: ServerConfig,
        identifier: DeviceIdentifier,
        runtime_state: RuntimeState,
    ) -> ServiceHandles:
        """
        Bring up every collaborator for one serve cycle.

        Args:
            config:
                Validated server configuration.
            identifier:
                Device identifier advertised through discovery.
            runtime_state:
                Controller-owned runtime state; receives the new handles.

        Returns:
            Live handles.

        Raises:
            ResourceInitError: Subclass naming the failed step, after rollback.
        """
        handles: ServiceHandles = ServiceHandles()
        runtime_state.handles = handles
        try:
            self.engine_start(config, runtime_state, handles)
            self.renderers_start(config, handles)
            self.services_publish(config, identifier, handles)
        except ResourceInitError as exc:
            logger.error(str(exc))
            self.stop(handles)
            runtime_state.handles = None
            raise
        return handles

    def engine_start(
        self,
        config: ServerConfig,
        runtime_state: RuntimeState,
        handles: ServiceHandles,
    ) -> None:
        """
        Steps 1-4: create and configure the engine, then attach the log sink.

        Args:
            config:
                Validated server configuration.
            runtime_state:
                Runtime state the callback bridge reports into.
            handles:
                Handles being populated.
        """
        handles.callbacks = ServiceCallbackBridge(runtime_state)
        handles.engine = collaborator_create(
            self.collaborators.engine_create,
            EngineInitError,
            settings.ENGINE_CONNECTION_CAPACITY,
            handles.callbacks,
        )

        display: DisplaySettings = config.displaySettings_get()
        try:
            handles.engine.display_configure(
                display.width,
                display.height,
                display.refresh_rate,
                display.max_fps,
                display.overscanned,
            )
            handles.engine.ports_configure(config.tcp_ports, config.udp_ports)
        except Exception as exc:
            raise EngineInitError(str(exc)) from exc

        log_level: CollaboratorLogLevel = (
            CollaboratorLogLevel.DEBUG if config.debug_log else CollaboratorLogLevel.INFO
        )
        handles.log_sink = collaborator_create(self.collaborators.logSink_create, LogSinkInitError)
        handles.log_sink.level_set(log_level)
        try:
            handles.engine.logSink_bind(handles.log_sink, log_level)
        except Exception as exc:
            raise LogSinkInitError(str(exc)) from exc

    def renderers_start(self, config: ServerConfig, handles: ServiceHandles) -> None:
        """
        Steps 5-7: create enabled renderers, then start them.

        Args:
            config:
                Validated server configuration.
            handles:
                Handles being populated.
        """
        if not config.video_enabled:
            logger.info("Video disabled")
        elif self.collaborators.videoRenderer_create is None:
            raise VideoRendererInitError("no video renderer factory")
        else:
            handles.video_renderer = collaborator_create(
                self.collaborators.videoRenderer_create,
                VideoRendererInitError,
                handles.log_sink,
                config.name,
                config.flip,
                config.rotate,
                config.video_sink,
            )

        if not config.audio_enabled:
            logger.info("Audio disabled")
        elif self.collaborators.audioRenderer_create is None:
            raise AudioRendererInitError("no audio renderer factory")
        else:
            handles.audio_renderer = collaborator_create(
                self.collaborators.audioRenderer_create,
                AudioRendererInitError,
                handles.log_sink,
                handles.video_renderer,
                config.audio_sink,
            )

        if handles.video_renderer is not None:
            try:
                handles.video_renderer.start()
            except Exception as exc:
                raise VideoRendererInitError(str(exc)) from exc
        if handles.audio_renderer is not None:
            try:
                handles.audio_renderer.start()
            except Exception as exc:
                raise AudioRendererInitError(str(exc)) from exc

    def services_publish(
        self,
        config: ServerConfig,
        identifier: DeviceIdentifier,
        handles: ServiceHandles,
    ) -> None:
        """
        Steps 8-10: start listening, then advertise primary and companion ports.

        Args:
            config:
                Validated server configuration.
            identifier:
                Device identifier advertised through discovery.
            handles:
                Handles being populated.
        """
        try:
            requested_port: int = handles.engine.port_get()
            handles.primary_port = handles.engine.server_start(requested_port)
        except Exception as exc:
            raise EngineInitError(str(exc)) from exc
        logger.info(f"Engine listening on port {handles.primary_port}")

        handles.discovery = collaborator_create(
            self.collaborators.discovery_create,
            DiscoveryInitError,
            config.name,
            identifier,
        )
        handles.companion_port = companionPort_resolve(handles.primary_port, config.tcp_ports[2])
        try:
            handles.engine.registrar_bind(handles.discovery)
            handles.discovery.service_register(ServiceKind.RAOP, handles.primary_port)
            handles.registered.append(ServiceKind.RAOP)
            handles.discovery.service_register(ServiceKind.AIRPLAY, handles.companion_port)
            handles.registered.append(ServiceKind.AIRPLAY)
        except Exception as exc:
            raise DiscoveryInitError(str(exc)) from exc

    def stop(self, handles: ServiceHandles | None) -> None:
        """
        Release every present handle; idempotent and never raises.

        Order: engine, discovery (unregister both services, destroy), audio
        renderer, video renderer, log sink.

        Args:
            handles: Handles of the serve cycle, possibly partial or already released.
        """
        if handles is None:
            return

        if handles.engine is not None:
            release_attempt("protocol engine", handles.engine.destroy)
            handles.engine = None

        if handles.discovery is not None:
            discovery: DiscoveryRegistrar = handles.discovery
            for kind in (ServiceKind.RAOP, ServiceKind.AIRPLAY):
                release_attempt(f"{kind.value} service", discovery.service_unregister, kind)
            release_attempt("discovery registrar", discovery.destroy)
            handles.discovery = None
            handles.registered.clear()

        if handles.audio_renderer is not None:
            release_attempt("audio renderer", handles.audio_renderer.destroy)
            handles.audio_renderer = None

        if handles.video_renderer is not None:
            release_attempt("video renderer", handles.video_renderer.destroy)
            handles.video_renderer = None

        if handles.log_sink is not None:
            release_attempt("render logger", handles.log_sink.close)
            handles.log_sink = None


def release_attempt(label: str, release: Callable[..., object], *args: object) -> None:
    """
    Best-effort release of one resource.

    Args:
        label: Resource name for diagnostics.
        release: Release callable.
        *args: Release arguments.
    """
    try:
        release(*args)
    except Exception as exc:
        logger.warning(f"Error releasing {label}: {exc}")
