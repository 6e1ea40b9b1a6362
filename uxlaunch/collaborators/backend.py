"""Collaborator protocols for the protocol engine, renderers and discovery."""

from __future__ import annotations

from typing import Callable, Protocol

from uxlaunch.common.types import (
    AudioFrame,
    CollaboratorLogLevel,
    DeviceIdentifier,
    FlipAxis,
    RotateAxis,
    ServiceKind,
    VideoFrame,
)


class LogSinkProtocol(Protocol):
    """Log sink shared by the engine and the renderers."""

    def message_emit(self, level: int, text: str) -> None:
        """Forward one collaborator log message."""

    def level_set(self, level: CollaboratorLogLevel) -> None:
        """Set the most verbose level that is forwarded."""

    def close(self) -> None:
        """Release the sink."""


class EngineCallbacks(Protocol):
    """
    Notifications the protocol engine delivers into the launch layer.

    The engine may invoke these from its own threads.
    """

    def connection_open(self) -> None:
        """A client session was opened."""

    def connection_close(self) -> None:
        """A client session was closed."""

    def audioFrame_process(self, frame: AudioFrame) -> None:
        """Route one inbound audio frame."""

    def videoFrame_process(self, frame: VideoFrame) -> None:
        """Route one inbound video frame."""

    def audio_flush(self) -> None:
        """Drop buffered audio."""

    def video_flush(self) -> None:
        """Drop buffered video."""

    def volume_set(self, level: float) -> None:
        """Apply a client volume change."""

    def audioFormat_announce(self, format_code: int) -> None:
        """Report the audio format of a new session."""

    def logMessage_emit(self, level: int, text: str) -> None:
        """Forward one engine log message."""


class DiscoveryRegistrar(Protocol):
    """Service-discovery broadcast for the running instance."""

    def service_register(self, kind: ServiceKind, port: int) -> None:
        """Advertise one service record on the given port."""

    def service_unregister(self, kind: ServiceKind) -> None:
        """Withdraw one service record."""

    def destroy(self) -> None:
        """Release discovery resources."""


class ProtocolEngine(Protocol):
    """Streaming session engine."""

    def display_configure(
        self, width: int, height: int, refresh_rate: int, max_fps: int, overscanned: bool
    ) -> None:
        """Set advertised display parameters (0 = engine default)."""

    def ports_configure(self, tcp: tuple[int, int, int], udp: tuple[int, int, int]) -> None:
        """Set network ports (0 entries are assigned dynamically)."""

    def logSink_bind(self, sink: LogSinkProtocol, level: CollaboratorLogLevel) -> None:
        """Route engine log output into the shared sink."""

    def port_get(self) -> int:
        """Return the currently configured primary port."""

    def server_start(self, port: int) -> int:
        """Start listening and return the bound primary port."""

    def registrar_bind(self, registrar: DiscoveryRegistrar) -> None:
        """Give the engine access to the discovery registrar."""

    def destroy(self) -> None:
        """Stop listening and release every session."""


class VideoRenderer(Protocol):
    """Video decode-and-render pipeline."""

    def start(self) -> None:
        """Start the rendering pipeline."""

    def frame_render(self, frame: VideoFrame) -> None:
        """Queue one frame for rendering."""

    def flush(self) -> None:
        """Drop queued frames."""

    def background_update(self, delta: int) -> None:
        """Adjust the active-session count shown by the idle background."""

    def eventSource_attach(self, quit_request: Callable[[], None]) -> Callable[[], None]:
        """
        Watch pipeline events, calling `quit_request` on end of stream or error.

        Returns:
            Callable that detaches the watch.
        """

    def destroy(self) -> None:
        """Release the pipeline."""


class AudioRenderer(Protocol):
    """Audio decode-and-render pipeline."""

    def start(self) -> None:
        """Start the rendering pipeline."""

    def frame_render(self, frame: AudioFrame) -> None:
        """Queue one frame for rendering."""

    def volume_set(self, level: float) -> None:
        """Apply a volume level."""

    def flush(self) -> None:
        """Drop queued frames."""

    def destroy(self) -> None:
        """Release the pipeline."""


class EngineFactory(Protocol):
    def __call__(self, capacity: int, callbacks: EngineCallbacks) -> ProtocolEngine | None: ...


class VideoRendererFactory(Protocol):
    def __call__(
        self,
        log_sink: LogSinkProtocol,
        name: str,
        flip: FlipAxis,
        rotate: RotateAxis,
        sink: str,
    ) -> VideoRenderer | None: ...


class AudioRendererFactory(Protocol):
    def __call__(
        self,
        log_sink: LogSinkProtocol,
        video_renderer: VideoRenderer | None,
        sink: str,
    ) -> AudioRenderer | None: ...


class DiscoveryFactory(Protocol):
    def __call__(self, name: str, identifier: DeviceIdentifier) -> DiscoveryRegistrar | None: ...


LogSinkFactory = Callable[[], LogSinkProtocol]
