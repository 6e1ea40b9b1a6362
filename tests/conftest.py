"""Pytest configuration and shared fixtures for uxlaunch tests

This module provides journal-recording collaborator fakes used across the
orchestrator, lifecycle and callback tests.
"""

import logging
from typing import Callable, Optional

import pytest

from uxlaunch.collaborators.factory import CollaboratorSet
from uxlaunch.common.types import DeviceIdentifier, ServiceKind


class _FakeLogSink:
    """Log sink that records level changes and messages."""

    def __init__(self, collaborators: "FakeCollaborators") -> None:
        self.collaborators = collaborators
        self.level = None
        self.messages: list[tuple[int, str]] = []

    def message_emit(self, level: int, text: str) -> None:
        self.messages.append((level, text))

    def level_set(self, level) -> None:
        self.level = level

    def close(self) -> None:
        self.collaborators.record("logsink.close")


class _FakeEngine:
    """Protocol engine fake with a configurable dynamic port."""

    def __init__(self, collaborators: "FakeCollaborators", capacity: int, callbacks) -> None:
        self.collaborators = collaborators
        self.capacity: int = capacity
        self.callbacks = callbacks
        self.display: Optional[tuple] = None
        self.tcp_ports: Optional[tuple] = None
        self.udp_ports: Optional[tuple] = None
        self.log_sink = None
        self.log_level = None
        self.registrar = None

    def display_configure(self, width, height, refresh_rate, max_fps, overscanned) -> None:
        self.collaborators.record("engine.display_configure")
        self.display = (width, height, refresh_rate, max_fps, overscanned)

    def ports_configure(self, tcp, udp) -> None:
        self.collaborators.record("engine.ports_configure")
        self.tcp_ports = tuple(tcp)
        self.udp_ports = tuple(udp)

    def logSink_bind(self, sink, level) -> None:
        self.collaborators.record("engine.logSink_bind")
        self.log_sink = sink
        self.log_level = level

    def port_get(self) -> int:
        self.collaborators.record("engine.port_get")
        return self.tcp_ports[0] if self.tcp_ports else 0

    def server_start(self, port: int) -> int:
        self.collaborators.record("engine.server_start")
        return port if port else self.collaborators.dynamic_port

    def registrar_bind(self, registrar) -> None:
        self.collaborators.record("engine.registrar_bind")
        self.registrar = registrar

    def destroy(self) -> None:
        self.collaborators.record("engine.destroy")


class _FakeVideoRenderer:
    """Video renderer fake exposing the attached quit callback."""

    def __init__(self, collaborators: "FakeCollaborators", log_sink, name, flip, rotate, sink) -> None:
        self.collaborators = collaborators
        self.name = name
        self.flip = flip
        self.rotate = rotate
        self.sink = sink
        self.frames: list = []
        self.background: int = 0
        self.flushes: int = 0
        self.quit_request: Optional[Callable[[], None]] = None

    def start(self) -> None:
        self.collaborators.record("video.start")

    def frame_render(self, frame) -> None:
        self.frames.append(frame)

    def flush(self) -> None:
        self.flushes += 1

    def background_update(self, delta: int) -> None:
        self.background += delta

    def eventSource_attach(self, quit_request: Callable[[], None]) -> Callable[[], None]:
        self.collaborators.record("video.attach")
        self.quit_request = quit_request

        def detach() -> None:
            self.collaborators.record("video.detach")
            self.quit_request = None

        return detach

    def destroy(self) -> None:
        self.collaborators.record("video.destroy")


class _FakeAudioRenderer:
    """Audio renderer fake recording frames and volume."""

    def __init__(self, collaborators: "FakeCollaborators", log_sink, video_renderer, sink) -> None:
        self.collaborators = collaborators
        self.video_renderer = video_renderer
        self.sink = sink
        self.frames: list = []
        self.volume: Optional[float] = None
        self.flushes: int = 0

    def start(self) -> None:
        self.collaborators.record("audio.start")

    def frame_render(self, frame) -> None:
        self.frames.append(frame)

    def volume_set(self, level: float) -> None:
        self.volume = level

    def flush(self) -> None:
        self.flushes += 1

    def destroy(self) -> None:
        self.collaborators.record("audio.destroy")


class _FakeRegistrar:
    """Discovery registrar fake tracking advertised ports."""

    def __init__(self, collaborators: "FakeCollaborators", name: str, identifier) -> None:
        self.collaborators = collaborators
        self.name = name
        self.identifier = identifier
        self.services: dict[ServiceKind, int] = {}

    def service_register(self, kind: ServiceKind, port: int) -> None:
        self.collaborators.record(f"discovery.register.{kind.value}")
        self.services[kind] = port

    def service_unregister(self, kind: ServiceKind) -> None:
        self.collaborators.record(f"discovery.unregister.{kind.value}")
        self.services.pop(kind, None)

    def destroy(self) -> None:
        self.collaborators.record("discovery.destroy")


class FakeCollaborators:
    """
    Factory set whose collaborators append every call to one journal.

    Adding a journal entry name to `failures` makes that step raise
    (factories named `*.create` return None instead when listed in
    `returns_none`).
    """

    def __init__(self) -> None:
        self.journal: list[str] = []
        self.failures: set[str] = set()
        self.returns_none: set[str] = set()
        self.dynamic_port: int = 40123
        self.engine: Optional[_FakeEngine] = None
        self.log_sink: Optional[_FakeLogSink] = None
        self.video: Optional[_FakeVideoRenderer] = None
        self.audio: Optional[_FakeAudioRenderer] = None
        self.registrar: Optional[_FakeRegistrar] = None

    def record(self, entry: str) -> None:
        self.journal.append(entry)
        if entry in self.failures:
            raise RuntimeError(f"simulated {entry} failure")

    def engine_create(self, capacity, callbacks):
        self.record("engine.create")
        if "engine.create" in self.returns_none:
            return None
        self.engine = _FakeEngine(self, capacity, callbacks)
        return self.engine

    def logSink_create(self):
        self.record("logsink.create")
        self.log_sink = _FakeLogSink(self)
        return self.log_sink

    def videoRenderer_create(self, log_sink, name, flip, rotate, sink):
        self.record("video.create")
        if "video.create" in self.returns_none:
            return None
        self.video = _FakeVideoRenderer(self, log_sink, name, flip, rotate, sink)
        return self.video

    def audioRenderer_create(self, log_sink, video_renderer, sink):
        self.record("audio.create")
        if "audio.create" in self.returns_none:
            return None
        self.audio = _FakeAudioRenderer(self, log_sink, video_renderer, sink)
        return self.audio

    def discovery_create(self, name, identifier):
        self.record("discovery.create")
        self.registrar = _FakeRegistrar(self, name, identifier)
        return self.registrar

    def collaboratorSet_get(self) -> CollaboratorSet:
        """Build the factory set handed to the orchestrator"""
        return CollaboratorSet(
            engine_create=self.engine_create,
            logSink_create=self.logSink_create,
            videoRenderer_create=self.videoRenderer_create,
            audioRenderer_create=self.audioRenderer_create,
            discovery_create=self.discovery_create,
        )


@pytest.fixture
def fake_collaborators() -> FakeCollaborators:
    """Fresh journal-recording collaborator fakes"""
    return FakeCollaborators()


@pytest.fixture
def identifier() -> DeviceIdentifier:
    """Fixed locally administered device identifier"""
    return DeviceIdentifier(octets=(0x02, 0x11, 0x22, 0x33, 0x44, 0x55))


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)
