"""Unit tests for ordered collaborator start and teardown."""

from __future__ import annotations

import pytest

from uxlaunch.common.config import ServerConfig
from uxlaunch.common.errors import (
    AudioRendererInitError,
    DiscoveryInitError,
    EngineInitError,
    LogSinkInitError,
    VideoRendererInitError,
)
from uxlaunch.common.types import CollaboratorLogLevel, FlipAxis, ServiceKind
from uxlaunch.server.orchestrator import (
    ServiceHandles,
    ServiceOrchestrator,
    companionPort_resolve,
)
from uxlaunch.server.state import RuntimeState

FULL_START: list[str] = [
    "engine.create",
    "engine.display_configure",
    "engine.ports_configure",
    "logsink.create",
    "engine.logSink_bind",
    "video.create",
    "audio.create",
    "video.start",
    "audio.start",
    "engine.port_get",
    "engine.server_start",
    "discovery.create",
    "engine.registrar_bind",
    "discovery.register.raop",
    "discovery.register.airplay",
]

FULL_STOP: list[str] = [
    "engine.destroy",
    "discovery.unregister.raop",
    "discovery.unregister.airplay",
    "discovery.destroy",
    "audio.destroy",
    "video.destroy",
    "logsink.close",
]


class TestCompanionPort:
    """Tests for companion service port resolution."""

    def test_configured_port_wins(self) -> None:
        assert companionPort_resolve(7000, 7001) == 7001

    def test_next_port(self) -> None:
        assert companionPort_resolve(40123, 0) == 40124

    def test_highest_port_steps_down(self) -> None:
        assert companionPort_resolve(65535, 0) == 65534


class TestServiceStart:
    """Tests for the start sequence."""

    def test_full_start_order(self, fake_collaborators, identifier) -> None:
        """Every step runs once, in dependency order."""
        state = RuntimeState()
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        handles = orchestrator.start(ServerConfig(name="TV"), identifier, state)

        assert fake_collaborators.journal == FULL_START
        assert state.handles is handles
        assert handles.primary_port == fake_collaborators.dynamic_port
        assert handles.companion_port == fake_collaborators.dynamic_port + 1
        assert handles.registered == [ServiceKind.RAOP, ServiceKind.AIRPLAY]
        assert fake_collaborators.registrar.services == {
            ServiceKind.RAOP: handles.primary_port,
            ServiceKind.AIRPLAY: handles.companion_port,
        }
        assert fake_collaborators.registrar.identifier == identifier
        assert fake_collaborators.engine.registrar is fake_collaborators.registrar

    def test_configuration_pushed_to_engine(self, fake_collaborators, identifier) -> None:
        """Display settings, ports, capacity and log level reach the engine."""
        config = ServerConfig(
            display_width=1280,
            display_height=720,
            refresh_rate=60,
            max_fps=30,
            tcp_ports=(7100, 7000, 7001),
            udp_ports=(7011, 6001, 6000),
            debug_log=True,
            flip=FlipAxis.HFLIP,
        )
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        handles = orchestrator.start(config, identifier, RuntimeState())

        engine = fake_collaborators.engine
        assert engine.capacity == 10
        assert engine.display == (1280, 720, 60, 30, False)
        assert engine.tcp_ports == (7100, 7000, 7001)
        assert engine.udp_ports == (7011, 6001, 6000)
        assert engine.log_level == CollaboratorLogLevel.DEBUG
        assert fake_collaborators.log_sink.level == CollaboratorLogLevel.DEBUG
        assert fake_collaborators.video.flip == FlipAxis.HFLIP
        assert handles.primary_port == 7100
        assert handles.companion_port == 7001

    def test_video_disabled(self, fake_collaborators, identifier, caplog) -> None:
        """`-vs 0` skips the video renderer and lowers the framerate."""
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        handles = orchestrator.start(ServerConfig(video_sink="0"), identifier, RuntimeState())

        assert "video.create" not in fake_collaborators.journal
        assert handles.video_renderer is None
        assert fake_collaborators.audio.video_renderer is None
        assert fake_collaborators.engine.display[3] == 1
        assert "Video disabled" in caplog.text

    def test_audio_disabled(self, fake_collaborators, identifier, caplog) -> None:
        """`-a` skips the audio renderer."""
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        handles = orchestrator.start(ServerConfig(audio_sink="0"), identifier, RuntimeState())

        assert "audio.create" not in fake_collaborators.journal
        assert handles.audio_renderer is None
        assert "Audio disabled" in caplog.text

    def test_companion_port_at_highest_port(self, fake_collaborators, identifier) -> None:
        """A primary on 65535 advertises the companion one below."""
        fake_collaborators.dynamic_port = 65535
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        handles = orchestrator.start(ServerConfig(), identifier, RuntimeState())

        assert handles.companion_port == 65534


class TestStartFailureRollback:
    """Tests for rollback of partially started cycles."""

    @pytest.mark.parametrize(
        "failure, error_type, exit_code",
        [
            ("engine.create", EngineInitError, 2),
            ("engine.ports_configure", EngineInitError, 2),
            ("logsink.create", LogSinkInitError, 3),
            ("engine.logSink_bind", LogSinkInitError, 3),
            ("video.create", VideoRendererInitError, 4),
            ("video.start", VideoRendererInitError, 4),
            ("audio.create", AudioRendererInitError, 5),
            ("audio.start", AudioRendererInitError, 5),
            ("engine.server_start", EngineInitError, 2),
            ("discovery.create", DiscoveryInitError, 6),
            ("discovery.register.airplay", DiscoveryInitError, 6),
        ],
    )
    def test_failure_maps_to_exit_code(
        self, fake_collaborators, identifier, failure, error_type, exit_code
    ) -> None:
        """Each failing step raises its own error type."""
        fake_collaborators.failures.add(failure)
        state = RuntimeState()
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        with pytest.raises(error_type) as excinfo:
            orchestrator.start(ServerConfig(), identifier, state)

        assert excinfo.value.exit_code == exit_code
        assert state.handles is None

    def test_factory_returning_none(self, fake_collaborators, identifier) -> None:
        """A factory that yields nothing counts as a failure."""
        fake_collaborators.returns_none.add("engine.create")
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        with pytest.raises(EngineInitError, match="Could not init protocol engine"):
            orchestrator.start(ServerConfig(), identifier, RuntimeState())

        assert fake_collaborators.journal == ["engine.create"]

    def test_audio_failure_releases_everything(self, fake_collaborators, identifier) -> None:
        """Earlier handles are released and no service is ever advertised."""
        fake_collaborators.failures.add("audio.create")
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        with pytest.raises(AudioRendererInitError):
            orchestrator.start(ServerConfig(), identifier, RuntimeState())

        journal = fake_collaborators.journal
        assert journal[journal.index("audio.create") + 1:] == [
            "engine.destroy",
            "video.destroy",
            "logsink.close",
        ]
        assert not any(entry.startswith("discovery.register") for entry in journal)

    def test_registration_failure_unregisters_primary(self, fake_collaborators, identifier) -> None:
        """A failed companion registration withdraws the primary record."""
        fake_collaborators.failures.add("discovery.register.airplay")
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())

        with pytest.raises(DiscoveryInitError):
            orchestrator.start(ServerConfig(), identifier, RuntimeState())

        assert fake_collaborators.registrar.services == {}
        assert fake_collaborators.journal[-7:] == FULL_STOP


class TestServiceStop:
    """Tests for teardown."""

    def test_stop_order(self, fake_collaborators, identifier) -> None:
        """Teardown follows the fixed release order."""
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())
        handles = orchestrator.start(ServerConfig(), identifier, RuntimeState())
        fake_collaborators.journal.clear()

        orchestrator.stop(handles)

        assert fake_collaborators.journal == FULL_STOP
        assert handles.engine is None
        assert handles.discovery is None
        assert handles.log_sink is None
        assert handles.registered == []

    def test_stop_is_idempotent(self, fake_collaborators, identifier) -> None:
        """A second stop releases nothing."""
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())
        handles = orchestrator.start(ServerConfig(), identifier, RuntimeState())
        orchestrator.stop(handles)
        fake_collaborators.journal.clear()

        orchestrator.stop(handles)
        orchestrator.stop(None)
        orchestrator.stop(ServiceHandles())

        assert fake_collaborators.journal == []

    def test_release_errors_do_not_stop_teardown(
        self, fake_collaborators, identifier, caplog
    ) -> None:
        """A failing release is logged and the remaining handles still go."""
        orchestrator = ServiceOrchestrator(fake_collaborators.collaboratorSet_get())
        handles = orchestrator.start(ServerConfig(), identifier, RuntimeState())
        fake_collaborators.failures.add("engine.destroy")
        fake_collaborators.journal.clear()

        orchestrator.stop(handles)

        assert fake_collaborators.journal == FULL_STOP
        assert "Error releasing protocol engine" in caplog.text
