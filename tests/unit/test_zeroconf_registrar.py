"""Unit tests for the zeroconf discovery registrar."""

from __future__ import annotations

import dataclasses
import os

import pytest
from zeroconf import Zeroconf

from uxlaunch.common.config import ServerConfig
from uxlaunch.common.types import DeviceIdentifier, ServiceKind
from uxlaunch.discovery import zeroconf_registrar
from uxlaunch.discovery.zeroconf_registrar import ZeroconfRegistrar, properties_encode
from uxlaunch.server.lifecycle import LifecycleController
from uxlaunch.server.orchestrator import ServiceOrchestrator


class _FakeServiceInfo:
    """Records ServiceInfo construction arguments."""

    def __init__(self, type_, name, addresses=None, port=None, properties=None, server=None) -> None:
        self.type = type_
        self.name = name
        self.addresses = addresses
        self.port = port
        self.properties = properties
        self.server = server


class _FakeZeroconf:
    """Zeroconf double tracking registered records."""

    def __init__(self) -> None:
        self.registered: list = []
        self.unregistered: list = []
        self.closed: bool = False
        self.fail_register: bool = False

    def register_service(self, info) -> None:
        if self.fail_register:
            raise RuntimeError("name conflict")
        self.registered.append(info)

    def unregister_service(self, info) -> None:
        self.unregistered.append(info)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def registrar(monkeypatch) -> ZeroconfRegistrar:
    """Registrar over fake zeroconf objects"""
    monkeypatch.setattr(zeroconf_registrar, "ServiceInfo", _FakeServiceInfo)
    identifier = DeviceIdentifier.fromString("02:aa:bb:cc:dd:ee")
    return ZeroconfRegistrar(
        "TV@host", identifier, zeroconf=_FakeZeroconf(), addresses=["192.168.1.20"]
    )


class TestInstanceNames:
    """Tests for mDNS instance naming."""

    def test_raop_prefixed_with_identifier(self, registrar) -> None:
        assert registrar.instanceName_get(ServiceKind.RAOP) == "02AABBCCDDEE@TV@host._raop._tcp.local."

    def test_airplay_uses_plain_name(self, registrar) -> None:
        assert registrar.instanceName_get(ServiceKind.AIRPLAY) == "TV@host._airplay._tcp.local."


class TestRegistration:
    """Tests for record registration and withdrawal."""

    def test_register_both_services(self, registrar) -> None:
        registrar.service_register(ServiceKind.RAOP, 7000)
        registrar.service_register(ServiceKind.AIRPLAY, 7001)

        raop, airplay = registrar.zeroconf.registered
        assert raop.type == "_raop._tcp.local."
        assert raop.port == 7000
        assert raop.addresses == [bytes([192, 168, 1, 20])]
        assert raop.properties[b"txtvers"] == b"1"
        assert airplay.port == 7001
        assert airplay.properties[b"deviceid"] == b"02:AA:BB:CC:DD:EE"
        assert airplay.server.endswith(".local.")

    def test_reregister_replaces_record(self, registrar) -> None:
        registrar.service_register(ServiceKind.RAOP, 7000)
        registrar.service_register(ServiceKind.RAOP, 7100)

        assert len(registrar.zeroconf.unregistered) == 1
        assert registrar.service_infos[ServiceKind.RAOP].port == 7100

    def test_unregister_unknown_kind_is_noop(self, registrar) -> None:
        registrar.service_unregister(ServiceKind.AIRPLAY)

        assert registrar.zeroconf.unregistered == []

    def test_register_failure_propagates(self, registrar) -> None:
        registrar.zeroconf.fail_register = True

        with pytest.raises(RuntimeError):
            registrar.service_register(ServiceKind.RAOP, 7000)
        assert registrar.service_infos == {}

    def test_destroy_withdraws_and_closes(self, registrar) -> None:
        registrar.service_register(ServiceKind.RAOP, 7000)
        registrar.service_register(ServiceKind.AIRPLAY, 7001)

        registrar.destroy()

        assert len(registrar.zeroconf.unregistered) == 2
        assert registrar.service_infos == {}
        assert registrar.zeroconf.closed is True


def test_properties_encoded_as_bytes() -> None:
    assert properties_encode({"sr": "44100"}) == {b"sr": b"44100"}


class TestRegistrarInLifecycle:
    """Tests for the default registrar under the lifecycle event loop."""

    def test_registers_on_loopback_during_run(self, fake_collaborators, identifier) -> None:
        """
        A real zeroconf instance registers both records while the loop runs.

        Returns:
            None.
        """
        registrars: list[ZeroconfRegistrar] = []
        published: dict = {}

        def loopbackRegistrar_create(name: str, identifier: DeviceIdentifier) -> ZeroconfRegistrar:
            registrar = ZeroconfRegistrar(
                name,
                identifier,
                zeroconf=Zeroconf(interfaces=["127.0.0.1"]),
                addresses=["127.0.0.1"],
            )
            registrars.append(registrar)
            return registrar

        class _PublishingOrchestrator(ServiceOrchestrator):
            def start(self, config, identifier, runtime_state):
                handles = super().start(config, identifier, runtime_state)
                published.update(handles.discovery.service_infos)
                controller.loop.call_soon_threadsafe(controller.shutdown_request)
                return handles

        collaborators = dataclasses.replace(
            fake_collaborators.collaboratorSet_get(),
            discovery_create=loopbackRegistrar_create,
        )
        controller = LifecycleController(
            config=ServerConfig(name=f"uxlaunch-test-{os.getpid()}"),
            identifier=identifier,
            orchestrator=_PublishingOrchestrator(collaborators),
        )

        assert controller.run() == 0
        assert set(published) == {ServiceKind.RAOP, ServiceKind.AIRPLAY}
        assert published[ServiceKind.RAOP].port == fake_collaborators.dynamic_port
        assert published[ServiceKind.AIRPLAY].port == fake_collaborators.dynamic_port + 1
        assert registrars[0].service_infos == {}
