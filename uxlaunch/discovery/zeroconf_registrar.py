"""mDNS discovery registrar for the primary (RAOP) and companion (AirPlay) services"""

import logging
import socket
import threading
from typing import Dict, List, Optional

from zeroconf import ServiceInfo, Zeroconf

from uxlaunch.common.types import DeviceIdentifier, ServiceKind

logger = logging.getLogger(__name__)

SERVICE_TYPES: Dict[ServiceKind, str] = {
    ServiceKind.RAOP: "_raop._tcp.local.",
    ServiceKind.AIRPLAY: "_airplay._tcp.local.",
}

FEATURES = "0x5A7FFFF7,0x1E"
MODEL = "AppleTV3,2"
SOURCE_VERSION = "220.68"

RAOP_PROPERTIES: Dict[str, str] = {
    "ch": "2",
    "cn": "0,1,2,3",
    "da": "true",
    "et": "0,3,5",
    "vv": "2",
    "ft": FEATURES,
    "am": MODEL,
    "md": "0,1,2",
    "rhd": "5.6.0.0",
    "pw": "false",
    "sr": "44100",
    "ss": "16",
    "sv": "false",
    "tp": "UDP",
    "txtvers": "1",
    "sf": "0x4",
    "vs": SOURCE_VERSION,
    "vn": "65537",
}

AIRPLAY_PROPERTIES: Dict[str, str] = {
    "features": FEATURES,
    "flags": "0x4",
    "model": MODEL,
    "srcvers": SOURCE_VERSION,
    "vv": "2",
}


def localAddress_get() -> str:
    """Get the local IP address used for outbound traffic"""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
        finally:
            s.close()
    except OSError as e:
        logger.warning(f"Could not determine local IP: {e}")
        return "127.0.0.1"


def properties_encode(properties: Dict[str, str]) -> Dict[bytes, bytes]:
    """Encode TXT properties as UTF-8 for zeroconf"""
    return {key.encode("utf-8"): str(value).encode("utf-8") for key, value in properties.items()}


class ZeroconfRegistrar:
    """Advertises one service instance over mDNS"""

    def __init__(
        self,
        name: str,
        identifier: DeviceIdentifier,
        zeroconf: Optional[Zeroconf] = None,
        addresses: Optional[List[str]] = None,
    ) -> None:
        """
        Initialize registrar

        Args:
            name: Service display name
            identifier: Device identifier published in the records
            zeroconf: Zeroconf instance (a new one is created when omitted)
            addresses: IPv4 addresses to publish (defaults to the outbound address)
        """
        self.name: str = name
        self.identifier: DeviceIdentifier = identifier
        self.zeroconf: Zeroconf = zeroconf if zeroconf is not None else Zeroconf()
        self.addresses: List[str] = addresses if addresses is not None else [localAddress_get()]
        self.service_infos: Dict[ServiceKind, ServiceInfo] = {}
        self._lock = threading.Lock()

    def instanceName_get(self, kind: ServiceKind) -> str:
        """
        Build the mDNS instance name for a service kind

        RAOP instances are prefixed with the identifier in upper-case hex.
        """
        if kind == ServiceKind.RAOP:
            hex_identifier = self.identifier.toBytes().hex().upper()
            return f"{hex_identifier}@{self.name}.{SERVICE_TYPES[kind]}"
        return f"{self.name}.{SERVICE_TYPES[kind]}"

    def serviceInfo_build(self, kind: ServiceKind, port: int) -> ServiceInfo:
        """
        Build the service record for one kind

        Args:
            kind: Service kind
            port: Advertised port

        Returns:
            zeroconf ServiceInfo
        """
        if kind == ServiceKind.RAOP:
            properties = dict(RAOP_PROPERTIES)
        else:
            properties = dict(AIRPLAY_PROPERTIES)
            properties["deviceid"] = str(self.identifier).upper()

        return ServiceInfo(
            SERVICE_TYPES[kind],
            self.instanceName_get(kind),
            addresses=[socket.inet_aton(address) for address in self.addresses],
            port=port,
            properties=properties_encode(properties),
            server=f"{socket.gethostname()}.local.",
        )

    def service_register(self, kind: ServiceKind, port: int) -> None:
        """
        Register (or re-register) one service record

        Args:
            kind: Service kind
            port: Advertised port
        """
        with self._lock:
            previous = self.service_infos.pop(kind, None)
            if previous is not None:
                self.zeroconf.unregister_service(previous)
            info = self.serviceInfo_build(kind, port)
            self.zeroconf.register_service(info)
            self.service_infos[kind] = info
        logger.info(f"Registered {SERVICE_TYPES[kind]} service {self.name} on port {port}")

    def service_unregister(self, kind: ServiceKind) -> None:
        """
        Withdraw one service record; unknown kinds are ignored

        Args:
            kind: Service kind
        """
        with self._lock:
            info = self.service_infos.pop(kind, None)
            if info is None:
                return
            self.zeroconf.unregister_service(info)
        logger.info(f"Unregistered {SERVICE_TYPES[kind]} service")

    def destroy(self) -> None:
        """Withdraw remaining records and close the zeroconf instance"""
        for kind in list(self.service_infos):
            try:
                self.service_unregister(kind)
            except Exception as e:
                logger.error(f"Error unregistering service: {e}")
        self.zeroconf.close()


def registrar_create(name: str, identifier: DeviceIdentifier) -> ZeroconfRegistrar:
    """Discovery factory used by default configuration"""
    return ZeroconfRegistrar(name=name, identifier=identifier)
