"""Common types and data structures for uxlaunch"""

from dataclasses import dataclass
from enum import Enum, IntEnum


class FlipAxis(Enum):
    """Mirror-flip selector (`-f`)"""
    NONE = "none"
    HFLIP = "H"    # Horizontal mirror
    VFLIP = "V"    # Vertical mirror
    INVERT = "I"   # Both axes, i.e. 180 degree rotation


class RotateAxis(Enum):
    """Quarter-turn rotation selector (`-r`)"""
    NONE = "none"
    LEFT = "L"     # Counter-clockwise
    RIGHT = "R"    # Clockwise


class ServiceKind(Enum):
    """Discovery service records advertised for one server instance"""
    RAOP = "raop"          # Primary service port
    AIRPLAY = "airplay"    # Companion service port


class CollaboratorLogLevel(IntEnum):
    """Syslog-style levels used by collaborator log callbacks"""
    ERR = 3
    WARNING = 4
    INFO = 6
    DEBUG = 7


class VideoFrameKind(IntEnum):
    """Kind of an inbound video frame as reported by the engine"""
    NON_IDR = 0
    IDR = 1


AUDIO_FORMAT_NAMES: dict[int, str] = {
    0x1000000: "AAC_ELD",
    0x40000: "ALAC",
    0x400000: "AAC",
    0x0: "PCM",
}


def audioFormat_name(format_code: int) -> str:
    """Return the codec name for an announced audio format code"""
    return AUDIO_FORMAT_NAMES.get(format_code, "UNKNOWN")


@dataclass(frozen=True)
class DisplaySettings:
    """Display parameters pushed into the protocol engine (0 = engine default)"""
    width: int = 0
    height: int = 0
    refresh_rate: int = 0
    max_fps: int = 0
    overscanned: bool = False


@dataclass(frozen=True)
class AudioFrame:
    """Decoded-ready audio payload delivered by the engine"""
    timestamp: int
    payload: bytes


@dataclass(frozen=True)
class VideoFrame:
    """Video payload delivered by the engine"""
    timestamp: int
    payload: bytes
    frame_kind: VideoFrameKind = VideoFrameKind.NON_IDR

    def isKeyFrame(self) -> bool:
        """Check if this frame can start decoding on its own"""
        return self.frame_kind == VideoFrameKind.IDR


@dataclass(frozen=True)
class DeviceIdentifier:
    """Six-octet hardware-style address identifying the service instance"""
    octets: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.octets) != 6:
            raise ValueError(f"device identifier needs 6 octets, got {len(self.octets)}")
        for octet in self.octets:
            if not 0 <= octet <= 0xFF:
                raise ValueError(f"octet out of range: {octet}")

    @classmethod
    def fromString(cls, text: str) -> "DeviceIdentifier":
        """
        Parse colon-separated hexadecimal notation (`aa:bb:cc:dd:ee:ff`)

        Raises:
            ValueError: If the text is not six colon-separated hex octets
        """
        parts: list[str] = text.strip().split(":")
        if len(parts) != 6 or any(len(part) != 2 for part in parts):
            raise ValueError(f"malformed device identifier: {text!r}")
        return cls(octets=tuple(int(part, 16) for part in parts))

    def isLocallyAdministered(self) -> bool:
        """Check the local-administration bit of the first octet"""
        return bool(self.octets[0] & 0b10)

    def isMulticast(self) -> bool:
        """Check the multicast bit of the first octet"""
        return bool(self.octets[0] & 0b01)

    def toBytes(self) -> bytes:
        return bytes(self.octets)

    def __str__(self) -> str:
        return ":".join(f"{octet:02x}" for octet in self.octets)

