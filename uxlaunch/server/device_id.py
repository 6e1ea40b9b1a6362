"""
Device identifier provisioning.

The identifier advertised to discovery clients is read from the host's
network interface when possible. Otherwise (or on request) a random
identifier is synthesized whose first octet marks it as locally
administered and unicast, so it cannot collide with vendor-assigned
addresses.
"""

from __future__ import annotations

import logging
import os
import random
import time
from pathlib import Path
from typing import Iterable

from uxlaunch.common.settings import settings
from uxlaunch.common.types import DeviceIdentifier

__all__ = [
    "identifier_discover",
    "identifier_synthesize",
    "identifier_provision",
    "randomSource_get",
]

logger = logging.getLogger(__name__)

_MULTICAST_BIT: int = 0
_LOCAL_BIT: int = 1

_random_source: random.Random | None = None


def randomSource_get() -> random.Random:
    """
    Get the process-lifetime random source.

    Seeded once from wall-clock time and process id so concurrently
    launched instances pick different identifiers.

    Returns:
        Shared `random.Random` instance.
    """
    global _random_source

    if _random_source is None:
        _random_source = random.Random(time.time_ns() ^ (os.getpid() << 16))
    return _random_source


def identifier_discover(
    paths: Iterable[str] = settings.HARDWARE_ADDRESS_PATHS,
) -> DeviceIdentifier | None:
    """
    Read the hardware address of the first available host interface.

    Args:
        paths: Interface identity files, in priority order.

    Returns:
        Parsed identifier, or `None` when no source is present or readable.
    """
    for path in paths:
        try:
            text: str = Path(path).read_text().strip()
        except OSError:
            continue
        if not text:
            continue
        try:
            return DeviceIdentifier.fromString(text)
        except ValueError:
            logger.warning(f"Ignoring malformed hardware address in {path}: {text!r}")
            return None
    return None


def identifier_synthesize(rng: random.Random | None = None) -> DeviceIdentifier:
    """
    Generate a random locally administered unicast identifier.

    Args:
        rng: Random source; defaults to the process-lifetime source.

    Returns:
        Six-octet identifier with octet 0 low bits = `10` (local, not multicast).
    """
    source: random.Random = rng if rng is not None else randomSource_get()
    first_octet: int = source.randrange(64)
    first_octet = (first_octet << 1) + _LOCAL_BIT
    first_octet = (first_octet << 1) + _MULTICAST_BIT
    remaining: list[int] = [source.randrange(256) for _ in range(settings.IDENTIFIER_OCTETS - 1)]
    return DeviceIdentifier(octets=(first_octet, *remaining))


def identifier_provision(
    randomize: bool,
    paths: Iterable[str] = settings.HARDWARE_ADDRESS_PATHS,
) -> tuple[DeviceIdentifier, bool]:
    """
    Choose the identifier for this process run.

    Args:
        randomize: Skip host discovery and always synthesize.
        paths: Interface identity files, in priority order.

    Returns:
        Tuple of `(identifier, synthesized)`.
    """
    if not randomize:
        discovered: DeviceIdentifier | None = identifier_discover(paths)
        if discovered is not None:
            return discovered, False

    identifier: DeviceIdentifier = identifier_synthesize()
    logger.info(f"Using randomly-generated device identifier {identifier}")
    return identifier, True
