"""
Configuration token validators.

Each validator takes one raw textual token (as typed on the command line or
read from the YAML `server` section) and returns a typed value, or raises
`ConfigValidationError` naming the flag, the value and the violated bound.
Validators are pure: they neither log nor touch process state.
"""

from __future__ import annotations

import re

from uxlaunch.common.errors import ConfigValidationError
from uxlaunch.common.settings import settings
from uxlaunch.common.types import FlipAxis, RotateAxis

__all__ = [
    "displayGeometry_parse",
    "boundedCount_parse",
    "portGroup_parse",
    "orientation_parse",
    "flip_parse",
    "rotate_parse",
    "selector_parse",
]

_DECIMAL_PATTERN: re.Pattern[str] = re.compile(r"[0-9]+")

_ORIENTATIONS: dict[str, FlipAxis | RotateAxis] = {
    "H": FlipAxis.HFLIP,
    "V": FlipAxis.VFLIP,
    "I": FlipAxis.INVERT,
    "L": RotateAxis.LEFT,
    "R": RotateAxis.RIGHT,
}


def unsignedDecimal_parse(text: str, max_digits: int) -> int | None:
    """
    Parse an unsigned decimal with a bounded digit count.

    Signs, whitespace and non-ASCII digits are rejected outright.

    Args:
        text: Raw token.
        max_digits: Largest accepted number of digits.

    Returns:
        Parsed integer, or `None` when the token is malformed.
    """
    if not 0 < len(text) <= max_digits:
        return None
    if _DECIMAL_PATTERN.fullmatch(text) is None:
        return None
    return int(text)


def displayGeometry_parse(
    value: str, refresh_default: int = 0, flag: str = "-s"
) -> tuple[int, int, int]:
    """
    Parse display geometry of the form `WxH` or `WxH@R`.

    Args:
        value: Raw geometry token.
        refresh_default: Refresh rate returned when `@R` is absent.
        flag: Option name used in diagnostics.

    Returns:
        Tuple of `(width, height, refresh_rate)`.

    Raises:
        ConfigValidationError: If any segment is malformed, zero or too long.
    """
    reason: str = (
        f"{flag} wxh : max w,h={10 ** settings.MAX_GEOMETRY_DIGITS - 1}; "
        f"{flag} wxh@r : max r={settings.MAX_REFRESH_RATE}"
    )
    width_text, separator, remainder = value.partition("x")
    if not separator:
        raise ConfigValidationError(flag, value, reason)
    height_text, at_sign, refresh_text = remainder.partition("@")

    width: int | None = unsignedDecimal_parse(width_text, settings.MAX_GEOMETRY_DIGITS)
    height: int | None = unsignedDecimal_parse(height_text, settings.MAX_GEOMETRY_DIGITS)
    if not width or not height:
        raise ConfigValidationError(flag, value, reason)

    refresh: int | None = refresh_default
    if at_sign:
        refresh = unsignedDecimal_parse(refresh_text, settings.MAX_REFRESH_DIGITS)
        if not refresh or refresh > settings.MAX_REFRESH_RATE:
            raise ConfigValidationError(flag, value, reason)
    return width, height, refresh


def boundedCount_parse(value: str, ceiling: int, flag: str = "-fps") -> int:
    """
    Parse a positive count, optionally bounded above.

    Args:
        value: Raw count token.
        ceiling: Largest accepted value; 0 means unbounded.
        flag: Option name used in diagnostics.

    Returns:
        Parsed count.

    Raises:
        ConfigValidationError: If the token is malformed, zero or above ceiling.
    """
    count: int | None = unsignedDecimal_parse(value, settings.MAX_COUNT_DIGITS)
    if not count or (ceiling > 0 and count > ceiling):
        if ceiling > 0:
            reason = f"{flag} n : must be a positive integer, max n={ceiling}"
        else:
            reason = f"{flag} n : must be a positive integer"
        raise ConfigValidationError(flag, value, reason)
    return count


def portGroup_parse(
    value: str, count: int = settings.PORT_GROUP_SIZE, flag: str = "-p"
) -> tuple[int, ...]:
    """
    Parse up to `count` comma-separated ports into a full port group.

    Missing trailing ports are assigned consecutively after the last given
    port. Every port must lie in the allowed range and the completed group
    must not contain duplicates.

    Args:
        value: Raw comma-separated token (`n1[,n2[,n3]]`).
        count: Size of the port group.
        flag: Option name used in diagnostics.

    Returns:
        Tuple of exactly `count` distinct ports.

    Raises:
        ConfigValidationError: If the group is malformed, out of range,
            overflows the highest port, or repeats a port.
    """
    reason: str = (
        f"all {count} ports must be distinct and in range "
        f"[{settings.LOWEST_ALLOWED_PORT},{settings.HIGHEST_PORT}]"
    )
    tokens: list[str] = value.split(",")
    if len(tokens) > count:
        raise ConfigValidationError(flag, value, reason)

    ports: list[int] = []
    for token in tokens:
        port: int | None = unsignedDecimal_parse(token, settings.MAX_PORT_DIGITS)
        if port is None or not settings.LOWEST_ALLOWED_PORT <= port <= settings.HIGHEST_PORT:
            raise ConfigValidationError(flag, value, reason)
        ports.append(port)

    missing: int = count - len(ports)
    last: int = ports[-1]
    if last + missing > settings.HIGHEST_PORT:
        raise ConfigValidationError(flag, value, reason)
    ports.extend(range(last + 1, last + 1 + missing))

    if len(set(ports)) != count:
        raise ConfigValidationError(flag, value, reason)
    return tuple(ports)


def orientation_parse(token: str, flag: str = "-f") -> FlipAxis | RotateAxis:
    """
    Parse a single-character orientation selector.

    Args:
        token: One of `H`, `V`, `I` (flip) or `L`, `R` (rotate).
        flag: Option name used in diagnostics.

    Returns:
        Matching flip or rotate selector.

    Raises:
        ConfigValidationError: If the token is unknown or longer than one character.
    """
    orientation: FlipAxis | RotateAxis | None = _ORIENTATIONS.get(token) if len(token) == 1 else None
    if orientation is None:
        raise ConfigValidationError(flag, token, "choices are H, V, I, L, R")
    return orientation


def flip_parse(token: str, flag: str = "-f") -> FlipAxis:
    """Parse a `-f` token, accepting only flip selectors."""
    reason: str = "unknown flip type, choices are H, V, I"
    try:
        orientation = orientation_parse(token, flag)
    except ConfigValidationError:
        raise ConfigValidationError(flag, token, reason) from None
    if not isinstance(orientation, FlipAxis):
        raise ConfigValidationError(flag, token, reason)
    return orientation


def rotate_parse(token: str, flag: str = "-r") -> RotateAxis:
    """Parse a `-r` token, accepting only rotate selectors."""
    reason: str = "unknown rotation type, choices are R, L"
    try:
        orientation = orientation_parse(token, flag)
    except ConfigValidationError:
        raise ConfigValidationError(flag, token, reason) from None
    if not isinstance(orientation, RotateAxis):
        raise ConfigValidationError(flag, token, reason)
    return orientation


def selector_parse(value: str, flag: str) -> str:
    """
    Validate a free-form selector (service name, sink name).

    Raises:
        ConfigValidationError: If the selector is empty or blank.
    """
    if not value or not value.strip():
        raise ConfigValidationError(flag, value, "a non-empty value is required")
    return value
