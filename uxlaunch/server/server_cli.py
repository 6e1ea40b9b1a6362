"""
Server CLI argument parser construction and configuration build.

This module owns the launcher's argument-parser definition and the mapping
from parsed options onto a validated `ServerConfig`, so lifecycle code stays
focused on execution behavior rather than CLI schema setup.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from typing import Any, NoReturn

from uxlaunch.common.config import ServerConfig
from uxlaunch.common.errors import ConfigValidationError
from uxlaunch.common.settings import settings
from uxlaunch.common.validation import (
    boundedCount_parse,
    displayGeometry_parse,
    flip_parse,
    portGroup_parse,
    rotate_parse,
    selector_parse,
)

__all__ = [
    "LauncherArgumentParser",
    "arguments_parse",
    "parser_create",
    "displayArgs_populate",
    "networkArgs_populate",
    "serviceArgs_populate",
    "portOptions_apply",
    "serverConfig_build",
]


class LauncherArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def arguments_parse(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse launcher command-line arguments.

    Args:
        argv: Argument list; defaults to `sys.argv[1:]`.

    Returns:
        Parsed argparse namespace.
    """
    parser: argparse.ArgumentParser = parser_create()
    return parser.parse_args(argv)


def parser_create() -> argparse.ArgumentParser:
    """
    Create fully populated launcher argument parser.

    Returns:
        Configured argument parser.
    """
    parser: argparse.ArgumentParser = LauncherArgumentParser(
        prog="uxlaunch",
        description="Launch and supervise an AirPlay-style mirroring service",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-h",
        "-v",
        action="store_true",
        dest="help",
        help="Display this help and version information",
    )
    displayArgs_populate(parser)
    networkArgs_populate(parser)
    serviceArgs_populate(parser)
    return parser


def displayArgs_populate(parser: argparse.ArgumentParser) -> None:
    """
    Populate display and orientation arguments.

    Args:
        parser: Target argument parser.
    """
    parser.add_argument(
        "-s",
        dest="display",
        metavar="WxH[@R]",
        default=None,
        help="Display resolution [refresh rate], default 1920x1080[@60]",
    )
    parser.add_argument(
        "-o",
        action="store_true",
        dest="overscan",
        help='Set mirror "overscanned" mode on (not usually needed)',
    )
    parser.add_argument(
        "-fps",
        dest="fps",
        metavar="N",
        default=None,
        help=f"Maximum allowed streaming framerate (max {settings.MAX_FPS}), default 30",
    )
    parser.add_argument(
        "-f",
        dest="flip",
        metavar="{H|V|I}",
        default=None,
        help="Horizontal|Vertical flip, or both=Inversion=rotate 180 deg",
    )
    parser.add_argument(
        "-r",
        dest="rotate",
        metavar="{R|L}",
        default=None,
        help="Rotate 90 degrees Right (cw) or Left (ccw)",
    )
    parser.add_argument(
        "-vs",
        dest="video_sink",
        metavar="NAME",
        default=None,
        help=f'Video sink, default "{settings.DEFAULT_VIDEO_SINK}"; "-vs 0" streams audio only',
    )
    parser.add_argument(
        "-as",
        dest="audio_sink",
        metavar="NAME",
        default=None,
        help=f'Audio sink, default "{settings.DEFAULT_AUDIO_SINK}"; "-as 0" turns audio off',
    )
    parser.add_argument(
        "-a",
        action="store_true",
        dest="audio_off",
        help='Turn audio off, video output only (same as "-as 0")',
    )


def networkArgs_populate(parser: argparse.ArgumentParser) -> None:
    """
    Populate network port arguments.

    Args:
        parser: Target argument parser.
    """
    legacy_tcp: str = ":".join(str(port) for port in settings.LEGACY_TCP_PORTS)
    legacy_udp: str = ":".join(str(port) for port in settings.LEGACY_UDP_PORTS)
    parser.add_argument(
        "-p",
        dest="ports",
        nargs="*",
        action="append",
        metavar="[tcp|udp] N[,N2[,N3]]",
        default=None,
        help=(
            f"Without value: legacy ports TCP {legacy_tcp} UDP {legacy_udp}. "
            f"With n: TCP and UDP ports n,n+1,n+2 in range "
            f"{settings.LOWEST_ALLOWED_PORT}-{settings.HIGHEST_PORT}; "
            '"n1,n2" for n3 = n2+1; "-p tcp n" or "-p udp n" sets one group only'
        ),
    )


def serviceArgs_populate(parser: argparse.ArgumentParser) -> None:
    """
    Populate identity, logging and supervision arguments.

    Args:
        parser: Target argument parser.
    """
    parser.add_argument(
        "-n",
        dest="name",
        metavar="NAME",
        default=None,
        help="Network name of the service",
    )
    parser.add_argument(
        "-m",
        action="store_true",
        dest="random_identifier",
        help="Use a random device identifier (for concurrent instances)",
    )
    parser.add_argument(
        "-t",
        dest="idle_timeout",
        metavar="N",
        default=None,
        help="Relaunch the service if no connection existed in the last N seconds",
    )
    parser.add_argument(
        "-d",
        action="count",
        dest="debug_toggles",
        default=0,
        help="Toggle debug logging",
    )


def portOptions_apply(
    port_options: list[list[str]],
    tcp_ports: tuple[int, ...],
    udp_ports: tuple[int, ...],
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """
    Apply `-p` occurrences in command-line order.

    Args:
        port_options:
            Value lists of each `-p` occurrence.
        tcp_ports:
            TCP group before the options apply.
        udp_ports:
            UDP group before the options apply.

    Returns:
        Tuple of resulting `(tcp_ports, udp_ports)`.

    Raises:
        ConfigValidationError: If an occurrence is malformed.
    """
    for values in port_options:
        if not values:
            tcp_ports = settings.LEGACY_TCP_PORTS
            udp_ports = settings.LEGACY_UDP_PORTS
            continue

        selector: str = values[0]
        if selector in ("tcp", "udp"):
            flag: str = f"-p {selector}"
            if len(values) != 2:
                raise ConfigValidationError(flag, " ".join(values[1:]), "expected one port list")
            group = portGroup_parse(values[1], flag=flag)
            if selector == "tcp":
                tcp_ports = group
            else:
                udp_ports = group
            continue

        if len(values) != 1:
            raise ConfigValidationError("-p", " ".join(values), "expected one port list")
        group = portGroup_parse(selector, flag="-p")
        tcp_ports = group
        udp_ports = group
    return tcp_ports, udp_ports


def serverConfig_build(
    args: argparse.Namespace,
    base: ServerConfig,
    hostname: str | None = None,
) -> ServerConfig:
    """
    Build the process configuration from parsed options over file defaults.

    Args:
        args:
            Parsed CLI namespace.
        base:
            Defaults (built-in or from the YAML `server` section).
        hostname:
            Host name appended to the service name as `NAME@host`.

    Returns:
        Validated configuration.

    Raises:
        ConfigValidationError: If any option value is invalid.
    """
    overrides: dict[str, Any] = {}

    name: str = base.name
    if args.name is not None:
        name = selector_parse(args.name, "-n")
    overrides["name"] = f"{name}@{hostname}" if hostname else name

    if args.display is not None:
        width, height, refresh = displayGeometry_parse(
            args.display, refresh_default=base.refresh_rate, flag="-s"
        )
        overrides.update(display_width=width, display_height=height, refresh_rate=refresh)
    if args.fps is not None:
        overrides["max_fps"] = boundedCount_parse(args.fps, settings.MAX_FPS, "-fps")
    if args.overscan:
        overrides["overscanned"] = True
    if args.flip is not None:
        overrides["flip"] = flip_parse(args.flip, "-f")
    if args.rotate is not None:
        overrides["rotate"] = rotate_parse(args.rotate, "-r")

    if args.ports:
        tcp_ports, udp_ports = portOptions_apply(args.ports, base.tcp_ports, base.udp_ports)
        overrides.update(tcp_ports=tcp_ports, udp_ports=udp_ports)

    if args.video_sink is not None:
        overrides["video_sink"] = selector_parse(args.video_sink, "-vs")
    if args.audio_sink is not None:
        overrides["audio_sink"] = selector_parse(args.audio_sink, "-as")
    if args.audio_off:
        overrides["audio_sink"] = settings.SINK_DISABLED

    if args.random_identifier:
        overrides["random_identifier"] = True
    if args.debug_toggles % 2:
        overrides["debug_log"] = not base.debug_log
    if args.idle_timeout is not None:
        overrides["idle_timeout"] = boundedCount_parse(args.idle_timeout, 0, "-t")

    return dataclasses.replace(base, **overrides)
