"""Server bootstrap helpers for config, logging, identity and collaborator wiring."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import socket
import sys

from uxlaunch import __version__
from uxlaunch.collaborators.factory import CollaboratorSet, collaboratorSet_create
from uxlaunch.common.config import Config, ConfigLoader, ServerConfig
from uxlaunch.common.errors import ConfigValidationError
from uxlaunch.common.types import DeviceIdentifier
from uxlaunch.server.device_id import identifier_provision
from uxlaunch.server.server_cli import serverConfig_build
from uxlaunch.server.server_logging import logLevel_resolve

logger = logging.getLogger(__name__)


def hostname_get() -> str | None:
    """
    Get the host name appended to the service name.

    Returns:
        Host name, or None when it cannot be determined.
    """
    try:
        hostname: str = socket.gethostname()
    except OSError:
        return None
    return hostname or None


def configWithOverrides_load(args: argparse.Namespace) -> Config:
    """
    Load file defaults and apply command-line options.

    Any configuration problem is reported on stderr and ends the process
    with status 1 before a resource is created.

    Args:
        args: Parsed launcher CLI args.

    Returns:
        Loaded config with a fully validated `server` section.
    """
    try:
        config: Config = ConfigLoader.config_load()
        server: ServerConfig = serverConfig_build(args, config.server, hostname_get())
    except ConfigValidationError as e:
        print(e, file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)
    return dataclasses.replace(config, server=server)


def loggingWithConfig_setup(config: Config, logging_setup_func) -> None:
    """
    Setup logging from config and debug flag.

    Args:
        config: Loaded config.
        logging_setup_func: Logging setup callback.
    """
    log_level: str = logLevel_resolve(config.logging.level, config.server.debug_log)
    logging_setup_func(log_level, config.logging.format, config.logging.file)


def collaboratorsWithConfig_create(config: Config) -> CollaboratorSet:
    """
    Resolve collaborator factories, exiting with status 1 when misconfigured.

    Args:
        config: Loaded config.

    Returns:
        Collaborator factory set.
    """
    try:
        return collaboratorSet_create(config.collaborators, config.server)
    except ValueError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def deviceIdentifier_provision(server: ServerConfig) -> DeviceIdentifier:
    """
    Choose the device identifier once for the whole process run.

    Args:
        server: Validated server configuration.

    Returns:
        Device identifier.
    """
    identifier, synthesized = identifier_provision(server.random_identifier)
    if not synthesized:
        logger.info(f"Using host device identifier {identifier}")
    return identifier


def startupSummary_log(server: ServerConfig) -> None:
    """
    Log the effective launch configuration.

    Args:
        server: Validated server configuration.
    """
    logger.info(f"uxlaunch v{__version__}")
    logger.info(f"Service name: {server.name}")
    if server.ports_configured:
        logger.info(
            "Using network ports UDP %s %s %s TCP %s %s %s",
            *server.udp_ports,
            *server.tcp_ports,
        )
    logger.info(f"Video sink: {server.video_sink if server.video_enabled else 'disabled'}")
    logger.info(f"Audio sink: {server.audio_sink if server.audio_enabled else 'disabled'}")
    if server.idle_timeout:
        logger.info(f"Idle relaunch after {server.idle_timeout} seconds without connections")
