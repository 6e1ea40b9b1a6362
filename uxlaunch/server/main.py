"""uxlaunch server main entry point"""

import argparse
import logging

from uxlaunch.common.config import Config
from uxlaunch.common.types import DeviceIdentifier
from uxlaunch.server.bootstrap import (
    collaboratorsWithConfig_create,
    configWithOverrides_load,
    deviceIdentifier_provision,
    loggingWithConfig_setup,
    startupSummary_log,
)
from uxlaunch.server.lifecycle import LifecycleController
from uxlaunch.server.orchestrator import ServiceOrchestrator
from uxlaunch.server.server_logging import logging_setup

logger = logging.getLogger(__name__)


def server_run(args: argparse.Namespace) -> int:
    """
    Run the launcher until shutdown

    Args:
        args: Parsed command line arguments

    Returns:
        Process exit code
    """
    config: Config = configWithOverrides_load(args)
    loggingWithConfig_setup(config, logging_setup)
    startupSummary_log(config.server)

    collaborators = collaboratorsWithConfig_create(config)
    identifier: DeviceIdentifier = deviceIdentifier_provision(config.server)

    controller = LifecycleController(
        config=config.server,
        identifier=identifier,
        orchestrator=ServiceOrchestrator(collaborators),
    )
    return controller.run()

