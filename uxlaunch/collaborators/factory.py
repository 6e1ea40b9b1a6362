"""Collaborator factory resolution."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Optional

from uxlaunch.collaborators.backend import (
    AudioRendererFactory,
    DiscoveryFactory,
    EngineFactory,
    LogSinkFactory,
    VideoRendererFactory,
)
from uxlaunch.common.config import CollaboratorPaths, ServerConfig
from uxlaunch.server.server_logging import LogSink


@dataclass
class CollaboratorSet:
    """
    Factories the orchestrator uses to create one serve cycle's handles.

    Renderer factories are `None` when the matching sink is disabled.
    """

    engine_create: EngineFactory
    logSink_create: LogSinkFactory
    videoRenderer_create: Optional[VideoRendererFactory]
    audioRenderer_create: Optional[AudioRendererFactory]
    discovery_create: DiscoveryFactory


def factory_import(path: str) -> Any:
    """
    Import a factory given as `package.module:attribute`.

    Args:
        path: Import path of the factory callable.

    Returns:
        Resolved callable.

    Raises:
        ValueError: If the path is malformed, unimportable or not callable.
    """
    module_name, separator, attribute = path.partition(":")
    if not separator or not module_name or not attribute:
        raise ValueError(f"Collaborator path '{path}' must look like 'package.module:factory'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import collaborator module '{module_name}': {e}") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise ValueError(f"Module '{module_name}' has no attribute '{attribute}'") from None
    if not callable(target):
        raise ValueError(f"Collaborator '{path}' is not callable")
    return target


def collaboratorSet_create(paths: CollaboratorPaths, server_config: ServerConfig) -> CollaboratorSet:
    """
    Resolve configured collaborator factories.

    Args:
        paths: Import paths from configuration.
        server_config: Validated server configuration (decides which renderers are needed).

    Returns:
        Collaborator factory set.

    Raises:
        ValueError: If a required collaborator is not configured or cannot be imported.
    """
    if not paths.engine:
        raise ValueError("No protocol engine configured (set collaborators.engine)")
    if not paths.discovery:
        raise ValueError("No discovery registrar configured (set collaborators.discovery)")

    video_factory: Optional[VideoRendererFactory] = None
    if server_config.video_enabled:
        if not paths.video_renderer:
            raise ValueError(
                "No video renderer configured (set collaborators.video_renderer or use -vs 0)"
            )
        video_factory = factory_import(paths.video_renderer)

    audio_factory: Optional[AudioRendererFactory] = None
    if server_config.audio_enabled:
        if not paths.audio_renderer:
            raise ValueError(
                "No audio renderer configured (set collaborators.audio_renderer or use -a)"
            )
        audio_factory = factory_import(paths.audio_renderer)

    return CollaboratorSet(
        engine_create=factory_import(paths.engine),
        logSink_create=LogSink,
        videoRenderer_create=video_factory,
        audioRenderer_create=audio_factory,
        discovery_create=factory_import(paths.discovery),
    )
