"""Collaborator contracts and factory resolution."""

from uxlaunch.collaborators.backend import (
    AudioRenderer,
    DiscoveryRegistrar,
    EngineCallbacks,
    LogSinkProtocol,
    ProtocolEngine,
    VideoRenderer,
)
from uxlaunch.collaborators.factory import CollaboratorSet, collaboratorSet_create

__all__ = [
    "AudioRenderer",
    "CollaboratorSet",
    "DiscoveryRegistrar",
    "EngineCallbacks",
    "LogSinkProtocol",
    "ProtocolEngine",
    "VideoRenderer",
    "collaboratorSet_create",
]
