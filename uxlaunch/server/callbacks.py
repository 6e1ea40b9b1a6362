"""
Engine callback bridge.

The protocol engine reports session activity, media frames and log output
through one `EngineCallbacks` implementation. The bridge updates the
controller's `RuntimeState` and routes media to the renderers of the current
serve cycle. It holds only a weak reference to the state: the lifecycle
controller owns it.
"""

from __future__ import annotations

import logging
import weakref

from uxlaunch.common.types import AudioFrame, VideoFrame, audioFormat_name
from uxlaunch.server.state import RuntimeState

__all__ = ["ServiceCallbackBridge"]

logger = logging.getLogger(__name__)


class ServiceCallbackBridge:
    """`EngineCallbacks` implementation bound to one runtime state."""

    def __init__(self, runtime_state: RuntimeState) -> None:
        """
        Initialize bridge.

        Args:
            runtime_state: Controller-owned runtime state.
        """
        self._state_ref: weakref.ReferenceType[RuntimeState] = weakref.ref(runtime_state)

    def _state(self) -> RuntimeState | None:
        return self._state_ref()

    def _handles(self):
        state: RuntimeState | None = self._state()
        return state.handles if state is not None else None

    def connection_open(self) -> None:
        state: RuntimeState | None = self._state()
        if state is None:
            return
        count: int = state.connection_open()
        logger.info("Open connections: %s", count)
        handles = state.handles
        if handles is not None and handles.video_renderer is not None:
            handles.video_renderer.background_update(1)

    def connection_close(self) -> None:
        state: RuntimeState | None = self._state()
        if state is None:
            return
        handles = state.handles
        if handles is not None and handles.video_renderer is not None:
            handles.video_renderer.background_update(-1)
        count: int = state.connection_close()
        logger.info("Open connections: %s", count)

    def audioFrame_process(self, frame: AudioFrame) -> None:
        handles = self._handles()
        if handles is not None and handles.audio_renderer is not None:
            handles.audio_renderer.frame_render(frame)

    def videoFrame_process(self, frame: VideoFrame) -> None:
        handles = self._handles()
        if handles is not None and handles.video_renderer is not None:
            handles.video_renderer.frame_render(frame)

    def audio_flush(self) -> None:
        handles = self._handles()
        if handles is not None and handles.audio_renderer is not None:
            handles.audio_renderer.flush()

    def video_flush(self) -> None:
        handles = self._handles()
        if handles is not None and handles.video_renderer is not None:
            handles.video_renderer.flush()

    def volume_set(self, level: float) -> None:
        handles = self._handles()
        if handles is not None and handles.audio_renderer is not None:
            handles.audio_renderer.volume_set(level)

    def audioFormat_announce(self, format_code: int) -> None:
        """Log the codec of a new audio connection; never affects control flow."""
        logger.info(
            "New audio connection with audio format 0x%X %s",
            format_code,
            audioFormat_name(format_code),
        )

    def logMessage_emit(self, level: int, text: str) -> None:
        handles = self._handles()
        if handles is not None and handles.log_sink is not None:
            handles.log_sink.message_emit(level, text)
