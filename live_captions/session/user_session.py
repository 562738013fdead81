"""One connected user: transcript list, settings and glasses display.

WHY: Every recognition event has to reach both the dashboard transcript
list and the glasses display, and settings changes have to reach the
display. UserSession is the object that owns the three managers and routes
events between them.

HOW: Builds a TranscriptsManager (which doubles as the display's preview
sink), a DisplayManager and a SettingsManager, in that order.
handle_transcription() records and broadcasts the dashboard entry, then
formats the event for the glasses.

RULES:
- Call initialize() once after construction to apply stored settings.
- dispose() cancels the inactivity timer and closes dashboard streams.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from display_captions import FormatResult
from live_captions import config
from live_captions.session.display import DisplayManager, DisplaySink, LastFrameSink
from live_captions.session.settings import SettingsManager, SettingsStore
from live_captions.session.transcripts import TranscriptionEvent, TranscriptsManager

logger = logging.getLogger(__name__)


class UserSession:
    def __init__(
        self,
        user_id: str,
        display_sink: Optional[DisplaySink] = None,
        settings_store: Optional[SettingsStore] = None,
        timer_factory: Callable[..., Any] = threading.Timer,
        inactivity_timeout_s: Optional[float] = config.INACTIVITY_TIMEOUT_S,
    ) -> None:
        self.user_id = user_id
        self.display_sink = display_sink if display_sink is not None else LastFrameSink()
        self.transcripts = TranscriptsManager(max_transcripts=config.MAX_TRANSCRIPTS)
        self.display = DisplayManager(
            self.display_sink,
            preview_sink=self.transcripts,
            history_capacity=config.HISTORY_CAPACITY,
            inactivity_timeout_s=inactivity_timeout_s,
            final_display_duration_ms=config.FINAL_DISPLAY_DURATION_MS,
            timer_factory=timer_factory,
        )
        self.settings = SettingsManager(self.display, self.transcripts, settings_store)

    def initialize(self, device_model: Optional[str] = None) -> None:
        self.settings.initialize()
        if device_model:
            self.display.set_device_model(device_model)
        logger.info(
            "UserSession %s initialized with language %s on profile %s",
            self.user_id,
            self.settings.get_language(),
            self.display.profile.id,
        )

    def handle_transcription(self, event: TranscriptionEvent) -> FormatResult:
        """Route one recognition event to the dashboard and the glasses."""
        logger.debug(
            "Received transcription for %s: %r (final=%s, utterance=%s, speaker=%s)",
            self.user_id,
            (event.text or "")[:50],
            event.is_final,
            event.utterance_id,
            event.speaker_id,
        )
        entry = self.transcripts.record(event)
        self.transcripts.broadcast(entry)
        return self.display.process_and_display(
            event.text,
            event.is_final,
            event.speaker_id,
            event.speaker_changed,
        )

    def on_device_model_changed(self, model_name: Optional[str]) -> bool:
        return self.display.set_device_model(model_name)

    def dispose(self) -> None:
        self.display.dispose()
        self.transcripts.dispose()
        logger.info("UserSession %s disposed", self.user_id)
