"""Per-user session objects: display, settings, transcripts and registry."""

from .display import (
    DisplayManager,
    DisplaySettings,
    DisplaySink,
    InvalidSettingError,
    LastFrameSink,
    PreviewSink,
    clean_transcript_text,
)
from .registry import SessionRegistry
from .settings import InMemorySettingsStore, SettingsManager, SettingsStore
from .transcripts import (
    TranscriptClient,
    TranscriptEntry,
    TranscriptionEvent,
    TranscriptsManager,
)
from .user_session import UserSession

__all__ = [
    "DisplayManager",
    "DisplaySettings",
    "DisplaySink",
    "InMemorySettingsStore",
    "InvalidSettingError",
    "LastFrameSink",
    "PreviewSink",
    "SessionRegistry",
    "SettingsManager",
    "SettingsStore",
    "TranscriptClient",
    "TranscriptEntry",
    "TranscriptionEvent",
    "TranscriptsManager",
    "UserSession",
    "clean_transcript_text",
]
