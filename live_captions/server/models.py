"""Pydantic request/response models for the caption session API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization and the OpenAPI docs at /docs.

HOW: One model per request body and per response shape. Recognition
events accept both camelCase (as the speech service sends them) and
snake_case field names.

RULES:
- All fields carry Field(description=...) for OpenAPI documentation.
- Range checks for settings live in the session layer, not here, so the
  HTTP API and direct callers share one set of error messages.
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing).
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    user_id: str = Field(
        validation_alias=AliasChoices("userId", "user_id"),
        description="Identifier of the authenticated user.",
    )
    device_model: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("deviceModel", "device_model"),
        description="Connected glasses model name, e.g. 'Vuzix Z100'.",
    )


class TranscriptionRequest(BaseModel):
    """One recognition event from the speech service."""

    text: Optional[str] = Field(
        default=None, description="Recognized text for this event; null is treated as empty."
    )
    is_final: bool = Field(
        default=False,
        validation_alias=AliasChoices("isFinal", "is_final"),
        description="True once the recognizer has committed this utterance.",
    )
    speaker_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("speakerId", "speaker_id"),
        description="Diarization speaker id, e.g. '1'.",
    )
    speaker_changed: bool = Field(
        default=False,
        validation_alias=AliasChoices("speakerChanged", "speaker_changed"),
        description="True when the recognizer flags a new speaker turn.",
    )
    utterance_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("utteranceId", "utterance_id"),
        description="Stable id shared by the interim and final events of one utterance.",
    )


class DeviceRequest(BaseModel):
    model: Optional[str] = Field(
        default=None, description="Glasses model name reported by the device."
    )


class DisplayLinesRequest(BaseModel):
    lines: int = Field(description="Number of display lines, 2 to 5.")


class DisplayWidthRequest(BaseModel):
    width: Union[int, str] = Field(
        description="0/1/2 or 'narrow'/'medium'/'wide'.",
    )


class BreakModeRequest(BaseModel):
    mode: str = Field(description="One of 'character', 'word', 'strict-word'.")


class LanguageRequest(BaseModel):
    language: str = Field(description="Recognition language, or 'auto'.")


class LanguageHintsRequest(BaseModel):
    hints: List[str] = Field(description="Language codes to bias recognition toward.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SettingsResponse(BaseModel):
    """Stored settings plus the values the display actually uses."""

    language: str = Field(description="Recognition language, or 'auto'.")
    language_hints: List[str] = Field(description="Language hint codes.")
    display_lines: int = Field(description="Requested display lines (2 to 5).")
    display_width: int = Field(description="0 = Narrow, 1 = Medium, 2 = Wide.")
    break_mode: str = Field(description="Line break policy.")
    profile_id: str = Field(description="Active device profile id.")
    display_width_px: int = Field(description="Line width in pixels for the active profile.")
    effective_lines: int = Field(
        description="Display lines after clamping to the profile's maximum."
    )


class SessionResponse(BaseModel):
    user_id: str = Field(description="Identifier of the session's user.")
    profile_id: str = Field(description="Active device profile id.")
    settings: SettingsResponse = Field(description="Current settings.")


class DisplayFrameResponse(BaseModel):
    """The frame produced by one processed event."""

    text: str = Field(description="Formatted display text (lines joined by newlines).")
    lines: List[str] = Field(description="Display lines, at most the effective line count.")
    truncated: bool = Field(description="True if older lines were dropped to fit.")


class DisplayResponse(BaseModel):
    """The last frame sent to the glasses."""

    text: str = Field(description="Cleaned text last shown on the device.")
    lines: List[str] = Field(description="The same text split into lines.")
    duration_ms: Optional[int] = Field(
        default=None, description="Display duration; null means until replaced."
    )
    frame_count: int = Field(description="Frames shown since the session started.")


class TranscriptEntryResponse(BaseModel):
    id: str = Field(description="Entry id (utterance id when provided).")
    utterance_id: Optional[str] = Field(default=None, description="Utterance id, if any.")
    speaker: str = Field(description="Speaker display name, e.g. 'Speaker 1'.")
    text: str = Field(description="Transcript text.")
    timestamp: Optional[str] = Field(
        default=None, description="Wall-clock time for finals, e.g. '9:05 AM'."
    )
    is_final: bool = Field(description="Whether the entry is finalized.")


class TranscriptListResponse(BaseModel):
    transcripts: List[TranscriptEntryResponse] = Field(
        description="Dashboard transcript list, oldest first."
    )


class UtteranceResponse(BaseModel):
    text: str = Field(description="Finalized utterance text.")
    speaker_id: Optional[str] = Field(default=None, description="Speaker id, if any.")
    had_speaker_change: bool = Field(description="Whether this utterance opened a turn.")


class HistoryResponse(BaseModel):
    utterances: List[UtteranceResponse] = Field(
        description="Finalized utterances kept for display, oldest first."
    )
    combined: str = Field(description="Utterance texts joined by single spaces.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
    sessions: int = Field(description="Number of active sessions.")
