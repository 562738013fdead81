"""FastAPI application exposing live caption sessions over HTTP.

WHY: The speech pipeline, the glasses connector and the web dashboard are
separate processes. They need an HTTP API to open a session, push
recognition events, report the connected device, change settings, read
the transcript, and follow updates live.

HOW: A single FastAPI app backed by a module-level SessionRegistry.
Routes are scoped by the user id path parameter (authentication happens
in front of this service). The dashboard feed is a server-sent events
stream fed by a TranscriptClient that hands messages to the event loop
with call_soon_threadsafe, since broadcasts can originate on the
inactivity timer's thread.

RULES:
- Unknown sessions return 404 with the ErrorResponse schema.
- Invalid settings return 400 with the validation message; nothing changes.
- The registry is cleared (all sessions disposed) on shutdown.
- Python 3.9+ compatible (no match/case, no PEP 604 unions).
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse

from live_captions import config
from live_captions.server.models import (
    BreakModeRequest,
    CreateSessionRequest,
    DeviceRequest,
    DisplayFrameResponse,
    DisplayLinesRequest,
    DisplayResponse,
    DisplayWidthRequest,
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    LanguageHintsRequest,
    LanguageRequest,
    SessionResponse,
    SettingsResponse,
    TranscriptEntryResponse,
    TranscriptionRequest,
    TranscriptListResponse,
    UtteranceResponse,
)
from live_captions.session.display import InvalidSettingError, LastFrameSink
from live_captions.session.registry import SessionRegistry
from live_captions.session.transcripts import TranscriptClient, TranscriptionEvent
from live_captions.session.user_session import UserSession

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

# Seconds between keep-alive comments on an idle event stream.
SSE_KEEPALIVE_S = 15.0

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "No active session"}}
_INVALID = {400: {"model": ErrorResponse, "description": "Invalid setting value"}}

# ---------------------------------------------------------------------------
# App and registry setup
# ---------------------------------------------------------------------------

registry = SessionRegistry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Dispose all sessions (and their timers) on shutdown."""
    yield
    registry.clear()


app = FastAPI(
    lifespan=lifespan,
    title="Live Captions API",
    description=(
        "Session API for live captions on smart glasses. Push recognition "
        "events, report the connected device, tune display settings, and "
        "follow the transcript and display preview as a server-sent events feed."
    ),
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_session(user_id: str) -> UserSession:
    session = registry.get(user_id)
    if session is None:
        raise HTTPException(status_code=404, detail="No active session for {}".format(user_id))
    return session


def _settings_response(session: UserSession) -> SettingsResponse:
    stored = session.settings.get_all()
    snapshot = session.display.get_settings_snapshot()
    return SettingsResponse(
        language=stored["language"],
        language_hints=stored["languageHints"],
        display_lines=stored["displayLines"],
        display_width=stored["displayWidth"],
        break_mode=stored["breakMode"],
        profile_id=snapshot["profileId"],
        display_width_px=snapshot["displayWidthPx"],
        effective_lines=snapshot["effectiveLines"],
    )


def _session_response(session: UserSession) -> SessionResponse:
    return SessionResponse(
        user_id=session.user_id,
        profile_id=session.display.profile.id,
        settings=_settings_response(session),
    )


def _apply_setting(
    user_id: str,
    apply: Callable[[UserSession], None],
) -> SettingsResponse:
    session = _get_session(user_id)
    try:
        apply(session)
    except InvalidSettingError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _settings_response(session)


def format_sse(message: Dict[str, Any]) -> str:
    """Encode one message as a server-sent event."""
    return "data: {}\n\n".format(json.dumps(message, ensure_ascii=False))


class QueueClient(TranscriptClient):
    """Hands broadcast messages to an asyncio.Queue on the server's loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
        self._loop = loop
        self._queue = queue

    def send(self, message: Dict[str, Any]) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, message)


async def _stream_messages(session: UserSession, request: Request) -> AsyncIterator[str]:
    queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
    client = QueueClient(asyncio.get_running_loop(), queue)
    session.transcripts.add_client(client)
    try:
        yield format_sse({"type": "connected"})
        while not await request.is_disconnected():
            try:
                message = await asyncio.wait_for(queue.get(), timeout=SSE_KEEPALIVE_S)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(message)
            if message.get("type") == "closed":
                return
    finally:
        session.transcripts.remove_client(client)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@app.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["sessions"],
    summary="Open a caption session",
    description=(
        "Creates (or replaces) the session for a user and applies stored "
        "settings. Pass the connected device model to pick its profile."
    ),
    responses={400: {"model": ErrorResponse, "description": "Invalid request"}},
)
async def create_session(body: CreateSessionRequest) -> SessionResponse:
    try:
        session = registry.create(body.user_id, device_model=body.device_model)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _session_response(session)


@app.get(
    "/sessions/{user_id}",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Get a session",
    responses=_NOT_FOUND,
)
async def get_session(user_id: str) -> SessionResponse:
    return _session_response(_get_session(user_id))


@app.delete(
    "/sessions/{user_id}",
    status_code=204,
    tags=["sessions"],
    summary="Close a session",
    description="Cancels the inactivity timer and disconnects dashboard streams.",
    responses=_NOT_FOUND,
)
async def delete_session(user_id: str) -> None:
    if not registry.remove(user_id):
        raise HTTPException(status_code=404, detail="No active session for {}".format(user_id))


@app.post(
    "/sessions/{user_id}/transcriptions",
    response_model=DisplayFrameResponse,
    tags=["sessions"],
    summary="Ingest one recognition event",
    description=(
        "Records the event in the dashboard transcript, broadcasts it, and "
        "formats it for the glasses. Returns the resulting display frame."
    ),
    responses=_NOT_FOUND,
)
async def ingest_transcription(user_id: str, body: TranscriptionRequest) -> DisplayFrameResponse:
    session = _get_session(user_id)
    result = session.handle_transcription(
        TranscriptionEvent(
            text=body.text,
            is_final=body.is_final,
            speaker_id=body.speaker_id,
            speaker_changed=body.speaker_changed,
            utterance_id=body.utterance_id,
        )
    )
    return DisplayFrameResponse(
        text=result.display_text,
        lines=result.lines,
        truncated=result.truncated,
    )


@app.post(
    "/sessions/{user_id}/device",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Report the connected device model",
    description="Switches the device profile when the model maps to a different one.",
    responses=_NOT_FOUND,
)
async def report_device(user_id: str, body: DeviceRequest) -> SessionResponse:
    session = _get_session(user_id)
    session.on_device_model_changed(body.model)
    return _session_response(session)


@app.get(
    "/sessions/{user_id}/display",
    response_model=DisplayResponse,
    tags=["sessions"],
    summary="Last frame shown on the glasses",
    responses=_NOT_FOUND,
)
async def get_display(user_id: str) -> DisplayResponse:
    session = _get_session(user_id)
    sink = session.display_sink
    if not isinstance(sink, LastFrameSink):
        raise HTTPException(
            status_code=404, detail="Session {} does not record frames".format(user_id)
        )
    return DisplayResponse(
        text=sink.text,
        lines=sink.text.split("\n"),
        duration_ms=sink.duration_ms,
        frame_count=sink.frame_count,
    )


# ---------------------------------------------------------------------------
# Transcripts
# ---------------------------------------------------------------------------


@app.get(
    "/sessions/{user_id}/transcripts",
    response_model=TranscriptListResponse,
    tags=["transcripts"],
    summary="Dashboard transcript list",
    responses=_NOT_FOUND,
)
async def list_transcripts(user_id: str) -> TranscriptListResponse:
    session = _get_session(user_id)
    return TranscriptListResponse(
        transcripts=[
            TranscriptEntryResponse(
                id=entry.id,
                utterance_id=entry.utterance_id,
                speaker=entry.speaker,
                text=entry.text,
                timestamp=entry.timestamp,
                is_final=entry.is_final,
            )
            for entry in session.transcripts.get_all()
        ]
    )


@app.get(
    "/sessions/{user_id}/history",
    response_model=HistoryResponse,
    tags=["transcripts"],
    summary="Finalized caption history",
    description="The utterances the display is built from, and their combined text.",
    responses=_NOT_FOUND,
)
async def get_history(user_id: str) -> HistoryResponse:
    session = _get_session(user_id)
    return HistoryResponse(
        utterances=[
            UtteranceResponse(
                text=u.text,
                speaker_id=u.speaker_id,
                had_speaker_change=u.had_speaker_change,
            )
            for u in session.display.get_final_transcript_history()
        ],
        combined=session.display.get_combined_transcript_history(),
    )


@app.get(
    "/sessions/{user_id}/transcripts/stream",
    tags=["transcripts"],
    summary="Live transcript and display preview feed",
    description=(
        "Server-sent events. Message types: connected, interim, final, "
        "display_preview, settings_update."
    ),
    responses=_NOT_FOUND,
)
async def stream_transcripts(user_id: str, request: Request) -> StreamingResponse:
    session = _get_session(user_id)
    return StreamingResponse(
        _stream_messages(session, request),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@app.get(
    "/sessions/{user_id}/settings",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Current settings",
    responses=_NOT_FOUND,
)
async def get_settings(user_id: str) -> SettingsResponse:
    return _settings_response(_get_session(user_id))


@app.post(
    "/sessions/{user_id}/settings/display-lines",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Set the number of display lines",
    responses={**_NOT_FOUND, **_INVALID},
)
async def set_display_lines(user_id: str, body: DisplayLinesRequest) -> SettingsResponse:
    return _apply_setting(user_id, lambda s: s.settings.set_display_lines(body.lines))


@app.post(
    "/sessions/{user_id}/settings/display-width",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Set the display width",
    responses={**_NOT_FOUND, **_INVALID},
)
async def set_display_width(user_id: str, body: DisplayWidthRequest) -> SettingsResponse:
    return _apply_setting(user_id, lambda s: s.settings.set_display_width(body.width))


@app.post(
    "/sessions/{user_id}/settings/break-mode",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Set the line break policy",
    responses={**_NOT_FOUND, **_INVALID},
)
async def set_break_mode(user_id: str, body: BreakModeRequest) -> SettingsResponse:
    return _apply_setting(user_id, lambda s: s.settings.set_break_mode(body.mode))


@app.post(
    "/sessions/{user_id}/settings/language",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Set the recognition language",
    responses={**_NOT_FOUND, **_INVALID},
)
async def set_language(user_id: str, body: LanguageRequest) -> SettingsResponse:
    return _apply_setting(user_id, lambda s: s.settings.set_language(body.language))


@app.post(
    "/sessions/{user_id}/settings/language-hints",
    response_model=SettingsResponse,
    tags=["settings"],
    summary="Set recognition language hints",
    responses={**_NOT_FOUND, **_INVALID},
)
async def set_language_hints(user_id: str, body: LanguageHintsRequest) -> SettingsResponse:
    return _apply_setting(user_id, lambda s: s.settings.set_language_hints(body.hints))


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=API_VERSION, sessions=len(registry))


def run_api():
    """Entry point for the live-captions-api console script."""
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(app, host=config.HOST, port=config.PORT)
