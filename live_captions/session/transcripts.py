"""Dashboard transcript list and message fan-out for one session.

WHY: The web dashboard shows a scrolling transcript alongside a mirror of
the glasses display. It needs every recognition event as a list entry
(updated in place while the utterance is still interim), plus preview and
settings messages, pushed to however many browser tabs are connected.

HOW: TranscriptsManager keeps a bounded list of TranscriptEntry objects.
Events carrying an utterance id replace the entry with that id or append.
Events without one fall back to "replace the open interim". Messages are
JSON-ready dicts sent to every registered TranscriptClient.

RULES:
- At most max_transcripts entries. Trimming drops the oldest finals and
  keeps every interim.
- A client whose send() raises is logged and skipped; the others still
  receive the message.
- get_all() returns a copy.
- dispose() sends {"type": "closed"} to every client before dropping them,
  so open streams can end.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from live_captions import config
from live_captions.session.display import PreviewSink

logger = logging.getLogger(__name__)

DEFAULT_SPEAKER = "Speaker 1"


@dataclass(frozen=True)
class TranscriptionEvent:
    """One recognition event from the speech service."""

    text: Optional[str]
    is_final: bool
    speaker_id: Optional[str] = None
    speaker_changed: bool = False
    utterance_id: Optional[str] = None


@dataclass(frozen=True)
class TranscriptEntry:
    """One row of the dashboard transcript list."""

    id: str
    utterance_id: Optional[str]
    speaker: str
    text: str
    timestamp: Optional[str]
    is_final: bool
    received_at: int

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": "final" if self.is_final else "interim",
            "id": self.id,
            "utteranceId": self.utterance_id,
            "speaker": self.speaker,
            "text": self.text,
            "timestamp": self.timestamp,
        }


class TranscriptClient(ABC):
    """A connected dashboard (one SSE stream)."""

    @abstractmethod
    def send(self, message: Dict[str, Any]) -> None:
        ...


def format_speaker(speaker_id: Optional[str]) -> str:
    """Format "1" as "Speaker 1"; missing ids map to the default speaker."""
    if not speaker_id:
        return DEFAULT_SPEAKER
    return "Speaker {}".format(speaker_id)


def format_timestamp(moment: datetime) -> str:
    """12-hour clock, e.g. "9:05 AM"."""
    hours = moment.hour % 12 or 12
    suffix = "PM" if moment.hour >= 12 else "AM"
    return "{}:{:02d} {}".format(hours, moment.minute, suffix)


class TranscriptsManager(PreviewSink):
    """Bounded transcript list plus broadcast to dashboard clients."""

    def __init__(self, max_transcripts: int = config.MAX_TRANSCRIPTS) -> None:
        if max_transcripts < 1:
            raise ValueError(
                "max_transcripts must be at least 1, got {}".format(max_transcripts)
            )
        self._max_transcripts = max_transcripts
        self._transcripts: List[TranscriptEntry] = []
        self._clients: Set[TranscriptClient] = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Transcript list
    # ------------------------------------------------------------------

    def record(self, event: TranscriptionEvent) -> TranscriptEntry:
        """Add or update the entry for event and return it (not broadcast)."""
        entry = self._create_entry(event)
        with self._lock:
            if event.utterance_id:
                self._update_by_utterance_id(entry)
            elif event.is_final:
                self._replace_interim(entry)
            else:
                self._update_interim(entry)
        return entry

    def _create_entry(self, event: TranscriptionEvent) -> TranscriptEntry:
        return TranscriptEntry(
            id=event.utterance_id or str(uuid.uuid4()),
            utterance_id=event.utterance_id or None,
            speaker=format_speaker(event.speaker_id),
            text=event.text or "",
            timestamp=format_timestamp(datetime.now()) if event.is_final else None,
            is_final=event.is_final,
            received_at=int(time.time() * 1000),
        )

    def _update_by_utterance_id(self, entry: TranscriptEntry) -> None:
        for index, existing in enumerate(self._transcripts):
            if existing.utterance_id == entry.utterance_id:
                self._transcripts[index] = entry
                logger.debug(
                    "Updated transcript for utterance %s (final=%s)",
                    entry.utterance_id, entry.is_final,
                )
                break
        else:
            self._transcripts.append(entry)
            logger.debug(
                "Added transcript for utterance %s (final=%s)",
                entry.utterance_id, entry.is_final,
            )

        if len(self._transcripts) > self._max_transcripts:
            finals = [t for t in self._transcripts if t.is_final]
            interims = [t for t in self._transcripts if not t.is_final]
            keep = max(0, self._max_transcripts - len(interims))
            self._transcripts = (finals[-keep:] if keep else []) + interims

    def _update_interim(self, entry: TranscriptEntry) -> None:
        self._transcripts = [t for t in self._transcripts if t.is_final]
        self._transcripts.append(entry)

    def _replace_interim(self, entry: TranscriptEntry) -> None:
        self._transcripts = [t for t in self._transcripts if t.is_final]
        self._transcripts.append(entry)
        if len(self._transcripts) > self._max_transcripts:
            self._transcripts = self._transcripts[-self._max_transcripts:]

    def get_all(self) -> List[TranscriptEntry]:
        with self._lock:
            return list(self._transcripts)

    @property
    def max_transcripts(self) -> int:
        return self._max_transcripts

    # ------------------------------------------------------------------
    # Clients and broadcast
    # ------------------------------------------------------------------

    def add_client(self, client: TranscriptClient) -> None:
        with self._lock:
            self._clients.add(client)
            count = len(self._clients)
        logger.info("Dashboard client connected, %d total", count)

    def remove_client(self, client: TranscriptClient) -> None:
        with self._lock:
            self._clients.discard(client)
            count = len(self._clients)
        logger.info("Dashboard client disconnected, %d remaining", count)

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def _send_all(self, message: Dict[str, Any]) -> None:
        with self._lock:
            clients = list(self._clients)
        for client in clients:
            try:
                client.send(message)
            except Exception:
                logger.warning(
                    "Failed to send %s message to dashboard client",
                    message.get("type"),
                    exc_info=True,
                )

    def broadcast(self, entry: TranscriptEntry) -> None:
        message = entry.to_message()
        logger.debug(
            "Broadcasting %s transcript to %d clients: %r",
            message["type"], self.client_count, entry.text[:50],
        )
        self._send_all(message)

    def preview(self, text: str, lines: List[str], is_final: bool) -> None:
        self.broadcast_display_preview(text, lines, is_final)

    def broadcast_display_preview(self, text: str, lines: List[str], is_final: bool) -> None:
        self._send_all(
            {
                "type": "display_preview",
                "text": text,
                "lines": list(lines),
                "isFinal": is_final,
                "timestamp": int(time.time() * 1000),
            }
        )

    def broadcast_settings_update(self, settings: Dict[str, Any]) -> None:
        logger.info("Broadcasting settings update to %d clients", self.client_count)
        self._send_all({"type": "settings_update", "settings": dict(settings)})

    def dispose(self) -> None:
        """Tell every connected dashboard the session is gone, then drop them."""
        self._send_all({"type": "closed"})
        with self._lock:
            self._clients.clear()
