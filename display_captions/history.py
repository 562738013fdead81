"""Bounded FIFO history of finalized utterances.

WHY: The display only ever needs the recent past, but that past has to
survive reconfiguration and keep its speaker attribution. A fixed-capacity
ring buffer makes the "evict the oldest" invariant explicit.

HOW: Wraps collections.deque with maxlen=capacity, so append() evicts in
O(1). Changing the capacity rebuilds the deque from its newest entries.

RULES:
- len(history) <= capacity at all times.
- Empty (after trimming) utterances are never stored.
- all() returns a copy; mutating it never touches the history.
"""

from collections import deque
from dataclasses import replace
from typing import Deque, Iterator, List

from .models import Utterance

DEFAULT_CAPACITY = 30


class TranscriptHistory:
    """Ordered, bounded collection of Utterance objects."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        _check_capacity(capacity)
        self._entries: Deque[Utterance] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, utterance: Utterance) -> bool:
        """Store an utterance, trimming its text.

        Returns:
            True if it was stored, False if its text was empty.
        """
        text = (utterance.text or "").strip()
        if not text:
            return False
        if text != utterance.text:
            utterance = replace(utterance, text=text)
        self._entries.append(utterance)
        return True

    def all(self) -> List[Utterance]:
        return list(self._entries)

    def set_capacity(self, capacity: int) -> None:
        """Change capacity, dropping the oldest entries if it shrinks."""
        _check_capacity(capacity)
        self._entries = deque(self._entries, maxlen=capacity)

    def combined_text(self) -> str:
        """All utterance texts joined by single spaces, speakers ignored."""
        return " ".join(entry.text for entry in self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Utterance]:
        return iter(list(self._entries))


def _check_capacity(capacity: int) -> None:
    if capacity < 1:
        raise ValueError("History capacity must be at least 1, got {}".format(capacity))
