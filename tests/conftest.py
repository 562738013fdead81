"""Shared test fixtures for the caption engine and session service.

WHY: Pixel arithmetic against the real glasses font is hard to follow in
assertions. Most engine tests use a monospace profile where every glyph,
space and hyphen is 10px, so "10 characters per 100px" holds exactly.
Session tests need a timer they can fire on demand instead of waiting out
a real inactivity timeout.

HOW: mono_profile builds a DeviceProfile with an empty glyph table and a
10px default width. FakeTimer mimics threading.Timer's constructor and
start/cancel API; the timers fixture collects every instance created.

RULES:
- Fixtures never start real threads.
- FakeTimer.fire() calls the callback exactly as threading.Timer would.
"""

from typing import Any, Callable, List, Optional
from unittest.mock import MagicMock

import pytest

from display_captions import DeviceProfile, DisplayWidth, GlyphMetrics, LineWrapper
from live_captions.session.display import DisplayManager


@pytest.fixture
def mono_profile():
    """10px per glyph, 200px wide, 5 lines."""
    return DeviceProfile(
        id="mono-test",
        name="Monospace Test Display",
        display_width_px=200,
        max_lines=5,
        glyph_widths={},
        default_glyph_width=10,
        width_percentages={
            DisplayWidth.NARROW: 0.5,
            DisplayWidth.MEDIUM: 0.75,
            DisplayWidth.WIDE: 1.0,
        },
        model_keywords=("mono",),
    )


@pytest.fixture
def mono_metrics(mono_profile):
    return GlyphMetrics(mono_profile)


@pytest.fixture
def wrapper(mono_metrics):
    return LineWrapper(mono_metrics)


class FakeTimer:
    """Stand-in for threading.Timer that only runs when fire() is called."""

    def __init__(
        self,
        interval: float,
        function: Callable[..., Any],
        args: Optional[tuple] = None,
    ) -> None:
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args)


@pytest.fixture
def timers():
    """List of every FakeTimer created through timer_factory."""
    return []  # type: List[FakeTimer]


@pytest.fixture
def timer_factory(timers):
    def factory(interval, function, args=None):
        timer = FakeTimer(interval, function, args)
        timers.append(timer)
        return timer

    return factory


@pytest.fixture
def display_sink():
    return MagicMock()


@pytest.fixture
def preview_sink():
    return MagicMock()


@pytest.fixture
def display_manager(display_sink, preview_sink, timer_factory):
    """DisplayManager on the G1 baseline profile with mock sinks."""
    manager = DisplayManager(
        display_sink,
        preview_sink=preview_sink,
        inactivity_timeout_s=40.0,
        final_display_duration_ms=20000,
        timer_factory=timer_factory,
    )
    yield manager
    manager.dispose()
