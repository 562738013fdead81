"""Tests for DisplayManager, the per-session display controller.

WHY: DisplayManager is where engine output meets the outside world: it
must pick the right profile, validate and apply settings without losing
history, label speaker turns, clear stale captions after silence, and
keep working when a sink fails.

HOW: Sinks are MagicMocks. The inactivity timer is a FakeTimer (see
conftest) fired explicitly. The manager runs on the G1 baseline profile
with default settings: Medium width (490px), 3 lines, character breaks.
"""

import pytest

from display_captions import BreakMode, DisplayWidth, Utterance
from live_captions.session.display import (
    DisplayManager,
    DisplaySettings,
    InvalidSettingError,
    LastFrameSink,
    clean_transcript_text,
    validate_display_width,
)


class TestCleanTranscriptText:

    @pytest.mark.parametrize("raw, expected", [
        (", hello", "hello"),
        ("...well", "well"),
        ("?!what", "what"),
        ("。你好", "你好"),
        ("，！好", "好"),
        ("[1]: , hello", "[1]: hello"),
        ("[2]: 。ok", "[2]: ok"),
        ("no change", "no change"),
        ("", ""),
    ])
    def test_single_line(self, raw, expected):
        assert clean_transcript_text(raw) == expected

    def test_each_line_cleaned(self):
        assert clean_transcript_text("[1]: hi\n, there\n[2]: ;yo") == "[1]: hi\nthere\n[2]: yo"

    def test_inner_punctuation_untouched(self):
        assert clean_transcript_text("Hello, world. Bye!") == "Hello, world. Bye!"


class TestEmission:

    def test_final_shown_with_duration(self, display_manager, display_sink, preview_sink):
        display_manager.process_and_display("Hello world", True, "1")
        display_sink.show.assert_called_once_with("[1]: Hello world", 20000)
        preview_sink.preview.assert_called_once_with(
            "[1]: Hello world", ["[1]: Hello world"], True
        )

    def test_partial_shown_indefinitely(self, display_manager, display_sink, preview_sink):
        display_manager.process_and_display("Hel", False)
        display_sink.show.assert_called_once_with("Hel", None)
        preview_sink.preview.assert_called_once_with("Hel", ["Hel"], False)

    def test_emitted_text_is_cleaned(self, display_manager, display_sink):
        display_manager.process_and_display(", hello", True, "1")
        display_sink.show.assert_called_once_with("[1]: hello", 20000)

    def test_returns_format_result(self, display_manager):
        result = display_manager.process_and_display("Hi", True)
        assert result.lines == ["Hi"]

    def test_display_sink_failure_is_contained(self, display_manager, display_sink, preview_sink):
        display_sink.show.side_effect = RuntimeError("connection closed")
        display_manager.process_and_display("still here", True)
        assert display_manager.get_combined_transcript_history() == "still here"
        preview_sink.preview.assert_called_once()

    def test_preview_sink_failure_is_contained(self, display_manager, preview_sink):
        preview_sink.preview.side_effect = RuntimeError("dashboard gone")
        display_manager.process_and_display("still here", True)
        assert display_manager.get_combined_transcript_history() == "still here"

    def test_without_preview_sink(self, timer_factory):
        sink = LastFrameSink()
        manager = DisplayManager(sink, timer_factory=timer_factory)
        manager.process_and_display("solo", True)
        assert sink.text == "solo"
        assert sink.duration_ms == 20000
        assert sink.frame_count == 1


class TestSpeakerTurns:

    def test_first_speaker_is_a_turn(self, display_manager):
        display_manager.process_and_display("hi", True, "1")
        assert display_manager.get_final_transcript_history() == [Utterance("hi", "1", True)]
        assert display_manager.last_speaker_id == "1"

    def test_new_speaker_starts_labeled_line(self, display_manager):
        display_manager.process_and_display("Hello world", True, "1")
        result = display_manager.process_and_display("Hi there", True, "2")
        assert result.lines == ["[1]: Hello world", "[2]: Hi there"]

    def test_same_speaker_finals_share_a_label(self, display_manager):
        display_manager.process_and_display("one", True, "1")
        result = display_manager.process_and_display("two", True, "1")
        assert result.display_text == "[1]: one two"

    def test_explicit_flag_forces_turn(self, display_manager):
        display_manager.process_and_display("one", True, "1")
        display_manager.process_and_display("two", True, "1", speaker_changed=True)
        assert display_manager.get_final_transcript_history()[-1].had_speaker_change

    def test_empty_speaker_id_is_ignored(self, display_manager):
        result = display_manager.process_and_display("plain", True, "")
        assert result.display_text == "plain"
        assert display_manager.last_speaker_id is None


class TestSettings:

    def test_defaults(self, display_manager):
        assert display_manager.settings == DisplaySettings(
            DisplayWidth.MEDIUM, 3, BreakMode.CHARACTER
        )
        assert display_manager.display_width_px == 490
        assert display_manager.formatter.max_lines == 3

    def test_update_preserves_history(self, display_manager):
        display_manager.process_and_display("first", True, "1")
        display_manager.process_and_display("second", True, "2")
        before = display_manager.get_final_transcript_history()

        display_manager.update_settings(width=DisplayWidth.NARROW, lines=5, break_mode="word")

        assert display_manager.get_final_transcript_history() == before
        assert display_manager.formatter.display_width_px == 403
        assert display_manager.formatter.max_lines == 5
        assert display_manager.formatter.break_mode is BreakMode.WORD

    def test_update_refreshes_display(self, display_manager, display_sink, preview_sink):
        display_manager.process_and_display("hello", True)
        display_sink.reset_mock()
        preview_sink.reset_mock()

        display_manager.set_display_lines(4)

        display_sink.show.assert_called_once_with("hello", 20000)
        preview_sink.preview.assert_called_once_with("hello", ["hello"], True)

    def test_refresh_with_empty_history_clears_preview(
        self, display_manager, display_sink, preview_sink
    ):
        display_manager.set_display_width("wide")
        display_sink.show.assert_not_called()
        preview_sink.preview.assert_called_once_with("", [""], True)

    @pytest.mark.parametrize("lines", [1, 6, 0, -3])
    def test_invalid_lines_rejected(self, display_manager, lines):
        with pytest.raises(InvalidSettingError, match="between 2 and 5"):
            display_manager.set_display_lines(lines)
        assert display_manager.settings.lines == 3

    def test_invalid_width_rejected(self, display_manager):
        with pytest.raises(InvalidSettingError, match="Narrow"):
            display_manager.set_display_width(3)
        assert display_manager.settings.width is DisplayWidth.MEDIUM

    def test_invalid_break_mode_rejected(self, display_manager):
        with pytest.raises(InvalidSettingError):
            display_manager.set_break_mode("hyphenate-everything")
        assert display_manager.settings.break_mode is BreakMode.CHARACTER

    def test_invalid_value_changes_nothing_in_combined_update(self, display_manager):
        with pytest.raises(InvalidSettingError):
            display_manager.update_settings(width="wide", lines=9)
        assert display_manager.settings.width is DisplayWidth.MEDIUM

    def test_setting_error_is_a_value_error(self, display_manager):
        with pytest.raises(ValueError):
            display_manager.set_display_lines(10)

    @pytest.mark.parametrize("raw, expected", [
        (0, DisplayWidth.NARROW),
        ("1", DisplayWidth.MEDIUM),
        ("Wide", DisplayWidth.WIDE),
        (DisplayWidth.NARROW, DisplayWidth.NARROW),
    ])
    def test_width_inputs(self, raw, expected):
        assert validate_display_width(raw) is expected

    def test_bool_is_not_a_width(self):
        with pytest.raises(InvalidSettingError):
            validate_display_width(True)

    def test_snapshot(self, display_manager):
        assert display_manager.get_settings_snapshot() == {
            "profileId": "even-realities-g1",
            "displayWidth": 1,
            "displayWidthPx": 490,
            "displayLines": 3,
            "effectiveLines": 3,
            "breakMode": "character",
        }


class TestDeviceProfile:

    def test_switch_rebuilds_and_preserves_history(self, display_manager):
        display_manager.process_and_display("kept", True, "1")
        assert display_manager.set_device_model("Vuzix Z100") is True
        assert display_manager.profile.id == "vuzix-z100"
        assert display_manager.display_width_px == 512
        assert display_manager.get_final_transcript_history() == [Utterance("kept", "1", True)]

    def test_same_profile_is_a_no_op(self, display_manager, display_sink):
        formatter = display_manager.formatter
        assert display_manager.set_device_model("Even Realities G1") is False
        assert display_manager.formatter is formatter
        display_sink.show.assert_not_called()

    def test_lines_clamped_to_profile_maximum(self, display_manager):
        display_manager.set_device_model("Mentra Nex")
        display_manager.set_display_lines(5)
        assert display_manager.settings.lines == 5
        assert display_manager.effective_max_lines == 4
        assert display_manager.formatter.max_lines == 4

    def test_unknown_model_uses_baseline(self, display_manager):
        display_manager.set_device_model("Vuzix Z100")
        display_manager.set_device_model("mystery glasses")
        assert display_manager.profile.id == "even-realities-g1"


class TestInactivity:

    def test_event_starts_timer(self, display_manager, timers):
        display_manager.process_and_display("hi", False)
        assert len(timers) == 1
        assert timers[0].started
        assert timers[0].interval == 40.0
        assert timers[0].daemon

    def test_new_event_cancels_previous_timer(self, display_manager, timers):
        display_manager.process_and_display("one", False)
        display_manager.process_and_display("two", False)
        assert timers[0].cancelled
        assert not timers[1].cancelled

    def test_timeout_clears_everything(self, display_manager, timers, display_sink, preview_sink):
        display_manager.process_and_display("hello", True, "1")
        display_sink.reset_mock()
        preview_sink.reset_mock()

        timers[-1].fire()

        assert display_manager.get_final_transcript_history() == []
        assert display_manager.last_speaker_id is None
        display_sink.show.assert_called_once_with("", 1000)
        preview_sink.preview.assert_called_once_with("", [""], True)

    def test_speaker_labeled_again_after_timeout(self, display_manager, timers):
        display_manager.process_and_display("before", True, "1")
        timers[-1].fire()
        result = display_manager.process_and_display("after", True, "1")
        assert result.display_text == "[1]: after"

    def test_stale_timer_is_ignored(self, display_manager, timers, display_sink):
        display_manager.process_and_display("one", True)
        display_manager.process_and_display("two", True)
        display_sink.reset_mock()

        timers[0].fire()

        assert display_manager.get_combined_transcript_history() == "one two"
        display_sink.show.assert_not_called()

    def test_disabled_timeout_creates_no_timer(self, display_sink, timers, timer_factory):
        manager = DisplayManager(display_sink, inactivity_timeout_s=None, timer_factory=timer_factory)
        manager.process_and_display("hi", True)
        assert timers == []

    def test_dispose_cancels_timer(self, display_manager, timers):
        display_manager.process_and_display("hi", True)
        display_manager.dispose()
        assert timers[-1].cancelled

    def test_timer_fired_after_dispose_does_nothing(self, display_manager, timers, display_sink):
        display_manager.process_and_display("hi", True)
        display_manager.dispose()
        display_sink.reset_mock()
        timers[-1].fire()
        assert display_manager.get_combined_transcript_history() == "hi"
        assert display_sink.show.call_args_list == []

    def test_event_after_dispose_starts_no_timer(self, display_manager, timers):
        display_manager.process_and_display("hi", True)
        display_manager.dispose()
        count = len(timers)

        display_manager.process_and_display("late", True)

        assert len(timers) == count
        assert all(timer.cancelled for timer in timers)
