"""Tests for CaptionFormatter.

WHY: The formatter decides what the wearer actually reads: the newest
speech must stay visible, speaker turns must be labeled exactly once,
interim results must be replaced rather than accumulated, and
reconfiguration must not lose finalized history.

HOW: Scenario tests run on the G1 baseline profile; truncation and
capacity tests use the monospace fixture profile for exact line counts.
"""

import pytest

from display_captions import (
    G1_PROFILE,
    BreakMode,
    CaptionFormatter,
    Utterance,
    speaker_label,
)


@pytest.fixture
def formatter():
    return CaptionFormatter(
        G1_PROFILE, max_final_transcripts=30, max_lines=5, display_width_px=576
    )


class TestSpeakerScenario:

    def test_two_speaker_conversation(self, formatter):
        interim = formatter.process_transcription("Hel", False, "1", True)
        assert interim.display_text == "[1]: Hel"

        formatter.process_transcription("Hello world", True, "1", True)
        assert formatter.get_final_transcript_history() == [
            Utterance("Hello world", "1", True)
        ]
        assert "[1]: Hello world" in formatter.render().display_text

        result = formatter.process_transcription("Hi there", True, "2", True)
        assert result.lines == ["[1]: Hello world", "[2]: Hi there"]

    def test_same_speaker_without_turn_flag_gets_one_label(self, formatter):
        formatter.process_transcription("hello", True, "1", True)
        result = formatter.process_transcription("again", True, "1", False)
        assert result.display_text == "[1]: hello again"
        assert result.display_text.count("[1]:") == 1

    def test_each_turn_starts_a_line(self, formatter):
        formatter.process_transcription("first", True, "1", True)
        formatter.process_transcription("second", True, "2", True)
        result = formatter.process_transcription("third", True, "1", True)
        assert result.lines == ["[1]: first", "[2]: second", "[1]: third"]

    def test_final_inherits_speaker_from_partial(self, formatter):
        formatter.process_transcription("hey", False, "3")
        formatter.process_transcription("hey there", True)
        assert formatter.get_final_transcript_history() == [
            Utterance("hey there", "3", True)
        ]

    def test_speaker_label_format(self):
        assert speaker_label("7") == "[7]: "


class TestInterimHandling:

    def test_interim_replaces_previous_interim(self, formatter):
        formatter.process_transcription("Hel", False)
        result = formatter.process_transcription("Hello wor", False)
        assert result.display_text == "Hello wor"

    def test_interim_follows_history(self, formatter):
        formatter.process_transcription("Good morning.", True)
        result = formatter.process_transcription("How are", False)
        assert result.display_text == "Good morning. How are"

    def test_interim_speaker_change_detected_without_flag(self, formatter):
        formatter.process_transcription("hi", True, "1", True)
        result = formatter.process_transcription("yo", False, "2")
        assert result.lines == ["[1]: hi", "[2]: yo"]

    def test_final_resets_partial(self, formatter):
        formatter.process_transcription("draft", False, "1")
        formatter.process_transcription("done", True)
        partial = formatter.partial
        assert partial.text == ""
        assert partial.speaker_id is None
        assert partial.had_speaker_change is False


class TestMalformedInput:

    def test_none_final_adds_nothing(self, formatter):
        result = formatter.process_transcription(None, True)
        assert formatter.get_final_transcript_history() == []
        assert result.lines == [""]
        assert result.display_text == ""

    def test_whitespace_final_adds_nothing(self, formatter):
        formatter.process_transcription("   ", True, "1", True)
        assert formatter.get_final_transcript_history() == []

    def test_finals_are_trimmed(self, formatter):
        formatter.process_transcription("  padded  ", True)
        assert formatter.get_combined_transcript_history() == "padded"


class TestTruncation:

    def test_keeps_most_recent_lines(self, mono_profile):
        formatter = CaptionFormatter(mono_profile, display_width_px=10, max_lines=5)
        result = None
        for letter in "ABCDEFG":
            result = formatter.process_transcription(letter, True)
        assert result.lines == ["C", "D", "E", "F", "G"]
        assert result.truncated
        assert len(result.line_metrics) == 5

    def test_not_truncated_when_it_fits(self, mono_profile):
        formatter = CaptionFormatter(mono_profile, display_width_px=10, max_lines=5)
        result = formatter.process_transcription("A", True)
        assert not result.truncated

    def test_line_count_never_exceeds_max_lines(self, mono_profile):
        formatter = CaptionFormatter(mono_profile, display_width_px=50, max_lines=3)
        for i in range(20):
            result = formatter.process_transcription("word{}".format(i), True)
            assert len(result.lines) <= 3

    def test_invalid_max_lines_raises(self, mono_profile):
        with pytest.raises(ValueError):
            CaptionFormatter(mono_profile, max_lines=0)


class TestHistory:

    def test_combined_history_is_bounded(self, mono_profile):
        formatter = CaptionFormatter(mono_profile, max_final_transcripts=3)
        for word in ["one", "two", "three", "four"]:
            formatter.process_transcription(word, True)
        assert formatter.get_combined_transcript_history() == "two three four"

    def test_history_is_a_copy(self, formatter):
        formatter.process_transcription("kept", True)
        formatter.get_final_transcript_history().clear()
        assert len(formatter.get_final_transcript_history()) == 1

    def test_set_max_final_transcripts(self, formatter):
        for word in ["a", "b", "c"]:
            formatter.process_transcription(word, True)
        formatter.set_max_final_transcripts(1)
        assert formatter.max_final_transcripts == 1
        assert formatter.get_combined_transcript_history() == "c"

    def test_clear(self, formatter):
        formatter.process_transcription("a", True)
        formatter.process_transcription("b", False)
        formatter.clear()
        assert formatter.render().display_text == ""


class TestRebuild:

    def test_preserves_history_and_order(self, formatter, mono_profile):
        formatter.process_transcription("one", True, "1", True)
        formatter.process_transcription("two", True, "2", True)
        formatter.process_transcription("three", True, "2", False)
        history = formatter.get_final_transcript_history()

        rebuilt = CaptionFormatter.rebuild(
            history, mono_profile, max_lines=2, break_mode=BreakMode.WORD
        )
        assert rebuilt.get_final_transcript_history() == history
        assert rebuilt.profile is mono_profile
        assert rebuilt.max_lines == 2
        assert rebuilt.break_mode is BreakMode.WORD

    def test_drops_partial(self, formatter):
        formatter.process_transcription("final", True)
        formatter.process_transcription("draft", False)
        rebuilt = CaptionFormatter.rebuild(formatter.get_final_transcript_history())
        assert rebuilt.render().display_text == "final"

    def test_defaults_come_from_profile(self, mono_profile):
        formatter = CaptionFormatter(mono_profile)
        assert formatter.display_width_px == 200
        assert formatter.max_lines == 5


class TestRender:

    def test_render_does_not_change_state(self, formatter):
        formatter.process_transcription("stable", True)
        formatter.process_transcription("in flight", False)
        first = formatter.render()
        second = formatter.render()
        assert first == second
        assert first.display_text == "stable in flight"
