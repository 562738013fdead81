"""Replay recorded recognition events through the caption formatter.

WHY: Tuning widths, line counts and break modes is much faster against a
recorded session than against live glasses. This CLI prints exactly the
frames the display would have shown.

HOW: Reads JSON Lines (one event object per line) or a single JSON array
of events, feeds each event to a CaptionFormatter configured from the
command-line flags, and prints every resulting frame to stdout.

RULES:
- Usage:
    python -m display_captions events.jsonl [--profile vuzix-z100]
        [--lines 3] [--width-px 400] [--break-mode word] [--finals-only]
    cat events.jsonl | python -m display_captions -
- Event keys accept camelCase or snake_case: text, isFinal/is_final,
  speakerId/speaker_id, speakerChanged/speaker_changed.
- Exit codes: 0 = success, 1 = error.
- Status messages go to stderr; frames go to stdout.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from .formatter import CaptionFormatter
from .models import BreakMode
from .profiles import PROFILES, get_profile

FRAME_SEPARATOR = "-" * 24


def parse_events(raw: str) -> List[Dict[str, Any]]:
    """Parse a JSON array or JSON Lines document into event dicts.

    Raises:
        ValueError: If a line is not valid JSON or an event is not an object.
    """
    raw = raw.strip()
    if not raw:
        return []

    if raw.startswith("["):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid JSON array: {}".format(exc))
    else:
        data = []
        for number, line in enumerate(raw.splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            try:
                data.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise ValueError("Invalid JSON on line {}: {}".format(number, exc))

    events = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError("Each event must be a JSON object, got {!r}".format(item))
        events.append(item)
    return events


def _field(event: Dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in event:
        return event[camel]
    return event.get(snake, default)


def replay(
    events: List[Dict[str, Any]],
    formatter: CaptionFormatter,
    finals_only: bool = False,
) -> List[str]:
    """Feed events through formatter and collect the displayed frames."""
    frames = []
    for event in events:
        is_final = bool(_field(event, "isFinal", "is_final", False))
        result = formatter.process_transcription(
            event.get("text"),
            is_final,
            _field(event, "speakerId", "speaker_id"),
            bool(_field(event, "speakerChanged", "speaker_changed", False)),
        )
        if is_final or not finals_only:
            frames.append(result.display_text)
    return frames


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="display_captions",
        description="Replay recognition events and print the glasses display frames.",
    )
    parser.add_argument("input", help="JSONL or JSON array of events ('-' for stdin)")
    parser.add_argument(
        "--profile",
        default="even-realities-g1",
        choices=sorted(PROFILES.keys()),
        help="Device profile id (default: even-realities-g1)",
    )
    parser.add_argument("--lines", type=int, default=None, help="Max display lines")
    parser.add_argument("--width-px", type=int, default=None, help="Line width in pixels")
    parser.add_argument(
        "--break-mode",
        default=BreakMode.CHARACTER.value,
        choices=[mode.value for mode in BreakMode],
        help="Line break policy (default: character)",
    )
    parser.add_argument("--capacity", type=int, default=30, help="History capacity")
    parser.add_argument(
        "--finals-only", action="store_true", help="Only print frames produced by finals"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Run the replay CLI."""
    args = build_parser().parse_args(argv)

    try:
        if args.input == "-":
            raw = sys.stdin.read()
        else:
            with open(args.input, "r", encoding="utf-8") as f:
                raw = f.read()
        events = parse_events(raw)
        formatter = CaptionFormatter(
            get_profile(args.profile),
            max_final_transcripts=args.capacity,
            break_mode=args.break_mode,
            display_width_px=args.width_px,
            max_lines=args.lines,
        )
    except (OSError, ValueError) as exc:
        print("Error: {}".format(exc), file=sys.stderr)
        sys.exit(1)

    frames = replay(events, formatter, finals_only=args.finals_only)
    for frame in frames:
        print(frame)
        print(FRAME_SEPARATOR)

    print(
        "Replayed {} events into {} frames ({}px x {} lines, {})".format(
            len(events),
            len(frames),
            formatter.display_width_px,
            formatter.max_lines,
            formatter.break_mode.value,
        ),
        file=sys.stderr,
    )


if __name__ == "__main__":
    main()
