"""Tests for the WebVTT parser and the summarizer-input formatter."""

from __future__ import annotations

import pytest

from meeting_digest.errors import TranscriptFormatError
from meeting_digest.transcript.formatter import format_for_summary
from meeting_digest.transcript.parser import format_timecode, parse_vtt, timecode_to_ms

TWO_SPEAKERS = """WEBVTT

1
00:00:01.000 --> 00:00:05.000
Alice: Welcome everyone to the planning meeting.

2
00:00:05.500 --> 00:00:09.250
Bob: Thanks, let's start with the budget.
"""

ZOOM_STYLE = """WEBVTT

1
00:00:01.000 --> 00:00:04.000
Alice: Good morning.

2
00:00:04.000 --> 00:00:08.000
Alice: First item is the roadmap.

3
00:00:08.000 --> 00:00:12.000
Bob: Sounds good.

4
00:01:10.000 --> 00:01:15.500
Alice: Let's wrap up.
"""


class TestParseVTT:
    def test_two_speakers(self) -> None:
        parsed = parse_vtt(TWO_SPEAKERS)
        assert len(parsed.segments) == 2
        assert len(parsed.participants) == 2
        assert all(p.segment_count == 1 for p in parsed.participants)
        assert parsed.segments[0].speaker == "Alice"
        assert parsed.segments[0].text == "Welcome everyone to the planning meeting."
        assert parsed.segments[1].timestamp_ms == 5500

    def test_missing_header_raises(self) -> None:
        with pytest.raises(TranscriptFormatError) as exc_info:
            parse_vtt("1\n00:00:01.000 --> 00:00:05.000\nAlice: Hi\n")
        assert "missing WEBVTT header" in exc_info.value.message
        assert exc_info.value.code == "TS001"

    def test_header_only(self) -> None:
        parsed = parse_vtt("WEBVTT\n\n")
        assert parsed.segments == ()
        assert parsed.participants == ()
        assert parsed.metadata.total_segments == 0
        assert parsed.metadata.duration == "00:00:00.000"
        assert parsed.full_text == ""

    def test_accepts_bytes_with_bom_and_crlf(self) -> None:
        raw = ("\ufeff" + TWO_SPEAKERS.replace("\n", "\r\n")).encode("utf-8")
        parsed = parse_vtt(raw)
        assert len(parsed.segments) == 2
        assert parsed.segments[1].speaker == "Bob"

    def test_without_sequence_numbers(self) -> None:
        vtt = """WEBVTT

00:00:01.000 --> 00:00:05.000
Alice: No cue identifiers here.
"""
        parsed = parse_vtt(vtt)
        assert len(parsed.segments) == 1
        assert parsed.segments[0].start_time == "00:00:01.000"

    def test_voice_tag_wins(self) -> None:
        vtt = """WEBVTT

00:00:01.000 --> 00:00:05.000
<v Carol Smith>Note: the deadline moved.</v>
"""
        parsed = parse_vtt(vtt)
        assert parsed.segments[0].speaker == "Carol Smith"
        assert parsed.segments[0].text == "Note: the deadline moved."

    def test_unknown_speaker(self) -> None:
        vtt = """WEBVTT

00:00:01.000 --> 00:00:05.000
Just some text without a speaker
"""
        parsed = parse_vtt(vtt)
        assert parsed.segments[0].speaker == "Unknown"

    def test_long_prefix_is_not_a_speaker(self) -> None:
        prefix = "x" * 120
        vtt = f"WEBVTT\n\n00:00:01.000 --> 00:00:05.000\n{prefix}: tail\n"
        parsed = parse_vtt(vtt)
        assert parsed.segments[0].speaker == "Unknown"
        assert parsed.segments[0].text == f"{prefix}: tail"

    def test_multiline_cue_joined(self) -> None:
        vtt = """WEBVTT

00:00:01.000 --> 00:00:05.000
Alice: line one
line two
"""
        parsed = parse_vtt(vtt)
        assert parsed.segments[0].text == "line one line two"

    def test_malformed_blocks_are_skipped(self) -> None:
        vtt = """WEBVTT

1
not a timestamp
Alice: lost

2
00:00:02.000 --> 00:00:03.000

orphan

3
00:00:04.000 --> 00:00:06.000
Bob: kept
"""
        parsed = parse_vtt(vtt)
        assert [s.text for s in parsed.segments] == ["kept"]
        assert parsed.metadata.skipped_blocks == 3

    def test_header_metadata_is_counted_as_skipped(self) -> None:
        vtt = "WEBVTT\nKind: captions\n\n00:00:01.000 --> 00:00:02.000\nAlice: Hi\n"
        parsed = parse_vtt(vtt)
        assert len(parsed.segments) == 1
        assert parsed.metadata.skipped_blocks == 1

    def test_cue_directly_after_header(self) -> None:
        vtt = "WEBVTT\n1\n00:00:01.000 --> 00:00:02.000\nAlice: Hi\n\n00:00:03.000 --> 00:00:04.000\nBob: Hello\n"
        parsed = parse_vtt(vtt)
        assert [s.speaker for s in parsed.segments] == ["Alice", "Bob"]
        assert parsed.metadata.skipped_blocks == 0

    def test_metadata_and_full_text(self) -> None:
        parsed = parse_vtt(ZOOM_STYLE)
        assert parsed.metadata.duration == "00:01:15.500"
        assert parsed.metadata.total_segments == 4
        assert parsed.metadata.speaker_count == 2
        assert parsed.full_text.splitlines()[0] == "[00:01] Alice: Good morning."
        assert parsed.full_text.splitlines()[-1] == "[01:10] Alice: Let's wrap up."

    def test_roster_order_and_counts(self) -> None:
        parsed = parse_vtt(ZOOM_STYLE)
        assert parsed.participant_names == ["Alice", "Bob"]
        assert sum(p.segment_count for p in parsed.participants) == len(parsed.segments)
        assert parsed.participants[0].segment_count == 3

    def test_idempotent(self) -> None:
        assert parse_vtt(ZOOM_STYLE) == parse_vtt(ZOOM_STYLE)

    def test_segment_count_matches_blocks(self) -> None:
        blocks = "\n\n".join(
            f"{i}\n00:00:{i:02d}.000 --> 00:00:{i + 1:02d}.000\nSpeaker {i % 3}: text {i}"
            for i in range(1, 30)
        )
        parsed = parse_vtt(f"WEBVTT\n\n{blocks}\n")
        assert len(parsed.segments) == 29
        assert parsed.metadata.total_segments == 29
        assert parsed.metadata.skipped_blocks == 0


class TestTimecodes:
    def test_to_ms(self) -> None:
        assert timecode_to_ms("01:02:03.456") == 3723456
        assert timecode_to_ms("00:00:00.000") == 0

    def test_format_minutes_exceed_59(self) -> None:
        assert format_timecode("01:05:09.999") == "65:09"
        assert format_timecode("00:00:07.000") == "00:07"


class TestFormatForSummary:
    def test_header(self) -> None:
        text = format_for_summary(parse_vtt(ZOOM_STYLE))
        assert text.startswith("Participants: Alice, Bob\nDuration: 00:01:15.500\nSegments: 4\n\n")
        assert "=== Transcript ===" in text

    def test_consecutive_turns_merged(self) -> None:
        text = format_for_summary(parse_vtt(ZOOM_STYLE))
        assert "[00:01] Alice:\nGood morning. First item is the roadmap.\n" in text
        assert "[00:08] Bob:\nSounds good.\n" in text
        assert "[01:10] Alice:\nLet's wrap up.\n" in text
        assert text.count("Alice:") == 2

    def test_empty_transcript(self) -> None:
        text = format_for_summary(parse_vtt("WEBVTT\n"))
        assert "Segments: 0" in text
        assert text.endswith("=== Transcript ===\n\n")
