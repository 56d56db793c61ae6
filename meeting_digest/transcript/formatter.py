"""Render a parsed transcript as summarizer input."""

from __future__ import annotations

from meeting_digest.transcript.models import ParsedTranscript, TranscriptSegment
from meeting_digest.transcript.parser import format_timecode


def _render_turn(group: list[TranscriptSegment]) -> str:
    head = group[0]
    body = " ".join(s.text for s in group)
    return f"\n[{format_timecode(head.start_time)}] {head.speaker}:\n{body}\n"


def format_for_summary(parsed: ParsedTranscript) -> str:
    """Format a transcript with a short header and merged speaker turns.

    Consecutive segments by the same speaker are merged into one block
    labelled with the first segment's start time.
    """
    parts = [
        f"Participants: {', '.join(parsed.participant_names)}\n",
        f"Duration: {parsed.metadata.duration}\n",
        f"Segments: {parsed.metadata.total_segments}\n\n",
        "=== Transcript ===\n\n",
    ]

    # Group consecutive segments by speaker
    groups: list[list[TranscriptSegment]] = []
    for seg in parsed.segments:
        if groups and groups[-1][0].speaker == seg.speaker:
            groups[-1].append(seg)
        else:
            groups.append([seg])

    parts.extend(_render_turn(group) for group in groups)
    return "".join(parts)
