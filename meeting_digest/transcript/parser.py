"""WebVTT transcript parser for platform-generated transcript tracks."""

from __future__ import annotations

import logging
import re

from meeting_digest.errors import TranscriptFormatError
from meeting_digest.transcript.models import (
    UNKNOWN_SPEAKER,
    ZERO_TIMECODE,
    ParsedTranscript,
    Participant,
    TranscriptMetadata,
    TranscriptSegment,
)

logger = logging.getLogger(__name__)

VTT_HEADER = "WEBVTT"
# Speaker names longer than this are treated as plain text containing ": "
MAX_SPEAKER_PREFIX = 100

_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n+")
_SEQUENCE_RE = re.compile(r"^\d+$")
_TIMESTAMP_RE = re.compile(r"(\d{2}:\d{2}:\d{2}\.\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}\.\d{3})")
_VOICE_TAG_RE = re.compile(r"<v\s+([^>]+)>")
_VOICE_CLOSE_RE = re.compile(r"</v>")


def timecode_to_ms(timecode: str) -> int:
    """Convert ``HH:MM:SS.mmm`` to milliseconds."""
    hours, minutes, rest = timecode.split(":")
    seconds, _, millis = rest.partition(".")
    return (int(hours) * 3600 + int(minutes) * 60 + int(seconds)) * 1000 + int(millis or 0)


def format_timecode(timecode: str) -> str:
    """Render ``HH:MM:SS.mmm`` as ``MM:SS`` (minutes may exceed 59)."""
    hours, minutes, rest = timecode.split(":")
    total_minutes = int(hours) * 60 + int(minutes)
    seconds = int(rest.split(".")[0])
    return f"{total_minutes:02d}:{seconds:02d}"


def _split_speaker(text: str) -> tuple[str, str]:
    """Return ``(speaker, text)`` from a cue payload.

    ``<v Name>`` voice tags win over the ``Name: text`` convention.
    """
    tag = _VOICE_TAG_RE.search(text)
    if tag:
        stripped = _VOICE_TAG_RE.sub("", text, count=1)
        return tag.group(1).strip(), _VOICE_CLOSE_RE.sub("", stripped).strip()

    colon = text.find(": ")
    if 0 < colon < MAX_SPEAKER_PREFIX:
        return text[:colon].strip(), text[colon + 2 :].strip()

    return UNKNOWN_SPEAKER, text.strip()


def parse_vtt(content: bytes | str) -> ParsedTranscript:
    """Parse a WebVTT transcript into speaker-attributed segments.

    Parsing is best-effort: blocks without a timestamp line, with fewer than
    two lines, or without cue text are counted and skipped.

    Args:
        content: Raw transcript bytes (UTF-8) or text.

    Returns:
        The parsed transcript with participant roster and metadata.

    Raises:
        TranscriptFormatError: If the content does not start with ``WEBVTT``.
    """
    text = content.decode("utf-8", errors="replace") if isinstance(content, bytes) else content
    text = text.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")

    if not text.startswith(VTT_HEADER):
        raise TranscriptFormatError(message="Invalid VTT file: missing WEBVTT header")

    header, *blocks = _BLOCK_SPLIT_RE.split(text.strip())
    # Lines under the WEBVTT line are either header metadata (skipped) or a cue
    # that was not separated from the header by a blank line
    header_rest = header.split("\n", 1)[1:]
    if header_rest and header_rest[0].strip():
        blocks.insert(0, header_rest[0])

    segments: list[TranscriptSegment] = []
    counts: dict[str, int] = {}
    lines_out: list[str] = []
    skipped = 0

    for block in blocks:
        block = block.strip()
        if not block or block == VTT_HEADER:
            continue
        lines = [line.strip() for line in block.split("\n")]
        if len(lines) < 2:
            skipped += 1
            continue

        ts_index = 1 if _SEQUENCE_RE.match(lines[0]) else 0
        match = _TIMESTAMP_RE.search(lines[ts_index])
        payload = " ".join(line for line in lines[ts_index + 1 :] if line)
        if not match or not payload:
            skipped += 1
            if skipped <= 3:
                logger.warning("VTT block skipped: first line %r", lines[0])
            continue

        start, end = match.group(1), match.group(2)
        speaker, cue_text = _split_speaker(payload)

        segments.append(
            TranscriptSegment(
                start_time=start,
                end_time=end,
                speaker=speaker,
                text=cue_text,
                timestamp_ms=timecode_to_ms(start),
            )
        )
        counts[speaker] = counts.get(speaker, 0) + 1
        lines_out.append(f"[{format_timecode(start)}] {speaker}: {cue_text}")

    logger.info(
        "VTT parsed: %d segments processed, %d blocks skipped, %d speakers",
        len(segments),
        skipped,
        len(counts),
    )

    # dicts keep first-occurrence order, which is the roster order
    participants = tuple(
        Participant(id=speaker, name=speaker, segment_count=count)
        for speaker, count in counts.items()
    )

    return ParsedTranscript(
        participants=participants,
        segments=tuple(segments),
        full_text="\n".join(lines_out),
        metadata=TranscriptMetadata(
            duration=segments[-1].end_time if segments else ZERO_TIMECODE,
            total_segments=len(segments),
            speaker_count=len(participants),
            skipped_blocks=skipped,
        ),
    )
