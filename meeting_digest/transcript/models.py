"""Data models for parsed transcript tracks."""

from __future__ import annotations

from dataclasses import dataclass, field

ZERO_TIMECODE = "00:00:00.000"
UNKNOWN_SPEAKER = "Unknown"


@dataclass(frozen=True)
class TranscriptSegment:
    """One speaker-attributed cue from a WebVTT track."""

    start_time: str
    end_time: str
    speaker: str
    text: str
    timestamp_ms: int


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    segment_count: int


@dataclass(frozen=True)
class TranscriptMetadata:
    duration: str = ZERO_TIMECODE
    total_segments: int = 0
    speaker_count: int = 0
    skipped_blocks: int = 0


@dataclass(frozen=True)
class ParsedTranscript:
    """Result of parsing one transcript file; read-only downstream."""

    participants: tuple[Participant, ...] = ()
    segments: tuple[TranscriptSegment, ...] = ()
    full_text: str = ""
    metadata: TranscriptMetadata = field(default_factory=TranscriptMetadata)

    @property
    def participant_names(self) -> list[str]:
        return [p.name for p in self.participants]
