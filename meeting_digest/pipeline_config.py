"""Pipeline configuration: processing enums and immutable threshold dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from meeting_digest.config import Settings

BYTES_PER_MB = 1024 * 1024


class ProcessingMethod(str, Enum):
    """How the transcript behind a result was obtained."""

    TRANSCRIPT = "transcript-api"
    AUDIO = "audio"
    AUDIO_CHUNKED = "audio-chunked"


class TranscriptStage(str, Enum):
    """Stages of the transcript-reuse path."""

    CHECK_AVAILABILITY = "check_availability"
    DOWNLOAD = "download"
    PARSE = "parse"
    FORMAT = "format"
    SUMMARIZE = "summarize"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ChunkingThresholds:
    """Size/duration limits above which audio is processed in chunks.

    Any one of the three rules triggers chunking:

    - size above ``max_size_mb``
    - duration above ``max_duration_seconds``
    - size above ``combined_size_mb`` *and* duration above
      ``combined_duration_seconds``
    """

    max_size_mb: float = 20.0
    max_duration_seconds: float = 1200.0
    combined_size_mb: float = 15.0
    combined_duration_seconds: float = 900.0

    def should_chunk(self, size_bytes: int, duration_seconds: float) -> bool:
        size_mb = size_bytes / BYTES_PER_MB
        return (
            size_mb > self.max_size_mb
            or duration_seconds > self.max_duration_seconds
            or (size_mb > self.combined_size_mb and duration_seconds > self.combined_duration_seconds)
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> ChunkingThresholds:
        return cls(
            max_size_mb=settings.chunking_size_mb,
            max_duration_seconds=settings.chunking_duration_seconds,
            combined_size_mb=settings.chunking_combined_size_mb,
            combined_duration_seconds=settings.chunking_combined_duration_seconds,
        )


@dataclass(frozen=True)
class ChunkBudget:
    """Retry and wall-clock limits for the sequential chunk loop."""

    time_budget_seconds: float = 250.0
    fast_mode_threshold_seconds: float = 240.0
    seconds_per_chunk_estimate: float = 45.0
    default_max_retries: int = 5
    fast_mode_max_retries: int = 2
    min_transcription_chars: int = 10

    def max_retries(self, fast_mode: bool) -> int:
        return self.fast_mode_max_retries if fast_mode else self.default_max_retries

    @classmethod
    def from_settings(cls, settings: Settings) -> ChunkBudget:
        return cls(
            time_budget_seconds=settings.chunk_time_budget_seconds,
            fast_mode_threshold_seconds=settings.fast_mode_threshold_seconds,
            seconds_per_chunk_estimate=settings.seconds_per_chunk_estimate,
            default_max_retries=settings.default_max_retries,
            fast_mode_max_retries=settings.fast_mode_max_retries,
            min_transcription_chars=settings.min_chunk_transcription_chars,
        )
