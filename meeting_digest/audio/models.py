"""Data models for audio chunking and quality checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AudioChunk:
    """A contiguous time-bounded slice of an audio buffer (times in seconds)."""

    data: bytes
    start_time: float
    end_time: float
    index: int
    is_first: bool = False
    is_last: bool = False

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class SplitMetadata:
    total_chunks: int
    chunk_duration: float
    total_duration: float
    bytes_per_second: float
    audio_format: str = "unknown"
    split_method: str = "time_based"


@dataclass(frozen=True)
class SplitResult:
    chunks: list[AudioChunk]
    metadata: SplitMetadata


@dataclass
class ChunkValidation:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class QualityReport:
    """Advisory loudness assessment of an audio buffer."""

    average_rms: float
    is_silent: bool = False
    is_very_quiet: bool = False
    has_high_noise: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_low_quality(self) -> bool:
        return self.is_silent or self.is_very_quiet or self.has_high_noise

    def to_dict(self) -> dict[str, Any]:
        return {
            "average_rms": self.average_rms,
            "is_silent": self.is_silent,
            "is_very_quiet": self.is_very_quiet,
            "has_high_noise": self.has_high_noise,
            "is_low_quality": self.is_low_quality,
            "details": dict(self.details),
        }
