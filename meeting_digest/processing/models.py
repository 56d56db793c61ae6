"""Data models for summaries, per-chunk outcomes, and final results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from meeting_digest.audio.models import QualityReport
from meeting_digest.recordings.models import MeetingInfo
from meeting_digest.transcript.models import ParsedTranscript

NOT_AVAILABLE = "N/A"


def _format_clock(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def _normalize_attendee(value: Any) -> str:
    if isinstance(value, dict):
        name = str(value.get("name") or "").strip()
        company = str(value.get("company") or "").strip()
        if name and company:
            return f"{name} ({company})"
        return name or company
    return str(value).strip()


def normalize_item(value: Any, key: str) -> dict[str, Any]:
    """Model output sometimes lists bare strings where objects are expected."""
    if isinstance(value, dict):
        return value
    return {key: str(value).strip()}


def _normalize_items(values: Any, key: str) -> list[dict[str, Any]]:
    return [normalize_item(v, key) for v in values or [] if v]


def _normalize_quality(value: Any) -> str:
    """Collapse a model-reported audio quality into one string."""
    if value is None or value == "":
        return NOT_AVAILABLE
    if isinstance(value, dict):
        clarity = str(value.get("clarity") or "").strip()
        confidence = str(value.get("transcription_confidence") or "").strip()
        issues = [str(i) for i in value.get("issues") or [] if i]
        parts = [p for p in (clarity, f"confidence {confidence}" if confidence else "") if p]
        if issues:
            parts.append("issues: " + "; ".join(issues))
        return ", ".join(parts) or NOT_AVAILABLE
    return str(value).strip()


@dataclass(frozen=True)
class TimeRange:
    start: float
    end: float

    def format(self) -> str:
        """Render as ``M:SS-M:SS``."""
        return f"{_format_clock(self.start)}-{_format_clock(self.end)}"


@dataclass
class StructuredSummary:
    """The fixed multi-section meeting summary."""

    meeting_purpose: str = ""
    client_name: str = "Unknown"
    attendees_and_companies: list[str] = field(default_factory=list)
    materials: list[dict[str, Any]] = field(default_factory=list)
    discussions_by_topic: list[dict[str, Any]] = field(default_factory=list)
    decisions: list[dict[str, Any]] = field(default_factory=list)
    next_actions_with_due_date: list[dict[str, Any]] = field(default_factory=list)
    audio_quality: str = NOT_AVAILABLE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StructuredSummary:
        """Build a summary from model output (snake_case or camelCase keys)."""

        def pick(snake: str, camel: str, default: Any = None) -> Any:
            value = data.get(snake, data.get(camel))
            return default if value is None else value

        attendees: list[str] = []
        for raw in pick("attendees_and_companies", "attendeesAndCompanies", []):
            name = _normalize_attendee(raw)
            if name and name not in attendees:
                attendees.append(name)

        return cls(
            meeting_purpose=str(pick("meeting_purpose", "meetingPurpose", "")),
            client_name=str(pick("client_name", "clientName", "Unknown")),
            attendees_and_companies=attendees,
            materials=_normalize_items(pick("materials", "materials"), "material_name"),
            discussions_by_topic=_normalize_items(
                pick("discussions_by_topic", "discussionsByTopic"), "topic_title"
            ),
            decisions=_normalize_items(pick("decisions", "decisions"), "decision"),
            next_actions_with_due_date=_normalize_items(
                pick("next_actions_with_due_date", "nextActionsWithDueDate"), "action"
            ),
            audio_quality=_normalize_quality(pick("audio_quality", "audioQuality")),
        )

    @classmethod
    def placeholder(cls, purpose: str, audio_quality: str) -> StructuredSummary:
        return cls(meeting_purpose=purpose, audio_quality=audio_quality)

    def to_dict(self) -> dict[str, Any]:
        return {
            "meeting_purpose": self.meeting_purpose,
            "client_name": self.client_name,
            "attendees_and_companies": list(self.attendees_and_companies),
            "materials": list(self.materials),
            "discussions_by_topic": list(self.discussions_by_topic),
            "decisions": list(self.decisions),
            "next_actions_with_due_date": list(self.next_actions_with_due_date),
            "audio_quality": self.audio_quality,
        }


@dataclass(frozen=True)
class ChunkSuccess:
    chunk_index: int
    time_range: TimeRange
    transcript: str
    structured_summary: StructuredSummary
    processing_time_ms: int = 0


@dataclass(frozen=True)
class ChunkFallback:
    """Placeholder content standing in for a failed chunk."""

    transcript: str
    structured_summary: StructuredSummary


@dataclass(frozen=True)
class ChunkFailure:
    chunk_index: int
    time_range: TimeRange
    error: str
    fallback: ChunkFallback


ChunkResult = Union[ChunkSuccess, ChunkFailure]


@dataclass(frozen=True)
class ChunkMetadata:
    total_chunks: int
    successful_chunks: int
    failed_chunks: int
    missing_chunks: int = 0
    completion_rate: int = 0
    merge_processing_time_ms: int = 0
    chunking_method: str = "time_based"

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_chunks": self.total_chunks,
            "successful_chunks": self.successful_chunks,
            "failed_chunks": self.failed_chunks,
            "missing_chunks": self.missing_chunks,
            "completion_rate": self.completion_rate,
            "merge_processing_time_ms": self.merge_processing_time_ms,
            "chunking_method": self.chunking_method,
        }


@dataclass(frozen=True)
class MergedResult:
    transcript: str
    structured_summary: StructuredSummary
    warnings: list[str]
    chunk_metadata: ChunkMetadata


@dataclass
class ProcessingResult:
    """Final outcome of processing one recording."""

    success: bool
    method: str
    transcript: str
    structured_summary: StructuredSummary
    meeting_info: MeetingInfo
    processed_at: str
    total_processing_time_ms: int
    warnings: list[str] | None = None
    chunk_metadata: ChunkMetadata | None = None
    parsed_transcript: ParsedTranscript | None = None
    quality_report: QualityReport | None = None
    stage_timings: dict[str, int] = field(default_factory=dict)
    documents: dict[str, str] | None = None

    def add_warnings(self, *messages: str) -> None:
        if not messages:
            return
        self.warnings = [*(self.warnings or []), *messages]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "method": self.method,
            "transcript": self.transcript,
            "structured_summary": self.structured_summary.to_dict(),
            "warnings": self.warnings,
            "meeting_info": self.meeting_info.to_dict(),
            "processed_at": self.processed_at,
            "total_processing_time_ms": self.total_processing_time_ms,
            "stage_timings": dict(self.stage_timings),
        }
        if self.chunk_metadata is not None:
            data["chunk_metadata"] = self.chunk_metadata.to_dict()
        if self.quality_report is not None:
            data["quality_report"] = self.quality_report.to_dict()
        if self.documents:
            data["documents"] = dict(self.documents)
        return data


@dataclass(frozen=True)
class TranscriptFallback:
    """Outcome of a failed transcript path: whether audio processing should take over."""

    requires_fallback: bool
    error: str
    error_code: str
    reason: str | None = None
    stage: str | None = None
