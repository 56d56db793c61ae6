"""Narrow interfaces to the external collaborators of the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol

from meeting_digest.processing.models import StructuredSummary
from meeting_digest.recordings.models import MeetingInfo, Recording


@dataclass(frozen=True)
class TranscribeOptions:
    max_retries: int = 5
    mime_type: str = "audio/aac"


@dataclass(frozen=True)
class TranscriptionResult:
    transcription: str
    processing_time_ms: int = 0
    model: str | None = None


@dataclass(frozen=True)
class SummaryResult:
    structured_summary: StructuredSummary
    processing_time_ms: int = 0


@dataclass(frozen=True)
class DocumentLinks:
    transcription_link: str
    summary_link: str

    def to_dict(self) -> dict[str, str]:
        return {"transcription_link": self.transcription_link, "summary_link": self.summary_link}


class RecordingClient(Protocol):
    def list_recordings(self, from_date: date, to_date: date) -> list[Recording]: ...

    def download_as_buffer(self, url: str) -> bytes: ...


class Transcriber(Protocol):
    def transcribe(
        self, audio: bytes, meeting_info: MeetingInfo, options: TranscribeOptions
    ) -> TranscriptionResult: ...


class Summarizer(Protocol):
    def summarize(
        self, text: str, meeting_info: MeetingInfo, *, max_retries: int = 5
    ) -> SummaryResult: ...


class DocumentStore(Protocol):
    def save(
        self,
        transcript: str,
        summary: StructuredSummary,
        meeting_info: MeetingInfo,
        folder: str,
    ) -> DocumentLinks: ...


class Notifier(Protocol):
    def post(self, message: str) -> None: ...
