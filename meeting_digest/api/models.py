"""Pydantic request/response schemas for the Meeting Digest API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from meeting_digest.recordings.models import Recording, RecordingFile


class RecordingFilePayload(BaseModel):
    """One file entry of a Zoom recording payload."""

    id: str | None = None
    file_type: str
    file_size: int | None = None
    download_url: str | None = None
    file_name: str | None = None
    file_extension: str | None = None


class RecordingPayload(BaseModel):
    """A Zoom cloud recording as returned by the recordings API."""

    # Zoom returns the numeric meeting id; some endpoints use the string form
    id: int | str
    uuid: str | None = None
    topic: str = "Untitled Meeting"
    start_time: str | None = None
    duration: int = 0
    host_email: str | None = None
    recording_files: list[RecordingFilePayload] = []

    def to_recording(self) -> Recording:
        return Recording(
            id=str(self.id),
            uuid=self.uuid,
            topic=self.topic,
            start_time=self.start_time,
            duration=self.duration,
            host_email=self.host_email,
            recording_files=tuple(
                RecordingFile.from_dict(f.model_dump()) for f in self.recording_files
            ),
        )


class BatchRequest(BaseModel):
    recordings: list[RecordingPayload]
    max_recordings: int | None = None


class ParticipantResponse(BaseModel):
    id: str
    name: str
    segment_count: int


class SegmentResponse(BaseModel):
    start_time: str
    end_time: str
    speaker: str
    text: str
    timestamp_ms: int


class ParseResponse(BaseModel):
    """Response body for the /api/transcripts/parse endpoint."""

    participants: list[ParticipantResponse]
    segments: list[SegmentResponse]
    full_text: str
    duration: str
    total_segments: int
    speaker_count: int
    skipped_blocks: int
    formatted: str


class ProcessResponse(BaseModel):
    """Response body for the /api/recordings/process endpoint."""

    success: bool
    method: str
    transcript: str
    structured_summary: dict[str, Any]
    warnings: list[str] | None = None
    meeting_info: dict[str, Any]
    processed_at: str
    total_processing_time_ms: int
    stage_timings: dict[str, int] = {}
    chunk_metadata: dict[str, Any] | None = None
    quality_report: dict[str, Any] | None = None
    documents: dict[str, str] | None = None


class BatchFailure(BaseModel):
    recording_id: str
    topic: str
    error: str
    code: str | None = None


class BatchResponse(BaseModel):
    """Response body for the /api/recordings/batch endpoint."""

    processed: int
    failed: int
    skipped: int
    results: list[ProcessResponse]
    failures: list[BatchFailure]
