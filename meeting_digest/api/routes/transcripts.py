"""Transcript endpoint: parse an uploaded WebVTT file."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, HTTPException, UploadFile

from meeting_digest.api.models import ParseResponse, ParticipantResponse, SegmentResponse
from meeting_digest.errors import TranscriptFormatError
from meeting_digest.transcript.formatter import format_for_summary
from meeting_digest.transcript.parser import parse_vtt

router = APIRouter()

# Zoom transcript tracks are typically 50-200 KB
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@router.post("/api/transcripts/parse", response_model=ParseResponse)
async def parse_transcript(file: Annotated[UploadFile, File(...)]) -> ParseResponse:
    """Parse a .vtt upload into segments, roster and the summary-ready text."""
    raw = await file.read()
    if len(raw) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)} MB.",
        )

    try:
        parsed = parse_vtt(raw)
    except TranscriptFormatError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc

    return ParseResponse(
        participants=[
            ParticipantResponse(id=p.id, name=p.name, segment_count=p.segment_count)
            for p in parsed.participants
        ],
        segments=[
            SegmentResponse(
                start_time=s.start_time,
                end_time=s.end_time,
                speaker=s.speaker,
                text=s.text,
                timestamp_ms=s.timestamp_ms,
            )
            for s in parsed.segments
        ],
        full_text=parsed.full_text,
        duration=parsed.metadata.duration,
        total_segments=parsed.metadata.total_segments,
        speaker_count=parsed.metadata.speaker_count,
        skipped_blocks=parsed.metadata.skipped_blocks,
        formatted=format_for_summary(parsed),
    )
