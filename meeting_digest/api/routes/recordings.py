"""Recording endpoints: process one recording or a batch."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from meeting_digest.api.deps import get_processor
from meeting_digest.api.models import BatchRequest, BatchResponse, ProcessResponse, RecordingPayload
from meeting_digest.config import settings
from meeting_digest.errors import PipelineError
from meeting_digest.recordings.processor import RecordingProcessor

router = APIRouter()

# Error categories caused by the caller's input rather than an upstream service
_CLIENT_ERROR_CATEGORIES = {"format"}


@router.post("/api/recordings/process", response_model=ProcessResponse)
async def process_recording(
    payload: RecordingPayload,
    processor: Annotated[RecordingProcessor, Depends(get_processor)],
) -> ProcessResponse:
    """Run the transcript-or-audio pipeline for one recording.

    Upstream failures (Zoom, AI providers, storage) return 502; input that
    cannot be processed (malformed transcript or audio) returns 422.
    """
    # The pipeline is synchronous; run it in a thread to keep the event loop free.
    try:
        result = await asyncio.to_thread(processor.process, payload.to_recording())
    except PipelineError as exc:
        status = 422 if exc.spec.category in _CLIENT_ERROR_CATEGORIES else 502
        raise HTTPException(
            status_code=status,
            detail={"code": exc.code, "message": exc.message, "remediation": exc.spec.remediation},
        ) from exc
    return ProcessResponse(**result.to_dict())


@router.post("/api/recordings/batch", response_model=BatchResponse)
async def process_batch(
    request: BatchRequest,
    processor: Annotated[RecordingProcessor, Depends(get_processor)],
) -> BatchResponse:
    """Process recordings sequentially; per-recording failures are reported, not raised."""
    limit = request.max_recordings or settings.max_batch_recordings
    recordings = [r.to_recording() for r in request.recordings]
    batch = await asyncio.to_thread(processor.process_batch, recordings, limit)
    return BatchResponse(**batch.to_dict())
