"""Per-chunk transcribe-then-summarize flow and the sequential chunk loop."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from meeting_digest.audio.chunker import (
    DEFAULT_CHUNK_SECONDS,
    detect_audio_format,
    estimate_duration_seconds,
    mime_type_for,
)
from meeting_digest.audio.models import AudioChunk
from meeting_digest.clients.base import Summarizer, TranscribeOptions, Transcriber
from meeting_digest.errors import ChunkProcessingError, PipelineError
from meeting_digest.pipeline_config import ChunkBudget
from meeting_digest.processing.models import (
    ChunkFailure,
    ChunkFallback,
    ChunkResult,
    ChunkSuccess,
    StructuredSummary,
    TimeRange,
)
from meeting_digest.recordings.models import MeetingInfo

logger = logging.getLogger(__name__)

FAILED_PURPOSE = "N/A (chunk processing failed)"
FAILED_QUALITY = "Not available due to processing error"


def chunk_time_range(chunk: AudioChunk) -> TimeRange:
    return TimeRange(start=chunk.start_time, end=chunk.end_time)


def create_chunk_fallback(chunk: AudioChunk, error: BaseException | str) -> ChunkFallback:
    """Placeholder content for a chunk that failed, naming its time range and error."""
    message = error.message if isinstance(error, PipelineError) else str(error)
    label = chunk_time_range(chunk).format()
    return ChunkFallback(
        transcript=f"[Chunk {chunk.index + 1} ({label}): processing failed - {message}]",
        structured_summary=StructuredSummary.placeholder(FAILED_PURPOSE, FAILED_QUALITY),
    )


def estimate_chunk_processing_seconds(
    size_bytes: int,
    meeting_info: MeetingInfo | None = None,
    chunk_seconds: float = DEFAULT_CHUNK_SECONDS,
    seconds_per_chunk: float = 45.0,
) -> float:
    """Rough wall-clock cost of processing a buffer chunk by chunk."""
    duration = estimate_duration_seconds(size_bytes, meeting_info)
    return math.ceil(duration / chunk_seconds) * seconds_per_chunk


class ChunkProcessor:
    """Runs one chunk through transcription, then summarization.

    Failures are raised, never recovered locally; callers build the
    placeholder with :func:`create_chunk_fallback`.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        summarizer: Summarizer,
        budget: ChunkBudget | None = None,
    ) -> None:
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.budget = budget or ChunkBudget()

    def process(
        self,
        chunk: AudioChunk,
        index: int,
        meeting_info: MeetingInfo,
        *,
        fast_mode: bool = False,
        total_chunks: int | None = None,
        mime_type: str | None = None,
    ) -> ChunkSuccess:
        started = time.monotonic()
        time_range = chunk_time_range(chunk)
        max_retries = self.budget.max_retries(fast_mode)
        chunk_info = replace(
            meeting_info,
            chunk_info={
                "chunk_index": index,
                "total_chunks": total_chunks,
                "time_range": time_range.format(),
                "is_first": chunk.is_first,
                "is_last": chunk.is_last,
            },
        )
        context = {"meeting_id": meeting_info.id, "chunk_index": index}

        # Stage 1: transcription
        options = TranscribeOptions(
            max_retries=max_retries,
            mime_type=mime_type or mime_type_for(detect_audio_format(chunk.data)),
        )
        try:
            transcription = self.transcriber.transcribe(chunk.data, chunk_info, options)
        except PipelineError as exc:
            raise PipelineError.wrap(exc, stage="transcribe", **context)
        except Exception as exc:
            raise ChunkProcessingError.wrap(exc, "AI003", stage="transcribe", **context) from exc

        text = (transcription.transcription or "").strip()
        if len(text) < self.budget.min_transcription_chars:
            raise ChunkProcessingError(
                "AI003",
                f"Chunk {index + 1} transcription too short ({len(text)} characters)",
                stage="transcribe",
                **context,
            )

        # Stage 2: summarization
        try:
            summary = self.summarizer.summarize(text, chunk_info, max_retries=max_retries)
        except PipelineError as exc:
            raise PipelineError.wrap(exc, stage="summarize", **context)
        except Exception as exc:
            raise ChunkProcessingError.wrap(exc, "AI004", stage="summarize", **context) from exc
        if summary is None or summary.structured_summary is None:
            raise ChunkProcessingError(
                "AI004", f"Chunk {index + 1} produced no summary", stage="summarize", **context
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Chunk %d (%s) processed in %dms: %d chars",
            index + 1,
            time_range.format(),
            elapsed_ms,
            len(text),
        )
        return ChunkSuccess(
            chunk_index=index,
            time_range=time_range,
            transcript=text,
            structured_summary=summary.structured_summary,
            processing_time_ms=elapsed_ms,
        )


@dataclass
class ChunkBatch:
    """Outcome of the sequential chunk loop.

    ``abandoned`` counts chunks never attempted because the wall-clock
    ceiling was reached; they are missing, not failed.
    """

    results: list[ChunkResult] = field(default_factory=list)
    planned: int = 0
    abandoned: int = 0

    @property
    def successes(self) -> list[ChunkSuccess]:
        return [r for r in self.results if isinstance(r, ChunkSuccess)]

    @property
    def failures(self) -> list[ChunkFailure]:
        return [r for r in self.results if isinstance(r, ChunkFailure)]


def run_chunk_batch(
    processor: ChunkProcessor,
    chunks: list[AudioChunk],
    meeting_info: MeetingInfo,
    time_budget_seconds: float,
    fast_mode: bool = False,
    clock: Callable[[], float] = time.monotonic,
    mime_type: str | None = None,
) -> ChunkBatch:
    """Process *chunks* in index order, converting failures into placeholders."""
    batch = ChunkBatch(planned=len(chunks))
    started = clock()

    for position, chunk in enumerate(chunks):
        elapsed = clock() - started
        if elapsed > time_budget_seconds:
            batch.abandoned = len(chunks) - position
            logger.warning(
                "Time budget of %.0fs exceeded after %.0fs; abandoning %d remaining chunks",
                time_budget_seconds,
                elapsed,
                batch.abandoned,
            )
            break

        try:
            result: ChunkResult = processor.process(
                chunk,
                chunk.index,
                meeting_info,
                fast_mode=fast_mode,
                total_chunks=len(chunks),
                mime_type=mime_type,
            )
        except Exception as exc:
            logger.exception("Chunk %d/%d failed", chunk.index + 1, len(chunks))
            fallback = create_chunk_fallback(chunk, exc)
            result = ChunkFailure(
                chunk_index=chunk.index,
                time_range=chunk_time_range(chunk),
                error=exc.message if isinstance(exc, PipelineError) else str(exc),
                fallback=fallback,
            )
        batch.results.append(result)

    logger.info(
        "Chunk batch finished: %d succeeded, %d failed, %d abandoned",
        len(batch.successes),
        len(batch.failures),
        batch.abandoned,
    )
    return batch
