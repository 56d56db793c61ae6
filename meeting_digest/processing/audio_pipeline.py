"""Direct audio processing: quality gate, then the standard or chunked flow."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from meeting_digest.audio.chunker import AudioChunker, detect_audio_format, mime_type_for
from meeting_digest.audio.quality import check_audio_quality
from meeting_digest.clients.base import Summarizer, TranscribeOptions, Transcriber
from meeting_digest.errors import ChunkingError, PipelineError
from meeting_digest.pipeline_config import (
    BYTES_PER_MB,
    ChunkBudget,
    ChunkingThresholds,
    ProcessingMethod,
)
from meeting_digest.processing.chunk_processor import (
    ChunkProcessor,
    estimate_chunk_processing_seconds,
    run_chunk_batch,
)
from meeting_digest.processing.merger import merge_chunk_results
from meeting_digest.processing.models import ProcessingResult
from meeting_digest.recordings.models import MeetingInfo
from meeting_digest.timing import StageTrace

logger = logging.getLogger(__name__)

LOW_QUALITY_WARNINGS = (
    "Audio quality was low",
    "Processing continued after the quality check",
    "Consider re-extracting higher quality audio from the video recording",
)
AUDIO_ONLY_WARNINGS = (
    "No video file was available",
    "Transcript and summary were produced from the audio file only",
    "Screen-share content is not included",
)


class AudioPipeline:
    """Turn an audio buffer into a transcript and structured summary.

    Audio under the chunking thresholds goes through one transcribe and one
    summarize call. Larger audio is split, each chunk is processed in order
    under a wall-clock budget, and the chunk outcomes are merged.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        summarizer: Summarizer,
        *,
        chunker: AudioChunker | None = None,
        thresholds: ChunkingThresholds | None = None,
        budget: ChunkBudget | None = None,
        min_transcription_chars: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.chunker = chunker or AudioChunker()
        self.thresholds = thresholds or ChunkingThresholds()
        self.budget = budget or ChunkBudget()
        self.min_transcription_chars = min_transcription_chars
        self.clock = clock
        self.chunk_processor = ChunkProcessor(transcriber, summarizer, self.budget)

    def process(self, buffer: bytes, file_name: str, meeting_info: MeetingInfo) -> ProcessingResult:
        trace = StageTrace(f"audio:{meeting_info.id}")
        started = time.monotonic()

        with trace.stage("quality_check"):
            quality = check_audio_quality(buffer)

        duration = meeting_info.duration_seconds
        if self.thresholds.should_chunk(len(buffer), duration):
            logger.info(
                "%s: %.1fMB / %.0fs exceeds chunking thresholds; processing in chunks",
                file_name,
                len(buffer) / BYTES_PER_MB,
                duration,
            )
            result = self._process_chunked(buffer, meeting_info, trace)
        else:
            result = self._process_standard(buffer, meeting_info, trace)

        result.quality_report = quality
        if quality.is_low_quality:
            result.add_warnings(*LOW_QUALITY_WARNINGS)
        if meeting_info.has_video_file is False:
            result.add_warnings(*AUDIO_ONLY_WARNINGS)
        result.stage_timings = trace.durations()
        result.total_processing_time_ms = int((time.monotonic() - started) * 1000)
        return result

    def _process_standard(
        self, buffer: bytes, meeting_info: MeetingInfo, trace: StageTrace
    ) -> ProcessingResult:
        max_retries = self.budget.default_max_retries
        options = TranscribeOptions(
            max_retries=max_retries,
            mime_type=mime_type_for(detect_audio_format(buffer)),
        )
        context = {"meeting_id": meeting_info.id}

        with trace.stage("transcribe"):
            try:
                transcription = self.transcriber.transcribe(buffer, meeting_info, options)
            except PipelineError as exc:
                raise PipelineError.wrap(exc, stage="transcribe", **context)
            except Exception as exc:
                raise PipelineError.wrap(exc, "AI003", stage="transcribe", **context) from exc
            text = (transcription.transcription or "").strip()
            if len(text) < self.min_transcription_chars:
                raise PipelineError(
                    "AI003",
                    f"Transcription failed or too short ({len(text)} characters)",
                    stage="transcribe",
                    **context,
                )

        with trace.stage("summarize"):
            try:
                summary = self.summarizer.summarize(text, meeting_info, max_retries=max_retries)
            except PipelineError as exc:
                raise PipelineError.wrap(exc, stage="summarize", **context)
            except Exception as exc:
                raise PipelineError.wrap(exc, "AI004", stage="summarize", **context) from exc
            if summary is None or summary.structured_summary is None:
                raise PipelineError("AI004", stage="summarize", **context)

        return ProcessingResult(
            success=True,
            method=ProcessingMethod.AUDIO.value,
            transcript=text,
            structured_summary=summary.structured_summary,
            meeting_info=meeting_info,
            processed_at=datetime.now(timezone.utc).isoformat(),
            total_processing_time_ms=0,
        )

    def _process_chunked(
        self, buffer: bytes, meeting_info: MeetingInfo, trace: StageTrace
    ) -> ProcessingResult:
        with trace.stage("split"):
            split = self.chunker.split(buffer, meeting_info=meeting_info)
            validation = self.chunker.validate(split.chunks, split.metadata.total_duration)
            if not validation.is_valid:
                raise ChunkingError(
                    message="Invalid chunk layout: " + "; ".join(validation.errors),
                    meeting_id=meeting_info.id,
                )
            for warning in validation.warnings:
                logger.warning("Chunk validation: %s", warning)

        estimate = estimate_chunk_processing_seconds(
            len(buffer),
            meeting_info,
            chunk_seconds=split.metadata.chunk_duration,
            seconds_per_chunk=self.budget.seconds_per_chunk_estimate,
        )
        fast_mode = estimate > self.budget.fast_mode_threshold_seconds
        if fast_mode:
            logger.warning(
                "Estimated %.0fs for %d chunks exceeds %.0fs; using fast mode (%d retries)",
                estimate,
                split.metadata.total_chunks,
                self.budget.fast_mode_threshold_seconds,
                self.budget.max_retries(True),
            )

        with trace.stage("chunks"):
            batch = run_chunk_batch(
                self.chunk_processor,
                split.chunks,
                meeting_info,
                self.budget.time_budget_seconds,
                fast_mode=fast_mode,
                clock=self.clock,
                mime_type=mime_type_for(split.metadata.audio_format),
            )

        with trace.stage("merge"):
            merged = merge_chunk_results(
                batch.results,
                total_chunks=batch.planned,
                chunking_method=split.metadata.split_method,
            )

        return ProcessingResult(
            success=True,
            method=ProcessingMethod.AUDIO_CHUNKED.value,
            transcript=merged.transcript,
            structured_summary=merged.structured_summary,
            meeting_info=meeting_info,
            processed_at=datetime.now(timezone.utc).isoformat(),
            total_processing_time_ms=0,
            warnings=list(merged.warnings) or None,
            chunk_metadata=merged.chunk_metadata,
        )
