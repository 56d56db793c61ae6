"""Transcript-reuse path: check, download, parse, format, summarize.

Any failure ends in a :class:`TranscriptFallback` that tells the caller
whether direct audio processing should take over.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from types import MappingProxyType

from meeting_digest.clients.base import RecordingClient, Summarizer
from meeting_digest.errors import PipelineError, canonical_code
from meeting_digest.pipeline_config import ProcessingMethod, TranscriptStage
from meeting_digest.processing.models import ProcessingResult, TranscriptFallback
from meeting_digest.recordings.models import MeetingInfo, Recording, RecordingFile
from meeting_digest.timing import StageTrace
from meeting_digest.transcript.formatter import format_for_summary
from meeting_digest.transcript.parser import parse_vtt, timecode_to_ms

logger = logging.getLogger(__name__)

TRANSCRIPT_SOURCE = "zoom-transcript"
FALLBACK_FAMILIES = ("ZM", "TS")
FALLBACK_MESSAGE_MARKERS = ("not available", "parsing failed")

FALLBACK_REASONS: MappingProxyType[str, str] = MappingProxyType(
    {
        "ZM001": "transcript_auth_failed",
        "ZM004": "transcript_not_available",
        "ZM010": "transcript_download_failed",
        "TS001": "vtt_parse_failed",
        "TS002": "transcript_timeout",
        "TS003": "transcript_empty",
    }
)
UNKNOWN_REASON = "unknown_error"

# 10 seconds per 100 KB, clamped
_SECONDS_PER_100KB = 10.0
_MIN_ESTIMATE_SECONDS = 10.0
_MAX_ESTIMATE_SECONDS = 60.0


def fallback_reason(code: str | None) -> str:
    """Human-readable fallback reason for an error code (deprecated codes accepted)."""
    if not code:
        return UNKNOWN_REASON
    return FALLBACK_REASONS.get(canonical_code(code), UNKNOWN_REASON)


def estimate_processing_seconds(file_size: int) -> float:
    estimate = file_size / 100_000 * _SECONDS_PER_100KB
    return max(_MIN_ESTIMATE_SECONDS, min(_MAX_ESTIMATE_SECONDS, estimate))


@dataclass(frozen=True)
class TranscriptAvailability:
    available: bool
    transcript_file: RecordingFile | None = None
    estimated_processing_seconds: float = 0.0
    error: str | None = None


class TranscriptPipeline:
    """Reuse the recording's WebVTT transcript track to build a summary."""

    def __init__(
        self,
        recording_client: RecordingClient,
        summarizer: Summarizer,
        *,
        fallback_enabled: bool = True,
        max_retries: int = 5,
    ) -> None:
        self.recording_client = recording_client
        self.summarizer = summarizer
        self.fallback_enabled = fallback_enabled
        self.max_retries = max_retries

    def check_availability(self, recording: Recording) -> TranscriptAvailability:
        transcript_file = recording.find_transcript_file()
        if transcript_file is None:
            return TranscriptAvailability(False, error="No transcript file found in recording")
        if not transcript_file.file_size:
            return TranscriptAvailability(
                False, transcript_file, error="Transcript file size is 0 or undefined"
            )
        return TranscriptAvailability(
            True,
            transcript_file,
            estimated_processing_seconds=estimate_processing_seconds(transcript_file.file_size),
        )

    def process(
        self, recording: Recording, meeting_info: MeetingInfo | None = None
    ) -> ProcessingResult | TranscriptFallback:
        meeting_info = meeting_info or MeetingInfo.from_recording(recording)
        trace = StageTrace(f"transcript:{recording.id}")
        started = time.monotonic()
        try:
            result = self._run(recording, meeting_info, trace)
        except Exception as exc:
            stage = trace.failed_stage() or TranscriptStage.FAILED.value
            logger.warning("Transcript path failed for %s at %s: %s", recording.id, stage, exc)
            return self.handle_error(exc, stage=stage)

        result.stage_timings = trace.durations()
        result.total_processing_time_ms = int((time.monotonic() - started) * 1000)
        return result

    def _run(self, recording: Recording, meeting_info: MeetingInfo, trace: StageTrace) -> ProcessingResult:
        context = {"meeting_id": recording.id}

        with trace.stage(TranscriptStage.CHECK_AVAILABILITY.value):
            availability = self.check_availability(recording)
            if not availability.available:
                raise PipelineError(
                    "ZM004", f"Transcript not available: {availability.error}", **context
                )
        transcript_file = availability.transcript_file
        context["file_name"] = transcript_file.file_name or transcript_file.id

        with trace.stage(TranscriptStage.DOWNLOAD.value):
            try:
                if not transcript_file.download_url:
                    raise ValueError("No download URL for transcript file")
                content = self.recording_client.download_as_buffer(transcript_file.download_url)
            except Exception as exc:
                raise PipelineError.wrap(exc, "ZM010", stage="download", **context) from exc
            logger.info("Downloaded transcript for %s: %d bytes", recording.id, len(content))

        with trace.stage(TranscriptStage.PARSE.value):
            try:
                parsed = parse_vtt(content)
            except Exception as exc:
                raise PipelineError.wrap(exc, "TS001", stage="parse", **context) from exc
            if not parsed.segments:
                raise PipelineError("TS003", stage="parse", **context)

        with trace.stage(TranscriptStage.FORMAT.value):
            formatted = format_for_summary(parsed)

        duration_ms = timecode_to_ms(parsed.metadata.duration)
        summary_info = replace(
            meeting_info,
            participant_count=parsed.metadata.speaker_count,
            duration=duration_ms / 60000 if duration_ms else meeting_info.duration,
            transcript_source=TRANSCRIPT_SOURCE,
        )
        with trace.stage(TranscriptStage.SUMMARIZE.value):
            try:
                summary = self.summarizer.summarize(
                    formatted, summary_info, max_retries=self.max_retries
                )
            except Exception as exc:
                raise PipelineError.wrap(exc, "AI004", stage="summarize", **context) from exc

        return ProcessingResult(
            success=True,
            method=ProcessingMethod.TRANSCRIPT.value,
            transcript=parsed.full_text,
            structured_summary=summary.structured_summary,
            meeting_info=summary_info,
            processed_at=datetime.now(timezone.utc).isoformat(),
            total_processing_time_ms=0,
            parsed_transcript=parsed,
        )

    def handle_error(self, exc: BaseException, stage: str | None = None) -> TranscriptFallback:
        """Decide whether a transcript-path failure should fall back to audio."""
        if isinstance(exc, PipelineError):
            code, message = exc.code, exc.message
        else:
            raw = getattr(exc, "code", None)
            code = canonical_code(raw if isinstance(raw, str) else None)
            message = str(exc)

        if not self.fallback_enabled:
            return TranscriptFallback(False, message, code, stage=stage)

        lowered = message.lower()
        requires_fallback = code[:2] in FALLBACK_FAMILIES or any(
            marker in lowered for marker in FALLBACK_MESSAGE_MARKERS
        )
        return TranscriptFallback(
            requires_fallback, message, code, reason=fallback_reason(code), stage=stage
        )
