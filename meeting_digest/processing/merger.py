"""Combine per-chunk outcomes into one transcript, summary and warnings list."""

from __future__ import annotations

import logging
import time
from typing import Any

from meeting_digest.errors import MergeError
from meeting_digest.processing.models import (
    NOT_AVAILABLE,
    ChunkFailure,
    ChunkMetadata,
    ChunkResult,
    ChunkSuccess,
    MergedResult,
    StructuredSummary,
    normalize_item,
)

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPT_MARKER = "[empty transcript]"
GOOD_QUALITY_MARKERS = ("good", "excellent")
POOR_QUALITY_MARKERS = ("poor", "bad")
COMPLETENESS_THRESHOLD = 80
UNKNOWN_PURPOSE = "Unknown"

QUALITY_OVERALL_GOOD = "overall good"
QUALITY_PARTIAL = "partially problematic"
QUALITY_ISSUES = "quality issues"
QUALITY_UNKNOWN = "no quality information"


def _has_marker(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def merge_transcripts(results: list[ChunkResult]) -> str:
    """Concatenate chunk transcripts in index order under ``--- M:SS-M:SS ---`` labels."""
    parts: list[str] = []
    for result in sorted(results, key=lambda r: r.chunk_index):
        label = f"--- {result.time_range.format()} ---"
        if isinstance(result, ChunkSuccess):
            text = result.transcript.strip()
            if not text:
                logger.warning("Chunk %d returned an empty transcript", result.chunk_index + 1)
                text = EMPTY_TRANSCRIPT_MARKER
            parts.append(f"{label}\n{text}")
        else:
            parts.append(f"{label}\n{result.fallback.transcript}")
    return "\n\n".join(parts)


def aggregate_audio_quality(successes: list[ChunkSuccess]) -> str:
    reports = [
        s.structured_summary.audio_quality
        for s in successes
        if s.structured_summary.audio_quality and s.structured_summary.audio_quality != NOT_AVAILABLE
    ]
    if not reports:
        return QUALITY_UNKNOWN

    good = sum(1 for r in reports if _has_marker(r, GOOD_QUALITY_MARKERS))
    ratio = good / len(reports)
    if ratio >= 0.8:
        return QUALITY_OVERALL_GOOD
    if ratio >= 0.5:
        return QUALITY_PARTIAL
    return QUALITY_ISSUES


def merge_summaries(successes: list[ChunkSuccess]) -> StructuredSummary:
    """Merge successful chunk summaries; *successes* must be non-empty."""
    ordered = sorted(successes, key=lambda s: s.chunk_index)
    base = ordered[0].structured_summary

    attendees: list[str] = []
    discussions: list[dict[str, Any]] = []
    decisions: list[dict[str, Any]] = []
    next_actions: list[dict[str, Any]] = []

    for success in ordered:
        summary = success.structured_summary
        for attendee in summary.attendees_and_companies:
            if attendee not in attendees:
                attendees.append(attendee)
        chunk_info = {
            "chunk_index": success.chunk_index,
            "time_range": success.time_range.format(),
        }
        discussions.extend(
            {**normalize_item(d, "topic_title"), "chunk_info": chunk_info}
            for d in summary.discussions_by_topic
        )
        decisions.extend(summary.decisions)
        next_actions.extend(summary.next_actions_with_due_date)

    return StructuredSummary(
        meeting_purpose=base.meeting_purpose or UNKNOWN_PURPOSE,
        client_name=base.client_name,
        attendees_and_companies=attendees,
        materials=list(base.materials),
        discussions_by_topic=discussions,
        decisions=decisions,
        next_actions_with_due_date=next_actions,
        audio_quality=aggregate_audio_quality(ordered),
    )


def compile_warnings(
    successes: list[ChunkSuccess],
    failures: list[ChunkFailure],
    total_chunks: int,
    missing_chunks: int = 0,
) -> list[str]:
    warnings: list[str] = []

    if failures:
        warnings.append(f"{len(failures)}/{total_chunks} chunks failed to process")
        ranges = ", ".join(
            f.time_range.format() for f in sorted(failures, key=lambda f: f.chunk_index)
        )
        warnings.append(f"Failed time ranges: {ranges}")

    if missing_chunks:
        warnings.append(
            f"{missing_chunks}/{total_chunks} chunks were not processed: time budget exceeded"
        )

    completion = completion_rate(len(successes), total_chunks)
    if completion < COMPLETENESS_THRESHOLD:
        warnings.append(f"Processing completeness is {completion}%; some content may be missing")

    poor = [
        s for s in successes if _has_marker(s.structured_summary.audio_quality, POOR_QUALITY_MARKERS)
    ]
    if poor:
        warnings.append(f"{len(poor)} chunks reported audio quality problems")

    return warnings


def completion_rate(successful: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(successful / total * 100)


def merge_chunk_results(
    results: list[ChunkResult],
    *,
    total_chunks: int | None = None,
    chunking_method: str = "time_based",
) -> MergedResult:
    """Merge chunk outcomes into a single result.

    Args:
        results: Outcomes of the chunks that were attempted, in any order.
        total_chunks: Planned chunk count. Chunks planned but absent from
            *results* are reported as missing. Defaults to ``len(results)``.
        chunking_method: Recorded in the chunk metadata.

    Raises:
        MergeError: If no chunk succeeded.
    """
    started = time.monotonic()
    total = max(total_chunks if total_chunks is not None else len(results), len(results))
    successes = [r for r in results if isinstance(r, ChunkSuccess)]
    failures = [r for r in results if isinstance(r, ChunkFailure)]
    missing = total - len(results)

    if not successes:
        ranges = ", ".join(f.time_range.format() for f in failures) or "none"
        raise MergeError(
            message=(
                f"All chunks failed: {len(failures)} failed, {missing} not processed "
                f"(failed time ranges: {ranges})"
            ),
            failed_chunks=len(failures),
        )

    transcript = merge_transcripts(results)
    summary = merge_summaries(successes)
    warnings = compile_warnings(successes, failures, total, missing)

    metadata = ChunkMetadata(
        total_chunks=total,
        successful_chunks=len(successes),
        failed_chunks=len(failures),
        missing_chunks=missing,
        completion_rate=completion_rate(len(successes), total),
        merge_processing_time_ms=int((time.monotonic() - started) * 1000),
        chunking_method=chunking_method,
    )
    logger.info(
        "Merged %d/%d chunks (%d failed, %d missing): %d chars, %d discussions",
        len(successes),
        total,
        len(failures),
        missing,
        len(transcript),
        len(summary.discussions_by_topic),
    )
    return MergedResult(
        transcript=transcript,
        structured_summary=summary,
        warnings=warnings,
        chunk_metadata=metadata,
    )
