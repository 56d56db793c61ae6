"""Tests for per-chunk processing, the chunk loop and the result merger."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from meeting_digest.audio.models import AudioChunk
from meeting_digest.clients.base import SummaryResult, TranscriptionResult
from meeting_digest.errors import ChunkProcessingError, MergeError, PipelineError
from meeting_digest.pipeline_config import ChunkBudget
from meeting_digest.processing.chunk_processor import (
    ChunkProcessor,
    create_chunk_fallback,
    estimate_chunk_processing_seconds,
    run_chunk_batch,
)
from meeting_digest.processing.merger import (
    aggregate_audio_quality,
    merge_chunk_results,
)
from meeting_digest.processing.models import (
    ChunkFailure,
    ChunkSuccess,
    StructuredSummary,
    TimeRange,
)
from meeting_digest.recordings.models import MeetingInfo

MEETING = MeetingInfo(id="m-1", topic="Design review", duration=50)


def _chunks(count: int, seconds: float = 600) -> list[AudioChunk]:
    return [
        AudioChunk(
            data=f"chunk-{i}".encode(),
            start_time=i * seconds,
            end_time=(i + 1) * seconds,
            index=i,
            is_first=i == 0,
            is_last=i == count - 1,
        )
        for i in range(count)
    ]


def _summary(**overrides: object) -> StructuredSummary:
    base = {
        "meeting_purpose": "Review the API design",
        "client_name": "Acme",
        "attendees_and_companies": ["Alice (Acme)"],
        "discussions_by_topic": [{"topic_title": "Auth"}],
        "decisions": [{"decision": "Use OAuth"}],
        "next_actions_with_due_date": [{"action": "Draft proposal"}],
        "audio_quality": "good",
    }
    base.update(overrides)
    return StructuredSummary(**base)  # type: ignore[arg-type]


def _processor(
    transcripts: list[str | Exception] | None = None,
    budget: ChunkBudget | None = None,
) -> ChunkProcessor:
    transcriber = MagicMock()
    transcriber.transcribe.side_effect = [
        t if isinstance(t, Exception) else TranscriptionResult(transcription=t)
        for t in (transcripts or ["A long enough transcript for this chunk."] * 10)
    ]
    summarizer = MagicMock()
    summarizer.summarize.return_value = SummaryResult(structured_summary=_summary())
    return ChunkProcessor(transcriber, summarizer, budget)


def _success(index: int, **summary: object) -> ChunkSuccess:
    return ChunkSuccess(
        chunk_index=index,
        time_range=TimeRange(index * 600, (index + 1) * 600),
        transcript=f"text of chunk {index}",
        structured_summary=_summary(**summary),
    )


def _failure(index: int) -> ChunkFailure:
    chunk = _chunks(index + 1)[index]
    return ChunkFailure(
        chunk_index=index,
        time_range=TimeRange(chunk.start_time, chunk.end_time),
        error="boom",
        fallback=create_chunk_fallback(chunk, RuntimeError("boom")),
    )


class TestChunkProcessor:
    def test_success(self) -> None:
        processor = _processor()
        chunk = _chunks(2)[1]
        result = processor.process(chunk, 1, MEETING, total_chunks=2)

        assert result.chunk_index == 1
        assert result.time_range.format() == "10:00-20:00"
        assert result.structured_summary.client_name == "Acme"

        _, info, options = processor.transcriber.transcribe.call_args.args
        assert info.chunk_info["time_range"] == "10:00-20:00"
        assert info.chunk_info["total_chunks"] == 2
        assert options.max_retries == 5

    def test_short_transcription_never_summarizes(self) -> None:
        processor = _processor(["too short"])
        with pytest.raises(ChunkProcessingError) as exc_info:
            processor.process(_chunks(1)[0], 0, MEETING)
        assert exc_info.value.code == "AI003"
        assert processor.summarizer.summarize.call_count == 0

    def test_transcriber_error_never_summarizes(self) -> None:
        processor = _processor([RuntimeError("provider down")])
        with pytest.raises(ChunkProcessingError) as exc_info:
            processor.process(_chunks(1)[0], 0, MEETING)
        assert exc_info.value.context["stage"] == "transcribe"
        processor.summarizer.summarize.assert_not_called()

    def test_pipeline_error_keeps_its_code(self) -> None:
        processor = _processor([PipelineError("AI001")])
        with pytest.raises(PipelineError) as exc_info:
            processor.process(_chunks(1)[0], 0, MEETING)
        assert exc_info.value.code == "AI001"
        assert exc_info.value.context["chunk_index"] == 0

    def test_missing_summary(self) -> None:
        processor = _processor()
        processor.summarizer.summarize.return_value = None
        with pytest.raises(ChunkProcessingError) as exc_info:
            processor.process(_chunks(1)[0], 0, MEETING)
        assert exc_info.value.code == "AI004"

    def test_fast_mode_reduces_retries(self) -> None:
        processor = _processor()
        processor.process(_chunks(1)[0], 0, MEETING, fast_mode=True)
        options = processor.transcriber.transcribe.call_args.args[2]
        assert options.max_retries == 2
        assert processor.summarizer.summarize.call_args.kwargs["max_retries"] == 2

    def test_custom_minimum_length(self) -> None:
        processor = _processor(["exactly20characters!"], ChunkBudget(min_transcription_chars=25))
        with pytest.raises(ChunkProcessingError):
            processor.process(_chunks(1)[0], 0, MEETING)


class TestChunkFallback:
    def test_placeholder_names_range_and_error(self) -> None:
        chunk = _chunks(3)[2]
        fallback = create_chunk_fallback(chunk, PipelineError("AI003", "no speech"))
        assert fallback.transcript == "[Chunk 3 (20:00-30:00): processing failed - no speech]"
        assert fallback.structured_summary.meeting_purpose.startswith("N/A")
        assert fallback.structured_summary.decisions == []

    def test_estimate(self) -> None:
        assert estimate_chunk_processing_seconds(1000, MEETING) == 5 * 45
        assert estimate_chunk_processing_seconds(1000, MEETING, seconds_per_chunk=30) == 150


class TestRunChunkBatch:
    def test_failure_is_isolated(self) -> None:
        ok = "A long enough transcript for this chunk."
        processor = _processor([ok, ok, RuntimeError("decode error"), ok, ok])
        batch = run_chunk_batch(processor, _chunks(5), MEETING, time_budget_seconds=1000)

        assert batch.planned == 5
        assert batch.abandoned == 0
        assert [type(r).__name__ for r in batch.results] == [
            "ChunkSuccess",
            "ChunkSuccess",
            "ChunkFailure",
            "ChunkSuccess",
            "ChunkSuccess",
        ]
        failure = batch.failures[0]
        assert failure.chunk_index == 2
        assert "decode error" in failure.error
        assert "20:00-30:00" in failure.fallback.transcript

        merged = merge_chunk_results(batch.results, total_chunks=batch.planned)
        assert merged.chunk_metadata.successful_chunks == 4
        assert merged.chunk_metadata.failed_chunks == 1
        assert merged.chunk_metadata.completion_rate == 80
        assert "Failed time ranges: 20:00-30:00" in merged.warnings

    def test_time_budget_abandons_remaining_chunks(self) -> None:
        ticks = iter([0.0, 0.0, 100.0, 300.0])
        processor = _processor()
        batch = run_chunk_batch(
            processor,
            _chunks(5),
            MEETING,
            time_budget_seconds=250,
            clock=lambda: next(ticks),
        )
        assert len(batch.results) == 2
        assert batch.abandoned == 3
        assert processor.transcriber.transcribe.call_count == 2

    def test_fast_mode_is_passed_through(self) -> None:
        processor = _processor()
        run_chunk_batch(processor, _chunks(2), MEETING, time_budget_seconds=1000, fast_mode=True)
        for call in processor.transcriber.transcribe.call_args_list:
            assert call.args[2].max_retries == 2


class TestMergeChunkResults:
    def test_one_of_five_failed(self) -> None:
        results = [_success(0), _success(1), _failure(2), _success(3), _success(4)]
        merged = merge_chunk_results(results)

        meta = merged.chunk_metadata
        assert meta.successful_chunks == 4
        assert meta.failed_chunks == 1
        assert meta.completion_rate == 80
        assert "1/5 chunks failed to process" in merged.warnings
        assert "Failed time ranges: 20:00-30:00" in merged.warnings
        assert not any("completeness" in w for w in merged.warnings)

    def test_all_succeeded_has_no_failure_warnings(self) -> None:
        merged = merge_chunk_results([_success(0), _success(1)])
        assert merged.chunk_metadata.completion_rate == 100
        assert merged.warnings == []

    def test_all_failed_raises(self) -> None:
        with pytest.raises(MergeError) as exc_info:
            merge_chunk_results([_failure(0), _failure(1)])
        assert exc_info.value.code == "SY011"
        assert "2 failed" in exc_info.value.message
        assert "0:00-10:00" in exc_info.value.message
        assert "10:00-20:00" in exc_info.value.message

    def test_transcript_is_ordered_and_labelled(self) -> None:
        merged = merge_chunk_results([_success(2), _failure(1), _success(0)])
        transcript = merged.transcript
        assert transcript.index("--- 0:00-10:00 ---") < transcript.index("--- 10:00-20:00 ---")
        assert transcript.index("--- 10:00-20:00 ---") < transcript.index("--- 20:00-30:00 ---")
        assert "text of chunk 0" in transcript
        assert "[Chunk 2 (10:00-20:00): processing failed - boom]" in transcript

    def test_empty_transcript_is_marked(self) -> None:
        empty = ChunkSuccess(0, TimeRange(0, 600), "   ", _summary())
        merged = merge_chunk_results([empty])
        assert "[empty transcript]" in merged.transcript

    def test_summary_merge(self) -> None:
        merged = merge_chunk_results(
            [
                _success(1, meeting_purpose="Later purpose", attendees_and_companies=["Bob", "Alice (Acme)"]),
                _success(0, attendees_and_companies=["Alice (Acme)", "Carol"]),
            ]
        )
        summary = merged.structured_summary
        assert summary.meeting_purpose == "Review the API design"
        assert summary.attendees_and_companies == ["Alice (Acme)", "Carol", "Bob"]
        assert len(summary.decisions) == 2
        assert len(summary.next_actions_with_due_date) == 2
        assert summary.discussions_by_topic[0]["chunk_info"] == {
            "chunk_index": 0,
            "time_range": "0:00-10:00",
        }
        assert summary.discussions_by_topic[1]["chunk_info"]["time_range"] == "10:00-20:00"

    def test_missing_chunks_lower_completion(self) -> None:
        merged = merge_chunk_results([_success(0), _success(1)], total_chunks=5)
        meta = merged.chunk_metadata
        assert meta.total_chunks == 5
        assert meta.missing_chunks == 3
        assert meta.completion_rate == 40
        assert "3/5 chunks were not processed: time budget exceeded" in merged.warnings
        assert any("completeness is 40%" in w for w in merged.warnings)

    def test_quality_problem_warning(self) -> None:
        merged = merge_chunk_results(
            [_success(0, audio_quality="poor, issues: echo"), _success(1), _success(2)]
        )
        assert "1 chunks reported audio quality problems" in merged.warnings

    def test_chunking_method_recorded(self) -> None:
        merged = merge_chunk_results([_success(0)], chunking_method="time_based")
        assert merged.chunk_metadata.chunking_method == "time_based"


class TestAggregateAudioQuality:
    def test_overall_good(self) -> None:
        assert aggregate_audio_quality([_success(i) for i in range(5)]) == "overall good"

    def test_partially_problematic(self) -> None:
        results = [_success(0), _success(1, audio_quality="fair"), _success(2, audio_quality="Excellent")]
        assert aggregate_audio_quality(results) == "partially problematic"

    def test_quality_issues(self) -> None:
        results = [_success(0, audio_quality="poor"), _success(1, audio_quality="fair")]
        assert aggregate_audio_quality(results) == "quality issues"

    def test_no_reports(self) -> None:
        assert aggregate_audio_quality([_success(0, audio_quality="N/A")]) == "no quality information"


class TestSummaryNormalization:
    def test_string_topics_from_model_output(self) -> None:
        summary = StructuredSummary.from_dict(
            {
                "meeting_purpose": "Plan Q3",
                "discussions_by_topic": ["Budget", "Hiring"],
                "decisions": ["Freeze hiring"],
                "next_actions_with_due_date": ["Send budget draft"],
            }
        )
        assert summary.discussions_by_topic == [{"topic_title": "Budget"}, {"topic_title": "Hiring"}]
        assert summary.decisions == [{"decision": "Freeze hiring"}]
        assert summary.next_actions_with_due_date == [{"action": "Send budget draft"}]

        merged = merge_chunk_results([ChunkSuccess(0, TimeRange(0, 600), "text", summary)])
        assert merged.structured_summary.discussions_by_topic[1] == {
            "topic_title": "Hiring",
            "chunk_info": {"chunk_index": 0, "time_range": "0:00-10:00"},
        }

    def test_merge_tolerates_string_topics_on_direct_construction(self) -> None:
        merged = merge_chunk_results([_success(0, discussions_by_topic=["Roadmap"])])
        assert merged.structured_summary.discussions_by_topic[0]["topic_title"] == "Roadmap"

    def test_empty_purpose_falls_back_to_unknown(self) -> None:
        merged = merge_chunk_results([_success(0, meeting_purpose=""), _success(1)])
        assert merged.structured_summary.meeting_purpose == "Unknown"
