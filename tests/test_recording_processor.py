"""Tests for recording orchestration: fallback, archiving, notification, batches."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from meeting_digest.clients.base import DocumentLinks
from meeting_digest.errors import PipelineError
from meeting_digest.processing.models import ProcessingResult, StructuredSummary, TranscriptFallback
from meeting_digest.recordings.models import MeetingInfo, Recording
from meeting_digest.recordings.processor import RecordingProcessor, format_notification


def _recording(recording_id: str = "m-1", with_audio: bool = True) -> Recording:
    files = [
        {"file_type": "MP4", "file_size": 5000, "download_url": "https://zoom.example/mp4"},
        {"file_type": "TRANSCRIPT", "file_size": 100, "download_url": "https://zoom.example/vtt"},
    ]
    if with_audio:
        files.append(
            {
                "file_type": "M4A",
                "file_size": 4000,
                "download_url": "https://zoom.example/m4a",
                "file_name": "audio_only.m4a",
            }
        )
    return Recording.from_dict(
        {
            "id": recording_id,
            "topic": f"Meeting {recording_id}",
            "start_time": "2025-03-04T10:00:00Z",
            "duration": 30,
            "host_email": "dana@example.com",
            "recording_files": files,
        }
    )


def _result(method: str = "transcript-api", warnings: list[str] | None = None) -> ProcessingResult:
    return ProcessingResult(
        success=True,
        method=method,
        transcript="Alice: hello",
        structured_summary=StructuredSummary(
            meeting_purpose="Kickoff",
            decisions=[{"decision": "Ship v2", "owner": "Alice"}],
            next_actions_with_due_date=[{"action": "Write plan", "assignee": "Bob", "due_date": "2025-03-10"}],
        ),
        meeting_info=MeetingInfo(id="m-1", topic="Kickoff", start_time="2025-03-04T10:00:00Z"),
        processed_at="2025-03-04T11:00:00+00:00",
        total_processing_time_ms=1200,
        warnings=warnings,
    )


def _processor(
    transcript_outcome: ProcessingResult | TranscriptFallback | Exception | None = None,
    store: MagicMock | None = None,
    notifier: MagicMock | None = None,
) -> RecordingProcessor:
    client = MagicMock()
    client.download_as_buffer.return_value = b"audio-bytes"
    transcript_pipeline = MagicMock()
    if isinstance(transcript_outcome, Exception):
        transcript_pipeline.process.side_effect = transcript_outcome
    else:
        transcript_pipeline.process.return_value = transcript_outcome or _result()
    audio_pipeline = MagicMock()
    audio_pipeline.process.side_effect = lambda *args: _result(method="audio")
    return RecordingProcessor(
        client,
        transcript_pipeline,
        audio_pipeline,
        document_store=store,
        notifier=notifier,
        sleep=MagicMock(),
    )


FALLBACK = TranscriptFallback(
    requires_fallback=True,
    error="Transcript not available: Transcript file size is 0 or undefined",
    error_code="ZM004",
    reason="transcript_not_available",
    stage="check_availability",
)


class TestProcess:
    def test_transcript_success(self) -> None:
        processor = _processor()
        result = processor.process(_recording())

        assert result.method == "transcript-api"
        processor.audio_pipeline.process.assert_not_called()
        info = processor.transcript_pipeline.process.call_args.args[1]
        assert info.host_name == "dana"
        assert info.has_video_file is True

    def test_falls_back_to_audio(self) -> None:
        processor = _processor(FALLBACK)
        result = processor.process(_recording())

        assert result.method == "audio"
        processor.recording_client.download_as_buffer.assert_called_once_with("https://zoom.example/m4a")
        buffer, file_name, _ = processor.audio_pipeline.process.call_args.args
        assert buffer == b"audio-bytes"
        assert file_name == "audio_only.m4a"
        assert result.warnings == [
            "Transcript unavailable (transcript_not_available); summary produced from the audio recording"
        ]

    def test_no_fallback_raises_original_error(self) -> None:
        outcome = TranscriptFallback(False, "AI summary generation failed", "AI004", stage="summarize")
        processor = _processor(outcome)
        with pytest.raises(PipelineError) as exc_info:
            processor.process(_recording())
        assert exc_info.value.code == "AI004"
        processor.audio_pipeline.process.assert_not_called()

    def test_fallback_without_audio_file(self) -> None:
        processor = _processor(FALLBACK)
        with pytest.raises(PipelineError) as exc_info:
            processor.process(_recording(with_audio=False))
        assert exc_info.value.code == "ZM004"

    def test_audio_download_failure(self) -> None:
        processor = _processor(FALLBACK)
        processor.recording_client.download_as_buffer.side_effect = ConnectionError("reset by peer")
        with pytest.raises(PipelineError) as exc_info:
            processor.process(_recording())
        assert exc_info.value.code == "ZM010"
        assert "reset by peer" in exc_info.value.message


class TestSideEffects:
    def test_documents_are_archived_by_month(self) -> None:
        store = MagicMock()
        store.save.return_value = DocumentLinks("https://docs/t.md", "https://docs/s.md")
        processor = _processor(store=store)
        result = processor.process(_recording())

        assert store.save.call_args.args[3] == "recordings/2025/03"
        assert result.documents == {
            "transcription_link": "https://docs/t.md",
            "summary_link": "https://docs/s.md",
        }

    def test_store_failure_becomes_warning(self) -> None:
        store = MagicMock()
        store.save.side_effect = PipelineError("DS003", "bucket missing")
        processor = _processor(store=store)
        result = processor.process(_recording())

        assert result.documents is None
        assert result.warnings == ["Document upload failed: [DS003] bucket missing"]

    def test_notifier_failure_is_not_fatal(self) -> None:
        notifier = MagicMock()
        notifier.post.side_effect = PipelineError("NT003")
        processor = _processor(notifier=notifier)
        result = processor.process(_recording())
        assert result.success is True
        notifier.post.assert_called_once()

    def test_notification_text(self) -> None:
        text = format_notification(
            _result(warnings=["1/5 chunks failed to process"])
        )
        assert text.startswith("*Kickoff*")
        assert "Purpose: Kickoff" in text
        assert "- Ship v2 (Alice)" in text
        assert "- Write plan (Bob, 2025-03-10)" in text
        assert "- 1/5 chunks failed to process" in text


class TestProcessBatch:
    def test_failure_is_isolated(self) -> None:
        processor = _processor()
        processor.transcript_pipeline.process.side_effect = [
            _result(),
            PipelineError("ZM002"),
            _result(),
        ]
        batch = processor.process_batch([_recording("a"), _recording("b"), _recording("c")])

        assert len(batch.processed) == 2
        assert batch.failures == [
            {"recording_id": "b", "topic": "Meeting b", "error": "Zoom API rate limit exceeded", "code": "ZM002"}
        ]
        assert processor.sleep.call_count == 2

    def test_limit_and_skipped(self) -> None:
        processor = _processor()
        recordings = [_recording(str(i)) for i in range(7)]
        batch = processor.process_batch(recordings, max_recordings=5)

        assert len(batch.processed) == 5
        assert batch.skipped == 2
        assert processor.transcript_pipeline.process.call_count == 5

    def test_to_dict(self) -> None:
        processor = _processor()
        data = processor.process_batch([_recording()]).to_dict()
        assert data["processed"] == 1
        assert data["failed"] == 0
        assert data["skipped"] == 0
        assert data["results"][0]["method"] == "transcript-api"
        processor.sleep.assert_not_called()
