"""End-to-end processing of Zoom recordings.

Each recording tries the transcript track first and falls back to the audio
file when the transcript path fails with a fallback-eligible error. Results
are archived in the document store and announced through the notifier.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from meeting_digest.clients.base import DocumentStore, Notifier, RecordingClient
from meeting_digest.errors import PipelineError
from meeting_digest.processing.audio_pipeline import AudioPipeline
from meeting_digest.processing.models import ProcessingResult, TranscriptFallback
from meeting_digest.recordings.models import MeetingInfo, Recording
from meeting_digest.transcript.pipeline import TranscriptPipeline

logger = logging.getLogger(__name__)


def format_notification(result: ProcessingResult) -> str:
    """Plain-text chat message announcing a processed meeting."""
    info = result.meeting_info
    summary = result.structured_summary
    lines = [
        f"*{info.topic}*",
        f"Date: {info.start_time or 'unknown'} | Host: {info.host_name} | Method: {result.method}",
    ]
    if summary.meeting_purpose:
        lines.append(f"Purpose: {summary.meeting_purpose}")
    if summary.decisions:
        lines.append("Decisions:")
        lines.extend(f"- {_item_text(d)}" for d in summary.decisions)
    if summary.next_actions_with_due_date:
        lines.append("Next actions:")
        lines.extend(f"- {_item_text(a)}" for a in summary.next_actions_with_due_date)
    if result.documents:
        lines.append(f"Transcript: {result.documents.get('transcription_link', '')}")
        lines.append(f"Summary: {result.documents.get('summary_link', '')}")
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"- {w}" for w in result.warnings)
    return "\n".join(lines)


def _item_text(item: Any) -> str:
    if isinstance(item, dict):
        text = item.get("decision") or item.get("action") or item.get("content") or ""
        owner = item.get("assignee") or item.get("owner")
        due = item.get("due_date") or item.get("dueDate")
        extras = ", ".join(str(x) for x in (owner, due) if x)
        return f"{text} ({extras})" if extras else str(text)
    return str(item)


@dataclass
class BatchResult:
    processed: list[ProcessingResult] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": len(self.processed),
            "failed": len(self.failures),
            "skipped": self.skipped,
            "results": [r.to_dict() for r in self.processed],
            "failures": list(self.failures),
        }


class RecordingProcessor:
    """Process recordings one at a time through transcript or audio paths."""

    def __init__(
        self,
        recording_client: RecordingClient,
        transcript_pipeline: TranscriptPipeline,
        audio_pipeline: AudioPipeline,
        *,
        document_store: DocumentStore | None = None,
        notifier: Notifier | None = None,
        documents_folder: str = "recordings",
        batch_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.recording_client = recording_client
        self.transcript_pipeline = transcript_pipeline
        self.audio_pipeline = audio_pipeline
        self.document_store = document_store
        self.notifier = notifier
        self.documents_folder = documents_folder
        self.batch_delay_seconds = batch_delay_seconds
        self.sleep = sleep

    def process(self, recording: Recording) -> ProcessingResult:
        """Process one recording.

        Raises:
            PipelineError: If neither the transcript nor the audio path succeeds.
        """
        meeting_info = MeetingInfo.from_recording(recording)
        logger.info("Processing recording %s (%s)", recording.id, recording.topic)

        outcome = self.transcript_pipeline.process(recording, meeting_info)
        if isinstance(outcome, TranscriptFallback):
            result = self._fall_back_to_audio(recording, meeting_info, outcome)
        else:
            result = outcome

        self._store_documents(result)
        self._notify(result)
        return result

    def _fall_back_to_audio(
        self, recording: Recording, meeting_info: MeetingInfo, fallback: TranscriptFallback
    ) -> ProcessingResult:
        if not fallback.requires_fallback:
            raise PipelineError(
                fallback.error_code,
                fallback.error,
                meeting_id=recording.id,
                stage=fallback.stage,
            )

        audio_file = recording.find_audio_file()
        if audio_file is None or not audio_file.download_url:
            raise PipelineError(
                "ZM004",
                f"No audio file available for fallback ({fallback.reason})",
                meeting_id=recording.id,
                stage="audio_fallback",
            )

        logger.info(
            "Falling back to %s audio for %s: %s", audio_file.file_type, recording.id, fallback.reason
        )
        file_name = audio_file.file_name or f"{recording.id}.{audio_file.file_type.lower()}"
        try:
            buffer = self.recording_client.download_as_buffer(audio_file.download_url)
        except Exception as exc:
            raise PipelineError.wrap(
                exc, "ZM010", meeting_id=recording.id, file_name=file_name, stage="download"
            ) from exc

        result = self.audio_pipeline.process(buffer, file_name, meeting_info)
        result.add_warnings(
            f"Transcript unavailable ({fallback.reason}); summary produced from the audio recording"
        )
        return result

    def _store_documents(self, result: ProcessingResult) -> None:
        if self.document_store is None:
            return
        info = result.meeting_info
        folder = f"{self.documents_folder}/{info.date_folder}"
        try:
            links = self.document_store.save(
                result.transcript, result.structured_summary, info, folder
            )
        except Exception as exc:
            logger.exception("Document upload failed for %s", info.id)
            result.add_warnings(f"Document upload failed: {exc}")
            return
        result.documents = links.to_dict()

    def _notify(self, result: ProcessingResult) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.post(format_notification(result))
        except Exception:
            logger.exception("Notification failed for %s", result.meeting_info.id)

    def process_batch(self, recordings: list[Recording], max_recordings: int = 5) -> BatchResult:
        """Process recordings sequentially; one failure never stops the batch."""
        batch = BatchResult(skipped=max(0, len(recordings) - max_recordings))
        selected = recordings[:max_recordings]

        for position, recording in enumerate(selected):
            if position:
                self.sleep(self.batch_delay_seconds)
            try:
                batch.processed.append(self.process(recording))
            except Exception as exc:
                logger.exception("Recording %s failed", recording.id)
                batch.failures.append(
                    {
                        "recording_id": recording.id,
                        "topic": recording.topic,
                        "error": exc.message if isinstance(exc, PipelineError) else str(exc),
                        "code": exc.code if isinstance(exc, PipelineError) else None,
                    }
                )

        logger.info(
            "Batch finished: %d processed, %d failed, %d skipped",
            len(batch.processed),
            len(batch.failures),
            batch.skipped,
        )
        return batch
