"""Audio transcription via the AssemblyAI SDK."""

from __future__ import annotations

import logging
import time
from typing import Any

import assemblyai as aai  # type: ignore[import-untyped]

from meeting_digest.clients.base import TranscribeOptions, TranscriptionResult
from meeting_digest.clients.retry import call_with_retry
from meeting_digest.errors import PipelineError
from meeting_digest.recordings.models import MeetingInfo

logger = logging.getLogger(__name__)

SPEECH_MODEL = "universal-3-pro"


def _render_utterances(transcript: Any) -> str:
    """``Speaker A: text`` per utterance, or the flat text when diarization is missing."""
    utterances = transcript.utterances or []
    if not utterances:
        return transcript.text or ""
    return "\n".join(f"Speaker {u.speaker}: {u.text}" for u in utterances)


class AssemblyAITranscriber:
    def __init__(
        self,
        api_key: str,
        *,
        base_delay: float = 2.0,
        max_delay: float = 10.0,
    ) -> None:
        aai.settings.api_key = api_key
        self.base_delay = base_delay
        self.max_delay = max_delay

    def _transcribe_once(self, audio: bytes) -> str:
        # speaker_labels enables diarization; without it utterances are not attributed
        config = aai.TranscriptionConfig(speech_models=[SPEECH_MODEL], speaker_labels=True)
        transcript = aai.Transcriber().transcribe(audio, config=config)
        if transcript.status == aai.TranscriptStatus.error:
            raise PipelineError("AI003", f"Transcription failed: {transcript.error}")
        return _render_utterances(transcript)

    def transcribe(
        self, audio: bytes, meeting_info: MeetingInfo, options: TranscribeOptions
    ) -> TranscriptionResult:
        started = time.monotonic()
        try:
            text = call_with_retry(
                lambda: self._transcribe_once(audio),
                max_retries=options.max_retries,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                label=f"transcribe {meeting_info.id}",
            )
        except Exception as exc:
            raise PipelineError.wrap(exc, "AI009", meeting_id=meeting_info.id) from exc

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Transcribed %.1fMB (%s) for %s in %dms: %d chars",
            len(audio) / (1024 * 1024),
            options.mime_type,
            meeting_info.id,
            elapsed_ms,
            len(text),
        )
        return TranscriptionResult(transcription=text, processing_time_ms=elapsed_ms, model=SPEECH_MODEL)
