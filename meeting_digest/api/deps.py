"""Wiring of the recording processor from settings."""

from __future__ import annotations

from functools import lru_cache

from meeting_digest.audio.chunker import AudioChunker
from meeting_digest.clients.assemblyai_transcriber import AssemblyAITranscriber
from meeting_digest.clients.claude_summarizer import ClaudeSummarizer
from meeting_digest.clients.slack_notifier import SlackNotifier
from meeting_digest.clients.supabase_store import SupabaseDocumentStore, get_supabase_client
from meeting_digest.clients.zoom import ZoomClient
from meeting_digest.config import Settings, settings
from meeting_digest.pipeline_config import ChunkBudget, ChunkingThresholds
from meeting_digest.processing.audio_pipeline import AudioPipeline
from meeting_digest.recordings.processor import RecordingProcessor
from meeting_digest.transcript.pipeline import TranscriptPipeline


def build_processor(config: Settings) -> RecordingProcessor:
    """Assemble a RecordingProcessor with the production adapters.

    The document store and notifier are optional and left out when their
    settings are empty.
    """
    zoom = ZoomClient(config.zoom_account_id, config.zoom_client_id, config.zoom_client_secret)
    transcriber = AssemblyAITranscriber(
        config.assemblyai_api_key,
        base_delay=config.retry_base_delay_seconds,
        max_delay=config.retry_max_delay_seconds,
    )
    summarizer = ClaudeSummarizer(
        config.anthropic_api_key,
        config.llm_model,
        base_delay=config.retry_base_delay_seconds,
        max_delay=config.retry_max_delay_seconds,
    )

    store = None
    if config.supabase_url and config.supabase_key:
        store = SupabaseDocumentStore(
            get_supabase_client(config.supabase_url, config.supabase_key), config.documents_bucket
        )
    notifier = SlackNotifier(config.slack_webhook_url) if config.slack_webhook_url else None

    return RecordingProcessor(
        zoom,
        TranscriptPipeline(
            zoom,
            summarizer,
            fallback_enabled=config.transcript_fallback_enabled,
            max_retries=config.default_max_retries,
        ),
        AudioPipeline(
            transcriber,
            summarizer,
            chunker=AudioChunker(config.chunk_duration_seconds),
            thresholds=ChunkingThresholds.from_settings(config),
            budget=ChunkBudget.from_settings(config),
            min_transcription_chars=config.min_transcription_chars,
        ),
        document_store=store,
        notifier=notifier,
        documents_folder=config.documents_folder,
        batch_delay_seconds=config.batch_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_processor() -> RecordingProcessor:
    """FastAPI dependency; override it in tests with ``app.dependency_overrides``."""
    return build_processor(settings)
