"""End-to-end integration tests against live Zoom, AssemblyAI and Anthropic.

# MANUAL RUN REQUIRED: These tests require live API keys and a Zoom account
# with at least one cloud recording in the last 30 days.
# Run manually with: pytest -m expensive tests/test_pipeline_integration.py -v
# Ensure .env has ZOOM_ACCOUNT_ID, ZOOM_CLIENT_ID, ZOOM_CLIENT_SECRET,
# ASSEMBLYAI_API_KEY and ANTHROPIC_API_KEY set. SUPABASE_* and
# SLACK_WEBHOOK_URL are optional; when set, documents are uploaded and a
# notification is posted.
#
# These tests are NOT run in CI (marked @pytest.mark.expensive).
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from meeting_digest.api.deps import build_processor
from meeting_digest.config import get_settings
from meeting_digest.processing.models import ProcessingResult


def _recent_recordings():  # type: ignore[no-untyped-def]
    cfg = get_settings()
    if not (cfg.zoom_account_id and cfg.anthropic_api_key and cfg.assemblyai_api_key):
        pytest.skip("Zoom, Anthropic and AssemblyAI credentials are required")
    processor = build_processor(cfg)
    today = date.today()
    recordings = processor.recording_client.list_recordings(today - timedelta(days=30), today)
    if not recordings:
        pytest.skip("No cloud recordings in the last 30 days")
    return processor, recordings


@pytest.mark.expensive
def test_process_latest_recording() -> None:
    """Golden path: newest recording -> transcript or audio -> structured summary."""
    processor, recordings = _recent_recordings()

    result = processor.process(recordings[0])

    assert isinstance(result, ProcessingResult)
    assert result.success is True
    assert result.method in {"transcript-api", "audio", "audio-chunked"}
    assert result.transcript.strip()
    assert result.structured_summary.meeting_purpose
    if result.chunk_metadata is not None:
        assert result.chunk_metadata.successful_chunks >= 1


@pytest.mark.expensive
def test_batch_of_recent_recordings() -> None:
    """A small batch finishes and accounts for every selected recording."""
    processor, recordings = _recent_recordings()

    batch = processor.process_batch(recordings, max_recordings=2)

    selected = min(2, len(recordings))
    assert len(batch.processed) + len(batch.failures) == selected
    assert batch.skipped == len(recordings) - selected
