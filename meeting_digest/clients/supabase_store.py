"""Archive transcripts and summaries as Markdown in a Supabase storage bucket."""

from __future__ import annotations

import logging
import re
from typing import Any

from supabase import Client, create_client

from meeting_digest.clients.base import DocumentLinks
from meeting_digest.errors import PipelineError
from meeting_digest.processing.models import StructuredSummary
from meeting_digest.recordings.models import MeetingInfo

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w\-]+")


def get_supabase_client(url: str, key: str) -> Client:
    """Create and return a Supabase client."""
    return create_client(url, key)


def _slug(text: str) -> str:
    return _UNSAFE_CHARS.sub("_", text).strip("_")[:80] or "meeting"


def _describe(item: Any, *keys: str) -> str:
    if not isinstance(item, dict):
        return str(item)
    head = next((str(item[k]) for k in keys if item.get(k)), "")
    rest = [f"{k}: {v}" for k, v in item.items() if k not in keys and v and not isinstance(v, (dict, list))]
    return f"{head} ({'; '.join(rest)})" if rest else head


def render_summary_markdown(summary: StructuredSummary, meeting_info: MeetingInfo) -> str:
    lines = [
        f"# {meeting_info.topic}",
        "",
        f"- Date: {meeting_info.start_time or 'unknown'}",
        f"- Host: {meeting_info.host_name}",
        f"- Client: {summary.client_name}",
        f"- Audio quality: {summary.audio_quality}",
        "",
        "## Purpose",
        "",
        summary.meeting_purpose or "-",
        "",
        "## Attendees",
        "",
    ]
    lines.extend(f"- {a}" for a in summary.attendees_and_companies)

    sections = (
        ("Materials", summary.materials, ("material_name", "materialName")),
        ("Discussions", summary.discussions_by_topic, ("topic_title", "topicTitle")),
        ("Decisions", summary.decisions, ("decision",)),
        ("Next actions", summary.next_actions_with_due_date, ("action",)),
    )
    for title, items, keys in sections:
        lines.extend(["", f"## {title}", ""])
        lines.extend(f"- {_describe(item, *keys)}" for item in items)
        if not items:
            lines.append("- none")
    return "\n".join(lines) + "\n"


def render_transcript_markdown(transcript: str, meeting_info: MeetingInfo) -> str:
    return f"# {meeting_info.topic}: transcript\n\n{transcript}\n"


class SupabaseDocumentStore:
    def __init__(self, client: Client, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def _upload(self, path: str, content: str) -> str:
        storage = self.client.storage.from_(self.bucket)
        try:
            storage.upload(
                path,
                content.encode("utf-8"),
                {"content-type": "text/markdown; charset=utf-8", "upsert": "true"},
            )
        except Exception as exc:
            raise PipelineError.wrap(exc, "DS003", file_name=path) from exc
        try:
            return storage.get_public_url(path)
        except Exception as exc:
            raise PipelineError.wrap(exc, "DS005", file_name=path) from exc

    def save(
        self,
        transcript: str,
        summary: StructuredSummary,
        meeting_info: MeetingInfo,
        folder: str,
    ) -> DocumentLinks:
        stem = f"{folder}/{meeting_info.id}_{_slug(meeting_info.topic)}"
        transcription_link = self._upload(
            f"{stem}_transcript.md", render_transcript_markdown(transcript, meeting_info)
        )
        summary_link = self._upload(
            f"{stem}_summary.md", render_summary_markdown(summary, meeting_info)
        )
        logger.info("Stored documents for %s under %s", meeting_info.id, folder)
        return DocumentLinks(transcription_link=transcription_link, summary_link=summary_link)
