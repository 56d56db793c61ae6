"""Claude-powered structured meeting summaries via tool use."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import anthropic
from anthropic import Anthropic

from meeting_digest.clients.base import SummaryResult
from meeting_digest.clients.retry import call_with_retry
from meeting_digest.errors import PipelineError
from meeting_digest.processing.models import StructuredSummary
from meeting_digest.recordings.models import MeetingInfo

logger = logging.getLogger(__name__)

SUMMARY_TOOL_NAME = "store_meeting_summary"

_STRING = {"type": "string"}

# Tool definition for Claude structured output
SUMMARY_TOOL: dict[str, Any] = {
    "name": SUMMARY_TOOL_NAME,
    "description": (
        "Store the structured summary of a meeting transcript. "
        "Call this once with every section filled in."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "meeting_purpose": {
                "type": "string",
                "description": "Why the meeting was held (the purpose, not the outcome).",
            },
            "client_name": {
                "type": "string",
                "description": "Name of the client company, as mentioned in the conversation.",
            },
            "attendees_and_companies": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"name": _STRING, "company": _STRING, "role": _STRING},
                    "required": ["name"],
                },
            },
            "materials": {
                "type": "array",
                "description": "Documents or materials referred to during the meeting.",
                "items": {
                    "type": "object",
                    "properties": {
                        "material_name": _STRING,
                        "description": _STRING,
                        "mentioned_by": _STRING,
                        "timestamp": {"type": "string", "description": "MM:SS"},
                    },
                    "required": ["material_name"],
                },
            },
            "discussions_by_topic": {
                "type": "array",
                "description": "One entry per discussion topic, in the order discussed.",
                "items": {
                    "type": "object",
                    "properties": {
                        "topic_title": _STRING,
                        "start_time": {"type": "string", "description": "MM:SS"},
                        "end_time": {"type": "string", "description": "MM:SS"},
                        "background": _STRING,
                        "key_arguments": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "speaker": _STRING,
                                    "argument": _STRING,
                                    "reasoning": _STRING,
                                },
                            },
                        },
                        "outcome": _STRING,
                    },
                    "required": ["topic_title", "outcome"],
                },
            },
            "decisions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "decision": _STRING,
                        "decided_by": _STRING,
                        "reason": _STRING,
                        "related_topic": _STRING,
                    },
                    "required": ["decision"],
                },
            },
            "next_actions_with_due_date": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "action": _STRING,
                        "assignee": _STRING,
                        "due_date": _STRING,
                        "priority": {"type": "string", "enum": ["high", "medium", "low"]},
                    },
                    "required": ["action"],
                },
            },
            "audio_quality": {
                "type": "object",
                "properties": {
                    "clarity": {"type": "string", "enum": ["excellent", "good", "fair", "poor"]},
                    "issues": {"type": "array", "items": _STRING},
                    "transcription_confidence": {
                        "type": "string",
                        "enum": ["high", "medium", "low"],
                    },
                },
            },
        },
        "required": [
            "meeting_purpose",
            "client_name",
            "attendees_and_companies",
            "discussions_by_topic",
            "decisions",
            "next_actions_with_due_date",
        ],
    },
}

SYSTEM_PROMPT = (
    "You are a meeting summarization assistant. Produce a structured summary "
    "of the meeting transcript provided.\n\n"
    "Base the summary only on the transcript. Do not guess or add information "
    "that is not in it. Use the [MM:SS] timestamps from the transcript for "
    "times.\n\n"
    f"Use the {SUMMARY_TOOL_NAME} tool to return your results."
)

_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (anthropic.RateLimitError, "AI001"),
    (anthropic.AuthenticationError, "AI002"),
    (anthropic.APITimeoutError, "AI007"),
    (anthropic.APIConnectionError, "AI009"),
)


def _classify(exc: Exception) -> PipelineError:
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return PipelineError.wrap(exc, code)
    return PipelineError.wrap(exc, "AI004")


def build_prompt(text: str, meeting_info: MeetingInfo) -> str:
    lines = [
        f"Meeting: {meeting_info.topic}",
        f"Start time: {meeting_info.start_time or 'unknown'}",
        f"Duration: {meeting_info.duration:.0f} minutes",
        f"Host: {meeting_info.host_name}",
    ]
    if meeting_info.chunk_info:
        lines.append(
            f"This is part {meeting_info.chunk_info['chunk_index'] + 1} of a longer meeting "
            f"({meeting_info.chunk_info['time_range']})."
        )
    return "\n".join(lines) + f"\n\nSummarize this meeting transcript:\n\n{text}"


def _parse_tool_response(response: Any) -> StructuredSummary | None:
    """Parse the Claude tool_use response into a StructuredSummary."""
    for block in response.content:
        if block.type != "tool_use" or block.name != SUMMARY_TOOL_NAME:
            continue
        data = block.input
        if isinstance(data, str):
            data = json.loads(data)
        return StructuredSummary.from_dict(data)
    return None


class ClaudeSummarizer:
    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        client: Anthropic | None = None,
        max_tokens: int = 8192,
        base_delay: float = 2.0,
        max_delay: float = 10.0,
    ) -> None:
        self.client = client or Anthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens
        self.base_delay = base_delay
        self.max_delay = max_delay

    def _summarize_once(self, text: str, meeting_info: MeetingInfo) -> StructuredSummary:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                tools=[SUMMARY_TOOL],
                tool_choice={"type": "tool", "name": SUMMARY_TOOL_NAME},
                messages=[{"role": "user", "content": build_prompt(text, meeting_info)}],
            )
        except anthropic.APIError as exc:
            raise _classify(exc) from exc

        summary = _parse_tool_response(response)
        if summary is None:
            raise PipelineError("AI004", "Model response contained no summary")
        return summary

    def summarize(self, text: str, meeting_info: MeetingInfo, *, max_retries: int = 5) -> SummaryResult:
        started = time.monotonic()
        summary = call_with_retry(
            lambda: self._summarize_once(text, meeting_info),
            max_retries=max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            retry_on=(PipelineError,),
            label=f"summarize {meeting_info.id}",
        )
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Summarized %d chars for %s in %dms: %d topics, %d decisions",
            len(text),
            meeting_info.id,
            elapsed_ms,
            len(summary.discussions_by_topic),
            len(summary.decisions),
        )
        return SummaryResult(structured_summary=summary, processing_time_ms=elapsed_ms)
