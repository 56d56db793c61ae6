"""Slack incoming-webhook notifier over httpx."""

from __future__ import annotations

import logging

import httpx

from meeting_digest.errors import PipelineError

logger = logging.getLogger(__name__)


class SlackNotifier:
    def __init__(self, webhook_url: str, *, http: httpx.Client | None = None) -> None:
        self.webhook_url = webhook_url
        self.http = http or httpx.Client(timeout=10.0)

    def post(self, message: str) -> None:
        try:
            response = self.http.post(self.webhook_url, json={"text": message})
        except httpx.HTTPError as exc:
            raise PipelineError.wrap(exc, "NT003") from exc
        if response.status_code == 429:
            raise PipelineError("NT004", status_code=429)
        if response.status_code >= 400:
            raise PipelineError(
                "NT003",
                f"Slack webhook returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        logger.info("Posted Slack notification (%d chars)", len(message))
