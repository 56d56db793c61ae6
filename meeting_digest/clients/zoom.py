"""Zoom cloud-recording client (Server-to-Server OAuth) over httpx."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import date

import httpx

from meeting_digest.errors import PipelineError
from meeting_digest.recordings.models import Recording

logger = logging.getLogger(__name__)

ZOOM_API_URL = "https://api.zoom.us/v2"
ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"
# Refresh the token this long before Zoom says it expires
TOKEN_EXPIRY_MARGIN_SECONDS = 60

_STATUS_CODES = {401: "ZM001", 403: "ZM008", 404: "ZM004", 429: "ZM002"}


def _error_from_response(response: httpx.Response, default_code: str) -> PipelineError:
    code = _STATUS_CODES.get(response.status_code, default_code)
    return PipelineError(
        code,
        f"Zoom API returned {response.status_code}: {response.text[:200]}",
        status_code=response.status_code,
    )


class ZoomClient:
    """Lists recordings and downloads recording files."""

    def __init__(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        *,
        http: httpx.Client | None = None,
        base_url: str = ZOOM_API_URL,
        token_url: str = ZOOM_TOKEN_URL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.account_id = account_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.http = http or httpx.Client(timeout=120.0, follow_redirects=True)
        self.base_url = base_url
        self.token_url = token_url
        self.clock = clock
        self._token: str | None = None
        self._token_expiry = 0.0

    def access_token(self) -> str:
        if self._token and self.clock() < self._token_expiry:
            return self._token

        try:
            response = self.http.post(
                self.token_url,
                data={"grant_type": "account_credentials", "account_id": self.account_id},
                auth=(self.client_id, self.client_secret),
            )
        except httpx.HTTPError as exc:
            raise PipelineError.wrap(exc, "ZM007", stage="auth") from exc
        if response.status_code != 200:
            raise PipelineError(
                "ZM001", f"Zoom OAuth token request failed ({response.status_code})", stage="auth"
            )

        payload = response.json()
        self._token = payload["access_token"]
        self._token_expiry = (
            self.clock() + int(payload.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN_SECONDS
        )
        logger.info("Obtained Zoom access token (expires in %ss)", payload.get("expires_in"))
        return self._token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token()}"}

    def list_recordings(self, from_date: date, to_date: date) -> list[Recording]:
        params = {"from": from_date.isoformat(), "to": to_date.isoformat(), "page_size": 100}
        recordings: list[Recording] = []

        while True:
            try:
                response = self.http.get(
                    f"{self.base_url}/users/me/recordings", headers=self._headers(), params=params
                )
            except httpx.HTTPError as exc:
                raise PipelineError.wrap(exc, "ZM003", stage="list_recordings") from exc
            if response.status_code != 200:
                raise _error_from_response(response, "ZM003")

            payload = response.json()
            recordings.extend(Recording.from_dict(m) for m in payload.get("meetings") or [])
            next_page = payload.get("next_page_token")
            if not next_page:
                break
            params["next_page_token"] = next_page

        logger.info("Retrieved %d recordings from %s to %s", len(recordings), from_date, to_date)
        return recordings

    def download_as_buffer(self, url: str) -> bytes:
        try:
            response = self.http.get(url, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise PipelineError.wrap(exc, "ZM007", stage="download") from exc
        except httpx.HTTPError as exc:
            raise PipelineError.wrap(exc, "ZM010", stage="download") from exc
        if response.status_code != 200:
            raise _error_from_response(response, "ZM010")

        logger.info("Downloaded %.1fMB from Zoom", len(response.content) / (1024 * 1024))
        return response.content
