"""Error-code registry and the exception hierarchy used across the pipeline.

Codes are grouped by origin:

- ``ZM``: recording platform (Zoom API)
- ``TS``: transcript track handling
- ``AI``: AI transcription / summarization provider
- ``DS``: document store
- ``NT``: chat notifier
- ``SY``: system / pipeline internals

The registry is read-only. Deprecated codes are resolved through
``ERROR_ALIASES`` once, when this module is imported.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class ErrorSpec:
    """Static description of one error code."""

    code: str
    message: str
    category: str
    retryable: bool
    notify: bool
    remediation: str


UNKNOWN_CODE = "SY009"

_SPECS: tuple[ErrorSpec, ...] = (
    # Recording platform
    ErrorSpec("ZM001", "Zoom API authentication failed", "availability", False, True,
              "Check ZOOM_ACCOUNT_ID, ZOOM_CLIENT_ID and ZOOM_CLIENT_SECRET."),
    ErrorSpec("ZM002", "Zoom API rate limit exceeded", "quota", True, True,
              "Lower the request rate or retry later."),
    ErrorSpec("ZM003", "Failed to fetch Zoom recording data", "transport", True, True,
              "Check the recording exists and the account can access it."),
    ErrorSpec("ZM004", "Zoom recording file not available", "availability", False, True,
              "Check the recording finished and was not deleted."),
    ErrorSpec("ZM005", "Unsupported Zoom recording file format", "format", False, True,
              "Supported formats: MP4, M4A, MP3, VTT."),
    ErrorSpec("ZM006", "Invalid Zoom API response", "transport", True, True,
              "Check the Zoom API status page."),
    ErrorSpec("ZM007", "Zoom API connection timeout", "transport", True, False,
              "Transient network problem; retried automatically."),
    ErrorSpec("ZM008", "Insufficient Zoom account permissions", "availability", False, True,
              "Grant the app the cloud recording read scope."),
    ErrorSpec("ZM010", "Failed to download Zoom recording file", "transport", True, True,
              "Check network connectivity and the download URL."),
    # Transcript track
    ErrorSpec("TS001", "Transcript parsing failed", "format", False, True,
              "The transcript track is not valid WebVTT."),
    ErrorSpec("TS002", "Transcript processing timeout", "transport", True, True,
              "Retry, or fall back to audio transcription."),
    ErrorSpec("TS003", "Transcript not available (no segments)", "availability", False, False,
              "The transcript track is empty; audio transcription is used instead."),
    # AI provider
    ErrorSpec("AI001", "AI API rate limit exceeded", "quota", True, True,
              "Wait for the quota window to reset."),
    ErrorSpec("AI002", "AI API authentication failed", "availability", False, True,
              "Check ANTHROPIC_API_KEY / ASSEMBLYAI_API_KEY."),
    ErrorSpec("AI003", "AI transcription failed", "content", True, True,
              "Check the audio content and format."),
    ErrorSpec("AI004", "AI summary generation failed", "content", True, True,
              "Check the transcription text and prompt."),
    ErrorSpec("AI005", "File size exceeds AI processing limit", "format", False, True,
              "Process the audio in chunks."),
    ErrorSpec("AI007", "AI processing timeout", "transport", True, True,
              "Process the audio in chunks or retry later."),
    ErrorSpec("AI009", "AI API connection error", "transport", True, True,
              "Check network connectivity."),
    # Document store
    ErrorSpec("DS001", "Document store authentication failed", "availability", False, True,
              "Check SUPABASE_URL and SUPABASE_KEY."),
    ErrorSpec("DS003", "Failed to upload document", "transport", True, True,
              "Check the storage bucket exists and is writable."),
    ErrorSpec("DS005", "Failed to create share link", "transport", True, True,
              "Check the bucket is public."),
    # Notifier
    ErrorSpec("NT003", "Failed to post notification", "transport", True, False,
              "Check SLACK_WEBHOOK_URL."),
    ErrorSpec("NT004", "Notification rate limit exceeded", "quota", True, False,
              "Retry later."),
    # System
    ErrorSpec("SY002", "Processing time budget exceeded", "transport", True, True,
              "Lower the chunk count or raise the time budget."),
    ErrorSpec("SY003", "Environment variable not set", "availability", False, True,
              "Set the required variables in the environment or .env file."),
    ErrorSpec("SY006", "JSON parsing error", "format", False, True,
              "Check the upstream payload."),
    ErrorSpec("SY008", "Validation error", "format", False, True,
              "Check the input data."),
    ErrorSpec(UNKNOWN_CODE, "Unknown error", "unknown", True, True,
              "Inspect the logs for details."),
    ErrorSpec("SY010", "Audio chunking failed", "format", False, True,
              "Check the audio buffer and meeting duration."),
    ErrorSpec("SY011", "No chunk produced usable data", "content", False, True,
              "Every chunk failed; inspect the chunk errors."),
)

ERROR_CODES: MappingProxyType[str, ErrorSpec] = MappingProxyType({s.code: s for s in _SPECS})

# Deprecated code -> canonical code
ERROR_ALIASES: MappingProxyType[str, str] = MappingProxyType(
    {
        "ZM-401": "ZM001",
        "ZM-402": "ZM004",
        "ZM-403": "ZM010",
        "TS-501": "TS001",
        "TS-502": "TS002",
        "E_ZOOM_AUTH_FAILED": "ZM001",
        "E_ZOOM_RECORDING_NOT_FOUND": "ZM004",
        "E_STORAGE_UPLOAD_FAILED": "DS003",
        "E_SYSTEM_UNKNOWN": UNKNOWN_CODE,
    }
)

_RESOLVED: MappingProxyType[str, ErrorSpec] = MappingProxyType(
    {**ERROR_CODES, **{alias: ERROR_CODES[target] for alias, target in ERROR_ALIASES.items()}}
)


def get_error_spec(code: str | None) -> ErrorSpec:
    """Look up a code (canonical or deprecated); unknown codes map to SY009."""
    if code is None:
        return ERROR_CODES[UNKNOWN_CODE]
    return _RESOLVED.get(code, ERROR_CODES[UNKNOWN_CODE])


def canonical_code(code: str | None) -> str:
    return get_error_spec(code).code


def retryable_codes() -> list[str]:
    return [code for code, spec in ERROR_CODES.items() if spec.retryable]


def notifiable_codes() -> list[str]:
    return [code for code, spec in ERROR_CODES.items() if spec.notify]


class PipelineError(Exception):
    """An error tagged with a registry code and contextual fields.

    Args:
        code: Canonical or deprecated error code.
        message: Human-readable detail. Defaults to the registry message.
        **context: Extra fields such as ``meeting_id``, ``file_name``, ``stage``.
    """

    default_code = UNKNOWN_CODE

    def __init__(self, code: str | None = None, message: str | None = None, **context: Any) -> None:
        self.spec = get_error_spec(code or self.default_code)
        self.code = self.spec.code
        self.message = message or self.spec.message
        self.context = context
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.spec.retryable

    @property
    def notify(self) -> bool:
        return self.spec.notify

    @property
    def family(self) -> str:
        return self.code[:2]

    @classmethod
    def wrap(cls, exc: BaseException, code: str | None = None, **context: Any) -> PipelineError:
        """Wrap *exc* unless it already is a PipelineError; merge *context* in."""
        if isinstance(exc, PipelineError):
            for key, value in context.items():
                exc.context.setdefault(key, value)
            return exc
        return cls(code, f"{get_error_spec(code or cls.default_code).message}: {exc}", **context)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class TranscriptFormatError(PipelineError):
    """The transcript track is not valid WebVTT."""

    default_code = "TS001"


class ChunkingError(PipelineError):
    """Audio could not be split into valid chunks."""

    default_code = "SY010"


class ChunkProcessingError(PipelineError):
    """One chunk failed its transcribe-then-summarize flow."""

    default_code = "AI003"


class MergeError(PipelineError):
    """No chunk produced usable data."""

    default_code = "SY011"
