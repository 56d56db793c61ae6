"""Recording and meeting models parsed from the Zoom recordings payload."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

TRANSCRIPT_FILE_TYPES = {"TRANSCRIPT", "VTT"}
# Preferred audio sources, most preferred first
AUDIO_FILE_TYPES = ("M4A", "MP3")


@dataclass(frozen=True)
class RecordingFile:
    """One downloadable file attached to a recording."""

    file_type: str
    file_size: int | None = None
    download_url: str | None = None
    file_name: str | None = None
    file_extension: str | None = None
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordingFile:
        return cls(
            file_type=str(data.get("file_type") or "").upper(),
            file_size=data.get("file_size"),
            download_url=data.get("download_url"),
            file_name=data.get("file_name"),
            file_extension=data.get("file_extension"),
            id=data.get("id"),
        )

    @property
    def is_transcript(self) -> bool:
        extension = (self.file_extension or "").lower()
        name = (self.file_name or "").lower()
        return (
            self.file_type in TRANSCRIPT_FILE_TYPES
            or extension == "vtt"
            or name.endswith(".vtt")
        )


@dataclass(frozen=True)
class Recording:
    """A cloud recording with its files."""

    id: str
    topic: str = "Untitled Meeting"
    start_time: str | None = None
    duration: int = 0  # minutes, as reported by Zoom
    host_email: str | None = None
    uuid: str | None = None
    recording_files: tuple[RecordingFile, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Recording:
        return cls(
            id=str(data.get("id") or data.get("uuid") or ""),
            topic=data.get("topic") or "Untitled Meeting",
            start_time=data.get("start_time"),
            duration=int(data.get("duration") or 0),
            host_email=data.get("host_email"),
            uuid=data.get("uuid"),
            recording_files=tuple(
                RecordingFile.from_dict(f) for f in data.get("recording_files") or []
            ),
        )

    def find_transcript_file(self) -> RecordingFile | None:
        return next((f for f in self.recording_files if f.is_transcript), None)

    def find_audio_file(self) -> RecordingFile | None:
        for file_type in AUDIO_FILE_TYPES:
            match = next((f for f in self.recording_files if f.file_type == file_type), None)
            if match:
                return match
        return None

    @property
    def has_video_file(self) -> bool:
        return any(f.file_type == "MP4" for f in self.recording_files)


@dataclass(frozen=True)
class MeetingInfo:
    """Normalized meeting metadata passed to collaborators."""

    id: str
    topic: str
    start_time: str | None = None
    duration: float = 0  # minutes
    host_name: str = "unknown"
    host_email: str = "unknown"
    has_video_file: bool | None = None
    participant_count: int | None = None
    transcript_source: str | None = None
    chunk_info: dict[str, Any] | None = None

    @classmethod
    def from_recording(cls, recording: Recording) -> MeetingInfo:
        email = recording.host_email or ""
        return cls(
            id=recording.id,
            topic=recording.topic,
            start_time=recording.start_time,
            duration=recording.duration,
            host_name=email.split("@")[0] if email else "unknown",
            host_email=email or "unknown",
            has_video_file=recording.has_video_file,
        )

    @property
    def duration_seconds(self) -> float:
        return float(self.duration) * 60

    @property
    def date_folder(self) -> str:
        """``YYYY/MM`` folder for archived documents (``unsorted`` if no date)."""
        if not self.start_time:
            return "unsorted"
        try:
            started = datetime.fromisoformat(self.start_time.replace("Z", "+00:00"))
        except ValueError:
            return "unsorted"
        return f"{started.year}/{started.month:02d}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "topic": self.topic,
            "start_time": self.start_time,
            "duration": self.duration,
            "host_name": self.host_name,
            "host_email": self.host_email,
        }
        if self.participant_count is not None:
            data["participant_count"] = self.participant_count
        if self.transcript_source:
            data["transcript_source"] = self.transcript_source
        if self.chunk_info:
            data["chunk_info"] = self.chunk_info
        return data
