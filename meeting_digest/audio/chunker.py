"""Time-based splitting of oversized audio buffers."""

from __future__ import annotations

import logging
import math

from meeting_digest.audio.models import AudioChunk, ChunkValidation, SplitMetadata, SplitResult
from meeting_digest.errors import ChunkingError
from meeting_digest.pipeline_config import BYTES_PER_MB
from meeting_digest.recordings.models import MeetingInfo

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SECONDS = 600.0
# A trailing remainder shorter than this is folded into the previous chunk
MIN_TAIL_SECONDS = 5.0
MIN_CHUNK_SECONDS = 300.0
MAX_CHUNK_BYTES = 18 * BYTES_PER_MB
# Boundary drift below this is rounding noise; above GAP_TOLERANCE it is a gap
ROUNDING_TOLERANCE = 0.01
GAP_TOLERANCE = 1.0

_MIME_TYPES = {
    "m4a": "audio/mp4",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
}


def detect_audio_format(buffer: bytes) -> str:
    """Best-effort container sniffing: ``m4a``, ``mp3``, ``wav`` or ``unknown``."""
    if len(buffer) < 4:
        return "unknown"
    header = buffer[:12]
    if b"ftyp" in header:
        return "m4a"
    if header.startswith(b"RIFF") and b"WAVE" in header:
        return "wav"
    if header.startswith(b"ID3") or (header[0] == 0xFF and (header[1] & 0xE0) == 0xE0):
        return "mp3"
    return "unknown"


def mime_type_for(audio_format: str) -> str:
    return _MIME_TYPES.get(audio_format, "audio/aac")


def estimate_duration_seconds(size_bytes: int, meeting_info: MeetingInfo | None = None) -> float:
    """Meeting duration when known, else roughly one minute per megabyte."""
    if meeting_info is not None and meeting_info.duration and meeting_info.duration > 0:
        return meeting_info.duration_seconds
    return size_bytes / BYTES_PER_MB * 60


class AudioChunker:
    """Split audio into contiguous, time-bounded chunks.

    Byte offsets are proportional to time offsets; no decoding happens, so
    chunk boundaries are approximate within the container.
    """

    def __init__(self, chunk_seconds: float = DEFAULT_CHUNK_SECONDS) -> None:
        if chunk_seconds <= 0:
            raise ValueError("chunk_seconds must be positive")
        self.chunk_seconds = float(chunk_seconds)

    def split(
        self,
        buffer: bytes,
        chunk_seconds: float | None = None,
        meeting_info: MeetingInfo | None = None,
    ) -> SplitResult:
        """Split *buffer* into ``ceil(duration / chunk_seconds)`` chunks.

        Raises:
            ChunkingError: If the buffer is empty or the duration is not positive.
        """
        if not buffer:
            raise ChunkingError(message="Cannot split an empty audio buffer")

        chunk_len = float(chunk_seconds or self.chunk_seconds)
        total = estimate_duration_seconds(len(buffer), meeting_info)
        if total <= 0 or chunk_len <= 0:
            raise ChunkingError(message=f"Invalid duration for splitting: total={total}, chunk={chunk_len}")

        bytes_per_second = len(buffer) / total
        count = math.ceil(total / chunk_len)
        if count > 1 and total - (count - 1) * chunk_len < MIN_TAIL_SECONDS:
            count -= 1

        chunks: list[AudioChunk] = []
        for i in range(count):
            start = i * chunk_len
            is_last = i == count - 1
            end = total if is_last else min((i + 1) * chunk_len, total)
            byte_start = int(start * bytes_per_second)
            byte_end = len(buffer) if is_last else int(end * bytes_per_second)
            chunks.append(
                AudioChunk(
                    data=buffer[byte_start:byte_end],
                    start_time=start,
                    end_time=end,
                    index=i,
                    is_first=i == 0,
                    is_last=is_last,
                )
            )

        audio_format = detect_audio_format(buffer)
        logger.info(
            "Split %.1fMB (%s, %.0fs) into %d chunks of %.0fs",
            len(buffer) / BYTES_PER_MB,
            audio_format,
            total,
            len(chunks),
            chunk_len,
        )

        return SplitResult(
            chunks=chunks,
            metadata=SplitMetadata(
                total_chunks=len(chunks),
                chunk_duration=chunk_len,
                total_duration=total,
                bytes_per_second=bytes_per_second,
                audio_format=audio_format,
            ),
        )

    def validate(self, chunks: list[AudioChunk], total_duration: float | None = None) -> ChunkValidation:
        """Check chunk ordering, contiguity and coverage.

        Gaps or overlaps above one second are errors; smaller boundary drift
        and size/duration concerns are warnings.
        """
        result = ChunkValidation()
        if not chunks:
            result.is_valid = False
            result.errors.append("No chunks were produced")
            return result

        def check_boundary(drift: float, label: str) -> None:
            if abs(drift) > GAP_TOLERANCE:
                kind = "gap" if drift > 0 else "overlap"
                result.errors.append(f"{label}: {kind} of {abs(drift):.2f}s")
            elif abs(drift) > ROUNDING_TOLERANCE:
                result.warnings.append(f"{label}: boundary drift of {abs(drift):.3f}s")

        for position, chunk in enumerate(chunks):
            if chunk.index != position:
                result.errors.append(f"Chunk at position {position} has index {chunk.index}")
            if chunk.size > MAX_CHUNK_BYTES:
                result.warnings.append(
                    f"Chunk {chunk.index + 1}: size {chunk.size / BYTES_PER_MB:.1f}MB exceeds "
                    f"{MAX_CHUNK_BYTES // BYTES_PER_MB}MB"
                )
            if not chunk.is_last and chunk.duration < MIN_CHUNK_SECONDS:
                result.warnings.append(
                    f"Chunk {chunk.index + 1}: duration {chunk.duration:.0f}s is below "
                    f"{MIN_CHUNK_SECONDS:.0f}s"
                )
            if position == 0:
                check_boundary(chunk.start_time, "Chunk 1 start")
            else:
                previous = chunks[position - 1]
                check_boundary(
                    chunk.start_time - previous.end_time,
                    f"Between chunks {position} and {position + 1}",
                )

        if total_duration is not None:
            check_boundary(total_duration - chunks[-1].end_time, "Final chunk end")

        result.is_valid = not result.errors
        return result
