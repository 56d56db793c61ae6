"""Advisory audio loudness check (silent / too quiet / too noisy)."""

from __future__ import annotations

import logging

import numpy as np

from meeting_digest.audio.models import QualityReport

logger = logging.getLogger(__name__)

SILENT_RMS = 0.001
VERY_QUIET_RMS = 0.01
HIGH_NOISE_RMS = 0.8
MAX_WINDOW_BYTES = 1024
NEUTRAL_RMS = 0.5


def _rms(window: bytes) -> float:
    samples = np.frombuffer(window, dtype="<i2").astype(np.float64) / 32768.0
    return float(np.sqrt(np.mean(samples**2)))


def _neutral(reason: str) -> QualityReport:
    return QualityReport(average_rms=NEUTRAL_RMS, details={"error": reason})


def check_audio_quality(buffer: bytes) -> QualityReport:
    """Sample head, middle and tail of *buffer* and classify its loudness.

    Samples are read as 16-bit little-endian PCM. The check never raises:
    anything that prevents sampling yields a neutral, not-low-quality report.
    """
    try:
        size = len(buffer)
        window = min(MAX_WINDOW_BYTES, size // 10)
        window -= window % 2
        if window < 2:
            return _neutral(f"buffer too small to sample ({size} bytes)")

        middle = size // 2 - window // 2
        middle -= middle % 2
        windows = {
            "start_rms": buffer[:window],
            "middle_rms": buffer[middle : middle + window],
            "end_rms": buffer[size - window - (size % 2) : size - (size % 2)],
        }
        levels = {name: _rms(data) for name, data in windows.items()}
        average = sum(levels.values()) / len(levels)

        report = QualityReport(
            average_rms=average,
            is_silent=average < SILENT_RMS,
            is_very_quiet=average < VERY_QUIET_RMS,
            has_high_noise=average > HIGH_NOISE_RMS,
            details={
                **levels,
                "threshold": {
                    "silent": SILENT_RMS,
                    "very_quiet": VERY_QUIET_RMS,
                    "high_noise": HIGH_NOISE_RMS,
                },
            },
        )
    except Exception as exc:
        logger.exception("Audio quality check failed; continuing without it")
        return _neutral(str(exc))

    if report.is_low_quality:
        logger.warning(
            "Audio quality warning: silent=%s very_quiet=%s high_noise=%s rms=%.4f",
            report.is_silent,
            report.is_very_quiet,
            report.has_high_noise,
            report.average_rms,
        )
    return report
