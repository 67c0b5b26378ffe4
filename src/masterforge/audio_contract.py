"""Export contract shared by the encoders and every external entry point.

Invariants
----------
* WAV output is canonical 44-byte-header RIFF/WAVE integer PCM.
* MP3 output is constant bitrate, fed in fixed-size PCM frames.
* Export filenames follow ``{basename}_mastered_{bitdepth}_{rateK}.wav`` or
  ``{basename}_mastered_320kbps.mp3``.
"""

from __future__ import annotations

from .errors import InvalidParameterError
from .mastering_options import ExportFormat

WAV_HEADER_BYTES = 44
WAV_FORMAT_PCM = 1

PCM16_SCALE = 32767
PCM24_SCALE = 8388607
PCM24_MIN = -8388608
PCM24_MAX = 8388607

MP3_FRAME_SAMPLES = 1152
MP3_BITRATE_KBPS = 320
MP3_MAX_CHANNELS = 2

EXPORT_BIT_DEPTHS: dict[ExportFormat, int] = {
    ExportFormat.WAV16: 16,
    ExportFormat.WAV24: 24,
    ExportFormat.MP3: 16,
}

MEDIA_TYPES: dict[ExportFormat, str] = {
    ExportFormat.WAV16: "audio/wav",
    ExportFormat.WAV24: "audio/wav",
    ExportFormat.MP3: "audio/mpeg",
}

# Export rates offered to callers; MPEG-1 Layer III only covers the first three.
SUPPORTED_WAV_SAMPLE_RATES_HZ: tuple[int, ...] = (32_000, 44_100, 48_000, 88_200, 96_000)
SUPPORTED_MP3_SAMPLE_RATES_HZ: tuple[int, ...] = (32_000, 44_100, 48_000)

DEFAULT_EXPORT_SAMPLE_RATE_HZ = 44_100
DEFAULT_EXPORT_BASENAME = "track"


def ensure_supported_export_rate(export_format: ExportFormat, sample_rate_hz: int) -> None:
    """Validate an export sample rate against the target format."""

    allowed = (
        SUPPORTED_MP3_SAMPLE_RATES_HZ
        if export_format is ExportFormat.MP3
        else SUPPORTED_WAV_SAMPLE_RATES_HZ
    )
    if sample_rate_hz not in allowed:
        supported = ", ".join(str(rate) for rate in allowed)
        raise InvalidParameterError(
            f"Unsupported sample rate {sample_rate_hz}Hz for {export_format.value}. "
            f"Supported rates: {supported}."
        )


def sample_rate_label(sample_rate_hz: int) -> str:
    """Render 44100 as ``44.1k`` and 48000 as ``48k``."""

    return f"{sample_rate_hz / 1000:g}k"


def export_filename(basename: str, export_format: ExportFormat, sample_rate_hz: int) -> str:
    stem = basename or DEFAULT_EXPORT_BASENAME
    if export_format is ExportFormat.MP3:
        return f"{stem}_mastered_{MP3_BITRATE_KBPS}kbps.mp3"
    bit_depth = EXPORT_BIT_DEPTHS[export_format]
    return f"{stem}_mastered_{bit_depth}bit_{sample_rate_label(sample_rate_hz)}.wav"
