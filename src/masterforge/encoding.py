"""PCM encoders (WAV 16/24-bit, MP3 320 kbps) and the export operation."""

from __future__ import annotations

import struct
from dataclasses import dataclass

import numpy as np

from .audio_contract import (
    DEFAULT_EXPORT_BASENAME,
    DEFAULT_EXPORT_SAMPLE_RATE_HZ,
    EXPORT_BIT_DEPTHS,
    MEDIA_TYPES,
    MP3_MAX_CHANNELS,
    PCM16_SCALE,
    PCM24_MAX,
    PCM24_MIN,
    PCM24_SCALE,
    WAV_FORMAT_PCM,
    ensure_supported_export_rate,
    export_filename,
)
from .buffer import PcmBuffer
from .errors import InvalidParameterError, NothingToProcessError, ProcessingError
from .infrastructure.pedalboard_codec import write_mp3_bytes
from .mastering_options import ExportFormat, parse_case_insensitive_enum
from .resampling import resample_buffer


@dataclass(frozen=True, slots=True)
class ExportRequest:
    """What to encode: format tag, target rate and the filename stem."""

    export_format: ExportFormat
    sample_rate_hz: int = DEFAULT_EXPORT_SAMPLE_RATE_HZ
    basename: str = DEFAULT_EXPORT_BASENAME

    @classmethod
    def from_raw(
        cls,
        export_format: ExportFormat | str,
        sample_rate_hz: int = DEFAULT_EXPORT_SAMPLE_RATE_HZ,
        basename: str | None = None,
    ) -> "ExportRequest":
        if not isinstance(export_format, ExportFormat):
            try:
                export_format = parse_case_insensitive_enum(export_format, ExportFormat)
            except ValueError as exc:
                raise InvalidParameterError(str(exc)) from exc
        return cls(
            export_format=export_format,
            sample_rate_hz=int(sample_rate_hz),
            basename=basename or DEFAULT_EXPORT_BASENAME,
        )


@dataclass(frozen=True, slots=True)
class ExportResult:
    payload: bytes
    filename: str
    media_type: str
    export_format: ExportFormat
    sample_rate_hz: int
    frame_count: int


def wav_header(channel_count: int, sample_rate: int, bit_depth: int, data_size: int) -> bytes:
    """Canonical 44-byte RIFF/WAVE header for integer PCM."""

    block_align = channel_count * (bit_depth // 8)
    return b"".join(
        (
            b"RIFF",
            struct.pack("<I", 36 + data_size),
            b"WAVE",
            b"fmt ",
            struct.pack(
                "<IHHIIHH",
                16,
                WAV_FORMAT_PCM,
                channel_count,
                sample_rate,
                sample_rate * block_align,
                block_align,
                bit_depth,
            ),
            b"data",
            struct.pack("<I", data_size),
        )
    )


def quantize_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to [-1, 1] and scale by 32767, truncating toward zero."""

    return np.trunc(np.clip(samples, -1.0, 1.0) * PCM16_SCALE).astype("<i2")


def quantize_pcm24(samples: np.ndarray) -> np.ndarray:
    """Clamp, scale by 8388607 and round; values stay in int32 storage."""

    scaled = np.round(np.clip(samples, -1.0, 1.0) * PCM24_SCALE)
    return np.clip(scaled, PCM24_MIN, PCM24_MAX).astype(np.int32)


def _pack_int24(values: np.ndarray) -> bytes:
    # Little-endian int32, keep the low three bytes of every sample.
    raw = values.astype("<i4").reshape(-1, 1).view(np.uint8)
    return raw[:, :3].tobytes()


def encode_wav(buffer: PcmBuffer, bit_depth: int) -> bytes:
    """Interleave frames and encode as a 16- or 24-bit PCM WAV file."""

    interleaved = buffer.samples.T.reshape(-1)
    if bit_depth == 16:
        data = quantize_pcm16(interleaved).tobytes()
    elif bit_depth == 24:
        data = _pack_int24(quantize_pcm24(interleaved))
    else:
        raise InvalidParameterError(f"Unsupported WAV bit depth: {bit_depth}. Use 16 or 24.")
    return wav_header(buffer.channel_count, buffer.sample_rate, bit_depth, len(data)) + data


def quantize_mp3_input(samples: np.ndarray) -> np.ndarray:
    scaled = np.round(np.clip(samples, -1.0, 1.0) * PCM16_SCALE)
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def encode_mp3(buffer: PcmBuffer) -> bytes:
    """Encode 1-2 channels as 320 kbps constant-bitrate MP3."""

    if not 1 <= buffer.channel_count <= MP3_MAX_CHANNELS:
        raise ProcessingError(
            f"MP3 export supports 1 or 2 channels, got {buffer.channel_count}."
        )
    return write_mp3_bytes(quantize_mp3_input(buffer.samples), buffer.sample_rate)


def export_buffer(buffer: PcmBuffer | None, request: ExportRequest) -> ExportResult:
    """Resample ``buffer`` to the requested rate and encode it."""

    if buffer is None:
        raise NothingToProcessError()
    ensure_supported_export_rate(request.export_format, request.sample_rate_hz)

    converted = resample_buffer(buffer, request.sample_rate_hz)
    if request.export_format is ExportFormat.MP3:
        payload = encode_mp3(converted)
    else:
        payload = encode_wav(converted, EXPORT_BIT_DEPTHS[request.export_format])

    return ExportResult(
        payload=payload,
        filename=export_filename(request.basename, request.export_format, request.sample_rate_hz),
        media_type=MEDIA_TYPES[request.export_format],
        export_format=request.export_format,
        sample_rate_hz=request.sample_rate_hz,
        frame_count=converted.frame_count,
    )
