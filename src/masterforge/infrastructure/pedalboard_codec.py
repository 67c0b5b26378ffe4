"""Audio decode/encode adapters backed by pedalboard."""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from pedalboard.io import AudioFile

from masterforge.audio_contract import MP3_BITRATE_KBPS, MP3_FRAME_SAMPLES, MP3_MAX_CHANNELS
from masterforge.buffer import PcmBuffer
from masterforge.errors import DecodeError, EncodingUnavailableError, ProcessingError


def _read_all(audio_file) -> PcmBuffer:
    samples = audio_file.read(audio_file.frames)
    return PcmBuffer(np.asarray(samples, dtype=np.float64), int(round(audio_file.samplerate)))


def load_audio_file(path: Path) -> PcmBuffer:
    """Read an audio file into memory."""

    try:
        with AudioFile(str(path), "r") as audio_file:
            return _read_all(audio_file)
    except (OSError, ValueError, RuntimeError) as exc:
        raise DecodeError(f"Could not decode audio file '{path}': {exc}") from exc


def decode_audio_bytes(payload: bytes) -> PcmBuffer:
    """Decode an in-memory WAV/MP3/FLAC/... payload."""

    if not payload:
        raise DecodeError("Could not decode audio: payload is empty.")
    try:
        with AudioFile(io.BytesIO(payload), "r") as audio_file:
            return _read_all(audio_file)
    except (OSError, ValueError, RuntimeError) as exc:
        raise DecodeError(f"Could not decode audio payload: {exc}") from exc


def write_mp3_bytes(pcm16: np.ndarray, sample_rate: int) -> bytes:
    """Encode channel-first int16 PCM as constant-bitrate MP3.

    Frames are handed to the encoder in fixed MPEG-1 frame-sized chunks;
    closing the writer flushes the trailing partial frame. Failing to open
    the encoder means the backend cannot produce MP3; any later failure is
    a processing error.
    """

    if pcm16.ndim != 2 or not 1 <= pcm16.shape[0] <= MP3_MAX_CHANNELS:
        raise ProcessingError(f"MP3 export needs 1 or 2 channels, got PCM shaped {pcm16.shape}.")
    if sample_rate <= 0:
        raise ProcessingError(f"MP3 export needs a positive sample rate, got {sample_rate}.")

    channel_count, frame_count = pcm16.shape
    scaled = pcm16.astype(np.float32) / 32768.0
    sink = io.BytesIO()
    try:
        output_file = AudioFile(
            sink,
            "w",
            samplerate=sample_rate,
            num_channels=channel_count,
            format="mp3",
            quality=f"{MP3_BITRATE_KBPS} kbps",
        )
    except (OSError, ValueError, RuntimeError) as exc:
        raise EncodingUnavailableError(f"MP3 encoder unavailable: {exc}") from exc

    try:
        with output_file:
            for start in range(0, frame_count, MP3_FRAME_SAMPLES):
                output_file.write(scaled[:, start : start + MP3_FRAME_SAMPLES])
    except (OSError, ValueError, RuntimeError) as exc:
        raise ProcessingError(f"MP3 encoding failed: {exc}") from exc
    return sink.getvalue()
