"""Sample-rate conversion for export."""

from __future__ import annotations

import math

import numpy as np
from scipy.signal import resample_poly

from .buffer import PcmBuffer
from .errors import InvalidParameterError


def resampled_frame_count(frame_count: int, source_rate: int, target_rate: int) -> int:
    """Frames covering the same duration at ``target_rate``, rounded up."""

    # Integer form of ceil(frames / source * target) avoids float drift.
    return -(-frame_count * target_rate // source_rate)


def resample_buffer(buffer: PcmBuffer, target_rate: int) -> PcmBuffer:
    """Band-limited polyphase resample to ``target_rate``.

    Returns ``buffer`` itself when the rates already match.
    """

    target_rate = int(target_rate)
    if target_rate <= 0:
        raise InvalidParameterError(f"Target sample rate must be positive, got {target_rate}.")
    if target_rate == buffer.sample_rate:
        return buffer

    frames = resampled_frame_count(buffer.frame_count, buffer.sample_rate, target_rate)
    if buffer.frame_count == 0:
        return buffer.with_samples(
            np.zeros((buffer.channel_count, 0), dtype=np.float64), sample_rate=target_rate
        )

    divisor = math.gcd(target_rate, buffer.sample_rate)
    up = target_rate // divisor
    down = buffer.sample_rate // divisor
    converted = resample_poly(buffer.samples, up, down, axis=-1)

    if converted.shape[-1] >= frames:
        converted = converted[:, :frames]
    else:
        converted = np.pad(converted, ((0, 0), (0, frames - converted.shape[-1])))

    return buffer.with_samples(converted, sample_rate=target_rate)
