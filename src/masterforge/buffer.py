"""Immutable in-memory PCM buffer shared by every engine stage.

Samples are stored channel-first, shape ``(channels, frames)``, as float64.
The sample matrix is flagged read-only on construction so that a buffer can
be handed to the player, the analyzer and the exporter at the same time
without copying. Every stage that transforms audio allocates a new buffer.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True, eq=False)
class PcmBuffer:
    """Decoded PCM audio with its sample rate."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if int(self.sample_rate) <= 0:
            raise ValueError("Sample rate must be a positive integer.")

        samples = np.asarray(self.samples, dtype=np.float64)
        if samples.ndim == 1:
            samples = samples[np.newaxis, :]
        if samples.ndim != 2:
            raise ValueError("Audio must be a 1D mono or 2D channel-first array.")

        if samples.flags.writeable:
            samples = samples.copy()
            samples.flags.writeable = False

        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.samples[index]

    def with_samples(self, samples: np.ndarray, sample_rate: int | None = None) -> "PcmBuffer":
        """Return a new buffer holding ``samples`` at this (or a new) rate."""

        return PcmBuffer(samples, self.sample_rate if sample_rate is None else sample_rate)
