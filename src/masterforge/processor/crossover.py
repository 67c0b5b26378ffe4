"""Three-band crossover and the multiband compressor built on it."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .base import BaseProcessor
from .biquad import BiquadFilter, FilterType
from .dynamics import Compressor

LOW_CROSSOVER_HZ = 200.0
HIGH_CROSSOVER_HZ = 5_000.0
CROSSOVER_Q = 0.7
BAND_KNEE_DB = 6.0


@dataclass(frozen=True, slots=True)
class BandTiming:
    attack_ms: float
    release_ms: float


# Faster envelopes for higher bands.
BAND_TIMINGS: dict[str, BandTiming] = {
    "low": BandTiming(attack_ms=20.0, release_ms=200.0),
    "mid": BandTiming(attack_ms=10.0, release_ms=150.0),
    "high": BandTiming(attack_ms=5.0, release_ms=100.0),
}


class ThreeBandSplitter:
    """Split a signal at two crossover points using cascaded biquads.

    low:  low-pass -> low-pass at the low crossover
    mid:  high-pass at the low crossover -> low-pass at the high crossover
    high: high-pass -> high-pass at the high crossover
    """

    def __init__(
        self,
        low_crossover_hz: float = LOW_CROSSOVER_HZ,
        high_crossover_hz: float = HIGH_CROSSOVER_HZ,
        q: float = CROSSOVER_Q,
    ) -> None:
        self.low_path = (
            BiquadFilter(FilterType.LOWPASS, low_crossover_hz, q=q),
            BiquadFilter(FilterType.LOWPASS, low_crossover_hz, q=q),
        )
        self.mid_path = (
            BiquadFilter(FilterType.HIGHPASS, low_crossover_hz, q=q),
            BiquadFilter(FilterType.LOWPASS, high_crossover_hz, q=q),
        )
        self.high_path = (
            BiquadFilter(FilterType.HIGHPASS, high_crossover_hz, q=q),
            BiquadFilter(FilterType.HIGHPASS, high_crossover_hz, q=q),
        )

    @staticmethod
    def _run(path: tuple[BiquadFilter, ...], audio: np.ndarray, sample_rate: int) -> np.ndarray:
        for stage in path:
            audio = stage.process(audio, sample_rate)
        return audio

    def split(self, audio: np.ndarray, sample_rate: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return (
            self._run(self.low_path, audio, sample_rate),
            self._run(self.mid_path, audio, sample_rate),
            self._run(self.high_path, audio, sample_rate),
        )


class MultibandCompressor(BaseProcessor):
    """Independent compressor per band, outputs mixed back together."""

    def __init__(
        self,
        low: tuple[float, float],
        mid: tuple[float, float],
        high: tuple[float, float],
        splitter: ThreeBandSplitter | None = None,
    ) -> None:
        self.splitter = splitter or ThreeBandSplitter()
        self.compressors = tuple(
            Compressor(
                threshold_db=threshold_db,
                ratio=ratio,
                attack_ms=BAND_TIMINGS[name].attack_ms,
                release_ms=BAND_TIMINGS[name].release_ms,
                knee_db=BAND_KNEE_DB,
            )
            for name, (threshold_db, ratio) in (("low", low), ("mid", mid), ("high", high))
        )

    def process(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        bands = self.splitter.split(audio, sample_rate)
        mixed = np.zeros_like(np.asarray(audio, dtype=np.float64))
        for compressor, band in zip(self.compressors, bands):
            mixed += compressor.process(band, sample_rate)
        return mixed
