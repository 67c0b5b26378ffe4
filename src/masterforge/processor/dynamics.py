"""Feed-forward dynamics: compressor, limiter and static gain stages."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .base import BaseProcessor

_LEVEL_FLOOR_DB = -200.0

LIMITER_RATIO = 20.0
LIMITER_ATTACK_MS = 1.0
LIMITER_RELEASE_MS = 50.0


def db_to_linear(gain_db: float) -> float:
    return 10.0 ** (gain_db / 20.0)


def static_gain_reduction_db(
    level_db: np.ndarray, threshold_db: float, ratio: float, knee_db: float
) -> np.ndarray:
    """Gain computer: dB of reduction (<= 0) for each detector level.

    Below ``threshold - knee/2`` the signal passes, above ``threshold + knee/2``
    the slope is ``1/ratio``, and inside the knee the transition is quadratic.
    """

    level_db = np.asarray(level_db, dtype=np.float64)
    slope = 1.0 / max(ratio, 1.0) - 1.0
    overshoot = level_db - threshold_db
    reduction = np.zeros_like(level_db)

    if knee_db > 0.0:
        half_knee = knee_db / 2.0
        in_knee = np.abs(overshoot) <= half_knee
        above = overshoot > half_knee
        reduction[in_knee] = slope * np.square(overshoot[in_knee] + half_knee) / (2.0 * knee_db)
        reduction[above] = slope * overshoot[above]
    else:
        above = overshoot > 0.0
        reduction[above] = slope * overshoot[above]
    return reduction


def smoothing_coefficient(time_ms: float, sample_rate: int) -> float:
    """One-pole coefficient reaching ~63% of a step after ``time_ms``."""

    samples = max(time_ms, 1e-3) * 1e-3 * sample_rate
    return math.exp(-1.0 / samples)


def smooth_gain_reduction(
    target_db: np.ndarray, attack_coefficient: float, release_coefficient: float
) -> np.ndarray:
    """Envelope follower over gain reduction: attack when deepening, release otherwise."""

    smoothed = []
    state = 0.0
    for target in target_db.tolist():
        coefficient = attack_coefficient if target < state else release_coefficient
        state = coefficient * state + (1.0 - coefficient) * target
        smoothed.append(state)
    return np.asarray(smoothed, dtype=np.float64)


@dataclass(frozen=True, slots=True)
class CompressorSettings:
    threshold_db: float
    ratio: float
    attack_ms: float
    release_ms: float
    knee_db: float = 6.0


class Compressor(BaseProcessor):
    """Linked-channel peak compressor with a soft knee."""

    def __init__(
        self,
        threshold_db: float,
        ratio: float,
        attack_ms: float,
        release_ms: float,
        knee_db: float = 6.0,
    ) -> None:
        self.settings = CompressorSettings(
            threshold_db=float(threshold_db),
            ratio=max(1.0, float(ratio)),
            attack_ms=float(attack_ms),
            release_ms=float(release_ms),
            knee_db=max(0.0, float(knee_db)),
        )

    def gain_reduction_db(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        """Per-frame smoothed gain reduction in dB."""

        audio = np.atleast_2d(np.asarray(audio, dtype=np.float64))
        if audio.shape[-1] == 0:
            return np.zeros(0, dtype=np.float64)

        detector = np.max(np.abs(audio), axis=0)
        with np.errstate(divide="ignore"):
            level_db = np.maximum(20.0 * np.log10(detector), _LEVEL_FLOOR_DB)

        settings = self.settings
        target = static_gain_reduction_db(
            level_db, settings.threshold_db, settings.ratio, settings.knee_db
        )
        return smooth_gain_reduction(
            target,
            smoothing_coefficient(settings.attack_ms, sample_rate),
            smoothing_coefficient(settings.release_ms, sample_rate),
        )

    def process(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        audio = np.asarray(audio, dtype=np.float64)
        gain = np.power(10.0, self.gain_reduction_db(audio, sample_rate) / 20.0)
        return audio * gain

    def __repr__(self) -> str:
        s = self.settings
        return (
            f"Compressor(threshold_db={s.threshold_db:g}, ratio={s.ratio:g}, "
            f"attack_ms={s.attack_ms:g}, release_ms={s.release_ms:g}, knee_db={s.knee_db:g})"
        )


class Limiter(Compressor):
    """High-ratio, zero-knee, fast compressor approximating a brick wall."""

    def __init__(self, ceiling_db: float) -> None:
        super().__init__(
            threshold_db=ceiling_db,
            ratio=LIMITER_RATIO,
            attack_ms=LIMITER_ATTACK_MS,
            release_ms=LIMITER_RELEASE_MS,
            knee_db=0.0,
        )

    @property
    def ceiling_db(self) -> float:
        return self.settings.threshold_db


class Gain(BaseProcessor):
    """Uniform gain stage."""

    def __init__(self, gain_db: float) -> None:
        self.gain_db = float(gain_db)

    def process(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        return np.asarray(audio, dtype=np.float64) * db_to_linear(self.gain_db)

    def __repr__(self) -> str:
        return f"Gain(gain_db={self.gain_db:g})"
