"""Second-order IIR sections designed with the RBJ Audio-EQ-Cookbook formulas."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np
from scipy.signal import lfilter

from .base import BaseProcessor

BUTTERWORTH_Q = 1.0 / math.sqrt(2.0)


class FilterType(str, Enum):
    LOWPASS = "lowpass"
    HIGHPASS = "highpass"
    LOW_SHELF = "lowshelf"
    HIGH_SHELF = "highshelf"
    PEAKING = "peaking"


@dataclass(frozen=True, slots=True)
class BiquadCoefficients:
    """Normalized transfer function ``b / a`` with ``a[0] == 1``."""

    b: tuple[float, float, float]
    a: tuple[float, float, float]


_IDENTITY = BiquadCoefficients(b=(1.0, 0.0, 0.0), a=(1.0, 0.0, 0.0))
_SILENCE = BiquadCoefficients(b=(0.0, 0.0, 0.0), a=(1.0, 0.0, 0.0))


def _constant_gain(linear_gain: float) -> BiquadCoefficients:
    return BiquadCoefficients(b=(linear_gain, 0.0, 0.0), a=(1.0, 0.0, 0.0))


def _edge_response(
    filter_type: FilterType, at_nyquist: bool, shelf_gain: float
) -> BiquadCoefficients:
    # Cutoff at (or beyond) DC/Nyquist collapses every section to a constant.
    if filter_type is FilterType.LOWPASS:
        return _IDENTITY if at_nyquist else _SILENCE
    if filter_type is FilterType.HIGHPASS:
        return _SILENCE if at_nyquist else _IDENTITY
    if filter_type is FilterType.LOW_SHELF:
        return _constant_gain(shelf_gain) if at_nyquist else _IDENTITY
    if filter_type is FilterType.HIGH_SHELF:
        return _IDENTITY if at_nyquist else _constant_gain(shelf_gain)
    return _IDENTITY


def design_biquad(
    filter_type: FilterType,
    frequency_hz: float,
    sample_rate: int,
    q: float = BUTTERWORTH_Q,
    gain_db: float = 0.0,
) -> BiquadCoefficients:
    """Transform analog filter parameters to digital biquad coefficients."""

    amplitude = 10.0 ** (gain_db / 40.0)
    nyquist = sample_rate / 2.0
    if frequency_hz >= nyquist:
        return _edge_response(filter_type, True, amplitude * amplitude)
    if frequency_hz <= 0.0:
        return _edge_response(filter_type, False, amplitude * amplitude)

    q = max(float(q), 1e-4)
    w0 = 2.0 * math.pi * frequency_hz / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * q)

    if filter_type is FilterType.LOWPASS:
        b0 = (1.0 - cos_w0) / 2.0
        b1 = 1.0 - cos_w0
        b2 = b0
        a0 = 1.0 + alpha
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha
    elif filter_type is FilterType.HIGHPASS:
        b0 = (1.0 + cos_w0) / 2.0
        b1 = -(1.0 + cos_w0)
        b2 = b0
        a0 = 1.0 + alpha
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha
    elif filter_type is FilterType.PEAKING:
        b0 = 1.0 + alpha * amplitude
        b1 = -2.0 * cos_w0
        b2 = 1.0 - alpha * amplitude
        a0 = 1.0 + alpha / amplitude
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha / amplitude
    elif filter_type is FilterType.LOW_SHELF:
        two_sqrt_a_alpha = 2.0 * math.sqrt(amplitude) * alpha
        b0 = amplitude * ((amplitude + 1.0) - (amplitude - 1.0) * cos_w0 + two_sqrt_a_alpha)
        b1 = 2.0 * amplitude * ((amplitude - 1.0) - (amplitude + 1.0) * cos_w0)
        b2 = amplitude * ((amplitude + 1.0) - (amplitude - 1.0) * cos_w0 - two_sqrt_a_alpha)
        a0 = (amplitude + 1.0) + (amplitude - 1.0) * cos_w0 + two_sqrt_a_alpha
        a1 = -2.0 * ((amplitude - 1.0) + (amplitude + 1.0) * cos_w0)
        a2 = (amplitude + 1.0) + (amplitude - 1.0) * cos_w0 - two_sqrt_a_alpha
    elif filter_type is FilterType.HIGH_SHELF:
        two_sqrt_a_alpha = 2.0 * math.sqrt(amplitude) * alpha
        b0 = amplitude * ((amplitude + 1.0) + (amplitude - 1.0) * cos_w0 + two_sqrt_a_alpha)
        b1 = -2.0 * amplitude * ((amplitude - 1.0) + (amplitude + 1.0) * cos_w0)
        b2 = amplitude * ((amplitude + 1.0) + (amplitude - 1.0) * cos_w0 - two_sqrt_a_alpha)
        a0 = (amplitude + 1.0) - (amplitude - 1.0) * cos_w0 + two_sqrt_a_alpha
        a1 = 2.0 * ((amplitude - 1.0) - (amplitude + 1.0) * cos_w0)
        a2 = (amplitude + 1.0) - (amplitude - 1.0) * cos_w0 - two_sqrt_a_alpha
    else:
        raise ValueError(f"Unsupported filter type: {filter_type!r}")

    return BiquadCoefficients(
        b=(b0 / a0, b1 / a0, b2 / a0),
        a=(1.0, a1 / a0, a2 / a0),
    )


def apply_biquad(audio: np.ndarray, coefficients: BiquadCoefficients) -> np.ndarray:
    """Run a biquad over the last axis with zero initial state."""

    signal = np.asarray(audio, dtype=np.float64)
    if signal.shape[-1] == 0:
        return signal.copy()
    return lfilter(coefficients.b, coefficients.a, signal, axis=-1)


class BiquadFilter(BaseProcessor):
    """One biquad section, coefficients derived per call from the sample rate."""

    def __init__(
        self,
        filter_type: FilterType,
        frequency_hz: float,
        q: float = BUTTERWORTH_Q,
        gain_db: float = 0.0,
    ) -> None:
        self.filter_type = filter_type
        self.frequency_hz = float(frequency_hz)
        self.q = float(q)
        self.gain_db = float(gain_db)

    def coefficients(self, sample_rate: int) -> BiquadCoefficients:
        return design_biquad(
            self.filter_type, self.frequency_hz, sample_rate, q=self.q, gain_db=self.gain_db
        )

    def process(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        return apply_biquad(audio, self.coefficients(sample_rate))

    def __repr__(self) -> str:
        return (
            f"BiquadFilter({self.filter_type.value}, {self.frequency_hz:g} Hz, "
            f"q={self.q:g}, gain_db={self.gain_db:g})"
        )
