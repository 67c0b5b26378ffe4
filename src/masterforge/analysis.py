"""ITU-R BS.1770-4 loudness measurement: integrated LUFS, true peak and LRA.

The analyzer K-weights up to two channels, measures 400 ms blocks on a
100 ms hop, and applies the absolute (-70 LUFS) and relative (-10 LU) gates.
True peak uses a single linear midpoint between neighbouring samples rather
than 4x oversampling, so it can under-read inter-sample peaks of bright
material by a fraction of a dB.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .buffer import PcmBuffer
from .platforms import PlatformTarget
from .processor.biquad import BiquadCoefficients, FilterType, apply_biquad, design_biquad

# Pre-filter shelf modelling head diffraction, then the RLB high-pass.
K_SHELF_FREQUENCY_HZ = 1681.974
K_SHELF_GAIN_DB = 3.99984
K_SHELF_Q = 0.70718
K_HIGHPASS_FREQUENCY_HZ = 38.1355
K_HIGHPASS_Q = 0.50033

BLOCK_SECONDS = 0.4
HOP_SECONDS = 0.1
LOUDNESS_OFFSET_DB = -0.691
ABSOLUTE_GATE_LUFS = -70.0
RELATIVE_GATE_LU = -10.0
LUFS_FLOOR = -70.0
SILENCE_PEAK_DB = -100.0
MIN_LRA_BLOCKS = 4
LRA_LOW_PERCENTILE = 0.10
LRA_HIGH_PERCENTILE = 0.95
MAX_LOUDNESS_CHANNELS = 2

ABSOLUTE_GATE_ENERGY = 10.0 ** ((ABSOLUTE_GATE_LUFS - LOUDNESS_OFFSET_DB) / 10.0)


@dataclass(frozen=True, slots=True)
class LoudnessMeasurement:
    """Result of one analysis call."""

    integrated_lufs: float
    true_peak_dbtp: float
    loudness_range_lu: float
    duration_seconds: float
    sample_rate_hz: int
    channel_count: int


@dataclass(frozen=True, slots=True)
class MeterReadings:
    """0-100 % gauges summarizing a measurement for display."""

    loudness: float
    dynamics: float
    stereo: float
    clarity: float


def k_weighting_filters(sample_rate: int) -> tuple[BiquadCoefficients, BiquadCoefficients]:
    shelf = design_biquad(
        FilterType.HIGH_SHELF,
        K_SHELF_FREQUENCY_HZ,
        sample_rate,
        q=K_SHELF_Q,
        gain_db=K_SHELF_GAIN_DB,
    )
    highpass = design_biquad(
        FilterType.HIGHPASS, K_HIGHPASS_FREQUENCY_HZ, sample_rate, q=K_HIGHPASS_Q
    )
    return shelf, highpass


def k_weight_channel(samples: np.ndarray, sample_rate: int) -> np.ndarray:
    """Return the K-weighted copy of one channel (shelf first, then high-pass)."""

    shelf, highpass = k_weighting_filters(sample_rate)
    return apply_biquad(apply_biquad(samples, shelf), highpass)


def block_energies(weighted: np.ndarray, sample_rate: int) -> np.ndarray:
    """Mean-square energy of each 400 ms block, summed over channels.

    ``weighted`` is channel-first. The final block is truncated to the
    available samples when the signal is shorter than one block.
    """

    channel_count, frames = weighted.shape
    block = int(round(sample_rate * BLOCK_SECONDS))
    hop = int(round(sample_rate * HOP_SECONDS))
    count = max(1, (frames - block) // hop + 1)

    squared_sum = np.concatenate(([0.0], np.cumsum(np.sum(np.square(weighted), axis=0))))
    starts = np.arange(count) * hop
    ends = np.minimum(starts + block, frames)
    lengths = np.maximum(ends - starts, 1)
    return (squared_sum[ends] - squared_sum[starts]) / (lengths * channel_count)


def _energy_to_lufs(energy: float) -> float:
    return LOUDNESS_OFFSET_DB + 10.0 * np.log10(max(energy, 1e-10))


def integrated_loudness(energies: np.ndarray) -> float:
    """Gate block energies and return unrounded integrated LUFS."""

    gated = energies[energies > ABSOLUTE_GATE_ENERGY]
    if gated.size == 0:
        gated = energies

    gated_mean = float(np.mean(gated))
    relative_threshold = gated_mean * 10.0 ** (RELATIVE_GATE_LU / 10.0)
    passed = gated[gated >= relative_threshold]
    final_mean = float(np.mean(passed)) if passed.size else gated_mean

    return max(LUFS_FLOOR, _energy_to_lufs(final_mean))


def loudness_range(energies: np.ndarray) -> float:
    """Spread between the 10th and 95th percentile absolute-gated blocks, in LU."""

    gated = np.sort(energies[energies > ABSOLUTE_GATE_ENERGY])
    if gated.size < MIN_LRA_BLOCKS:
        return 0.0

    low = float(gated[int(np.floor(gated.size * LRA_LOW_PERCENTILE))])
    high = float(gated[int(np.floor(gated.size * LRA_HIGH_PERCENTILE))])
    if low <= 0.0 or high <= 0.0:
        return 0.0
    return abs(10.0 * np.log10(high) - 10.0 * np.log10(low))


def true_peak_dbtp(samples: np.ndarray) -> float:
    """Peak of |x[i]| and the midpoints |(x[i] + x[i-1]) / 2| across all channels."""

    samples = np.atleast_2d(np.asarray(samples, dtype=np.float64))
    if samples.size == 0:
        return SILENCE_PEAK_DB

    peak = float(np.max(np.abs(samples)))
    if samples.shape[1] > 1:
        midpoints = 0.5 * (samples[:, 1:] + samples[:, :-1])
        peak = max(peak, float(np.max(np.abs(midpoints))))

    if peak <= 0.0:
        return SILENCE_PEAK_DB
    return float(20.0 * np.log10(peak))


def _round_db(value: float) -> float:
    return round(float(value), 1)


def measure_loudness(buffer: PcmBuffer) -> LoudnessMeasurement:
    """Measure integrated loudness, true peak and loudness range of a buffer."""

    if buffer.frame_count == 0 or buffer.channel_count == 0:
        return LoudnessMeasurement(
            integrated_lufs=LUFS_FLOOR,
            true_peak_dbtp=SILENCE_PEAK_DB,
            loudness_range_lu=0.0,
            duration_seconds=0.0,
            sample_rate_hz=buffer.sample_rate,
            channel_count=buffer.channel_count,
        )

    loudness_channels = buffer.samples[:MAX_LOUDNESS_CHANNELS]
    weighted = np.vstack(
        [k_weight_channel(channel, buffer.sample_rate) for channel in loudness_channels]
    )
    energies = block_energies(weighted, buffer.sample_rate)

    return LoudnessMeasurement(
        integrated_lufs=_round_db(integrated_loudness(energies)),
        true_peak_dbtp=_round_db(true_peak_dbtp(buffer.samples)),
        loudness_range_lu=_round_db(loudness_range(energies)),
        duration_seconds=round(buffer.duration_seconds, 1),
        sample_rate_hz=buffer.sample_rate,
        channel_count=buffer.channel_count,
    )


def _stereo_spread_percent(buffer: PcmBuffer) -> float:
    if buffer.channel_count < 2 or buffer.frame_count == 0:
        return 65.0
    step = max(1, buffer.frame_count // 2000)
    left = buffer.samples[0, ::step]
    right = buffer.samples[1, ::step]
    mean_difference = float(np.sum(np.abs(left - right))) / (buffer.frame_count / step)
    return min(100.0, mean_difference * 600.0)


def meter_readings(buffer: PcmBuffer, measurement: LoudnessMeasurement) -> MeterReadings:
    """Display gauges for a buffer and its measurement."""

    lufs = measurement.integrated_lufs
    return MeterReadings(
        loudness=float(np.clip((lufs + 30.0) * 3.33, 0.0, 100.0)),
        dynamics=min(100.0, measurement.loudness_range_lu * 5.0),
        stereo=_stereo_spread_percent(buffer),
        clarity=float(np.clip(85.0 - abs(lufs + 14.0) * 2.0, 20.0, 100.0)),
    )


def gap_to_target(measurement: LoudnessMeasurement, target: PlatformTarget) -> float:
    """LU to add to reach the platform target (negative: already louder)."""

    return round(target.target_lufs - measurement.integrated_lufs, 1)
