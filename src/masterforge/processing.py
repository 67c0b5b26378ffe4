"""Signal chain construction and whole-buffer rendering."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from .analysis import true_peak_dbtp
from .buffer import PcmBuffer
from .errors import MasteringEngineError, NothingToProcessError, ProcessingError, RenderBusyError
from .mastering_options import DynamicsMode
from .parameters import MasteringParameters
from .processor import (
    BaseProcessor,
    BiquadFilter,
    Compressor,
    FilterType,
    Gain,
    Limiter,
    MultibandCompressor,
)

logger = logging.getLogger(__name__)

LOW_SHELF_HZ = 80.0
PEAK_HZ = 1_000.0
PEAK_Q = 1.0
HIGH_SHELF_HZ = 8_000.0
COMPRESSOR_KNEE_DB = 6.0


@dataclass(frozen=True, slots=True)
class TruePeakTuning:
    """Post-limiter true-peak guard behavior."""

    tolerance_db: float = 0.1


DEFAULT_TRUE_PEAK_TUNING = TruePeakTuning()


@dataclass(frozen=True, slots=True)
class SignalChain:
    """Ordered processing stages built from one parameter record."""

    eq_stages: tuple[BiquadFilter, ...]
    dynamics: BaseProcessor
    makeup: Gain
    limiter: Limiter
    dynamics_mode: DynamicsMode

    @property
    def stages(self) -> tuple[BaseProcessor, ...]:
        return (*self.eq_stages, self.dynamics, self.makeup, self.limiter)


def makeup_gain_db(parameters: MasteringParameters) -> float:
    """Compensate roughly half of the static reduction at threshold.

    Uses the single-band threshold/ratio in both dynamics modes.
    """

    return (
        abs(parameters.comp_threshold_db)
        * (1.0 - 1.0 / parameters.comp_ratio)
        * 0.5
        * parameters.intensity_scale
    )


def build_signal_chain(parameters: MasteringParameters) -> SignalChain:
    """Build EQ -> dynamics -> makeup -> limiter for clamped parameters."""

    params = parameters.clamped()
    scale = params.intensity_scale

    eq_stages = (
        BiquadFilter(FilterType.LOW_SHELF, LOW_SHELF_HZ, gain_db=params.eq_low_db * scale),
        BiquadFilter(FilterType.PEAKING, PEAK_HZ, q=PEAK_Q, gain_db=params.eq_mid_db * scale),
        BiquadFilter(FilterType.HIGH_SHELF, HIGH_SHELF_HZ, gain_db=params.eq_high_db * scale),
    )

    if params.multiband_enabled:
        dynamics: BaseProcessor = MultibandCompressor(
            low=(params.low_band.threshold_db, params.low_band.ratio),
            mid=(params.mid_band.threshold_db, params.mid_band.ratio),
            high=(params.high_band.threshold_db, params.high_band.ratio),
        )
        mode = DynamicsMode.MULTIBAND
    else:
        dynamics = Compressor(
            threshold_db=params.comp_threshold_db,
            ratio=params.comp_ratio,
            attack_ms=params.comp_attack_ms,
            release_ms=params.comp_release_ms,
            knee_db=COMPRESSOR_KNEE_DB,
        )
        mode = DynamicsMode.SINGLE_BAND

    return SignalChain(
        eq_stages=eq_stages,
        dynamics=dynamics,
        makeup=Gain(makeup_gain_db(params)),
        limiter=Limiter(params.limiter_ceiling_dbtp),
        dynamics_mode=mode,
    )


def apply_true_peak_guard(
    audio: np.ndarray,
    sample_rate: int,
    limiter: Limiter,
    tuning: TruePeakTuning = DEFAULT_TRUE_PEAK_TUNING,
) -> np.ndarray:
    """Apply post-limiter TP guard by gain trim and re-limiting when needed."""

    overshoot_db = true_peak_dbtp(audio) - limiter.ceiling_db
    if overshoot_db <= tuning.tolerance_db:
        return audio

    trimmed = Gain(-(overshoot_db + tuning.tolerance_db))(audio, sample_rate)
    return limiter(trimmed, sample_rate)


class RenderGuard:
    """Tracks buffers with a render in flight."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: set[int] = set()

    @contextmanager
    def hold(self, buffer: PcmBuffer) -> Iterator[None]:
        key = id(buffer)
        with self._lock:
            if key in self._in_flight:
                raise RenderBusyError()
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)

    def is_busy(self, buffer: PcmBuffer) -> bool:
        with self._lock:
            return id(buffer) in self._in_flight


_DEFAULT_GUARD = RenderGuard()


def render_mastering(
    buffer: PcmBuffer | None,
    parameters: MasteringParameters,
    guard: RenderGuard | None = None,
) -> PcmBuffer:
    """Render ``buffer`` through the full mastering chain into a new buffer."""

    if buffer is None:
        raise NothingToProcessError()
    if buffer.channel_count == 0:
        raise ProcessingError("Unsupported channel configuration: buffer has no channels.")

    chain = build_signal_chain(parameters)
    with (guard or _DEFAULT_GUARD).hold(buffer):
        try:
            audio = buffer.samples
            for stage in chain.stages:
                audio = stage(audio, buffer.sample_rate)
            audio = apply_true_peak_guard(audio, buffer.sample_rate, chain.limiter)
        except MasteringEngineError:
            raise
        except Exception as exc:
            raise ProcessingError(f"Mastering render failed: {exc}") from exc

        if not np.all(np.isfinite(audio)):
            raise ProcessingError("Mastering render failed: non-finite samples produced.")

    logger.debug(
        "mastering_rendered",
        extra={"dynamics_mode": chain.dynamics_mode.value, "frames": buffer.frame_count},
    )
    return buffer.with_samples(audio)
