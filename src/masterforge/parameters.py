"""Mastering parameter record consumed by the signal chain."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

import numpy as np

from .errors import InvalidParameterError

EQ_GAIN_LIMIT_DB = 12.0
MAX_LIMITER_CEILING_DBTP = -0.3
MIN_TIME_CONSTANT_MS = 0.1


@dataclass(frozen=True, slots=True)
class BandParameters:
    """Threshold/ratio pair for one multiband compressor."""

    threshold_db: float
    ratio: float


@dataclass(frozen=True, slots=True)
class MasteringParameters:
    """Flat parameter record for one render.

    The record is passed by value into every render call. Values outside the
    documented ranges are tolerated here and clamped by :meth:`clamped`.
    """

    intensity: float = 70.0
    eq_low_db: float = 0.0
    eq_mid_db: float = 0.0
    eq_high_db: float = 2.0
    comp_threshold_db: float = -18.0
    comp_ratio: float = 4.0
    comp_attack_ms: float = 10.0
    comp_release_ms: float = 150.0
    limiter_ceiling_dbtp: float = -1.0
    stereo_width: float = 100.0
    multiband_enabled: bool = False
    low_band: BandParameters = field(default_factory=lambda: BandParameters(-24.0, 3.0))
    mid_band: BandParameters = field(default_factory=lambda: BandParameters(-20.0, 4.0))
    high_band: BandParameters = field(default_factory=lambda: BandParameters(-18.0, 5.0))

    @property
    def intensity_scale(self) -> float:
        return self.intensity / 100.0

    def clamped(self) -> "MasteringParameters":
        """Return a copy with every numeric field forced into its safe range."""

        def _band(band: BandParameters) -> BandParameters:
            return BandParameters(threshold_db=float(band.threshold_db), ratio=max(1.0, float(band.ratio)))

        return MasteringParameters(
            intensity=float(np.clip(self.intensity, 0.0, 100.0)),
            eq_low_db=float(np.clip(self.eq_low_db, -EQ_GAIN_LIMIT_DB, EQ_GAIN_LIMIT_DB)),
            eq_mid_db=float(np.clip(self.eq_mid_db, -EQ_GAIN_LIMIT_DB, EQ_GAIN_LIMIT_DB)),
            eq_high_db=float(np.clip(self.eq_high_db, -EQ_GAIN_LIMIT_DB, EQ_GAIN_LIMIT_DB)),
            comp_threshold_db=float(self.comp_threshold_db),
            comp_ratio=max(1.0, float(self.comp_ratio)),
            comp_attack_ms=max(MIN_TIME_CONSTANT_MS, float(self.comp_attack_ms)),
            comp_release_ms=max(MIN_TIME_CONSTANT_MS, float(self.comp_release_ms)),
            limiter_ceiling_dbtp=min(MAX_LIMITER_CEILING_DBTP, float(self.limiter_ceiling_dbtp)),
            stereo_width=max(0.0, float(self.stereo_width)),
            multiband_enabled=bool(self.multiband_enabled),
            low_band=_band(self.low_band),
            mid_band=_band(self.mid_band),
            high_band=_band(self.high_band),
        )

    def with_overrides(self, **changes: Any) -> "MasteringParameters":
        return replace(self, **changes)

    @classmethod
    def from_recommendation(
        cls, payload: Mapping[str, Any], base: "MasteringParameters | None" = None
    ) -> "MasteringParameters":
        """Apply the ``params`` object of a recommendation payload.

        Only ``params`` is read; narrative fields (summary, issues, meters,
        recommendations) are ignored. Missing keys keep the ``base`` values.
        """

        current = base or cls()
        params = payload.get("params") or {}
        if not isinstance(params, Mapping):
            return current

        changes: dict[str, Any] = {}
        for key, attribute in RECOMMENDATION_KEYS.items():
            if params.get(key) is not None:
                changes[attribute] = _recommended_number(params, key)
        if params.get("multibandEnabled") is not None:
            changes["multiband_enabled"] = bool(params["multibandEnabled"])

        for band_name, (threshold_key, ratio_key) in RECOMMENDATION_BAND_KEYS.items():
            band: BandParameters = getattr(current, band_name)
            if params.get(threshold_key) is None and params.get(ratio_key) is None:
                continue
            changes[band_name] = BandParameters(
                threshold_db=(
                    band.threshold_db
                    if params.get(threshold_key) is None
                    else _recommended_number(params, threshold_key)
                ),
                ratio=(
                    band.ratio if params.get(ratio_key) is None else _recommended_number(params, ratio_key)
                ),
            )
        return replace(current, **changes)

    def to_summary(self) -> dict[str, Any]:
        summary: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, BandParameters):
                value = {"threshold_db": value.threshold_db, "ratio": value.ratio}
            summary[item.name] = value
        return summary


def _recommended_number(params: Mapping[str, Any], key: str) -> float:
    value = params[key]
    message = f"Recommendation value for '{key}' must be a finite number, got {value!r}."
    if isinstance(value, bool):
        raise InvalidParameterError(message)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(message) from exc
    if not math.isfinite(number):
        raise InvalidParameterError(message)
    return number


RECOMMENDATION_KEYS: dict[str, str] = {
    "intensity": "intensity",
    "eqLow": "eq_low_db",
    "eqMid": "eq_mid_db",
    "eqHigh": "eq_high_db",
    "compThreshold": "comp_threshold_db",
    "compRatio": "comp_ratio",
    "compAttack": "comp_attack_ms",
    "compRelease": "comp_release_ms",
    "limiterCeiling": "limiter_ceiling_dbtp",
    "stereoWidth": "stereo_width",
}

RECOMMENDATION_BAND_KEYS: dict[str, tuple[str, str]] = {
    "low_band": ("mbLowThresh", "mbLowRatio"),
    "mid_band": ("mbMidThresh", "mbMidRatio"),
    "high_band": ("mbHighThresh", "mbHighRatio"),
}
