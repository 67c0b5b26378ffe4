from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from masterforge.errors import InvalidParameterError
from masterforge.mastering_options import Platform, parse_case_insensitive_enum
from masterforge.parameters import (
    EQ_GAIN_LIMIT_DB,
    MAX_LIMITER_CEILING_DBTP,
    BandParameters,
    MasteringParameters,
)

DEFAULT_PLATFORM_ENV = "MASTERFORGE_DEFAULT_PLATFORM"


class BandConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    threshold_db: float = Field(..., le=0.0)
    ratio: float = Field(..., ge=1.0, le=20.0)

    def to_band(self) -> BandParameters:
        return BandParameters(threshold_db=self.threshold_db, ratio=self.ratio)


class MasteringParametersConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    intensity: float = Field(70.0, ge=0.0, le=100.0)
    eq_low_db: float = Field(0.0, ge=-EQ_GAIN_LIMIT_DB, le=EQ_GAIN_LIMIT_DB)
    eq_mid_db: float = Field(0.0, ge=-EQ_GAIN_LIMIT_DB, le=EQ_GAIN_LIMIT_DB)
    eq_high_db: float = Field(2.0, ge=-EQ_GAIN_LIMIT_DB, le=EQ_GAIN_LIMIT_DB)
    comp_threshold_db: float = Field(-18.0, ge=-60.0, le=0.0)
    comp_ratio: float = Field(4.0, ge=1.0, le=20.0)
    comp_attack_ms: float = Field(10.0, gt=0.0, le=1000.0)
    comp_release_ms: float = Field(150.0, gt=0.0, le=5000.0)
    limiter_ceiling_dbtp: float = Field(-1.0, ge=-12.0)
    stereo_width: float = Field(100.0, ge=0.0, le=200.0)
    multiband_enabled: bool = False
    low_band: BandConfig = Field(default_factory=lambda: BandConfig(threshold_db=-24.0, ratio=3.0))
    mid_band: BandConfig = Field(default_factory=lambda: BandConfig(threshold_db=-20.0, ratio=4.0))
    high_band: BandConfig = Field(default_factory=lambda: BandConfig(threshold_db=-18.0, ratio=5.0))

    @field_validator("limiter_ceiling_dbtp")
    @classmethod
    def _validate_ceiling(cls, value: float) -> float:
        if value > MAX_LIMITER_CEILING_DBTP:
            raise ValueError(f"limiter_ceiling_dbtp must be <= {MAX_LIMITER_CEILING_DBTP} dBTP.")
        return value

    def to_parameters(self) -> MasteringParameters:
        return MasteringParameters(
            intensity=self.intensity,
            eq_low_db=self.eq_low_db,
            eq_mid_db=self.eq_mid_db,
            eq_high_db=self.eq_high_db,
            comp_threshold_db=self.comp_threshold_db,
            comp_ratio=self.comp_ratio,
            comp_attack_ms=self.comp_attack_ms,
            comp_release_ms=self.comp_release_ms,
            limiter_ceiling_dbtp=self.limiter_ceiling_dbtp,
            stereo_width=self.stereo_width,
            multiband_enabled=self.multiband_enabled,
            low_band=self.low_band.to_band(),
            mid_band=self.mid_band.to_band(),
            high_band=self.high_band.to_band(),
        )


def parse_mastering_parameters(data: Any) -> MasteringParameters:
    """Validate a mapping (or ``None`` for defaults) into engine parameters."""

    try:
        return MasteringParametersConfig.model_validate(data or {}).to_parameters()
    except ValidationError as exc:
        raise InvalidParameterError(f"Invalid mastering parameters: {exc}") from exc


def load_mastering_parameters(path: Path) -> MasteringParameters:
    data = _load_config_data(path)
    return parse_mastering_parameters(data)


def _load_config_data(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            if path.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(handle) or {}
            return json.load(handle)
    except OSError as exc:
        raise InvalidParameterError(f"Could not read config '{path}': {exc}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise InvalidParameterError(f"Could not parse config '{path}': {exc}") from exc


def default_platform() -> Platform:
    """Platform used when a caller names none; overridable from the environment."""

    raw = os.getenv(DEFAULT_PLATFORM_ENV, Platform.SPOTIFY.value)
    try:
        return parse_case_insensitive_enum(raw, Platform)
    except ValueError as exc:
        raise InvalidParameterError(f"{DEFAULT_PLATFORM_ENV}: {exc}") from exc
