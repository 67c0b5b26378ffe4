"""Public package exports for MasterForge with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "PcmBuffer",
    "LoudnessMeasurement",
    "MeterReadings",
    "measure_loudness",
    "meter_readings",
    "gap_to_target",
    "MasteringParameters",
    "render_mastering",
    "build_signal_chain",
    "resample_buffer",
    "ExportRequest",
    "ExportResult",
    "export_buffer",
    "encode_wav",
    "encode_mp3",
    "apply_platform_target",
    "PLATFORM_TARGETS",
    "MasteringEngineError",
]

_EXPORT_MODULES: dict[str, str] = {
    "PcmBuffer": "masterforge.buffer",
    "LoudnessMeasurement": "masterforge.analysis",
    "MeterReadings": "masterforge.analysis",
    "measure_loudness": "masterforge.analysis",
    "meter_readings": "masterforge.analysis",
    "gap_to_target": "masterforge.analysis",
    "MasteringParameters": "masterforge.parameters",
    "render_mastering": "masterforge.processing",
    "build_signal_chain": "masterforge.processing",
    "resample_buffer": "masterforge.resampling",
    "ExportRequest": "masterforge.encoding",
    "ExportResult": "masterforge.encoding",
    "export_buffer": "masterforge.encoding",
    "encode_wav": "masterforge.encoding",
    "encode_mp3": "masterforge.encoding",
    "apply_platform_target": "masterforge.platforms",
    "PLATFORM_TARGETS": "masterforge.platforms",
    "MasteringEngineError": "masterforge.errors",
}


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MODULES:
        raise AttributeError(f"module 'masterforge' has no attribute {name!r}")

    module = import_module(_EXPORT_MODULES[name])
    value = getattr(module, name)
    globals()[name] = value
    return value
