from .config import (
    BandConfig,
    MasteringParametersConfig,
    default_platform,
    load_mastering_parameters,
    parse_mastering_parameters,
)

__all__ = [
    "BandConfig",
    "MasteringParametersConfig",
    "default_platform",
    "load_mastering_parameters",
    "parse_mastering_parameters",
]
