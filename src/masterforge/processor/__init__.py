from .base import BaseProcessor
from .biquad import BiquadFilter, FilterType, design_biquad
from .crossover import MultibandCompressor, ThreeBandSplitter
from .dynamics import Compressor, Gain, Limiter

__all__ = [
    "BaseProcessor",
    "BiquadFilter",
    "FilterType",
    "design_biquad",
    "MultibandCompressor",
    "ThreeBandSplitter",
    "Compressor",
    "Gain",
    "Limiter",
]
