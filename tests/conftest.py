import numpy as np
import pytest

from masterforge.buffer import PcmBuffer


def sine(
    frequency_hz: float = 1_000.0,
    amplitude: float = 1.0,
    seconds: float = 1.0,
    sample_rate: int = 48_000,
    channels: int = 1,
) -> PcmBuffer:
    t = np.arange(int(round(seconds * sample_rate))) / sample_rate
    tone = amplitude * np.sin(2 * np.pi * frequency_hz * t)
    return PcmBuffer(np.tile(tone, (channels, 1)), sample_rate)


@pytest.fixture
def make_sine():
    return sine


@pytest.fixture
def silence_buffer():
    return PcmBuffer(np.zeros((2, 48_000)), 48_000)


@pytest.fixture
def music_like_buffer():
    """Stereo mix of a bass, a mid tone and a bright partial at a hot level."""

    sample_rate = 44_100
    t = np.arange(3 * sample_rate) / sample_rate
    left = (
        0.45 * np.sin(2 * np.pi * 60.0 * t)
        + 0.3 * np.sin(2 * np.pi * 1_000.0 * t)
        + 0.2 * np.sin(2 * np.pi * 9_000.0 * t)
    )
    right = 0.9 * left + 0.1 * np.sin(2 * np.pi * 440.0 * t)
    return PcmBuffer(np.vstack([left, right]), sample_rate)
