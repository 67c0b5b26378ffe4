from abc import ABC, abstractmethod
import numpy as np


class BaseProcessor(ABC):
    """Base class for all DSP stages.

    Stages take channel-first audio of shape ``(channels, frames)`` and return
    a newly allocated array of the same shape; inputs are never modified.
    """

    @abstractmethod
    def process(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        """Process audio and return the transformed signal."""
        raise NotImplementedError

    def __call__(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        return self.process(audio, sample_rate)
