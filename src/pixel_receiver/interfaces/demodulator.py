"""
Demodulator Interface

Defines the contract for the physical-layer decoder. The OFDM
synchronization and demodulation live in an external engine; the
receiver only needs decode events, the cached sync metadata and the
decoded block.
"""

from abc import ABC, abstractmethod

import numpy as np

from .data_models import DecodeEvent, SyncInfo

SUPPORTED_SAMPLE_RATES = (8000, 16000, 32000, 44100, 48000)


def symbol_length(sample_rate: int) -> int:
    """Samples per OFDM symbol at the given rate"""
    return (1280 * sample_rate) // 8000


def extended_length(sample_rate: int) -> int:
    """Samples per symbol including the guard interval (one tick)"""
    length = symbol_length(sample_rate)
    return length + length // 8


def channel_count(channel_select: int) -> int:
    """Audio channels needed for a channel select (0 = mono default)"""
    return 1 if channel_select == 0 else 2


class Demodulator(ABC):
    """
    Interface to the external demodulator engine.

    Driven once per audio block of ``extended_length(sample_rate)``
    frames. Not thread-safe; one engine per receiver.
    """

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Sample rate the engine was built for"""
        pass

    @abstractmethod
    def process(self, audio_block: np.ndarray, channel_select: int) -> DecodeEvent:
        """
        Consume one block of interleaved int16 samples.

        Args:
            audio_block: int16 samples, ``extended_length * channels`` long
            channel_select: 0 default, 1 first, 2 second, 3 summation, 4 analytic

        Returns:
            The decode event for this block
        """
        pass

    @abstractmethod
    def cached(self) -> SyncInfo:
        """Carrier offset, mode and call sign of the last preamble"""
        pass

    @abstractmethod
    def fetch(self, buffer: bytearray) -> int:
        """
        Copy the decoded block into ``buffer`` (MAX_BLOCK_BYTES long).

        Returns:
            Number of corrected bit flips, negative if decoding failed
        """
        pass
