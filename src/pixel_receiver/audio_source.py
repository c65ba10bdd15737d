#!/usr/bin/env python3
"""
WAV Audio Source - Fixed-size audio blocks from a recording

Reads a WAV/FLAC recording with soundfile and yields the int16 blocks
the demodulator consumes, one per tick:

- Channel layout follows the channel select (mono for 0, stereo otherwise)
- Recordings at another rate are resampled with a polyphase filter
- The final partial block is padded with silence
"""

import logging
from math import gcd
from pathlib import Path
from typing import Iterator

import numpy as np
import soundfile as sf
from scipy import signal as scipy_signal

from .exceptions import ConfigError
from .interfaces.demodulator import SUPPORTED_SAMPLE_RATES, channel_count, extended_length

logger = logging.getLogger(__name__)


class WavAudioSource:
    """
    Iterable over int16 audio blocks of ``extended_length(sample_rate)`` frames.

    Example:
        source = WavAudioSource('capture.wav', sample_rate=8000)
        for block in source:
            event = demod.process(block, source.channel_select)
    """

    def __init__(self, path: Path, sample_rate: int = 8000, channel_select: int = 0):
        if sample_rate not in SUPPORTED_SAMPLE_RATES:
            raise ConfigError(f"Unsupported sample rate {sample_rate} Hz")
        self.path = Path(path)
        self.sample_rate = sample_rate
        self.channel_select = channel_select
        self.channels = channel_count(channel_select)
        self.frames_per_block = extended_length(sample_rate)
        self._audio = None

    def _load(self) -> np.ndarray:
        audio, file_rate = sf.read(str(self.path), dtype='float32', always_2d=True)
        logger.info(
            f"Loaded {self.path.name}: {len(audio)} frames, {audio.shape[1]} ch @ {file_rate} Hz"
        )

        # Match the channel layout
        if self.channels == 1:
            audio = audio.mean(axis=1, keepdims=True)
        elif audio.shape[1] == 1:
            audio = np.repeat(audio, 2, axis=1)
        else:
            audio = audio[:, :2]

        if file_rate != self.sample_rate:
            common = gcd(int(file_rate), self.sample_rate)
            up = self.sample_rate // common
            down = int(file_rate) // common
            logger.info(f"Resampling {file_rate} Hz → {self.sample_rate} Hz (up={up}, down={down})")
            audio = scipy_signal.resample_poly(audio, up, down, axis=0)

        return np.clip(audio * 32767.0, -32768, 32767).astype(np.int16)

    @property
    def audio(self) -> np.ndarray:
        if self._audio is None:
            self._audio = self._load()
        return self._audio

    def __len__(self) -> int:
        """Number of blocks"""
        return -(-len(self.audio) // self.frames_per_block)

    def __iter__(self) -> Iterator[np.ndarray]:
        audio = self.audio
        n = self.frames_per_block
        for start in range(0, len(audio), n):
            frames = audio[start:start + n]
            if len(frames) < n:
                frames = np.vstack([frames, np.zeros((n - len(frames), self.channels), dtype=np.int16)])
            yield frames.reshape(-1)
