"""
Shared fakes and fixtures for the pixel-receiver tests
"""

import sys
import zlib
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pytest
from PIL import Image

src_path = str(Path(__file__).parent.parent / 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from pixel_receiver.chunk_header import ChunkHeader, MAX_BLOCK_BYTES
from pixel_receiver.interfaces import (
    DecodeEvent, SyncInfo, Demodulator, ErasureCoder, PayloadSink, ReleasedPayload,
)


def make_image(fmt: str = 'PNG', size: Tuple[int, int] = (32, 32)) -> bytes:
    """Encode a small gradient image"""
    w, h = size
    pixels = np.zeros((h, w, 3), dtype=np.uint8)
    pixels[..., 0] = np.linspace(0, 255, w, dtype=np.uint8)[None, :]
    pixels[..., 1] = np.linspace(0, 255, h, dtype=np.uint8)[:, None]
    buf = BytesIO()
    Image.fromarray(pixels).save(buf, format=fmt)
    return buf.getvalue()


def make_block(header: Optional[ChunkHeader] = None, body: bytes = b'') -> bytes:
    """A decoded block as the demodulator would deliver it"""
    data = (header.pack() if header else b'') + body
    return data.ljust(MAX_BLOCK_BYTES, b'\0')[:MAX_BLOCK_BYTES]


class FakeErasureCoder(ErasureCoder):
    """
    Records ingested chunks; recover() writes a preset payload and
    returns its CRC-32.
    """

    def __init__(self, payload: bytes = b'', fail_ingest_at: Optional[int] = None,
                 checksum: Optional[int] = None):
        self.payload = payload
        self.fail_ingest_at = fail_ingest_at
        self.checksum = checksum
        self.ingested: List[Tuple[int, int]] = []
        self.recover_calls: List[int] = []

    def ingest(self, chunk: bytes, position: int, block_ident: int) -> bool:
        if self.fail_ingest_at is not None and len(self.ingested) == self.fail_ingest_at:
            return False
        self.ingested.append((position, block_ident))
        return True

    def recover(self, output: bytearray, chunks_provided: int) -> int:
        self.recover_calls.append(chunks_provided)
        data = self.payload[:len(output)]
        output[:len(data)] = data
        if self.checksum is not None:
            return self.checksum
        return zlib.crc32(bytes(output))


class FakeDemodulator(Demodulator):
    """Replays a scripted list of events and decoded blocks"""

    def __init__(self, events=(), blocks=(), sync: SyncInfo = SyncInfo(-12.5, 6, 'DL1ABC'),
                 bit_flips: int = 3, rate: int = 8000):
        self.events = list(events)
        self.blocks = list(blocks)
        self.sync = sync
        self.bit_flips = bit_flips
        self.rate = rate
        self.processed = 0

    @property
    def sample_rate(self) -> int:
        return self.rate

    def process(self, audio_block, channel_select: int) -> DecodeEvent:
        self.processed += 1
        if self.events:
            return self.events.pop(0)
        return DecodeEvent.NO_EVENT

    def cached(self) -> SyncInfo:
        return self.sync

    def fetch(self, buffer: bytearray) -> int:
        block = self.blocks.pop(0)
        buffer[:len(block)] = block
        return self.bit_flips


class MemorySink(PayloadSink):
    def __init__(self):
        self.released: List[ReleasedPayload] = []

    def release(self, payload: ReleasedPayload):
        self.released.append(payload)


@pytest.fixture
def png_payload() -> bytes:
    return make_image('PNG', (32, 24))


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()
