#!/usr/bin/env python3
"""
Chunk Header - Fixed-size prefix of an erasure-coded block

A decoded block either starts with the 3-byte ``CRS`` magic tag and
carries one chunk of a split transfer, or it is a complete payload on
its own. The header is 14 bytes, little-endian:

    offset  size  field
    0       3     magic "CRS"
    3       2     block count - 1
    5       2     block identifier
    7       3     payload bytes - 1
    10      4     payload checksum (CRC-32)

Parsing is pure and total: bounds are checked by ChunkSet.
"""

import struct
from dataclasses import dataclass
from typing import Optional

MAGIC = b'CRS'
HEADER_OVERHEAD = 14           # Bytes in front of the coded chunk data
MAX_BLOCK_BYTES = 5380         # Demodulator block size (43040 data bits)
MAX_BLOCK_COUNT = 12
MAX_PAYLOAD_BYTES = (MAX_BLOCK_BYTES - HEADER_OVERHEAD) * MAX_BLOCK_COUNT

_FIELDS = struct.Struct('<HH3sI')


@dataclass(frozen=True)
class ChunkHeader:
    """Parsed chunk header"""
    block_count: int        # Chunks needed to recover the payload (1..12)
    block_ident: int        # Identifier in the erasure code's symbol space
    payload_bytes: int      # Length of the reconstructed payload
    payload_checksum: int   # CRC-32 the reconstructed payload must match

    @property
    def transfer_key(self):
        """Fields that identify one transfer"""
        return (self.block_count, self.payload_bytes, self.payload_checksum)

    def is_within_bounds(self) -> bool:
        return (self.block_count <= MAX_BLOCK_COUNT
                and self.block_ident >= self.block_count
                and self.payload_bytes <= MAX_PAYLOAD_BYTES)

    def pack(self) -> bytes:
        """Encode back to the 14-byte wire form"""
        size = (self.payload_bytes - 1).to_bytes(3, 'little')
        return MAGIC + _FIELDS.pack(self.block_count - 1, self.block_ident,
                                    size, self.payload_checksum)

    @classmethod
    def parse(cls, block: bytes) -> Optional['ChunkHeader']:
        """
        Parse the header of a decoded block.

        Returns None when the magic tag is absent, meaning the block is a
        complete, non-chunked payload.
        """
        if len(block) < HEADER_OVERHEAD or bytes(block[:3]) != MAGIC:
            return None
        count, ident, size, checksum = _FIELDS.unpack_from(block, 3)
        return cls(
            block_count=count + 1,
            block_ident=ident,
            payload_bytes=int.from_bytes(size, 'little') + 1,
            payload_checksum=checksum,
        )


def parse_header(block: bytes) -> Optional[ChunkHeader]:
    return ChunkHeader.parse(block)
