#!/usr/bin/env python3
"""
Chunk Set - Per-transfer chunk bookkeeping

Tracks which block identifiers have been handed to the erasure coder
for the transfer currently in progress. A transfer is identified by the
(block count, payload bytes, checksum) triple of its headers; a header
that disagrees with the current snapshot starts a new transfer.

Rejected, duplicate and redundant chunks never mutate the set, so one
malformed or late chunk cannot spoil a valid transfer in progress.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set, Tuple

from .chunk_header import ChunkHeader
from .interfaces.erasure_coder import ErasureCoder

logger = logging.getLogger(__name__)


class AdmitOutcome(Enum):
    """Result kinds of ChunkSet.admit()"""
    REJECTED = "rejected"                      # Header out of bounds
    DUPLICATE = "duplicate"                    # Identifier already admitted
    REDUNDANT = "redundant"                    # Transfer already has enough chunks
    ADMITTED = "admitted"                      # Forwarded, more chunks needed
    COMPLETE = "complete"                      # Forwarded, ready for recovery
    RESOURCE_EXHAUSTED = "resource_exhausted"  # Erasure coder refused the chunk


@dataclass(frozen=True)
class AdmitResult:
    """Outcome of admitting one chunk"""
    outcome: AdmitOutcome
    chunks_so_far: int = 0     # Admitted count before this chunk (its coder position)
    block_count: int = 0       # Chunks needed for the transfer
    reset: bool = False        # Snapshot was replaced before evaluating the chunk

    @property
    def chunks_received(self) -> int:
        """Admitted count including this chunk"""
        if self.outcome in (AdmitOutcome.ADMITTED, AdmitOutcome.COMPLETE):
            return self.chunks_so_far + 1
        return self.chunks_so_far


class ChunkSet:
    """
    Chunk bookkeeping for one transfer at a time.

    Invariant: ``len(admitted) <= expected_block_count``; equality means
    the transfer is ready for recovery.
    """

    def __init__(self, coder: ErasureCoder):
        self.coder = coder
        self.expected_block_count = 0
        self.expected_payload_bytes = 0
        self.expected_checksum = 0
        self.admitted: Set[int] = set()

        # Statistics
        self.transfers_started = 0
        self.chunks_admitted = 0

    @property
    def snapshot(self) -> Optional[Tuple[int, int, int]]:
        if self.expected_block_count == 0:
            return None
        return (self.expected_block_count, self.expected_payload_bytes, self.expected_checksum)

    @property
    def is_complete(self) -> bool:
        return self.expected_block_count > 0 and len(self.admitted) == self.expected_block_count

    def __len__(self) -> int:
        return len(self.admitted)

    def clear(self):
        """Drop the snapshot; the next chunk starts a fresh transfer"""
        self.expected_block_count = 0
        self.expected_payload_bytes = 0
        self.expected_checksum = 0
        self.admitted = set()

    def _adopt(self, header: ChunkHeader):
        self.admitted = set()
        self.expected_block_count = header.block_count
        self.expected_payload_bytes = header.payload_bytes
        self.expected_checksum = header.payload_checksum
        self.transfers_started += 1
        logger.debug(
            f"New transfer: {header.block_count} chunks, "
            f"{header.payload_bytes} bytes, crc 0x{header.payload_checksum:08X}"
        )

    def admit(self, header: ChunkHeader, chunk: bytes) -> AdmitResult:
        """
        Admit one decoded block carrying ``header``.

        Args:
            header: Parsed header of the block
            chunk: The full decoded block, header included

        Returns:
            AdmitResult describing what happened
        """
        if not header.is_within_bounds():
            logger.warning(
                f"Chunk out of bounds: count={header.block_count} "
                f"ident={header.block_ident} bytes={header.payload_bytes}"
            )
            return AdmitResult(AdmitOutcome.REJECTED, len(self.admitted), self.expected_block_count)

        reset = header.transfer_key != self.snapshot
        if reset:
            self._adopt(header)

        size = len(self.admitted)
        if header.block_ident in self.admitted:
            logger.debug(f"Duplicate chunk {header.block_ident}")
            return AdmitResult(AdmitOutcome.DUPLICATE, size, self.expected_block_count, reset)

        if size == self.expected_block_count:
            logger.debug(f"Redundant chunk {header.block_ident}")
            return AdmitResult(AdmitOutcome.REDUNDANT, size, self.expected_block_count, reset)

        if not self.coder.ingest(chunk, size, header.block_ident):
            logger.error(f"Erasure coder refused chunk {header.block_ident} at position {size}")
            self.clear()
            return AdmitResult(AdmitOutcome.RESOURCE_EXHAUSTED, size, header.block_count, reset)

        self.admitted.add(header.block_ident)
        self.chunks_admitted += 1
        outcome = AdmitOutcome.COMPLETE if self.is_complete else AdmitOutcome.ADMITTED
        return AdmitResult(outcome, size, self.expected_block_count, reset)
