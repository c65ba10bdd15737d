"""
Erasure Coder Interface

The Cauchy Reed-Solomon engine is external. The receiver hands it
chunks as they arrive and asks it to rebuild the payload once enough
distinct chunks have been ingested.
"""

from abc import ABC, abstractmethod


class ErasureCoder(ABC):
    """Interface to the external erasure-coding engine"""

    @abstractmethod
    def ingest(self, chunk: bytes, position: int, block_ident: int) -> bool:
        """
        Absorb one decoded block (header included) at ``position``.

        Returns:
            False on internal resource exhaustion
        """
        pass

    @abstractmethod
    def recover(self, output: bytearray, chunks_provided: int) -> int:
        """
        Rebuild the payload into ``output`` from the first
        ``chunks_provided`` ingested chunks.

        Returns:
            CRC-32 of the rebuilt bytes (any mismatch means failure)
        """
        pass
