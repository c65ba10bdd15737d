"""
Shared data models for the receiver interfaces

These are the values that cross the boundaries between the
ReassemblyController and its external collaborators.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


class DecodeEvent(Enum):
    """One decode event per audio block from the demodulator"""
    NO_EVENT = "no_event"
    PREAMBLE_FAIL = "preamble_fail"
    WEAK_SYNC = "weak_sync"
    SYNCED = "synced"
    BLOCK_READY = "block_ready"
    RESOURCE_EXHAUSTED = "resource_exhausted"

    @classmethod
    def from_status_code(cls, code: int) -> 'DecodeEvent':
        """
        Map the native decoder status codes.

        0 OKAY, 1 FAIL, 2 SYNC, 3 DONE, 4 HEAP, 5 NOPE. Unknown codes are
        treated as resource exhaustion since the engine is then in an
        undefined state.
        """
        return _STATUS_CODES.get(code, cls.RESOURCE_EXHAUSTED)


_STATUS_CODES = {
    0: DecodeEvent.NO_EVENT,
    1: DecodeEvent.PREAMBLE_FAIL,
    2: DecodeEvent.SYNCED,
    3: DecodeEvent.BLOCK_READY,
    4: DecodeEvent.RESOURCE_EXHAUSTED,
    5: DecodeEvent.WEAK_SYNC,
}


@dataclass(frozen=True)
class SyncInfo:
    """Synchronization metadata cached by the demodulator"""
    carrier_offset: float = 0.0   # Hz
    mode: int = 0                 # Operation mode, 0 = ping
    call_sign: str = ""

    @property
    def is_ping(self) -> bool:
        return self.mode == 0


@dataclass
class ReleasedPayload:
    """A validated payload handed to storage/presentation"""
    data: bytes
    container: str                  # JPEG, PNG or WebP
    call_sign: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    width: int = 0
    height: int = 0
    mime_type: str = ""
    suffix: str = ""
    bit_flips: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'container': self.container,
            'call_sign': self.call_sign,
            'timestamp': self.timestamp.isoformat(),
            'width': self.width,
            'height': self.height,
            'mime_type': self.mime_type,
            'bytes': len(self.data),
            'bit_flips': self.bit_flips,
        }
