#!/usr/bin/env python3
"""
Status Messages - What the receiver tells its host

The controller reports every decode outcome as a StatusMessage. Exact
wording belongs to the host; ``render()`` gives a plain English line
with a "<offset> Hz <mode> <call>" prefix once a transmission is synced.

StatusReporter logs each message and spaces them out for display so a
burst of events does not overwrite text before it can be read.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple

from .interfaces.data_models import SyncInfo

logger = logging.getLogger(__name__)


class StatusKind(Enum):
    PREAMBLE_NOT_FOUND = "preamble_not_found"
    WEAK_SYNC = "weak_sync"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    SYNCED = "synced"
    CHUNK_RECEIVED = "chunk_received"
    CHUNK_DUPLICATE = "chunk_duplicate"
    CHUNK_REDUNDANT = "chunk_redundant"
    CHUNK_UNSUPPORTED = "chunk_unsupported"
    CHUNK_CORRUPTED = "chunk_corrupted"
    PAYLOAD_UNKNOWN = "payload_unknown"
    DECODE_FAILED = "decode_failed"
    PAYLOAD_READY = "payload_ready"
    STORE_FAILED = "store_failed"


_TEXT = {
    StatusKind.PREAMBLE_NOT_FOUND: "preamble not found",
    StatusKind.WEAK_SYNC: "preamble nope",
    StatusKind.RESOURCE_EXHAUSTED: "not enough memory",
    StatusKind.SYNCED: "preamble sync",
    StatusKind.CHUNK_DUPLICATE: "chunk duplicate",
    StatusKind.CHUNK_REDUNDANT: "chunk redundant",
    StatusKind.CHUNK_UNSUPPORTED: "chunk unsupported",
    StatusKind.CHUNK_CORRUPTED: "chunk corrupted",
    StatusKind.PAYLOAD_UNKNOWN: "payload unknown",
    StatusKind.DECODE_FAILED: "decoding failed",
    StatusKind.STORE_FAILED: "storing picture failed",
}

_LOG_LEVELS = {
    StatusKind.RESOURCE_EXHAUSTED: logging.ERROR,
    StatusKind.STORE_FAILED: logging.ERROR,
    StatusKind.CHUNK_CORRUPTED: logging.WARNING,
    StatusKind.CHUNK_UNSUPPORTED: logging.WARNING,
    StatusKind.PAYLOAD_UNKNOWN: logging.WARNING,
    StatusKind.DECODE_FAILED: logging.WARNING,
    StatusKind.PREAMBLE_NOT_FOUND: logging.DEBUG,
}


def mode_name(mode: int) -> str:
    if mode == 0:
        return "Ping"
    if 0 < mode <= 13:
        return f"Mode {mode}"
    return f"unsupported mode {mode}"


@dataclass(frozen=True)
class StatusMessage:
    """One status update for the host"""
    kind: StatusKind
    chunks_received: int = 0
    block_count: int = 0
    bit_flips: int = 0
    sync: Optional[SyncInfo] = None
    ping: bool = False

    def describe(self) -> str:
        if self.kind == StatusKind.CHUNK_RECEIVED:
            return f"chunk received {self.chunks_received}/{self.block_count}"
        if self.kind == StatusKind.PAYLOAD_READY:
            return f"image received ({self.bit_flips} bit flips corrected)"
        if self.kind == StatusKind.WEAK_SYNC and self.ping:
            return "received ping"
        return _TEXT[self.kind]

    def render(self) -> str:
        text = self.describe()
        if self.sync is None:
            return text
        return (f"{self.sync.carrier_offset:.0f} Hz {mode_name(self.sync.mode)} "
                f"{self.sync.call_sign} {text}")

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS.get(self.kind, logging.INFO)


class StatusReporter:
    """
    Logs status messages and schedules them for display.

    Messages arriving less than ``interval`` seconds after the previous
    one are pushed back to ``interval`` after it.
    Only the last ``history_size`` messages are kept in ``history``.
    """

    def __init__(
        self,
        interval: float = 3.0,
        on_display: Optional[Callable[[StatusMessage], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        history_size: int = 1000,
    ):
        self.interval = interval
        self.on_display = on_display
        self.clock = clock
        self.last_display: Optional[float] = None
        self._queue: Deque[Tuple[float, StatusMessage]] = deque()
        self.history: Deque[StatusMessage] = deque(maxlen=history_size)

    def report(self, message: StatusMessage) -> float:
        """
        Record a message and return the time it should be displayed.
        """
        logger.log(message.log_level, message.render())
        self.history.append(message)

        now = self.clock()
        if self.last_display is None or now - self.last_display >= self.interval:
            self.last_display = now
        else:
            self.last_display += self.interval
        self._queue.append((self.last_display, message))
        self.flush()
        return self.last_display

    def flush(self) -> int:
        """Deliver every queued message whose display time has come"""
        now = self.clock()
        delivered = 0
        while self._queue and self._queue[0][0] <= now:
            _, message = self._queue.popleft()
            if self.on_display:
                self.on_display(message)
            delivered += 1
        return delivered

    def pending(self) -> List[Tuple[float, StatusMessage]]:
        return list(self._queue)
