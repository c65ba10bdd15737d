#!/usr/bin/env python3
"""
Reassembly Controller - Decode event state machine

Consumes one decode event per audio block and drives everything that
happens after demodulation:

    SEARCHING → SYNCED → COLLECTING → COMPLETE → SYNCED
        ↑___________________________________________|  (loss of lock)

- SYNCED snapshots carrier offset, mode and call sign into a DecodeSession
- BLOCK_READY fetches the decoded block, parses its header and feeds
  the ChunkSet
- A complete ChunkSet triggers erasure recovery and checksum validation
- Validated payloads are classified and released to the PayloadSink

Every outcome, including errors, is reported as a StatusMessage. Events
are processed to completion one at a time; the controller is not
thread-safe and owns its ChunkSet and DecodeSession exclusively.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from .chunk_header import ChunkHeader, MAX_BLOCK_BYTES
from .chunk_set import ChunkSet, AdmitOutcome, AdmitResult
from .exceptions import ImageStoreError
from .interfaces.data_models import DecodeEvent, SyncInfo, ReleasedPayload
from .interfaces.demodulator import Demodulator
from .interfaces.erasure_coder import ErasureCoder
from .interfaces.payload_sink import PayloadSink
from .payload_classifier import PayloadClassifier, Verdict
from .status import StatusKind, StatusMessage, StatusReporter

logger = logging.getLogger(__name__)


class ReceiverState(Enum):
    """Reassembly controller states"""
    SEARCHING = "searching"      # No lock on a transmission
    SYNCED = "synced"            # Preamble decoded, waiting for a block
    COLLECTING = "collecting"    # Chunks of a split transfer arriving
    COMPLETE = "complete"        # Payload validated (transient)


@dataclass
class DecodeSession:
    """Metadata of the current demodulator lock"""
    sync: SyncInfo
    bit_flips: int = 0
    started: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def call_sign(self) -> str:
        return self.sync.call_sign


_ADMIT_STATUS = {
    AdmitOutcome.REJECTED: StatusKind.CHUNK_UNSUPPORTED,
    AdmitOutcome.DUPLICATE: StatusKind.CHUNK_DUPLICATE,
    AdmitOutcome.REDUNDANT: StatusKind.CHUNK_REDUNDANT,
    AdmitOutcome.ADMITTED: StatusKind.CHUNK_RECEIVED,
    AdmitOutcome.COMPLETE: StatusKind.CHUNK_RECEIVED,
    AdmitOutcome.RESOURCE_EXHAUSTED: StatusKind.RESOURCE_EXHAUSTED,
}


class ReassemblyController:
    """
    State machine between the demodulator and payload consumers.

    Example:
        controller = ReassemblyController(demod, coder, sink=FileImageStore(out_dir))
        for block in source:
            controller.handle(demod.process(block, channel_select))
    """

    def __init__(
        self,
        demodulator: Demodulator,
        coder: ErasureCoder,
        sink: Optional[PayloadSink] = None,
        classifier: Optional[PayloadClassifier] = None,
        reporter: Optional[StatusReporter] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Initialize controller.

        Args:
            demodulator: Source of sync metadata and decoded blocks
            coder: Erasure coder fed by the chunk set
            sink: Receives validated payloads
            classifier: Container/dimension gate (default bounds 16..1024)
            reporter: Receives every status message
            clock: Timestamp source for released payloads
        """
        self.demodulator = demodulator
        self.coder = coder
        self.sink = sink
        self.classifier = classifier or PayloadClassifier()
        self.reporter = reporter
        self.clock = clock

        self.state = ReceiverState.SEARCHING
        self.session: Optional[DecodeSession] = None
        self.chunks = ChunkSet(coder)

        # Statistics
        self.events_handled: Dict[DecodeEvent, int] = {event: 0 for event in DecodeEvent}
        self.payloads_released = 0
        self.transfers_corrupted = 0

    def reset(self):
        """Drop session and chunk state (demodulator torn down)"""
        self.session = None
        self.chunks.clear()
        self._transition(ReceiverState.SEARCHING)

    def handle(self, event: DecodeEvent) -> List[StatusMessage]:
        """
        Process one decode event to completion.

        Returns:
            Status messages emitted for this event, in order
        """
        self.events_handled[event] += 1
        out: List[StatusMessage] = []

        if event == DecodeEvent.NO_EVENT:
            pass
        elif event == DecodeEvent.PREAMBLE_FAIL:
            self._emit(out, StatusKind.PREAMBLE_NOT_FOUND)
            self._transition(ReceiverState.SEARCHING)
        elif event == DecodeEvent.WEAK_SYNC:
            info = self.demodulator.cached()
            self._emit_message(out, StatusMessage(StatusKind.WEAK_SYNC, sync=info, ping=info.is_ping))
            self._transition(ReceiverState.SEARCHING)
        elif event == DecodeEvent.RESOURCE_EXHAUSTED:
            self._emit(out, StatusKind.RESOURCE_EXHAUSTED)
            self.chunks.clear()
            self.session = None
            self._transition(ReceiverState.SEARCHING)
        elif event == DecodeEvent.SYNCED:
            self.session = DecodeSession(sync=self.demodulator.cached())
            logger.info(
                f"Synced: {self.session.sync.carrier_offset:.1f} Hz, "
                f"mode {self.session.sync.mode}, call '{self.session.call_sign}'"
            )
            self._emit(out, StatusKind.SYNCED)
            self._transition(ReceiverState.SYNCED)
        elif event == DecodeEvent.BLOCK_READY:
            self._on_block_ready(out)

        return out

    def _on_block_ready(self, out: List[StatusMessage]):
        if self.state not in (ReceiverState.SYNCED, ReceiverState.COLLECTING):
            logger.debug(f"Block ready while {self.state.value}, ignoring")
            return

        block = bytearray(MAX_BLOCK_BYTES)
        bit_flips = self.demodulator.fetch(block)
        if bit_flips < 0:
            self._emit(out, StatusKind.DECODE_FAILED)
            return
        if self.session is not None:
            self.session.bit_flips = bit_flips

        header = ChunkHeader.parse(block)
        if header is None:
            logger.debug("Block has no chunk header, treating as complete payload")
            self._transition(ReceiverState.COMPLETE)
            self._release(out, bytes(block), bit_flips)
            self._transition(ReceiverState.SYNCED)
            return

        self._transition(ReceiverState.COLLECTING)
        result = self.chunks.admit(header, bytes(block))
        self._on_admit(out, result, bit_flips)

    def _on_admit(self, out: List[StatusMessage], result: AdmitResult, bit_flips: int):
        kind = _ADMIT_STATUS[result.outcome]
        if kind == StatusKind.CHUNK_RECEIVED:
            self._emit(out, kind, chunks_received=result.chunks_received,
                       block_count=result.block_count)
        else:
            self._emit(out, kind)

        if result.outcome == AdmitOutcome.RESOURCE_EXHAUSTED:
            self._transition(ReceiverState.SEARCHING)
        elif result.outcome == AdmitOutcome.COMPLETE:
            self._recover(out, bit_flips)

    def _recover(self, out: List[StatusMessage], bit_flips: int):
        expected = self.chunks.expected_checksum
        payload = bytearray(self.chunks.expected_payload_bytes)
        checksum = self.coder.recover(payload, len(self.chunks))
        if checksum != expected:
            logger.warning(
                f"Recovered payload checksum 0x{checksum & 0xFFFFFFFF:08X} "
                f"!= expected 0x{expected:08X}"
            )
            self.transfers_corrupted += 1
            self.chunks.clear()
            self._emit(out, StatusKind.CHUNK_CORRUPTED)
            self._transition(ReceiverState.SYNCED)
            return

        self._transition(ReceiverState.COMPLETE)
        self._release(out, bytes(payload), bit_flips)
        self._transition(ReceiverState.SYNCED)

    def _release(self, out: List[StatusMessage], data: bytes, bit_flips: int):
        result = self.classifier.classify(data)
        if result.verdict == Verdict.UNKNOWN:
            self._emit(out, StatusKind.PAYLOAD_UNKNOWN)
            return
        if result.verdict == Verdict.DECODE_FAILED:
            self._emit(out, StatusKind.DECODE_FAILED)
            return

        self._emit(out, StatusKind.PAYLOAD_READY, bit_flips=bit_flips)
        if self.sink is None:
            return
        payload = ReleasedPayload(
            data=data,
            container=result.container.name,
            call_sign=self.session.call_sign if self.session else "",
            timestamp=self.clock(),
            width=result.width,
            height=result.height,
            mime_type=result.container.mime_type,
            suffix=result.container.suffix,
            bit_flips=bit_flips,
        )
        try:
            self.sink.release(payload)
        except ImageStoreError as e:
            logger.error(f"Failed to store payload: {e}")
            self._emit(out, StatusKind.STORE_FAILED)
            return
        self.payloads_released += 1

    def _emit(self, out: List[StatusMessage], kind: StatusKind, **fields):
        sync = self.session.sync if self.session else None
        self._emit_message(out, StatusMessage(kind, sync=sync, **fields))

    def _emit_message(self, out: List[StatusMessage], message: StatusMessage):
        out.append(message)
        if self.reporter:
            self.reporter.report(message)

    def _transition(self, new_state: ReceiverState):
        if new_state != self.state:
            logger.debug(f"State {self.state.value} -> {new_state.value}")
            self.state = new_state
