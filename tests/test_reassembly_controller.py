"""
Tests for the reassembly controller state machine
"""

import zlib
from datetime import datetime, timezone

import pytest

from pixel_receiver.chunk_header import ChunkHeader
from pixel_receiver.exceptions import ImageStoreError
from pixel_receiver.interfaces import DecodeEvent, SyncInfo
from pixel_receiver.reassembly_controller import ReassemblyController, ReceiverState
from pixel_receiver.status import StatusKind, StatusReporter

from conftest import FakeDemodulator, FakeErasureCoder, MemorySink, make_block, make_image

E = DecodeEvent


def chunk_blocks(payload: bytes, idents, count=None, crc=None):
    count = count or len(idents)
    crc = zlib.crc32(payload) if crc is None else crc
    return [make_block(ChunkHeader(count, ident, len(payload), crc)) for ident in idents]


def build(blocks=(), payload=b'', sink=None, coder=None, **demod_kw):
    demod = FakeDemodulator(blocks=blocks, **demod_kw)
    coder = coder or FakeErasureCoder(payload)
    fixed = datetime(2026, 10, 18, 16, 42, 10, tzinfo=timezone.utc)
    controller = ReassemblyController(demod, coder, sink=sink, clock=lambda: fixed)
    return controller, demod, coder


def kinds(messages):
    return [m.kind for m in messages]


class TestSyncEvents:

    def test_starts_searching(self):
        controller, _, _ = build()
        assert controller.state == ReceiverState.SEARCHING
        assert controller.handle(E.NO_EVENT) == []

    def test_synced_snapshots_session(self):
        controller, demod, _ = build()
        messages = controller.handle(E.SYNCED)

        assert kinds(messages) == [StatusKind.SYNCED]
        assert controller.state == ReceiverState.SYNCED
        assert controller.session.call_sign == 'DL1ABC'
        assert messages[0].sync == demod.sync
        assert messages[0].render().startswith('-12 Hz Mode 6 DL1ABC')

    def test_preamble_fail_returns_to_searching(self):
        controller, _, _ = build()
        controller.handle(E.SYNCED)
        assert kinds(controller.handle(E.PREAMBLE_FAIL)) == [StatusKind.PREAMBLE_NOT_FOUND]
        assert controller.state == ReceiverState.SEARCHING

    def test_weak_sync_reports_mode_without_session(self):
        controller, _, _ = build(sync=SyncInfo(150.0, 0, ''))
        messages = controller.handle(E.WEAK_SYNC)

        assert kinds(messages) == [StatusKind.WEAK_SYNC]
        assert messages[0].ping
        assert messages[0].sync.carrier_offset == 150.0
        assert controller.session is None
        assert controller.state == ReceiverState.SEARCHING

    def test_resource_exhausted_discards_chunks(self, png_payload):
        blocks = chunk_blocks(png_payload, [5], count=3)
        controller, _, _ = build(blocks, png_payload)
        controller.handle(E.SYNCED)
        controller.handle(E.BLOCK_READY)
        assert len(controller.chunks) == 1

        assert kinds(controller.handle(E.RESOURCE_EXHAUSTED)) == [StatusKind.RESOURCE_EXHAUSTED]
        assert controller.state == ReceiverState.SEARCHING
        assert controller.chunks.snapshot is None
        assert controller.session is None

    def test_block_ready_ignored_while_searching(self, png_payload):
        controller, demod, _ = build([make_block(body=png_payload)])
        assert controller.handle(E.BLOCK_READY) == []
        assert len(demod.blocks) == 1


class TestSingleBlock:

    def test_plain_image_released(self, png_payload, sink):
        controller, _, coder = build([make_block(body=png_payload)], sink=sink)
        controller.handle(E.SYNCED)
        messages = controller.handle(E.BLOCK_READY)

        assert kinds(messages) == [StatusKind.PAYLOAD_READY]
        assert messages[0].bit_flips == 3
        assert controller.state == ReceiverState.SYNCED
        assert coder.recover_calls == []

        released = sink.released[0]
        assert released.container == 'PNG'
        assert (released.width, released.height) == (32, 24)
        assert released.call_sign == 'DL1ABC'
        assert released.data.startswith(png_payload)

    def test_small_image_rejected(self, sink):
        """Width 8 is below the 16 pixel minimum"""
        tiny = make_image('PNG', (8, 32))
        controller, _, _ = build([make_block(body=tiny)], sink=sink)
        controller.handle(E.SYNCED)

        assert kinds(controller.handle(E.BLOCK_READY)) == [StatusKind.PAYLOAD_UNKNOWN]
        assert sink.released == []

    def test_unknown_payload(self, sink):
        controller, _, _ = build([make_block(body=b'hello world')], sink=sink)
        controller.handle(E.SYNCED)
        assert kinds(controller.handle(E.BLOCK_READY)) == [StatusKind.PAYLOAD_UNKNOWN]
        assert sink.released == []

    def test_negative_bit_flips_is_decode_failure(self, png_payload, sink):
        controller, _, _ = build([make_block(body=png_payload)], sink=sink, bit_flips=-1)
        controller.handle(E.SYNCED)

        assert kinds(controller.handle(E.BLOCK_READY)) == [StatusKind.DECODE_FAILED]
        assert controller.state == ReceiverState.SYNCED
        assert sink.released == []


class TestChunkedTransfer:

    def test_three_chunks_recovered(self, png_payload, sink):
        blocks = chunk_blocks(png_payload, [5, 6, 7])
        controller, _, coder = build(blocks, png_payload, sink=sink)
        controller.handle(E.SYNCED)

        first = controller.handle(E.BLOCK_READY)
        assert kinds(first) == [StatusKind.CHUNK_RECEIVED]
        assert (first[0].chunks_received, first[0].block_count) == (1, 3)
        assert controller.state == ReceiverState.COLLECTING

        controller.handle(E.BLOCK_READY)
        last = controller.handle(E.BLOCK_READY)
        assert kinds(last) == [StatusKind.CHUNK_RECEIVED, StatusKind.PAYLOAD_READY]
        assert last[0].chunks_received == 3
        assert coder.recover_calls == [3]
        assert controller.state == ReceiverState.SYNCED
        assert sink.released[0].data == png_payload
        assert controller.payloads_released == 1

    def test_chunks_survive_resync(self, png_payload, sink):
        """Each chunk arrives in its own transmission"""
        blocks = chunk_blocks(png_payload, [9, 4])
        controller, _, _ = build(blocks, png_payload, sink=sink)
        controller.handle(E.SYNCED)
        controller.handle(E.BLOCK_READY)
        controller.handle(E.NO_EVENT)
        controller.handle(E.PREAMBLE_FAIL)
        controller.handle(E.SYNCED)

        assert StatusKind.PAYLOAD_READY in kinds(controller.handle(E.BLOCK_READY))
        assert len(sink.released) == 1

    def test_duplicate_and_redundant(self, png_payload, sink):
        blocks = chunk_blocks(png_payload, [5, 5, 6, 7], count=2)
        controller, _, _ = build(blocks, png_payload, sink=sink)
        controller.handle(E.SYNCED)

        results = [kinds(controller.handle(E.BLOCK_READY)) for _ in range(4)]
        assert results == [
            [StatusKind.CHUNK_RECEIVED],
            [StatusKind.CHUNK_DUPLICATE],
            [StatusKind.CHUNK_RECEIVED, StatusKind.PAYLOAD_READY],
            [StatusKind.CHUNK_REDUNDANT],
        ]
        assert len(sink.released) == 1

    def test_unsupported_chunk_keeps_transfer(self, png_payload, sink):
        crc = zlib.crc32(png_payload)
        bad = make_block(ChunkHeader(2, 1, len(png_payload), crc))
        blocks = [chunk_blocks(png_payload, [5], count=2)[0], bad,
                  chunk_blocks(png_payload, [6], count=2)[0]]
        controller, _, _ = build(blocks, png_payload, sink=sink)
        controller.handle(E.SYNCED)

        controller.handle(E.BLOCK_READY)
        assert kinds(controller.handle(E.BLOCK_READY)) == [StatusKind.CHUNK_UNSUPPORTED]
        assert controller.state == ReceiverState.COLLECTING
        assert StatusKind.PAYLOAD_READY in kinds(controller.handle(E.BLOCK_READY))

    def test_checksum_mismatch_resets_then_recovers(self, png_payload, sink):
        blocks = chunk_blocks(png_payload, [5, 6, 7], crc=0xABCD) * 2
        coder = FakeErasureCoder(png_payload, checksum=0x1111)
        controller, _, _ = build(blocks, png_payload, sink=sink, coder=coder)
        controller.handle(E.SYNCED)

        controller.handle(E.BLOCK_READY)
        controller.handle(E.BLOCK_READY)
        last = controller.handle(E.BLOCK_READY)
        assert kinds(last) == [StatusKind.CHUNK_RECEIVED, StatusKind.CHUNK_CORRUPTED]
        assert controller.chunks.snapshot is None
        assert controller.state == ReceiverState.SYNCED
        assert controller.transfers_corrupted == 1

        coder.checksum = 0xABCD
        for _ in range(2):
            assert kinds(controller.handle(E.BLOCK_READY)) == [StatusKind.CHUNK_RECEIVED]
        final = controller.handle(E.BLOCK_READY)
        assert StatusKind.PAYLOAD_READY in kinds(final)
        assert coder.recover_calls == [3, 3]

    def test_coder_exhaustion_returns_to_searching(self, png_payload):
        blocks = chunk_blocks(png_payload, [5, 6, 7])
        coder = FakeErasureCoder(png_payload, fail_ingest_at=1)
        controller, _, _ = build(blocks, png_payload, coder=coder)
        controller.handle(E.SYNCED)
        controller.handle(E.BLOCK_READY)

        assert kinds(controller.handle(E.BLOCK_READY)) == [StatusKind.RESOURCE_EXHAUSTED]
        assert controller.state == ReceiverState.SEARCHING
        assert controller.chunks.snapshot is None


class TestRelease:

    def test_store_failure_reported(self, png_payload):
        class BrokenSink(MemorySink):
            def release(self, payload):
                raise ImageStoreError("disk full")

        controller, _, _ = build([make_block(body=png_payload)], sink=BrokenSink())
        controller.handle(E.SYNCED)
        assert kinds(controller.handle(E.BLOCK_READY)) == [StatusKind.PAYLOAD_READY, StatusKind.STORE_FAILED]
        assert controller.payloads_released == 0

    def test_reporter_receives_messages(self, png_payload):
        reporter = StatusReporter(interval=0.0)
        demod = FakeDemodulator(blocks=[make_block(body=png_payload)])
        controller = ReassemblyController(demod, FakeErasureCoder(), reporter=reporter)
        controller.handle(E.SYNCED)
        controller.handle(E.BLOCK_READY)
        assert [m.kind for m in reporter.history] == [StatusKind.SYNCED, StatusKind.PAYLOAD_READY]

    def test_reset_drops_state(self, png_payload):
        controller, _, _ = build(chunk_blocks(png_payload, [5], count=2), png_payload)
        controller.handle(E.SYNCED)
        controller.handle(E.BLOCK_READY)
        controller.reset()
        assert controller.session is None
        assert controller.chunks.snapshot is None
        assert controller.state == ReceiverState.SEARCHING

    @pytest.mark.parametrize('fmt,container', [('JPEG', 'JPEG'), ('WEBP', 'WebP')])
    def test_other_containers(self, fmt, container, sink):
        data = make_image(fmt, (64, 48))
        controller, _, _ = build(chunk_blocks(data, [1]), data, sink=sink)
        controller.handle(E.SYNCED)
        controller.handle(E.BLOCK_READY)
        assert sink.released[0].container == container
        assert sink.released[0].timestamp.year == 2026


class TestDecodeEventCodes:

    def test_native_status_codes(self):
        codes = [DecodeEvent.from_status_code(code) for code in range(6)]
        assert codes == [E.NO_EVENT, E.PREAMBLE_FAIL, E.SYNCED, E.BLOCK_READY,
                         E.RESOURCE_EXHAUSTED, E.WEAK_SYNC]

    def test_unknown_code(self):
        assert DecodeEvent.from_status_code(99) == E.RESOURCE_EXHAUSTED
