"""
Pixel Receiver - Still pictures from erasure-coded OFDM audio transfers

Orchestrates an external demodulator and erasure coder:

- Decode events drive a reassembly state machine
- Chunk headers are admitted into a per-transfer chunk set
- Complete sets are recovered, checksum-verified and classified
- Validated pictures are released to a payload sink

Quick Start:
    from pixel_receiver import Receiver, ReceiverConfig, FileImageStore, WavAudioSource

    config = ReceiverConfig(sample_rate=8000)
    receiver = Receiver(config, create_decoder, create_coder,
                        sink=FileImageStore(config.output_dir))
    receiver.run(WavAudioSource('capture.wav', config.sample_rate))
"""

__version__ = "1.0.0"

from .chunk_header import (
    ChunkHeader, parse_header,
    MAGIC, HEADER_OVERHEAD, MAX_BLOCK_BYTES, MAX_BLOCK_COUNT, MAX_PAYLOAD_BYTES,
)
from .chunk_set import ChunkSet, AdmitOutcome, AdmitResult
from .status import StatusKind, StatusMessage, StatusReporter
from .payload_classifier import PayloadClassifier, Classification, Verdict
from .reassembly_controller import ReassemblyController, ReceiverState, DecodeSession
from .image_store import FileImageStore
from .audio_source import WavAudioSource
from .receiver import Receiver, ReceiverMetrics
from .config import ReceiverConfig, load_config, load_object
from .exceptions import PixelReceiverError, ConfigError, EngineLoadError, ImageStoreError
from .interfaces import (
    DecodeEvent, SyncInfo, ReleasedPayload,
    Demodulator, ErasureCoder, PayloadSink,
)

__all__ = [
    # Wire format
    "ChunkHeader",
    "parse_header",
    "MAGIC",
    "HEADER_OVERHEAD",
    "MAX_BLOCK_BYTES",
    "MAX_BLOCK_COUNT",
    "MAX_PAYLOAD_BYTES",
    # Reassembly
    "ChunkSet",
    "AdmitOutcome",
    "AdmitResult",
    "ReassemblyController",
    "ReceiverState",
    "DecodeSession",
    # Status
    "StatusKind",
    "StatusMessage",
    "StatusReporter",
    # Payloads
    "PayloadClassifier",
    "Classification",
    "Verdict",
    "FileImageStore",
    # Receiver
    "Receiver",
    "ReceiverMetrics",
    "WavAudioSource",
    "ReceiverConfig",
    "load_config",
    "load_object",
    # Interfaces
    "DecodeEvent",
    "SyncInfo",
    "ReleasedPayload",
    "Demodulator",
    "ErasureCoder",
    "PayloadSink",
    # Errors
    "PixelReceiverError",
    "ConfigError",
    "EngineLoadError",
    "ImageStoreError",
]
