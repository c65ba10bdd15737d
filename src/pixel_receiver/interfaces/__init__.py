"""
Interfaces to the receiver's external collaborators
"""

from .data_models import DecodeEvent, SyncInfo, ReleasedPayload
from .demodulator import (
    Demodulator, SUPPORTED_SAMPLE_RATES,
    symbol_length, extended_length, channel_count,
)
from .erasure_coder import ErasureCoder
from .payload_sink import PayloadSink

__all__ = [
    "DecodeEvent",
    "SyncInfo",
    "ReleasedPayload",
    "Demodulator",
    "SUPPORTED_SAMPLE_RATES",
    "symbol_length",
    "extended_length",
    "channel_count",
    "ErasureCoder",
    "PayloadSink",
]
