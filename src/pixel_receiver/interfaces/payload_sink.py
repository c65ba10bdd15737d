"""
Payload Sink Interface

Receives payloads that passed reassembly, checksum and container
checks. This is the only side effect the controller has besides status
reporting.
"""

from abc import ABC, abstractmethod
from typing import Any

from .data_models import ReleasedPayload


class PayloadSink(ABC):

    @abstractmethod
    def release(self, payload: ReleasedPayload) -> Any:
        """Store or present a validated payload. Return value is ignored."""
        pass
