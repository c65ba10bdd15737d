#!/usr/bin/env python3
"""
Receiver - Tick loop around the demodulator and reassembly controller

Owns the engine lifecycle:
- Builds the demodulator for the configured sample rate
- Feeds one audio block per tick and hands the event to the controller
- Tears everything down when sample rate or channel select change;
  controller state is dropped, not drained

Architecture:
    audio block → Demodulator → DecodeEvent → ReassemblyController → PayloadSink
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np

from .config import ReceiverConfig
from .interfaces.data_models import DecodeEvent
from .interfaces.demodulator import Demodulator
from .interfaces.erasure_coder import ErasureCoder
from .interfaces.payload_sink import PayloadSink
from .payload_classifier import PayloadClassifier
from .reassembly_controller import ReassemblyController, ReceiverState
from .status import StatusKind, StatusMessage, StatusReporter

logger = logging.getLogger(__name__)

DemodulatorFactory = Callable[[int], Optional[Demodulator]]
CoderFactory = Callable[[], Optional[ErasureCoder]]


@dataclass
class ReceiverMetrics:
    """Cumulative receiver metrics"""
    ticks: int = 0
    events: Dict[str, int] = field(default_factory=dict)
    payloads_released: int = 0
    transfers_corrupted: int = 0
    restarts: int = 0
    start_time: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ticks': self.ticks,
            'events': dict(self.events),
            'payloads_released': self.payloads_released,
            'transfers_corrupted': self.transfers_corrupted,
            'restarts': self.restarts,
            'uptime_seconds': time.time() - self.start_time,
        }


class Receiver:
    """
    Runs the decode loop for one audio input.

    Example:
        receiver = Receiver(config, create_decoder, CauchyReedSolomon,
                            sink=FileImageStore(config.output_dir))
        if receiver.start():
            receiver.run(WavAudioSource(path, config.sample_rate, config.channel_select))
    """

    def __init__(
        self,
        config: ReceiverConfig,
        demodulator_factory: DemodulatorFactory,
        coder_factory: CoderFactory,
        sink: Optional[PayloadSink] = None,
        reporter: Optional[StatusReporter] = None,
    ):
        self.config = config
        self.demodulator_factory = demodulator_factory
        self.coder_factory = coder_factory
        self.sink = sink
        self.reporter = reporter or StatusReporter(interval=config.message_interval)
        self.classifier = PayloadClassifier(config.min_dimension, config.max_dimension)

        self.demodulator: Optional[Demodulator] = None
        self.coder: Optional[ErasureCoder] = None
        self.controller: Optional[ReassemblyController] = None
        self.metrics = ReceiverMetrics()

    @property
    def running(self) -> bool:
        return self.controller is not None

    @property
    def state(self) -> ReceiverState:
        if self.controller is None:
            return ReceiverState.SEARCHING
        return self.controller.state

    def _report_exhausted(self):
        self.reporter.report(StatusMessage(StatusKind.RESOURCE_EXHAUSTED))

    def start(self) -> bool:
        """
        Build the engines.

        Returns:
            False if an engine could not be created (reported as
            RESOURCE_EXHAUSTED status)
        """
        if self.coder is None:
            try:
                self.coder = self.coder_factory()
            except Exception as e:
                logger.error(f"Erasure coder factory failed: {e}")
                self.coder = None
            if self.coder is None:
                logger.error("Erasure coder could not be created")
                self._report_exhausted()
                return False

        try:
            self.demodulator = self.demodulator_factory(self.config.sample_rate)
        except Exception as e:
            logger.error(f"Demodulator factory failed: {e}")
            self.demodulator = None
        if self.demodulator is None:
            logger.error(f"Demodulator could not be created for {self.config.sample_rate} Hz")
            self._report_exhausted()
            self.controller = None
            return False

        self.controller = ReassemblyController(
            self.demodulator,
            self.coder,
            sink=self.sink,
            classifier=self.classifier,
            reporter=self.reporter,
        )
        logger.info(
            f"✓ Receiver started: {self.config.sample_rate} Hz, "
            f"channel {self.config.channel_select_name}"
        )
        return True

    def stop(self):
        if self.controller is not None:
            self._collect(self.controller)
        self.controller = None
        self.demodulator = None
        logger.info("Receiver stopped")

    def reconfigure(self, sample_rate: Optional[int] = None,
                    channel_select: Optional[int] = None) -> bool:
        """
        Change sample rate and/or channel select.

        Recreates the demodulator and discards controller state when
        anything changed. Returns False if the restart failed.
        """
        new_rate = self.config.sample_rate if sample_rate is None else sample_rate
        new_channel = self.config.channel_select if channel_select is None else channel_select
        if new_rate == self.config.sample_rate and new_channel == self.config.channel_select:
            return self.running

        # Validated copy; a rejected change leaves the running config untouched
        self.config = replace(self.config, sample_rate=new_rate, channel_select=new_channel)

        logger.info(f"Reconfiguring receiver: {new_rate} Hz, channel {self.config.channel_select_name}")
        self.stop()
        self.metrics.restarts += 1
        return self.start()

    def tick(self, audio_block: np.ndarray) -> List[StatusMessage]:
        """Process one audio block"""
        if self.controller is None:
            raise RuntimeError("Receiver not started")
        event = self.demodulator.process(audio_block, self.config.channel_select)
        self.metrics.ticks += 1
        self.metrics.events[event.value] = self.metrics.events.get(event.value, 0) + 1
        return self.controller.handle(event)

    def run(self, blocks: Iterable[np.ndarray]) -> ReceiverMetrics:
        """Feed every block to the receiver; returns the metrics"""
        if self.controller is None and not self.start():
            return self.metrics
        for block in blocks:
            self.tick(block)
        self.reporter.flush()
        self._collect(self.controller)
        logger.info(
            f"Processed {self.metrics.ticks} blocks, "
            f"{self.metrics.payloads_released} payloads released"
        )
        return self.metrics

    def _collect(self, controller: ReassemblyController):
        self.metrics.payloads_released += controller.payloads_released
        self.metrics.transfers_corrupted += controller.transfers_corrupted
        controller.payloads_released = 0
        controller.transfers_corrupted = 0

    def events_seen(self, event: DecodeEvent) -> int:
        return self.metrics.events.get(event.value, 0)
