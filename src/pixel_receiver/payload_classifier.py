#!/usr/bin/env python3
"""
Payload Classifier - Container and dimension gate

A reassembled payload is only released when it is one of the supported
image containers and its dimensions are within bounds. Pillow reads the
container header lazily, so classification does not decode pixels;
``verify_decodes`` then performs the full decode before release.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MIN_DIMENSION = 16
MAX_DIMENSION = 1024


@dataclass(frozen=True)
class ContainerFormat:
    name: str
    mime_type: str
    suffix: str


SUPPORTED_CONTAINERS = {
    'JPEG': ContainerFormat('JPEG', 'image/jpeg', '.jpg'),
    'PNG': ContainerFormat('PNG', 'image/png', '.png'),
    'WEBP': ContainerFormat('WebP', 'image/webp', '.webp'),
}


class Verdict(Enum):
    ACCEPTED = "accepted"
    UNKNOWN = "unknown"              # Unrecognized container or out-of-bounds size
    DECODE_FAILED = "decode_failed"  # Recognized header but pixels do not decode


@dataclass(frozen=True)
class Classification:
    verdict: Verdict
    container: Optional[ContainerFormat] = None
    width: int = 0
    height: int = 0
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.verdict == Verdict.ACCEPTED


class PayloadClassifier:
    """Classifies payload bytes as a releasable image"""

    def __init__(self, min_dimension: int = MIN_DIMENSION, max_dimension: int = MAX_DIMENSION,
                 verify_decodes: bool = True):
        if min_dimension < 1 or max_dimension < min_dimension:
            raise ValueError(f"Invalid dimension bounds [{min_dimension}, {max_dimension}]")
        self.min_dimension = min_dimension
        self.max_dimension = max_dimension
        self.verify_decodes = verify_decodes

    def _in_bounds(self, size: int) -> bool:
        return self.min_dimension <= size <= self.max_dimension

    def identify(self, data: bytes) -> Classification:
        """Container and size check without decoding pixels"""
        try:
            with Image.open(BytesIO(data)) as img:
                fmt = img.format
                width, height = img.size
        except (UnidentifiedImageError, OSError, ValueError) as e:
            return Classification(Verdict.UNKNOWN, reason=f"unidentified: {e}")

        container = SUPPORTED_CONTAINERS.get(fmt or "")
        if container is None:
            return Classification(Verdict.UNKNOWN, width=width, height=height,
                                  reason=f"unsupported container {fmt}")

        if not (self._in_bounds(width) and self._in_bounds(height)):
            return Classification(Verdict.UNKNOWN, container, width, height,
                                  reason=f"dimensions {width}x{height} out of bounds")

        return Classification(Verdict.ACCEPTED, container, width, height)

    def classify(self, data: bytes) -> Classification:
        result = self.identify(data)
        if not result.accepted:
            logger.info(f"Payload rejected: {result.reason}")
            return result
        if self.verify_decodes:
            try:
                with Image.open(BytesIO(data)) as img:
                    img.load()
            except (OSError, ValueError, SyntaxError) as e:
                logger.warning(f"{result.container.name} payload failed to decode: {e}")
                return Classification(Verdict.DECODE_FAILED, result.container,
                                      result.width, result.height, reason=str(e))
        logger.debug(f"Payload classified as {result.container.name} {result.width}x{result.height}")
        return result
