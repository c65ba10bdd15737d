#!/usr/bin/env python3
"""
File Image Store - PayloadSink writing received pictures to disk

Filename format: YYYYMMDD_HHMMSS_{call}{suffix}
Example: 20261018_164210_DL1ABC.jpg

A second picture with the same name gets a counter: 20261018_164210_DL1ABC_1.jpg

A JSON sidecar with the same stem records title, mime type,
dimensions and bit flips.
"""

import json
import logging
from pathlib import Path
from typing import List

from .exceptions import ImageStoreError
from .interfaces.data_models import ReleasedPayload
from .interfaces.payload_sink import PayloadSink

logger = logging.getLogger(__name__)


class FileImageStore(PayloadSink):
    """Stores released payloads in a directory"""

    def __init__(self, output_dir: Path, write_metadata: bool = True):
        self.output_dir = Path(output_dir)
        self.write_metadata = write_metadata
        self.stored: List[Path] = []

    @staticmethod
    def filename(payload: ReleasedPayload) -> str:
        stamp = payload.timestamp.strftime('%Y%m%d_%H%M%S')
        call = payload.call_sign.strip().replace(' ', '_')
        return f"{stamp}_{call}{payload.suffix}"

    @staticmethod
    def title(payload: ReleasedPayload) -> str:
        return f"{payload.timestamp.strftime('%Y-%m-%d %H:%M:%S')} {payload.call_sign.strip()}"

    def _unique_path(self, name: str) -> Path:
        path = self.output_dir / name
        counter = 1
        while path.exists():
            stem, suffix = Path(name).stem, Path(name).suffix
            path = self.output_dir / f"{stem}_{counter}{suffix}"
            counter += 1
        return path

    def release(self, payload: ReleasedPayload) -> Path:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ImageStoreError(f"Creating picture directory {self.output_dir} failed: {e}") from e

        path = self._unique_path(self.filename(payload))
        try:
            path.write_bytes(payload.data)
            if self.write_metadata:
                metadata = payload.to_dict()
                metadata['title'] = self.title(payload)
                with open(path.with_suffix('.json'), 'w') as f:
                    json.dump(metadata, f, indent=2)
        except OSError as e:
            raise ImageStoreError(f"Storing picture {path} failed: {e}") from e

        self.stored.append(path)
        logger.info(f"📝 Stored {payload.container} {payload.width}x{payload.height} as {path.name}")
        return path
