"""
Receiver configuration

Loads a TOML file into a validated ReceiverConfig:

    [audio]
    sample_rate = 8000
    channel_select = 0

    [engine]
    demodulator = "my_engine.ofdm:create_decoder"
    erasure_coder = "my_engine.crs:CauchyReedSolomon"

    [image]
    min_dimension = 16
    max_dimension = 1024

    [output]
    directory = "~/Pictures/pixel-receiver"

    [status]
    message_interval = 3.0

    [logging]
    level = "INFO"
"""

import importlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .exceptions import ConfigError, EngineLoadError
from .interfaces.demodulator import SUPPORTED_SAMPLE_RATES

logger = logging.getLogger(__name__)

CHANNEL_SELECT_NAMES = {
    0: "default",
    1: "first",
    2: "second",
    3: "summation",
    4: "analytic",
}


@dataclass
class ReceiverConfig:
    """Configuration for a receiver"""
    # Audio
    sample_rate: int = 8000
    channel_select: int = 0

    # Engines ("package.module:attribute")
    demodulator: Optional[str] = None
    erasure_coder: Optional[str] = None

    # Payload bounds
    min_dimension: int = 16
    max_dimension: int = 1024

    # Output
    output_dir: Path = Path('./pictures')

    # Status display
    message_interval: float = 3.0

    log_level: str = "INFO"

    def __post_init__(self):
        self.output_dir = Path(os.path.expandvars(os.path.expanduser(str(self.output_dir))))
        self.validate()

    def validate(self):
        if self.sample_rate not in SUPPORTED_SAMPLE_RATES:
            raise ConfigError(
                f"sample_rate {self.sample_rate} not in {list(SUPPORTED_SAMPLE_RATES)}"
            )
        if self.channel_select not in CHANNEL_SELECT_NAMES:
            raise ConfigError(f"channel_select must be 0-4, got {self.channel_select}")
        if self.min_dimension < 1 or self.max_dimension < self.min_dimension:
            raise ConfigError(
                f"Invalid image bounds [{self.min_dimension}, {self.max_dimension}]"
            )
        if self.message_interval < 0:
            raise ConfigError("message_interval must not be negative")
        if logging.getLevelName(self.log_level.upper()) not in (
                logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL):
            raise ConfigError(f"Unknown log level {self.log_level}")

    @property
    def channel_select_name(self) -> str:
        return CHANNEL_SELECT_NAMES[self.channel_select]

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ReceiverConfig':
        """Build from a parsed TOML mapping"""
        audio = config.get('audio', {})
        engine = config.get('engine', {})
        image = config.get('image', {})
        output = config.get('output', {})
        status = config.get('status', {})
        log = config.get('logging', {})
        try:
            return cls(
                sample_rate=int(audio.get('sample_rate', 8000)),
                channel_select=int(audio.get('channel_select', 0)),
                demodulator=engine.get('demodulator'),
                erasure_coder=engine.get('erasure_coder'),
                min_dimension=int(image.get('min_dimension', 16)),
                max_dimension=int(image.get('max_dimension', 1024)),
                output_dir=Path(output.get('directory', './pictures')),
                message_interval=float(status.get('message_interval', 3.0)),
                log_level=str(log.get('level', 'INFO')),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e


def load_config(path: Optional[Path] = None) -> ReceiverConfig:
    """
    Load configuration from a TOML file.

    Args:
        path: Config file, or None for defaults
    """
    if path is None:
        return ReceiverConfig()
    try:
        with open(path, 'r') as f:
            config = toml.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Error loading configuration {path}: {e}") from e
    logger.info(f"Loaded configuration from {path}")
    return ReceiverConfig.from_dict(config)


def load_object(reference: str) -> Any:
    """Resolve a "package.module:attribute" reference"""
    module_name, sep, attr = reference.partition(':')
    if not sep or not module_name or not attr:
        raise EngineLoadError(f"Engine reference must look like 'module:attribute', got '{reference}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise EngineLoadError(f"Cannot import {module_name}: {e}") from e
    try:
        obj = module
        for part in attr.split('.'):
            obj = getattr(obj, part)
    except AttributeError as e:
        raise EngineLoadError(f"{module_name} has no attribute {attr}") from e
    return obj
