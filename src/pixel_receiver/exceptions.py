"""
Exception hierarchy for pixel-receiver

Protocol outcomes (duplicate chunks, corrupted transfers, unknown
payloads) are reported as status messages, never raised. Exceptions are
reserved for configuration, engine loading and storage failures.
"""


class PixelReceiverError(Exception):
    """Base class for all pixel-receiver errors"""


class ConfigError(PixelReceiverError):
    """Configuration file missing, unreadable or invalid"""


class EngineLoadError(PixelReceiverError):
    """A demodulator or erasure coder could not be imported or built"""


class ImageStoreError(PixelReceiverError):
    """A released payload could not be written to storage"""
