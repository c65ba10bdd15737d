#!/usr/bin/env python3
"""
Command Line Interface for pixel-receiver
"""

import sys
import logging
import argparse
from pathlib import Path

from .chunk_header import ChunkHeader, MAX_PAYLOAD_BYTES
from .config import load_config, load_object
from .exceptions import PixelReceiverError
from .payload_classifier import PayloadClassifier

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO', debug: bool = False):
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else level.upper())
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s', datefmt='%H:%M:%S'))
        root_logger.addHandler(handler)
    if debug:
        logging.debug("DEBUG logging enabled")


def cmd_decode(args) -> int:
    from .audio_source import WavAudioSource
    from .image_store import FileImageStore
    from .receiver import Receiver
    from .status import StatusReporter

    # Before load_config so its messages are shown
    setup_logging(debug=args.debug)
    config = load_config(Path(args.config) if args.config else None)
    if args.sample_rate is not None:
        config.sample_rate = args.sample_rate
    if args.channel is not None:
        config.channel_select = args.channel
    if args.output:
        config.output_dir = Path(args.output)
    config.validate()
    logging.getLogger().setLevel(logging.DEBUG if args.debug else config.log_level.upper())

    if not config.demodulator or not config.erasure_coder:
        print("❌ [engine] demodulator and erasure_coder must be set in the configuration")
        return 1
    demodulator_factory = load_object(config.demodulator)
    coder_factory = load_object(config.erasure_coder)

    # Decoding an archived file runs faster than real time, so show
    # every message as it happens.
    reporter = StatusReporter(interval=0.0, on_display=lambda m: print(m.render()))
    receiver = Receiver(
        config,
        demodulator_factory,
        coder_factory,
        sink=FileImageStore(config.output_dir),
        reporter=reporter,
    )
    source = WavAudioSource(Path(args.input), config.sample_rate, config.channel_select)
    if not receiver.start():
        return 1
    metrics = receiver.run(source)
    receiver.stop()

    print(f"\n{metrics.ticks} blocks, {metrics.payloads_released} pictures "
          f"stored in {config.output_dir}")
    return 0


def cmd_inspect(args) -> int:
    setup_logging(debug=args.debug)
    data = Path(args.file).read_bytes()
    header = ChunkHeader.parse(data)
    if header is not None:
        print("Chunk header:")
        print(f"  block count:   {header.block_count}")
        print(f"  block ident:   {header.block_ident}")
        print(f"  payload bytes: {header.payload_bytes} (max {MAX_PAYLOAD_BYTES})")
        print(f"  checksum:      0x{header.payload_checksum:08X}")
        print(f"  within bounds: {'yes' if header.is_within_bounds() else 'no'}")
        return 0

    result = PayloadClassifier().classify(data)
    if result.accepted:
        print(f"{result.container.name} {result.width}x{result.height} ({result.container.mime_type})")
        return 0
    print(f"Payload {result.verdict.value}: {result.reason}")
    return 2


def main(argv=None):
    """Main entry point for pixel-receiver command"""
    parser = argparse.ArgumentParser(
        description='Receive pictures sent as erasure-coded OFDM blocks',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    decode_parser = subparsers.add_parser('decode', help='Decode pictures from an audio recording')
    decode_parser.add_argument('--input', '-i', required=True, help='WAV/FLAC recording')
    decode_parser.add_argument('--config', '-c', help='Configuration file path')
    decode_parser.add_argument('--output', '-o', help='Picture output directory')
    decode_parser.add_argument('--sample-rate', '-r', type=int, help='Decoder sample rate (Hz)')
    decode_parser.add_argument('--channel', type=int, choices=range(5),
                               help='Channel select: 0 default, 1 first, 2 second, 3 summation, 4 analytic')
    decode_parser.add_argument('--debug', '-d', action='store_true', help='Enable DEBUG logging')

    inspect_parser = subparsers.add_parser('inspect', help='Show chunk header or image type of a file')
    inspect_parser.add_argument('file', help='Decoded block or payload file')
    inspect_parser.add_argument('--debug', '-d', action='store_true', help='Enable DEBUG logging')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == 'decode':
            status = cmd_decode(args)
        else:
            status = cmd_inspect(args)
    except PixelReceiverError as e:
        print(f"❌ {e}")
        status = 1
    except FileNotFoundError as e:
        print(f"❌ File not found: {e.filename}")
        status = 1
    sys.exit(status)


if __name__ == '__main__':
    main()
