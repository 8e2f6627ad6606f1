# clipbot/local.py
"""Convert a video on disk without going through the bot.

    clipbot-convert INPUT [-o OUTPUT_DIR] [--bin-dir DIR]
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import Settings, configure_logging
from .converter import cleanup_paths, is_supported, output_path_for, transcode
from .errors import ClipbotError, ConversionFailure, MissingInput, PersistFailure, UnsupportedFormat

logger = logging.getLogger(__name__)


def convert_local(input_file: Path, output_folder: Path, bin_dir: Optional[Path] = None) -> Path:
    """Convert ``input_file`` into ``output_folder``; the input is left untouched."""
    if not is_supported(input_file.name):
        raise UnsupportedFormat(input_file.name)
    if not input_file.is_file():
        raise MissingInput(str(input_file))
    try:
        output_folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PersistFailure(f"cannot create {output_folder}: {e}") from e

    output_file = output_path_for(input_file, output_folder)
    if output_file.resolve() == input_file.resolve():
        raise ConversionFailure(f"output would overwrite input {input_file}")

    try:
        size = transcode(input_file, output_file, bin_dir)
    except ClipbotError:
        cleanup_paths(output_file)
        raise
    logger.info("converted %s to %s (%s)", input_file, output_file, size)
    return output_file


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="clipbot-convert", description=__doc__.splitlines()[0])
    parser.add_argument("input", type=Path, help="video file to convert")
    parser.add_argument("-o", "--output-dir", type=Path, default=Path("."), help="where to write the .webm")
    parser.add_argument("--bin-dir", type=Path, default=None, help="directory holding ffmpeg and ffprobe")
    args = parser.parse_args(argv)

    settings = Settings.from_env(require_token=False)
    if args.bin_dir is not None:
        settings = dataclasses.replace(settings, bin_dir=args.bin_dir)
    configure_logging(settings)

    try:
        out = convert_local(args.input, args.output_dir, settings.bin_dir)
    except ClipbotError as e:
        logger.error("conversion of %s failed: %s", args.input, e)
        print(e.user_message, file=sys.stderr)
        return 1
    print(out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
