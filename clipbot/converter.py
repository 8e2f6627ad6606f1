# clipbot/converter.py
"""Shared conversion library.

Everything a front end needs to turn an uploaded or local video into a looping
preview clip: format check, download, ffprobe dimension probe, scale
computation, the ffmpeg invocation and best-effort cleanup. Front ends supply
the paths and decide how to report results.
"""
from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import NamedTuple, Optional, Union

import requests

from .errors import (
    ConversionFailure,
    EngineUnavailable,
    HandleResolutionFailure,
    PersistFailure,
    ProbeFailure,
    TransferFailure,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# ------------ Output contract ------------
COMPATIBLE_FORMATS = (".mp4", ".mov", ".avi", ".mkv", ".webm")
OUTPUT_SUFFIX = ".webm"
TARGET_SIDE = 512
VIDEO_CODEC = "libvpx-vp9"
FRAME_RATE = 30
MAX_DURATION_SEC = 3
CRF = 36
MAX_BITRATE = "256k"

DOWNLOAD_CHUNK = 1024 * 1024

_DIMENSIONS_RE = re.compile(r"^(\d+)x(\d+)")


class Dimensions(NamedTuple):
    width: int
    height: int

    @property
    def valid(self) -> bool:
        return self.width > 0 and self.height > 0

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


# ------------ Format ------------
def is_supported(filename: Optional[str]) -> bool:
    lowered = (filename or "").lower()
    return any(lowered.endswith(ext) for ext in COMPATIBLE_FORMATS)


def output_path_for(input_path: Path, output_dir: Path) -> Path:
    return output_dir / (input_path.stem + OUTPUT_SUFFIX)


# ------------ Download ------------
def fetch_to_path(url: str, dest: Path, timeout: float = 60.0) -> int:
    """Stream ``url`` into ``dest`` (created or truncated). Returns bytes written."""
    try:
        resp = requests.get(url, stream=True, timeout=timeout)
    except requests.RequestException as e:
        raise TransferFailure(f"GET failed: {e}") from e

    written = 0
    with resp:
        try:
            resp.raise_for_status()
        except requests.RequestException as e:
            raise TransferFailure(f"GET failed: {e}") from e
        try:
            f = dest.open("wb")
        except OSError as e:
            raise PersistFailure(f"cannot create {dest}: {e}") from e
        with f:
            chunks = resp.iter_content(chunk_size=DOWNLOAD_CHUNK)
            while True:
                try:
                    chunk = next(chunks, None)
                except requests.RequestException as e:
                    raise TransferFailure(f"read failed after {written} bytes: {e}") from e
                if chunk is None:
                    break
                if not chunk:
                    continue
                try:
                    f.write(chunk)
                except OSError as e:
                    raise PersistFailure(f"cannot write {dest}: {e}") from e
                written += len(chunk)
    return written


async def download_media(transport, file_id: str, dest: Path, timeout: float = 60.0) -> int:
    """Resolve ``file_id`` to a link through ``transport`` and fetch it to ``dest``."""
    try:
        url = await transport.resolve_link(file_id)
    except HandleResolutionFailure:
        raise
    except Exception as e:
        raise HandleResolutionFailure(f"cannot resolve {file_id}: {e}") from e
    if not url:
        raise HandleResolutionFailure(f"no download link for {file_id}")
    written = await asyncio.to_thread(fetch_to_path, url, dest, timeout)
    logger.info("downloaded %s (%d bytes) to %s", file_id, written, dest)
    return written


# ------------ Engine ------------
def locate_engine(name: str, bin_dir: Optional[Path] = None) -> str:
    """Return the executable for ``name`` from ``bin_dir`` or, when unset, from PATH."""
    if bin_dir is not None:
        candidate = bin_dir / name
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        raise EngineUnavailable(f"{name} not found in {bin_dir}")
    found = shutil.which(name)
    if not found:
        raise EngineUnavailable(f"{name} is not installed")
    return found


def _run(cmd: list[str]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            # ffmpeg echoes container tags, which need not be UTF-8
            errors="replace",
            check=False,
        )
    except OSError as e:
        raise EngineUnavailable(f"cannot execute {cmd[0]}: {e}") from e


def probe_dimensions(path: PathLike, bin_dir: Optional[Path] = None) -> str:
    """Return the raw ``WxH`` string ffprobe reports for the first video stream."""
    ffprobe = locate_engine("ffprobe", bin_dir)
    r = _run(
        [
            ffprobe,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "csv=s=x:p=0",
            str(path),
        ]
    )
    if r.returncode != 0:
        raise ProbeFailure(f"ffprobe exited {r.returncode}: {(r.stderr or '').strip()}")
    return (r.stdout or "").strip()


def scale_dimensions(raw: str) -> Dimensions:
    """Fit the longer side to 512 px using truncating integer division.

    Unparsable input (or a zero side) gives ``Dimensions(0, 0)``; callers must
    treat that as a probe failure.
    """
    first_line = (raw or "").strip().splitlines()[:1]
    m = _DIMENSIONS_RE.match(first_line[0]) if first_line else None
    if not m:
        return Dimensions(0, 0)
    width, height = int(m.group(1)), int(m.group(2))
    if width <= 0 or height <= 0:
        return Dimensions(0, 0)

    if width > height:
        return Dimensions(TARGET_SIDE, height * TARGET_SIDE // width)
    return Dimensions(width * TARGET_SIDE // height, TARGET_SIDE)


def require_scalable(raw: str, size: Dimensions) -> Dimensions:
    """Reject a scale result ffmpeg cannot use.

    ``Dimensions(0, 0)`` means the probe output did not parse; any other zero
    side comes from an aspect ratio too extreme to fit the target.
    """
    if size == Dimensions(0, 0):
        raise ProbeFailure(f"unparsable dimensions {raw!r}")
    if not size.valid:
        raise ConversionFailure(f"{raw.strip()} cannot be scaled to a {TARGET_SIDE} px preview (got {size})")
    return size


def build_convert_command(ffmpeg: str, input_path: PathLike, size: Dimensions, output_path: PathLike) -> list[str]:
    return [
        ffmpeg,
        "-y",
        "-i", str(input_path),
        "-vf", f"scale={size.width}:{size.height}",
        "-c:v", VIDEO_CODEC,
        "-an",
        "-r", str(FRAME_RATE),
        "-t", str(MAX_DURATION_SEC),
        "-loop", "0",
        "-s", str(size),
        "-crf", str(CRF),
        "-b:v", MAX_BITRATE,
        str(output_path),
    ]


def convert_video(
    input_path: PathLike, size: Dimensions, output_path: PathLike, bin_dir: Optional[Path] = None
) -> Path:
    ffmpeg = locate_engine("ffmpeg", bin_dir)
    r = _run(build_convert_command(ffmpeg, input_path, size, output_path))
    if r.returncode != 0:
        tail = (r.stderr or "").strip().splitlines()[-1:]
        raise ConversionFailure(f"ffmpeg exited {r.returncode}: {' '.join(tail)}")
    out = Path(output_path)
    if not out.exists() or out.stat().st_size <= 0:
        raise ConversionFailure("Output missing")
    return out


def transcode(input_path: Path, output_path: Path, bin_dir: Optional[Path] = None) -> Dimensions:
    """Probe, scale and convert in one call. Returns the output dimensions."""
    raw = probe_dimensions(input_path, bin_dir)
    size = require_scalable(raw, scale_dimensions(raw))
    convert_video(input_path, size, output_path, bin_dir)
    return size


# ------------ Cleanup ------------
def cleanup_paths(*paths: Optional[PathLike]) -> None:
    """Best-effort removal; never raises."""
    for p in paths:
        if p is None:
            continue
        try:
            Path(p).unlink(missing_ok=True)
        except OSError as e:
            logger.debug("cleanup of %s failed: %s", p, e)

