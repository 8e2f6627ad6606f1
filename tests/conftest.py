import os
import stat
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest
import requests

from clipbot import converter
from clipbot.config import Settings


class FakeTransport:
    def __init__(self, link="https://files.example/file/abc", resolve_error=None, send_error=None):
        self.link = link
        self.resolve_error = resolve_error
        self.send_error = send_error
        self.resolved = []
        self.texts = []
        self.files = []

    async def resolve_link(self, file_id):
        self.resolved.append(file_id)
        if self.resolve_error:
            raise self.resolve_error
        return self.link

    async def send_text(self, chat_id, text):
        if self.send_error:
            raise self.send_error
        self.texts.append((chat_id, text))

    async def send_file(self, chat_id, path):
        if self.send_error:
            raise self.send_error
        self.files.append((chat_id, Path(path).name, Path(path).exists()))


class FakeResponse:
    def __init__(self, chunks=(b"video-bytes",), status_code=200, fail_after=None):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.fail_after = fail_after
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def iter_content(self, chunk_size=1):
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise requests.ConnectionError("connection reset")
            yield chunk

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def http(monkeypatch):
    """Replace requests.get; set ``http.response`` to change what it returns."""
    state = SimpleNamespace(response=FakeResponse(), urls=[])

    def fake_get(url, stream=False, timeout=None):
        state.urls.append(url)
        if isinstance(state.response, Exception):
            raise state.response
        return state.response

    monkeypatch.setattr(converter.requests, "get", fake_get)
    return state


@pytest.fixture
def bin_dir(tmp_path):
    d = tmp_path / "bin"
    d.mkdir()
    for name in ("ffmpeg", "ffprobe"):
        exe = d / name
        exe.write_text("#!/bin/sh\nexit 0\n")
        exe.chmod(exe.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return d


@pytest.fixture
def engine(monkeypatch):
    """Stand-in for ffprobe/ffmpeg; records every command line."""
    state = SimpleNamespace(calls=[], probe_output="1920x1080\n", probe_rc=0, ffmpeg_rc=0, write_output=True)

    def fake_run(cmd):
        state.calls.append(list(cmd))
        name = os.path.basename(cmd[0])
        if name == "ffprobe":
            return subprocess.CompletedProcess(cmd, state.probe_rc, stdout=state.probe_output, stderr="")
        if state.write_output:
            Path(cmd[-1]).write_bytes(b"webm-bytes")
        return subprocess.CompletedProcess(cmd, state.ffmpeg_rc, stdout="", stderr="encoder error")

    monkeypatch.setattr(converter, "_run", fake_run)
    return state


@pytest.fixture
def settings(tmp_path, bin_dir):
    s = Settings(token="123:test", work_dir=tmp_path / "work", bin_dir=bin_dir)
    s.ensure_dirs()
    return s


def _write_script(path, body):
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture
def script_engine(bin_dir):
    """Real executables in ``bin_dir``; ffmpeg echoes a Latin-1 metadata tag like a real run."""
    _write_script(bin_dir / "ffprobe", "printf '1920x1080\\n'\n")
    _write_script(
        bin_dir / "ffmpeg",
        "for last; do :; done\n"
        "printf '    title           : Caf\\351\\n' >&2\n"
        "printf 'webm-bytes' > \"$last\"\n"
        "exit 0\n",
    )
    return bin_dir
