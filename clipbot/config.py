# clipbot/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import MissingCredential

# ------------ Paths ------------
APP_DIR = Path(__file__).resolve().parent
BASE_DIR = APP_DIR.parent
DEFAULT_ENV_FILE = BASE_DIR / ".env"
DEFAULT_WORK_DIR = BASE_DIR / "data"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str) -> Optional[Path]:
    raw = (os.getenv(name) or "").strip()
    return Path(raw).expanduser() if raw else None


@dataclass(frozen=True)
class Settings:
    """Process configuration, built once at startup and passed to every component."""

    token: str
    work_dir: Path = DEFAULT_WORK_DIR
    bin_dir: Optional[Path] = None
    poll_timeout: int = 60
    download_timeout: float = 60.0
    drop_pending_updates: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @property
    def upload_dir(self) -> Path:
        return self.work_dir / "uploads"

    @property
    def output_dir(self) -> Path:
        return self.work_dir / "outputs"

    def ensure_dirs(self) -> None:
        for p in (self.work_dir, self.upload_dir, self.output_dir):
            p.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None, require_token: bool = True) -> "Settings":
        """Load ``.env`` (if present) and read settings from the environment.

        Raises ``MissingCredential`` when ``BOT_TOKEN`` is empty and a token is
        required. The local converter does not talk to the chat platform and
        passes ``require_token=False``.
        """
        env_file = env_file or _env_path("CLIPBOT_ENV_FILE") or DEFAULT_ENV_FILE
        load_dotenv(env_file)

        token = os.getenv("BOT_TOKEN", "").strip()
        if require_token and not token:
            raise MissingCredential(f"BOT_TOKEN is not set (looked in environment and {env_file})")

        return cls(
            token=token,
            work_dir=_env_path("WORK_DIR") or DEFAULT_WORK_DIR,
            bin_dir=_env_path("BIN_DIR"),
            poll_timeout=int(os.getenv("POLL_TIMEOUT", "60") or "60"),
            download_timeout=float(os.getenv("DOWNLOAD_TIMEOUT", "60") or "60"),
            drop_pending_updates=_env_flag("DROP_PENDING_UPDATES"),
            log_level=(os.getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
            log_file=_env_path("LOG_FILE"),
        )


def configure_logging(settings: Settings) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, handlers=handlers)
    # python-telegram-bot logs every poll through httpx at INFO
    for name in ("telegram", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
