# clipbot/jobs.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config import Settings
from .converter import (
    Dimensions,
    cleanup_paths,
    convert_video,
    download_media,
    is_supported,
    output_path_for,
    probe_dimensions,
    require_scalable,
    scale_dimensions,
)
from .errors import ClipbotError, UnsupportedFormat
from .replies import ReplyDispatcher

logger = logging.getLogger(__name__)

MSG_UNSUPPORTED = UnsupportedFormat.user_message
MSG_CONVERTING = "Converting video..."
MSG_SENDING = "Video converted, sending back..."
MSG_FAILED = ClipbotError.user_message


class JobStage:
    RECEIVED = "received"
    REJECTED = "rejected"
    VALIDATED = "validated"
    DOWNLOADED = "downloaded"
    PROBED = "probed"
    SCALED = "scaled"
    CONVERTED = "converted"
    REPLIED = "replied"
    FAILED = "failed"
    CLEANED_UP = "cleaned_up"


@dataclass(frozen=True)
class IncomingMedia:
    file_id: str
    file_name: str
    chat_id: int


@dataclass
class ConversionJob:
    media: IncomingMedia
    stage: str = JobStage.RECEIVED
    history: List[str] = field(default_factory=lambda: [JobStage.RECEIVED])
    input_path: Optional[Path] = None
    output_path: Optional[Path] = None
    size: Optional[Dimensions] = None
    error: Optional[Exception] = None

    def advance(self, stage: str) -> None:
        self.stage = stage
        self.history.append(stage)

    @property
    def succeeded(self) -> bool:
        return JobStage.REPLIED in self.history


def local_name(file_name: str) -> str:
    # uploaded names are user input; keep only the final component
    return Path(file_name.replace("\\", "/")).name


async def run_job(
    settings: Settings, media: IncomingMedia, transport, replies: ReplyDispatcher
) -> ConversionJob:
    """Process one upload end to end. Never raises for job-scoped failures.

    Download, probe and conversion are awaited one after another, so the caller
    cannot start the next job before this one has replied or failed. Once the
    upload passes validation, input and output paths are removed exactly once
    whatever the outcome.
    """
    job = ConversionJob(media=media)
    chat_id = media.chat_id

    if not is_supported(media.file_name):
        logger.info("rejected %r from chat %s: unsupported format", media.file_name, chat_id)
        job.error = UnsupportedFormat(media.file_name)
        job.advance(JobStage.REJECTED)
        replies.send_text(chat_id, MSG_UNSUPPORTED)
        return job

    job.advance(JobStage.VALIDATED)
    replies.send_text(chat_id, MSG_CONVERTING)

    job.input_path = settings.upload_dir / local_name(media.file_name)
    job.output_path = output_path_for(job.input_path, settings.output_dir)

    try:
        await download_media(transport, media.file_id, job.input_path, settings.download_timeout)
        job.advance(JobStage.DOWNLOADED)

        raw = await asyncio.to_thread(probe_dimensions, job.input_path, settings.bin_dir)
        job.advance(JobStage.PROBED)

        job.size = require_scalable(raw, scale_dimensions(raw))
        job.advance(JobStage.SCALED)

        await asyncio.to_thread(
            convert_video, job.input_path, job.size, job.output_path, settings.bin_dir
        )
        job.advance(JobStage.CONVERTED)
        logger.info("converted %s to %s (%s)", job.input_path.name, job.output_path.name, job.size)

        replies.send_text(chat_id, MSG_SENDING)
        await replies.deliver_file(chat_id, job.output_path)
        job.advance(JobStage.REPLIED)
    except ClipbotError as e:
        job.error = e
        job.advance(JobStage.FAILED)
        logger.warning("job for %r failed (%s): %s", media.file_name, type(e).__name__, e)
        replies.send_text(chat_id, e.user_message)
    except Exception as e:
        job.error = e
        job.advance(JobStage.FAILED)
        logger.exception("job for %r crashed", media.file_name)
        replies.send_text(chat_id, MSG_FAILED)
    finally:
        cleanup_paths(job.input_path, job.output_path)
        job.advance(JobStage.CLEANED_UP)

    return job
