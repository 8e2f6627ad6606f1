# clipbot/bot.py
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.error import InvalidToken, TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from .config import Settings, configure_logging
from .errors import AuthenticationFailure, HandleResolutionFailure, StartupError
from .jobs import IncomingMedia, run_job
from .replies import ReplyDispatcher

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "Welcome to the Video Converter bot! Please upload a video file. "
    "This bot uses ffmpeg to convert videos."
)
WELCOME_LINKS = (
    ("FFmpeg", "https://ffmpeg.org/"),
    ("Donate to ffmpeg", "https://ffmpeg.org/donations.html"),
)


# ------------ Transport ------------
class TelegramTransport:
    """Chat-platform operations the conversion pipeline needs."""

    def __init__(self, bot):
        self._bot = bot

    async def resolve_link(self, file_id: str) -> str:
        try:
            tg_file = await self._bot.get_file(file_id)
        except TelegramError as e:
            raise HandleResolutionFailure(f"get_file({file_id}) failed: {e}") from e
        # python-telegram-bot already expands file_path to the full download URL
        return tg_file.file_path

    async def send_text(self, chat_id: int, text: str) -> None:
        await self._bot.send_message(chat_id=chat_id, text=text)

    async def send_file(self, chat_id: int, path: Path) -> None:
        with path.open("rb") as fh:
            await self._bot.send_video(chat_id=chat_id, video=fh, filename=path.name)


@dataclass
class BotRuntime:
    settings: Settings
    transport: TelegramTransport
    replies: ReplyDispatcher


def incoming_media_from_message(message: Optional[Message]) -> Optional[IncomingMedia]:
    if message is None:
        return None
    if message.document is not None:
        doc = message.document
        return IncomingMedia(file_id=doc.file_id, file_name=doc.file_name or "", chat_id=message.chat_id)
    if message.video is not None:
        # videos arrive without a name; the container is assumed
        video = message.video
        return IncomingMedia(file_id=video.file_id, file_name=f"{video.file_id}.mp4", chat_id=message.chat_id)
    return None


# ------------ Handlers ------------
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None:
        return
    markup = InlineKeyboardMarkup(
        [[InlineKeyboardButton(label, url=url)] for label, url in WELCOME_LINKS]
    )
    await message.reply_text(WELCOME_TEXT, reply_markup=markup)


async def handle_upload(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    media = incoming_media_from_message(update.effective_message)
    if media is None:
        return
    runtime: BotRuntime = context.bot_data["runtime"]
    logger.info("job started for %r from chat %s", media.file_name, media.chat_id)
    job = await run_job(runtime.settings, media, runtime.transport, runtime.replies)
    logger.info("job for %r finished: %s", media.file_name, " -> ".join(job.history))


async def log_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("unhandled error while processing update", exc_info=context.error)


async def _post_init(app: Application) -> None:
    me = await app.bot.get_me()
    logger.info("Bot is running as @%s", me.username)


def build_application(settings: Settings) -> Application:
    app = (
        Application.builder()
        .token(settings.token)
        .concurrent_updates(False)
        .post_init(_post_init)
        .build()
    )
    transport = TelegramTransport(app.bot)
    app.bot_data["runtime"] = BotRuntime(
        settings=settings, transport=transport, replies=ReplyDispatcher(transport)
    )
    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(MessageHandler(filters.Document.ALL | filters.VIDEO, handle_upload))
    app.add_error_handler(log_error)
    return app


def run(settings: Settings) -> None:
    settings.ensure_dirs()
    try:
        app = build_application(settings)
        app.run_polling(
            timeout=settings.poll_timeout,
            drop_pending_updates=settings.drop_pending_updates,
            allowed_updates=[Update.MESSAGE],
        )
    except InvalidToken as e:
        raise AuthenticationFailure(f"bot authentication failed: {e}") from e


def main() -> int:
    try:
        settings = Settings.from_env()
        configure_logging(settings)
        run(settings)
    except StartupError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
