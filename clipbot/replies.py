# clipbot/replies.py
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Set

from .errors import ReplyFailure

logger = logging.getLogger(__name__)


class ReplyDispatcher:
    """Sends replies to a conversation through a chat transport.

    ``send_text`` is fire-and-forget: every call spawns its own task and returns
    at once. Tasks are never joined or cancelled and two notices may arrive in
    either order. A failed send is logged and dropped.

    ``deliver_file`` is awaited by the job because the attachment is removed
    right after the send attempt; its failures are logged and dropped too.
    """

    def __init__(self, transport):
        self._transport = transport
        # strong refs so the event loop does not drop tasks mid-flight
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> Set[asyncio.Task]:
        return set(self._tasks)

    def send_text(self, chat_id: int, text: str) -> asyncio.Task:
        task = asyncio.create_task(self._send_text(chat_id, text), name=f"reply-{chat_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _send_text(self, chat_id: int, text: str) -> None:
        try:
            await self._transport.send_text(chat_id, text)
        except Exception as e:
            _log_failure(ReplyFailure(f"text reply to {chat_id} failed: {e}"))

    async def deliver_file(self, chat_id: int, path: Path) -> bool:
        try:
            await self._transport.send_file(chat_id, path)
        except Exception as e:
            _log_failure(ReplyFailure(f"attachment {path.name} to {chat_id} failed: {e}"))
            return False
        return True


def _log_failure(err: ReplyFailure) -> None:
    logger.warning("%s", err)
