from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from utils.auth import is_authorized_chat
from utils.memorization import (
    add_page,
    due_items,
    format_review_caption,
    list_pages,
    page_progress,
    remove_page,
    update_schedule,
)
from utils.quran import RECITER_NAMES, RECITERS, ContentUnavailableError, is_valid_page, resolve_audio
from utils.schedule import ScheduleEngine, build_engine
from utils.sessions import PendingOperation, SessionStore

logger = logging.getLogger(__name__)

NOT_AUTHORIZED = "❌ You do not have access to this command."

START_TEXT = """👋 Welcome to the Quran memorization bot!

The bot follows the Sabak / Sabki / Manzil method:
- Sabak: new ayahs are repeated after 1, 3 and 7 days.
- Sabki: after Sabak, ayahs come back after 14 and 30 days.
- Manzil: from then on, ayahs come back every 90 and 180 days.

Ayahs due for review are sent every morning. Use /help for the command list."""

HELP_TEXT = """📚 Commands:
/addpage <page> - add a page to memorize (1-604)
/addayah <page> <start> <end> - add an ayah range from a page
/review [reciter] - ayahs due today
/list - pages being memorized
/remove <page> - remove a page
/update - update the review schedule now
/progress - memorization progress per page
/reciters - available reciters
/cancel - cancel the current input"""


class CommandError(Exception):
    """User input that cannot be turned into a valid operation."""


@dataclass
class Command:
    name: str
    args: List[str] = field(default_factory=list)


def parse_command(text: str) -> Optional[Command]:
    """Split '/name arg1 arg2'. Returns None for plain messages."""
    parts = (text or "").strip().split()
    if not parts or not parts[0].startswith("/"):
        return None
    name = parts[0][1:].split("@", 1)[0].lower()
    return Command(name=name, args=parts[1:])


def _parse_int(value: str, message: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise CommandError(message)


def parse_page(value: str) -> int:
    page = _parse_int(value, "❌ Page must be a number from 1 to 604.")
    if not is_valid_page(page):
        raise CommandError("❌ Page must be a number from 1 to 604.")
    return page


def parse_ayah_range(args: List[str]) -> Tuple[int, int, int]:
    if len(args) < 3:
        raise CommandError("❌ Usage: /addayah <page> <start_ayah> <end_ayah>")
    page = parse_page(args[0])
    start = _parse_int(args[1], "❌ Ayah numbers must be whole numbers.")
    end = _parse_int(args[2], "❌ Ayah numbers must be whole numbers.")
    if start < 1 or end < 1:
        raise CommandError("❌ Ayah numbers must be positive.")
    if start > end:
        raise CommandError("❌ Start ayah cannot be greater than end ayah.")
    return page, start, end


class CommandDispatcher:
    """Turns chat messages into memorization operations and text replies."""

    PUBLIC_COMMANDS = {"start", "help", "reciters"}

    def __init__(
        self,
        conn,
        sessions: SessionStore,
        *,
        config: Optional[Mapping[str, Any]] = None,
        engine: Optional[ScheduleEngine] = None,
        client: Optional[httpx.Client] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.conn = conn
        self.sessions = sessions
        self.config = config
        self.engine = engine or build_engine(config)
        self.client = client
        self._now = now
        self._handlers: Dict[str, Callable[[str, List[str]], str]] = {
            "start": self._start,
            "help": self._help,
            "reciters": self._reciters,
            "addpage": self._addpage,
            "addayah": self._addayah,
            "review": self._review,
            "list": self._list,
            "remove": self._remove,
            "progress": self._progress,
            "update": self._update,
            "cancel": self._cancel,
        }

    def now(self) -> Optional[datetime]:
        return self._now() if self._now else None

    def handle(self, chat_id: str, text: str) -> str:
        command = parse_command(text)
        if command is None:
            return self._handle_plain(chat_id, text)
        handler = self._handlers.get(command.name)
        if handler is None:
            return "❓ Unknown command. Use /help to see the list."
        if command.name not in self.PUBLIC_COMMANDS and not is_authorized_chat(chat_id, self.config):
            logger.warning("Rejected /%s from unauthorized chat %s", command.name, chat_id)
            return NOT_AUTHORIZED
        logger.debug("Handling /%s for chat %s", command.name, chat_id)
        try:
            return handler(chat_id, command.args)
        except CommandError as exc:
            return str(exc)

    def _handle_plain(self, chat_id: str, text: str) -> str:
        pending = self.sessions.pending(chat_id)
        if pending is None:
            return "Send a command, e.g. /addpage 1. Use /help for the list."
        if not is_authorized_chat(chat_id, self.config):
            self.sessions.cancel(chat_id)
            return NOT_AUTHORIZED
        try:
            page = parse_page(text.strip())
        except CommandError as exc:
            return f"{exc} Send another number or /cancel."
        self.sessions.complete(chat_id)
        if pending.operation == PendingOperation.ADD_PAGE:
            return self._add(chat_id, page)
        return self._remove_page(chat_id, page)

    def _start(self, chat_id: str, args: List[str]) -> str:
        return START_TEXT

    def _help(self, chat_id: str, args: List[str]) -> str:
        return HELP_TEXT

    def _reciters(self, chat_id: str, args: List[str]) -> str:
        lines = ["🎙 Available reciters:"]
        lines.extend(f"- {key}: {RECITER_NAMES[key]}" for key in RECITERS)
        return "\n".join(lines)

    def _addpage(self, chat_id: str, args: List[str]) -> str:
        if not args:
            self.sessions.await_input(chat_id, PendingOperation.ADD_PAGE)
            return "Send the page number (1-604), or /cancel."
        return self._add(chat_id, parse_page(args[0]))

    def _add(self, chat_id: str, page: int, unit_range: Optional[Tuple[int, int]] = None) -> str:
        try:
            count = add_page(
                self.conn,
                chat_id,
                page,
                unit_range,
                engine=self.engine,
                config=self.config,
                client=self.client,
                now=self.now(),
            )
        except ContentUnavailableError:
            return f"❌ Ayahs for page {page} could not be loaded. Try again later."
        if count == 0:
            if unit_range:
                return "❌ No new ayahs found for that range."
            return f"❌ Page {page} is already in the memorization plan."
        if unit_range:
            return f"✅ Ayahs {unit_range[0]}-{unit_range[1]} from page {page} added ({count})."
        return f"✅ Page {page} added to the memorization plan ({count} ayahs)!"

    def _addayah(self, chat_id: str, args: List[str]) -> str:
        page, start, end = parse_ayah_range(args)
        return self._add(chat_id, page, (start, end))

    def _review(self, chat_id: str, args: List[str]) -> str:
        reciter = args[0] if args else None
        items = due_items(self.conn, chat_id, self.now())
        if not items:
            return "No ayahs to review today."
        blocks = []
        for item in items:
            caption = format_review_caption(item)
            try:
                audio_url = resolve_audio(
                    item.surah, item.ayah, reciter, config=self.config, client=self.client
                )
            except ContentUnavailableError as exc:
                # text only when the recitation cannot be resolved
                logger.warning("No audio for %s: %s", item.unit_ref, exc)
                blocks.append(caption)
                continue
            blocks.append(f"{caption}\n🔊 {audio_url}")
        return "\n\n".join(blocks)

    def _list(self, chat_id: str, args: List[str]) -> str:
        pages = list_pages(self.conn, chat_id)
        if not pages:
            return "❌ Nothing to show yet."
        return "📚 Pages being memorized: " + ", ".join(str(page) for page in pages)

    def _remove(self, chat_id: str, args: List[str]) -> str:
        if not args:
            self.sessions.await_input(chat_id, PendingOperation.REMOVE_PAGE)
            return "Send the page number to remove, or /cancel."
        return self._remove_page(chat_id, parse_page(args[0]))

    def _remove_page(self, chat_id: str, page: int) -> str:
        if remove_page(self.conn, chat_id, page) == 0:
            return f"❌ Page {page} is not in the memorization list."
        return f"✅ Page {page} removed from the memorization list."

    def _progress(self, chat_id: str, args: List[str]) -> str:
        progress = page_progress(self.conn, chat_id)
        if not progress:
            return "❌ Nothing to show yet."
        lines = ["📊 Memorization progress:"]
        for page, entry in progress.items():
            lines.append(
                f"\n📖 Page {page}:\n"
                f"- Total ayahs: {entry.total}\n"
                f"- Sabak: {entry.sabak}\n"
                f"- Sabki: {entry.sabki}\n"
                f"- Manzil: {entry.manzil}"
            )
        return "\n".join(lines)

    def _update(self, chat_id: str, args: List[str]) -> str:
        count = update_schedule(self.conn, chat_id, self.now(), engine=self.engine)
        return f"✅ Review schedule updated ({count} ayahs advanced)."

    def _cancel(self, chat_id: str, args: List[str]) -> str:
        if self.sessions.cancel(chat_id):
            return "Cancelled."
        return "Nothing to cancel."
