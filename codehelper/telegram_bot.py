"""Telegram transport for the code helper session manager, using python-telegram-bot."""

from __future__ import annotations

import os
import time
from pathlib import Path
from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from codehelper.commands import normalize_bot_mention
from codehelper.config import BotConfig
from codehelper.llm import CompletionService, CredentialError, read_secret
from codehelper.memory.conversation_state import ConversationStateStore
from codehelper.memory.episodic_memory import EpisodicMemoryStore
from codehelper.session import MessageSender, SessionManager

MAX_TELEGRAM_MESSAGE_LEN = 3900


def split_message(text: str, limit: int = MAX_TELEGRAM_MESSAGE_LEN) -> list[str]:
    """Split text into Telegram-sized chunks, preferring line boundaries."""
    if len(text) <= limit:
        return [text]
    chunks: list[str] = []
    remaining = text
    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(remaining[:cut])
        remaining = remaining[cut:].lstrip("\n")
    if remaining:
        chunks.append(remaining)
    return chunks


def load_telegram_token(secrets_dir: Path, env: dict[str, str] | None = None) -> str:
    environ = os.environ if env is None else env
    token = read_secret(secrets_dir, "telegram_bot_token.txt") or (environ.get("TELEGRAM_BOT_TOKEN") or "").strip()
    if not token:
        raise CredentialError(
            "Telegram bot token is required. Set TELEGRAM_BOT_TOKEN or write "
            f"{secrets_dir / 'telegram_bot_token.txt'}"
        )
    return token


class TelegramBot(MessageSender):
    def __init__(
        self,
        config: BotConfig,
        token: str,
        *,
        store: ConversationStateStore,
        completion: CompletionService,
        episodic_memory: EpisodicMemoryStore,
    ) -> None:
        self._config = config
        self._token = token
        self._episodic = episodic_memory
        self._started_at = 0.0
        self._app: Application | None = None
        self._session = SessionManager(
            store=store,
            completion=completion,
            sender=self,
            episodic_memory=episodic_memory,
        )

    async def send_text(self, conversation_id: str, text: str) -> None:
        if self._app is None:
            raise RuntimeError("Telegram application is not running")
        for chunk in split_message(text):
            await self._app.bot.send_message(chat_id=int(conversation_id), text=chunk)

    def start(self) -> None:
        """Build the application and poll until interrupted."""
        self._started_at = time.time()
        self._app = Application.builder().token(self._token).post_init(self._post_init).build()
        self._setup_handlers()
        self._episodic.record(
            "bot_started",
            {
                "name": self._config.name,
                "display_name": self._config.display_name,
                "llm_model": self._config.llm_model,
            },
        )
        try:
            # Polling owns the event loop and installs its own signal handlers.
            self._app.run_polling(drop_pending_updates=False, allowed_updates=Update.ALL_TYPES)
        finally:
            self.stop()

    async def _post_init(self, app: Application) -> None:
        await app.bot.set_my_commands(
            [
                ("help", "Show available commands"),
                ("review", "Review pasted code"),
                ("debug", "Help debug an error"),
                ("explain", "Explain a programming concept"),
                ("clear", "Wipe the conversation and start fresh"),
                ("reset", "Clear conversation history"),
            ]
        )

    def stop(self) -> None:
        if self._app is None:
            return
        self._app = None
        self._episodic.record(
            "bot_stopped",
            {"name": self._config.name, "uptime": int(time.time() - self._started_at)},
        )

    def _setup_handlers(self) -> None:
        assert self._app is not None
        self._app.add_handler(CommandHandler("start", self._cmd_start))
        self._app.add_handler(
            MessageHandler(filters.StatusUpdate.NEW_CHAT_MEMBERS, self._handle_members_added)
        )
        self._app.add_handler(MessageHandler(filters.TEXT, self._handle_text))
        self._app.add_handler(
            MessageHandler(~filters.TEXT & ~filters.StatusUpdate.ALL, self._handle_non_text)
        )

    @staticmethod
    def _conversation_id(update: Update) -> str | None:
        if update.effective_chat is None:
            return None
        return str(update.effective_chat.id)

    async def _cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        conversation_id = self._conversation_id(update)
        if conversation_id is None:
            return
        await self._session.handle_members_added(conversation_id)

    async def _handle_members_added(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        conversation_id = self._conversation_id(update)
        message = update.effective_message
        if conversation_id is None or message is None:
            return
        # Only greet humans; the bot joining a group is also a member-added event.
        humans = [m for m in message.new_chat_members or [] if not m.is_bot]
        if humans:
            await self._session.handle_members_added(conversation_id)

    async def _handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        conversation_id = self._conversation_id(update)
        message = update.effective_message
        if conversation_id is None or message is None:
            return
        text = normalize_bot_mention(message.text or "", context.bot.username)
        await self._session.handle_message(conversation_id, text)

    async def _handle_non_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        conversation_id = self._conversation_id(update)
        if conversation_id is None:
            return
        caption = update.effective_message.caption if update.effective_message else None
        await self._session.handle_message(conversation_id, caption)
