"""Conversation session manager: command dispatch, rolling context, and exchanges."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from functools import partial

from codehelper.commands import (
    BEST_PRACTICES,
    CLEAR,
    DEBUG,
    EXPLAIN,
    HELP,
    PROMPT_COMMANDS,
    RESET,
    REVIEW,
    PromptCommand,
    extract_argument,
    trigger_matcher,
)
from codehelper.llm import CompletionService
from codehelper.memory.conversation_state import ConversationState, ConversationStateStore, Role, Turn
from codehelper.memory.episodic_memory import EpisodicMemoryStore
from codehelper.prompts import (
    APOLOGY_REPLY,
    CLEAR_CONFIRMATION,
    EMPTY_TEXT_REPLY,
    HELP_TEXT,
    RESET_CONFIRMATION,
    SYSTEM_INSTRUCTION,
    WELCOME_TEXT,
    compose,
)

logger = logging.getLogger(__name__)

Handler = Callable[[str, str], Awaitable[None]]


class MessageSender(ABC):
    """Outbound side of the messaging host."""

    @abstractmethod
    async def send_text(self, conversation_id: str, text: str) -> None:
        """Deliver plain text to the conversation."""


class SessionManager:
    """
    Handles one inbound event at a time per conversation. Routes are checked in
    fixed priority order; text matching no trigger goes to the generic handler.
    """

    def __init__(
        self,
        *,
        store: ConversationStateStore,
        completion: CompletionService,
        sender: MessageSender,
        episodic_memory: EpisodicMemoryStore,
        system_instruction: str = SYSTEM_INSTRUCTION,
    ) -> None:
        self._store = store
        self._completion = completion
        self._sender = sender
        self._episodic = episodic_memory
        self._system_instruction = system_instruction
        self._routes: list[tuple[Callable[[str], bool], Handler]] = [
            (trigger_matcher(HELP), self._handle_help),
            (trigger_matcher(REVIEW), partial(self._handle_prompt_command, PROMPT_COMMANDS[REVIEW])),
            (trigger_matcher(DEBUG), partial(self._handle_prompt_command, PROMPT_COMMANDS[DEBUG])),
            (trigger_matcher(EXPLAIN), partial(self._handle_prompt_command, PROMPT_COMMANDS[EXPLAIN])),
            (
                trigger_matcher(BEST_PRACTICES),
                partial(self._handle_prompt_command, PROMPT_COMMANDS[BEST_PRACTICES]),
            ),
            (trigger_matcher(CLEAR), self._handle_clear),
            (trigger_matcher(RESET), self._handle_reset),
        ]

    def select_handler(self, text: str) -> Handler:
        for matches, handler in self._routes:
            if matches(text):
                return handler
        return self._handle_text

    async def handle_message(self, conversation_id: str, text: str | None) -> None:
        text = text or ""
        handler = self.select_handler(text)
        await handler(conversation_id, text)

    async def handle_members_added(self, conversation_id: str) -> None:
        await self._sender.send_text(conversation_id, WELCOME_TEXT)
        self._record("member_welcomed", {}, conversation_id=conversation_id)

    async def _handle_help(self, conversation_id: str, text: str) -> None:
        await self._sender.send_text(conversation_id, HELP_TEXT)
        self._record("command_handled", {"command": HELP}, conversation_id=conversation_id)

    async def _handle_prompt_command(self, command: PromptCommand, conversation_id: str, text: str) -> None:
        argument = extract_argument(text, command.trigger)
        if not argument:
            await self._sender.send_text(conversation_id, command.missing_argument_reply)
            self._record(
                "command_handled",
                {"command": command.trigger, "missing_argument": True},
                conversation_id=conversation_id,
            )
            return
        reply = await self._exchange(conversation_id, command.wrap(argument))
        await self._sender.send_text(conversation_id, command.format_reply(reply))
        self._record(
            "command_handled",
            {"command": command.trigger, "argument": argument[:200]},
            conversation_id=conversation_id,
        )

    async def _handle_clear(self, conversation_id: str, text: str) -> None:
        self._store.delete_all(conversation_id)
        self._store.save(conversation_id, ConversationState())
        await self._sender.send_text(conversation_id, CLEAR_CONFIRMATION)
        self._record("conversation_cleared", {}, conversation_id=conversation_id)

    async def _handle_reset(self, conversation_id: str, text: str) -> None:
        state = self._store.load(conversation_id)
        dropped = len(state.history)
        state.history.clear()
        self._store.save(conversation_id, state)
        await self._sender.send_text(conversation_id, RESET_CONFIRMATION)
        self._record(
            "conversation_reset",
            {"dropped_turns": dropped},
            conversation_id=conversation_id,
        )

    async def _handle_text(self, conversation_id: str, text: str) -> None:
        user_message = text.strip()
        if not user_message:
            await self._sender.send_text(conversation_id, EMPTY_TEXT_REPLY)
            return
        reply = await self._exchange(conversation_id, user_message)
        await self._sender.send_text(conversation_id, reply)
        self._record(
            "message_processed",
            {"text": user_message[:200]},
            conversation_id=conversation_id,
        )

    async def _exchange(self, conversation_id: str, content: str) -> str:
        """
        Run one completion round trip and record it. The user turn is appended
        before composing, so it is the newest entry of the context window as well
        as the final user message. The reply, or the apology on failure, is then
        appended, bounded and saved.
        """
        state = self._store.load(conversation_id)
        state.append(Turn(Role.USER, content))
        messages = compose(self._system_instruction, state.history, content)
        try:
            reply = await asyncio.to_thread(self._completion.complete, messages)
        except Exception as exc:
            reply = APOLOGY_REPLY
            self._record(
                "completion_failed",
                {"error": str(exc), "content": content[:200]},
                level="error",
                conversation_id=conversation_id,
            )
        state.append(Turn(Role.ASSISTANT, reply))
        state.message_count += 1
        self._store.save(conversation_id, state)
        return reply

    def _record(
        self,
        event_type: str,
        payload: dict[str, object],
        *,
        level: str = "info",
        conversation_id: str | None = None,
    ) -> None:
        # Event log writes are best effort; a failing sink must not cost the user a reply.
        try:
            self._episodic.record(event_type, payload, level=level, conversation_id=conversation_id)
        except sqlite3.Error:
            logger.exception("Could not record %s for conversation=%s", event_type, conversation_id)
