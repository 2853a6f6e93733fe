"""Per-conversation rolling history and its SQLite store."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from enum import Enum

HISTORY_MAX_TURNS = 20


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class ConversationState:
    message_count: int = 0
    history: list[Turn] = field(default_factory=list)

    def append(self, turn: Turn) -> None:
        """Append a user/assistant turn, dropping oldest turns past the bound."""
        if turn.role == Role.SYSTEM:
            raise ValueError("System turns are never stored in conversation history")
        self.history.append(turn)
        if len(self.history) > HISTORY_MAX_TURNS:
            del self.history[: len(self.history) - HISTORY_MAX_TURNS]


def _encode_history(history: list[Turn]) -> str:
    return json.dumps([turn.as_message() for turn in history], ensure_ascii=True)


def _decode_history(raw: str) -> list[Turn]:
    turns: list[Turn] = []
    for item in json.loads(raw or "[]"):
        role = Role(item["role"])
        if role == Role.SYSTEM:
            continue
        turns.append(Turn(role, str(item["content"])))
    return turns[-HISTORY_MAX_TURNS:]


class ConversationStateStore:
    """Keyed load/save of ConversationState; load always returns a full state."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def load(self, conversation_id: str) -> ConversationState:
        row = self._conn.execute(
            "SELECT message_count, history FROM conversation_state WHERE conversation_id = ?",
            (conversation_id,),
        ).fetchone()
        if row is None:
            return ConversationState()
        return ConversationState(
            message_count=int(row["message_count"]),
            history=_decode_history(row["history"]),
        )

    def save(self, conversation_id: str, state: ConversationState) -> None:
        self._conn.execute(
            """
            INSERT INTO conversation_state (conversation_id, message_count, history, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(conversation_id) DO UPDATE SET
                message_count=excluded.message_count,
                history=excluded.history,
                updated_at=CURRENT_TIMESTAMP
            """,
            (conversation_id, state.message_count, _encode_history(state.history)),
        )
        self._conn.commit()

    def delete_all(self, conversation_id: str) -> bool:
        cursor = self._conn.execute(
            "DELETE FROM conversation_state WHERE conversation_id = ?",
            (conversation_id,),
        )
        self._conn.commit()
        return cursor.rowcount > 0
