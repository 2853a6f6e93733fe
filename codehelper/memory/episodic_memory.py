"""Leveled event log for bot activity and absorbed failures."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

logger = logging.getLogger(__name__)

LEVELS = ("info", "warning", "error")


class EpisodicMemoryStore:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def record(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        level: str = "info",
        conversation_id: str | None = None,
    ) -> int:
        if level not in LEVELS:
            raise ValueError(f"Unknown event level: {level}")
        if level != "info":
            logger.log(
                logging.ERROR if level == "error" else logging.WARNING,
                "%s conversation=%s %s",
                event_type,
                conversation_id,
                payload,
            )
        cursor = self._conn.execute(
            """
            INSERT INTO episodic_memory (event_type, level, conversation_id, payload)
            VALUES (?, ?, ?, ?)
            """,
            (event_type, level, conversation_id, json.dumps(payload, ensure_ascii=True)),
        )
        self._conn.commit()
        return int(cursor.lastrowid)

    def latest(
        self,
        limit: int = 50,
        *,
        conversation_id: str | None = None,
        level: str | None = None,
    ) -> list[dict[str, Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if conversation_id is not None:
            clauses.append("conversation_id = ?")
            params.append(conversation_id)
        if level is not None:
            clauses.append("level = ?")
            params.append(level)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._conn.execute(
            f"""
            SELECT id, event_type, level, conversation_id, payload, created_at
            FROM episodic_memory
            {where}
            ORDER BY id DESC
            LIMIT ?
            """,
            (*params, limit),
        ).fetchall()

        events: list[dict[str, Any]] = []
        for row in rows:
            event = dict(row)
            event["payload"] = json.loads(event["payload"])
            events.append(event)
        return events
