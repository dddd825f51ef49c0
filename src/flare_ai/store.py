"""SQLite persistence for usage records and saved conversations."""

from __future__ import annotations

import json
import sqlite3
import threading
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, Field


class GenerationRecord(BaseModel):
    """Usage accounting for one generation, as reported by OpenRouter."""

    id: str
    created: int
    model: str
    tokens_prompt: int = 0
    tokens_completion: int = 0
    native_tokens_prompt: int = 0
    native_tokens_completion: int = 0
    total_cost: float = 0.0


class Message(BaseModel):
    role: str
    content: str


class Conversation(BaseModel):
    id: str
    title: str
    created_at: int
    updated_at: int
    model: str | None = None
    messages: list[Message] = Field(default_factory=list)


class AiStore:
    """SQLite-based store with one connection per thread."""

    def __init__(self, db_path: str | Path = ":memory:", *, clock: Callable[[], float] = time.time):
        self.db_path = str(db_path)
        self._clock = clock
        self._local = threading.local()

    @property
    def in_memory(self) -> bool:
        return self.db_path == ":memory:"

    @property
    def _conn(self) -> sqlite3.Connection:
        if not hasattr(self._local, "conn") or self._local.conn is None:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            self._init_db(conn)
            self._local.conn = conn
            return conn
        return self._local.conn  # type: ignore[no-any-return]

    def _init_db(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ai_generations (
                id TEXT PRIMARY KEY,
                created INTEGER NOT NULL,
                model TEXT NOT NULL,
                tokens_prompt INTEGER NOT NULL,
                tokens_completion INTEGER NOT NULL,
                native_tokens_prompt INTEGER NOT NULL,
                native_tokens_completion INTEGER NOT NULL,
                total_cost REAL NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ai_conversations (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                model TEXT,
                messages TEXT NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_ai_generations_created ON ai_generations(created)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_ai_conversations_updated ON ai_conversations(updated_at)")
        conn.commit()

    def close(self) -> None:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    # Usage

    def log_generation(self, record: GenerationRecord) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO ai_generations
            (id, created, model, tokens_prompt, tokens_completion,
             native_tokens_prompt, native_tokens_completion, total_cost)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.id,
                record.created,
                record.model,
                record.tokens_prompt,
                record.tokens_completion,
                record.native_tokens_prompt,
                record.native_tokens_completion,
                record.total_cost,
            ),
        )
        self._conn.commit()

    def get_history(self, limit: int = 50, offset: int = 0) -> list[GenerationRecord]:
        rows = self._conn.execute(
            "SELECT * FROM ai_generations ORDER BY created DESC LIMIT ? OFFSET ?",
            (limit, offset),
        ).fetchall()
        return [GenerationRecord.model_validate(dict(row)) for row in rows]

    # Conversations

    def create_conversation(self, title: str, model: str | None = None) -> Conversation:
        now = int(self._clock())
        conversation = Conversation(
            id=str(uuid.uuid4()),
            title=title,
            created_at=now,
            updated_at=now,
            model=model,
        )
        self._conn.execute(
            """INSERT INTO ai_conversations (id, title, created_at, updated_at, model, messages)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (
                conversation.id,
                conversation.title,
                conversation.created_at,
                conversation.updated_at,
                conversation.model,
                "[]",
            ),
        )
        self._conn.commit()
        return conversation

    def list_conversations(self) -> list[Conversation]:
        rows = self._conn.execute("SELECT * FROM ai_conversations ORDER BY updated_at DESC").fetchall()
        return [self._to_conversation(row) for row in rows]

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        row = self._conn.execute("SELECT * FROM ai_conversations WHERE id = ?", (conversation_id,)).fetchone()
        if row is None:
            return None
        return self._to_conversation(row)

    def update_conversation(
        self,
        conversation_id: str,
        *,
        title: str | None = None,
        messages: list[Message] | None = None,
    ) -> None:
        now = int(self._clock())
        if messages is not None:
            payload = json.dumps([message.model_dump() for message in messages], ensure_ascii=False)
            self._conn.execute(
                "UPDATE ai_conversations SET messages = ?, updated_at = ? WHERE id = ?",
                (payload, now, conversation_id),
            )
        if title is not None:
            self._conn.execute(
                "UPDATE ai_conversations SET title = ?, updated_at = ? WHERE id = ?",
                (title, now, conversation_id),
            )
        self._conn.commit()

    def delete_conversation(self, conversation_id: str) -> None:
        self._conn.execute("DELETE FROM ai_conversations WHERE id = ?", (conversation_id,))
        self._conn.commit()

    @staticmethod
    def _to_conversation(row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            title=row["title"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            model=row["model"],
            messages=[Message.model_validate(item) for item in json.loads(row["messages"] or "[]")],
        )
