"""Detached usage accounting for OpenRouter generations."""

from __future__ import annotations

import asyncio

import httpx
from loguru import logger
from pydantic import ValidationError

from flare_ai.errors import UsageFetchError
from flare_ai.providers import OPENROUTER_API_BASE
from flare_ai.store import AiStore, GenerationRecord

GENERATION_URL = f"{OPENROUTER_API_BASE}/generation"


class UsageRecorder:
    """Fetches generation stats in the background and stores them.

    Failures are logged and dropped; they never reach the ask that spawned them.
    """

    def __init__(self, store: AiStore, *, client: httpx.AsyncClient | None = None) -> None:
        self._store = store
        self._client = client
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def record(self, generation_id: str, api_key: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._record(generation_id, api_key), name=f"usage:{generation_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every outstanding usage task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _record(self, generation_id: str, api_key: str) -> None:
        try:
            record = await self.fetch(generation_id, api_key)
            await self._store_record(record)
        except Exception:
            logger.exception("usage.record.error generation_id={}", generation_id)
            return
        logger.info(
            "usage.record.ok generation_id={} model={} cost={}",
            record.id,
            record.model,
            record.total_cost,
        )

    async def _store_record(self, record: GenerationRecord) -> None:
        # In-memory databases are per connection, so they stay on the loop thread.
        if self._store.in_memory:
            self._store.log_generation(record)
        else:
            await asyncio.to_thread(self._store.log_generation, record)

    async def fetch(self, generation_id: str, api_key: str) -> GenerationRecord:
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient()
        try:
            response = await client.get(
                GENERATION_URL,
                params={"id": generation_id},
                headers={"Authorization": f"Bearer {api_key}"},
            )
        finally:
            if owns_client:
                await client.aclose()

        if response.is_error:
            raise UsageFetchError(f"Failed to fetch usage data: {response.text}")
        try:
            payload = response.json()
            return GenerationRecord.model_validate(payload["data"])
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            raise UsageFetchError(f"Failed to parse generation data: {exc!s}") from exc
