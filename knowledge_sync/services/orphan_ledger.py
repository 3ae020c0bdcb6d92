from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import ValidationError
from redis.asyncio import Redis

from knowledge_sync.services.models import OrphanRecord

logger = logging.getLogger(__name__)


class InMemoryOrphanLedger:
    """Process-local orphan ledger used when no Redis URL is configured."""

    def __init__(self) -> None:
        self._records: dict[str, OrphanRecord] = {}

    async def ping(self) -> bool:
        return True

    async def record(self, orphan: OrphanRecord) -> None:
        self._records[orphan.document_id] = orphan

    async def list_orphans(self) -> Sequence[OrphanRecord]:
        return sorted(self._records.values(), key=lambda orphan: orphan.recorded_at)

    async def resolve(self, document_id: str) -> None:
        self._records.pop(document_id, None)

    async def close(self) -> None:
        return None


class RedisOrphanLedger:
    """Redis hash of orphaned documents keyed by remote document id."""

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "knowledge-sync:orphans",
        redis_client: Redis | None = None,
    ) -> None:
        self._redis = redis_client if redis_client is not None else Redis.from_url(redis_url, decode_responses=True)
        self._key_prefix = key_prefix.strip(":")

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def record(self, orphan: OrphanRecord) -> None:
        await self._redis.hset(self._ledger_key(), orphan.document_id, orphan.model_dump_json())

    async def list_orphans(self) -> Sequence[OrphanRecord]:
        raw = await self._redis.hgetall(self._ledger_key())
        orphans: list[OrphanRecord] = []
        for document_id, value in raw.items():
            try:
                orphans.append(OrphanRecord.model_validate_json(value))
            except ValidationError:
                logger.warning("skipping unreadable orphan record", extra={"document_id": document_id})
        return sorted(orphans, key=lambda orphan: orphan.recorded_at)

    async def resolve(self, document_id: str) -> None:
        await self._redis.hdel(self._ledger_key(), document_id)

    async def close(self) -> None:
        await self._redis.aclose()

    def _ledger_key(self) -> str:
        return f"{self._key_prefix}:documents"
