from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import httpx

from knowledge_sync.services.contracts import KnowledgeClientProtocol
from knowledge_sync.services.errors import IndexPollFailure, IndexTimeout, KnowledgeSyncError
from knowledge_sync.services.models import IndexingOutcome, IndexingState, IndexingStatus, RemoteDocument

logger = logging.getLogger(__name__)

_POLL_FAILURES = (KnowledgeSyncError, httpx.HTTPError, TimeoutError, ConnectionError, ValueError)


class IndexingMonitor:
    """Drives one document's indexing job to a terminal state with a bounded number of calls.

    The trigger call counts as the first attempt. Every following attempt is a
    status check issued ``poll_interval_seconds`` after the previous one, so the
    default budget of 20 attempts at 3s caps the wait at roughly a minute.
    A failed or timed-out job is reported in the outcome, never raised; use
    :func:`raise_for_outcome` when a caller needs it to be fatal.
    """

    def __init__(
        self,
        client: KnowledgeClientProtocol,
        *,
        embedding_model: str,
        max_attempts: int = 20,
        poll_interval_seconds: float = 3.0,
        deadline_seconds: float | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._client = client
        self._embedding_model = embedding_model
        self._max_attempts = max_attempts
        self._poll_interval_seconds = poll_interval_seconds
        self._deadline_seconds = deadline_seconds

    async def run(self, document_id: str, *, stop: asyncio.Event | None = None) -> IndexingOutcome:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._deadline_seconds if self._deadline_seconds is not None else None

        document = await self._client.trigger_index(document_id=document_id, embedding_model=self._embedding_model)
        attempts = 1
        logger.info(
            "indexing triggered",
            extra={
                "document_id": document_id,
                "state": IndexingState.TRIGGERED.value,
                "status": document.indexing_status.value,
                "progress": document.progress_percent,
            },
        )

        state = IndexingState.POLLING
        while True:
            terminal = self._terminal_state(document)
            if terminal is not None:
                state = terminal
                break
            if attempts >= self._max_attempts:
                state = IndexingState.TIMED_OUT
                break
            if await self._wait_for_next_poll(stop=stop, deadline=deadline, now=loop.time):
                logger.info("indexing wait stopped before terminal status", extra={"document_id": document_id, "attempts": attempts})
                state = IndexingState.TIMED_OUT
                break

            attempts += 1
            try:
                document = await self._client.check_index(document_id=document_id, embedding_model=self._embedding_model)
            except _POLL_FAILURES as exc:
                logger.warning(
                    "indexing status check failed, polling again",
                    extra={"document_id": document_id, "attempt": attempts, "error": str(exc)},
                )
                continue

            logger.debug(
                "indexing status poll",
                extra={
                    "document_id": document_id,
                    "attempt": attempts,
                    "status": document.indexing_status.value,
                    "progress": document.progress_percent,
                },
            )

        logger.info(
            "indexing monitor finished",
            extra={"document_id": document_id, "state": state.value, "attempts": attempts},
        )
        return IndexingOutcome(
            document_id=document_id,
            state=state,
            attempts=attempts,
            progress_percent=document.progress_percent,
        )

    async def _wait_for_next_poll(
        self,
        *,
        stop: asyncio.Event | None,
        deadline: float | None,
        now: Callable[[], float],
    ) -> bool:
        """Sleep until the next poll; returns True when polling should stop instead."""

        if stop is not None and stop.is_set():
            return True

        interval = self._poll_interval_seconds
        if deadline is not None:
            remaining = deadline - now()
            if remaining <= 0:
                return True
            if remaining < interval:
                interval = remaining

        if stop is None:
            await asyncio.sleep(interval)
        else:
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
                return True
            except TimeoutError:
                pass

        return deadline is not None and now() >= deadline

    @staticmethod
    def _terminal_state(document: RemoteDocument) -> IndexingState | None:
        if document.indexing_status is IndexingStatus.SUCCEEDED:
            return IndexingState.SUCCEEDED
        if document.indexing_status is IndexingStatus.FAILED:
            return IndexingState.FAILED
        return None


def raise_for_outcome(outcome: IndexingOutcome) -> None:
    if outcome.state is IndexingState.FAILED:
        raise IndexPollFailure(f"indexing failed for {outcome.document_id} after {outcome.attempts} attempt(s)")
    if outcome.state is IndexingState.TIMED_OUT:
        raise IndexTimeout(f"indexing for {outcome.document_id} did not finish after {outcome.attempts} attempt(s)")
