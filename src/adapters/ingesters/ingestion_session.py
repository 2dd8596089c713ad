"""Ingestion Session Controller.

An ingestion session drives one export from its source store through the
streaming scanner and the record extractor, and hands the resulting events to
a single consumer as an async generator.

Lifecycle:
    CREATED -> RUNNING -> COMPLETED | FAILED

    Terminal states are final and a session runs exactly once. Whatever the
    outcome, the source is closed and its artifact handed back to the store
    for deletion exactly once.

Backpressure:
    The next chunk is read only after the consumer has taken every event the
    previous chunk produced, so a slow consumer slows the reader instead of
    growing a buffer. Reads run in a worker thread to keep the event loop free.

Error Handling:
    - Any failure ends the session FAILED with exactly one error event
    - A consumer that stops early (disconnect, aclose, task cancellation)
      ends the session FAILED with reason "cancelled"
    - Cleanup failures are logged at WARNING and never change the outcome
"""

import asyncio
import logging
import time
import uuid
from typing import AsyncIterator, BinaryIO, Optional

from src.adapters.ingesters.health_export_extractor import HealthExportExtractor
from src.domain.health_record import DateWindow
from src.domain.ingestion_events import (
    ErrorEvent,
    IngestionEvent,
    IngestionOutcome,
    SessionState,
)
from src.domain.ports import SourceStorePort
from src.infrastructure.settings import settings
from src.infrastructure.xml_streaming_parser import StreamingXMLScanner

logger = logging.getLogger(__name__)

CANCELLED_REASON = "cancelled"


class IngestionSession:
    """One run of the ingestion pipeline over one source.

    Example Usage:
        ```python
        session = IngestionSession(store, file_id, window=window)
        async for event in session.events():
            await send(event.to_sse())

        if not session.outcome.succeeded:
            logger.error(session.outcome.reason)
        ```
    """

    def __init__(
        self,
        store: SourceStorePort,
        handle: str,
        window: Optional[DateWindow] = None,
        *,
        batch_size: Optional[int] = None,
        progress_interval: Optional[int] = None,
        progress_bytes_interval: Optional[int] = None,
        chunk_size: Optional[int] = None,
        max_depth: Optional[int] = None,
        max_events: Optional[int] = None,
        huge_tree: Optional[bool] = None
    ):
        """Initialize the session.

        Parameters:
            store: Source store the handle belongs to
            handle: Opaque identifier of the source in the store
            window: Optional inclusive date window
            batch_size: Records per flushed batch (default from settings)
            progress_interval: Accepted records between progress events
            progress_bytes_interval: Bytes between progress events (0 = off)
            chunk_size: Bytes read per step
            max_depth: Maximum XML nesting depth
            max_events: Maximum number of XML elements
            huge_tree: Lift libxml2 size limits

        Note:
            Tunables left as None are taken from ``settings.ingestion``.
        """
        config = settings.ingestion

        self.store = store
        self.handle = handle
        self.window = window
        self.batch_size = batch_size if batch_size is not None else config.batch_size
        self.progress_interval = progress_interval if progress_interval is not None else config.progress_interval
        self.progress_bytes_interval = (
            progress_bytes_interval if progress_bytes_interval is not None else config.progress_bytes_interval
        )
        self.chunk_size = chunk_size if chunk_size is not None else config.chunk_size
        self.max_depth = max_depth if max_depth is not None else config.xml_max_depth
        self.max_events = max_events if max_events is not None else config.xml_max_events
        self.huge_tree = huge_tree if huge_tree is not None else config.xml_huge_tree

        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

        self.session_id = uuid.uuid4().hex[:12]
        self._state = SessionState.CREATED
        self._outcome: Optional[IngestionOutcome] = None
        self._released = False
        self._stream: Optional[BinaryIO] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def outcome(self) -> Optional[IngestionOutcome]:
        """Terminal result, or None while the session has not ended."""
        return self._outcome

    def _log_extra(self) -> dict:
        return {"session_id": self.session_id}

    def _complete(self, extractor: HealthExportExtractor, started: float) -> None:
        snapshot = extractor.snapshot()
        self._outcome = IngestionOutcome.completed(snapshot)
        self._state = SessionState.COMPLETED
        logger.info(
            f"Ingestion completed: {snapshot.records_processed:,} records from "
            f"{snapshot.bytes_processed:,} bytes in {time.perf_counter() - started:.2f}s",
            extra=self._log_extra()
        )

    def _fail(self, reason: str) -> None:
        self._outcome = IngestionOutcome.failed(reason)
        self._state = SessionState.FAILED

    def _release(self) -> None:
        """Close the source and hand the artifact back to the store, once.

        Failures are logged and never raised; the outcome is already decided.
        """
        if self._released:
            return
        self._released = True

        if self._stream is not None:
            try:
                self._stream.close()
            except Exception as e:
                logger.warning(f"Failed to close source {self.handle}: {e}", extra=self._log_extra())

        try:
            self.store.delete(self.handle)
        except Exception as e:
            logger.warning(
                f"Cleanup failed for source {self.handle}: {type(e).__name__}: {e}",
                extra=self._log_extra()
            )

    def release(self) -> None:
        """Release the source even if the session was never run.

        Idempotent. A session released before it started ends FAILED with
        reason "cancelled" and can no longer be started.
        """
        if self._state is SessionState.CREATED:
            self._fail(CANCELLED_REASON)
            logger.info(f"Ingestion of {self.handle} released before start", extra=self._log_extra())
        self._release()

    async def events(self) -> AsyncIterator[IngestionEvent]:
        """Run the session and yield its events in order.

        Yields:
            IngestionEvent: progress and record events, then exactly one
            complete or error event

        Raises:
            RuntimeError: If the session has already been started
        """
        if self._state is not SessionState.CREATED:
            raise RuntimeError(f"Session {self.session_id} has already been started")
        self._state = SessionState.RUNNING

        started = time.perf_counter()

        try:
            try:
                total_bytes = await asyncio.to_thread(self.store.size, self.handle)
                logger.info(
                    f"Starting ingestion of {self.handle} ({total_bytes:,} bytes, "
                    f"window={self.window.model_dump() if self.window else None})",
                    extra=self._log_extra()
                )
                self._stream = stream = await asyncio.to_thread(self.store.open, self.handle)

                scanner = StreamingXMLScanner(
                    max_depth=self.max_depth,
                    max_events=self.max_events,
                    huge_tree=self.huge_tree
                )
                extractor = HealthExportExtractor(
                    window=self.window,
                    batch_size=self.batch_size,
                    progress_interval=self.progress_interval,
                    total_bytes=total_bytes,
                    progress_bytes_interval=self.progress_bytes_interval
                )

                while True:
                    chunk = await asyncio.to_thread(stream.read, self.chunk_size)
                    if not chunk:
                        break
                    extractor.advance_bytes(len(chunk))
                    for element_event in scanner.feed(chunk):
                        extractor.handle(element_event)
                    for event in extractor.drain():
                        yield event

                for element_event in scanner.close():
                    extractor.handle(element_event)
                extractor.finish()

                for event in extractor.drain():
                    if event.is_terminal:
                        self._complete(extractor, started)
                    yield event

            except (GeneratorExit, asyncio.CancelledError):
                if self._outcome is None:
                    self._fail(CANCELLED_REASON)
                    logger.info(
                        f"Ingestion of {self.handle} cancelled by consumer",
                        extra=self._log_extra()
                    )
                raise

            except Exception as e:
                self._fail(str(e) or type(e).__name__)
                logger.error(
                    f"Ingestion of {self.handle} failed: {type(e).__name__}: {e}",
                    extra=self._log_extra()
                )
                yield ErrorEvent.from_exception(e)

        finally:
            self._release()
