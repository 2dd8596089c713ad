"""Shared fixtures for the Health-Sieve test suite."""

import io
from typing import Dict, List, Union

import pytest

from src.domain.ports import CleanupError, SourceIOError, SourceStorePort


class InMemorySourceStore(SourceStorePort):
    """Source store holding exports in memory, recording every delete."""

    def __init__(self, fail_delete: bool = False):
        self.blobs: Dict[str, bytes] = {}
        self.streams: List[io.BytesIO] = []
        self.deleted: List[str] = []
        self.fail_delete = fail_delete

    def put(self, handle: str, content: Union[str, bytes]) -> str:
        self.blobs[handle] = content.encode("utf-8") if isinstance(content, str) else content
        return handle

    def open(self, handle: str):
        if handle not in self.blobs:
            raise SourceIOError(f"No such source: {handle}", source=handle)
        stream = io.BytesIO(self.blobs[handle])
        self.streams.append(stream)
        return stream

    def size(self, handle: str) -> int:
        if handle not in self.blobs:
            raise SourceIOError(f"No such source: {handle}", source=handle)
        return len(self.blobs[handle])

    def delete(self, handle: str) -> None:
        self.deleted.append(handle)
        if self.fail_delete:
            raise CleanupError(f"Cannot delete {handle}", source=handle)
        self.blobs.pop(handle, None)


@pytest.fixture
def memory_store():
    """In-memory store whose deletes succeed."""
    return InMemorySourceStore()


@pytest.fixture
def failing_store():
    """In-memory store whose deletes always fail."""
    return InMemorySourceStore(fail_delete=True)


async def collect(session) -> list:
    """Drain a session's events into a list."""
    return [event async for event in session.events()]


@pytest.fixture
def collect_events():
    """Coroutine function draining a session into a list."""
    return collect
