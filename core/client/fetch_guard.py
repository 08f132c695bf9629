"""Fetch throttling and per-run busy flags for the API client."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from core.utils.errors import DownloadInProgressError

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 10.0


class RecentFetchCache(Generic[T]):
    """Remember the last result per key for ``ttl_seconds``."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, T]] = {}

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self._ttl_seconds:
            del self._entries[key]
            return None
        return value

    def __len__(self) -> int:
        return len(self._entries)

    def put(self, key: str, value: T) -> None:
        if self._ttl_seconds <= 0:
            return
        now = self._clock()
        expired = [
            stored_key
            for stored_key, (stored_at, _) in self._entries.items()
            if now - stored_at >= self._ttl_seconds
        ]
        for stored_key in expired:
            del self._entries[stored_key]
        self._entries[key] = (now, value)


class BusyFlags:
    """Allow one in-flight operation per key."""

    def __init__(self) -> None:
        self._busy: set[str] = set()

    def is_busy(self, key: str) -> bool:
        return key in self._busy

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        if key in self._busy:
            raise DownloadInProgressError(key)
        self._busy.add(key)
        try:
            yield
        finally:
            self._busy.discard(key)
