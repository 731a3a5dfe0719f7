"""
Lazy API controller: owns the fetch lifecycle of one operation.

Implements:
- fetch(options) -> FetchResult     (loading write, fetcher call, settled write)
- result                            -> ApiResult for the current request key
- update_options(options)           -> latest defaults, read fresh by fetch()
- subscribe(callback) / watch(callback)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional

from .cache import ALL_KEYS, CacheEntry, Listener, Subscription
from .observability import FetchLogRecord, emit_fetch_log
from .utils import ValueRef, deep_equal, deep_merge, freeze_copy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch. Unpacks as ``data, error``."""
    data: Any = None
    error: Any = None

    def __iter__(self) -> Iterator[Any]:
        return iter((self.data, self.error))

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data, "error": self.error}


@dataclass(frozen=True)
class ApiResult:
    """What a call site renders."""
    loading: bool
    data: Any
    error: Any
    called: bool
    refetch: Callable[..., Awaitable[FetchResult]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loading": self.loading,
            "data": self.data,
            "error": self.error,
            "called": self.called,
        }


class LazyApi:
    """
    Controller for one operation that only fetches when asked.

    Options (mapping):
        variables:    default variables, deep-merged with call-time variables
        on_fetch:     async callable awaited before the request is issued
        on_completed: async callable awaited with the FetchResult before
                      the settled entry is written

    Fetcher failures are captured into the result. Failures raised by
    on_fetch/on_completed propagate to the caller of fetch().
    """

    def __init__(self, operation_id: str, api: Any, scope: Any, options: Optional[Mapping[str, Any]] = None):
        options = dict(options or {})
        self.operation_id = operation_id
        self.api = api
        self.scope = scope
        self._options: ValueRef[Dict[str, Any]] = ValueRef(options)
        self._variables: Dict[str, Any] = freeze_copy(options.get("variables") or {})
        self._last_result: Optional[FetchResult] = None
        self._sequence = 0
        self._called = False

    @property
    def cache(self):
        return self.scope.cache

    @property
    def options(self) -> Dict[str, Any]:
        return self._options.current

    def update_options(self, options: Optional[Mapping[str, Any]] = None) -> None:
        self._options.current = dict(options or {})

    @property
    def variables(self) -> Dict[str, Any]:
        return self._variables

    @property
    def key(self) -> str:
        return self.scope.make_key(self.operation_id, self._variables)

    @property
    def sequence(self) -> int:
        """Number of fetches issued so far."""
        return self._sequence

    @property
    def last_result(self) -> Optional[FetchResult]:
        return self._last_result

    async def fetch(self, options: Optional[Mapping[str, Any]] = None) -> FetchResult:
        merged = deep_merge(self._options.current, options)
        on_fetch = merged.get("on_fetch")
        on_completed = merged.get("on_completed")
        variables = merged.get("variables") or {}

        self._sequence += 1
        sequence = self._sequence
        self._called = True

        if on_fetch is not None:
            await on_fetch()

        cache = self.cache
        key = self.scope.make_key(self.operation_id, variables)
        cache.set(key, (cache.get(key) or CacheEntry()).replace(loading=True))

        if self.is_latest(sequence) and not deep_equal(variables, self._variables):
            self._variables = freeze_copy(variables)

        self._log_event("fetch_started", key, sequence)
        started = time.monotonic()

        data = error = None
        try:
            data = await self.scope.fetcher(self.api, variables)
        except Exception as exc:  # noqa: BLE001
            error = exc
            logger.info(f"Fetch failed for {self.operation_id}: {type(exc).__name__}: {exc}")

        latency_ms = (time.monotonic() - started) * 1000
        result = FetchResult(data=data, error=error)

        if on_completed is not None:
            await on_completed(result)

        if self.is_latest(sequence):
            self._last_result = result
            self._log_event(
                "fetch_settled", key, sequence,
                outcome="error" if error is not None else "data",
                latency_ms=latency_ms,
                error=error,
            )
        else:
            logger.warning(
                f"Discarding stale result for {self.operation_id} "
                f"(sequence={sequence}, latest={self._sequence})"
            )
            self._log_event(
                "fetch_discarded", key, sequence,
                outcome="error" if error is not None else "data",
                latency_ms=latency_ms,
                error=error,
            )

        cache.set(key, CacheEntry(loading=False, data=data, error=error))
        return result

    trigger = fetch
    refetch = fetch

    def is_latest(self, sequence: int) -> bool:
        """False only for superseded fetches, and only when the sequence guard is on."""
        if not self.scope.settings.sequence_guard:
            return True
        return sequence == self._sequence

    @property
    def result(self) -> ApiResult:
        entry = self.cache.get(self.key)
        if entry is None:
            last = self._last_result or FetchResult()
            entry = CacheEntry(loading=False, data=last.data, error=last.error)
        return ApiResult(
            loading=entry.loading,
            data=entry.data,
            error=entry.error,
            called=self._called,
            refetch=self.fetch,
        )

    def observe(self, options: Optional[Mapping[str, Any]] = None) -> None:
        """A re-render: refresh the options, never fetch."""
        if options is not None:
            self.update_options(options)

    def subscribe(self, callback: Listener) -> Subscription:
        """Listen to the entry for the key as it is right now."""
        return self.cache.subscribe(self.key, callback)

    def watch(self, callback: Listener) -> Subscription:
        """Listen to whatever key this controller points at when the write lands."""

        def _filtered(key: str, entry: CacheEntry) -> None:
            if key == self.key:
                callback(key, entry)

        return self.cache.subscribe(ALL_KEYS, _filtered)

    def _log_event(
        self,
        event: str,
        key: str,
        sequence: int,
        outcome: str = "pending",
        latency_ms: Optional[float] = None,
        error: Any = None,
    ) -> None:
        if not self.scope.settings.log_lifecycle:
            return
        emit_fetch_log(FetchLogRecord(
            operation=str(self.operation_id),
            request_key=key,
            event=event,
            sequence=sequence,
            outcome=outcome,
            latency_ms=latency_ms,
            error_type=type(error).__name__ if error is not None else None,
        ))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(operation={self.operation_id!r}, variables={self._variables!r})"
