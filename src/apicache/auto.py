"""
Auto-fetching API controller.

Fetches on the first observation and again whenever the observed variables
stop being deep-equal to the previous ones, unless ``skip`` is set. Keeps
its own ``called``/``loading`` flags so a call site sees ``loading=True``
the moment a fetch is scheduled, before anything reaches the cache.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, Set

from .cache import Listener, Subscription
from .lazy import ApiResult, FetchResult, LazyApi
from .utils import ValueRef, deep_equal, deep_merge, freeze_copy

logger = logging.getLogger(__name__)


class AutoApi:
    def __init__(self, lazy: LazyApi, options: Optional[Mapping[str, Any]] = None):
        options = dict(options or {})
        skip = bool(options.get("skip", False))

        self._lazy = lazy
        self._options: ValueRef[Dict[str, Any]] = ValueRef(options)
        self._called = not skip
        self._loading = not skip
        self._observed = False
        self._skipped_last = False
        self._last_variables: Dict[str, Any] = {}
        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()

        lazy.update_options(self._lazy_options(options))

    @property
    def lazy(self) -> LazyApi:
        return self._lazy

    @property
    def operation_id(self) -> str:
        return self._lazy.operation_id

    @property
    def key(self) -> str:
        return self._lazy.key

    @property
    def variables(self) -> Dict[str, Any]:
        return self._lazy.variables

    @property
    def called(self) -> bool:
        return self._called

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _lazy_options(self, options: Mapping[str, Any]) -> Dict[str, Any]:
        lazy_options = {k: v for k, v in options.items() if k != "skip"}
        lazy_options["on_fetch"] = self._on_fetch
        lazy_options["on_completed"] = self._completion_hook(None)
        return lazy_options

    @property
    def skipped(self) -> bool:
        return bool(self._options.current.get("skip", False))

    async def _on_fetch(self) -> None:
        # a fetch scheduled before a skip must not flip the flags back on
        if not self.skipped:
            self._called = True
            self._loading = True
        user_on_fetch = self._options.current.get("on_fetch")
        if user_on_fetch is not None:
            await user_on_fetch()

    def _completion_hook(self, generation: Optional[int]):
        async def _on_completed(result: FetchResult) -> None:
            if generation is None or self._is_latest(generation):
                self._loading = False
            user_on_completed = self._options.current.get("on_completed")
            if user_on_completed is not None:
                await user_on_completed(result)

        return _on_completed

    def _is_latest(self, generation: int) -> bool:
        if not self._lazy.scope.settings.sequence_guard:
            return True
        return generation == self._generation

    def observe(self, options: Optional[Mapping[str, Any]] = None) -> Optional[asyncio.Task]:
        """
        One render of the call site.

        Returns the scheduled fetch task when this observation triggered a
        fetch, otherwise None. Needs a running event loop when it fetches.
        """
        if options is not None:
            self._options.current = dict(options)
            self._lazy.update_options(self._lazy_options(options))

        options = self._options.current
        if options.get("skip", False):
            self._called = False
            self._loading = False
            self._skipped_last = True
            return None

        variables = options.get("variables") or {}
        changed = (
            not self._observed
            or self._skipped_last
            or not deep_equal(variables, self._last_variables)
        )
        self._observed = True
        self._skipped_last = False
        self._last_variables = freeze_copy(variables)

        if not changed:
            return None

        logger.debug(f"Auto fetch for {self.operation_id} (variables={variables})")
        return self._start()

    def _start(self, options: Optional[Mapping[str, Any]] = None) -> asyncio.Task:
        loop = asyncio.get_running_loop()

        self._generation += 1
        if not self.skipped:
            self._called = True
            self._loading = True

        call_options = deep_merge(options, {"on_completed": self._completion_hook(self._generation)})
        task = loop.create_task(self._lazy.fetch(call_options))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Auto fetch for {self.operation_id} raised: {type(exc).__name__}: {exc}")

    async def refetch(self, options: Optional[Mapping[str, Any]] = None) -> FetchResult:
        return await self._start(options)

    async def wait(self) -> None:
        """Wait for every fetch this controller has scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def result(self) -> ApiResult:
        return replace(
            self._lazy.result,
            loading=self._loading,
            called=self._called,
            refetch=self.refetch,
        )

    def subscribe(self, callback: Listener) -> Subscription:
        return self._lazy.subscribe(callback)

    def watch(self, callback: Listener) -> Subscription:
        return self._lazy.watch(callback)

    def __repr__(self) -> str:
        return f"AutoApi(operation={self.operation_id!r}, called={self._called}, loading={self._loading})"
