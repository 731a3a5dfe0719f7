"""
Scopes and controller factories.

``create_apis(operations)`` binds a table of operation descriptors. Each
``provider(config, cache)`` call returns an ApiScope that hands its cache
and fetcher to every controller created from it. Without a provider,
controllers use the factory's default scope, whose fetcher always fails.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from .auto import AutoApi
from .cache import Cache
from .config import ApiCacheSettings, ApiConfig, Fetcher, missing_fetcher
from .errors import UnknownOperationError
from .key_generator import RequestKeyGenerator
from .lazy import LazyApi
from .mutation import MutationApi

logger = logging.getLogger(__name__)


class ApiScope:
    def __init__(self, operations: Mapping[str, Any], config: Optional[ApiConfig] = None, cache: Optional[Cache] = None):
        self.operations = operations
        self.config = config or ApiConfig()
        self.cache = cache if cache is not None else Cache()
        self.key_generator = RequestKeyGenerator(hashed=self.config.settings.hash_keys)

        if self.config.fetcher is missing_fetcher:
            logger.debug("ApiScope created without a fetcher; every fetch will fail")

    @property
    def fetcher(self) -> Fetcher:
        return self.config.fetcher

    @property
    def settings(self) -> ApiCacheSettings:
        return self.config.settings

    def make_key(self, operation_id: str, variables: Optional[Mapping[str, Any]] = None) -> str:
        return self.key_generator.generate(operation_id, variables)

    def _api(self, operation_id: str) -> Any:
        try:
            return self.operations[operation_id]
        except KeyError:
            raise UnknownOperationError(operation_id) from None

    def use_lazy_api(self, operation_id: str, options: Optional[Mapping[str, Any]] = None) -> LazyApi:
        return LazyApi(operation_id, self._api(operation_id), self, options)

    def use_mutation_api(self, operation_id: str, options: Optional[Mapping[str, Any]] = None) -> MutationApi:
        return MutationApi(operation_id, self._api(operation_id), self, options)

    def use_api(self, operation_id: str, options: Optional[Mapping[str, Any]] = None) -> AutoApi:
        """Create an auto-fetching controller and run its first observation."""
        options = dict(options or {})
        lazy_options = {k: v for k, v in options.items() if k != "skip"}
        lazy = LazyApi(operation_id, self._api(operation_id), self, lazy_options)
        controller = AutoApi(lazy, options)
        controller.observe()
        return controller


class Apis:
    """Controller factories for one table of operations."""

    def __init__(self, operations: Mapping[str, Any]):
        self.operations: Dict[str, Any] = dict(operations)
        self.default_scope = ApiScope(self.operations)

    def provider(
        self,
        config: Optional[ApiConfig] = None,
        cache: Optional[Cache] = None,
        fetcher: Optional[Fetcher] = None,
    ) -> ApiScope:
        if config is None:
            config = ApiConfig(fetcher=fetcher) if fetcher is not None else ApiConfig()
        elif fetcher is not None:
            raise ValueError("Pass either config or fetcher, not both")
        return ApiScope(self.operations, config, cache)

    def _scope(self, scope: Optional[ApiScope]) -> ApiScope:
        return scope if scope is not None else self.default_scope

    def use_lazy_api(self, operation_id: str, options: Optional[Mapping[str, Any]] = None,
                     scope: Optional[ApiScope] = None) -> LazyApi:
        return self._scope(scope).use_lazy_api(operation_id, options)

    def use_mutation_api(self, operation_id: str, options: Optional[Mapping[str, Any]] = None,
                         scope: Optional[ApiScope] = None) -> MutationApi:
        return self._scope(scope).use_mutation_api(operation_id, options)

    def use_api(self, operation_id: str, options: Optional[Mapping[str, Any]] = None,
                scope: Optional[ApiScope] = None) -> AutoApi:
        return self._scope(scope).use_api(operation_id, options)


def create_apis(operations: Mapping[str, Any]) -> Apis:
    return Apis(operations)
