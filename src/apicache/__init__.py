"""
apicache — request cache and fetch lifecycle controllers

Provides:
- Cache / CacheEntry — keyed result store with subscriber notification
- make_request_key — deterministic (operation, variables) keys
- LazyApi / MutationApi / AutoApi — fetch lifecycle controllers
- create_apis / ApiScope — scopes handing cache + fetcher to controllers
- RequestsFetcher — HTTP fetcher capability over requests
"""

from .auto import AutoApi
from .cache import ALL_KEYS, Cache, CacheEntry, Subscription
from .config import ApiCacheSettings, ApiConfig, HttpSettings, load_settings, missing_fetcher
from .errors import ApiCacheError, FetchError, MissingFetcherError, UnknownOperationError
from .http_fetcher import RequestsFetcher
from .key_generator import RequestKeyGenerator, canonical_json, make_request_key
from .lazy import ApiResult, FetchResult, LazyApi
from .mutation import MutationApi
from .provider import Apis, ApiScope, create_apis
from .utils import ValueRef, deep_equal, deep_merge

__all__ = [
    'Cache', 'CacheEntry', 'Subscription', 'ALL_KEYS',
    'make_request_key', 'canonical_json', 'RequestKeyGenerator',
    'LazyApi', 'MutationApi', 'AutoApi', 'ApiResult', 'FetchResult',
    'Apis', 'ApiScope', 'create_apis',
    'ApiConfig', 'ApiCacheSettings', 'HttpSettings', 'load_settings', 'missing_fetcher',
    'ApiCacheError', 'FetchError', 'MissingFetcherError', 'UnknownOperationError',
    'RequestsFetcher',
    'ValueRef', 'deep_equal', 'deep_merge',
]
