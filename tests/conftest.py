"""Shared fixtures: a fetcher the test releases by hand, and scopes around it."""

import asyncio

import pytest

from apicache import ApiCacheSettings, ApiConfig, create_apis

OPERATIONS = {
    "get_user": {"method": "GET", "path": "/users/{id}"},
    "list_users": {"method": "GET", "path": "/users"},
    "update_user": {"method": "PUT", "path": "/users/{id}"},
}


class GatedFetcher:
    """Every call blocks until the test resolves or rejects it."""

    def __init__(self):
        self.calls = []
        self._gates = []

    async def __call__(self, api, variables):
        gate = asyncio.get_running_loop().create_future()
        self.calls.append((api, dict(variables)))
        self._gates.append(gate)
        return await gate

    def resolve(self, index, value):
        self._gates[index].set_result(value)

    def reject(self, index, error):
        self._gates[index].set_exception(error)


async def _spin(rounds=5):
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def spin():
    return _spin


@pytest.fixture
def fetcher():
    return GatedFetcher()


@pytest.fixture
def apis():
    return create_apis(OPERATIONS)


@pytest.fixture
def scope(apis, fetcher):
    return apis.provider(ApiConfig(fetcher=fetcher))


@pytest.fixture
def unguarded_scope(apis, fetcher):
    return apis.provider(ApiConfig(fetcher=fetcher, settings=ApiCacheSettings(sequence_guard=False)))
