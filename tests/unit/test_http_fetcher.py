#!/usr/bin/env python3
"""
Unit tests for RequestsFetcher
All HTTP calls mocked — no real network
"""

import asyncio

import pytest
from unittest.mock import MagicMock

import requests

from apicache import ApiConfig, FetchError, HttpSettings, RequestsFetcher, create_apis


def _response(status=200, payload=None, text="", content_type="application/json"):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {"Content-Type": content_type}
    resp.json.return_value = payload
    resp.text = text
    return resp


class TestRequestsFetcher:

    @pytest.fixture
    def session(self):
        return MagicMock(spec=requests.Session)

    @pytest.fixture
    def fetcher(self, session):
        return RequestsFetcher(base_url="https://api.test/", timeout=5, session=session)

    @pytest.mark.asyncio
    async def test_get_with_path_and_query(self, fetcher, session):
        session.request.return_value = _response(payload={"name": "Ana"})

        data = await fetcher(
            {"method": "get", "path": "/users/{id}"},
            {"path": {"id": 1}, "query": {"full": "1"}},
        )

        assert data == {"name": "Ana"}
        session.request.assert_called_once()
        args, kwargs = session.request.call_args
        assert args == ("GET", "https://api.test/users/1")
        assert kwargs["params"] == {"full": "1"}
        assert kwargs["timeout"] == 5
        assert "json" not in kwargs

    @pytest.mark.asyncio
    async def test_body_sent_as_json(self, fetcher, session):
        session.request.return_value = _response(payload={"ok": True})

        await fetcher({"method": "PUT", "path": "/users/{id}"}, {"path": {"id": 2}, "body": {"name": "Bo"}})

        _, kwargs = session.request.call_args
        assert kwargs["json"] == {"name": "Bo"}

    @pytest.mark.asyncio
    async def test_plain_text_response(self, fetcher, session):
        session.request.return_value = _response(text="pong", content_type="text/plain")

        assert await fetcher({"path": "/ping"}, {}) == "pong"

    @pytest.mark.asyncio
    async def test_http_error_raises(self, fetcher, session):
        session.request.return_value = _response(status=404, text="not found")

        with pytest.raises(FetchError) as excinfo:
            await fetcher({"path": "/users/{id}"}, {"path": {"id": 3}})

        assert excinfo.value.status_code == 404
        assert excinfo.value.details["body"] == "not found"
        assert fetcher.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_timeout_raises(self, fetcher, session):
        session.request.side_effect = requests.Timeout()

        with pytest.raises(FetchError, match="Timeout"):
            await fetcher({"path": "/slow"}, {})

    @pytest.mark.asyncio
    async def test_missing_path_variable(self, fetcher, session):
        with pytest.raises(FetchError, match="Missing path variable"):
            await fetcher({"path": "/users/{id}"}, {})

        session.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_captured_by_controller(self, fetcher, session):
        """Test: HTTP failures land in the cache entry, not in the caller."""
        session.request.return_value = _response(status=500, text="boom")
        apis = create_apis({"get_user": {"path": "/users/{id}"}})
        scope = apis.provider(ApiConfig(fetcher=fetcher))
        lazy = scope.use_lazy_api("get_user", {"variables": {"path": {"id": 1}}})

        result = await lazy.fetch()

        assert result.data is None
        assert isinstance(result.error, FetchError)
        assert scope.cache.get(lazy.key).error is result.error

    def test_from_settings(self, session):
        fetcher = RequestsFetcher.from_settings(
            HttpSettings(base_url="https://api.test", timeout_sec=2.5),
            session=session,
        )

        assert fetcher.base_url == "https://api.test"
        assert fetcher.timeout == 2.5

    def test_base_url_from_env(self, monkeypatch, session):
        monkeypatch.setenv("APICACHE_HTTP_BASE_URL", "https://env.test/")

        assert RequestsFetcher(session=session).base_url == "https://env.test"

    def test_explicit_zero_timeout_is_kept(self, session):
        assert RequestsFetcher(base_url="https://api.test", timeout=0, session=session).timeout == 0
        assert RequestsFetcher(base_url="https://api.test", session=session).timeout == RequestsFetcher.DEFAULT_TIMEOUT

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_all_counted(self, fetcher, session):
        session.request.return_value = _response(status=503, text="busy")

        results = await asyncio.gather(
            *(fetcher({"path": "/users/{id}"}, {"path": {"id": i}}) for i in range(20)),
            return_exceptions=True,
        )

        assert all(isinstance(r, FetchError) for r in results)
        stats = fetcher.get_stats()
        assert stats["requests"] == 20
        assert stats["errors"] == 20
