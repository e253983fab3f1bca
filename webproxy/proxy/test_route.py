"""
HTTP-level tests of the proxy router, with a mocked origin behind the pipeline.
"""

import json
from urllib.parse import quote

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from webproxy.proxy.config import ProxyConfig
from webproxy.proxy.models import Addressing
from webproxy.proxy.pipeline import ProxyPipeline
from webproxy.proxy.route import build_router


def _client(config: ProxyConfig, mock_origin) -> TestClient:
    app = FastAPI()
    app.include_router(build_router(ProxyPipeline(config, transport=mock_origin.transport)))
    return TestClient(app)


@pytest.fixture
def query_client(query_config, mock_origin):
    return _client(query_config, mock_origin)


@pytest.fixture
def path_client(path_config, mock_origin):
    return _client(path_config, mock_origin)


class TestQueryAddressing:
    def test_get(self, query_client, mock_origin):
        mock_origin.reply(200, {"content-type": "text/plain"}, b"hello")

        response = query_client.get("/proxy", params={"url": "https://example.com/page"})

        assert response.status_code == 200
        assert response.text == "hello"
        assert response.headers["cache-control"] == "no-store"
        assert response.headers["access-control-allow-origin"] == "*"
        assert str(mock_origin.last_request.url) == "https://example.com/page"

    def test_missing_target(self, query_client, mock_origin):
        response = query_client.get("/proxy")

        assert response.status_code == 400
        assert "url" in response.text
        assert mock_origin.requests == []

    def test_post_body(self, query_client, mock_origin):
        mock_origin.reply(201, {"content-type": "application/json"}, b'{"ok": true}')

        response = query_client.post(
            "/proxy?url=" + quote("https://example.com/items", safe=""),
            content=b'{"name": "test"}',
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 201
        assert response.json() == {"ok": True}
        assert mock_origin.last_request.content == b'{"name": "test"}'
        assert mock_origin.last_request.headers["content-type"] == "application/json"

    def test_redirect_not_followed_by_client(self, query_client, mock_origin):
        mock_origin.reply(302, {"location": "/login"})

        response = query_client.get(
            "/proxy", params={"url": "https://example.com/app"}, follow_redirects=False
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/proxy?url=https%3A%2F%2Fexample.com%2Flogin"

    def test_html_rewritten(self, query_client, mock_origin):
        mock_origin.reply(200, {"content-type": "text/html"}, b'<a href="/foo">Foo</a>')

        response = query_client.get("/proxy", params={"url": "https://example.com/bar"})

        assert response.text == '<a href="/proxy?url=https%3A%2F%2Fexample.com%2Ffoo">Foo</a>'

    def test_set_cookie_stripped(self, query_client, mock_origin):
        mock_origin.reply(200, {"content-type": "text/plain", "set-cookie": "a=1"}, b"x")

        response = query_client.get("/proxy", params={"url": "https://example.com/"})

        assert "set-cookie" not in response.headers
        assert not query_client.cookies

    def test_upstream_failure(self, query_client, mock_origin):
        mock_origin.fail(httpx.ConnectError("Connection refused"))

        response = query_client.get("/proxy", params={"url": "https://example.com/"})

        assert response.status_code == 502
        assert response.headers["content-type"] == "application/json; charset=utf-8"
        assert json.loads(response.content)["error"].startswith("Bad gateway")

    def test_proxy_headers_not_forwarded(self, query_client, mock_origin):
        query_client.get(
            "/proxy",
            params={"url": "https://example.com/"},
            headers={"x-forwarded-for": "10.0.0.1", "cf-ray": "abc", "x-custom": "yes"},
        )

        sent = mock_origin.last_request.headers
        assert "x-forwarded-for" not in sent
        assert "cf-ray" not in sent
        assert sent["x-custom"] == "yes"
        assert sent["host"] == "example.com"


class TestPathAddressing:
    def test_encoded_target(self, path_client, mock_origin):
        target = quote("https://example.com/page?a=1", safe="")

        response = path_client.get(f"/{target}")

        assert response.status_code == 200
        assert str(mock_origin.last_request.url) == "https://example.com/page?a=1"

    def test_query_appended(self, path_client, mock_origin):
        path_client.get("/example.com/search?q=test")

        assert str(mock_origin.last_request.url) == "http://example.com/search?q=test"

    def test_prefix(self, mock_origin):
        client = _client(ProxyConfig(addressing=Addressing.PATH, path_prefix="/proxy"), mock_origin)

        client.get("/proxy/" + quote("https://example.com/x", safe=""))

        assert str(mock_origin.last_request.url) == "https://example.com/x"

    def test_redirect(self, path_client, mock_origin):
        mock_origin.reply(301, {"location": "https://example.com/new"})

        response = path_client.get("/example.com/old", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "/https%3A%2F%2Fexample.com%2Fnew"


class TestLandingPage:
    def test_query_mode_form(self, query_client, mock_origin):
        response = query_client.get("/")

        assert response.status_code == 200
        assert 'action="/proxy"' in response.text
        assert 'name="url"' in response.text
        assert mock_origin.requests == []

    def test_path_mode_form(self, path_client):
        response = path_client.get("/")

        assert response.status_code == 200
        assert "encodeURIComponent" in response.text
