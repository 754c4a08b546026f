"""Tests for the remote store HTTP client."""

import json

import httpx
import pytest

from duospend.clients.remote import RemoteStoreClient
from duospend.exceptions import MalformedResponseError, SyncTransportError

URL = "https://script.example.com/exec"


def make_client(handler) -> RemoteStoreClient:
    """Create a client backed by a mock transport."""
    return RemoteStoreClient(URL, transport=httpx.MockTransport(handler))


class TestPost:
    """Test the sync POST."""

    def test_sends_json_as_plain_text(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "success"})

        with make_client(handler) as client:
            result = client.post({"action": "sync", "transactions": [], "budgets": {}})

        assert result == {"status": "success"}
        assert seen["method"] == "POST"
        assert seen["content_type"] == "text/plain;charset=utf-8"
        assert seen["body"]["action"] == "sync"

    def test_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "script.example.com":
                return httpx.Response(
                    302, headers={"Location": "https://content.example.com/result"}
                )
            return httpx.Response(200, json={"status": "success"})

        with make_client(handler) as client:
            assert client.post({"transactions": []}) == {"status": "success"}

    def test_http_error_status(self):
        with make_client(lambda request: httpx.Response(500, text="boom")) as client:
            with pytest.raises(SyncTransportError, match="500"):
                client.post({})

    def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(handler) as client:
            with pytest.raises(SyncTransportError, match="Could not reach"):
                client.post({})

    def test_timeout_is_a_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with make_client(handler) as client:
            with pytest.raises(SyncTransportError):
                client.post({})

    def test_non_json_body(self):
        with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(MalformedResponseError):
                client.post({})


class TestGet:
    """Test the legacy snapshot read."""

    def test_get(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            return httpx.Response(200, json={"transactions": [], "budgets": {}})

        with make_client(handler) as client:
            assert client.get() == {"transactions": [], "budgets": {}}

    def test_get_error_status(self):
        with make_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(SyncTransportError, match="404"):
                client.get()
