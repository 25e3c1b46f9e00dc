"""Tests for facebook_client.py: Graph API feed publishing."""

from urllib.parse import parse_qs

import httpx
import pytest

from sheet_poster.errors import PublishError, TransportError
from sheet_poster.facebook_client import FacebookClient


def _client(handler) -> FacebookClient:
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return FacebookClient("v21.0", http_client=http)


def _form(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class TestPublish:
    def test_creates_post(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "111_999"})

        result = _client(handler).publish("111", "tok", "Hello", background_id="preset")

        assert result.object_id == "111_999"
        assert result.url() == "https://www.facebook.com/111/posts/999"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://graph.facebook.com/v21.0/111/feed"
        assert request.headers["Authorization"] == "Bearer tok"
        assert _form(request) == {
            "message": "Hello",
            "published": "true",
            "text_format_preset_id": "preset",
            "access_token": "tok",
        }

    def test_omits_preset_when_absent(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(_form(request))
            return httpx.Response(200, json={"id": "1_2"})

        _client(handler).publish("1", "tok", "Hi", published=False)
        assert "text_format_preset_id" not in seen[0]
        assert seen[0]["published"] == "false"

    def test_remote_error_is_structured(self) -> None:
        error = {
            "message": "(#200) Requires pages_manage_posts permission",
            "type": "OAuthException",
            "code": 200,
            "fbtrace_id": "Abc",
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": error})

        with pytest.raises(PublishError) as excinfo:
            _client(handler).publish("1", "tok", "Hi")

        exc = excinfo.value
        assert exc.message == error["message"]
        assert exc.code == 200
        assert exc.error_type == "OAuthException"
        assert exc.fbtrace_id == "Abc"
        assert exc.detail == error
        assert exc.is_permission_error
        assert not exc.is_invalid_request

    def test_invalid_parameter_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"message": "Invalid parameter", "code": 100}})

        with pytest.raises(PublishError) as excinfo:
            _client(handler).publish("1", "tok", "Hi")
        assert excinfo.value.is_invalid_request
        assert not excinfo.value.is_permission_error

    def test_missing_id_is_an_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True})

        with pytest.raises(PublishError) as excinfo:
            _client(handler).publish("1", "tok", "Hi")
        assert excinfo.value.code is None

    def test_non_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad gateway</html>")

        with pytest.raises(PublishError, match="HTTP 502"):
            _client(handler).publish("1", "tok", "Hi")

    def test_transport_failure_is_not_retried(self) -> None:
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError):
            _client(handler).publish("1", "tok", "Hi")
        assert len(attempts) == 1


class TestShare:
    def test_shares_link_to_post(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "222_555"})

        result = _client(handler).share("222", "tok-b", "111_999")

        assert result.object_id == "222_555"
        assert str(seen[0].url) == "https://graph.facebook.com/v21.0/222/feed"
        assert _form(seen[0]) == {
            "link": "https://www.facebook.com/111/posts/999",
            "published": "true",
            "access_token": "tok-b",
        }

    def test_share_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"message": "bad link", "code": 100, "type": "GraphMethodException"}})

        with pytest.raises(PublishError, match="bad link"):
            _client(handler).share("222", "tok-b", "111_999")


def test_close_releases_owned_client() -> None:
    client = FacebookClient()
    client._client()
    client.close()
    assert client._http is None
