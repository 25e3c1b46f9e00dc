from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .errors import PublishError, TransportError
from .models import DEFAULT_POST_BASE_URL, PublishResult, post_url

GRAPH_BASE_URL = "https://graph.facebook.com"
DEFAULT_GRAPH_VERSION = "v21.0"

LOGGER = logging.getLogger(__name__)


def _error_from_body(body: Dict[str, Any], status_code: int) -> PublishError:
    error = body.get("error") or {}
    if not isinstance(error, dict):
        error = {"message": str(error)}
    return PublishError(
        error.get("message") or f"Facebook API error (HTTP {status_code})",
        code=error.get("code"),
        error_type=error.get("type"),
        subcode=error.get("error_subcode"),
        fbtrace_id=error.get("fbtrace_id"),
        detail=error,
    )


class FacebookClient:
    """Publishes feed posts through the Graph API.

    Every call is attempted once: repeating a create or share after an
    ambiguous failure can produce a duplicate post.
    """

    def __init__(
        self,
        graph_version: str = DEFAULT_GRAPH_VERSION,
        timeout: float = 30.0,
        *,
        post_base_url: str = DEFAULT_POST_BASE_URL,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._graph_version = graph_version
        self._timeout = timeout
        self._post_base_url = post_base_url
        self._http = http_client

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self._timeout)
        return self._http

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def __enter__(self) -> "FacebookClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Publishing --------------------------------------------------------------
    def publish(
        self,
        page_id: str,
        token: str,
        message: str,
        *,
        published: bool = True,
        background_id: Optional[str] = None,
    ) -> PublishResult:
        """Create a text post on ``page_id`` and return its ``<page>_<post>`` id."""

        payload: Dict[str, Any] = {
            "message": message,
            "published": "true" if published else "false",
        }
        if background_id:
            payload["text_format_preset_id"] = background_id
        return self._post_to_feed(page_id, token, payload)

    def share(
        self,
        page_id: str,
        token: str,
        post_id: str,
        *,
        published: bool = True,
    ) -> PublishResult:
        """Share an existing post on ``page_id`` as a link post."""

        payload = {
            "link": post_url(post_id, self._post_base_url),
            "published": "true" if published else "false",
        }
        return self._post_to_feed(page_id, token, payload)

    # Internal ----------------------------------------------------------------
    def _post_to_feed(self, page_id: str, token: str, payload: Dict[str, Any]) -> PublishResult:
        url = f"{GRAPH_BASE_URL}/{self._graph_version}/{page_id}/feed"
        data = dict(payload, access_token=token)
        headers = {"Authorization": f"Bearer {token}"}

        try:
            response = self._client().post(url, data=data, headers=headers)
        except httpx.TransportError as exc:
            LOGGER.warning("graph transport error url=%s detail=%s", url, exc)
            raise TransportError(str(exc) or type(exc).__name__) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            snippet = response.text[:300].replace("\n", " ")
            raise PublishError(
                f"Unexpected response from Facebook API (HTTP {response.status_code}): {snippet}"
            )

        if "error" in body or response.is_error:
            error = _error_from_body(body, response.status_code)
            LOGGER.debug("graph error page=%s code=%s type=%s", page_id, error.code, error.error_type)
            raise error

        object_id = body.get("id")
        if not object_id:
            raise PublishError(f"Facebook API response did not include an id: {body}")

        LOGGER.debug("Facebook API response: %s", body)
        return PublishResult(object_id=str(object_id), page_id=page_id)
