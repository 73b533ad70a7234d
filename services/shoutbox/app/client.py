from __future__ import annotations

from typing import Any

import httpx

from .http import async_http_client
from .models import Message
from .retry import net_retry


class ShoutboxError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code


_STATUS_MESSAGES = {
    401: "invalid api key",
    413: "message too large",
    422: "malformed message",
    429: "author quota exceeded",
}


def _check(resp: httpx.Response) -> None:
    # Rejections are final; the caller decides whether to try again later
    if resp.status_code >= 400:
        raise ShoutboxError(resp.status_code, _STATUS_MESSAGES.get(resp.status_code, resp.text))


class ShoutboxClient:
    """Async client for a shoutbox service.

    Transport failures are retried with backoff; HTTP error statuses are not.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = async_http_client(
            base_url,
            headers={"x-api-key": api_key},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ShoutboxClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @net_retry(retry_on=(httpx.TransportError,))
    async def health(self) -> str:
        r = await self._client.get("/health")
        _check(r)
        return r.text

    # Only failures before the request left the client; a read error may
    # arrive after the server already stored the message.
    @net_retry(retry_on=(httpx.ConnectError, httpx.ConnectTimeout))
    async def post(self, message: str, author: str) -> None:
        body = Message(message=message, author=author).model_dump()
        r = await self._client.post("/message", json=body)
        _check(r)

    @net_retry(retry_on=(httpx.TransportError,))
    async def messages(self) -> list[Message]:
        r = await self._client.get("/message")
        _check(r)
        return [Message.model_validate(row) for row in r.json()]
