from typing import Callable, Dict, List, Optional

import httpx


def origin_response(
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
    body: bytes = b"",
) -> httpx.Response:
    """A response whose body is still unread, like one coming off the network."""
    return httpx.Response(
        status_code, headers=headers or {}, stream=httpx.ByteStream(body)
    )


class MockOrigin:
    """
    Stand-in for the origin server, plugged into the pipeline as an httpx
    transport. Records every outbound request it receives.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: origin_response(200, {"content-type": "text/plain"}, b"ok")
        )
        self._error: Optional[Exception] = None

    def reply(
        self,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
    ) -> "MockOrigin":
        self._responder = lambda request: origin_response(status_code, headers, body)
        return self

    def respond_with(self, responder: Callable[[httpx.Request], httpx.Response]) -> "MockOrigin":
        self._responder = responder
        return self

    def fail(self, error: Exception) -> "MockOrigin":
        self._error = error
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        return self._responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "origin received no request"
        return self.requests[-1]


class TrackedStream(httpx.AsyncByteStream):
    """Origin body that remembers whether the proxy closed it."""

    def __init__(self, *chunks: bytes):
        self.chunks = list(chunks)
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True
