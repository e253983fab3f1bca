from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Optional, Sequence, Tuple, Union

import httpx
from pydantic import BaseModel


class Addressing(str, Enum):
    """Where the target URL is carried on the proxy's own URL."""

    PATH = "path"
    QUERY = "query"


class HeaderMode(str, Enum):
    DENYLIST = "denylist"
    ALLOWLIST = "allowlist"


class BodyMode(str, Enum):
    """How non-HTML bodies travel back to the client."""

    STREAM = "stream"
    BUFFER = "buffer"


RequestBody = Union[bytes, AsyncIterator[bytes], None]
HeaderItems = Sequence[Tuple[str, str]]


@dataclass(frozen=True)
class ProxyRequest:
    method: str
    target_url: str
    headers: HeaderItems = ()
    body: RequestBody = None


@dataclass(frozen=True)
class RewriteContext:
    """Base URL for relative resolution plus the proxy's own URL template."""

    target_url: str
    addressing: Addressing
    path_prefix: str = ""
    query_route: str = "/proxy"
    target_param: str = "url"
    public_url: str = ""


@dataclass
class OriginResponse:
    """
    The raw answer of the origin for one request.

    The body has not been read yet: callers either stream it with
    ``aiter_raw`` or buffer it with ``aread``, then ``aclose`` releases the
    upstream connection together with the per-request client.
    """

    status_code: int
    status_text: str
    headers: httpx.Headers
    url: str
    response: httpx.Response = field(repr=False)
    client: Optional[httpx.AsyncClient] = field(default=None, repr=False)

    @classmethod
    def from_httpx(
        cls, response: httpx.Response, client: Optional[httpx.AsyncClient] = None
    ) -> "OriginResponse":
        return cls(
            status_code=response.status_code,
            status_text=response.reason_phrase,
            headers=response.headers,
            url=str(response.request.url),
            response=response,
            client=client,
        )

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def charset(self) -> Optional[str]:
        return self.response.charset_encoding

    async def aiter_raw(self) -> AsyncIterator[bytes]:
        async for chunk in self.response.aiter_raw():
            yield chunk

    async def aread(self) -> bytes:
        """Buffer the whole body, undoing any Content-Encoding."""
        return await self.response.aread()

    async def aclose(self) -> None:
        await self.response.aclose()
        if self.client is not None:
            await self.client.aclose()


class ErrorPayload(BaseModel):
    error: str
