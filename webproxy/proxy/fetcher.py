import logging
from typing import List, Optional, Tuple

import httpx

from webproxy.proxy.errors import UpstreamUnreachable
from webproxy.proxy.models import OriginResponse, ProxyRequest

logger = logging.getLogger("uvicorn.error")

# Methods whose requests never carry a body to the origin
BODYLESS_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}


async def fetch_origin(
    proxy_request: ProxyRequest,
    headers: List[Tuple[str, str]],
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> OriginResponse:
    """
    Send the outbound request without following redirects.

    Redirects must reach the pipeline so it can rewrite them; following them
    here would hand the client the origin's final URL. The response body is
    left unread, the returned OriginResponse owns the client and must be
    closed by the caller. Transport failures raise UpstreamUnreachable and
    are never retried.
    """
    method = proxy_request.method.upper()
    content = None if method in BODYLESS_METHODS else proxy_request.body

    client = httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=False,
        transport=transport,
    )
    try:
        request = client.build_request(
            method=method,
            url=proxy_request.target_url,
            headers=headers,
            content=content,
        )
        response = await client.send(request, stream=True)
    except httpx.TimeoutException as e:
        await client.aclose()
        logger.error(f"[Proxy] Timeout for {proxy_request.target_url}: {e}")
        raise UpstreamUnreachable(f"Gateway timeout: {e}", status_code=504) from e
    except httpx.TransportError as e:
        await client.aclose()
        logger.error(f"[Proxy] Failed to reach {proxy_request.target_url}: {e}")
        raise UpstreamUnreachable(f"Bad gateway: {e}") from e
    except BaseException:
        await client.aclose()
        raise

    return OriginResponse.from_httpx(response, client)
