import logging
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from webproxy.proxy.errors import MalformedUpstreamURL
from webproxy.proxy.models import RewriteContext
from webproxy.proxy.url_resolver import encode_proxy_url

logger = logging.getLogger("uvicorn.error")

REDIRECT_STATUSES = {301, 302, 303, 307, 308}


def is_redirect(status_code: int) -> bool:
    return status_code in REDIRECT_STATUSES


def resolve_reference(reference: str, base_url: str) -> str:
    """
    Resolve a URL reference against ``base_url``.

    Raises MalformedUpstreamURL when the reference cannot be parsed.
    """
    try:
        resolved = urljoin(base_url, reference)
        # urljoin is lenient; splitting validates ports and IPv6 brackets
        urlsplit(resolved).port
    except ValueError as e:
        raise MalformedUpstreamURL(f"Cannot resolve {reference!r}: {e}") from e
    return resolved


def rewrite_location_header(location: Optional[str], context: RewriteContext) -> Optional[str]:
    """
    Rewrite a redirect Location into a proxy URL.

    Relative locations are resolved against the fetched target URL first.
    An empty or unparseable location is returned unchanged.
    """
    if not location:
        return location
    try:
        absolute = resolve_reference(location.strip(), context.target_url)
    except MalformedUpstreamURL as e:
        logger.warning(f"[Proxy] Leaving Location unchanged: {e}")
        return location
    return encode_proxy_url(absolute, context)


def rewrite_redirect_headers(
    headers: List[Tuple[str, str]], context: RewriteContext
) -> List[Tuple[str, str]]:
    """Return ``headers`` with every Location value rewritten in place."""
    return [
        (name, rewrite_location_header(value, context))
        if name.lower() == "location"
        else (name, value)
        for name, value in headers
    ]
