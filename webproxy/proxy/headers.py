"""
Header policies for both directions of the proxy.

Each policy is a pure function of a header name; the builders apply it to an
ordered header list so repeated headers keep their order.
"""

from enum import Enum
from typing import Any, Dict, List, Tuple

from webproxy.proxy.config import ProxyConfig
from webproxy.proxy.models import HeaderMode

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Prefixes of platform and proxy headers that would identify the proxy to the origin
PROXY_IDENTIFYING_PREFIXES = ("cf-", "x-forwarded-")

# httpx recomputes Content-Length and advertises only the encodings it can decode
OUTBOUND_RECOMPUTED = {"host", "content-length", "accept-encoding"}

# Never forwarded: cookies belong to the proxy's origin, not the target's
OUTBOUND_STRIPPED = {"cookie"}

ALLOWLIST_HEADERS = ("User-Agent", "Accept", "Accept-Language")

# Would leak origin cookies into the proxy origin or block the rewritten markup
INBOUND_STRIPPED = {"set-cookie", "content-security-policy"}

# Only valid for the body exactly as the origin sent it
INBOUND_BODY_BOUND = {"content-length", "content-encoding"}

NO_CACHE_HEADERS = {"Cache-Control": "no-store"}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, PATCH, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}

_OVERRIDDEN = {name.lower() for name in (*NO_CACHE_HEADERS, *CORS_HEADERS)}


class HeaderAction(str, Enum):
    KEEP = "keep"
    DROP = "drop"
    OVERRIDE = "override"


def header_items(headers: Any) -> List[Tuple[str, str]]:
    """Ordered (name, value) pairs of a header multimap, repeats included."""
    if headers is None:
        return []
    if hasattr(headers, "multi_items"):
        return list(headers.multi_items())
    if hasattr(headers, "items"):
        return list(headers.items())
    return list(headers)


def outbound_action(name: str, mode: HeaderMode) -> HeaderAction:
    name_lower = name.lower()
    if mode == HeaderMode.ALLOWLIST:
        allowed = {h.lower() for h in ALLOWLIST_HEADERS}
        return HeaderAction.OVERRIDE if name_lower in allowed else HeaderAction.DROP

    if name_lower.startswith(PROXY_IDENTIFYING_PREFIXES):
        return HeaderAction.DROP
    if (
        name_lower in HOP_BY_HOP_HEADERS
        or name_lower in OUTBOUND_RECOMPUTED
        or name_lower in OUTBOUND_STRIPPED
    ):
        return HeaderAction.DROP
    return HeaderAction.KEEP


def inbound_action(name: str, body_rewritten: bool = False) -> HeaderAction:
    name_lower = name.lower()
    if name_lower in INBOUND_STRIPPED or name_lower in HOP_BY_HOP_HEADERS:
        return HeaderAction.DROP
    if body_rewritten and name_lower in INBOUND_BODY_BOUND:
        return HeaderAction.DROP
    if name_lower in _OVERRIDDEN:
        return HeaderAction.OVERRIDE
    return HeaderAction.KEEP


def prepare_outbound_headers(headers: Any, config: ProxyConfig) -> List[Tuple[str, str]]:
    """
    Build the headers sent to the origin.

    In denylist mode the inbound headers are copied minus proxy-identifying,
    hop-by-hop, Host and Cookie headers. In allowlist mode only User-Agent,
    Accept and Accept-Language are sent, falling back to fixed defaults.
    """
    items = header_items(headers)

    if config.header_mode == HeaderMode.ALLOWLIST:
        inbound: Dict[str, str] = {}
        for name, value in items:
            if outbound_action(name, HeaderMode.ALLOWLIST) == HeaderAction.OVERRIDE:
                inbound.setdefault(name.lower(), value)
        defaults = {
            "user-agent": config.default_user_agent,
            "accept": config.default_accept,
            "accept-language": config.default_accept_language,
        }
        return [
            (name, inbound.get(name.lower()) or defaults[name.lower()])
            for name in ALLOWLIST_HEADERS
        ]

    return [
        (name, value)
        for name, value in items
        if outbound_action(name, HeaderMode.DENYLIST) == HeaderAction.KEEP
    ]


def prepare_inbound_headers(
    headers: Any, body_rewritten: bool = False
) -> List[Tuple[str, str]]:
    """
    Build the headers returned to the client from the origin's headers.

    Set-Cookie and Content-Security-Policy are always dropped; no-cache and
    permissive CORS headers are always set. When the body was rewritten or
    decoded, Content-Length and Content-Encoding are dropped so the server
    recomputes the length.
    """
    result = [
        (name, value)
        for name, value in header_items(headers)
        if inbound_action(name, body_rewritten) == HeaderAction.KEEP
    ]
    result.extend(NO_CACHE_HEADERS.items())
    result.extend(CORS_HEADERS.items())
    return result
