"""
Resolution of the target URL carried by an inbound proxy URL, and the inverse
encoding used when writing proxy URLs into redirects and HTML.

Both addressing modes decode the encoded target exactly once. In path mode the
raw (still percent-encoded) request path must be passed in, so that the front
door never decodes it before we do.
"""

import re
from typing import List, Optional, Set, Tuple
from urllib.parse import quote, unquote, unquote_plus, urlsplit

from webproxy.proxy.config import ProxyConfig
from webproxy.proxy.errors import MissingTarget
from webproxy.proxy.models import Addressing, RewriteContext

_SCHEME_SEPARATOR = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_TRUTHY = {"1", "true", "yes", "on", ""}


def ensure_scheme(url: str, default_scheme: str) -> str:
    """Prefix ``default_scheme`` when the URL carries no ``scheme://`` at all."""
    if url.startswith("http://") or url.startswith("https://"):
        return url
    if "://" not in url:
        return f"{default_scheme.rstrip(':')}://{url}"
    # Some other scheme; the fetcher decides whether it is supported
    return url


def _split_query(query_string: str) -> List[Tuple[str, str]]:
    """Split a raw query string into (decoded key, raw pair) tuples."""
    pairs = []
    for raw_pair in query_string.split("&"):
        if not raw_pair:
            continue
        raw_key = raw_pair.split("=", 1)[0]
        pairs.append((unquote_plus(raw_key), raw_pair))
    return pairs


def _query_value(query_string: str, name: str) -> Optional[str]:
    for key, raw_pair in _split_query(query_string):
        if key == name:
            _, _, raw_value = raw_pair.partition("=")
            return unquote_plus(raw_value)
    return None


def _control_params(config: ProxyConfig) -> Set[str]:
    params = set()
    if config.addressing == Addressing.QUERY:
        params.add(config.target_param)
    if config.debug_param:
        params.add(config.debug_param)
    return params


def append_query(url: str, extra_query: str) -> str:
    """Append raw query pairs, keeping any fragment at the end."""
    if not extra_query:
        return url
    base, hashmark, fragment = url.partition("#")
    if "?" not in base:
        separator = "?"
    elif base.endswith("?") or base.endswith("&"):
        separator = ""
    else:
        separator = "&"
    return f"{base}{separator}{extra_query}{hashmark}{fragment}"


def forwarded_query(config: ProxyConfig, query_string: str) -> str:
    """Inbound query pairs that belong to the origin, raw as received."""
    if not config.forward_query or not query_string:
        return ""
    control = _control_params(config)
    return "&".join(
        raw_pair
        for key, raw_pair in _split_query(query_string)
        if key not in control
    )


def is_debug_request(config: ProxyConfig, query_string: str) -> bool:
    if not config.debug_param or not query_string:
        return False
    value = _query_value(query_string, config.debug_param)
    return value is not None and value.lower() in _TRUTHY


def _encoded_target(config: ProxyConfig, raw_path: str, query_string: str) -> str:
    if config.addressing == Addressing.QUERY:
        return _query_value(query_string, config.target_param) or ""

    prefix = config.path_prefix
    if prefix and (raw_path == prefix or raw_path.startswith(prefix + "/")):
        raw_path = raw_path[len(prefix):]
    return unquote(raw_path.lstrip("/"))


def resolve_target(
    config: ProxyConfig, scheme: str, raw_path: str, query_string: str = ""
) -> str:
    """
    Produce the absolute target URL encoded in an inbound proxy URL.

    Raises MissingTarget when no target is present.
    """
    target = _encoded_target(config, raw_path, query_string).strip()
    if not target:
        if config.addressing == Addressing.QUERY:
            raise MissingTarget(f"Query parameter '{config.target_param}' is missing.")
        raise MissingTarget("Target URL is missing.")

    target = ensure_scheme(target, scheme)
    parts = urlsplit(target)
    if not _SCHEME_SEPARATOR.match(target) or not parts.netloc:
        raise MissingTarget(f"Invalid target URL: {target}")

    return append_query(target, forwarded_query(config, query_string))


def encode_proxy_url(target_url: str, context: RewriteContext) -> str:
    """Encode an absolute target URL into the proxy's own URL form."""
    encoded = quote(target_url, safe="")
    if context.addressing == Addressing.PATH:
        return f"{context.public_url}{context.path_prefix}/{encoded}"
    return f"{context.public_url}{context.query_route}?{context.target_param}={encoded}"


def decode_proxy_url(proxy_url: str, config: ProxyConfig, scheme: str = "https") -> str:
    """Resolve a proxy URL produced by ``encode_proxy_url`` back to its target."""
    if config.public_url and proxy_url.startswith(config.public_url):
        proxy_url = proxy_url[len(config.public_url):]
    parts = urlsplit(proxy_url)
    return resolve_target(config, scheme, parts.path, parts.query)
