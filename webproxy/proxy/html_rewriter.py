"""
Rewriting of URL-bearing attributes in HTML documents.

Matching is regex based and therefore approximate: attributes inside comments
or scripts are rewritten like any other, URLs built by JavaScript or set
through ``<base href>`` and ``srcset`` are not, and badly broken markup may be
skipped. The matcher sits behind ``ReferenceMatcher`` so it can be replaced by
a real HTML parser without touching the pipeline.
"""

import html
import logging
import re
from abc import ABC, abstractmethod
from typing import Callable, Optional
from urllib.parse import urlsplit

from webproxy.proxy.errors import MalformedUpstreamURL, RewriteFailure
from webproxy.proxy.models import RewriteContext
from webproxy.proxy.redirects import resolve_reference
from webproxy.proxy.url_resolver import encode_proxy_url

logger = logging.getLogger("uvicorn.error")

URL_ATTRIBUTES = ("href", "src", "action", "data-src")

# Values left exactly as the origin wrote them
SKIPPED_PREFIXES = ("data:", "#", "//")

FETCHABLE_SCHEMES = {"http", "https"}

ValueRewriter = Callable[[str], Optional[str]]


class ReferenceMatcher(ABC):
    """Finds URL-bearing attribute values in a document and replaces them."""

    @abstractmethod
    def rewrite(self, text: str, rewrite_value: ValueRewriter) -> str:
        """
        Call ``rewrite_value`` with every attribute value found in ``text``.

        A None result keeps the value untouched.
        """


class RegexReferenceMatcher(ReferenceMatcher):
    def __init__(self, attributes=URL_ATTRIBUTES):
        names = "|".join(
            re.escape(a) for a in sorted(attributes, key=len, reverse=True)
        )
        self._pattern = re.compile(
            rf"(?<![\w-])(?P<attr>{names})(?P<eq>\s*=\s*)"
            r"(?P<quote>[\"'])(?P<value>.*?)(?P=quote)",
            re.IGNORECASE | re.DOTALL,
        )

    def rewrite(self, text: str, rewrite_value: ValueRewriter) -> str:
        def _replace(match: re.Match) -> str:
            new_value = rewrite_value(match.group("value"))
            if new_value is None:
                return match.group(0)
            quote = match.group("quote")
            return f"{match.group('attr')}{match.group('eq')}{quote}{new_value}{quote}"

        return self._pattern.sub(_replace, text)


def rewrite_reference(value: str, context: RewriteContext) -> Optional[str]:
    """Proxy URL for one attribute value, or None to leave it unchanged."""
    stripped = value.strip()
    if stripped.lower().startswith(SKIPPED_PREFIXES):
        return None

    try:
        absolute = resolve_reference(html.unescape(stripped), context.target_url)
    except MalformedUpstreamURL as e:
        logger.debug(f"[Proxy] Leaving attribute unchanged: {e}")
        return None

    # javascript:, mailto:, tel: and friends cannot be fetched through the proxy
    if urlsplit(absolute).scheme.lower() not in FETCHABLE_SCHEMES:
        return None

    # Percent-encoded proxy URLs contain no characters that need HTML escaping
    return encode_proxy_url(absolute, context)


class HtmlReferenceRewriter:
    def __init__(self, matcher: Optional[ReferenceMatcher] = None):
        self.matcher = matcher or RegexReferenceMatcher()

    def rewrite_text(self, text: str, context: RewriteContext) -> str:
        return self.matcher.rewrite(text, lambda v: rewrite_reference(v, context))

    def rewrite_bytes(
        self, body: bytes, context: RewriteContext, charset: Optional[str] = None
    ) -> bytes:
        """
        Decode, rewrite and re-encode an HTML body.

        Raises RewriteFailure when the body does not decode with its declared
        charset (UTF-8 when none is declared).
        """
        encoding = charset or "utf-8"
        try:
            text = body.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise RewriteFailure(f"Cannot decode HTML body as {encoding}: {e}") from e
        return self.rewrite_text(text, context).encode(encoding)


def is_html(content_type: str) -> bool:
    return "text/html" in (content_type or "").lower()
