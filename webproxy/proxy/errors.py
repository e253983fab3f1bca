"""
Error taxonomy of the rewriting pipeline.

``MissingTarget`` and ``UpstreamUnreachable`` terminate the request with an
explicit status. ``MalformedUpstreamURL`` and ``RewriteFailure`` never reach
the client: the rewriters catch them and fall back to passing the original
value through.
"""

from typing import Optional


class ProxyError(Exception):
    """Base class for failures that map to a proxy response status."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MissingTarget(ProxyError):
    status_code = 400


class UpstreamUnreachable(ProxyError):
    """The origin could not be reached (DNS, connect, TLS, timeout)."""

    status_code = 502


class MalformedUpstreamURL(ProxyError):
    """A Location header or HTML attribute could not be parsed as a URL."""


class RewriteFailure(ProxyError):
    """The body could not be decoded for rewriting."""
