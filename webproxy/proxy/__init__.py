from .config import ProxyConfig
from .errors import (
    ProxyError,
    MissingTarget,
    UpstreamUnreachable,
    MalformedUpstreamURL,
    RewriteFailure,
)
from .models import Addressing, HeaderMode, BodyMode, ProxyRequest, RewriteContext
from .pipeline import ProxyPipeline

__all__ = [
    "ProxyConfig",
    "ProxyError",
    "MissingTarget",
    "UpstreamUnreachable",
    "MalformedUpstreamURL",
    "RewriteFailure",
    "Addressing",
    "HeaderMode",
    "BodyMode",
    "ProxyRequest",
    "RewriteContext",
    "ProxyPipeline",
]
