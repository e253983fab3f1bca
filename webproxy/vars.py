import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "transparent-web-proxy")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

# Public-facing base URL used when writing proxy URLs; empty keeps them host-relative
PUBLIC_URL = os.environ.get("PUBLIC_URL", "").rstrip("/")

# Configuration axes of the rewriting pipeline
PROXY_ADDRESSING = os.environ.get("PROXY_ADDRESSING", "query").lower()
PROXY_HEADER_POLICY = os.environ.get("PROXY_HEADER_POLICY", "denylist").lower()
PROXY_BODY_MODE = os.environ.get("PROXY_BODY_MODE", "stream").lower()

# Some deployments forward the extra query parameters of the inbound request to
# the origin, others drop them. Forwarding is the default.
PROXY_FORWARD_QUERY = os.environ.get("PROXY_FORWARD_QUERY", "true").lower() == "true"

PROXY_PATH_PREFIX = os.environ.get("PROXY_PATH_PREFIX", "").rstrip("/")
PROXY_QUERY_ROUTE = os.environ.get("PROXY_QUERY_ROUTE", "/proxy").rstrip("/") or "/proxy"
PROXY_TARGET_PARAM = os.environ.get("PROXY_TARGET_PARAM", "url")
PROXY_DEBUG_PARAM = os.environ.get("PROXY_DEBUG_PARAM", "debug")

# No timeout unless the deployment sets one
_timeout = os.environ.get("PROXY_TIMEOUT", "")
PROXY_TIMEOUT = float(_timeout) if _timeout else None

PROXY_DEFAULT_USER_AGENT = os.environ.get(
    "PROXY_DEFAULT_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36",
)
PROXY_DEFAULT_ACCEPT = os.environ.get(
    "PROXY_DEFAULT_ACCEPT",
    "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
)
PROXY_DEFAULT_ACCEPT_LANGUAGE = os.environ.get(
    "PROXY_DEFAULT_ACCEPT_LANGUAGE", "en-US,en;q=0.9"
)

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))
