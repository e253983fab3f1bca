import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response

from webproxy.landing import render_landing_page
from webproxy.proxy.fetcher import BODYLESS_METHODS
from webproxy.proxy.models import Addressing
from webproxy.proxy.pipeline import ProxyPipeline

logger = logging.getLogger("uvicorn.error")

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def _raw_path(request: Request) -> str:
    """The request path exactly as received, still percent-encoded."""
    raw_path: Optional[bytes] = request.scope.get("raw_path")
    if raw_path is None:
        return quote(request.scope.get("path", ""), safe="/")
    return raw_path.split(b"?", 1)[0].decode("latin-1")


def _query_string(request: Request) -> str:
    return request.scope.get("query_string", b"").decode("latin-1")


def build_router(pipeline: Optional[ProxyPipeline] = None) -> APIRouter:
    """
    Front door of the proxy: hands method, URL, headers and body to the
    pipeline and returns whatever response it produces.
    """
    pipeline = pipeline or ProxyPipeline()
    config = pipeline.config
    router = APIRouter()

    @router.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def landing_page():
        return HTMLResponse(render_landing_page(config))

    async def proxy(request: Request) -> Response:
        method = request.method.upper()
        body = None if method in BODYLESS_METHODS else request.stream()
        return await pipeline.handle(
            method=method,
            scheme=request.url.scheme,
            raw_path=_raw_path(request),
            query_string=_query_string(request),
            headers=request.headers,
            body=body,
        )

    if config.addressing == Addressing.QUERY:
        router.add_api_route(config.query_route, proxy, methods=PROXY_METHODS)
        logger.info(f"Proxying on {config.query_route}?{config.target_param}=<target>")
    else:
        router.add_api_route(
            f"{config.path_prefix}/{{target:path}}", proxy, methods=PROXY_METHODS
        )
        logger.info(f"Proxying on {config.path_prefix or ''}/<target>")

    return router
