"""
The request/response rewriting pipeline.

inbound request -> target resolution -> outbound headers -> origin fetch ->
redirect rewrite | HTML rewrite | passthrough -> inbound headers -> response.

Passthrough and redirect bodies are streamed chunk by chunk so large payloads
never sit in memory. HTML is buffered completely: offsets shift while
attributes are rewritten and a match may straddle chunk boundaries, so the
proxy trades memory and time-to-first-byte for correctness on those
responses. ``body_mode=buffer`` buffers every body.
"""

import logging
from typing import AsyncIterator, List, Optional, Tuple

import anyio
import httpx
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from opentelemetry import trace

from webproxy.proxy.config import ProxyConfig
from webproxy.proxy.errors import MissingTarget, ProxyError, RewriteFailure
from webproxy.proxy.fetcher import fetch_origin
from webproxy.proxy.headers import (
    CORS_HEADERS,
    NO_CACHE_HEADERS,
    HeaderAction,
    inbound_action,
    prepare_inbound_headers,
    prepare_outbound_headers,
)
from webproxy.proxy.html_rewriter import HtmlReferenceRewriter, is_html
from webproxy.proxy.models import (
    BodyMode,
    ErrorPayload,
    OriginResponse,
    ProxyRequest,
    RequestBody,
    RewriteContext,
)
from webproxy.proxy.redirects import is_redirect, rewrite_redirect_headers
from webproxy.proxy.url_resolver import is_debug_request, resolve_target
from webproxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from webproxy.utils.traced_requests import traced_request

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

ERROR_MEDIA_TYPE = "application/json; charset=utf-8"


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    """The single error payload of the proxy: ``{"error": message}`` as JSON."""
    return JSONResponse(
        ErrorPayload(error=message).model_dump(),
        status_code=status_code,
        media_type=ERROR_MEDIA_TYPE,
        headers={**NO_CACHE_HEADERS, **CORS_HEADERS},
    )


def _with_headers(response: Response, headers: List[Tuple[str, str]]) -> Response:
    # Starlette computes Content-Length for buffered bodies itself
    has_length = "content-length" in response.headers
    for name, value in headers:
        if has_length and name.lower() == "content-length":
            continue
        response.headers.append(name, value)
    return response


STRIPPED_PLACEHOLDER = "<stripped by proxy>"


def _debug_value(name: str, value: str) -> str:
    # Headers the proxy drops stay out of the debug body as well
    if inbound_action(name) == HeaderAction.DROP:
        return STRIPPED_PLACEHOLDER
    return value


class OriginRelay:
    """
    Raw origin body as an async iterator that owns the upstream connection.

    The origin is released when the body runs out, when reading it fails, and
    on ``aclose``, whether or not iteration ever started.
    """

    def __init__(self, origin: OriginResponse):
        self.origin = origin
        self._chunks: Optional[AsyncIterator[bytes]] = None

    def __aiter__(self) -> "OriginRelay":
        return self

    async def __anext__(self) -> bytes:
        if self._chunks is None:
            self._chunks = self.origin.aiter_raw()
        try:
            return await self._chunks.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        # Shielded so a cancelled response task still closes the connection
        with anyio.CancelScope(shield=True):
            if self._chunks is not None:
                await self._chunks.aclose()
            await self.origin.aclose()


class RelayResponse(StreamingResponse):
    """Streams an OriginRelay and closes it however sending ends."""

    body_iterator: OriginRelay

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.body_iterator.aclose()


class ProxyPipeline:
    def __init__(
        self,
        config: Optional[ProxyConfig] = None,
        rewriter: Optional[HtmlReferenceRewriter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or ProxyConfig.from_env()
        self.rewriter = rewriter or HtmlReferenceRewriter()
        self.transport = transport

    def build_request(
        self,
        method: str,
        scheme: str,
        raw_path: str,
        query_string: str,
        headers,
        body: RequestBody = None,
    ) -> ProxyRequest:
        target_url = resolve_target(self.config, scheme, raw_path, query_string)
        return ProxyRequest(
            method=method.upper(),
            target_url=target_url,
            headers=tuple(headers.items()) if hasattr(headers, "items") else tuple(headers or ()),
            body=body,
        )

    async def handle(
        self,
        method: str,
        scheme: str,
        raw_path: str,
        query_string: str = "",
        headers=None,
        body: RequestBody = None,
    ) -> Response:
        """
        Run one inbound request through the pipeline.

        Never raises: MissingTarget becomes a 400 plain-text response, every
        other failure a JSON error payload.
        """
        try:
            proxy_request = self.build_request(
                method, scheme, raw_path, query_string, headers, body
            )
        except MissingTarget as e:
            logger.info(f"[Proxy] Rejected {method} {raw_path}: {e.message}")
            return PlainTextResponse(
                e.message,
                status_code=e.status_code,
                headers={**NO_CACHE_HEADERS, **CORS_HEADERS},
            )
        except Exception as e:
            log_exception_with_details(logger, "[Proxy]", e)
            return error_response(format_exception_message(e))

        debug = is_debug_request(self.config, query_string)
        with traced_request(
            tracer,
            operation="proxy_request",
            method=proxy_request.method,
            target_url=proxy_request.target_url,
            start_message=f"[Proxy] {proxy_request.method} {raw_path} -> {proxy_request.target_url}",
            extra_attrs={"proxy.debug": debug},
        ) as span:
            try:
                response = await self.forward(proxy_request, debug=debug)
                span.set_attribute("proxy.status_code", response.status_code)
                return response
            except ProxyError as e:
                span.set_attribute("proxy.error", e.message)
                return error_response(e.message, e.status_code)
            except Exception as e:
                log_exception_with_details(
                    logger, f"[Proxy] {proxy_request.target_url}", e
                )
                span.record_exception(e)
                span.set_attribute("proxy.error", str(e))
                return error_response(format_exception_message(e))

    async def forward(self, proxy_request: ProxyRequest, debug: bool = False) -> Response:
        context = self.config.rewrite_context(proxy_request.target_url)
        outbound_headers = prepare_outbound_headers(proxy_request.headers, self.config)

        origin = await fetch_origin(
            proxy_request,
            outbound_headers,
            timeout=self.config.timeout,
            transport=self.transport,
        )
        try:
            if debug:
                return await self._debug_response(proxy_request, outbound_headers, origin)
            if is_redirect(origin.status_code):
                return self._redirect_response(origin, context)
            if proxy_request.method != "HEAD" and is_html(origin.content_type):
                return await self._html_response(origin, context)
            if self.config.body_mode == BodyMode.BUFFER:
                return await self._buffered_response(origin)
            return self._streaming_response(origin, prepare_inbound_headers(origin.headers))
        except BaseException:
            await origin.aclose()
            raise

    def _streaming_response(
        self, origin: OriginResponse, headers: List[Tuple[str, str]]
    ) -> Response:
        response = RelayResponse(OriginRelay(origin), status_code=origin.status_code)
        return _with_headers(response, headers)

    def _redirect_response(self, origin: OriginResponse, context: RewriteContext) -> Response:
        headers = prepare_inbound_headers(origin.headers)
        if "location" not in origin.headers:
            logger.info(f"[Proxy] {origin.status_code} from {origin.url} without Location")
            return self._streaming_response(origin, headers)

        headers = rewrite_redirect_headers(headers, context)
        location = next(v for n, v in headers if n.lower() == "location")
        logger.debug(f"[Proxy] Redirect {origin.status_code} -> {location}")
        trace.get_current_span().set_attribute("proxy.rewritten_location", location)
        return self._streaming_response(origin, headers)

    async def _html_response(self, origin: OriginResponse, context: RewriteContext) -> Response:
        try:
            body = await origin.aread()
        finally:
            await origin.aclose()

        try:
            body = self.rewriter.rewrite_bytes(body, context, origin.charset)
        except RewriteFailure as e:
            logger.warning(f"[Proxy] Passing {origin.url} through unmodified: {e.message}")

        # aread() undid any Content-Encoding, so the length changes either way
        headers = prepare_inbound_headers(origin.headers, body_rewritten=True)
        return _with_headers(Response(body, status_code=origin.status_code), headers)

    async def _buffered_response(self, origin: OriginResponse) -> Response:
        try:
            body = b"".join([chunk async for chunk in origin.aiter_raw()])
        finally:
            await origin.aclose()
        headers = prepare_inbound_headers(origin.headers)
        return _with_headers(Response(body, status_code=origin.status_code), headers)

    async def _debug_response(
        self,
        proxy_request: ProxyRequest,
        outbound_headers: List[Tuple[str, str]],
        origin: OriginResponse,
    ) -> Response:
        await origin.aclose()
        lines = [
            f"Target URL: {proxy_request.target_url}",
            f"Method: {proxy_request.method}",
            "",
            "Outbound headers:",
            *(f"  {name}: {value}" for name, value in outbound_headers),
            "",
            f"Origin status: {origin.status_code} {origin.status_text}",
            "Origin headers:",
            *(f"  {name}: {_debug_value(name, value)}" for name, value in origin.headers.multi_items()),
        ]
        return PlainTextResponse(
            "\n".join(lines) + "\n",
            status_code=200,
            headers={**NO_CACHE_HEADERS, **CORS_HEADERS},
        )
