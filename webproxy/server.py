from typing import Sequence

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter, SpanExportResult
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from webproxy.proxy.route import build_router
from webproxy.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

# ASGI instrumentation emits one span per body message; relayed downloads
# would otherwise export one span per chunk
BODY_EVENT_TYPE = "http.response.body"


def _is_body_chunk(span: ReadableSpan) -> bool:
    return bool(span.attributes) and span.attributes.get("asgi.event.type") == BODY_EVENT_TYPE


class FilteringSpanExporter(SpanExporter):
    """Forwards every span except the per-chunk body spans of streamed responses."""

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        kept = [span for span in spans if not _is_body_chunk(span)]
        if not kept:
            return SpanExportResult.SUCCESS
        return self.exporter.export(kept)

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


def configure_tracing(app: FastAPI) -> None:
    provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    if OTLP_ENDPOINT:
        exporter = OTLPSpanExporter(endpoint=OTLP_ENDPOINT, headers=OTLP_HEADERS or None)
        provider.add_span_processor(BatchSpanProcessor(FilteringSpanExporter(exporter)))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app, excluded_urls="metrics")


app = FastAPI(title=SERVICE_NAME, docs_url=None, redoc_url=None)
Instrumentator().instrument(app).expose(app, include_in_schema=False)
configure_tracing(app)

Info("proxy_app_info", "Proxy service info").info({"app_name": SERVICE_NAME})

app.include_router(build_router())
