"""OpenTelemetry tracing for the API, its database and outbound model calls."""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes

from autocrm.core.config import settings

logger = logging.getLogger(__name__)


def otlp_headers(value: str) -> dict[str, str]:
    """Parse `k1=v1,k2=v2`; malformed pairs are skipped."""
    pairs = (item.split("=", 1) for item in value.split(",") if "=" in item)
    return {key.strip(): val.strip() for key, val in pairs if key.strip()}


def build_tracer_provider() -> TracerProvider:
    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.OTEL_SERVICE_NAME or "autocrm-api",
            ResourceAttributes.SERVICE_VERSION: settings.VERSION,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: settings.ENV,
        }
    )
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.OTEL_SAMPLE_RATE)),
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
                headers=otlp_headers(settings.OTEL_EXPORTER_OTLP_HEADERS),
            )
        )
    )
    return provider


def configure_telemetry(app, engine) -> bool:
    """Install tracing when OTEL_ENABLED and an endpoint are set. Returns True if installed."""
    if not (settings.OTEL_ENABLED and settings.OTEL_EXPORTER_OTLP_ENDPOINT):
        return False

    try:
        provider = build_tracer_provider()
        trace.set_tracer_provider(provider)
        FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
        SQLAlchemyInstrumentor().instrument(engine=engine, tracer_provider=provider)
        # Chat model and LangSmith calls both go through httpx
        HTTPXClientInstrumentor().instrument(tracer_provider=provider)
    except Exception:
        logger.exception("Failed to initialize OpenTelemetry tracing")
        return False

    logger.info(f"OpenTelemetry tracing enabled ({settings.OTEL_EXPORTER_OTLP_ENDPOINT})")
    return True
