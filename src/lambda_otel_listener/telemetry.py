"""Tracer provider setup for the Lambda environment."""

import os
from collections.abc import Sequence
from urllib.parse import unquote

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .constants import Defaults, EnvVars
from .logger import create_logger
from .propagation import setup_propagator

logger = create_logger("telemetry")


def _parse_resource_attributes(value: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for item in value.split(","):
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            logger.warn("Ignoring malformed resource attribute %r", item)
            continue
        attributes[key.strip()] = unquote(raw.strip())
    return attributes


def get_lambda_resource() -> Resource:
    """Create a Resource describing the current Lambda function.

    ``service.name`` comes from ``OTEL_SERVICE_NAME``, then
    ``AWS_LAMBDA_FUNCTION_NAME``, then ``unknown_service``. Attributes in
    ``OTEL_RESOURCE_ATTRIBUTES`` are URL-decoded and merged in; the Lambda
    attributes always win.
    """
    function_name = os.environ.get(EnvVars.AWS_LAMBDA_FUNCTION_NAME)
    attributes: dict[str, str] = {}

    if extra := os.environ.get(EnvVars.RESOURCE_ATTRIBUTES):
        attributes.update(_parse_resource_attributes(extra))

    attributes["cloud.provider"] = "aws"
    if region := os.environ.get(EnvVars.AWS_REGION):
        attributes["cloud.region"] = region
    if function_name:
        attributes["faas.name"] = function_name
    attributes["service.name"] = (
        os.environ.get(EnvVars.SERVICE_NAME) or function_name or Defaults.SERVICE_NAME
    )

    return Resource.create(attributes)


def init_telemetry(
    name: str,
    resource: Resource | None = None,
    span_processors: Sequence[SpanProcessor] | None = None,
) -> tuple[trace.Tracer, TracerProvider]:
    """Initialize tracing for a Lambda function.

    Args:
        name: Instrumentation scope name of the returned tracer.
        resource: Resource for the provider; defaults to ``get_lambda_resource()``.
        span_processors: Processors to register; defaults to a batch
            processor exporting over OTLP/HTTP.

    Returns:
        The tracer and the provider it belongs to. The provider is also
        registered as the global tracer provider.
    """
    provider = TracerProvider(resource=resource or get_lambda_resource())

    if span_processors is None:
        span_processors = [BatchSpanProcessor(OTLPSpanExporter())]
    for processor in span_processors:
        provider.add_span_processor(processor)

    trace.set_tracer_provider(provider)
    setup_propagator()

    return provider.get_tracer(name), provider
