"""Shared fixtures for the listener tests."""

import os
from collections.abc import Generator
from dataclasses import dataclass

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags, set_span_in_context
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from lambda_otel_listener.constants import EnvVars

UPSTREAM_TRACE_ID = 0x12345678901234567890123456789012
UPSTREAM_SPAN_ID = 0x1234567890123456


@dataclass
class MockLambdaContext:
    """Mock AWS Lambda context."""

    invoked_function_arn: str = "arn:aws:lambda:us-west-2:123456789012:function:test-function"
    aws_request_id: str = "test-request-id"
    function_name: str = "test-function"
    remaining_time_ms: int | None = 30000

    def get_remaining_time_in_millis(self) -> int | None:
        return self.remaining_time_ms


@dataclass
class BareLambdaContext:
    """Context without a remaining-time accessor."""

    aws_request_id: str = "bare-request-id"


@dataclass
class RaisingLambdaContext:
    """Context whose remaining-time accessor fails."""

    aws_request_id: str = "raising-request-id"

    def get_remaining_time_in_millis(self) -> int:
        raise RuntimeError("remaining time unavailable")


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Keep listener configuration variables out of every test."""
    names = (
        EnvVars.AUTO_PATCH_OUTBOUND,
        EnvVars.EARLY_TIMEOUT_THRESHOLD_MS,
        EnvVars.OTEL_PROPAGATORS,
        EnvVars.AWS_XRAY_TRACE_ID,
    )
    saved = {name: os.environ.pop(name) for name in names if name in os.environ}
    yield
    for name in names:
        os.environ.pop(name, None)
    os.environ.update(saved)


@pytest.fixture
def exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def provider(exporter: InMemorySpanExporter) -> TracerProvider:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider


@pytest.fixture
def tracer(provider: TracerProvider):
    return provider.get_tracer("test")


@pytest.fixture
def propagator() -> TraceContextTextMapPropagator:
    return TraceContextTextMapPropagator()


@pytest.fixture
def mock_context() -> MockLambdaContext:
    return MockLambdaContext()


@pytest.fixture
def upstream_headers() -> dict[str, str]:
    """W3C headers of an upstream span."""
    parent = NonRecordingSpan(
        SpanContext(
            trace_id=UPSTREAM_TRACE_ID,
            span_id=UPSTREAM_SPAN_ID,
            is_remote=True,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )
    )
    carrier: dict[str, str] = {}
    TraceContextTextMapPropagator().inject(carrier, set_span_in_context(parent))
    return carrier


@pytest.fixture
def traced_event(upstream_headers: dict[str, str]) -> dict:
    return {"httpMethod": "GET", "headers": {"Accept": "*/*", **upstream_headers}}
