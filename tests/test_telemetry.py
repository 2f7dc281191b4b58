"""Tests for the telemetry module."""

import os
from unittest.mock import patch

import pytest
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.trace import Tracer

from lambda_otel_listener.telemetry import get_lambda_resource, init_telemetry


@pytest.fixture
def mock_env():
    """Fixture to provide a clean environment for each test."""
    from opentelemetry import trace
    from opentelemetry.util._once import Once

    # Clear any existing tracer provider
    trace._TRACER_PROVIDER = None
    trace._TRACER_PROVIDER_SET_ONCE = Once()
    with (
        patch.dict(os.environ, {}, clear=True),
        patch("lambda_otel_listener.telemetry.setup_propagator") as mock_setup_propagator,
    ):
        yield mock_setup_propagator


class RecordingProcessor(SpanProcessor):
    def __init__(self):
        self.started = []

    def on_start(self, span, parent_context=None):
        self.started.append(span.name)

    def on_end(self, span):
        pass

    def shutdown(self):
        pass

    def force_flush(self, timeout_millis=30000):
        return True


def test_get_lambda_resource_basic(mock_env):
    """Test basic Lambda resource creation with minimal environment."""
    os.environ.update(
        {
            "AWS_LAMBDA_FUNCTION_NAME": "test-function",
            "AWS_REGION": "us-west-2",
        }
    )

    attrs = get_lambda_resource().attributes

    assert attrs["service.name"] == "test-function"
    assert attrs["faas.name"] == "test-function"
    assert attrs["cloud.provider"] == "aws"
    assert attrs["cloud.region"] == "us-west-2"


def test_get_lambda_resource_with_otel_service_name(mock_env):
    """Test that OTEL_SERVICE_NAME overrides AWS_LAMBDA_FUNCTION_NAME for service.name."""
    os.environ.update(
        {
            "AWS_LAMBDA_FUNCTION_NAME": "test-function",
            "OTEL_SERVICE_NAME": "custom-service",
        }
    )

    attrs = get_lambda_resource().attributes
    assert attrs["service.name"] == "custom-service"
    assert attrs["faas.name"] == "test-function"


def test_get_lambda_resource_with_url_encoded_attributes(mock_env):
    """Test that URL-encoded values in OTEL_RESOURCE_ATTRIBUTES are decoded."""
    os.environ.update(
        {
            "AWS_LAMBDA_FUNCTION_NAME": "test-function",
            "OTEL_RESOURCE_ATTRIBUTES": "deployment.env=prod%20env,cloud.provider=gcp",
        }
    )

    attrs = get_lambda_resource().attributes

    assert attrs["deployment.env"] == "prod env"
    # Lambda attributes are not overridden
    assert attrs["cloud.provider"] == "aws"


def test_get_lambda_resource_no_service_name(mock_env):
    """Test that service.name defaults to 'unknown_service' when no name is provided."""
    attrs = get_lambda_resource().attributes

    assert attrs["service.name"] == "unknown_service"
    assert "faas.name" not in attrs
    assert "cloud.region" not in attrs


def test_init_telemetry_basic(mock_env):
    """Test basic telemetry initialization."""
    os.environ["AWS_LAMBDA_FUNCTION_NAME"] = "test-function"

    tracer, provider = init_telemetry("test-service", span_processors=[])

    assert isinstance(tracer, Tracer)
    assert isinstance(provider, TracerProvider)
    assert provider.resource.attributes["service.name"] == "test-function"
    mock_env.assert_called_once()


def test_init_telemetry_with_custom_resource(mock_env):
    custom_resource = Resource.create({"custom.attr": "value"})

    _, provider = init_telemetry("test-service", resource=custom_resource, span_processors=[])

    assert provider.resource.attributes["custom.attr"] == "value"


def test_init_telemetry_with_custom_processor(mock_env):
    """Test that spans from the returned tracer reach the given processors."""
    processor = RecordingProcessor()
    tracer, _ = init_telemetry("test-service", span_processors=[processor])

    with tracer.start_as_current_span("test"):
        pass

    assert processor.started == ["test"]
