"""Propagators used to read and write trace headers.

``OTEL_PROPAGATORS`` selects the propagators as a comma separated list:

- ``tracecontext``: W3C Trace Context (``traceparent``/``tracestate``)
- ``xray``: AWS X-Ray (``X-Amzn-Trace-Id``)
- ``xray-lambda``: AWS X-Ray, falling back to the ``_X_AMZN_TRACE_ID``
  variable set by the Lambda runtime when the carrier holds no valid span
- ``none``: propagation disabled

Without the variable, ``tracecontext,xray-lambda`` is used.
"""

import os
from typing import Any

from opentelemetry.context import Context
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.aws import AwsXRayPropagator
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.textmap import (
    CarrierT,
    Getter,
    Setter,
    TextMapPropagator,
    default_getter,
    default_setter,
)
from opentelemetry.trace import get_current_span
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from .config import get_str_env
from .constants import Defaults, EnvVars
from .logger import create_logger

logger = create_logger("propagation")

XRAY_TRACE_HEADER = "X-Amzn-Trace-Id"


def has_valid_span(context: Context) -> bool:
    """Whether ``context`` carries a span with both a trace id and a span id."""
    span = get_current_span(context)
    if span is None:
        return False
    span_context = span.get_span_context()
    if span_context is None:
        return False
    return bool(span_context.trace_id and span_context.span_id)


class LambdaXRayPropagator(AwsXRayPropagator):
    """X-Ray propagator that also reads the trace id Lambda exposes in the environment."""

    def extract(
        self,
        carrier: CarrierT,
        context: Context | None = None,
        getter: Getter[CarrierT] = default_getter,
    ) -> Context:
        ctx = super().extract(carrier, context=context, getter=getter)
        if has_valid_span(ctx):
            return ctx

        trace_header = os.environ.get(EnvVars.AWS_XRAY_TRACE_ID)
        if not trace_header:
            return ctx

        logger.debug("No X-Ray context in carrier, using %s", EnvVars.AWS_XRAY_TRACE_ID)
        env_ctx = super().extract({XRAY_TRACE_HEADER: trace_header}, context=context)
        return env_ctx if has_valid_span(env_ctx) else ctx


class NoopPropagator(TextMapPropagator):
    """Propagator that neither extracts nor injects anything."""

    def extract(
        self,
        carrier: CarrierT,
        context: Context | None = None,
        getter: Getter[CarrierT] = default_getter,
    ) -> Context:
        return context if context is not None else Context()

    def inject(
        self,
        carrier: CarrierT,
        context: Context | None = None,
        setter: Setter[CarrierT] = default_setter,
    ) -> None:
        return None

    @property
    def fields(self) -> set[str]:
        return set()


def _propagator_for(name: str) -> TextMapPropagator | None:
    factories: dict[str, Any] = {
        "tracecontext": TraceContextTextMapPropagator,
        "xray": AwsXRayPropagator,
        "xray-lambda": LambdaXRayPropagator,
    }
    factory = factories.get(name)
    if factory is None:
        logger.warn("Unknown propagator %r, ignoring", name)
        return None
    return factory()


def create_propagator() -> TextMapPropagator:
    """Build the propagator described by ``OTEL_PROPAGATORS``."""
    value = get_str_env(EnvVars.OTEL_PROPAGATORS, default=Defaults.PROPAGATORS)
    names = [name.strip().lower() for name in value.split(",") if name.strip()]

    if "none" in names:
        logger.debug("Propagation disabled via %s", EnvVars.OTEL_PROPAGATORS)
        return NoopPropagator()

    propagators = [p for p in (_propagator_for(name) for name in names) if p is not None]
    if not propagators:
        return NoopPropagator()
    return CompositePropagator(propagators)


def setup_propagator() -> None:
    """Install the configured propagator as the global text map propagator."""
    set_global_textmap(create_propagator())
