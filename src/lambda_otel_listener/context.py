"""Trace identity of the in-flight invocation.

The root trace headers are extracted from the inbound event once per
invocation and then read many times: by the root span to find its parent
and by outbound instrumentation at the moment each request is sent.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from opentelemetry import propagate
from opentelemetry.context import Context
from opentelemetry.propagators.textmap import Getter, TextMapPropagator
from opentelemetry.trace import get_current_span

from .logger import create_logger
from .propagation import has_valid_span

logger = create_logger("context")

TraceHeaders = Mapping[str, str]

_EMPTY_HEADERS: TraceHeaders = MappingProxyType({})


def freeze_headers(headers: Mapping[str, str]) -> TraceHeaders:
    """Return a read-only copy of ``headers``."""
    return MappingProxyType(dict(headers))


class CaseInsensitiveGetter(Getter[Mapping[str, str]]):
    """Carrier getter matching header names regardless of case.

    API Gateway and ALB deliver headers lowercased while the X-Ray
    propagator looks up ``X-Amzn-Trace-Id`` verbatim.
    """

    def get(self, carrier: Mapping[str, str], key: str) -> list[str] | None:
        wanted = key.lower()
        for name, value in carrier.items():
            if name.lower() == wanted:
                return [value]
        return None

    def keys(self, carrier: Mapping[str, str]) -> list[str]:
        return list(carrier.keys())


case_insensitive_getter = CaseInsensitiveGetter()


def extract_trace_context(
    event: Any, propagator: TextMapPropagator | None = None
) -> TraceHeaders | None:
    """Pull the propagation headers out of an inbound event.

    Only the headers the propagator declares in ``fields`` are kept, with
    their original spelling. Returns ``None`` when the event carries none.
    """
    if not isinstance(event, Mapping):
        return None
    headers = event.get("headers")
    if not isinstance(headers, Mapping):
        return None

    propagator = propagator or propagate.get_global_textmap()
    fields = {field.lower() for field in propagator.fields}
    found = {
        name: value
        for name, value in headers.items()
        if isinstance(name, str) and isinstance(value, str) and name.lower() in fields
    }
    return freeze_headers(found) if found else None


class ContextPropagationService:
    """Holds the root trace headers of the current invocation.

    The host runs one invocation at a time per process, so no locking is
    done. ``set_root_context`` is expected to happen before any read within
    the same invocation; nothing else about call order is assumed.
    """

    def __init__(self, propagator: TextMapPropagator | None = None) -> None:
        self._propagator = propagator
        self._root: TraceHeaders | None = None

    @property
    def propagator(self) -> TextMapPropagator:
        return self._propagator or propagate.get_global_textmap()

    @property
    def root_context(self) -> TraceHeaders | None:
        return self._root

    def set_root_context(self, headers: Mapping[str, str] | None) -> None:
        """Replace the stored root context; ``None`` means no upstream trace."""
        self._root = freeze_headers(headers) if headers is not None else None

    def current_headers(self) -> TraceHeaders:
        """Propagation-ready headers for the current point of execution.

        While a span of the invocation is active, the headers describe that
        span so downstream services are parented on it. Without a root
        context an empty mapping is returned, describing a fresh trace.
        """
        if self._root is None:
            return _EMPTY_HEADERS

        current = get_current_span()
        if current.get_span_context().is_valid:
            carrier: dict[str, str] = {}
            self.propagator.inject(carrier)
            if carrier:
                return freeze_headers(carrier)

        return self._root

    def extract_parent(self) -> Context | None:
        """Parent context for the root span, or ``None`` to start a new trace.

        An empty carrier is still handed to the propagator, since some
        propagators (``xray-lambda``) fall back to the runtime environment.
        """
        headers = self.current_headers()
        ctx = self.propagator.extract(headers, getter=case_insensitive_getter)
        if not has_valid_span(ctx):
            if headers:
                logger.debug("Trace headers carry no valid span context: %s", sorted(headers))
            return None
        return ctx
