"""Decorator wiring a TraceListener around a Lambda handler."""

import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar, cast

from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Tracer

from .config import TraceConfig
from .listener import Extractor, TraceListener
from .outbound import OutboundInstrumentation
from .state import ProcessState

F = TypeVar("F", bound=Callable[..., Any])


def create_traced_handler(
    name: str,
    tracer: Tracer,
    *,
    tracer_provider: TracerProvider | None = None,
    config: TraceConfig | None = None,
    extractor: Extractor | None = None,
    propagator: TextMapPropagator | None = None,
    instrumentation: OutboundInstrumentation | None = None,
    state: ProcessState | None = None,
) -> Callable[[F], F]:
    """Create a decorator that traces every invocation of a Lambda handler.

    The decorated handler starts the invocation, runs the wrapped handler
    and completes the invocation in a ``finally`` block, so outbound
    instrumentation is removed whether the handler returns or raises.
    The listener is available as the ``listener`` attribute of the
    decorated function.

    Example:
        ```python
        tracer, provider = init_telemetry("my-service")
        traced = create_traced_handler("my-handler", tracer, tracer_provider=provider)

        @traced
        def handler(event, context):
            return {"statusCode": 200}
        ```
    """
    listener = TraceListener(
        tracer,
        name,
        config,
        tracer_provider=tracer_provider,
        propagator=propagator,
        extractor=extractor,
        instrumentation=instrumentation,
        state=state,
    )

    def decorator(func: F) -> F:
        wrapped = listener.on_wrap(func)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_handler(event: Any, context: Any, *args: Any, **kwargs: Any) -> Any:
                listener.on_start_invocation(event, context)
                try:
                    return await wrapped(event, context, *args, **kwargs)
                finally:
                    listener.on_complete_invocation()

            async_handler.listener = listener  # type: ignore[attr-defined]
            return cast(F, async_handler)

        @functools.wraps(func)
        def handler(event: Any, context: Any, *args: Any, **kwargs: Any) -> Any:
            listener.on_start_invocation(event, context)
            try:
                return wrapped(event, context, *args, **kwargs)
            finally:
                listener.on_complete_invocation()

        handler.listener = listener  # type: ignore[attr-defined]
        return cast(F, handler)

    return decorator
