"""Per-invocation tracing of a Lambda handler.

The host drives a :class:`TraceListener` through three calls per
invocation::

    listener.on_start_invocation(event, context)
    result = wrapped(event, context)   # wrapped = listener.on_wrap(handler)
    listener.on_complete_invocation()

The wrapped handler runs inside a root ``SERVER`` span parented on the
upstream trace found in the event, and races the handler against the
remaining Lambda time budget. When the budget is about to run out the span
is closed as failed and the wrapped call never returns, leaving it to
Lambda's own timeout to end the process and report the invocation.
"""

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, cast

from opentelemetry import context as context_api
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Tracer

from .config import TraceConfig
from .constants import SpanTags
from .context import ContextPropagationService, TraceHeaders, extract_trace_context
from .deadline import DeadlineRace, FunctionTimeoutError
from .logger import create_logger
from .outbound import OutboundInstrumentation, RequestsInstrumentation
from .state import InvocationPhase, ProcessState

logger = create_logger("listener")

F = TypeVar("F", bound=Callable[..., Any])

Extractor = Callable[[Any], TraceHeaders | None]


def get_remaining_time_ms(context: Any) -> int | None:
    """Remaining time reported by the Lambda context, if it can report one."""
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if not callable(get_remaining):
        return None
    try:
        remaining = get_remaining()
        return int(remaining) if remaining is not None else None
    except Exception as e:
        logger.debug("Remaining time unavailable, deadline disabled: %s", e)
        return None


async def _suspend_forever() -> None:
    await asyncio.get_running_loop().create_future()


class TraceListener:
    """Traces the invocations of one handler in a reused Lambda process.

    Args:
        tracer: Tracer used to open the root span.
        name: Root span name.
        config: Listener options; resolved from the environment when omitted.
        tracer_provider: Flushed when an invocation times out, before the
            wrapped call suspends.
        propagator: Propagator for reading and writing trace headers;
            defaults to the global one.
        extractor: Pulls upstream trace headers out of the inbound event.
        instrumentation: Outbound hook installed around each invocation.
        state: Cold start and timeout flags, shared for the process lifetime.
    """

    def __init__(
        self,
        tracer: Tracer,
        name: str,
        config: TraceConfig | None = None,
        *,
        tracer_provider: TracerProvider | None = None,
        propagator: TextMapPropagator | None = None,
        extractor: Extractor | None = None,
        instrumentation: OutboundInstrumentation | None = None,
        state: ProcessState | None = None,
    ) -> None:
        self.tracer = tracer
        self.name = name
        self.config = config or TraceConfig.from_env()
        self.tracer_provider = tracer_provider
        self.context_service = ContextPropagationService(propagator)
        self.extractor = extractor or functools.partial(
            extract_trace_context, propagator=propagator
        )
        self.instrumentation = instrumentation or RequestsInstrumentation()
        self.state = state or ProcessState()
        self.phase = InvocationPhase.IDLE
        self._context: Any = None
        self._race: DeadlineRace | None = None

    @property
    def current_trace_headers(self) -> TraceHeaders:
        return self.context_service.current_headers()

    def on_start_invocation(self, event: Any, context: Any) -> None:
        self._cancel_race()
        self.state.begin_invocation()
        self.phase = InvocationPhase.STARTED

        if self.config.auto_patch_outbound:
            self.instrumentation.install(self.context_service.current_headers)
        self._context = context

        try:
            headers = self.extractor(event)
        except Exception as e:
            logger.warn("Failed to extract trace context from event: %s", e)
            headers = None
        if headers is None:
            logger.debug("No upstream trace context found, starting a new trace")
        self.context_service.set_root_context(headers)

    def on_complete_invocation(self) -> None:
        if self.config.auto_patch_outbound:
            self.instrumentation.uninstall()
        self._cancel_race()
        self.context_service.set_root_context(None)
        self._context = None
        self.state.complete_invocation()
        self.phase = InvocationPhase.COMPLETED

    def on_wrap(self, func: F) -> F:
        """Wrap ``func`` so each call runs in a root span raced against the deadline.

        Coroutine functions stay coroutine functions. Plain functions run in
        a worker thread under a private event loop, which keeps them
        preemptable by the deadline.
        """
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapped(*args: Any, **kwargs: Any) -> Any:
                return await self._invoke(lambda: func(*args, **kwargs))

            return cast(F, async_wrapped)

        @functools.wraps(func)
        def sync_wrapped(*args: Any, **kwargs: Any) -> Any:
            return asyncio.run(self._invoke(lambda: asyncio.to_thread(func, *args, **kwargs)))

        return cast(F, sync_wrapped)

    async def _invoke(self, call: Callable[[], Awaitable[Any]]) -> Any:
        context = self._context
        race = DeadlineRace(self.config.early_timeout_threshold_ms)
        self._race = race

        parent = self.context_service.extract_parent()
        attributes = self._span_attributes(context)
        try:
            with self.tracer.start_as_current_span(
                self.name,
                context=parent if parent is not None else context_api.Context(),
                kind=SpanKind.SERVER,
                attributes=attributes,
                record_exception=True,
                set_status_on_exception=True,
            ):
                self.phase = InvocationPhase.SPAN_ACTIVE
                return await race.run(call(), get_remaining_time_ms(context))
        except FunctionTimeoutError:
            if not race.timed_out:
                raise
            self._on_timeout()

        await _suspend_forever()

    def _on_timeout(self) -> None:
        self.state.timed_out = True
        self.phase = InvocationPhase.TIMED_OUT
        logger.warn("Invocation of %s is about to time out, waiting for Lambda to end it", self.name)
        if self.tracer_provider is not None:
            self.tracer_provider.force_flush()

    def _span_attributes(self, context: Any) -> dict[str, Any]:
        attributes: dict[str, Any] = {SpanTags.COLD_START: self.state.coldstart}
        if context is None:
            return attributes
        for key, field in (
            (SpanTags.FUNCTION_ARN, "invoked_function_arn"),
            (SpanTags.REQUEST_ID, "aws_request_id"),
            (SpanTags.RESOURCE_NAME, "function_name"),
        ):
            value = getattr(context, field, None)
            if value is not None:
                attributes[key] = value
        return attributes

    def _cancel_race(self) -> None:
        if self._race is not None:
            self._race.cancel()
            self._race = None
