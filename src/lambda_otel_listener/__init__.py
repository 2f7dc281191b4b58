"""Invocation tracing for AWS Lambda handlers built on OpenTelemetry.

Each invocation gets one root span parented on the upstream trace found in
the event, the upstream trace headers are injected into outbound requests
made by the handler, and an invocation that is about to exceed its time
budget is reported as timed out before Lambda terminates it.
"""

from .config import TraceConfig
from .context import ContextPropagationService, TraceHeaders, extract_trace_context
from .deadline import DeadlineRace, FunctionTimeoutError
from .handler import create_traced_handler
from .listener import TraceListener
from .outbound import OutboundInstrumentation, RequestsInstrumentation
from .state import InvocationPhase, ProcessState
from .telemetry import get_lambda_resource, init_telemetry

__version__ = "0.1.0"

__all__ = [
    "ContextPropagationService",
    "DeadlineRace",
    "FunctionTimeoutError",
    "InvocationPhase",
    "OutboundInstrumentation",
    "ProcessState",
    "RequestsInstrumentation",
    "TraceConfig",
    "TraceHeaders",
    "TraceListener",
    "create_traced_handler",
    "extract_trace_context",
    "get_lambda_resource",
    "init_telemetry",
]
