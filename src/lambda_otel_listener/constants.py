"""Constants for the lambda-otel-listener package.

Environment variable names, default values and span attribute keys live
here so the rest of the package never hardcodes them.
"""


class EnvVars:
    """Environment variable names for configuration."""

    # Listener configuration
    AUTO_PATCH_OUTBOUND = "LAMBDA_TRACE_AUTO_PATCH_OUTBOUND"
    EARLY_TIMEOUT_THRESHOLD_MS = "LAMBDA_TRACE_EARLY_TIMEOUT_THRESHOLD_MS"

    # OpenTelemetry configuration
    OTEL_PROPAGATORS = "OTEL_PROPAGATORS"
    SERVICE_NAME = "OTEL_SERVICE_NAME"
    RESOURCE_ATTRIBUTES = "OTEL_RESOURCE_ATTRIBUTES"

    # Lambda runtime
    AWS_LAMBDA_FUNCTION_NAME = "AWS_LAMBDA_FUNCTION_NAME"
    AWS_REGION = "AWS_REGION"
    AWS_XRAY_TRACE_ID = "_X_AMZN_TRACE_ID"

    # Logging
    AWS_LAMBDA_LOG_LEVEL = "AWS_LAMBDA_LOG_LEVEL"
    LOG_LEVEL = "LOG_LEVEL"


class Defaults:
    """Default values for configuration parameters."""

    AUTO_PATCH_OUTBOUND = True
    EARLY_TIMEOUT_THRESHOLD_MS = 50
    PROPAGATORS = "tracecontext,xray-lambda"
    SERVICE_NAME = "unknown_service"
    LOG_LEVEL = "WARNING"


class SpanTags:
    """Attribute keys set on every invocation root span."""

    COLD_START = "cold_start"
    FUNCTION_ARN = "function_arn"
    REQUEST_ID = "request_id"
    RESOURCE_NAME = "resource_name"


# Reserved before the Lambda deadline so our timeout fires first.
EARLY_TIMEOUT_THRESHOLD_MS = Defaults.EARLY_TIMEOUT_THRESHOLD_MS

TIMEOUT_MESSAGE = "Function timed out"
