"""
Lambda function traced with lambda-otel-listener.

This example shows how to:
1. Initialize telemetry once at module load
2. Decorate the handler so every invocation gets a root span
3. Call a downstream service; the trace headers are injected automatically
4. Add events and attributes to the current span
"""

import json
import os
from typing import Any

import requests
from opentelemetry import trace

from lambda_otel_listener import create_traced_handler, init_telemetry

tracer, provider = init_telemetry("quotes-handler")

traced = create_traced_handler("quotes-handler", tracer, tracer_provider=provider)

quotes_url = os.environ.get("QUOTES_URL", "https://dummyjson.com/quotes/random")


@traced
def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    current_span = trace.get_current_span()
    current_span.add_event("fetching quote", {"quotes.url": quotes_url})

    response = requests.get(quotes_url, timeout=5)
    response.raise_for_status()
    quote = response.json()

    current_span.set_attribute("quote.id", str(quote.get("id", "")))
    return {
        "statusCode": 200,
        "body": json.dumps({"quote": quote, "request_id": context.aws_request_id}),
    }
