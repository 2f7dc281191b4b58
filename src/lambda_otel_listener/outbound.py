"""Outbound HTTP instrumentation.

While installed, every request sent through ``requests`` gets the headers
returned by a header source merged into it. The source is evaluated when
the request is sent, so a context set later in the invocation is seen by
requests issued after it.
"""

import functools
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import requests

from .logger import create_logger

logger = create_logger("outbound")

HeaderSource = Callable[[], Mapping[str, str]]

_ACTIVE_ATTR = "_trace_headers_active"


class OutboundInstrumentation(Protocol):
    """Process-wide hook stamping trace headers onto outbound calls."""

    def install(self, header_source: HeaderSource) -> None: ...

    def uninstall(self) -> None: ...


class RequestsInstrumentation:
    """Patches ``requests.Session.send`` to inject trace headers.

    Trace headers replace any header of the same name already on the
    request. ``uninstall`` may be called any number of times. Several
    instances may be installed at once and removed in any order: a patch
    that is no longer on top of ``Session.send`` is switched off in place
    and skipped when a later patch is removed.
    """

    def __init__(self) -> None:
        self._patched_send: Callable[..., requests.Response] | None = None

    @property
    def installed(self) -> bool:
        return self._patched_send is not None

    def install(self, header_source: HeaderSource) -> None:
        if self.installed:
            self.uninstall()

        original_send = requests.Session.send

        @functools.wraps(original_send)
        def send(
            session: requests.Session, request: requests.PreparedRequest, **kwargs: Any
        ) -> requests.Response:
            if getattr(send, _ACTIVE_ATTR, False):
                try:
                    headers = header_source()
                except Exception as e:
                    logger.warn("Failed to resolve trace headers for outbound request: %s", e)
                    headers = {}
                for name, value in headers.items():
                    request.headers[name] = value
            return original_send(session, request, **kwargs)

        setattr(send, _ACTIVE_ATTR, True)
        requests.Session.send = send  # type: ignore[method-assign]
        self._patched_send = send
        logger.debug("Outbound request instrumentation installed")

    def uninstall(self) -> None:
        patched = self._patched_send
        if patched is None:
            return
        setattr(patched, _ACTIVE_ATTR, False)
        self._patched_send = None

        if requests.Session.send is not patched:
            logger.debug("Outbound request instrumentation deactivated under a newer patch")
            return
        requests.Session.send = _unwrap_inactive(patched)  # type: ignore[method-assign]
        logger.debug("Outbound request instrumentation removed")


def _unwrap_inactive(send: Callable[..., Any]) -> Callable[..., Any]:
    """Skip past switched-off patches down to the first live ``send``."""
    while getattr(send, _ACTIVE_ATTR, True) is False:
        send = send.__wrapped__  # type: ignore[attr-defined]
    return send
