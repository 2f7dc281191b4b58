"""State shared across invocations of a reused Lambda process."""

import enum
from dataclasses import dataclass


class InvocationPhase(str, enum.Enum):
    """Lifecycle of one invocation.

    ``IDLE`` only precedes the first invocation; ``COMPLETED`` is the
    resting state between later ones.
    """

    IDLE = "idle"
    STARTED = "started"
    SPAN_ACTIVE = "span_active"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclass
class ProcessState:
    """Flags that outlive a single invocation.

    ``coldstart`` starts ``True`` and is cleared once, when the first
    invocation completes. ``timed_out`` is reset when each invocation
    starts, so it only ever reports on the current one.
    """

    coldstart: bool = True
    timed_out: bool = False

    def begin_invocation(self) -> None:
        self.timed_out = False

    def complete_invocation(self) -> None:
        self.coldstart = False
