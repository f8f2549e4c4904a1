import logging
import time
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from actionproxy.runtime.models.envelope import InvocationEnvelope

if TYPE_CHECKING:
    from actionproxy.runtime.models.schemas import RunRequest

logger = logging.getLogger("runtime.envelope")

ENVELOPE_FIELDS = ("api_host", "api_key", "namespace", "action_name", "activation_id", "deadline")

# Deadlines at or above this many milliseconds are absolute epoch times
# (2001-09-09 onwards); smaller values are durations.
ABSOLUTE_DEADLINE_THRESHOLD_MS = 10**12


def envelope_key(field: str) -> str:
    return f"__OW_{field.upper()}"


def resolve_timeout(
    deadline: Any, default_timeout: float, now: Optional[float] = None
) -> float:
    """
    Convert a /run deadline into seconds remaining.

    Args:
        deadline: epoch milliseconds, or a relative duration in milliseconds
        default_timeout: seconds used when the deadline is absent or unusable
        now: current epoch time in seconds

    Returns:
        Seconds until the deadline, 0.0 if it already passed.
    """
    if deadline is None or isinstance(deadline, bool):
        return default_timeout
    try:
        deadline_ms = float(deadline)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable deadline {deadline!r}, using default timeout")
        return default_timeout
    if deadline_ms != deadline_ms or deadline_ms in (float("inf"), float("-inf")):
        logger.warning(f"Ignoring non-finite deadline {deadline!r}, using default timeout")
        return default_timeout

    if deadline_ms >= ABSOLUTE_DEADLINE_THRESHOLD_MS:
        if now is None:
            now = time.time()
        return max(0.0, deadline_ms / 1000.0 - now)
    return max(0.0, deadline_ms / 1000.0)


class EnvelopeBuilder:
    """Builds the InvocationEnvelope of a /run request."""

    def __init__(
        self,
        default_timeout: float,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.default_timeout = default_timeout
        self._clock = clock
        self._monotonic = monotonic

    def build(self, request: "RunRequest") -> InvocationEnvelope:
        entries: Dict[str, str] = {}
        for field in ENVELOPE_FIELDS:
            value = getattr(request, field)
            if value is None:
                continue
            entries[envelope_key(field)] = str(value)

        started = self._monotonic()
        timeout = resolve_timeout(request.deadline, self.default_timeout, now=self._clock())
        return InvocationEnvelope(
            entries=entries,
            activation_id=request.activation_id,
            timeout=timeout,
            expires_at=started + timeout,
        )
