"""
Invocation envelope model.

Per-call platform metadata handed to the handler next to its input value.
"""

import time
from typing import Dict, Optional

from pydantic import BaseModel, Field


class InvocationEnvelope(BaseModel):
    """
    Metadata of one /run call.

    `entries` holds the `__OW_*` keys for the fields present in the request
    only. `expires_at` is a time.monotonic() instant.
    """

    entries: Dict[str, str] = Field(default_factory=dict)
    activation_id: Optional[str] = None
    timeout: float
    expires_at: float

    def remaining(self, now: Optional[float] = None) -> float:
        """Seconds left before the deadline (never negative)."""
        if now is None:
            now = time.monotonic()
        return max(0.0, self.expires_at - now)

    @property
    def timeout_ms(self) -> int:
        return int(round(self.timeout * 1000))
