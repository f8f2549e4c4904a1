"""
Deployment state machine.

Tracks whether the one user action of this process has been installed.
The Uninitialized -> Initializing transition is a compare-and-set under a
single lock, so concurrent init attempts are rejected immediately instead of
waiting on the load in flight.
"""

import logging
import threading
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from actionproxy.runtime.core.handler import ActionHandler

logger = logging.getLogger("runtime.deployment")


class DeploymentStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class DeploymentState:
    """
    Process-wide lifecycle of the loaded action.

    READY and FAILED are terminal; nothing ever returns to UNINITIALIZED and
    the installed handler is never replaced.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._status = DeploymentStatus.UNINITIALIZED
        self._handler: Optional["ActionHandler"] = None
        self._failure: Optional[BaseException] = None

    @property
    def status(self) -> DeploymentStatus:
        return self._status

    @property
    def handler(self) -> Optional["ActionHandler"]:
        return self._handler

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    def try_begin_init(self) -> bool:
        """Claim the one-shot init. Only the first caller ever gets True."""
        with self._lock:
            if self._status is not DeploymentStatus.UNINITIALIZED:
                return False
            self._status = DeploymentStatus.INITIALIZING
            return True

    def mark_ready(self, handler: "ActionHandler") -> None:
        with self._lock:
            if self._status is not DeploymentStatus.INITIALIZING:
                raise RuntimeError(f"Cannot mark ready from state {self._status.value}")
            self._handler = handler
            self._status = DeploymentStatus.READY
        logger.info("Action deployed")

    def mark_failed(self, cause: BaseException) -> None:
        with self._lock:
            if self._status is not DeploymentStatus.INITIALIZING:
                raise RuntimeError(f"Cannot mark failed from state {self._status.value}")
            self._failure = cause
            self._status = DeploymentStatus.FAILED
        logger.warning(f"Action deployment failed: {cause}")

    def is_ready(self) -> bool:
        return self._status is DeploymentStatus.READY
