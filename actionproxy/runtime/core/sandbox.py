"""
Sandbox boundary.

Restricts what a handler may do while it runs. A single audit hook
(sys.addaudithook) is installed for the life of the process; it only acts
when the current execution context carries an active ScopeToken, so code
outside an invocation is never affected.

Threads started from a scoped context inherit the scope for their whole life.
Threads that do not go through threading.Thread cannot be followed and are
refused.

Only one invocation may be inside the boundary at a time. Callers queue on a
FIFO asyncio.Lock; `exit` always happens-before the next `enter`.
"""

import asyncio
import contextvars
import itertools
import logging
import sys
import threading
import time
from typing import Any, Callable, FrozenSet, Iterable, Optional

from actionproxy.runtime.core.exceptions import SandboxViolation

logger = logging.getLogger("runtime.sandbox")

DEFAULT_BLOCKED_EVENTS: FrozenSet[str] = frozenset(
    {
        # process creation
        "os.system",
        "os.exec",
        "os.posix_spawn",
        "os.spawn",
        "os.fork",
        "os.forkpty",
        "subprocess.Popen",
        # other processes
        "os.kill",
        "os.killpg",
        # process environment
        "os.putenv",
        "os.unsetenv",
        # the restriction itself
        "sys.addaudithook",
        # native code
        "ctypes.dlopen",
    }
)

# Raised by the interpreter when a new OS thread is about to start.
THREAD_START_EVENTS: FrozenSet[str] = frozenset(
    {"_thread.start_new_thread", "_thread.start_joinable_thread"}
)

_active_scope: contextvars.ContextVar[Optional["ScopeToken"]] = contextvars.ContextVar(
    "sandbox_scope", default=None
)

_HOOK_LOCK = threading.Lock()
_HOOK_INSTALLED = False


def _on_audit_event(event: str, args: tuple) -> None:
    scope = _active_scope.get()
    if scope is None or not scope.blocked_events:
        return
    if event in scope.blocked_events:
        scope.violations.append(event)
        raise SandboxViolation(event)
    if event in THREAD_START_EVENTS:
        _carry_scope_into_thread(scope, event, args)


def _carry_scope_into_thread(scope: "ScopeToken", event: str, args: tuple) -> None:
    # threading.Thread.start passes the bound Thread._bootstrap as the target.
    target = args[0] if args else None
    thread = getattr(target, "__self__", None)
    if not isinstance(thread, threading.Thread):
        scope.violations.append(event)
        raise SandboxViolation(event)

    run = thread.run

    def run_in_scope():
        _active_scope.set(scope)
        return run()

    thread.run = run_in_scope


def install_audit_hook() -> None:
    """Install the process-level audit hook exactly once."""
    global _HOOK_INSTALLED
    with _HOOK_LOCK:
        if _HOOK_INSTALLED:
            return
        sys.addaudithook(_on_audit_event)
        _HOOK_INSTALLED = True


def current_scope() -> Optional["ScopeToken"]:
    return _active_scope.get()


class ScopeToken:
    """
    Proof of entry into the boundary, released by SandboxBoundary.exit.

    Code executed through `run` sees this token as the active scope, and so
    does every thread it starts. A handler that outlives its invocation keeps
    the token, and so stays restricted, after the boundary has been exited.
    """

    def __init__(self, sequence: int, blocked_events: FrozenSet[str]):
        self.sequence = sequence
        self.blocked_events = blocked_events
        self.violations: list = []
        self.entered_at = time.monotonic()
        self.exited_at: Optional[float] = None

    @property
    def released(self) -> bool:
        return self.exited_at is not None

    def run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Call `func` in a copy of the current context with this scope active."""
        ctx = contextvars.copy_context()
        return ctx.run(self._call, func, *args)

    def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        _active_scope.set(self)
        return func(*args)

    def __repr__(self):
        return f"ScopeToken(sequence={self.sequence}, released={self.released})"


class SandboxBoundary:
    def __init__(self, enabled: bool = True, extra_blocked_events: Iterable[str] = ()):
        self.enabled = enabled
        self.blocked_events: FrozenSet[str] = (
            DEFAULT_BLOCKED_EVENTS | frozenset(extra_blocked_events) if enabled else frozenset()
        )
        self._lock = asyncio.Lock()
        self._sequence = itertools.count(1)
        self._current: Optional[ScopeToken] = None
        if enabled:
            install_audit_hook()

    @property
    def occupied(self) -> bool:
        return self._lock.locked()

    async def enter(self, timeout: Optional[float] = None) -> ScopeToken:
        """
        Wait for the boundary and enter it.

        Raises:
            asyncio.TimeoutError: the boundary did not free up within `timeout`
        """
        if timeout is None:
            await self._lock.acquire()
        else:
            await asyncio.wait_for(self._lock.acquire(), timeout)

        token = ScopeToken(next(self._sequence), self.blocked_events)
        self._current = token
        logger.debug(f"Entered sandbox scope {token.sequence}")
        return token

    def exit(self, token: ScopeToken) -> None:
        if token.released:
            return
        if token is not self._current:
            raise RuntimeError(f"{token!r} is not the active sandbox scope")
        token.exited_at = time.monotonic()
        self._current = None
        self._lock.release()
        if token.violations:
            logger.warning(
                f"Sandbox scope {token.sequence} refused operations: {token.violations}"
            )
        logger.debug(f"Exited sandbox scope {token.sequence}")
