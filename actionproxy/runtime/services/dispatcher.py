"""
Invocation Dispatcher Service

Business logic of POST /run: checks the deployment state, builds the
invocation envelope, runs the loaded handler inside the sandbox boundary under
the caller's deadline and returns an InvocationOutcome.
"""

import asyncio
import contextvars
import json
import logging
import threading
import time
from typing import Any, Dict, Optional

from pydantic import ValidationError

from actionproxy.common.core.request_context import set_activation_id
from actionproxy.runtime.core.deployment import DeploymentState
from actionproxy.runtime.core.envelope import EnvelopeBuilder
from actionproxy.runtime.core.exceptions import (
    HandlerAbortedError,
    MalformedRequestError,
    ResultNotSerializableError,
    SandboxViolation,
    UninitializedInvocationError,
    summarize_cause,
)
from actionproxy.runtime.core.handler import ActionHandler
from actionproxy.runtime.core.sandbox import SandboxBoundary, ScopeToken
from actionproxy.runtime.models.envelope import InvocationEnvelope
from actionproxy.runtime.models.result import InvocationOutcome, OutcomeKind
from actionproxy.runtime.models.schemas import RunRequest

logger = logging.getLogger("runtime.dispatcher")

HANDLER_FAILURE_MESSAGE = "An error has occurred while invoking the action"


class InvocationDispatcher:
    def __init__(
        self,
        state: DeploymentState,
        sandbox: SandboxBoundary,
        envelope_builder: EnvelopeBuilder,
    ):
        """
        Args:
            state: DeploymentState shared with the initializer
            sandbox: SandboxBoundary serializing invocations
            envelope_builder: EnvelopeBuilder carrying the default timeout
        """
        self.state = state
        self.sandbox = sandbox
        self.envelope_builder = envelope_builder

    async def dispatch(self, body: bytes) -> InvocationOutcome:
        """
        Handle a raw /run body.

        Readiness is checked before the body is parsed.
        """
        if not self.state.is_ready():
            return self._uninitialized()

        try:
            request = RunRequest.model_validate_json(body or b"{}")
        except ValidationError as e:
            error = MalformedRequestError(f"{e.error_count()} validation error(s)")
            error.__cause__ = e
            return InvocationOutcome.failed(OutcomeKind.MALFORMED_REQUEST, str(error), error)

        envelope = self.envelope_builder.build(request)
        set_activation_id(envelope.activation_id)
        return await self.run(request, envelope)

    async def run(self, request: RunRequest, envelope: InvocationEnvelope) -> InvocationOutcome:
        """
        Invoke the loaded handler with `request.value` and the envelope entries.

        The sandbox scope entered here is exited on every path. A handler that
        misses the deadline keeps running in the background; only the caller
        moves on.
        """
        activation_id = envelope.activation_id
        if not self.state.is_ready():
            return self._uninitialized(activation_id)
        handler = self.state.handler

        try:
            token = await self.sandbox.enter(timeout=envelope.remaining())
        except asyncio.TimeoutError:
            logger.warning("Deadline expired while queued for the sandbox")
            return self._timeout(envelope)

        started = time.perf_counter()
        try:
            remaining = envelope.remaining()
            if remaining <= 0:
                return self._timeout(envelope)

            worker = HandlerThread(handler, request.value, dict(envelope.entries), token)
            pending = worker.submit()
            done, _ = await asyncio.wait({pending}, timeout=remaining)
            if not done:
                worker.cancel()
                pending.cancel()
                return self._timeout(envelope)

            try:
                result = pending.result()
            except Exception as e:
                return InvocationOutcome.failed(
                    OutcomeKind.HANDLER_FAILURE,
                    f"{HANDLER_FAILURE_MESSAGE}: {summarize_cause(e)}",
                    e,
                    activation_id,
                )

            # Refused operations in threads the handler started do not raise here.
            if token.violations:
                violation = SandboxViolation(token.violations[0])
                return InvocationOutcome.failed(
                    OutcomeKind.HANDLER_FAILURE,
                    f"{HANDLER_FAILURE_MESSAGE}: {summarize_cause(violation)}",
                    violation,
                    activation_id,
                )
        finally:
            self.sandbox.exit(token)
            logger.debug(
                f"Invocation finished in {round((time.perf_counter() - started) * 1000, 2)} ms",
                extra={"sandbox_scope": token.sequence},
            )

        if result is None:
            return InvocationOutcome.null_result(activation_id)

        try:
            json.dumps(result, allow_nan=False)
        except (TypeError, ValueError) as e:
            error = ResultNotSerializableError(e)
            return InvocationOutcome.failed(
                OutcomeKind.HANDLER_FAILURE, str(error), error, activation_id
            )

        return InvocationOutcome.success(result, activation_id)

    def _uninitialized(self, activation_id=None) -> InvocationOutcome:
        error = UninitializedInvocationError()
        return InvocationOutcome.failed(
            OutcomeKind.UNINITIALIZED, str(error), error, activation_id
        )

    def _timeout(self, envelope: InvocationEnvelope) -> InvocationOutcome:
        return InvocationOutcome.failed(
            OutcomeKind.TIMEOUT,
            f"The action did not complete within {envelope.timeout_ms} ms.",
            activation_id=envelope.activation_id,
        )


async def _guard(handler: ActionHandler, value: Dict[str, Any], entries: Dict[str, str]) -> Any:
    try:
        return await handler.invoke(value, entries)
    except (SystemExit, StopIteration, StopAsyncIteration) as e:
        raise HandlerAbortedError(e) from e


class HandlerThread(threading.Thread):
    """
    Runs one invocation in a daemon thread inside the sandbox scope.

    Coroutine handlers get a private event loop in this thread, so anything
    they hand to an executor is started from the scope as well. Daemon threads
    let the process exit even if a handler never returns.
    """

    def __init__(
        self,
        handler: ActionHandler,
        value: Dict[str, Any],
        entries: Dict[str, str],
        token: ScopeToken,
    ):
        super().__init__(name=f"action-{token.sequence}", daemon=True)
        self.handler = handler
        self.value = value
        self.entries = entries
        self.token = token
        self._caller_context = contextvars.copy_context()
        self._caller_loop: Optional[asyncio.AbstractEventLoop] = None
        self._future: Optional[asyncio.Future] = None
        self._handler_loop: Optional[asyncio.AbstractEventLoop] = None
        self._handler_task: Optional[asyncio.Task] = None

    def submit(self) -> asyncio.Future:
        """Start the thread; the returned future resolves on the caller's loop."""
        self._caller_loop = asyncio.get_running_loop()
        self._future = self._caller_loop.create_future()
        self.start()
        return self._future

    def cancel(self) -> None:
        """Ask a coroutine handler to stop. Sync handlers cannot be interrupted."""
        loop, task = self._handler_loop, self._handler_task
        if loop is None or task is None:
            return
        try:
            loop.call_soon_threadsafe(task.cancel)
        except RuntimeError:
            # handler loop already closed
            pass

    def run(self) -> None:
        result, error = None, None
        try:
            result = self._caller_context.run(self.token.run, self._invoke)
        except (StopIteration, StopAsyncIteration) as e:
            error = HandlerAbortedError(e)
        except Exception as e:
            error = e
        except BaseException as e:
            error = HandlerAbortedError(e)

        try:
            self._caller_loop.call_soon_threadsafe(self._deliver, result, error)
        except RuntimeError:
            logger.warning(f"Action in sandbox scope {self.token.sequence} finished after shutdown")

    def _invoke(self) -> Any:
        if not self.handler.is_async:
            return self.handler.invoke(self.value, self.entries)

        loop = asyncio.new_event_loop()
        self._handler_loop = loop
        try:
            self._handler_task = loop.create_task(_guard(self.handler, self.value, self.entries))
            return loop.run_until_complete(self._handler_task)
        finally:
            loop.close()

    def _deliver(self, result: Any, error: Optional[BaseException]) -> None:
        if self._future.done():
            return
        if error is not None:
            self._future.set_exception(error)
        else:
            self._future.set_result(result)
