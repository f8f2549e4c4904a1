import asyncio
import os
import subprocess
import sys
import threading

import pytest

from actionproxy.runtime.core.exceptions import SandboxViolation
from actionproxy.runtime.core.sandbox import (
    DEFAULT_BLOCKED_EVENTS,
    SandboxBoundary,
    current_scope,
)


def _spawn():
    subprocess.run([sys.executable, "-c", "pass"], check=True)
    return "spawned"


@pytest.mark.asyncio
async def test_enter_returns_token_and_exit_releases():
    sandbox = SandboxBoundary()

    token = await sandbox.enter()
    assert sandbox.occupied is True
    assert token.released is False

    sandbox.exit(token)
    assert sandbox.occupied is False
    assert token.released is True


@pytest.mark.asyncio
async def test_exit_is_idempotent_per_token():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()

    sandbox.exit(token)
    sandbox.exit(token)

    assert sandbox.occupied is False


@pytest.mark.asyncio
async def test_blocked_event_raises_inside_scope():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    try:
        with pytest.raises(SandboxViolation) as exc_info:
            token.run(_spawn)
    finally:
        sandbox.exit(token)

    assert exc_info.value.event == "subprocess.Popen"
    assert isinstance(exc_info.value, PermissionError)
    assert token.violations == ["subprocess.Popen"]


@pytest.mark.asyncio
async def test_os_system_and_putenv_are_blocked():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    try:
        with pytest.raises(SandboxViolation):
            token.run(os.system, "true")
        with pytest.raises(SandboxViolation):
            token.run(os.putenv, "ACTION_SANDBOX_TEST", "1")
        with pytest.raises(SandboxViolation):
            token.run(sys.addaudithook, lambda event, args: None)
    finally:
        sandbox.exit(token)


@pytest.mark.asyncio
async def test_restriction_does_not_leak_outside_scope():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    try:
        # The scope only exists inside token.run; this frame is unaffected.
        assert current_scope() is None
        assert _spawn() == "spawned"
    finally:
        sandbox.exit(token)

    assert _spawn() == "spawned"


@pytest.mark.asyncio
async def test_unrelated_threads_are_not_restricted():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    outcome = {}

    def unrelated():
        outcome["result"] = _spawn()

    try:
        thread = threading.Thread(target=unrelated)
        thread.start()
        thread.join()
    finally:
        sandbox.exit(token)

    assert outcome["result"] == "spawned"


@pytest.mark.asyncio
async def test_threads_started_in_scope_inherit_it():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    errors = []

    def child():
        try:
            _spawn()
        except SandboxViolation as e:
            errors.append(e)

    def start_child():
        thread = threading.Thread(target=child)
        thread.start()
        thread.join()

    try:
        token.run(start_child)
    finally:
        sandbox.exit(token)

    assert [e.event for e in errors] == ["subprocess.Popen"]
    assert token.violations == ["subprocess.Popen"]


@pytest.mark.asyncio
async def test_inherited_scope_outlives_exit():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    go = threading.Event()
    outcome = {}

    def child():
        go.wait(1.0)
        try:
            outcome["result"] = _spawn()
        except SandboxViolation as e:
            outcome["error"] = e

    holder = {}

    def start_child():
        holder["thread"] = threading.Thread(target=child)
        holder["thread"].start()

    token.run(start_child)
    sandbox.exit(token)
    go.set()
    holder["thread"].join()

    assert "error" in outcome
    assert "result" not in outcome


@pytest.mark.asyncio
async def test_raw_thread_start_is_refused_in_scope():
    import _thread

    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    try:
        with pytest.raises(SandboxViolation) as exc_info:
            token.run(_thread.start_new_thread, lambda: None, ())
    finally:
        sandbox.exit(token)

    assert exc_info.value.event == "_thread.start_new_thread"


@pytest.mark.asyncio
async def test_disabled_sandbox_blocks_nothing():
    sandbox = SandboxBoundary(enabled=False)
    token = await sandbox.enter()
    try:
        assert token.blocked_events == frozenset()
        assert token.run(_spawn) == "spawned"
    finally:
        sandbox.exit(token)


@pytest.mark.asyncio
async def test_extra_blocked_events():
    sandbox = SandboxBoundary(extra_blocked_events=["open"])
    assert "open" in sandbox.blocked_events
    assert DEFAULT_BLOCKED_EVENTS <= sandbox.blocked_events

    token = await sandbox.enter()
    try:
        with pytest.raises(SandboxViolation):
            token.run(open, os.devnull)
    finally:
        sandbox.exit(token)


@pytest.mark.asyncio
async def test_second_enter_queues_until_exit():
    sandbox = SandboxBoundary()
    first = await sandbox.enter()

    second_task = asyncio.create_task(sandbox.enter())
    await asyncio.sleep(0.05)
    assert second_task.done() is False

    sandbox.exit(first)
    second = await asyncio.wait_for(second_task, 1.0)

    assert second.sequence == first.sequence + 1
    assert first.exited_at <= second.entered_at
    sandbox.exit(second)


@pytest.mark.asyncio
async def test_enter_times_out_while_occupied():
    sandbox = SandboxBoundary()
    token = await sandbox.enter()
    try:
        with pytest.raises(asyncio.TimeoutError):
            await sandbox.enter(timeout=0.05)
    finally:
        sandbox.exit(token)

    # A timed-out waiter must not hold the boundary.
    token = await sandbox.enter(timeout=1.0)
    sandbox.exit(token)


@pytest.mark.asyncio
async def test_exit_with_foreign_token_is_rejected():
    sandbox = SandboxBoundary()
    other = SandboxBoundary()
    token = await sandbox.enter()
    foreign = await other.enter()
    try:
        with pytest.raises(RuntimeError):
            sandbox.exit(foreign)
    finally:
        sandbox.exit(token)
        other.exit(foreign)
