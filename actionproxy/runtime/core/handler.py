"""
Handler abstraction.

Every loaded action is exposed to the dispatcher as an ActionHandler, whatever
shape the user code had (plain function, coroutine function, callable class).
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict


class ActionHandler(ABC):
    @abstractmethod
    def invoke(self, value: Dict[str, Any], envelope: Dict[str, str]) -> Any:
        """
        Run the action once.

        Returns the result value, or an awaitable of it when `is_async` is True.
        """
        pass

    @property
    def is_async(self) -> bool:
        return False


class CallableHandler(ActionHandler):
    """
    Adapts a user callable to the handler contract.

    Callables taking two or more positional arguments receive
    `(value, envelope)`; single-argument callables receive just `value`.
    """

    def __init__(self, target: Callable[..., Any], name: str = ""):
        if not callable(target):
            raise TypeError(f"{target!r} is not callable")
        self.target = target
        self.name = name or getattr(target, "__qualname__", type(target).__name__)
        self._pass_envelope = _accepts_two_positionals(target)
        self._is_async = inspect.iscoroutinefunction(target) or (
            not inspect.isroutine(target)
            and inspect.iscoroutinefunction(getattr(target, "__call__", None))
        )

    @property
    def is_async(self) -> bool:
        return self._is_async

    def invoke(self, value: Dict[str, Any], envelope: Dict[str, str]) -> Any:
        if self._pass_envelope:
            return self.target(value, envelope)
        return self.target(value)

    def __repr__(self):
        return f"CallableHandler({self.name})"


def _accepts_two_positionals(target: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        return True

    positional = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= 2
