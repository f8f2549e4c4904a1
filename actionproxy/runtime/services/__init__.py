"""
Services package.

Provides the init and run business logic and the response translation step.
"""

from .dispatcher import InvocationDispatcher
from .initializer import ActionInitializer
from .translator import ResponseTranslator

__all__ = [
    "InvocationDispatcher",
    "ActionInitializer",
    "ResponseTranslator",
]
