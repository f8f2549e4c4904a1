"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .action import ActionPackage
from .envelope import InvocationEnvelope
from .result import InitOutcome, InvocationOutcome, OutcomeKind, WireResponse
from .schemas import InitRequest, InitValue, RunRequest

__all__ = [
    "ActionPackage",
    "InvocationEnvelope",
    "InitOutcome",
    "InvocationOutcome",
    "OutcomeKind",
    "WireResponse",
    "InitRequest",
    "InitValue",
    "RunRequest",
]
