"""
Outcome and wire response models.

Standardizes what the initializer and dispatcher hand to the response
translator, and what the translator hands to the transport.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OutcomeKind(str, Enum):
    # successes
    INITIALIZED = "initialized"
    SUCCESS = "success"
    NULL_RESULT = "null_result"
    # init failures
    ALREADY_INITIALIZED = "already_initialized"
    MISSING_CODE = "missing_code"
    ARTIFACT_PERSIST_FAILURE = "artifact_persist_failure"
    LOAD_FAILURE = "load_failure"
    # run failures
    UNINITIALIZED = "uninitialized"
    MALFORMED_REQUEST = "malformed_request"
    HANDLER_FAILURE = "handler_failure"
    TIMEOUT = "timeout"


SUCCESS_KINDS = frozenset({OutcomeKind.INITIALIZED, OutcomeKind.SUCCESS, OutcomeKind.NULL_RESULT})


class Outcome(BaseModel):
    """
    Result of one protocol call before translation.

    `error` is the one-line summary safe to send to the caller; `cause` keeps
    the original exception for the server-side log only.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: OutcomeKind
    error: Optional[str] = None
    cause: Optional[BaseException] = Field(default=None, exclude=True, repr=False)

    @property
    def is_success(self) -> bool:
        return self.kind in SUCCESS_KINDS


class InitOutcome(Outcome):
    @classmethod
    def initialized(cls) -> "InitOutcome":
        return cls(kind=OutcomeKind.INITIALIZED)

    @classmethod
    def failed(
        cls, kind: OutcomeKind, error: str, cause: Optional[BaseException] = None
    ) -> "InitOutcome":
        return cls(kind=kind, error=error, cause=cause)


class InvocationOutcome(Outcome):
    body: Any = None
    activation_id: Optional[str] = None

    @classmethod
    def success(cls, body: Any, activation_id: Optional[str] = None) -> "InvocationOutcome":
        return cls(kind=OutcomeKind.SUCCESS, body=body, activation_id=activation_id)

    @classmethod
    def null_result(cls, activation_id: Optional[str] = None) -> "InvocationOutcome":
        return cls(kind=OutcomeKind.NULL_RESULT, activation_id=activation_id)

    @classmethod
    def failed(
        cls,
        kind: OutcomeKind,
        error: str,
        cause: Optional[BaseException] = None,
        activation_id: Optional[str] = None,
    ) -> "InvocationOutcome":
        return cls(kind=kind, error=error, cause=cause, activation_id=activation_id)


class WireResponse(BaseModel):
    """Status code and body for the transport to send back."""

    status_code: int
    body: Any = None
    media_type: str = "application/json"
