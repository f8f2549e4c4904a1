"""
RequestContext management.
Use ContextVar to share request and activation identifiers across async execution.
"""

import uuid
from contextvars import ContextVar
from typing import Optional


# Context variable for Request ID (UUID), one per HTTP request.
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
# Context variable for the platform activation id of the current /run call.
_activation_id_var: ContextVar[Optional[str]] = ContextVar("activation_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current Request ID."""
    return _request_id_var.get()


def get_activation_id() -> Optional[str]:
    """Get the current Activation ID."""
    return _activation_id_var.get()


def generate_request_id() -> str:
    """
    Generate and set a new Request ID (UUID) for the current context.
    """
    new_id = str(uuid.uuid4())
    _request_id_var.set(new_id)
    return new_id


def set_activation_id(activation_id: Optional[str]) -> None:
    """Bind the activation id of the invocation being served."""
    _activation_id_var.set(activation_id)


def clear_request_context() -> None:
    """Clear the request context."""
    _request_id_var.set(None)
    _activation_id_var.set(None)
