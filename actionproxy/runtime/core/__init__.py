"""
Core logic package.

Provides the deployment state machine, handler abstraction, code loader and
sandbox boundary.
"""

from .deployment import DeploymentState, DeploymentStatus
from .envelope import EnvelopeBuilder, resolve_timeout
from .handler import ActionHandler, CallableHandler
from .loader import ActionLoader, parse_entry_point
from .sandbox import SandboxBoundary, ScopeToken

__all__ = [
    "DeploymentState",
    "DeploymentStatus",
    "EnvelopeBuilder",
    "resolve_timeout",
    "ActionHandler",
    "CallableHandler",
    "ActionLoader",
    "parse_entry_point",
    "SandboxBoundary",
    "ScopeToken",
]
