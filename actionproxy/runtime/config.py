"""
Action runtime configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import List, Optional

from pydantic import Field

from actionproxy.common.core.config import BaseAppConfig


class RuntimeConfig(BaseAppConfig):
    """
    Configuration management for the action runtime.
    """

    # Server settings
    PROXY_HOST: str = Field(default="0.0.0.0", description="Listen host")
    PROXY_PORT: int = Field(default=8080, description="Listen port")

    # Invocation
    RUN_TIMEOUT_SECONDS: float = Field(
        default=3.0, gt=0, description="Invocation deadline used when /run carries none (seconds)"
    )
    NULL_RESULT_AS_ERROR: bool = Field(
        default=False, description="Report a handler that returned nothing as a 502 failure"
    )
    ACTION_LOG_MARKERS: bool = Field(
        default=True, description="Write end-of-activation markers to stdout/stderr after /run"
    )

    # Code loading
    ACTION_WORK_DIR: Optional[str] = Field(
        default=None, description="Parent directory for persisted action artifacts"
    )

    # Sandbox
    SANDBOX_ENABLED: bool = Field(default=True, description="Restrict handlers while they run")
    SANDBOX_EXTRA_BLOCKED_EVENTS: List[str] = Field(
        default_factory=list, description="Additional audit events refused inside the sandbox"
    )

    # FastAPI settings
    root_path: str = Field(default="", description="API root path (for proxy)")


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = RuntimeConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
