"""
Action Runtime - single-action container proxy

Accepts one user action on POST /init, then runs it once per POST /run
inside the sandbox boundary, under the caller's deadline.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, FastAPI, Request

from .api.deps import DeploymentStateDep, DispatcherDep, InitializerDep, TranslatorDep
from .config import RuntimeConfig, config
from .core.deployment import DeploymentState
from .core.envelope import EnvelopeBuilder
from .core.loader import ActionLoader
from .core.logging_config import setup_logging
from .core.sandbox import SandboxBoundary
from .core.utils import to_response, write_activation_markers
from .exceptions import register_exception_handlers
from .middleware import request_context_middleware
from .services.dispatcher import InvocationDispatcher
from .services.initializer import ActionInitializer
from .services.translator import ResponseTranslator

# Logger setup
setup_logging()
logger = logging.getLogger("runtime.main")

router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    runtime_config: RuntimeConfig = app.state.config
    logger.info(
        "Action runtime started",
        extra={
            "run_timeout_seconds": runtime_config.RUN_TIMEOUT_SECONDS,
            "sandbox_enabled": runtime_config.SANDBOX_ENABLED,
            "null_result_as_error": runtime_config.NULL_RESULT_AS_ERROR,
        },
    )
    yield
    logger.info(
        f"Action runtime shutting down (deployment: {app.state.deployment_state.status.value})"
    )


def create_app(runtime_config: Optional[RuntimeConfig] = None) -> FastAPI:
    """Assemble the runtime app with its own deployment state and sandbox."""
    runtime_config = runtime_config or config

    state = DeploymentState()
    sandbox = SandboxBoundary(
        enabled=runtime_config.SANDBOX_ENABLED,
        extra_blocked_events=runtime_config.SANDBOX_EXTRA_BLOCKED_EVENTS,
    )

    app = FastAPI(
        title="Action Runtime",
        version="1.0.0",
        lifespan=lifespan,
        root_path=runtime_config.root_path,
    )

    # Store in app.state for DI
    app.state.config = runtime_config
    app.state.deployment_state = state
    app.state.sandbox = sandbox
    app.state.initializer = ActionInitializer(state, ActionLoader(runtime_config.ACTION_WORK_DIR))
    app.state.dispatcher = InvocationDispatcher(
        state, sandbox, EnvelopeBuilder(runtime_config.RUN_TIMEOUT_SECONDS)
    )
    app.state.translator = ResponseTranslator(runtime_config.NULL_RESULT_AS_ERROR)

    app.middleware("http")(request_context_middleware)
    register_exception_handlers(app)
    app.include_router(router)
    return app


# ===========================================
# Endpoint definitions.
# ===========================================


@router.post("/init")
async def init_action(
    request: Request, initializer: InitializerDep, translator: TranslatorDep
):
    """Deploy the action. Succeeds at most once per process."""
    body = await request.body()
    outcome = await initializer.initialize(body)
    return to_response(translator.translate(outcome))


@router.post("/run")
async def run_action(
    request: Request, dispatcher: DispatcherDep, translator: TranslatorDep
):
    """Invoke the deployed action with the request's value and metadata."""
    body = await request.body()
    outcome = await dispatcher.dispatch(body)
    request.state.activation_id = outcome.activation_id

    response = to_response(translator.translate(outcome))
    if request.app.state.config.ACTION_LOG_MARKERS:
        write_activation_markers()
    return response


@router.get("/health")
async def health_check(deployment_state: DeploymentStateDep):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "deployment": deployment_state.status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=config.PROXY_HOST, port=config.PROXY_PORT)


if __name__ == "__main__":
    run()
