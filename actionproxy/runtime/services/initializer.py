"""
Action Initializer Service

Business logic of POST /init: claims the one-shot deployment, decodes the
code payload, runs the code loader off the event loop and records the result
in the deployment state.
"""

import logging

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from actionproxy.runtime.core.deployment import DeploymentState
from actionproxy.runtime.core.exceptions import (
    ActionLoadError,
    AlreadyInitializedError,
    ArtifactPersistError,
    MissingCodePayloadError,
    summarize_cause,
)
from actionproxy.runtime.core.loader import ActionLoader
from actionproxy.runtime.models.result import InitOutcome, OutcomeKind
from actionproxy.runtime.models.schemas import InitRequest

logger = logging.getLogger("runtime.initializer")


class ActionInitializer:
    def __init__(self, state: DeploymentState, loader: ActionLoader):
        self.state = state
        self.loader = loader

    async def initialize(self, body: bytes) -> InitOutcome:
        """
        Deploy the action carried by an /init body.

        The lifecycle check happens before the body is looked at, so a repeated
        init fails the same way whatever it carries. Once claimed, the init
        always ends in READY or FAILED.
        """
        if not self.state.try_begin_init():
            error = AlreadyInitializedError()
            return InitOutcome.failed(OutcomeKind.ALREADY_INITIALIZED, str(error), error)

        try:
            package = self._parse(body)
            handler = await run_in_threadpool(self.loader.load, package)
        except MissingCodePayloadError as e:
            self.state.mark_failed(e)
            return InitOutcome.failed(OutcomeKind.MISSING_CODE, str(e), e)
        except ArtifactPersistError as e:
            self.state.mark_failed(e)
            return InitOutcome.failed(OutcomeKind.ARTIFACT_PERSIST_FAILURE, str(e), e)
        except ActionLoadError as e:
            self.state.mark_failed(e)
            return InitOutcome.failed(OutcomeKind.LOAD_FAILURE, str(e), e)
        except Exception as e:
            self.state.mark_failed(e)
            return InitOutcome.failed(
                OutcomeKind.LOAD_FAILURE,
                "An error has occurred (see logs for details): " + summarize_cause(e),
                e,
            )
        except BaseException as e:
            # Cancelled while loading (client gone, shutdown).
            self.state.mark_failed(e)
            raise

        self.state.mark_ready(handler)
        return InitOutcome.initialized()

    def _parse(self, body: bytes):
        try:
            request = InitRequest.model_validate_json(body or b"{}")
        except ValidationError as e:
            raise MissingCodePayloadError(f"invalid init body: {e.error_count()} error(s)") from e
        if request.value is None:
            raise MissingCodePayloadError("no value")
        return request.value.to_package()
