"""
Response Translator Service

The single terminal step mapping init and invocation outcomes to a
WireResponse. Every failure is logged here, with the full cause, before the
one-line summary goes back to the caller.
"""

import logging

from fastapi import status

from actionproxy.runtime.models.result import (
    InitOutcome,
    InvocationOutcome,
    Outcome,
    OutcomeKind,
    WireResponse,
)

logger = logging.getLogger("runtime.translator")

NULL_RESULT_MESSAGE = "The action returned null"

# Protocol misuse and deadline expiry are expected platform events; no traceback.
_WARNING_KINDS = frozenset(
    {
        OutcomeKind.ALREADY_INITIALIZED,
        OutcomeKind.UNINITIALIZED,
        OutcomeKind.MALFORMED_REQUEST,
        OutcomeKind.MISSING_CODE,
        OutcomeKind.TIMEOUT,
    }
)


class ResponseTranslator:
    def __init__(self, null_result_as_error: bool = False):
        self.null_result_as_error = null_result_as_error

    def translate(self, outcome: Outcome) -> WireResponse:
        if outcome.kind is OutcomeKind.INITIALIZED:
            return WireResponse(status_code=status.HTTP_200_OK, body="OK", media_type="text/plain")

        if outcome.kind is OutcomeKind.SUCCESS:
            return WireResponse(status_code=status.HTTP_200_OK, body=outcome.body)

        if outcome.kind is OutcomeKind.NULL_RESULT:
            if self.null_result_as_error:
                return self._failure(outcome, NULL_RESULT_MESSAGE)
            logger.info("The action completed without a result")
            return WireResponse(status_code=status.HTTP_200_OK, body=None)

        return self._failure(outcome, outcome.error or "An error has occurred")

    def _failure(self, outcome: Outcome, message: str) -> WireResponse:
        extra = {"outcome": outcome.kind.value}
        if isinstance(outcome, InvocationOutcome) and outcome.activation_id:
            extra["activation_id"] = outcome.activation_id
        phase = "init" if isinstance(outcome, InitOutcome) else "run"

        if outcome.kind in _WARNING_KINDS or outcome.cause is None:
            detail = getattr(outcome.cause, "detail", None)
            if detail:
                extra["detail"] = detail
                logger.warning(f"{phase} failed: {message} ({detail})", extra=extra)
            else:
                logger.warning(f"{phase} failed: {message}", extra=extra)
        else:
            cause = outcome.cause
            logger.error(
                f"{phase} failed: {message}",
                exc_info=(type(cause), cause, cause.__traceback__),
                extra=extra,
            )

        return WireResponse(status_code=status.HTTP_502_BAD_GATEWAY, body={"error": message})
