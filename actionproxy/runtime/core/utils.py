import sys

from fastapi.responses import JSONResponse, Response

from actionproxy.runtime.models.result import WireResponse

ACTIVATION_END_MARKER = "XXX_THE_END_OF_A_WHISK_ACTIVATION_XXX"


def to_response(wire: WireResponse) -> Response:
    """
    Render a WireResponse as a FastAPI response.

    A JSON response without a body is sent with no content at all, which is
    how a handler that produced nothing is told apart from one that returned {}.
    """
    if wire.media_type == "application/json":
        if wire.body is None:
            return Response(status_code=wire.status_code)
        return JSONResponse(status_code=wire.status_code, content=wire.body)
    return Response(content=wire.body, status_code=wire.status_code, media_type=wire.media_type)


def write_activation_markers() -> None:
    """Delimit one activation's output on stdout and stderr for the log collector."""
    for stream in (sys.stdout, sys.stderr):
        stream.write(ACTIVATION_END_MARKER + "\n")
        stream.flush()
