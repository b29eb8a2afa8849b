"""
Route class that lets dependencies see a request before a malformed body is rejected.

FastAPI decodes a JSON body before it resolves any dependency, so a caller
sending invalid JSON would get a validation error even when the authorization
gate would refuse them. GateFirstRoute re-runs such a request with an empty
body: the dependencies (and so the gate) run first, and the original decode
error is only reported once they pass.
"""
from typing import Any, Callable, Coroutine

from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from starlette.requests import Request
from starlette.responses import Response


def is_body_decode_error(exc: RequestValidationError) -> bool:
    return any(error.get("type") == "json_invalid" for error in exc.errors())


def without_body(request: Request) -> Request:
    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(request.scope, receive)


class GateFirstRoute(APIRoute):
    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()

        async def route_handler(request: Request) -> Response:
            try:
                return await handler(request)
            except RequestValidationError as exc:
                if not is_body_decode_error(exc):
                    raise
                # Nothing has run yet; with no body the dependencies are resolved first
                try:
                    return await handler(without_body(request))
                except RequestValidationError:
                    raise exc

        return route_handler
