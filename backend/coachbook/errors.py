# backend/coachbook/errors.py
"""
problem+json error responses.

Domain errors reach the client as HTTPExceptions whose detail is the
``{"message", "code", "details"}`` dict built by ``to_http_exception``;
framework errors (unknown route, wrong method) carry a plain string.
"""

from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

PROBLEM_MEDIA_TYPE = "application/problem+json"


def _problem_response(
    request: Request,
    status: int,
    detail: str,
    code: Optional[str] = None,
    errors: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    problem: Dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": detail,
        "instance": request.url.path,
    }
    if code:
        problem["code"] = code
    if errors:
        problem["errors"] = jsonable_encoder(errors)
    return JSONResponse(problem, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if isinstance(exc.detail, dict):
            return _problem_response(
                request,
                exc.status_code,
                exc.detail.get("message", ""),
                code=exc.detail.get("code"),
                errors=exc.detail.get("details"),
                headers=getattr(exc, "headers", None),
            )
        return _problem_response(
            request, exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        # Routes convert domain errors themselves; this covers dependencies
        return _problem_response(request, exc.status_code, exc.message, code=exc.code, errors=exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _problem_response(
            request, 422, "Request validation failed", code="validation_error", errors=exc.errors()
        )
