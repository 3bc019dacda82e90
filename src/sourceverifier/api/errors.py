"""Translate workflow and HTTP errors into the response envelope."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

from sourceverifier.workflow.errors import WorkflowError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "data": None,
            "metadata": {},
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(WorkflowError)
    async def _workflow_error(
        request: Request, exc: WorkflowError
    ) -> JSONResponse:
        logger.info(
            "event=request_rejected path=%s status=%d error=%s",
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def _http_error(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(
            str(p) for p in first.get("loc", ()) if p != "body"
        )
        msg = first.get("msg", "Invalid request")
        return error_response(400, f"{loc}: {msg}" if loc else msg)
