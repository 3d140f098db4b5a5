"""
errors.py — standard error envelope.

Every error response has the shape:
    {"error": {"code": str, "message": str, "details": [{"field", "issue"}]}}

main.py's global handlers and the few routes that answer with an error
directly (validation details, export failures) all build it here.
"""
import json
from typing import Any, List, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    field: Optional[str] = None
    issue: str


class ErrorBody(BaseModel):
    code: str
    message: str
    details: List[ErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: ErrorBody


def make_error_response(
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Build a standard {error: {code, message, details}} response."""
    body = ErrorResponse(
        error=ErrorBody(
            code=code,
            message=message,
            details=[ErrorDetail(**d) for d in details or []],
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def make_validation_error_response(violations_json: str, message: str) -> JSONResponse:
    """
    Parse the JSON-encoded violations list raised by a validator and return a
    422 envelope listing all of them.
    """
    try:
        violations: list[dict[str, Any]] = json.loads(violations_json)
    except (json.JSONDecodeError, ValueError):
        # Plain-text ValueError message
        violations = [{"field": None, "issue": violations_json}]
    if not isinstance(violations, list):
        violations = [{"field": None, "issue": str(violations)}]
    return make_error_response(
        code="VALIDATION_ERROR",
        message=message,
        details=violations,
        status_code=422,
    )
