"""
Response models for RentAdmin's JSON endpoints.

The console itself renders HTML; these Pydantic v2 models cover the few
machine-readable responses: the health check and the error envelope returned
by the exception handlers in api/main.py.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

VERSION = "1.0.0"


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class ComponentStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "configured"
    base_url: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health.

    Liveness only: the rental API is reported as configured, not called.
    """

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str = VERSION
    api: ComponentStatus
