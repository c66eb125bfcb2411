"""
API Response Models

Pydantic models for API response serialization. Protocol payloads
(UploadAck, DownloadResponse, ListResponse) live in core.schemas.transport.
"""

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "merklevault-server"
    version: str = "v1"
    batches: int = Field(default=0, description="Number of stored batches")


class ErrorDetail(BaseModel):
    """Error detail in error responses."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = Field(default=False)


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = Field(default=False)
    error: ErrorDetail
