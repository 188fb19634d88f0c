"""Pydantic schemas for request/response validation."""

from merchant.schemas.common import BaseSchema, ErrorResponse, HealthResponse, MessageResponse

__all__ = [
    "BaseSchema",
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse",
]
