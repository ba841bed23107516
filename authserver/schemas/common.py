"""
Common schemas used across multiple endpoints.
"""
from typing import List, Optional
from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str

    class Config:
        json_schema_extra = {"example": {"message": "Operation successful"}}


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error envelope rendered by the exception handlers."""
    error: str
    status: Optional[str] = None
    message: Optional[str] = None
    details: Optional[List[ErrorDetail]] = None

    class Config:
        json_schema_extra = {"example": {"error": "An error occurred"}}


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str = "1.0.0"
