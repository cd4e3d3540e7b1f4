"""
Common API schemas used across endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = Field(False, description="Always false")
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    code: str = Field(..., description="Error code")
    timestamp: str = Field(..., description="ISO 8601 timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Invalid admin secret",
                "detail": "Invalid admin secret",
                "code": "HTTP_401",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
