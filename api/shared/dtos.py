"""Shared DTOs for the chat API."""
from datetime import datetime, timezone
from typing import Dict, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class BaseDTO(BaseModel):
    """Base DTO with common configuration."""

    model_config = ConfigDict(from_attributes=True)


class PaginationResponse(BaseDTO, Generic[T]):
    """Response DTO for paginated results."""
    items: List[T] = Field(description="List of items")
    total: int = Field(description="Total number of items")
    page: int = Field(description="1-based page number")
    per_page: int = Field(description="Items per page")
    has_next: bool = Field(description="Whether there are more items")


class HealthCheckResponse(BaseDTO):
    """Health check response DTO."""
    status: str = Field(description="Service status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(default="0.1.0")
    dependencies: Dict[str, str] = Field(default_factory=dict)
