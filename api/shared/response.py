"""Response envelope shared by every route: ``{data, message, status}``."""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseModel(BaseModel, Generic[T]):
    data: Optional[T] = Field(description="Response payload", default=None)
    message: Optional[str] = Field(description="Human readable outcome", examples=["Success"])
    status: str = Field(default="ok", description="ok or error")

    @classmethod
    def success(
        cls, data: Optional[T] = None, message: str = "Success"
    ) -> "ResponseModel[T]":
        return cls(data=data, message=message, status="ok")
