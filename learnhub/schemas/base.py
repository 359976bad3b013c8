from collections.abc import Sequence
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

DataT = TypeVar("DataT")


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""

    created_at: datetime
    updated_at: datetime


class ApiResponse(BaseSchema, Generic[DataT]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    message: str = "Success"
    data: DataT | None = None


class Page(BaseSchema, Generic[DataT]):
    """Generic paginated payload."""

    items: list[DataT]
    total: int
    page: int
    page_size: int
    total_pages: int

    @staticmethod
    def build(items: Sequence[Any], total: int, page: int, page_size: int) -> dict[str, Any]:
        """Raw payload; the endpoint response_model validates the items."""
        return {
            "items": list(items),
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": (total + page_size - 1) // page_size,
        }


class MessageResponse(BaseSchema):
    """Simple message response."""

    message: str
    success: bool = True


def ok(data: Any = None, message: str = "Success") -> dict[str, Any]:
    """Build the success envelope; FastAPI validates it against the response_model."""
    return {"success": True, "message": message, "data": data}
