from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Shop(BaseModel):
    """
    A shop record owned by the primary store.

    The cache holds a derived, possibly stale copy. `id` is immutable after
    creation; fields not declared here are preserved as extras so a cached
    copy round-trips whatever the store returned.
    """
    model_config = ConfigDict(extra="allow")

    id: int | None = Field(default=None, description="Shop identifier")
    name: str | None = Field(default=None, description="Shop name")
    type_id: int | None = Field(default=None, description="Shop category")
    images: str | None = Field(default=None, description="Comma-separated image URLs")
    area: str | None = Field(default=None, description="Business district")
    address: str | None = Field(default=None, description="Street address")
    x: float | None = Field(default=None, description="Longitude")
    y: float | None = Field(default=None, description="Latitude")
    avg_price: int | None = Field(default=None, description="Average spend per person")
    sold: int | None = Field(default=None, description="Units sold")
    comments: int | None = Field(default=None, description="Comment count")
    score: int | None = Field(default=None, description="Rating x10")
    open_hours: str | None = Field(default=None, description="Opening hours, e.g. 10:00-22:00")
    create_time: datetime | None = None
    update_time: datetime | None = None

    def update_fields(self) -> dict[str, Any]:
        """Fields explicitly provided by the caller, excluding the identifier."""
        return self.model_dump(exclude={"id"}, exclude_unset=True)


class Result(BaseModel):
    """
    Response envelope returned by the shop service.

    `success=False` with `error_msg` is a business failure such as
    "shop not found"; internal failures are raised, never folded in here.
    """

    success: bool
    error_msg: str | None = None
    data: Any = None
    total: int | None = None

    @classmethod
    def ok(cls, data: Any = None, total: int | None = None) -> "Result":
        return cls(success=True, data=data, total=total)

    @classmethod
    def fail(cls, error_msg: str) -> "Result":
        return cls(success=False, error_msg=error_msg)
