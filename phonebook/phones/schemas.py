"""Phone record and request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PhoneRecord(BaseModel):
    """Read-only copy of a row owned by the data service."""

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    id: str
    phone: str
    created_at: datetime | None = None


class PhoneWriteRequest(BaseModel):
    phone: str = Field("", max_length=64)


class PhoneFormResponse(BaseModel):
    ok: bool
    error: str = ""
    phones: list[PhoneRecord] = []
