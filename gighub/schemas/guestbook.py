from __future__ import annotations

from pydantic import BaseModel, Field


class GuestbookForm(BaseModel):
    message: str = Field(max_length=2000)
