from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlmodel import Field, SQLModel

# app/db/models/barangay.py


class Barangay(SQLModel, table=True):
    """Leaf of the hierarchy; `city_id` is a required FK to `cities.id`."""

    __tablename__ = "barangays"

    id: Optional[int] = Field(default=None, primary_key=True)
    city_id: int = Field(foreign_key="cities.id", index=True)
    name: str = Field(index=True, max_length=255)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
