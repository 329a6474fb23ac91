from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlmodel import Field, SQLModel


class Region(SQLModel, table=True):
    """
    Top level of the location hierarchy.

    Notes:
    - Only the base columns live here. `code`, `description`, `modified_by`
      and `modified_at` are added by run_minimal_migrations() and may be
      missing on older databases.
    - Name uniqueness among active regions (case-insensitive) is enforced by
      a partial unique index created in the migrations.
    """

    __tablename__ = "regions"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=255)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
