"""Spatial anchors attached to habits (placement/rendering lives outside the engine)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import ClassVar

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class Anchor(SQLModel, table=True):
    """A placed reminder anchor for a habit. The engine only checks that one is active."""

    __tablename__: ClassVar[str] = "anchor"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    habit_id: uuid.UUID = Field(nullable=False, index=True)
    icon_type: str = Field(default="glow", max_length=32)
    is_active: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(
        default_factory=datetime.now, nullable=False, sa_type=DateTime(timezone=False)
    )
