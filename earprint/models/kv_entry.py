"""
Earprint — KeyValueEntry model (one JSON document per storage key).
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from earprint.database import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(
        String(255), primary_key=True,
        comment="Namespaced key, e.g. headphone_signature_<id>",
    )
    value: Mapped[Any] = mapped_column(
        JSON, nullable=False, comment="JSON document stored under the key"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry key={self.key!r}>"
