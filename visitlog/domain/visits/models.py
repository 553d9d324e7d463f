from datetime import datetime, timezone
from typing import Any

from sqlalchemy import String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from advanced_alchemy.types import DateTimeUTC
from advanced_alchemy.extensions.litestar import base

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"


class Visit(base.BigIntAuditBase):
    """One captured request to the client-info endpoint.

    Rows are written once and never updated. Coordinates are kept as text so
    the provider's formatting survives the round trip.
    """

    __tablename__ = "visits"

    # Normalized client address ("localhost" for loopback, "Unknown" if absent)
    ip: Mapped[str] = mapped_column(String(255), nullable=False, default=UNKNOWN)
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default=UNKNOWN)

    city: Mapped[str] = mapped_column(String(255), nullable=False, default=NOT_AVAILABLE)
    region: Mapped[str] = mapped_column(String(255), nullable=False, default=NOT_AVAILABLE)
    country: Mapped[str] = mapped_column(String(255), nullable=False, default=NOT_AVAILABLE)
    latitude: Mapped[str] = mapped_column(String(64), nullable=False, default=NOT_AVAILABLE)
    longitude: Mapped[str] = mapped_column(String(64), nullable=False, default=NOT_AVAILABLE)

    visited_at: Mapped[datetime] = mapped_column(
        DateTimeUTC(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_visits_visited_at", "visited_at"),
    )

    def to_dict(self, exclude: set[str] | None = None) -> dict[str, Any]:
        """Return the row as a JSON-friendly dict for the log viewer."""
        data = {
            "id": self.id,
            "ip": self.ip,
            "user_agent": self.user_agent,
            "city": self.city,
            "region": self.region,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "visited_at": self.visited_at.isoformat() if self.visited_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if exclude:
            return {key: value for key, value in data.items() if key not in exclude}
        return data

    def __repr__(self) -> str:
        return f"<Visit(id={self.id}, ip={self.ip}, country={self.country}, visited_at={self.visited_at})>"
