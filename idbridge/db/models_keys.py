"""SQLAlchemy model for session-token signing keys."""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from idbridge.db.base import BaseEntity


class SessionKeyEntity(BaseEntity):
    """A directory signing key. Retired keys stay published but never sign."""

    __tablename__ = "session_keys"

    kid: Mapped[str] = mapped_column(String(64), primary_key=True)
    sealed_private_key: Mapped[str] = mapped_column(Text, nullable=False)
    public_pem: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    retired_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def retired(self) -> bool:
        return self.retired_at is not None
