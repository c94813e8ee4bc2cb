from datetime import datetime

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

SYSTEM_USER = "system@local"


def _actor_column() -> Mapped[str]:
    return mapped_column(
        String(255),
        nullable=False,
        default=SYSTEM_USER,
        server_default=text(f"'{SYSTEM_USER}'"),
    )


class AuditMixin:
    """Who/when columns shared by every imported record."""

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by: Mapped[str] = _actor_column()
    updated_by: Mapped[str] = _actor_column()

    def touch(self, user_email: str | None) -> None:
        self.updated_by = user_email or SYSTEM_USER
