from typing import Optional

from libs.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin
from sqlalchemy import Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

ACTIVE_ROWS = text("deleted_at IS NULL")


class User(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "users"

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    nickname: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    provider: Mapped[str] = mapped_column(String(32), nullable=False, default="kakao")
    provider_id: Mapped[str] = mapped_column(String(128), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index(
            "uq_users_provider_identity_active",
            "provider",
            "provider_id",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"
