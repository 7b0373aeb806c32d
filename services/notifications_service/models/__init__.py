import uuid
from typing import TYPE_CHECKING

from libs.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin
from sqlalchemy import Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from services.clubs_service.models import Community
    from services.identity_service.models import User


class Notification(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Community notice board entry.

    At most one active notification per community is pinned; pinning goes
    through ``services.notifications_service.router.pin_exclusively``.
    """

    __tablename__ = "notifications"

    community_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("communities.id"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    community: Mapped["Community"] = relationship(back_populates="notifications")
    author: Mapped["User"] = relationship()
