import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin
from services.clubs_service.models.enums import MemberRole, enum_values
from sqlalchemy import JSON, Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from services.identity_service.models import User
    from services.notifications_service.models import Notification
    from services.rounds_service.models import Round

ACTIVE_ROWS = text("deleted_at IS NULL")

# text[] on PostgreSQL, JSON list elsewhere
TagList = JSON().with_variant(ARRAY(String), "postgresql")


class Community(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "communities"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    region: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    sub_region: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tags: Mapped[List[str]] = mapped_column(TagList, default=list, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    members: Mapped[List["CommunityMember"]] = relationship(
        back_populates="community"
    )
    rounds: Mapped[List["Round"]] = relationship(
        back_populates="community", order_by="Round.round_number"
    )
    notifications: Mapped[List["Notification"]] = relationship(
        back_populates="community"
    )

    __table_args__ = (
        Index(
            "uq_communities_name_active",
            "name",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
    )

    def __repr__(self) -> str:
        return f"<Community {self.name}>"


class CommunityMember(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "community_members"

    community_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("communities.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    role: Mapped[MemberRole] = mapped_column(
        SAEnum(
            MemberRole,
            name="member_role_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=MemberRole.MEMBER,
        nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    community: Mapped["Community"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship()
    reactions: Mapped[List["Reaction"]] = relationship(back_populates="member")

    __table_args__ = (
        Index(
            "uq_community_members_active",
            "community_id",
            "user_id",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
    )

    @property
    def is_admin(self) -> bool:
        return self.role.is_admin_capable


class Reaction(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A short note one user leaves on another member's card."""

    __tablename__ = "reactions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("community_members.id"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(String(500), nullable=False)

    user: Mapped["User"] = relationship()
    member: Mapped["CommunityMember"] = relationship(back_populates="reactions")
