import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from libs.common.datetime_utils import is_within_window, utc_now
from libs.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin
from services.rounds_service.models.enums import AttendanceType, enum_values
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from services.clubs_service.models import Community
    from services.goals_service.models import StudyGoal
    from services.identity_service.models import User

ACTIVE_ROWS = text("deleted_at IS NULL")


class Round(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """One scheduled meeting of a community; its window gates attendance."""

    __tablename__ = "rounds"

    community_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("communities.id"), nullable=False, index=True
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    community: Mapped["Community"] = relationship(back_populates="rounds")
    attendance: Mapped[List["Attendance"]] = relationship(back_populates="round")
    goals: Mapped[List["StudyGoal"]] = relationship(back_populates="round")

    def is_open_at(self, now: Optional[datetime] = None) -> bool:
        return is_within_window(now or utc_now(), self.start_time, self.end_time)


class Attendance(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "attendance"

    round_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("rounds.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    attendance_type: Mapped[AttendanceType] = mapped_column(
        SAEnum(
            AttendanceType,
            name="attendance_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=AttendanceType.PRESENT,
        nullable=False,
    )
    attended_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    round: Mapped["Round"] = relationship(back_populates="attendance")
    user: Mapped["User"] = relationship()

    __table_args__ = (
        Index(
            "uq_attendance_round_user_active",
            "round_id",
            "user_id",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
    )
