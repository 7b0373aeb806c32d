"""Enum definitions for clubs service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class MemberRole(str, enum.Enum):
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def is_admin_capable(self) -> bool:
        return self in (MemberRole.ADMIN, MemberRole.OWNER)


ADMIN_CAPABLE_ROLES = (MemberRole.ADMIN, MemberRole.OWNER)
