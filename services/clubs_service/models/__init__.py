"""Clubs Service models package.

Communities, their memberships and the reactions members leave on each other.
"""

from services.clubs_service.models.core import (  # noqa: F401
    Community,
    CommunityMember,
    Reaction,
)
from services.clubs_service.models.enums import (  # noqa: F401
    ADMIN_CAPABLE_ROLES,
    MemberRole,
)
