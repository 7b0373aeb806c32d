from services.clubs_service.routers.communities import router as communities_router
from services.clubs_service.routers.communities import user_communities_router
from services.clubs_service.routers.members import router as members_router
from services.clubs_service.routers.reactions import router as reactions_router
from services.clubs_service.routers.regions import router as regions_router
from services.clubs_service.routers.search import router as search_router
from services.clubs_service.routers.upload import router as upload_router

__all__ = [
    "communities_router",
    "members_router",
    "reactions_router",
    "regions_router",
    "search_router",
    "upload_router",
    "user_communities_router",
]
