from services.rounds_service.routers.attendance import router as attendance_router
from services.rounds_service.routers.rounds import router as rounds_router

__all__ = ["attendance_router", "rounds_router"]
