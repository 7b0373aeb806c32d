"""Region catalogue used by the search filters."""

from fastapi import APIRouter
from libs.common.responses import ListResponse
from services.clubs_service.regions import load_regions
from services.clubs_service.schemas import RegionResponse

router = APIRouter(prefix="/region", tags=["region"])


@router.get("", response_model=ListResponse[RegionResponse])
async def list_regions():
    """List every region with its sub-regions."""
    data = [RegionResponse(**entry) for entry in load_regions()]
    return ListResponse(data=data, count=len(data))
