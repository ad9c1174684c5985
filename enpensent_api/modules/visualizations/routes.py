from fastapi import APIRouter, Depends
from enpensent_api.database.supabase_client import get_supabase
from enpensent_api.modules.visualizations.schemas import (
    VisualizationResponse, TransferResponse, TransferLimitResponse, GiftRequest
)
from enpensent_api.modules.visualizations.service import VisualizationService
from enpensent_api.core.dependencies import get_current_user, require_premium
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/visualizations", tags=["visualizations"])


def get_visualization_service(supabase: Client = Depends(get_supabase)) -> VisualizationService:
    return VisualizationService(supabase)


@router.get("/claimable", response_model=List[VisualizationResponse])
async def list_claimable(
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user),
    service: VisualizationService = Depends(get_visualization_service)
):
    """Visions without an owner that Visionary members may claim"""
    return service.list_claimable(limit=limit, offset=offset)


@router.get("/{visualization_id}/transfer-limit", response_model=TransferLimitResponse)
async def get_transfer_limit(
    visualization_id: str,
    user_data: Dict = Depends(get_current_user),
    service: VisualizationService = Depends(get_visualization_service)
):
    return service.get_transfer_limit(visualization_id)


@router.get("/{visualization_id}/transfers", response_model=List[TransferResponse])
async def list_transfers(
    visualization_id: str,
    limit: int = 50,
    user_data: Dict = Depends(get_current_user),
    service: VisualizationService = Depends(get_visualization_service)
):
    """Ownership history, newest first"""
    return service.list_transfers(visualization_id, limit=limit)


@router.post("/{visualization_id}/gift", response_model=TransferResponse, status_code=201)
async def gift_visualization(
    visualization_id: str,
    gift_data: GiftRequest,
    user_data: Dict = Depends(require_premium),
    service: VisualizationService = Depends(get_visualization_service)
):
    """Gift an owned vision to another Visionary member"""
    return service.gift(visualization_id, user_data["id"], gift_data.recipient_id)


@router.post("/{visualization_id}/claim", response_model=TransferResponse, status_code=201)
async def claim_visualization(
    visualization_id: str,
    user_data: Dict = Depends(require_premium),
    service: VisualizationService = Depends(get_visualization_service)
):
    """Claim a released vision"""
    return service.claim(visualization_id, user_data["id"])
