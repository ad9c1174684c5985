from fastapi import APIRouter, Depends
from enpensent_api.database.supabase_client import get_supabase
from enpensent_api.modules.listings.schemas import ListingCreate, ListingPriceUpdate, ListingResponse
from enpensent_api.modules.listings.service import ListingService
from enpensent_api.core.dependencies import get_current_user, require_premium
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/listings", tags=["listings"])


def get_listing_service(supabase: Client = Depends(get_supabase)) -> ListingService:
    return ListingService(supabase)


@router.get("", response_model=List[ListingResponse])
async def list_active_listings(
    limit: int = 20,
    offset: int = 0,
    service: ListingService = Depends(get_listing_service)
):
    """Active listings, newest first"""
    return service.list_active(limit=limit, offset=offset)


@router.get("/mine", response_model=List[ListingResponse])
async def list_my_listings(
    user_data: Dict = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service)
):
    """Caller's listings in any state"""
    return service.list_by_seller(user_data["id"])


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: str,
    service: ListingService = Depends(get_listing_service)
):
    return service.get_listing(listing_id)


@router.post("", response_model=ListingResponse, status_code=201)
async def create_listing(
    listing_data: ListingCreate,
    user_data: Dict = Depends(require_premium),
    service: ListingService = Depends(get_listing_service)
):
    """List an owned vision (Visionary members only)"""
    return service.create_listing(listing_data, user_data["id"])


@router.patch("/{listing_id}", response_model=ListingResponse)
async def update_listing_price(
    listing_id: str,
    price_data: ListingPriceUpdate,
    user_data: Dict = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service)
):
    return service.update_price(listing_id, price_data.price_cents, user_data["id"])


@router.post("/{listing_id}/cancel", response_model=ListingResponse)
async def cancel_listing(
    listing_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service)
):
    """Withdraw an active listing"""
    return service.cancel_listing(listing_id, user_data["id"])
