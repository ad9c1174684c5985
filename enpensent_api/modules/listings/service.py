from supabase import Client
from enpensent_api.config import settings, marketplace_config as mc
from enpensent_api.core.dependencies import get_remaining_transfers
from enpensent_api.modules.listings.schemas import ListingCreate, ListingResponse
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ListingService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    @staticmethod
    def validate_price(price_cents: int):
        """0 is a free transfer; anything else must sit inside the configured range"""
        if price_cents == 0:
            return
        if price_cents < settings.listing_min_price_cents:
            raise HTTPException(
                status_code=400,
                detail=f"Price must be at least ${settings.listing_min_price_cents / 100:.2f}"
            )
        if price_cents > settings.listing_max_price_cents:
            raise HTTPException(status_code=400, detail="Price exceeds maximum allowed")

    def get_listing(self, listing_id: str) -> ListingResponse:
        """Get listing by ID"""
        try:
            result = self.supabase.table("visualization_listings")\
                .select("*")\
                .eq("id", listing_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Listing not found")

            return ListingResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_active(self, limit: int = 20, offset: int = 0) -> List[ListingResponse]:
        try:
            result = self.supabase.table("visualization_listings")\
                .select("*")\
                .eq("status", mc.LISTING_ACTIVE)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()

            return [ListingResponse(**listing) for listing in (result.data or [])]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_by_seller(self, seller_id: str) -> List[ListingResponse]:
        try:
            result = self.supabase.table("visualization_listings")\
                .select("*")\
                .eq("seller_id", seller_id)\
                .order("created_at", desc=True)\
                .execute()

            return [ListingResponse(**listing) for listing in (result.data or [])]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_listing(self, listing_data: ListingCreate, seller_id: str) -> ListingResponse:
        """Publish an owned vision on the marketplace"""
        try:
            self.validate_price(listing_data.price_cents)

            vis_result = self.supabase.table("saved_visualizations")\
                .select("id, user_id")\
                .eq("id", listing_data.visualization_id)\
                .maybe_single()\
                .execute()
            if not vis_result or not vis_result.data:
                raise HTTPException(status_code=404, detail="Vision not found")
            if vis_result.data.get("user_id") != seller_id:
                raise HTTPException(status_code=403, detail="You do not own this vision")

            existing = self.supabase.table("visualization_listings")\
                .select("id")\
                .eq("visualization_id", listing_data.visualization_id)\
                .eq("status", mc.LISTING_ACTIVE)\
                .limit(1)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=409, detail="This vision is already listed")

            if get_remaining_transfers(listing_data.visualization_id, self.supabase) <= 0:
                raise HTTPException(
                    status_code=400,
                    detail=f"Transfer limit reached (max {settings.max_transfers_per_window} "
                           f"per {settings.transfer_window_hours} hours)"
                )

            result = self.supabase.table("visualization_listings").insert({
                "visualization_id": listing_data.visualization_id,
                "seller_id": seller_id,
                "price_cents": listing_data.price_cents,
                "status": mc.LISTING_ACTIVE,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create listing")

            listing = ListingResponse(**result.data[0])
            logger.info(f"Listing {listing.id} created for vision {listing.visualization_id} at {listing.price_cents} cents")
            return listing
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _get_own_active_listing(self, listing_id: str, seller_id: str) -> ListingResponse:
        listing = self.get_listing(listing_id)
        if listing.seller_id != seller_id:
            raise HTTPException(status_code=403, detail="You can only manage your own listings")
        if listing.status != mc.LISTING_ACTIVE:
            raise HTTPException(status_code=400, detail=f"Listing is {listing.status}")
        return listing

    def update_price(self, listing_id: str, price_cents: int, seller_id: str) -> ListingResponse:
        try:
            self._get_own_active_listing(listing_id, seller_id)
            self.validate_price(price_cents)

            result = self.supabase.table("visualization_listings")\
                .update({"price_cents": price_cents, "updated_at": _now()})\
                .eq("id", listing_id)\
                .eq("status", mc.LISTING_ACTIVE)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=409, detail="Listing is no longer available")

            return ListingResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def cancel_listing(self, listing_id: str, seller_id: str) -> ListingResponse:
        try:
            self._get_own_active_listing(listing_id, seller_id)

            result = self.supabase.table("visualization_listings")\
                .update({"status": mc.LISTING_CANCELLED, "updated_at": _now()})\
                .eq("id", listing_id)\
                .eq("status", mc.LISTING_ACTIVE)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=409, detail="Listing is no longer available")

            logger.info(f"Listing {listing_id} cancelled by {seller_id}")
            return ListingResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def mark_sold(self, listing_id: str, buyer_id: str, payment_intent_id: Optional[str] = None) -> ListingResponse:
        """active -> sold. Matches nothing if the listing already left the active state."""
        try:
            update_data = {
                "status": mc.LISTING_SOLD,
                "buyer_id": buyer_id,
                "sold_at": _now(),
                "updated_at": _now(),
            }
            if payment_intent_id:
                update_data["stripe_payment_intent_id"] = payment_intent_id

            result = self.supabase.table("visualization_listings")\
                .update(update_data)\
                .eq("id", listing_id)\
                .eq("status", mc.LISTING_ACTIVE)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=409, detail="Listing is no longer available")

            return ListingResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
