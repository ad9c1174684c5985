from supabase import Client
from enpensent_api.config import settings, marketplace_config as mc
from enpensent_api.core.dependencies import (
    is_premium_user, can_transfer_visualization, get_remaining_transfers
)
from enpensent_api.modules.visualizations.schemas import (
    VisualizationResponse, TransferResponse, TransferLimitResponse
)
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class VisualizationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_visualization(self, visualization_id: str) -> VisualizationResponse:
        """Get visualization by ID"""
        try:
            result = self.supabase.table("saved_visualizations")\
                .select("*")\
                .eq("id", visualization_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Vision not found")

            return VisualizationResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_owner(
        self,
        visualization_id: str,
        user_id: str,
        expected_owner: Optional[str] = None,
        only_if_unowned: bool = False
    ) -> VisualizationResponse:
        """
        Move ownership with a conditional update.
        expected_owner / only_if_unowned make the update match nothing once the
        vision changed hands after the caller read it.
        """
        try:
            query = self.supabase.table("saved_visualizations")\
                .update({"user_id": user_id, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", visualization_id)
            if only_if_unowned:
                query = query.is_("user_id", "null")
            elif expected_owner is not None:
                query = query.eq("user_id", expected_owner)
            result = query.execute()

            if not result.data:
                if only_if_unowned:
                    raise HTTPException(status_code=409, detail="Vision has already been claimed")
                if expected_owner is not None:
                    raise HTTPException(status_code=409, detail="Vision ownership has changed")
                raise HTTPException(status_code=500, detail="Failed to update vision ownership")

            return VisualizationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def record_transfer(
        self,
        visualization_id: str,
        from_user_id: Optional[str],
        to_user_id: str,
        transfer_type: str
    ) -> TransferResponse:
        """Append a row to the transfer log"""
        try:
            result = self.supabase.table("visualization_transfers").insert({
                "visualization_id": visualization_id,
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "transfer_type": transfer_type,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to record transfer")

            return TransferResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_transfers(self, visualization_id: str, limit: int = 50) -> List[TransferResponse]:
        """Transfer history for a visualization, newest first"""
        try:
            result = self.supabase.table("visualization_transfers")\
                .select("*")\
                .eq("visualization_id", visualization_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()

            return [TransferResponse(**t) for t in (result.data or [])]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_transfer_limit(self, visualization_id: str) -> TransferLimitResponse:
        try:
            remaining = get_remaining_transfers(visualization_id, self.supabase)
            return TransferLimitResponse(
                visualization_id=visualization_id,
                remaining_transfers=remaining,
                can_transfer=remaining > 0,
                max_transfers=settings.max_transfers_per_window,
                window_hours=settings.transfer_window_hours,
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_claimable(self, limit: int = 20, offset: int = 0) -> List[VisualizationResponse]:
        """Visions released by lapsed memberships (no owner)"""
        try:
            result = self.supabase.table("saved_visualizations")\
                .select("*")\
                .is_("user_id", "null")\
                .order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()

            return [VisualizationResponse(**v) for v in (result.data or [])]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _has_active_listing(self, visualization_id: str) -> bool:
        result = self.supabase.table("visualization_listings")\
            .select("id")\
            .eq("visualization_id", visualization_id)\
            .eq("status", mc.LISTING_ACTIVE)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def gift(self, visualization_id: str, sender_id: str, recipient_id: str) -> TransferResponse:
        """Give a vision to another Visionary member, free of fees"""
        try:
            if recipient_id == sender_id:
                raise HTTPException(status_code=400, detail="You cannot gift a vision to yourself")

            visualization = self.get_visualization(visualization_id)
            if visualization.user_id != sender_id:
                raise HTTPException(status_code=403, detail="You do not own this vision")

            if not is_premium_user(recipient_id, self.supabase):
                raise HTTPException(status_code=400, detail="Recipient must be a Visionary member")

            if self._has_active_listing(visualization_id):
                raise HTTPException(status_code=409, detail="Cancel the active listing before gifting this vision")

            if not can_transfer_visualization(visualization_id, self.supabase):
                raise HTTPException(
                    status_code=400,
                    detail="Transfer limit reached: this vision has reached its maximum transfer limit"
                )

            self.set_owner(visualization_id, recipient_id, expected_owner=sender_id)
            transfer = self.record_transfer(visualization_id, sender_id, recipient_id, mc.TRANSFER_GIFT)
            logger.info(f"Vision {visualization_id} gifted from {sender_id} to {recipient_id}")
            return transfer
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def claim(self, visualization_id: str, user_id: str) -> TransferResponse:
        """Take ownership of a released vision"""
        try:
            visualization = self.get_visualization(visualization_id)
            if visualization.user_id is not None:
                raise HTTPException(status_code=409, detail="Vision has already been claimed")

            if not can_transfer_visualization(visualization_id, self.supabase):
                raise HTTPException(
                    status_code=400,
                    detail="Transfer limit reached: this vision has reached its maximum transfer limit"
                )

            self.set_owner(visualization_id, user_id, only_if_unowned=True)
            transfer = self.record_transfer(visualization_id, None, user_id, mc.TRANSFER_CLAIM)
            logger.info(f"Vision {visualization_id} claimed by {user_id}")
            return transfer
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
