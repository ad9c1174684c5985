from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class VisualizationResponse(BaseModel):
    id: str
    title: str
    image_path: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransferResponse(BaseModel):
    id: str
    visualization_id: str
    from_user_id: Optional[str] = None
    to_user_id: str
    transfer_type: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GiftRequest(BaseModel):
    recipient_id: str


class TransferLimitResponse(BaseModel):
    visualization_id: str
    remaining_transfers: int
    can_transfer: bool
    max_transfers: int
    window_hours: int
