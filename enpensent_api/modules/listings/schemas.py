from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ListingCreate(BaseModel):
    visualization_id: str
    price_cents: int = Field(ge=0)


class ListingPriceUpdate(BaseModel):
    price_cents: int = Field(ge=0)


class ListingResponse(BaseModel):
    id: str
    visualization_id: str
    seller_id: str
    buyer_id: Optional[str] = None
    price_cents: int
    status: str
    sold_at: Optional[datetime] = None
    stripe_payment_intent_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
