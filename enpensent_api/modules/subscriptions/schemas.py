from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SubscriptionStatusResponse(BaseModel):
    is_premium: bool
    subscription_status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class RedirectResponse(BaseModel):
    url: str


class WebhookAck(BaseModel):
    received: bool = True
