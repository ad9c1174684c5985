from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError
from enpensent_api.config import settings
from enpensent_api.database.supabase_client import get_supabase
from enpensent_api.payments.stripe_client import StripeGateway, get_stripe_gateway
from enpensent_api.core.dependencies import get_marketplace_user
from enpensent_api.core.errors import MarketplaceError
from enpensent_api.core.rate_limit import limiter
from enpensent_api.modules.marketplace.schemas import (
    PurchaseRequest, CompletePurchaseRequest, CheckoutResponse, PurchaseResponse
)
from enpensent_api.modules.marketplace.service import MarketplaceService
from supabase import Client
from typing import Dict, Type, TypeVar, Union
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["marketplace"])

BodyT = TypeVar("BodyT", bound=BaseModel)


def get_marketplace_stripe() -> StripeGateway:
    try:
        return get_stripe_gateway()
    except RuntimeError as e:
        raise MarketplaceError(str(e))


def get_marketplace_service(
    supabase: Client = Depends(get_supabase),
    stripe_gateway: StripeGateway = Depends(get_marketplace_stripe)
) -> MarketplaceService:
    return MarketplaceService(supabase, stripe_gateway)


async def _parse_body(request: Request, model: Type[BodyT]) -> BodyT:
    """Parse the JSON body so malformed requests keep the {"error": ...} shape"""
    try:
        payload = await request.json()
    except ValueError:
        raise MarketplaceError("Invalid JSON body")
    try:
        return model.model_validate(payload)
    except ValidationError:
        raise MarketplaceError("Listing ID is required")


@router.post("/marketplace-purchase", response_model=Union[CheckoutResponse, PurchaseResponse])
@limiter.limit(settings.purchase_rate_limit)
async def marketplace_purchase(
    request: Request,
    user_data: Dict = Depends(get_marketplace_user),
    service: MarketplaceService = Depends(get_marketplace_service)
):
    """
    Buy a listed vision.
    Free listings transfer immediately and return {success, message, visualizationId}.
    Paid listings return {url} for Stripe Checkout; ownership moves on completion.
    """
    body = await _parse_body(request, PurchaseRequest)
    return service.purchase(
        body.listing_id,
        body.action,
        user_data,
        origin=request.headers.get("origin"),
    )


@router.post("/complete-marketplace-purchase", response_model=PurchaseResponse)
@limiter.limit(settings.purchase_rate_limit)
async def complete_marketplace_purchase(
    request: Request,
    user_data: Dict = Depends(get_marketplace_user),
    service: MarketplaceService = Depends(get_marketplace_service)
):
    """Finalize a paid purchase once Stripe reports the checkout session as paid"""
    body = await _parse_body(request, CompletePurchaseRequest)
    return service.complete_purchase(body.listing_id, user_data)
