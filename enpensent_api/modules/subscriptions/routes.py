from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from enpensent_api.config import settings
from enpensent_api.database.supabase_client import get_supabase
from enpensent_api.payments.stripe_client import StripeGateway, get_stripe_gateway
from enpensent_api.core.dependencies import get_current_user
from enpensent_api.modules.subscriptions.schemas import (
    SubscriptionStatusResponse, RedirectResponse, WebhookAck
)
from enpensent_api.modules.subscriptions.service import SubscriptionService
from enpensent_api.modules.subscriptions.webhook import SubscriptionWebhookHandler
from supabase import Client
from typing import Dict
import json
import logging
import stripe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def get_subscription_service(
    supabase: Client = Depends(get_supabase),
    stripe_gateway: StripeGateway = Depends(get_stripe_gateway)
) -> SubscriptionService:
    return SubscriptionService(supabase, stripe_gateway)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """Current membership state for the caller"""
    return SubscriptionService(supabase).get_status(user_data["id"])


@router.post("/checkout", response_model=RedirectResponse)
async def create_membership_checkout(
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service)
):
    """Start a Visionary membership checkout"""
    return service.create_checkout(user_data, origin=request.headers.get("origin"))


@router.post("/portal", response_model=RedirectResponse)
async def create_billing_portal(
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service)
):
    return service.create_portal(user_data["id"], origin=request.headers.get("origin"))


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    supabase: Client = Depends(get_supabase),
    stripe_gateway: StripeGateway = Depends(get_stripe_gateway)
):
    """Server-to-server endpoint for Stripe subscription and invoice events"""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        return JSONResponse(status_code=400, content={"error": "No Stripe signature found"})

    if settings.stripe_webhook_secret:
        try:
            event = stripe_gateway.construct_webhook_event(payload, signature, settings.stripe_webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            return JSONResponse(status_code=400, content={"error": "Invalid signature"})
    elif settings.is_production:
        logger.error("STRIPE_WEBHOOK_SECRET is not set; refusing unsigned webhook")
        return JSONResponse(status_code=400, content={"error": "Invalid signature"})
    else:
        logger.warning("No webhook secret configured, skipping signature verification")
        try:
            event = json.loads(payload)
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    try:
        SubscriptionWebhookHandler(supabase, stripe_gateway).handle_event(event)
    except Exception as e:
        logger.exception(f"Error processing Stripe event: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return WebhookAck()
