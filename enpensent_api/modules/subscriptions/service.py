from supabase import Client
from enpensent_api.config import settings
from enpensent_api.core.dependencies import is_premium_user
from enpensent_api.modules.subscriptions.schemas import SubscriptionStatusResponse, RedirectResponse
from enpensent_api.payments.stripe_client import StripeGateway
from typing import Any, Dict, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class SubscriptionService:
    def __init__(self, supabase: Client, stripe_gateway: Optional[StripeGateway] = None):
        self.supabase = supabase
        self.stripe = stripe_gateway

    def _get_subscription_row(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("user_subscriptions")\
            .select("*")\
            .eq("user_id", user_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            return None
        return result.data

    def get_status(self, user_id: str) -> SubscriptionStatusResponse:
        """Membership state for the paywall"""
        try:
            row = self._get_subscription_row(user_id) or {}
            return SubscriptionStatusResponse(
                is_premium=is_premium_user(user_id, self.supabase),
                subscription_status=row.get("subscription_status"),
                current_period_end=row.get("current_period_end"),
                cancel_at_period_end=bool(row.get("cancel_at_period_end")),
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_checkout(self, user: Dict[str, Any], origin: Optional[str] = None) -> RedirectResponse:
        """Stripe Checkout for the Visionary membership"""
        try:
            if not settings.stripe_premium_price_id:
                raise HTTPException(status_code=500, detail="STRIPE_PREMIUM_PRICE_ID is not set")
            origin = origin or settings.site_url
            params: Dict[str, Any] = {
                "mode": "subscription",
                "line_items": [{"price": settings.stripe_premium_price_id, "quantity": 1}],
                "metadata": {"user_id": user["id"]},
                "success_url": f"{origin}/account?subscription=success",
                "cancel_url": f"{origin}/account?subscription=cancelled",
            }
            customer_id = self.stripe.find_customer_id(user.get("email"))
            if customer_id:
                params["customer"] = customer_id
            elif user.get("email"):
                params["customer_email"] = user["email"]

            session = self.stripe.create_checkout_session(params)
            logger.info(f"Membership checkout {session.get('id')} created for {user['id']}")
            return RedirectResponse(url=session["url"])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating membership checkout: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def create_portal(self, user_id: str, origin: Optional[str] = None) -> RedirectResponse:
        """Stripe billing portal so members can manage or cancel"""
        try:
            row = self._get_subscription_row(user_id)
            if not row or not row.get("stripe_customer_id"):
                raise HTTPException(status_code=404, detail="No Stripe customer found for this user")
            session = self.stripe.create_billing_portal_session(
                row["stripe_customer_id"], f"{origin or settings.site_url}/account"
            )
            return RedirectResponse(url=session["url"])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating billing portal session: {e}")
            raise HTTPException(status_code=500, detail=str(e))
