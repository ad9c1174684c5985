"""
Stripe webhook processing: keeps user_subscriptions in sync and releases a
member's visions when the membership ends.
"""
from supabase import Client
from enpensent_api.config import marketplace_config as mc
from enpensent_api.payments.stripe_client import StripeGateway
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

SYNC_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.resumed",
)
ENDING_EVENTS = ("customer.subscription.deleted", "customer.subscription.paused")
USERS_PAGE_SIZE = 1000


def _iso(timestamp: Optional[int]) -> Optional[str]:
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _first_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    """Older API versions put the id on the invoice, 2025-03-31 and later under parent.subscription_details"""
    subscription = invoice.get("subscription")
    if not subscription:
        details = (invoice.get("parent") or {}).get("subscription_details") or {}
        subscription = details.get("subscription")
    if isinstance(subscription, dict):
        return subscription.get("id")
    return subscription


class SubscriptionWebhookHandler:
    def __init__(self, supabase: Client, stripe_gateway: StripeGateway):
        self.supabase = supabase
        self.stripe = stripe_gateway

    def handle_event(self, event: Dict[str, Any]):
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}
        logger.info(f"Stripe event received: {event_type}")

        if event_type in SYNC_EVENTS:
            self.sync_subscription(obj)
        elif event_type in ENDING_EVENTS:
            self.sync_subscription(obj)
            if obj.get("status") in mc.RELEASE_ON_DELETE_STATUSES:
                self.release_visions(obj)
        elif event_type == "checkout.session.completed":
            if obj.get("mode") == "subscription" and obj.get("subscription"):
                self.sync_subscription(self.stripe.retrieve_subscription(obj["subscription"]))
        elif event_type == "invoice.payment_succeeded":
            subscription_id = _invoice_subscription_id(obj)
            if subscription_id:
                self.sync_subscription(self.stripe.retrieve_subscription(subscription_id))
        elif event_type == "invoice.payment_failed":
            subscription_id = _invoice_subscription_id(obj)
            if subscription_id:
                subscription = self.stripe.retrieve_subscription(subscription_id)
                self.sync_subscription(subscription)
                if subscription.get("status") in mc.RELEASE_ON_PAYMENT_FAILURE_STATUSES:
                    self.release_visions(subscription)
        else:
            logger.info(f"Unhandled event type: {event_type}")

    def _resolve_user(self, subscription: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return {"user_id", "customer_id"} for the subscription's customer, or None to skip"""
        customer = self.stripe.retrieve_customer(subscription["customer"])
        if customer.get("deleted"):
            logger.info("Customer was deleted, skipping")
            return None
        email = customer.get("email")
        if not email:
            logger.info("No email on customer, skipping")
            return None
        user_id = self.find_user_id_by_email(email)
        if not user_id:
            logger.info(f"No user found for email {email}")
            return None
        return {"user_id": user_id, "customer_id": customer.get("id")}

    def find_user_id_by_email(self, email: str) -> Optional[str]:
        target = email.lower()
        page = 1
        while True:
            users = self.supabase.auth.admin.list_users(page=page, per_page=USERS_PAGE_SIZE)
            for user in users or []:
                if (user.email or "").lower() == target:
                    return user.id
            if not users or len(users) < USERS_PAGE_SIZE:
                return None
            page += 1

    def sync_subscription(self, subscription: Dict[str, Any]) -> Optional[str]:
        """Upsert the subscription row. Returns the user id that was synced."""
        logger.info(f"Processing subscription {subscription.get('id')} status={subscription.get('status')}")
        resolved = self._resolve_user(subscription)
        if not resolved:
            return None

        item = _first_item(subscription)
        price = item.get("price") or {}
        product = price.get("product")
        if isinstance(product, dict):
            product = product.get("id")

        self.supabase.table("user_subscriptions").upsert({
            "user_id": resolved["user_id"],
            "stripe_customer_id": resolved["customer_id"],
            "stripe_subscription_id": subscription.get("id"),
            "subscription_status": subscription.get("status"),
            "product_id": product,
            "price_id": price.get("id"),
            "current_period_start": _iso(subscription.get("current_period_start") or item.get("current_period_start")),
            "current_period_end": _iso(subscription.get("current_period_end") or item.get("current_period_end")),
            "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }, on_conflict="user_id").execute()

        logger.info(f"Subscription synced for user {resolved['user_id']} ({subscription.get('status')})")
        return resolved["user_id"]

    def release_visions(self, subscription: Dict[str, Any]) -> int:
        """Clear ownership of every vision held by the lapsed member"""
        resolved = self._resolve_user(subscription)
        if not resolved:
            return 0
        result = self.supabase.rpc(mc.RPC_RELEASE_USER_VISIONS, {"p_user_id": resolved["user_id"]}).execute()
        released = int(result.data or 0)
        logger.info(f"Released {released} vision(s) for user {resolved['user_id']}")
        return released
