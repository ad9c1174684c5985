"""Stripe access for checkout, customer lookup and webhooks. Returns plain dicts."""
import logging
from typing import Any, Dict, List, Optional

import stripe

from enpensent_api.config import settings

logger = logging.getLogger(__name__)


def _to_dict(obj: Any) -> Optional[Dict[str, Any]]:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj
    for attr in ("to_dict_recursive", "to_dict"):
        converter = getattr(obj, attr, None)
        if callable(converter):
            return converter()
    return dict(obj)


class StripeGateway:
    def __init__(self, client: stripe.StripeClient):
        self.client = client

    def create_checkout_session(self, params: Dict[str, Any]) -> Dict[str, Any]:
        session = self.client.checkout.sessions.create(params)
        logger.info(f"Created checkout session {session.id} (mode={params.get('mode')})")
        return _to_dict(session)

    def list_checkout_sessions(self, limit: int = 100) -> List[Dict[str, Any]]:
        result = self.client.checkout.sessions.list({"limit": limit})
        return [_to_dict(s) for s in result.data]

    def find_customer_id(self, email: Optional[str]) -> Optional[str]:
        """Existing customer id for this email, if any."""
        if not email:
            return None
        result = self.client.customers.list({"email": email, "limit": 1})
        if result.data:
            return result.data[0].id
        return None

    def retrieve_customer(self, customer_id: str) -> Dict[str, Any]:
        return _to_dict(self.client.customers.retrieve(customer_id))

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return _to_dict(self.client.subscriptions.retrieve(subscription_id))

    def create_billing_portal_session(self, customer_id: str, return_url: str) -> Dict[str, Any]:
        session = self.client.billing_portal.sessions.create({
            "customer": customer_id,
            "return_url": return_url,
        })
        return _to_dict(session)

    def construct_webhook_event(self, payload: bytes, signature: str, secret: str) -> Dict[str, Any]:
        """Verify the Stripe-Signature header. Raises stripe.SignatureVerificationError."""
        event = self.client.construct_event(payload, signature, secret)
        return _to_dict(event)


class StripeClientHolder:
    _gateway: StripeGateway = None

    @classmethod
    def get_gateway(cls) -> StripeGateway:
        if cls._gateway is None:
            if not settings.stripe_secret_key:
                raise RuntimeError("STRIPE_SECRET_KEY is not set")
            cls._gateway = StripeGateway(stripe.StripeClient(settings.stripe_secret_key))
        return cls._gateway

    @classmethod
    def reset_gateway(cls):
        cls._gateway = None


def get_stripe_gateway() -> StripeGateway:
    return StripeClientHolder.get_gateway()
