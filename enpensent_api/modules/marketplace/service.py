"""
Vision purchases between members.

Free listings transfer immediately. Paid listings go through Stripe Checkout;
ownership moves in complete_purchase once a paid session for the same listing,
buyer and current price is found, and only away from the seller named on the
listing. Every failure surfaces as MarketplaceError.
"""
from supabase import Client
from fastapi import HTTPException
from enpensent_api.config import settings, marketplace_config as mc
from enpensent_api.core.errors import MarketplaceError
from enpensent_api.core.dependencies import is_premium_user, get_remaining_transfers
from enpensent_api.modules.listings.schemas import ListingResponse
from enpensent_api.modules.listings.service import ListingService
from enpensent_api.modules.visualizations.service import VisualizationService
from enpensent_api.modules.marketplace.schemas import CheckoutResponse, PurchaseResponse
from enpensent_api.payments.stripe_client import StripeGateway
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

FREE_TRANSFER_MESSAGE = "Vision acquired successfully"
PURCHASE_COMPLETE_MESSAGE = "Purchase completed successfully"
LISTING_UNAVAILABLE_MESSAGE = "Listing is no longer available"


def _session_metadata(session: Dict[str, Any]) -> Dict[str, Any]:
    return session.get("metadata") or {}


def _payment_intent_id(session: Dict[str, Any]) -> Optional[str]:
    payment_intent = session.get("payment_intent")
    if isinstance(payment_intent, dict):
        return payment_intent.get("id")
    return payment_intent


class MarketplaceService:
    def __init__(self, supabase: Client, stripe_gateway: StripeGateway):
        self.supabase = supabase
        self.stripe = stripe_gateway
        self.listings = ListingService(supabase)
        self.visualizations = VisualizationService(supabase)

    def _load_listing(self, listing_id: str) -> ListingResponse:
        try:
            return self.listings.get_listing(listing_id)
        except HTTPException as e:
            raise MarketplaceError(str(e.detail))

    def _transfer(
        self,
        listing: ListingResponse,
        buyer_id: str,
        transfer_type: str,
        payment_intent_id: Optional[str] = None
    ):
        """Owner update, then listing sold, then transfer log. Stops at the first failure."""
        try:
            self.visualizations.set_owner(listing.visualization_id, buyer_id, expected_owner=listing.seller_id)
        except HTTPException as e:
            if e.status_code == 409:
                logger.warning(f"Listing {listing.id} is stale: vision {listing.visualization_id} left the seller")
                raise MarketplaceError(LISTING_UNAVAILABLE_MESSAGE)
            raise MarketplaceError(str(e.detail))
        logger.info(f"Vision {listing.visualization_id} owner set to {buyer_id}")
        try:
            self.listings.mark_sold(listing.id, buyer_id, payment_intent_id)
            logger.info(f"Listing {listing.id} marked sold")
            self.visualizations.record_transfer(
                listing.visualization_id, listing.seller_id, buyer_id, transfer_type
            )
            logger.info(f"Transfer recorded for vision {listing.visualization_id} ({transfer_type})")
        except HTTPException as e:
            raise MarketplaceError(str(e.detail))

    def purchase(self, listing_id: str, action: str, user: Dict[str, Any], origin: Optional[str] = None):
        """Acquire a listing: immediate transfer when free, otherwise a Stripe Checkout URL"""
        try:
            user_id = user["id"]
            logger.info(f"Purchase requested: listing={listing_id} action={action} user={user_id}")

            if action not in mc.PURCHASE_ACTIONS:
                raise MarketplaceError(f"Invalid action: {action}")

            if not is_premium_user(user_id, self.supabase):
                raise MarketplaceError("Premium membership required to purchase visions")

            listing = self._load_listing(listing_id)
            if listing.status != mc.LISTING_ACTIVE:
                raise MarketplaceError(LISTING_UNAVAILABLE_MESSAGE)

            if listing.seller_id == user_id:
                raise MarketplaceError("You cannot purchase your own listing")

            remaining = get_remaining_transfers(listing.visualization_id, self.supabase)
            if remaining <= 0:
                raise MarketplaceError(
                    f"Transfer limit reached: this vision has {remaining} of "
                    f"{settings.max_transfers_per_window} transfers remaining in the next "
                    f"{settings.transfer_window_hours} hours"
                )

            if listing.price_cents == 0:
                self._transfer(listing, user_id, mc.TRANSFER_FREE_CLAIM)
                logger.info(f"Free transfer of listing {listing.id} to {user_id} completed")
                return PurchaseResponse(message=FREE_TRANSFER_MESSAGE, visualizationId=listing.visualization_id)

            return self._create_checkout(listing, user, origin or settings.site_url)
        except MarketplaceError:
            raise
        except Exception as e:
            logger.error(f"Error purchasing listing {listing_id}: {e}")
            raise MarketplaceError(str(e))

    def _create_checkout(self, listing: ListingResponse, user: Dict[str, Any], origin: str) -> CheckoutResponse:
        try:
            visualization = self.visualizations.get_visualization(listing.visualization_id)
        except HTTPException as e:
            raise MarketplaceError(str(e.detail))
        if visualization.user_id != listing.seller_id:
            raise MarketplaceError(LISTING_UNAVAILABLE_MESSAGE)
        title = visualization.title

        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [{
                "price_data": {
                    "currency": settings.currency,
                    "unit_amount": listing.price_cents,
                    "product_data": {"name": f"Vision: {title}"},
                },
                "quantity": 1,
            }],
            "metadata": {
                "listing_id": listing.id,
                "buyer_id": user["id"],
                "seller_id": listing.seller_id,
                "visualization_id": listing.visualization_id,
            },
            "success_url": f"{origin}/marketplace?purchase=success&listing={listing.id}",
            "cancel_url": f"{origin}/marketplace?purchase=cancelled",
        }
        customer_id = self.stripe.find_customer_id(user.get("email"))
        if customer_id:
            params["customer"] = customer_id
        elif user.get("email"):
            params["customer_email"] = user["email"]

        session = self.stripe.create_checkout_session(params)
        logger.info(f"Checkout session {session.get('id')} created for listing {listing.id}")
        return CheckoutResponse(url=session["url"])

    def _find_paid_session(self, listing: ListingResponse, buyer_id: str) -> Optional[Dict[str, Any]]:
        """Latest paid session for this listing and buyer that covers the current price"""
        sessions = self.stripe.list_checkout_sessions(limit=settings.checkout_session_lookup_limit)
        for session in sessions:
            metadata = _session_metadata(session)
            if (
                session.get("payment_status") != "paid"
                or metadata.get("listing_id") != listing.id
                or metadata.get("buyer_id") != buyer_id
            ):
                continue
            # the seller may have repriced the listing while the checkout was open
            if session.get("amount_total") != listing.price_cents:
                logger.warning(
                    f"Session {session.get('id')} paid {session.get('amount_total')} "
                    f"but listing {listing.id} costs {listing.price_cents}"
                )
                continue
            return session
        return None

    def complete_purchase(self, listing_id: str, user: Dict[str, Any]) -> PurchaseResponse:
        """Finalize a paid purchase after Stripe redirects back. Safe to call again once sold."""
        try:
            user_id = user["id"]
            logger.info(f"Completing purchase: listing={listing_id} user={user_id}")

            listing = self._load_listing(listing_id)
            if listing.status == mc.LISTING_SOLD and listing.buyer_id == user_id:
                logger.info(f"Listing {listing_id} already sold to {user_id}")
                return PurchaseResponse(message=PURCHASE_COMPLETE_MESSAGE, visualizationId=listing.visualization_id)
            if listing.status != mc.LISTING_ACTIVE:
                raise MarketplaceError(LISTING_UNAVAILABLE_MESSAGE)

            session = self._find_paid_session(listing, user_id)
            if session is None:
                raise MarketplaceError("No completed payment found for this listing")

            self._transfer(listing, user_id, mc.TRANSFER_PURCHASE, _payment_intent_id(session))
            logger.info(f"Paid transfer of listing {listing_id} to {user_id} completed")
            return PurchaseResponse(message=PURCHASE_COMPLETE_MESSAGE, visualizationId=listing.visualization_id)
        except MarketplaceError:
            raise
        except Exception as e:
            logger.error(f"Error completing purchase for listing {listing_id}: {e}")
            raise MarketplaceError(str(e))
