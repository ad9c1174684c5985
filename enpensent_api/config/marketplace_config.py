"""
Marketplace constants
Listing states, transfer types and the subscription states that end a
membership. Premium status itself is decided by the is_premium_user RPC.
"""

# Listing state machine: active -> sold | cancelled (both terminal)
LISTING_ACTIVE = "active"
LISTING_SOLD = "sold"
LISTING_CANCELLED = "cancelled"

# visualization_transfers.transfer_type
TRANSFER_PURCHASE = "purchase"
TRANSFER_FREE_CLAIM = "free_claim"
TRANSFER_GIFT = "gift"
TRANSFER_CLAIM = "claim"

# Stripe subscription statuses
RELEASE_ON_DELETE_STATUSES = ("canceled", "paused")
RELEASE_ON_PAYMENT_FAILURE_STATUSES = ("canceled", "unpaid")

# Supabase RPC functions
RPC_IS_PREMIUM_USER = "is_premium_user"
RPC_CAN_TRANSFER = "can_transfer_visualization"
RPC_REMAINING_TRANSFERS = "get_remaining_transfers"
RPC_RELEASE_USER_VISIONS = "release_user_visions"

PURCHASE_ACTIONS = ("purchase",)
