# Supabase table: user_subscriptions
# This file documents the expected database schema
# Rows are written by the Stripe webhook (webhook.py) and read by service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- user_id: uuid (unique, not null) - upsert conflict target
- stripe_customer_id: text (nullable)
- stripe_subscription_id: text (nullable)
- subscription_status: text (nullable) - Stripe status: active, trialing, past_due, canceled, unpaid, paused
- product_id: text (nullable)
- price_id: text (nullable)
- current_period_start: timestamp (nullable)
- current_period_end: timestamp (nullable)
- cancel_at_period_end: boolean (nullable)
- grace_period_end: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp

RPC:
- is_premium_user(p_user_id) -> boolean
- release_user_visions(p_user_id) -> integer (number of visions whose owner was cleared)
"""
