# Supabase table: visualization_listings
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- visualization_id: uuid (foreign key to saved_visualizations.id, not null)
- seller_id: uuid (not null)
- buyer_id: uuid (nullable) - set when sold
- price_cents: integer (not null, default 0) - 0 means a free transfer
- status: listing_status enum (not null, default: 'active') - values: active, sold, cancelled
- sold_at: timestamp (nullable)
- stripe_payment_intent_id: text (nullable) - set for paid sales
- created_at: timestamp (default: now())
- updated_at: timestamp
"""
