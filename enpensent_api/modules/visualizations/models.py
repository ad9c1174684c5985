# Supabase tables: saved_visualizations, visualization_transfers
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
saved_visualizations:
- id: uuid (primary key)
- title: text (not null)
- image_path: text (not null)
- game_data: jsonb (not null)
- pgn: text (nullable)
- public_share_id: text (nullable)
- user_id: uuid (nullable) - current owner; null when released after a membership lapses
- created_at: timestamp (default: now())
- updated_at: timestamp

visualization_transfers (append-only audit log):
- id: uuid (primary key)
- visualization_id: uuid (foreign key to saved_visualizations.id)
- from_user_id: uuid (nullable) - null for claims of released visions
- to_user_id: uuid (not null)
- transfer_type: text - purchase, free_claim, gift, claim
- created_at: timestamp (default: now())

RPC:
- can_transfer_visualization(p_visualization_id) -> boolean
- get_remaining_transfers(p_visualization_id) -> integer (max 3 per 24 hours)
"""
