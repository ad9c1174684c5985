# Supabase Auth
# Users live in Supabase's auth.users table; this service never writes to it.
# Tokens issued to the browser by supabase-js are validated here with
# auth.get_user(jwt=...). Premium status comes from the is_premium_user RPC,
# which reads user_subscriptions.
