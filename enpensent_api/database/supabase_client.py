import logging
from supabase import create_client, Client
from enpensent_api.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    One shared client for the API process.
    Ownership transfers, listing updates and vision release write across users,
    so the service_role key is preferred. The anon key only works while RLS
    allows the write, which is acceptable for local development.
    """
    _client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            if not settings.supabase_url:
                raise RuntimeError("SUPABASE_URL is not set")
            key = settings.supabase_service_role_key
            if not key:
                if settings.is_production:
                    raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY is required in production")
                logger.warning("SUPABASE_SERVICE_ROLE_KEY not set, falling back to anon key")
                key = settings.supabase_key
            cls._client = create_client(settings.supabase_url, key)
        return cls._client

    @classmethod
    def reset_client(cls):
        cls._client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()
