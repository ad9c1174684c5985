"""
Core dependencies for authentication, premium gating and transfer limits
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from enpensent_api.config import marketplace_config as mc
from enpensent_api.database.supabase_client import get_supabase
from enpensent_api.core.errors import MarketplaceError
from enpensent_api.modules.auth.service import AuthService
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(credentials.credentials)


def get_marketplace_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Same as get_current_user but fails with the marketplace {"error": ...} shape"""
    if credentials is None or not credentials.credentials:
        raise MarketplaceError("User not authenticated")
    try:
        return auth_service.get_current_user(credentials.credentials)
    except HTTPException as e:
        raise MarketplaceError(f"User not authenticated: {e.detail}")


def is_premium_user(user_id: str, supabase: Client) -> bool:
    """Premium (Visionary) status as decided by the database"""
    try:
        result = supabase.rpc(mc.RPC_IS_PREMIUM_USER, {"p_user_id": user_id}).execute()
        return bool(result.data)
    except Exception as e:
        logger.error(f"Error checking premium status for {user_id}: {e}")
        return False


def require_premium(
    user_data: dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Dependency that only lets Visionary members through"""
    if not is_premium_user(user_data["id"], supabase):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Premium membership required"
        )
    return user_data


def get_remaining_transfers(visualization_id: str, supabase: Client) -> int:
    """Transfers left for this visualization in the current window (database enforced)"""
    result = supabase.rpc(mc.RPC_REMAINING_TRANSFERS, {"p_visualization_id": visualization_id}).execute()
    return int(result.data or 0)


def can_transfer_visualization(visualization_id: str, supabase: Client) -> bool:
    result = supabase.rpc(mc.RPC_CAN_TRANSFER, {"p_visualization_id": visualization_id}).execute()
    return bool(result.data)
