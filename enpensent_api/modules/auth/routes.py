from fastapi import APIRouter, Depends
from enpensent_api.database.supabase_client import get_supabase
from enpensent_api.modules.auth.schemas import CurrentUserResponse
from enpensent_api.core.dependencies import get_current_user, is_premium_user
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    current_user: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    """Get current authenticated user and whether they hold a Visionary membership."""
    return CurrentUserResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        user_metadata=current_user.get("user_metadata") or {},
        app_metadata=current_user.get("app_metadata") or {},
        is_premium=is_premium_user(current_user["id"], supabase),
    )
