from pydantic import BaseModel
from typing import Optional, Dict, Any


class CurrentUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    app_metadata: Dict[str, Any] = {}
    is_premium: bool = False
