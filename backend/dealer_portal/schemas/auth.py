"""
Authentication Schemas
"""
from typing import Optional

from pydantic import BaseModel

from dealer_portal.schemas.user import UserResponse


class Token(BaseModel):
    """Token response"""
    access_token: str
    token_type: str
    user: Optional[UserResponse] = None

    class Config:
        from_attributes = True
