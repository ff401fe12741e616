"""Domain Entities - Caller identity"""
from pydantic import BaseModel
from uuid import UUID
from typing import Optional


class User(BaseModel):
    """Authenticated caller; guests and owners are both plain users"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False

    class Config:
        from_attributes = True


class UserInDB(User):
    hashed_password: str
