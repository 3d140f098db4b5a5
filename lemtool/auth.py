"""
auth.py — explicit request identity.

The auth platform terminates sign-in and forwards the verified identity as
headers. Routes receive a UserContext through Depends(get_current_user);
nothing reads the current user from global state.
"""
from typing import Optional

from fastapi import Header, HTTPException
from pydantic import BaseModel


class UserContext(BaseModel):
    user_id: str
    email: Optional[str] = None


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
) -> UserContext:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Sign in required")
    return UserContext(user_id=x_user_id.strip(), email=x_user_email)
