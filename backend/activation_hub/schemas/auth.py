# activation_hub/schemas/auth.py
"""
Pydantic schemas for operator authentication endpoints.
"""
from typing import Optional
from pydantic import BaseModel

class LoginRequest(BaseModel):
    """Operator credentials."""
    username: str
    password: str

class UserOut(BaseModel):
    """Operator details returned by login and /auth/me (no password hash)."""
    id: str
    username: str
    email: Optional[str] = None
    role: str = "user"  # "user" or "admin"

class LoginData(BaseModel):
    user: UserOut
    accessToken: str  # JWT, also set as the HttpOnly "accessToken" cookie
