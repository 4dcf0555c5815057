from pydantic import BaseModel, EmailStr
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthUser(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    team_id: Optional[int] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUser


class TeamInfo(BaseModel):
    id: int
    name: str
    tier: str = "free"
    api_token: Optional[str] = None
