"""
Auth router — Login (mock mode) and current user profile.

Rules:
- Only profiles with status "active" can login
- Supabase mode: the client signs in with Supabase Auth, then calls /api/auth/me with the JWT
- Mock mode: returns a mock-{email} token after checking the stored password hash
"""

from fastapi import APIRouter, Depends, HTTPException, status
from app.core.config import settings
from app.core.security import get_current_user, profile_to_user, verify_password
from app.core.services import get_store
from app.schemas.auth import UserLogin
from app.services.record_store import RecordStore
from app.utils.response import success_response

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login")
async def login(body: UserLogin, store: RecordStore = Depends(get_store)):
    if settings.AUTH_MODE != "mock":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sign in with Supabase Auth, then call /api/auth/me with the JWT.",
        )

    profile = store.first("profiles", email=body.email)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No registered account found for this email.",
        )

    hashed_pw = profile.get("password_hash")
    if not hashed_pw or not verify_password(body.password, hashed_pw):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    user = profile_to_user(profile)
    return success_response(
        data={"token": f"mock-{body.email}", "user": user},
        message="Login successful",
    )


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    return success_response(data=user)
