"""
Security module — Supabase JWT verification + Mock auth + Role guard + account status enforcement.

Auth Flow:
1. User signs in through Supabase Auth on the frontend → gets JWT
2. Frontend sends JWT to FastAPI
3. FastAPI verifies the JWT with Supabase Auth (AUTH_MODE=supabase)
4. Backend fetches the user's profile row (by auth user id)
5. Backend checks: is the profile active? (pending / inactive are rejected)
6. Backend injects: user_id, role, email, name
"""

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.database import get_supabase
from app.core.services import get_store
from app.services.record_store import RecordStore

security_scheme = HTTPBearer()

ROLES = ("admin", "teacher", "student", "tutor", "parent")
STAFF_ROLES = ["admin", "teacher"]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


# ---------------------------------------------------------------------------
# Mock users (local development without Supabase Auth)
# ---------------------------------------------------------------------------
MOCK_USERS = {
    "admin-token": {
        "user_id": "a0000000-0000-0000-0000-000000000001",
        "email": "admin@kenova.edu",
        "role": "admin",
        "name": "Administrador",
    },
}


def profile_to_user(profile: dict) -> dict:
    """Check account status and shape a profile row into the request user."""
    account_status = profile.get("status", "active")
    if account_status == "pending":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is pending approval by an administrator.",
        )
    if account_status == "inactive":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated. Contact your administrator.",
        )
    return {
        "user_id": profile["id"],
        "email": profile.get("email", ""),
        "role": profile["role"],
        "name": profile.get("name", ""),
    }


# ---------------------------------------------------------------------------
# Token verification: the core auth function
# ---------------------------------------------------------------------------
async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> dict:
    """
    Validate the Bearer token and return user dict.
    Only users with an active profile can authenticate.
    """
    token = credentials.credentials
    store = get_store(request)

    if settings.AUTH_MODE == "mock":
        return _mock_auth(token, store)

    return _supabase_auth(token, store)


def _mock_auth(token: str, store: RecordStore) -> dict:
    """Mock mode: look up token in MOCK_USERS, or a "mock-<email>" token in profiles."""
    user = MOCK_USERS.get(token)
    if user:
        return user

    if token.startswith("mock-"):
        profile = store.first("profiles", email=token[5:])
        if profile:
            return profile_to_user(profile)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token.",
    )


def _supabase_auth(token: str, store: RecordStore) -> dict:
    """Supabase mode: verify JWT with Supabase Auth, then load the profile row."""
    try:
        response = get_supabase().auth.get_user(token)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    if response is None or response.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    profile = store.get("profiles", response.user.id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No profile found for this account. Contact your administrator.",
        )
    return profile_to_user(profile)


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[str]):
    """
    Usage:
        @router.get("/admin-only")
        async def endpoint(user=Depends(require_role(["admin"]))):
    """

    async def role_checker(
        user: dict = Depends(get_current_user),
    ) -> dict:
        if user["role"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user['role']}' not authorized. Required: {allowed_roles}",
            )
        return user

    return role_checker
