"""
Security module: resolves the calling user and their school from a Bearer token.

Auth Flow:
1. Frontend sends a Firebase JWT (or a mock token in mock mode)
2. FastAPI verifies the JWT using the Firebase Admin SDK
3. The user's profile is fetched from Supabase (by firebase_uid or email)
4. Inactive profiles are rejected
5. Backend injects: user_id, role, school_id, campus_id

Login and account management live elsewhere; this module only turns a token
into a user dict for tenant scoping and role checks.
"""

import os
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from course_scheduler.core.app_logger import get_logger
from course_scheduler.core.config import settings
from course_scheduler.core.database import get_supabase

security_scheme = HTTPBearer()
logger = get_logger("security")

PROFILE_COLUMNS = "id, email, role, school_id, campus_id, first_name, last_name, is_active, firebase_uid"

# ---------------------------------------------------------------------------
# Firebase initialization (lazy)
# ---------------------------------------------------------------------------
_firebase_app = None


def _init_firebase():
    global _firebase_app
    if _firebase_app is not None:
        return
    import firebase_admin
    from firebase_admin import credentials as fb_credentials

    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if os.path.exists(cred_path):
        cred = fb_credentials.Certificate(cred_path)
        _firebase_app = firebase_admin.initialize_app(cred)
    else:
        # Try default credentials
        _firebase_app = firebase_admin.initialize_app()


def _user_from_profile(profile: dict, uid: str) -> dict:
    if not profile.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated. Contact your school admin.",
        )
    name = f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()
    return {
        "uid": uid,
        "email": profile.get("email", ""),
        "role": profile["role"],
        "school_id": profile.get("school_id"),
        "campus_id": profile.get("campus_id"),
        "name": name,
        "user_id": profile["id"],
    }


def _fetch_profile(column: str, value: str) -> dict | None:
    db = get_supabase()
    result = (
        db.table("profiles")
        .select(PROFILE_COLUMNS)
        .eq(column, value)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


# ---------------------------------------------------------------------------
# Token verification: the core auth function
# ---------------------------------------------------------------------------
async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> dict:
    """Validate the Bearer token and return the user dict."""
    token = credentials.credentials

    if settings.AUTH_MODE == "mock":
        return _mock_auth(token)

    return _firebase_auth(token)


def _mock_auth(token: str) -> dict:
    """Mock mode: "mock-<email>" tokens map onto the profile with that email."""
    if token.startswith("mock-"):
        email = token[5:]
        try:
            profile = _fetch_profile("email", email)
        except Exception as e:
            logger.warning("Mock auth profile lookup failed for %s: %s", email, e)
            profile = None
        if profile:
            return _user_from_profile(profile, profile.get("firebase_uid") or profile["id"])

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token. Only registered school users can access scheduling.",
    )


def _firebase_auth(token: str) -> dict:
    """Firebase mode: verify JWT, fetch profile from Supabase."""
    _init_firebase()
    from firebase_admin import auth as fb_auth

    try:
        decoded = fb_auth.verify_id_token(token)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired Firebase token",
        )

    uid = decoded["uid"]
    profile = _fetch_profile("firebase_uid", uid)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not registered in any school. Contact your school admin.",
        )
    return _user_from_profile(profile, uid)


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[str]):
    """
    Usage:
        @router.post("/scheduler/run")
        async def endpoint(user=Depends(require_role(["admin", "super_admin"]))):
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
