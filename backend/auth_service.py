"""Authentication Service - thin delegation to Supabase Auth"""
import logging
from typing import Optional, Dict, Any
from pydantic import BaseModel

from supabase_client import create_supabase, get_supabase

logger = logging.getLogger(__name__)


class TokenData(BaseModel):
    user_id: str
    tenant_id: str   # the signed-in user is the tenant
    email: Optional[str] = None
    access_token: str


class AuthResult(BaseModel):
    token: Optional[str] = None
    user: Dict[str, Any]


def _user_dict(user) -> Dict[str, Any]:
    metadata = getattr(user, "user_metadata", None) or {}
    return {
        "id": user.id,
        "email": user.email,
        "name": metadata.get("full_name"),
        "tenant_id": user.id,
    }


def sign_in(email: str, password: str) -> Optional[AuthResult]:
    """Password sign-in. Returns None when Supabase rejects the credentials."""
    try:
        # fresh client: sign-in stores the session on the client instance
        response = create_supabase().auth.sign_in_with_password(
            {"email": email, "password": password}
        )
    except Exception as e:
        logger.warning(f"Sign-in failed for {email}: {str(e)}")
        return None

    if not response.user or not response.session:
        return None
    return AuthResult(token=response.session.access_token, user=_user_dict(response.user))


def sign_up(email: str, password: str, full_name: str) -> AuthResult:
    """Register a user. Token is None while e-mail confirmation is pending."""
    response = create_supabase().auth.sign_up({
        "email": email,
        "password": password,
        "options": {"data": {"full_name": full_name}},
    })
    if not response.user:
        raise ValueError("Sign-up returned no user")
    token = response.session.access_token if response.session else None
    return AuthResult(token=token, user=_user_dict(response.user))


def sign_out(access_token: str) -> bool:
    supabase = get_supabase()
    if supabase is None:
        return False
    try:
        supabase.auth.admin.sign_out(access_token)
        return True
    except Exception as e:
        logger.warning(f"Sign-out failed: {str(e)}")
        return False


def verify_token(access_token: str) -> Optional[TokenData]:
    """Resolve a Supabase access token to the current user."""
    supabase = get_supabase()
    if supabase is None:
        return None
    try:
        response = supabase.auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Invalid token: {str(e)}")
        return None

    user = response.user if response else None
    if not user:
        return None
    return TokenData(
        user_id=user.id,
        tenant_id=user.id,
        email=user.email,
        access_token=access_token,
    )
