import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import AUTH_JWT_ALGORITHM, AUTH_JWT_AUDIENCE, AUTH_JWT_SECRET
from .database import get_db
from .exceptions import NotAuthenticated
from .models import Profile

logger = logging.getLogger(__name__)

# auto_error=False so a missing header surfaces as NotAuthenticated, not a 403
security = HTTPBearer(auto_error=False)


def verify_access_token(token: str) -> dict:
    """
    Verify an identity-provider access token and return its claims.

    Raises:
        NotAuthenticated: If the token is malformed, expired or has the wrong audience
    """
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise NotAuthenticated("Invalid token format. Expected a valid JWT token.")

    try:
        claims = jose_jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Expired access token presented")
        raise NotAuthenticated("Token has expired. Please refresh your session.") from e
    except JWTError as e:
        logger.warning(f"⚠️ JWT verification failed: {e}")
        raise NotAuthenticated("Token verification failed") from e

    if not claims.get("sub"):
        logger.error(f"❌ Token missing subject claim. Available claims: {list(claims.keys())}")
        raise NotAuthenticated("Invalid token claims")

    return claims


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the caller's profile from the bearer token"""
    if not credentials:
        logger.debug("No credentials provided")
        raise NotAuthenticated(
            "Not authenticated. Please provide a valid Bearer token in the Authorization header."
        )

    claims = verify_access_token(credentials.credentials)
    profile = db.query(Profile).filter(Profile.id == claims["sub"]).first()
    if not profile:
        logger.warning(f"⚠️ Token subject {claims['sub']} has no profile")
        raise NotAuthenticated("No profile found for this account")

    logger.debug(f"✅ User authenticated: {profile.email} ({profile.role})")
    return profile

