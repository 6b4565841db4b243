# Admin Access Control
# Purpose: Single env-configured admin account, HS256 tokens, and the AccessContext handed to list_all
# Main functions: authenticate_admin(), create_access_token(), decode_access_token(), get_admin_context()
# Dependent files: admin/main.py, admin/routers/admin.py, projection/service.py

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import os
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt

from projection.service import AccessContext

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AdminSettings:
    username: str
    password: str
    secret_key: str
    token_minutes: int


def load_admin_settings() -> AdminSettings:
    """Read the admin account from ADMIN_* env vars; a missing secret gets a per-process key."""
    secret = os.environ.get("ADMIN_SECRET_KEY", "")
    if not secret:
        secret = secrets.token_urlsafe(48)
        logger.warning("ADMIN_SECRET_KEY not set: using a random key, tokens will not survive a restart")
    return AdminSettings(
        username=os.environ.get("ADMIN_USERNAME", "admin"),
        password=os.environ.get("ADMIN_PASSWORD", ""),
        secret_key=secret,
        token_minutes=int(os.environ.get("ADMIN_TOKEN_EXPIRE_MINUTES", "60")),
    )


SETTINGS = load_admin_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/admin/login")


def authenticate_admin(username: str, password: str) -> bool:
    if not SETTINGS.password:
        logger.error("ADMIN_PASSWORD not set: admin login is disabled")
        return False
    return (secrets.compare_digest(username, SETTINGS.username)
            and secrets.compare_digest(password, SETTINGS.password))


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": ADMIN_ROLE,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=SETTINGS.token_minutes)),
    }
    return jwt.encode(payload, SETTINGS.secret_key, algorithm=ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> dict:
    """Claims of a valid admin token. Raises 401 for expired, forged or non-admin tokens."""
    try:
        payload = jwt.decode(token, SETTINGS.secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Admin token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid or expired admin token")
    if not payload.get("sub") or payload.get("role") != ADMIN_ROLE:
        raise _unauthorized("Invalid or expired admin token")
    return payload


def get_current_admin_user(token: str = Depends(oauth2_scheme)) -> dict:
    payload = decode_access_token(token)
    return {"username": payload["sub"], "role": payload["role"]}


def get_admin_context(user: dict = Depends(get_current_admin_user)) -> AccessContext:
    """The authenticated user as the explicit context the query service expects."""
    return AccessContext(role=user["role"], username=user["username"])
