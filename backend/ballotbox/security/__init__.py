from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt

from ballotbox.core.settings import get_settings


def _jwt_config() -> tuple[str, str]:
    settings = get_settings()
    secret = settings.jwt_secret or "your-secret-key"
    algorithm = settings.jwt_algorithm or "HS256"
    return secret, algorithm


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a bearer token whose ``sub`` claim is the actor id."""
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().access_token_expire_minutes)
    secret, algorithm = _jwt_config()
    return jwt.encode({"sub": subject, "iat": now, "exp": now + expires_delta}, secret, algorithm=algorithm)


def _parse_token(token: str) -> Optional[str]:
    secret, algorithm = _jwt_config()
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None

    subject = payload.get("sub")
    if isinstance(subject, str) and subject:
        return subject
    return None


def get_current_actor(request: Request) -> Optional[str]:
    """Return the authenticated actor id, or None for anonymous callers.

    A missing Authorization header is anonymous; a present but unusable one
    is rejected rather than silently downgraded.
    """
    auth = request.headers.get("authorization", "")
    if not auth:
        return None
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        actor = _parse_token(parts[1])
        if actor:
            return actor
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthenticated")


def require_actor(actor: Optional[str] = Depends(get_current_actor)) -> str:
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthenticated")
    return actor


__all__ = ["create_access_token", "get_current_actor", "require_actor"]
