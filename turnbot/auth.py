# turnbot/auth.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from .errors import ChannelAuthError

BEARER_PREFIX = "bearer "


def create_token(channel_id: str, secret: str, algorithm: str = "HS256", expire_minutes: int = 1440) -> str:
    """Signed bearer token a channel presents on ``/api/messages``."""
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": channel_id,
        "iat": issued,
        "exp": issued + timedelta(minutes=expire_minutes),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def verify_token(token: str, secret: str, algorithm: str = "HS256") -> str:
    """Return the channel id a token was issued to."""
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as e:
        raise ChannelAuthError("Invalid channel token") from e

    channel_id = str(claims.get("sub") or "").strip()
    if not channel_id:
        raise ChannelAuthError("Channel token has no subject")
    return channel_id


def channel_from_header(authorization: str | None, secret: str, algorithm: str = "HS256") -> str:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        raise ChannelAuthError("Missing Bearer token")
    return verify_token(authorization[len(BEARER_PREFIX):].strip(), secret, algorithm)
