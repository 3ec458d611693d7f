from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID
import jwt

from bakerypos.core.config import settings
from bakerypos.core.exceptions import AuthenticationError

SECRET_KEY = settings.APP_SECRET_STRING
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


def create_session_token(user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """
    Mint a session token the way the identity provider does.
    Only used by the seed script and tests; production tokens come from the provider.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user_id), "exp": expire, "type": "session"}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_session_token(token: str) -> UUID:
    """Return the user id carried by a session token."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired")
    except jwt.PyJWTError:
        raise AuthenticationError("Could not validate credentials")

    subject = payload.get("sub")
    if subject is None:
        raise AuthenticationError("Could not validate credentials")
    try:
        return UUID(subject)
    except ValueError:
        raise AuthenticationError("Could not validate credentials")
