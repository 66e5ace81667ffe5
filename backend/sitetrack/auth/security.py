"""Password hashing and the bearer tokens handed out at login."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from sitetrack.config import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
ALGORITHM = "HS256"


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        # Stored value is not a hash passlib recognizes.
        return False


def create_access_token(*, employee_id: uuid.UUID, role: str) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "type": ACCESS_TOKEN_TYPE,
        "sub": str(employee_id),
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def read_access_token(token: str) -> uuid.UUID:
    """Return the employee id an access token was issued to.

    Raises ``ValueError`` for anything that is not a valid, unexpired access token.
    """
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise ValueError("Invalid token type")
    return uuid.UUID(str(claims.get("sub")))
