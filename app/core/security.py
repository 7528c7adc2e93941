from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Optional

from jose import JWTError, jwt

from app.core.config import get_settings

ALGORITHM = "HS256"

logger = logging.getLogger(__name__)


def create_access_token(subject: str, role: str, expires_minutes: Optional[int] = None) -> str:
    """Sign an access token. Production tokens come from the auth provider; this is for tooling and tests."""
    settings = get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected token: %s", exc)
        return None
