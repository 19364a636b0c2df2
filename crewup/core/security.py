import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt
from crewup.core import config


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def verify_cron_secret(authorization: Optional[str]) -> bool:
    """
    Check an Authorization header against the configured cron secret.

    An unset CRON_SECRET rejects every request.
    """
    if not config.CRON_SECRET or not authorization:
        return False
    expected = f"Bearer {config.CRON_SECRET}"
    return hmac.compare_digest(authorization.encode("utf-8"), expected.encode("utf-8"))
