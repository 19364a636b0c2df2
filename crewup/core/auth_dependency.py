from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from crewup.core import config
from crewup.db.session import get_db
from crewup.db.models.profile import Profile

# Tokens are issued by the auth provider; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def get_current_user(token: str = Depends(oauth2_scheme)) -> str:
    """Get current profile ID from JWT token."""
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        user_id: str = payload.get("sub")

        if user_id is None:
            raise HTTPException(status_code=401, detail="Invalid token")

        return user_id

    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_current_profile(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Profile:
    """Get current Profile object from JWT token."""
    profile = db.get(Profile, user_id)
    if not profile:
        raise HTTPException(
            status_code=404,
            detail="Profile not found"
        )
    return profile
