"""
Script to grant (or revoke) lifetime Pro on a profile.
Run: python -m scripts.grant_lifetime_pro <email> [--revoke]
"""
import argparse
import logging
import sys

from crewup.db.session import SessionLocal
from crewup.db.models.profile import Profile

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def set_lifetime_pro(email: str, enabled: bool = True) -> bool:
    """Flip is_lifetime_pro; webhook processing never changes these profiles afterwards."""
    db = SessionLocal()
    try:
        profile = db.query(Profile).filter(Profile.email == email.lower()).first()
        if not profile:
            logger.error(f"Profile {email} not found")
            return False

        profile.is_lifetime_pro = enabled
        if enabled:
            profile.subscription_status = "pro"
        db.commit()

        logger.info(f"Profile {email} (id={profile.id}) lifetime Pro={'on' if enabled else 'off'}")
        return True
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Grant or revoke lifetime Pro")
    parser.add_argument("email")
    parser.add_argument("--revoke", action="store_true")
    args = parser.parse_args()

    sys.exit(0 if set_lifetime_pro(args.email, enabled=not args.revoke) else 1)
