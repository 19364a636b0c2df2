"""
Entitlement checks derived from a profile's subscription fields.
"""
from typing import Dict, Optional


def is_lifetime_pro(profile) -> bool:
    return bool(profile and profile.is_lifetime_pro)


def has_pro_access(profile) -> bool:
    """Paid Pro or lifetime Pro."""
    if profile is None:
        return False
    if profile.is_lifetime_pro:
        return True
    return profile.subscription_status == "pro"


def get_subscription_badge(profile) -> Optional[Dict[str, str]]:
    """Badge label and variant shown next to a profile name."""
    if profile is None:
        return None

    if profile.is_lifetime_pro:
        return {"label": "Founding Member", "variant": "lifetime"}

    if profile.subscription_status == "pro":
        return {"label": "Pro", "variant": "pro"}

    return {"label": "Free", "variant": "free"}
