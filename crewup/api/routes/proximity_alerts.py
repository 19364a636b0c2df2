from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from crewup.core.auth_dependency import get_current_profile
from crewup.core.errors import AuthorizationError, ValidationError
from crewup.db.models.profile import Profile
from crewup.db.session import get_db
from crewup.schemas.alerts import ProximityAlertResponse, ProximityAlertUpdate
from crewup.services.proximity_alert_service import get_proximity_alert, update_proximity_alert

router = APIRouter(prefix="/proximity-alerts", tags=["Proximity Alerts"])


@router.get("/me", response_model=ProximityAlertResponse)
def get_my_proximity_alert(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    alert = get_proximity_alert(db, profile.id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No proximity alert configured")
    return alert


@router.put("/me", response_model=ProximityAlertResponse)
def save_my_proximity_alert(
    body: ProximityAlertUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Pro workers only. Replaces any previous alert settings."""
    try:
        return update_proximity_alert(db, profile, body.radius_km, body.trades, body.is_active)
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)
