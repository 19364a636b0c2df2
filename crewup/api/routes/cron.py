"""
Scheduled jobs, triggered over HTTP by the external cron runner.

Every endpoint requires `Authorization: Bearer <CRON_SECRET>` and does no
database work when it is missing or wrong.
"""
import logging
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crewup.core.errors import TransportError
from crewup.core.logging_config import sanitize_log_data
from crewup.core.security import verify_cron_secret
from crewup.db.session import get_db
from crewup.services.billing_service import reconcile_profile_statuses
from crewup.services.proximity_alert_service import run_proximity_alert_check

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["Cron"])


def _unauthorized(request: Request) -> JSONResponse:
    headers = sanitize_log_data(dict(request.headers))
    logger.error(f"Unauthorized cron job access attempt: client={request.client.host if request.client else None}, headers={headers}")
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


@router.get("/check-proximity-alerts")
def check_proximity_alerts(
    request: Request,
    authorization: str = Header(None),
    db: Session = Depends(get_db),
):
    """Notify workers about active jobs posted inside their alert radius since the last run."""
    if not verify_cron_secret(authorization):
        return _unauthorized(request)

    try:
        result = run_proximity_alert_check(db)
    except TransportError as e:
        return JSONResponse(status_code=500, content={"success": False, "error": e.message})
    except SQLAlchemyError:
        logger.exception("Cron job error")
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    return result.to_response()


@router.get("/reconcile-subscriptions")
def reconcile_subscriptions(
    request: Request,
    authorization: str = Header(None),
    db: Session = Depends(get_db),
):
    """Repair profile.subscription_status drift from the subscriptions table."""
    if not verify_cron_secret(authorization):
        return _unauthorized(request)

    try:
        updated = reconcile_profile_statuses(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Subscription reconciliation failed")
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    return {"success": True, "profilesUpdated": updated}
