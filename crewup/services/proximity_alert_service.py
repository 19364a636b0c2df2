"""
Proximity alert service.

Matches newly posted active jobs against workers' saved proximity alerts and
appends a "new_job" notification for every alert the job falls inside.
Also owns reading and saving a worker's alert settings.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crewup.core import config
from crewup.core.errors import AuthorizationError, TransportError, ValidationError
from crewup.db.models.job import Job
from crewup.db.models.job_alert_cursor import JobAlertCursor
from crewup.db.models.notification import Notification
from crewup.db.models.profile import Profile
from crewup.db.models.proximity_alert import ProximityAlert
from crewup.db.models.timestamps import utcnow
from crewup.services.geo import EARTH_RADIUS_KM, Coordinate, haversine_distance
from crewup.services.subscription_access import has_pro_access

logger = logging.getLogger(__name__)

CURSOR_NAME = "proximity_alerts"
NEW_JOB_NOTIFICATION = "new_job"

MIN_RADIUS_KM = 5
MAX_RADIUS_KM = 50


@dataclass
class ProximityAlertRunResult:
    jobs_processed: int
    notifications_created: int
    notifications_failed: int
    message: str

    def to_response(self) -> dict:
        return {
            "success": True,
            "message": self.message,
            "jobsProcessed": self.jobs_processed,
            "notificationsCreated": self.notifications_created,
            "notificationsFailed": self.notifications_failed,
        }


# Plain snapshots so a rollback after a failed insert cannot expire them
@dataclass(frozen=True)
class _JobCandidate:
    id: str
    title: str
    trade: str
    location: Optional[str]
    employer_name: Optional[str]
    coords: Optional[Coordinate]


@dataclass(frozen=True)
class _AlertCandidate:
    user_id: str
    radius_km: float
    trades: frozenset
    coords: Optional[Coordinate]


def _window_start(db: Session, now: datetime, window: timedelta, use_cursor: bool) -> datetime:
    """
    Lower bound on created_at for this run.

    The fixed window is widened back to the last completed run when the
    scheduler fell behind, so no job is skipped.
    """
    start = now - window
    if not use_cursor:
        return start

    cursor = db.get(JobAlertCursor, CURSOR_NAME)
    if cursor and cursor.last_processed_at < start:
        logger.warning(
            f"Proximity alert run is late: widening window from {start.isoformat()} "
            f"to last run at {cursor.last_processed_at.isoformat()}"
        )
        return cursor.last_processed_at
    return start


def _advance_cursor(db: Session, now: datetime) -> None:
    cursor = db.get(JobAlertCursor, CURSOR_NAME)
    if cursor is None:
        db.add(JobAlertCursor(name=CURSOR_NAME, last_processed_at=now))
    else:
        cursor.last_processed_at = now
    db.commit()


def fetch_new_jobs(db: Session, since: datetime, until: datetime) -> List[_JobCandidate]:
    """Active jobs created in [since, until]."""
    try:
        jobs = (
            db.query(Job)
            .filter(Job.status == "active", Job.created_at >= since, Job.created_at <= until)
            .order_by(Job.created_at)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching new jobs: {e}")
        db.rollback()
        raise TransportError("Failed to fetch jobs") from e

    return [
        _JobCandidate(
            id=job.id,
            title=job.title,
            trade=job.trade,
            location=job.location,
            employer_name=job.employer_name,
            coords=job.coords,
        )
        for job in jobs
    ]


def fetch_active_alerts(db: Session) -> List[_AlertCandidate]:
    """Active alerts joined with the owner's current coordinates."""
    try:
        rows = (
            db.query(ProximityAlert, Profile.latitude, Profile.longitude)
            .join(Profile, Profile.id == ProximityAlert.user_id)
            .filter(ProximityAlert.is_active.is_(True))
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching alerts: {e}")
        db.rollback()
        raise TransportError("Failed to fetch alerts") from e

    alerts = []
    for alert, latitude, longitude in rows:
        coords = None if latitude is None or longitude is None else Coordinate(latitude, longitude)
        alerts.append(
            _AlertCandidate(
                user_id=alert.user_id,
                radius_km=alert.radius_km,
                trades=frozenset(alert.trades or []),
                coords=coords,
            )
        )
    return alerts


def build_job_notification(job: _JobCandidate, user_id: str, distance_km: float) -> Notification:
    rounded = round(distance_km, 1)
    return Notification(
        user_id=user_id,
        type=NEW_JOB_NOTIFICATION,
        title="New Job Nearby",
        message=f"{job.title} posted {rounded} km away by {job.employer_name}",
        data={
            "job_id": job.id,
            "job_title": job.title,
            "trade": job.trade,
            "location": job.location,
            "distance_km": rounded,
        },
    )


def _insert_notification(db: Session, notification: Notification) -> None:
    db.add(notification)
    db.commit()


def run_proximity_alert_check(
    db: Session,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
    use_cursor: Optional[bool] = None,
) -> ProximityAlertRunResult:
    """
    Notify workers about new jobs inside their alert radius.

    Args:
        db: Database session
        now: Run time (naive UTC); defaults to the current time
        window: Lookback for "new" jobs; defaults to PROXIMITY_ALERT_WINDOW_MINUTES
        use_cursor: Widen the window back to the last completed run

    Returns:
        Counts of jobs seen and notifications created/failed

    Raises:
        TransportError: If jobs or alerts cannot be fetched. Nothing is written.

    A notification insert that fails is logged and counted; the remaining
    pairs are still processed. A rerun inside the same window may notify again.
    """
    now = now or utcnow()
    window = window or timedelta(minutes=config.PROXIMITY_ALERT_WINDOW_MINUTES)
    if use_cursor is None:
        use_cursor = config.PROXIMITY_ALERT_USE_CURSOR

    since = _window_start(db, now, window, use_cursor)
    jobs = fetch_new_jobs(db, since, now)

    if not jobs:
        logger.info("No new jobs found")
        if use_cursor:
            _advance_cursor(db, now)
        return ProximityAlertRunResult(0, 0, 0, "No new jobs to process")

    logger.info(f"Found {len(jobs)} new jobs")

    alerts = fetch_active_alerts(db)
    if not alerts:
        logger.info("No active alerts found")
        if use_cursor:
            _advance_cursor(db, now)
        return ProximityAlertRunResult(len(jobs), 0, 0, "No active alerts to process")

    logger.info(f"Found {len(alerts)} active alerts")

    created = 0
    failed = 0
    for job in jobs:
        if job.coords is None:
            continue

        for alert in alerts:
            if alert.coords is None:
                continue
            if job.trade not in alert.trades:
                continue

            distance_km = haversine_distance(job.coords, alert.coords, EARTH_RADIUS_KM)
            if distance_km > alert.radius_km:
                continue

            try:
                _insert_notification(db, build_job_notification(job, alert.user_id, distance_km))
            except SQLAlchemyError as e:
                db.rollback()
                failed += 1
                logger.error(f"Error creating notification for user {alert.user_id}, job {job.id}: {e}")
                continue

            created += 1
            logger.info(f"Created notification for user {alert.user_id}, job {job.id}")

    if use_cursor:
        _advance_cursor(db, now)

    logger.info(f"Created {created} notifications ({failed} failed)")

    return ProximityAlertRunResult(
        jobs_processed=len(jobs),
        notifications_created=created,
        notifications_failed=failed,
        message=f"Processed {len(jobs)} jobs, created {created} notifications",
    )


def get_proximity_alert(db: Session, user_id: str) -> Optional[ProximityAlert]:
    return db.query(ProximityAlert).filter(ProximityAlert.user_id == user_id).first()


def update_proximity_alert(
    db: Session,
    profile: Profile,
    radius_km: float,
    trades: List[str],
    is_active: bool,
) -> ProximityAlert:
    """
    Save a worker's alert settings, replacing any previous ones.

    Raises:
        AuthorizationError: Profile lacks Pro access or is not a worker
        ValidationError: Radius outside 5-50 km or no trades selected
    """
    if not has_pro_access(profile):
        raise AuthorizationError("Pro subscription required")

    if profile.role != "worker":
        raise AuthorizationError("Only workers can set proximity alerts")

    if radius_km < MIN_RADIUS_KM or radius_km > MAX_RADIUS_KM:
        raise ValidationError(f"Radius must be between {MIN_RADIUS_KM} and {MAX_RADIUS_KM} km")

    # Order-preserving de-duplication
    trades = list(dict.fromkeys(t.strip() for t in trades if t and t.strip()))
    if not trades:
        raise ValidationError("At least one trade must be selected")

    alert = get_proximity_alert(db, profile.id)
    if alert is None:
        alert = ProximityAlert(user_id=profile.id)
        db.add(alert)

    alert.radius_km = radius_km
    alert.trades = trades
    alert.is_active = is_active

    db.commit()
    db.refresh(alert)

    logger.info(f"Proximity alert saved: user_id={profile.id}, radius_km={radius_km}, trades={trades}, active={is_active}")

    return alert
