"""
Unit tests for the proximity alert matcher.
"""
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from crewup.core.errors import TransportError
from crewup.db.models import JobAlertCursor, Notification
from crewup.db.models.timestamps import utcnow
from crewup.services import proximity_alert_service
from crewup.services.proximity_alert_service import CURSOR_NAME, run_proximity_alert_check

from conftest import CHICAGO

# One degree of latitude is ~111.195 km on a 6371 km sphere
NEAR = (CHICAGO[0] + 0.0558, CHICAGO[1])   # ~6.2 km north
FAR = (CHICAGO[0] + 0.1349, CHICAGO[1])    # ~15.0 km north


@pytest.fixture
def now():
    return utcnow()


def test_job_inside_radius_creates_one_notification(db, now, make_profile, make_job, make_alert):
    worker = make_profile(coords=CHICAGO)
    make_alert(worker, radius_km=10, trades=["Electrician"])
    job = make_job(coords=NEAR, now=now, title="Panel Upgrade", employer_name="Volt Co")

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    assert result.jobs_processed == 1
    assert result.notifications_created == 1
    assert result.notifications_failed == 0

    notifications = db.query(Notification).all()
    assert len(notifications) == 1
    notification = notifications[0]
    assert notification.user_id == worker.id
    assert notification.type == "new_job"
    assert notification.message == "Panel Upgrade posted 6.2 km away by Volt Co"
    assert notification.data == {
        "job_id": job.id,
        "job_title": "Panel Upgrade",
        "trade": "Electrician",
        "location": "Chicago, IL",
        "distance_km": 6.2,
    }


def test_job_outside_radius_creates_nothing(db, now, make_profile, make_job, make_alert):
    worker = make_profile(coords=CHICAGO)
    make_alert(worker, radius_km=10)
    make_job(coords=FAR, now=now)

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    assert result.jobs_processed == 1
    assert result.notifications_created == 0
    assert db.query(Notification).count() == 0


def test_trade_mismatch_is_skipped(db, now, make_profile, make_job, make_alert):
    worker = make_profile()
    make_alert(worker, trades=["Plumber", "Welder"])
    make_job(trade="Electrician", coords=NEAR, now=now)

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    assert result.notifications_created == 0


def test_missing_coordinates_are_skipped(db, now, make_profile, make_job, make_alert):
    located = make_profile(name="Located Worker")
    unlocated = make_profile(name="Unlocated Worker", coords=None)
    make_alert(located)
    make_alert(unlocated)
    make_job(coords=None, now=now, title="Remote Estimate")
    make_job(coords=NEAR, now=now)

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    assert result.jobs_processed == 2
    assert result.notifications_created == 1
    assert db.query(Notification).one().user_id == located.id


def test_inactive_alerts_and_non_active_jobs_are_ignored(db, now, make_profile, make_job, make_alert):
    worker = make_profile()
    make_alert(worker, is_active=False)
    make_job(coords=NEAR, now=now)
    make_job(coords=NEAR, now=now, status="draft")

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    assert result.jobs_processed == 1
    assert result.notifications_created == 0
    assert result.message == "No active alerts to process"


def test_jobs_older_than_window_are_not_new(db, now, make_profile, make_job, make_alert):
    make_alert(make_profile())
    make_job(coords=NEAR, now=now, age=timedelta(minutes=30))

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    assert result.jobs_processed == 0
    assert result.message == "No new jobs to process"


def test_each_matching_alert_gets_its_own_notification(db, now, make_profile, make_job, make_alert):
    first = make_profile(name="First Worker")
    second = make_profile(name="Second Worker")
    make_alert(first)
    make_alert(second, radius_km=50)
    make_job(coords=NEAR, now=now)
    make_job(coords=FAR, now=now, title="Conduit Run")

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    # first: NEAR only; second: NEAR and FAR
    assert result.notifications_created == 3
    assert db.query(Notification).filter(Notification.user_id == first.id).count() == 1
    assert db.query(Notification).filter(Notification.user_id == second.id).count() == 2


def test_failed_insert_does_not_stop_other_pairs(db, now, make_profile, make_job, make_alert, monkeypatch):
    unlucky = make_profile(name="Unlucky Worker")
    lucky = make_profile(name="Lucky Worker")
    make_alert(unlucky)
    make_alert(lucky)
    make_job(coords=NEAR, now=now)

    real_insert = proximity_alert_service._insert_notification

    def flaky_insert(session, notification):
        if notification.user_id == unlucky.id:
            raise SQLAlchemyError("insert failed")
        real_insert(session, notification)

    monkeypatch.setattr(proximity_alert_service, "_insert_notification", flaky_insert)

    result = run_proximity_alert_check(db, now=now, use_cursor=False)

    assert result.notifications_created == 1
    assert result.notifications_failed == 1
    assert db.query(Notification).one().user_id == lucky.id


def test_fetch_failure_raises_transport_error_without_writes(db, now, make_profile, make_alert, monkeypatch):
    make_alert(make_profile())

    def lost_connection(*args, **kwargs):
        raise OperationalError("SELECT jobs", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "query", lost_connection)

    with pytest.raises(TransportError):
        run_proximity_alert_check(db, now=now)

    monkeypatch.undo()
    assert db.query(Notification).count() == 0
    assert db.get(JobAlertCursor, CURSOR_NAME) is None


def test_cursor_is_advanced_after_run(db, now):
    run_proximity_alert_check(db, now=now, use_cursor=True)

    cursor = db.get(JobAlertCursor, CURSOR_NAME)
    assert cursor is not None
    assert cursor.last_processed_at == now


def test_cursor_widens_window_after_missed_run(db, now, make_profile, make_job, make_alert):
    make_alert(make_profile())
    make_job(coords=NEAR, now=now, age=timedelta(minutes=25))
    db.add(JobAlertCursor(name=CURSOR_NAME, last_processed_at=now - timedelta(minutes=30)))
    db.commit()

    without_cursor = run_proximity_alert_check(db, now=now, use_cursor=False)
    assert without_cursor.jobs_processed == 0

    with_cursor = run_proximity_alert_check(db, now=now, use_cursor=True)
    assert with_cursor.jobs_processed == 1
    assert with_cursor.notifications_created == 1


def test_rerun_after_cursor_advance_does_not_renotify(db, now, make_profile, make_job, make_alert):
    make_alert(make_profile())
    make_job(coords=NEAR, now=now)

    first = run_proximity_alert_check(db, now=now, use_cursor=True)
    second = run_proximity_alert_check(db, now=now + timedelta(minutes=10), use_cursor=True)

    assert first.notifications_created == 1
    assert second.jobs_processed == 0
    assert db.query(Notification).count() == 1
