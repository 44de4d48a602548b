"""
Tests for activity logging, approval and the points ledger
"""

import pytest
from datetime import date, datetime

from sqlmodel import Session

from volunteerhub.core.exceptions import ViolationKind
from volunteerhub.models.activity import ActivityLog, ActivityType
from volunteerhub.models.user import VolunteerProfile
from volunteerhub.services.activity_service import ActivityService
from volunteerhub.services.coordinator import ResultStatus


def log_hours(coordinator, account, minutes=120, on=date(2024, 5, 1), **references):
    return coordinator.log_activity(
        account,
        ActivityType.hours_logged,
        duration_minutes=minutes,
        activity_date=on,
        **references,
    ).unwrap()


class TestLogActivity:
    def test_logged_activity_is_pending(self, coordinator, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)

        stored = fetch(ActivityLog, activity.id)
        assert stored.is_approved is False
        assert stored.points_awarded == 0
        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 0

    def test_project_filled_in_from_team(self, coordinator, project, team, volunteers, as_principal):
        activity = log_hours(coordinator, as_principal(volunteers[0]), team_id=team.id)

        assert activity.project_id == project.id
        assert activity.team_id == team.id

    def test_unknown_activity_type(self, coordinator, volunteers, as_principal):
        result = coordinator.log_activity(
            as_principal(volunteers[0]), "sleeping", duration_minutes=60, activity_date=date(2024, 5, 1)
        )

        assert result.kind == ViolationKind.INVALID_VALUE

    def test_negative_duration(self, coordinator, volunteers, as_principal):
        result = coordinator.log_activity(
            as_principal(volunteers[0]), ActivityType.hours_logged, duration_minutes=-1, activity_date=date(2024, 5, 1)
        )

        assert result.kind == ViolationKind.INVALID_VALUE

    @pytest.mark.parametrize("activity_date", [None, "2024-05-01"])
    def test_bad_activity_date_is_client_error(self, coordinator, project, volunteers, as_principal, sleeps, activity_date):
        result = coordinator.log_activity(
            as_principal(volunteers[0]),
            ActivityType.hours_logged,
            duration_minutes=60,
            activity_date=activity_date,
            project_id=project.id,
        )

        assert result.status == ResultStatus.CLIENT_ERROR
        assert result.kind == ViolationKind.INVALID_VALUE
        assert result.attempts == 1
        assert sleeps == []

    def test_datetime_is_stored_as_date(self, coordinator, volunteers, as_principal, fetch):
        activity = coordinator.log_activity(
            as_principal(volunteers[0]),
            ActivityType.hours_logged,
            duration_minutes=60,
            activity_date=datetime(2024, 5, 1, 14, 30),
        ).unwrap()

        assert fetch(ActivityLog, activity.id).activity_date == date(2024, 5, 1)

    def test_missing_project(self, coordinator, volunteers, as_principal):
        result = coordinator.log_activity(
            as_principal(volunteers[0]),
            ActivityType.hours_logged,
            duration_minutes=60,
            activity_date=date(2024, 5, 1),
            project_id=9999,
        )

        assert result.kind == ViolationKind.DANGLING_REFERENCE

    def test_cannot_log_for_someone_else(self, coordinator, volunteers, as_principal):
        result = coordinator.log_activity(
            as_principal(volunteers[0]),
            ActivityType.hours_logged,
            duration_minutes=60,
            activity_date=date(2024, 5, 1),
            volunteer_id=volunteers[1].profile.id,
        )

        assert result.kind == ViolationKind.UNAUTHORIZED


class TestApproveActivity:
    def test_approval_credits_points(self, coordinator, charity, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), minutes=120, project_id=project.id)

        result = coordinator.approve_activity(as_principal(charity), activity.id, 10)

        assert result.ok
        stored = fetch(ActivityLog, activity.id)
        assert stored.is_approved is True
        assert stored.points_awarded == 10
        assert stored.approved_by == charity.user.id
        assert stored.approved_at is not None

        profile = fetch(VolunteerProfile, volunteers[0].profile.id)
        assert profile.points == 10
        assert profile.last_activity == datetime(2024, 5, 1)

    def test_second_approval_credits_once(self, coordinator, charity, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)

        coordinator.approve_activity(as_principal(charity), activity.id, 10).unwrap()
        again = coordinator.approve_activity(as_principal(charity), activity.id, 25)

        assert again.ok
        assert again.value.points_awarded == 10
        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 10

    def test_last_activity_never_moves_backwards(self, coordinator, charity, project, volunteers, as_principal, fetch):
        newer = log_hours(coordinator, as_principal(volunteers[0]), on=date(2024, 6, 1), project_id=project.id)
        older = log_hours(coordinator, as_principal(volunteers[0]), on=date(2024, 4, 1), project_id=project.id)

        coordinator.approve_activity(as_principal(charity), newer.id, 5).unwrap()
        coordinator.approve_activity(as_principal(charity), older.id, 5).unwrap()

        profile = fetch(VolunteerProfile, volunteers[0].profile.id)
        assert profile.points == 10
        assert profile.last_activity == datetime(2024, 6, 1)

    def test_negative_points_rejected(self, coordinator, charity, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)

        result = coordinator.approve_activity(as_principal(charity), activity.id, -5)

        assert result.kind == ViolationKind.INVALID_VALUE
        assert fetch(ActivityLog, activity.id).is_approved is False
        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 0

    def test_volunteer_cannot_approve(self, coordinator, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)

        result = coordinator.approve_activity(as_principal(volunteers[1]), activity.id, 10)

        assert result.kind == ViolationKind.UNAUTHORIZED
        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 0

    def test_other_charity_cannot_approve(self, coordinator, other_charity, project, volunteers, as_principal):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)

        result = coordinator.approve_activity(as_principal(other_charity), activity.id, 10)

        assert result.kind == ViolationKind.UNAUTHORIZED

    def test_admin_approves_unscoped_activity(self, coordinator, admin, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]))

        coordinator.approve_activity(as_principal(admin), activity.id, 3).unwrap()

        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 3

    def test_missing_activity(self, coordinator, admin, as_principal):
        result = coordinator.approve_activity(as_principal(admin), 9999, 10)

        assert result.kind == ViolationKind.NOT_FOUND


class TestRejectActivity:
    def test_reject_removes_pending_row(self, coordinator, charity, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)

        result = coordinator.reject_activity(as_principal(charity), activity.id)

        assert result.ok
        assert fetch(ActivityLog, activity.id) is None
        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 0

    def test_cannot_reject_approved(self, coordinator, charity, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)
        coordinator.approve_activity(as_principal(charity), activity.id, 10).unwrap()

        result = coordinator.reject_activity(as_principal(charity), activity.id)

        assert result.kind == ViolationKind.INVALID_VALUE
        assert fetch(ActivityLog, activity.id).points_awarded == 10

    def test_volunteer_cannot_reject(self, coordinator, project, volunteers, as_principal, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)

        result = coordinator.reject_activity(as_principal(volunteers[0]), activity.id)

        assert result.kind == ViolationKind.UNAUTHORIZED
        assert fetch(ActivityLog, activity.id) is not None


class TestListActivities:
    def test_filters_by_approval(self, coordinator, charity, project, volunteers, as_principal):
        approved = log_hours(coordinator, as_principal(volunteers[0]), on=date(2024, 5, 1), project_id=project.id)
        pending = log_hours(coordinator, as_principal(volunteers[0]), on=date(2024, 5, 2), project_id=project.id)
        coordinator.approve_activity(as_principal(charity), approved.id, 4).unwrap()

        everything = coordinator.list_activities(as_principal(volunteers[0])).unwrap()
        only_pending = coordinator.list_activities(as_principal(volunteers[0]), approved=False).unwrap()

        assert [a.id for a in everything] == [pending.id, approved.id]
        assert [a.id for a in only_pending] == [pending.id]

    def test_cannot_list_someone_else(self, coordinator, volunteers, as_principal):
        result = coordinator.list_activities(as_principal(volunteers[0]), volunteer_id=volunteers[1].profile.id)

        assert result.kind == ViolationKind.UNAUTHORIZED


class TestPointsLedger:
    def test_summary_reports_ledger_and_pending(self, coordinator, charity, project, volunteers, as_principal):
        first = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)
        log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)
        coordinator.approve_activity(as_principal(charity), first.id, 7).unwrap()

        summary = coordinator.points_summary(as_principal(volunteers[0])).unwrap()

        assert summary.cached_points == 7
        assert summary.ledger_points == 7
        assert summary.pending_activities == 1
        assert summary.in_sync

    def test_reconcile_corrects_drift(self, coordinator, admin, charity, project, volunteers, as_principal, engine, fetch):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)
        coordinator.approve_activity(as_principal(charity), activity.id, 10).unwrap()

        with Session(engine) as session:
            profile = session.get(VolunteerProfile, volunteers[0].profile.id)
            profile.points = 99
            session.add(profile)
            session.commit()

        correction = coordinator.reconcile_points(as_principal(admin), volunteers[0].profile.id).unwrap()

        assert correction.previous_points == 99
        assert correction.corrected_points == 10
        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 10

    def test_reconcile_in_sync_returns_none(self, coordinator, admin, volunteers, as_principal):
        result = coordinator.reconcile_points(as_principal(admin), volunteers[0].profile.id)

        assert result.ok
        assert result.value is None

    def test_reconcile_all(self, coordinator, admin, volunteers, as_principal, engine):
        with Session(engine) as session:
            profile = session.get(VolunteerProfile, volunteers[1].profile.id)
            profile.points = 4
            session.add(profile)
            session.commit()

        report = coordinator.reconcile_points(as_principal(admin)).unwrap()

        assert report.checked == 3
        assert report.corrected == 1
        assert report.corrections[0].volunteer_id == volunteers[1].profile.id

    def test_reconcile_requires_admin(self, coordinator, charity, volunteers, as_principal):
        result = coordinator.reconcile_points(as_principal(charity), volunteers[0].profile.id)

        assert result.kind == ViolationKind.UNAUTHORIZED

    def test_service_summary_matches(self, session, coordinator, charity, project, volunteers, as_principal):
        activity = log_hours(coordinator, as_principal(volunteers[0]), project_id=project.id)
        coordinator.approve_activity(as_principal(charity), activity.id, 12).unwrap()

        summary = ActivityService.points_summary(session, volunteers[0].profile.id)

        assert summary.ledger_points == 12
        assert summary.last_activity == datetime(2024, 5, 1)
