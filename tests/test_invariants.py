"""
Tests for the Invariant Engine
"""

import pytest
from datetime import date
from sqlmodel import Session

from volunteerhub.core.exceptions import (
    CapacityExceeded,
    DanglingReference,
    InvalidLeader,
    InvalidValue,
    NotFound,
    Unauthorized,
)
from volunteerhub.crud.activity import activity_crud
from volunteerhub.crud.team import membership_crud, team_crud
from volunteerhub.crud.user import user_crud
from volunteerhub.models.activity import ActivityType
from volunteerhub.models.rating import RatedEntityType
from volunteerhub.models.team import Team
from volunteerhub.services.invariants import InvariantOperation, invariant_engine


def add_member(session: Session, team_id: int, volunteer_id: int):
    return membership_crud.create_membership(session, team_id, volunteer_id)


# ============================================================
# CAPACITY
# ============================================================


class TestCapacity:
    def test_allows_join_below_capacity(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)
        add_member(session, team.id, volunteers[0].profile.id)

        assert invariant_engine.check_capacity(session, locked) == 1

    def test_rejects_join_at_capacity(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)
        add_member(session, team.id, volunteers[0].profile.id)
        add_member(session, team.id, volunteers[1].profile.id)

        with pytest.raises(CapacityExceeded) as exc_info:
            invariant_engine.check_capacity(session, locked)
        assert exc_info.value.max_members == 2

    def test_inactive_memberships_do_not_count(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)
        add_member(session, team.id, volunteers[0].profile.id)
        closed = add_member(session, team.id, volunteers[1].profile.id)
        membership_crud.deactivate(session, closed)

        assert invariant_engine.check_capacity(session, locked) == 1

    def test_lock_missing_team(self, session: Session):
        with pytest.raises(NotFound):
            invariant_engine.lock_team(session, 9999)

    def test_validate_dispatches_capacity(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)
        add_member(session, team.id, volunteers[0].profile.id)
        add_member(session, team.id, volunteers[1].profile.id)

        with pytest.raises(CapacityExceeded):
            invariant_engine.validate(session, InvariantOperation.MEMBERSHIP_ACTIVATE, team=locked)


# ============================================================
# LEADERSHIP
# ============================================================


class TestLeadership:
    def test_active_member_can_lead(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)
        add_member(session, team.id, volunteers[0].profile.id)

        invariant_engine.check_leader(session, locked, volunteers[0].profile.id)

    def test_non_member_cannot_lead(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)

        with pytest.raises(InvalidLeader):
            invariant_engine.check_leader(session, locked, volunteers[0].profile.id)

    def test_former_member_cannot_lead(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)
        membership = add_member(session, team.id, volunteers[0].profile.id)
        membership_crud.deactivate(session, membership)

        with pytest.raises(InvalidLeader):
            invariant_engine.validate(
                session, InvariantOperation.LEADER_ASSIGN, team=locked, volunteer_id=volunteers[0].profile.id
            )

    def test_release_leadership_only_clears_matching_leader(self, session: Session, team, volunteers):
        locked = invariant_engine.lock_team(session, team.id)
        add_member(session, team.id, volunteers[0].profile.id)
        team_crud.set_leader(session, locked, volunteers[0].profile.id)

        assert invariant_engine.release_leadership(session, locked, volunteers[1].profile.id) is False
        assert locked.team_leader_id == volunteers[0].profile.id

        assert invariant_engine.release_leadership(session, locked, volunteers[0].profile.id) is True
        assert session.get(Team, team.id).team_leader_id is None


# ============================================================
# POLYMORPHIC REFERENCES
# ============================================================


class TestRatingTargets:
    @pytest.mark.parametrize("entity_type", ["volunteer", "project", "team", "charity"])
    def test_missing_target_is_dangling(self, session: Session, entity_type):
        with pytest.raises(DanglingReference) as exc_info:
            invariant_engine.check_entity_exists(session, entity_type, 9999)
        assert exc_info.value.entity_type == entity_type

    def test_existing_targets_resolve(self, session: Session, charity, project, team, volunteers):
        targets = {
            RatedEntityType.volunteer: volunteers[0].profile.id,
            RatedEntityType.project: project.id,
            RatedEntityType.team: team.id,
            RatedEntityType.charity: charity.profile.id,
        }
        for entity_type, entity_id in targets.items():
            entity = invariant_engine.check_entity_exists(session, entity_type, entity_id)
            assert entity.id == entity_id

    def test_unknown_type_is_invalid(self, session: Session):
        with pytest.raises(InvalidValue):
            invariant_engine.check_entity_exists(session, "hackathon", 1)

    @pytest.mark.parametrize("value", [0, 6, -1, 3.5, "3", True, None])
    def test_rating_value_out_of_range(self, value):
        with pytest.raises(InvalidValue):
            invariant_engine.check_rating_value(value)

    @pytest.mark.parametrize("value", [1, 3, 5])
    def test_rating_value_in_range(self, value):
        assert invariant_engine.check_rating_value(value) == value


# ============================================================
# ACTIVITY REFERENCES AND APPROVAL
# ============================================================


class TestActivityReferences:
    def test_project_filled_from_team(self, session: Session, project, team):
        project_id = invariant_engine.check_activity_references(session, 60, team_id=team.id)
        assert project_id == project.id

    def test_team_from_other_project_rejected(self, session: Session, coordinator, charity, team, as_principal):
        other = coordinator.create_project(as_principal(charity), "Other Project").unwrap()

        with pytest.raises(InvalidValue):
            invariant_engine.check_activity_references(session, 60, project_id=other.id, team_id=team.id)

    def test_missing_project_is_dangling(self, session: Session):
        with pytest.raises(DanglingReference):
            invariant_engine.check_activity_references(session, 60, project_id=9999)

    def test_negative_duration_rejected(self, session: Session):
        with pytest.raises(InvalidValue):
            invariant_engine.check_activity_references(session, -5)


class TestApprover:
    def _activity(self, session, volunteer, project_id=None, team_id=None):
        return activity_crud.create_activity(
            session,
            volunteer_id=volunteer.profile.id,
            activity_type=ActivityType.hours_logged,
            duration_minutes=60,
            activity_date=date(2024, 5, 1),
            project_id=project_id,
            team_id=team_id,
        )

    def test_owning_charity_may_approve(self, session: Session, charity, project, volunteers):
        activity = self._activity(session, volunteers[0], project_id=project.id)
        approver = user_crud.get_user(session, charity.user.id)

        invariant_engine.check_approver(session, approver, activity)

    def test_owning_charity_may_approve_team_activity(self, session: Session, charity, project, team, volunteers):
        activity = self._activity(session, volunteers[0], team_id=team.id)
        approver = user_crud.get_user(session, charity.user.id)

        invariant_engine.check_approver(session, approver, activity)

    def test_other_charity_may_not_approve(self, session: Session, other_charity, project, volunteers):
        activity = self._activity(session, volunteers[0], project_id=project.id)
        approver = user_crud.get_user(session, other_charity.user.id)

        with pytest.raises(Unauthorized):
            invariant_engine.check_approver(session, approver, activity)

    def test_volunteer_may_not_approve(self, session: Session, project, volunteers):
        activity = self._activity(session, volunteers[0], project_id=project.id)
        approver = user_crud.get_user(session, volunteers[1].user.id)

        with pytest.raises(Unauthorized):
            invariant_engine.validate(
                session, InvariantOperation.ACTIVITY_APPROVE, approver=approver, activity=activity
            )

    def test_admin_may_approve_unscoped(self, session: Session, admin, volunteers):
        activity = self._activity(session, volunteers[0])
        approver = user_crud.get_user(session, admin.user.id)

        invariant_engine.check_approver(session, approver, activity)

    def test_charity_may_not_approve_unscoped(self, session: Session, charity, volunteers):
        activity = self._activity(session, volunteers[0])
        approver = user_crud.get_user(session, charity.user.id)

        with pytest.raises(Unauthorized):
            invariant_engine.check_approver(session, approver, activity)

    def test_inactive_admin_may_not_approve(self, session: Session, admin, volunteers):
        activity = self._activity(session, volunteers[0])
        approver = user_crud.get_user(session, admin.user.id)
        user_crud.set_active(session, approver, False)

        with pytest.raises(Unauthorized):
            invariant_engine.check_approver(session, approver, activity)

    def test_missing_approver(self, session: Session, volunteers):
        activity = self._activity(session, volunteers[0])

        with pytest.raises(Unauthorized):
            invariant_engine.check_approver(session, None, activity)
