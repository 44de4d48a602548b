"""
Concurrent requests against the same team and activity
"""

import threading
from datetime import date

from volunteerhub.core.exceptions import ViolationKind
from volunteerhub.models.activity import ActivityType
from volunteerhub.models.user import VolunteerProfile
from volunteerhub.services.coordinator import ResultStatus


def run_together(*calls):
    """Start every call at the same moment and collect the results in order."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)

    def runner(index, call):
        barrier.wait()
        results[index] = call()

    threads = [threading.Thread(target=runner, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


class TestConcurrentJoins:
    def test_only_one_join_fits_last_seat(self, coordinator, team, volunteers, as_principal, active_member_count):
        coordinator.join_team(as_principal(volunteers[0]), team.id).unwrap()

        results = run_together(
            lambda: coordinator.join_team(as_principal(volunteers[1]), team.id),
            lambda: coordinator.join_team(as_principal(volunteers[2]), team.id),
        )

        succeeded = [r for r in results if r.ok]
        rejected = [r for r in results if not r.ok]
        assert len(succeeded) == 1
        assert len(rejected) == 1
        assert rejected[0].status == ResultStatus.CLIENT_ERROR
        assert rejected[0].kind == ViolationKind.CAPACITY_EXCEEDED
        assert active_member_count(team.id) == 2

    def test_same_volunteer_joins_once(self, coordinator, team, volunteers, as_principal, active_member_count):
        results = run_together(
            lambda: coordinator.join_team(as_principal(volunteers[0]), team.id),
            lambda: coordinator.join_team(as_principal(volunteers[0]), team.id),
        )

        assert sorted(r.ok for r in results) == [False, True]
        assert [r.kind for r in results if not r.ok] == [ViolationKind.ALREADY_MEMBER]
        assert active_member_count(team.id) == 1


class TestConcurrentApprovals:
    def test_double_approval_credits_once(self, coordinator, admin, charity, project, volunteers, as_principal, fetch):
        activity = coordinator.log_activity(
            as_principal(volunteers[0]),
            ActivityType.hours_logged,
            duration_minutes=120,
            activity_date=date(2024, 5, 1),
            project_id=project.id,
        ).unwrap()

        results = run_together(
            lambda: coordinator.approve_activity(as_principal(charity), activity.id, 10),
            lambda: coordinator.approve_activity(as_principal(admin), activity.id, 10),
        )

        assert all(r.ok for r in results)
        assert fetch(VolunteerProfile, volunteers[0].profile.id).points == 10
