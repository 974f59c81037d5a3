"""
Tests for ManagerAssignmentSynchronizer -- reporting-manager changes.

Covers:
- Reassignment: membership update, retroactive re-point of submissions,
  TEAM_ADDED notification
- First assignment creates a membership with a default contract window
- Unassignment deletes the membership, TEAM_REMOVED
- Unchanged manager: no membership write, no notification, lagging copy healed
- Validation and lookup failures
- Partial failure: membership kept when the submissions update fails
- sync_all_manager_assignments() backfill
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import text

from timesheet_kernel.domain.dtos import ErrorCode, MembershipAction, NotificationType


@pytest.fixture
def new_manager(make_employee):
    return make_employee("Nia Newman", role="MANAGER")


@pytest.fixture
def two_submissions(create_submission):
    return [
        create_submission(submission_date=date(2025, 5, 31)).submission,
        create_submission(submission_date=date(2025, 6, 30)).submission,
    ]


def _detach_submissions(session, employee_id):
    """Simulate a lagging denormalized copy."""
    session.execute(
        text("UPDATE submissions SET manager_id = NULL WHERE employee_id = :id"),
        {"id": str(employee_id)},
    )
    session.expire_all()


class TestReassign:

    def test_reassign_repoints_all_submissions(
        self, manager_sync, employee, manager, new_manager, two_submissions,
        submission_selector, employee_selector,
    ):
        result = manager_sync.sync_manager_assignment(employee.id, new_manager.id)

        assert result.is_success
        assert result.manager_changed
        assert result.previous_manager_id == manager.id
        assert result.new_manager_id == new_manager.id
        assert result.membership_action == MembershipAction.UPDATED
        assert result.submissions_updated == 2
        assert result.submissions_synced
        assert result.message == "Manager updated"

        assert {s.id for s in submission_selector.list_for_manager(new_manager.id)} == {
            s.id for s in two_submissions
        }
        assert submission_selector.list_for_manager(manager.id) == []
        assert employee_selector.get(employee.id).reporting_manager_id == new_manager.id
        assert employee_selector.get_membership(employee.id).manager_id == new_manager.id

    def test_employee_is_told(
        self, manager_sync, employee, new_manager, notification_selector,
    ):
        manager_sync.sync_manager_assignment(employee.id, new_manager.id)

        inbox = notification_selector.list_for_recipient(employee.id)
        assert len(inbox) == 1
        assert inbox[0].type == NotificationType.TEAM_ADDED
        assert inbox[0].title == "Manager Assigned"
        assert inbox[0].message == "You have been assigned to Nia Newman's team."
        assert inbox[0].entity_type == "TEAM"
        assert inbox[0].entity_id == new_manager.id

    def test_new_submissions_follow_new_manager(
        self, manager_sync, employee, new_manager, create_submission,
    ):
        manager_sync.sync_manager_assignment(employee.id, new_manager.id)
        result = create_submission(submission_date=date(2025, 7, 31))
        assert result.submission.manager_id == new_manager.id


class TestFirstAssignment:

    def test_creates_membership_with_contract_window(
        self, manager_sync, make_employee, manager, employee_selector,
    ):
        newcomer = make_employee("Nico Newcomer")

        result = manager_sync.sync_manager_assignment(newcomer.id, manager.id)

        assert result.membership_action == MembershipAction.CREATED
        assert result.previous_manager_id is None
        membership = employee_selector.get_membership(newcomer.id)
        assert membership.manager_id == manager.id
        assert membership.contract_start == date(2025, 6, 10)
        assert membership.contract_end == date(2026, 6, 10)
        assert newcomer.id in {e.id for e in employee_selector.list_team(manager.id)}


class TestUnassign:

    def test_unassign_deletes_membership(
        self, manager_sync, employee, manager, two_submissions,
        submission_selector, employee_selector, notification_selector,
    ):
        result = manager_sync.sync_manager_assignment(employee.id, None)

        assert result.membership_action == MembershipAction.DELETED
        assert result.manager_changed
        assert result.submissions_updated == 2
        assert employee_selector.get_membership(employee.id) is None
        assert employee_selector.get(employee.id).reporting_manager_id is None
        assert all(s.manager_id is None for s in submission_selector.list_for_employee(employee.id))

        inbox = notification_selector.list_for_recipient(employee.id)
        assert inbox[0].type == NotificationType.TEAM_REMOVED
        assert inbox[0].message == "You have been removed from your team assignment."
        assert inbox[0].entity_id == manager.id

    def test_unassign_without_manager_is_unchanged(
        self, manager_sync, make_employee, notification_selector,
    ):
        loner = make_employee("Lee Loner")
        result = manager_sync.sync_manager_assignment(loner.id, None)

        assert result.is_success
        assert not result.manager_changed
        assert result.membership_action == MembershipAction.UNCHANGED
        assert notification_selector.list_for_recipient(loner.id) == []


class TestUnchangedManager:

    def test_same_manager_heals_lagging_submissions(
        self, session, manager_sync, employee, manager, two_submissions,
        submission_selector, notification_selector,
    ):
        _detach_submissions(session, employee.id)

        result = manager_sync.sync_manager_assignment(employee.id, manager.id)

        assert result.is_success
        assert not result.manager_changed
        assert result.membership_action == MembershipAction.UNCHANGED
        assert result.message == "Manager unchanged"
        assert result.submissions_updated == 2
        assert len(submission_selector.list_for_manager(manager.id)) == 2
        assert notification_selector.list_for_recipient(employee.id) == []


class TestSyncFailures:

    def test_cannot_manage_self(self, manager_sync, employee):
        result = manager_sync.sync_manager_assignment(employee.id, employee.id)
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.message == "An employee cannot be their own manager"

    def test_unknown_employee(self, manager_sync, manager):
        result = manager_sync.sync_manager_assignment(uuid4(), manager.id)
        assert result.error_code == ErrorCode.NOT_FOUND

    def test_unknown_manager(self, manager_sync, employee, employee_selector, manager):
        result = manager_sync.sync_manager_assignment(employee.id, uuid4())
        assert result.error_code == ErrorCode.NOT_FOUND
        assert employee_selector.get(employee.id).reporting_manager_id == manager.id

    def test_membership_write_failure(
        self, manager_sync, employee, manager, new_manager, fail_writes,
        employee_selector, notification_selector,
    ):
        with fail_writes("team_memberships", "UPDATE"):
            result = manager_sync.sync_manager_assignment(employee.id, new_manager.id)

        assert result.error_code == ErrorCode.PERSISTENCE_ERROR
        assert result.message == "The manager assignment could not be saved. Please try again."
        assert employee_selector.get(employee.id).reporting_manager_id == manager.id
        assert employee_selector.get_membership(employee.id).manager_id == manager.id
        assert notification_selector.list_for_recipient(employee.id) == []

    def test_submissions_failure_keeps_membership(
        self, manager_sync, employee, new_manager, two_submissions, fail_writes,
        employee_selector, submission_selector, notification_selector, captured_logs,
    ):
        with fail_writes("submissions", "UPDATE"):
            result = manager_sync.sync_manager_assignment(employee.id, new_manager.id)

        assert result.is_success
        assert not result.submissions_synced
        assert result.submissions_updated == 0
        assert result.message == "Manager updated; submissions will be re-synced later"
        assert employee_selector.get_membership(employee.id).manager_id == new_manager.id
        assert submission_selector.list_for_manager(new_manager.id) == []
        assert notification_selector.list_for_recipient(employee.id)[0].type == (
            NotificationType.TEAM_ADDED
        )
        failures = [
            r for r in captured_logs() if r["message"] == "manager_sync_submissions_failed"
        ]
        assert failures and failures[0]["level"] == "ERROR"

        backfill = manager_sync.sync_all_manager_assignments()
        assert backfill.submissions_updated == 2
        assert backfill.errors == 0
        assert len(submission_selector.list_for_manager(new_manager.id)) == 2


class TestBackfill:

    def test_backfill_repoints_only_lagging_rows(
        self, session, manager_sync, employee, manager, two_submissions,
        submission_selector, captured_logs,
    ):
        _detach_submissions(session, employee.id)

        result = manager_sync.sync_all_manager_assignments()

        assert result.employees_processed == 1
        assert result.submissions_updated == 2
        assert result.errors == 0
        assert len(submission_selector.list_for_manager(manager.id)) == 2
        assert any(r["message"] == "manager_backfill_completed" for r in captured_logs())

    def test_backfill_is_noop_when_consistent(self, manager_sync, employee, two_submissions):
        result = manager_sync.sync_all_manager_assignments()
        assert result.submissions_updated == 0

    def test_backfill_counts_failures(
        self, session, manager_sync, employee, two_submissions, fail_writes,
    ):
        _detach_submissions(session, employee.id)

        with fail_writes("submissions", "UPDATE"):
            result = manager_sync.sync_all_manager_assignments()

        assert result.employees_processed == 1
        assert result.submissions_updated == 0
        assert result.errors == 1
