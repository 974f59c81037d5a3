"""
End-to-end lifecycle of one month of hours across the three portals.

Covers:
- Employee submits, manager rejects, employee revises and resubmits
- Manager approves, admin rejects, employee resubmits again
- Manager approves, admin pays, invoice issued and attached
- Straight-through approval and payment, after which the admin cannot reject
- Admin clarification request parks the submission
- Every counterparty receives the expected notification, newest first
- Reviewed submissions can no longer be edited or deleted
"""

from datetime import date
from decimal import Decimal

import pytest

from timesheet_kernel.domain.dtos import ErrorCode, NotificationType, TransitionPayload
from timesheet_kernel.domain.submission_status import (
    Audience,
    SubmissionStatus,
    status_display,
)


class StubInvoiceGenerator:
    def __init__(self):
        self.calls = []

    def generate(self, submission):
        self.calls.append(submission.id)
        return f"INV-{submission.period_key}"


@pytest.fixture
def step(deterministic_clock):
    """Advance the clock one minute so each action has its own timestamp."""

    def _step():
        deterministic_clock.advance(60)

    return _step


def _types(inbox):
    return [n.type for n in inbox]


class TestFullPaymentPath:

    def test_reject_revise_approve_reject_revise_approve_pay(
        self, step, admin, manager, employee, create_submission,
        submission_factory, transition_executor, submission_selector,
        notification_selector,
    ):
        # Employee submits June
        created = create_submission(submission_date=date(2025, 6, 30), hours_submitted="160")
        assert created.created
        june = created.submission
        assert june.status == SubmissionStatus.SUBMITTED
        assert june.manager_id == manager.id

        manager_inbox = notification_selector.list_for_recipient(manager.id)
        assert manager_inbox[0].type == NotificationType.HOURS_SUBMITTED
        assert manager_inbox[0].message == "Eli Employee submitted hours for Jun 30, 2025."

        # Manager rejects
        step()
        rejected = transition_executor.apply_transition(
            june.id, manager.id, "MANAGER", "REJECT",
            TransitionPayload(rejection_reason="Missing project code"),
        )
        assert rejected.new_status == SubmissionStatus.MANAGER_REJECTED
        assert rejected.submission.manager_comment == "Missing project code"
        assert status_display(rejected.new_status, Audience.EMPLOYEE).label == (
            "Rejected - Please Revise"
        )

        # Employee revises; rejected hours go back to review
        step()
        revised = submission_factory.update_submission(
            june.id, employee.id, date(2025, 6, 30), "150", "Platform work, code P-7",
        )
        assert revised.is_success
        assert revised.message == "Submission updated and resubmitted for review"
        assert revised.submission.status == SubmissionStatus.SUBMITTED
        assert revised.submission.hours_submitted == Decimal("150")

        # Manager approves
        step()
        approved = transition_executor.apply_transition(june.id, manager.id, "MANAGER", "APPROVE")
        assert approved.is_success
        assert approved.submission.manager_comment is None
        assert approved.notifications_emitted == 2

        admin_inbox = notification_selector.list_for_recipient(admin.id)
        assert admin_inbox[0].title == "Submission ready for processing"
        assert admin_inbox[0].message == (
            "Eli Employee's submission for Jun 30, 2025 was approved by manager."
        )

        # Admin rejects
        step()
        admin_rejected = transition_executor.apply_transition(
            june.id, admin.id, "ADMIN", "REJECT",
            TransitionPayload(rejection_reason="Rate sheet mismatch"),
        )
        assert admin_rejected.is_admin_action
        assert admin_rejected.new_status == SubmissionStatus.ADMIN_REJECTED
        assert admin_rejected.submission.admin_comment == "Rate sheet mismatch"
        assert notification_selector.list_for_recipient(manager.id)[0].type == (
            NotificationType.HOURS_REJECTED_ADMIN
        )

        # Employee resubmits unchanged hours
        step()
        resubmitted = submission_factory.update_submission(
            june.id, employee.id, date(2025, 6, 30), "150", "Platform work, code P-7",
        )
        assert resubmitted.submission.status == SubmissionStatus.SUBMITTED

        # Approve and pay
        step()
        reapproved = transition_executor.apply_transition(june.id, manager.id, "MANAGER", "APPROVE")
        assert reapproved.submission.manager_comment is None
        assert reapproved.submission.admin_comment == "Rate sheet mismatch"
        step()
        paid = transition_executor.apply_transition(
            june.id, admin.id, "ADMIN", "PROCESS_PAYMENT",
            TransitionPayload(payment_reference="ACH-2025-07-01"),
        )
        assert paid.new_status == SubmissionStatus.ADMIN_PAID
        assert paid.submission.admin_comment == "ACH-2025-07-01"
        assert paid.submission.acted_by_id == admin.id

        # Employee's view of the whole history, newest first
        assert _types(notification_selector.list_for_recipient(employee.id)) == [
            NotificationType.PAYMENT_PROCESSED,
            NotificationType.HOURS_APPROVED,
            NotificationType.HOURS_REJECTED_ADMIN,
            NotificationType.HOURS_APPROVED,
            NotificationType.HOURS_REJECTED_MANAGER,
        ]
        assert submission_selector.list_for_admin(statuses=["ADMIN_PAID"])[0].id == june.id

        # Paid submissions are closed to the employee
        step()
        edit = submission_factory.update_submission(
            june.id, employee.id, date(2025, 6, 30), "1", "late change",
        )
        assert edit.error_code == ErrorCode.ACTION_NOT_ALLOWED
        delete = submission_factory.delete_submission(june.id, employee.id)
        assert delete.error_code == ErrorCode.ACTION_NOT_ALLOWED

        # Invoice
        generator = StubInvoiceGenerator()
        invoiced = submission_factory.issue_invoice(june.id, generator)
        assert invoiced.submission.invoice_id == "INV-2025-06"
        again = submission_factory.issue_invoice(june.id, generator)
        assert again.message == "Invoice already attached"
        assert generator.calls == [june.id]

    def test_month_stays_taken_after_payment(
        self, admin, manager, create_submission, transition_executor,
    ):
        june = create_submission(submission_date=date(2025, 6, 30)).submission
        transition_executor.apply_transition(june.id, manager.id, "MANAGER", "APPROVE")
        transition_executor.apply_transition(june.id, admin.id, "ADMIN", "PROCESS_PAYMENT")

        retry = create_submission(submission_date=date(2025, 6, 1))
        assert retry.error_code == ErrorCode.DUPLICATE_MONTH_YEAR


class TestStraightThroughApproval:

    def test_submit_approve_pay_then_admin_reject_is_refused(
        self, step, admin, manager, create_submission, transition_executor,
        submission_selector,
    ):
        created = create_submission(
            submission_date=date(2025, 6, 30), hours_submitted="160", description="June work",
        )
        assert created.created
        june = created.submission
        assert june.period_key == "2025-06"
        assert june.hours_submitted == Decimal("160")
        assert june.status == SubmissionStatus.SUBMITTED

        step()
        approved = transition_executor.apply_transition(june.id, manager.id, "MANAGER", "APPROVE")
        assert approved.is_success
        assert approved.new_status == SubmissionStatus.MANAGER_APPROVED
        assert approved.submission.manager_comment is None

        step()
        paid = transition_executor.apply_transition(june.id, admin.id, "ADMIN", "PROCESS_PAYMENT")
        assert paid.is_success
        assert paid.new_status == SubmissionStatus.ADMIN_PAID
        assert paid.submission.admin_comment is None

        step()
        late_reject = transition_executor.apply_transition(
            june.id, admin.id, "ADMIN", "REJECT",
            TransitionPayload(rejection_reason="Second thoughts"),
        )
        assert late_reject.error_code == ErrorCode.ACTION_NOT_ALLOWED
        assert submission_selector.get(june.id).status == SubmissionStatus.ADMIN_PAID


class TestClarificationPath:

    def test_clarification_parks_submission(
        self, step, admin, manager, employee, create_submission,
        transition_executor, notification_selector,
    ):
        june = create_submission().submission
        step()
        transition_executor.apply_transition(june.id, manager.id, "MANAGER", "APPROVE")
        step()

        result = transition_executor.apply_transition(
            june.id, admin.id, "ADMIN", "REQUEST_CLARIFICATION",
            TransitionPayload(message="Which client was billed?"),
        )

        assert result.new_status == SubmissionStatus.NEEDS_CLARIFICATION
        assert result.submission.admin_comment == "Which client was billed?"

        manager_note = notification_selector.list_for_recipient(manager.id)[0]
        assert manager_note.type == NotificationType.HOURS_CLARIFICATION_ADMIN
        assert manager_note.message == (
            "Admin requested clarification for Eli Employee's submission on "
            'Jun 30, 2025. Message: "Which client was billed?".'
        )
        employee_note = notification_selector.list_for_recipient(employee.id)[0]
        assert employee_note.title == "Submission under review"

        # Nothing moves a parked submission on
        step()
        pay = transition_executor.apply_transition(june.id, admin.id, "ADMIN", "PROCESS_PAYMENT")
        assert pay.error_code == ErrorCode.ACTION_NOT_ALLOWED
        assert pay.previous_status == SubmissionStatus.NEEDS_CLARIFICATION
