"""
Period helpers -- calendar-month keys and labels for submissions.

A submission covers the calendar month its ``submission_date`` falls in.
The ``YYYY-MM`` period key is the duplicate-detection key; the labels are
what the portals show.
"""

from datetime import date, datetime

from timesheet_kernel.exceptions import SubmissionValidationError


def parse_submission_date(value: date | datetime | str | None) -> date:
    """
    Coerce a caller-supplied submission date to ``date``.

    Accepts a ``date``, a ``datetime`` (its date part is used) or an ISO
    8601 string (``2025-03-14`` or a full timestamp).

    Raises:
        SubmissionValidationError: If the value is missing or unparseable.
    """
    if value is None:
        raise SubmissionValidationError(
            "submission_date", "Submission date is required"
        )
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise SubmissionValidationError(
                "submission_date", "Submission date is required"
            )
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise SubmissionValidationError(
                "submission_date", f"Invalid submission date: {value!r}"
            ) from exc
    raise SubmissionValidationError(
        "submission_date", f"Invalid submission date: {value!r}"
    )


def period_key(day: date) -> str:
    """``date(2025, 3, 14)`` -> ``"2025-03"``."""
    return f"{day.year:04d}-{day.month:02d}"


def period_label(day: date) -> str:
    """``date(2025, 3, 14)`` -> ``"March 2025"``."""
    return day.strftime("%B %Y")


def date_label(day: date) -> str:
    """``date(2025, 3, 1)`` -> ``"Mar 01, 2025"``."""
    return day.strftime("%b %d, %Y")


def period_label_from_key(key: str) -> str:
    """``"2025-03"`` -> ``"March 2025"``."""
    year, month = key.split("-")
    return period_label(date(int(year), int(month), 1))
