from __future__ import annotations

import re
from datetime import date, datetime

from sitetrack.errors import ValidationError
from sitetrack.models.enums import WorkStatus


_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def validate_progress(progress: int) -> int:
    try:
        value = int(progress)
    except (TypeError, ValueError):
        raise ValidationError("Progress must be a whole number between 0 and 100")
    if value < 0 or value > 100:
        raise ValidationError("Progress must be between 0 and 100")
    return value


def derive_status(progress: int) -> WorkStatus:
    """Map a reported progress value onto the work status it implies."""
    if progress >= 100:
        return WorkStatus.WAITING_FOR_APPROVAL
    if progress > 0:
        return WorkStatus.IN_PROGRESS
    return WorkStatus.NOT_STARTED


def parse_status(value: str | WorkStatus) -> WorkStatus:
    try:
        return WorkStatus.parse(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def parse_date(value: date | str | None) -> date | None:
    """Accept ISO dates (optionally with a time part) and DD/MM/YYYY."""
    if value is None or isinstance(value, date):
        if isinstance(value, datetime):
            return value.date()
        return value
    text = value.strip()
    if not text or text.lower() == "null":
        return None
    match = _DMY_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {value!r}") from exc
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc
