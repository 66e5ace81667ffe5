import unittest
import uuid
from datetime import date
from types import SimpleNamespace

from sitetrack.errors import ValidationError
from sitetrack.models.enums import EmployeeRole, WorkStatus
from sitetrack.services.access import is_admin
from sitetrack.services.phase_sequencer import clamp_position
from sitetrack.services.progress import derive_status, parse_date, parse_status, validate_progress
from sitetrack.services.task_lifecycle import derived_employee_id


class TestWorkStatusParsing(unittest.TestCase):
    def test_any_casing_and_spacing_maps_to_canonical(self) -> None:
        for raw in ("in progress", "IN_PROGRESS", "In-Progress", "inprogress"):
            self.assertEqual(WorkStatus.parse(raw), WorkStatus.IN_PROGRESS)
        self.assertEqual(WorkStatus.parse("waiting_for_approval"), WorkStatus.WAITING_FOR_APPROVAL)
        self.assertEqual(WorkStatus.parse("Not Started").value, "NotStarted")

    def test_legacy_aliases(self) -> None:
        self.assertEqual(WorkStatus.parse("pending"), WorkStatus.NOT_STARTED)
        self.assertEqual(WorkStatus.parse("Achieved"), WorkStatus.COMPLETED)

    def test_unknown_status_is_a_validation_error(self) -> None:
        with self.assertRaises(ValidationError):
            parse_status("paused")

    def test_role_parsing_is_case_insensitive(self) -> None:
        self.assertEqual(EmployeeRole.parse("admin"), EmployeeRole.ADMIN)
        self.assertTrue(is_admin(SimpleNamespace(role="ADMIN")))
        self.assertFalse(is_admin(SimpleNamespace(role="Employee")))
        self.assertFalse(is_admin(SimpleNamespace(role="supervisor")))


class TestProgressRules(unittest.TestCase):
    def test_status_derived_from_progress(self) -> None:
        self.assertEqual(derive_status(0), WorkStatus.NOT_STARTED)
        self.assertEqual(derive_status(1), WorkStatus.IN_PROGRESS)
        self.assertEqual(derive_status(99), WorkStatus.IN_PROGRESS)
        self.assertEqual(derive_status(100), WorkStatus.WAITING_FOR_APPROVAL)

    def test_progress_bounds(self) -> None:
        self.assertEqual(validate_progress("40"), 40)
        for bad in (-1, 101, "lots", None):
            with self.assertRaises(ValidationError):
                validate_progress(bad)

    def test_dates_accept_iso_and_day_first(self) -> None:
        self.assertEqual(parse_date("2025-03-09"), date(2025, 3, 9))
        self.assertEqual(parse_date("2025-03-09T10:00:00Z"), date(2025, 3, 9))
        self.assertEqual(parse_date("9/3/2025"), date(2025, 3, 9))
        self.assertIsNone(parse_date("null"))
        self.assertIsNone(parse_date(""))
        with self.assertRaises(ValidationError):
            parse_date("31/02/2025")

    def test_position_clamping(self) -> None:
        self.assertEqual(clamp_position(0, 4), 1)
        self.assertEqual(clamp_position(-3, 4), 1)
        self.assertEqual(clamp_position(9, 4), 4)
        self.assertEqual(clamp_position(None, 4), 4)
        self.assertEqual(clamp_position(2, 4), 2)


class TestSingleAssigneeView(unittest.TestCase):
    def test_single_assignee_view(self) -> None:
        owner, first, second = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        self.assertEqual(derived_employee_id(owner, [first, second]), owner)
        self.assertEqual(derived_employee_id(None, [first, second]), first)
        self.assertIsNone(derived_employee_id(None, []))


if __name__ == "__main__":
    unittest.main()
