import unittest

from sitetrack.auth.security import verify_password
from sitetrack.errors import Conflict, Forbidden, NotFound, ValidationError
from sitetrack.models.assignment import SiteAssignment, TaskAssignment
from sitetrack.models.employee import Employee
from sitetrack.models.enums import EmployeeRole, NotificationType
from sitetrack.models.notification import Notification
from sitetrack.models.phase import Phase
from sitetrack.models.site import Site
from sitetrack.models.task import Task
from sitetrack.services import employees, sites
from sitetrack.services.notifications import emit_events, recipient_event
from sitetrack.services.phase_lifecycle import assign_phase

from tests.support import StoreTestCase


class TestEmployees(StoreTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.admin = await self.make_admin()

    async def test_create_hashes_password_and_normalizes_role(self) -> None:
        employee = await employees.create_employee(
            self.db,
            user=self.admin,
            data={"name": " Ana ", "phone": "0691234567", "role": "employee", "password": "s3cret", "email": "Ana@Sitetrack.io"},
        )

        self.assertEqual(employee.name, "Ana")
        self.assertEqual(employee.role, EmployeeRole.EMPLOYEE)
        self.assertEqual(employee.status, "Active")
        self.assertEqual(employee.email, "ana@sitetrack.io")
        self.assertTrue(verify_password("s3cret", employee.password_hash))

    async def test_required_fields(self) -> None:
        with self.assertRaises(ValidationError) as err:
            await employees.create_employee(self.db, user=self.admin, data={"name": "Ana", "phone": "1"})
        self.assertEqual(err.exception.detail, "Name, Phone, Role, and Password are required")

    async def test_duplicate_phone_and_email(self) -> None:
        await employees.create_employee(
            self.db,
            user=self.admin,
            data={"name": "Ana", "phone": "111", "role": "Employee", "password": "x", "email": "ana@sitetrack.io"},
        )
        with self.assertRaises(Conflict):
            await employees.create_employee(
                self.db, user=self.admin, data={"name": "Ana 2", "phone": "111", "role": "Employee", "password": "x"}
            )
        with self.assertRaises(Conflict):
            await employees.create_employee(
                self.db,
                user=self.admin,
                data={"name": "Ana 3", "phone": "222", "role": "Employee", "password": "x", "email": "ANA@sitetrack.io"},
            )

    async def test_update_keeps_password_unless_given(self) -> None:
        employee = await employees.create_employee(
            self.db, user=self.admin, data={"name": "Ana", "phone": "111", "role": "Employee", "password": "first"}
        )

        await employees.update_employee(self.db, user=self.admin, employee_id=employee.id, data={"name": "Ana K", "password": ""})
        stored = await self.reload(Employee, employee.id)
        self.assertEqual(stored.name, "Ana K")
        self.assertTrue(verify_password("first", stored.password_hash))

        await employees.update_employee(self.db, user=self.admin, employee_id=employee.id, data={"password": "second"})
        stored = await self.reload(Employee, employee.id)
        self.assertTrue(verify_password("second", stored.password_hash))

    async def test_only_admin_manages_employees(self) -> None:
        worker = await self.make_employee()
        with self.assertRaises(Forbidden):
            await employees.create_employee(
                self.db, user=worker, data={"name": "X", "phone": "9", "role": "Admin", "password": "x"}
            )

    async def test_delete_clears_assignments(self) -> None:
        worker = await self.make_employee(name="Ana")
        site = await self.make_site(phases=["Walls"])
        phase = (await self.phases_of(site.id))[0]
        await self.make_task(site, phase, assignees=[worker])
        await sites.set_site_assignees(self.db, user=self.admin, site_id=site.id, employee_ids=[worker.id])
        await assign_phase(self.db, user=self.admin, phase_id=phase.id, employee_id=worker.id)

        await employees.delete_employee(self.db, user=self.admin, employee_id=worker.id)

        self.assertEqual(await self.count(TaskAssignment), 0)
        self.assertEqual(await self.count(SiteAssignment), 0)
        self.assertIsNone((await self.reload(Phase, phase.id)).assigned_to)
        self.assertEqual(await self.count(Task), 1)
        with self.assertRaises(NotFound):
            await employees.delete_employee(self.db, user=self.admin, employee_id=worker.id)


class TestSites(StoreTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.admin = await self.make_admin()

    async def test_new_site_gets_default_phases(self) -> None:
        site = await sites.create_site(self.db, user=self.admin, data={"name": "Lakeside", "budget": 250000})

        phases = await self.phases_of(site.id)
        self.assertEqual([p.name for p in phases], list(sites.DEFAULT_PHASES))
        self.assertEqual([p.order_num for p in phases], [1, 2, 3, 4])
        self.assertEqual(site.status, "active")

    async def test_site_without_default_phases(self) -> None:
        site = await sites.create_site(self.db, user=self.admin, data={"name": "Bare"}, with_default_phases=False)
        self.assertEqual(await self.phases_of(site.id), [])

    async def test_name_is_required(self) -> None:
        with self.assertRaises(ValidationError):
            await sites.create_site(self.db, user=self.admin, data={"name": "  "})

    async def test_list_counts_phases_and_tasks(self) -> None:
        site = await self.make_site(phases=["A", "B"])
        phase = (await self.phases_of(site.id))[0]
        await self.make_task(site, phase)
        await self.make_task(site, None, name="Unphased")

        rows = await sites.list_sites(self.db)

        self.assertEqual([(s.id, p, t) for s, p, t in rows], [(site.id, 2, 2)])

    async def test_delete_removes_everything_below_the_site(self) -> None:
        worker = await self.make_employee(name="Ana")
        site = await self.make_site(phases=["A", "B"])
        phase = (await self.phases_of(site.id))[0]
        task = await self.make_task(site, phase, assignees=[worker])
        await self.make_task(site, None, name="Unphased")
        await emit_events(
            self.db,
            [recipient_event(NotificationType.ASSIGNMENT, "hello", [worker.id], site_id=site.id, task_id=task.id)],
        )

        await sites.delete_site(self.db, user=self.admin, site_id=site.id)

        self.assertEqual(await self.count(Site), 0)
        self.assertEqual(await self.count(Phase), 0)
        self.assertEqual(await self.count(Task), 0)
        self.assertEqual(await self.count(TaskAssignment), 0)
        kept = await self.notifications()
        self.assertEqual(len(kept), 1)
        self.assertIsNone(kept[0].site_id)
        self.assertIsNone(kept[0].task_id)
        self.assertEqual(await self.count(Notification), 1)

    async def test_only_admin_deletes(self) -> None:
        worker = await self.make_employee()
        site = await self.make_site()
        with self.assertRaises(Forbidden):
            await sites.delete_site(self.db, user=worker, site_id=site.id)


if __name__ == "__main__":
    unittest.main()
