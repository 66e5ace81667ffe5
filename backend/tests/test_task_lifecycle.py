import unittest

from sqlalchemy import select

from sitetrack.errors import Forbidden, InvalidTransition, ValidationError
from sitetrack.models.enums import MessageType, NotificationType, WorkStatus
from sitetrack.models.message import PhaseMessage, TaskMessage
from sitetrack.models.progress_update import TaskUpdate
from sitetrack.models.task import Task
from sitetrack.services import phase_lifecycle, task_lifecycle
from sitetrack.services.lookup import task_assignee_ids

from tests.support import StoreTestCase


class TestTaskLifecycle(StoreTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.admin = await self.make_admin()
        self.worker = await self.make_employee(name="Ana")
        self.site = await self.make_site(phases=["Foundation"])
        self.phase = (await self.phases_of(self.site.id))[0]

    async def test_progress_round_trip(self) -> None:
        task = await self.make_task(self.site, self.phase, progress=20, status=WorkStatus.IN_PROGRESS, assignees=[self.worker])

        entry = await task_lifecycle.record_task_progress(
            self.db, user=self.worker, task_id=task.id, progress=55, note="half done"
        )

        updates = (await self.db.execute(select(TaskUpdate).where(TaskUpdate.task_id == task.id))).scalars().all()
        self.assertEqual(len(updates), 1)
        self.assertEqual(updates[0].id, entry.id)
        self.assertEqual(updates[0].previous_progress, 20)
        self.assertEqual(updates[0].new_progress, 55)
        self.assertEqual(updates[0].note, "half done")
        task = await self.reload(Task, task.id)
        self.assertEqual(task.status, WorkStatus.IN_PROGRESS)

    async def test_progress_writes_system_messages_to_task_and_phase_chat(self) -> None:
        task = await self.make_task(self.site, self.phase, assignees=[self.worker])

        await task_lifecycle.record_task_progress(self.db, user=self.worker, task_id=task.id, progress=30)

        task_messages = (await self.db.execute(select(TaskMessage))).scalars().all()
        phase_messages = (await self.db.execute(select(PhaseMessage))).scalars().all()
        self.assertEqual([m.content for m in task_messages], ["Task update: 30% - Progress updated"])
        self.assertEqual(task_messages[0].type, MessageType.SYSTEM.value)
        self.assertIsNone(task_messages[0].sender_id)
        self.assertEqual(len(phase_messages), 1)

    async def test_reaching_100_submits_and_notifies_admins_once(self) -> None:
        task = await self.make_task(self.site, self.phase, assignees=[self.worker])

        await task_lifecycle.record_task_progress(self.db, user=self.worker, task_id=task.id, progress=100)
        await task_lifecycle.record_task_progress(self.db, user=self.worker, task_id=task.id, progress=100, note="really")

        task = await self.reload(Task, task.id)
        self.assertEqual(task.status, WorkStatus.WAITING_FOR_APPROVAL)
        self.assertEqual(task.completed_by, self.worker.id)
        self.assertIsNotNone(task.completed_at)
        submitted = await self.notifications(NotificationType.TASK_SUBMITTED)
        self.assertEqual(len(submitted), 1)
        self.assertIsNone(submitted[0].recipient_id)

    async def test_back_to_zero_is_not_started(self) -> None:
        task = await self.make_task(self.site, self.phase, progress=40, status=WorkStatus.IN_PROGRESS, assignees=[self.worker])
        await task_lifecycle.record_task_progress(self.db, user=self.worker, task_id=task.id, progress=0)
        self.assertEqual((await self.reload(Task, task.id)).status, WorkStatus.NOT_STARTED)

    async def test_unassigned_employee_cannot_report(self) -> None:
        other = await self.make_employee(name="Outsider")
        task = await self.make_task(self.site, self.phase, assignees=[self.worker])
        with self.assertRaises(Forbidden):
            await task_lifecycle.record_task_progress(self.db, user=other, task_id=task.id, progress=10)

    async def test_out_of_range_progress(self) -> None:
        task = await self.make_task(self.site, self.phase, assignees=[self.worker])
        with self.assertRaises(ValidationError):
            await task_lifecycle.record_task_progress(self.db, user=self.worker, task_id=task.id, progress=120)

    async def test_approve_then_reject_is_not_allowed(self) -> None:
        task = await self.make_task(
            self.site, self.phase, status=WorkStatus.WAITING_FOR_APPROVAL, progress=100, assignees=[self.worker]
        )

        approved = await task_lifecycle.approve_task(self.db, user=self.admin, task_id=task.id)
        self.assertEqual(approved.status, WorkStatus.COMPLETED)
        self.assertEqual(approved.approved_by, self.admin.id)

        with self.assertRaises(InvalidTransition):
            await task_lifecycle.reject_task(self.db, user=self.admin, task_id=task.id)
        with self.assertRaises(InvalidTransition):
            await task_lifecycle.record_task_progress(self.db, user=self.worker, task_id=task.id, progress=50)

    async def test_approval_notifies_every_assignee(self) -> None:
        second = await self.make_employee(name="Ben")
        task = await self.make_task(
            self.site, self.phase, status=WorkStatus.WAITING_FOR_APPROVAL, progress=100, assignees=[self.worker, second]
        )

        await task_lifecycle.approve_task(self.db, user=self.admin, task_id=task.id)

        approved = await self.notifications(NotificationType.TASK_APPROVED)
        self.assertEqual({n.recipient_id for n in approved}, {self.worker.id, second.id})
        self.assertTrue(all(n.message == 'Your work on "Pour slab" has been approved!' for n in approved))

    async def test_reapproving_a_completed_task_is_a_no_op(self) -> None:
        task = await self.make_task(self.site, self.phase, status=WorkStatus.COMPLETED, progress=100, assignees=[self.worker])

        again = await task_lifecycle.approve_task(self.db, user=self.admin, task_id=task.id)

        self.assertFalse(self.db.in_transaction())
        self.assertEqual(again.status, WorkStatus.COMPLETED)
        self.assertEqual(await self.notifications(NotificationType.TASK_APPROVED), [])
        self.assertEqual(await self.count(TaskMessage), 0)

    async def test_approve_requires_waiting_state(self) -> None:
        task = await self.make_task(self.site, self.phase, status=WorkStatus.IN_PROGRESS, progress=10)
        with self.assertRaises(InvalidTransition):
            await task_lifecycle.approve_task(self.db, user=self.admin, task_id=task.id)

    async def test_only_admin_approves_or_rejects(self) -> None:
        task = await self.make_task(
            self.site, self.phase, status=WorkStatus.WAITING_FOR_APPROVAL, progress=100, assignees=[self.worker]
        )
        with self.assertRaises(Forbidden):
            await task_lifecycle.approve_task(self.db, user=self.worker, task_id=task.id)
        with self.assertRaises(Forbidden):
            await task_lifecycle.reject_task(self.db, user=self.worker, task_id=task.id)

    async def test_reject_resets_progress_to_99_and_clears_audit(self) -> None:
        task = await self.make_task(self.site, self.phase, assignees=[self.worker])
        await task_lifecycle.submit_task(self.db, user=self.worker, task_id=task.id)

        rejected = await task_lifecycle.reject_task(self.db, user=self.admin, task_id=task.id, reason="Cracks on the east side")

        self.assertEqual(rejected.status, WorkStatus.IN_PROGRESS)
        self.assertEqual(rejected.progress, 99)
        self.assertIsNone(rejected.completed_by)
        self.assertIsNone(rejected.completed_at)
        contents = (await self.db.execute(select(TaskMessage.content))).scalars().all()
        self.assertIn("Changes requested: Cracks on the east side", contents)
        rejected_notes = await self.notifications(NotificationType.TASK_REJECTED)
        self.assertEqual([n.recipient_id for n in rejected_notes], [self.worker.id])

    async def test_reject_without_reason_uses_default_message(self) -> None:
        task = await self.make_task(
            self.site, self.phase, status=WorkStatus.WAITING_FOR_APPROVAL, progress=100, assignees=[self.worker]
        )
        await task_lifecycle.reject_task(self.db, user=self.admin, task_id=task.id, reason="  ")
        contents = (await self.db.execute(select(TaskMessage.content))).scalars().all()
        self.assertEqual(contents, ["Changes requested by Admin."])

    async def test_submit(self) -> None:
        task = await self.make_task(self.site, self.phase, progress=60, status=WorkStatus.IN_PROGRESS, assignees=[self.worker])

        submitted = await task_lifecycle.submit_task(self.db, user=self.worker, task_id=task.id)

        self.assertEqual(submitted.status, WorkStatus.WAITING_FOR_APPROVAL)
        self.assertEqual(submitted.progress, 100)
        self.assertEqual(await self.count(TaskUpdate), 0)
        self.assertEqual(len(await self.notifications(NotificationType.TASK_SUBMITTED)), 1)

    async def test_admin_cannot_complete_through_update(self) -> None:
        task = await self.make_task(
            self.site, self.phase, status=WorkStatus.WAITING_FOR_APPROVAL, progress=100, assignees=[self.worker]
        )
        with self.assertRaises(Forbidden) as err:
            await task_lifecycle.update_task(self.db, user=self.admin, task_id=task.id, changes={"status": "completed"})
        self.assertIn("approval endpoint", err.exception.detail)
        self.assertEqual((await self.reload(Task, task.id)).status, WorkStatus.WAITING_FOR_APPROVAL)

    async def test_admin_edit_updates_plain_fields(self) -> None:
        task = await self.make_task(self.site, self.phase)

        updated = await task_lifecycle.update_task(
            self.db,
            user=self.admin,
            task_id=task.id,
            changes={"name": "Pour footing", "due_date": "15/04/2025", "amount": 1200, "status": "in progress"},
        )

        self.assertEqual(updated.name, "Pour footing")
        self.assertEqual(updated.due_date.isoformat(), "2025-04-15")
        self.assertEqual(updated.status, WorkStatus.IN_PROGRESS)
        self.assertEqual(await self.notifications(), [])

    async def test_employee_edit_is_limited(self) -> None:
        task = await self.make_task(self.site, self.phase, assignees=[self.worker])

        with self.assertRaises(Forbidden):
            await task_lifecycle.update_task(self.db, user=self.worker, task_id=task.id, changes={"name": "Mine now"})
        with self.assertRaises(Forbidden):
            await task_lifecycle.update_task(self.db, user=self.worker, task_id=task.id, changes={"status": "Completed"})

        await task_lifecycle.update_task(
            self.db, user=self.worker, task_id=task.id, changes={"status": "InProgress", "delay_reason": "Rain"}
        )
        task = await self.reload(Task, task.id)
        self.assertEqual(task.status, WorkStatus.IN_PROGRESS)
        self.assertEqual(task.delay_reason, "Rain")
        updates = await self.notifications(NotificationType.TASK_UPDATE)
        self.assertEqual(len(updates), 1)
        self.assertIsNone(updates[0].recipient_id)

    async def test_phase_owner_may_edit_like_an_assignee(self) -> None:
        owner = await self.make_employee(name="Marko")
        outsider = await self.make_employee(name="Iva")
        await phase_lifecycle.assign_phase(self.db, user=self.admin, phase_id=self.phase.id, employee_id=owner.id)
        task = await self.make_task(self.site, self.phase, assignees=[self.worker])

        await task_lifecycle.record_task_progress(self.db, user=owner, task_id=task.id, progress=30)
        await task_lifecycle.update_task(
            self.db, user=owner, task_id=task.id, changes={"delay_reason": "Late delivery", "proof_url": "/p/1.jpg"}
        )
        with self.assertRaises(Forbidden):
            await task_lifecycle.update_task(
                self.db, user=outsider, task_id=task.id, changes={"delay_reason": "Not mine"}
            )

        task = await self.reload(Task, task.id)
        self.assertEqual(task.delay_reason, "Late delivery")
        self.assertEqual(task.proof_url, "/p/1.jpg")

    async def test_assignment_delta_notifications(self) -> None:
        a = await self.make_employee(name="A")
        b = await self.make_employee(name="B")
        c = await self.make_employee(name="C")
        task = await self.make_task(self.site, self.phase)

        await task_lifecycle.set_task_assignees(self.db, user=self.admin, task_id=task.id, employee_ids=[a.id, b.id])
        before = len(await self.notifications(NotificationType.ASSIGNMENT))
        added = await task_lifecycle.set_task_assignees(self.db, user=self.admin, task_id=task.id, employee_ids=[b.id, c.id])

        self.assertEqual(added, [c.id])
        assignments = await self.notifications(NotificationType.ASSIGNMENT)
        self.assertEqual(before, 2)
        self.assertEqual([n.recipient_id for n in assignments[before:]], [c.id])
        self.assertEqual(set(await task_assignee_ids(self.db, task.id)), {b.id, c.id})

    async def test_toggle_assignment(self) -> None:
        task = await self.make_task(self.site, self.phase)

        self.assertTrue(
            await task_lifecycle.toggle_task_assignment(
                self.db, user=self.admin, task_id=task.id, employee_id=self.worker.id, due_date="2025-06-01"
            )
        )
        self.assertEqual(await task_assignee_ids(self.db, task.id), [self.worker.id])
        notes = await self.notifications(NotificationType.ASSIGNMENT)
        self.assertEqual(notes[0].message, 'You have been assigned to task: "Pour slab". Due: 2025-06-01')

        self.assertFalse(
            await task_lifecycle.toggle_task_assignment(
                self.db, user=self.admin, task_id=task.id, employee_id=self.worker.id
            )
        )
        self.assertEqual(await task_assignee_ids(self.db, task.id), [])
        self.assertEqual(len(await self.notifications(NotificationType.ASSIGNMENT)), 1)

    async def test_create_and_delete_task(self) -> None:
        task = await task_lifecycle.create_task(
            self.db,
            user=self.admin,
            site_id=self.site.id,
            data={"name": "Scaffolding", "phase_id": self.phase.id, "assignee_ids": [self.worker.id]},
        )
        self.assertEqual(task.status, WorkStatus.NOT_STARTED)
        self.assertEqual(len(await self.notifications(NotificationType.ASSIGNMENT)), 1)

        with self.assertRaises(Forbidden):
            await task_lifecycle.delete_task(self.db, user=self.worker, task_id=task.id)
        await task_lifecycle.delete_task(self.db, user=self.admin, task_id=task.id)
        self.assertEqual(await self.count(Task), 0)

    async def test_create_rejects_completed_status(self) -> None:
        with self.assertRaises(Forbidden):
            await task_lifecycle.create_task(
                self.db, user=self.admin, site_id=self.site.id, data={"name": "Done already", "status": "completed"}
            )


if __name__ == "__main__":
    unittest.main()
