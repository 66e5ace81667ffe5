import unittest
import uuid
from unittest.mock import patch

from sitetrack.errors import NotFound
from sitetrack.models.enums import NotificationType, WorkStatus
from sitetrack.models.notification import Notification
from sitetrack.models.task import Task
from sitetrack.services import notifications, task_lifecycle
from sitetrack.services.chat import send_phase_message
from sitetrack.services.notifications import (
    admin_event,
    build_notifications,
    emit_events,
    list_notifications,
    mark_all_read,
    mark_read,
    recipient_event,
)

from tests.support import StoreTestCase


class TestBuildNotifications(unittest.TestCase):
    def test_admin_event_is_one_row_without_recipient(self) -> None:
        rows = build_notifications(admin_event(NotificationType.STAGE_COMPLETED, "done"))
        self.assertEqual(len(rows), 1)
        self.assertIsNone(rows[0].recipient_id)
        self.assertFalse(rows[0].is_read)

    def test_recipient_event_fans_out_without_duplicates(self) -> None:
        a, b = uuid.uuid4(), uuid.uuid4()
        rows = build_notifications(recipient_event(NotificationType.ASSIGNMENT, "hi", [a, b, a]))
        self.assertEqual([r.recipient_id for r in rows], [a, b])

    def test_recipient_event_without_recipients_builds_nothing(self) -> None:
        self.assertEqual(build_notifications(recipient_event(NotificationType.TASK_APPROVED, "x", [])), [])

    def test_long_messages_are_truncated(self) -> None:
        rows = build_notifications(admin_event(NotificationType.TASK_UPDATE, "x" * 1500))
        self.assertEqual(len(rows[0].message), 1000)


class TestNotificationStore(StoreTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.admin = await self.make_admin()
        self.ana = await self.make_employee(name="Ana")
        self.ben = await self.make_employee(name="Ben")

    async def _seed(self) -> None:
        await emit_events(
            self.db,
            [
                admin_event(NotificationType.TASK_UPDATE, "progress"),
                admin_event(NotificationType.STAGE_COMPLETED, "stage"),
                admin_event(NotificationType.TASK_SUBMITTED, "submitted"),
                recipient_event(NotificationType.ASSIGNMENT, "for ana", [self.ana.id]),
                recipient_event(NotificationType.ASSIGNMENT, "for ben", [self.ben.id]),
                recipient_event(NotificationType.TASK_APPROVED, "approved", [self.ana.id]),
            ],
        )

    async def test_admin_sees_admin_types_only(self) -> None:
        await self._seed()
        rows, unread = await list_notifications(self.db, user=self.admin)
        self.assertEqual({n.message for n in rows}, {"progress", "stage"})
        self.assertEqual(unread, 2)

    async def test_employee_sees_own_assignments_only(self) -> None:
        await self._seed()
        rows, unread = await list_notifications(self.db, user=self.ana)
        self.assertEqual([n.message for n in rows], ["for ana"])
        self.assertEqual(unread, 1)

    async def test_unread_come_first(self) -> None:
        await emit_events(self.db, [admin_event(NotificationType.TASK_UPDATE, "older")])
        await emit_events(self.db, [admin_event(NotificationType.TASK_UPDATE, "newer")])
        rows, _ = await list_notifications(self.db, user=self.admin)
        self.assertEqual([n.message for n in rows], ["newer", "older"])

        newer = rows[0]
        await mark_read(self.db, user=self.admin, notification_id=newer.id)
        rows, unread = await list_notifications(self.db, user=self.admin)
        self.assertEqual([n.message for n in rows], ["older", "newer"])
        self.assertEqual(unread, 1)

    async def test_mark_read_of_someone_elses_notification(self) -> None:
        await self._seed()
        bens = await self.notifications(NotificationType.ASSIGNMENT)
        bens = [n for n in bens if n.recipient_id == self.ben.id]
        with self.assertRaises(NotFound):
            await mark_read(self.db, user=self.ana, notification_id=bens[0].id)
        with self.assertRaises(NotFound):
            await mark_read(self.db, user=self.ana, notification_id=uuid.uuid4())

    async def test_mark_all_read_only_touches_visible_rows(self) -> None:
        await self._seed()
        await mark_all_read(self.db, user=self.ana)

        _, unread = await list_notifications(self.db, user=self.ana)
        self.assertEqual(unread, 0)
        _, ben_unread = await list_notifications(self.db, user=self.ben)
        self.assertEqual(ben_unread, 1)
        _, admin_unread = await list_notifications(self.db, user=self.admin)
        self.assertEqual(admin_unread, 2)

    async def test_employee_chat_notifies_admins_but_admin_chat_does_not(self) -> None:
        site = await self.make_site(phases=["Roof"])
        phase = (await self.phases_of(site.id))[0]

        await send_phase_message(self.db, user=self.admin, phase_id=phase.id, content="Any news?")
        await send_phase_message(
            self.db, user=self.ana, phase_id=phase.id, content="Tiles arrive on Monday morning, crane booked"
        )

        chat = await self.notifications(NotificationType.CHAT_UPDATE)
        self.assertEqual([n.message for n in chat], ["New message: Tiles arrive on Monday morning..."])


class TestEmissionFailure(StoreTestCase):
    async def test_transition_survives_a_broken_notification_store(self) -> None:
        admin = await self.make_admin()
        worker = await self.make_employee(name="Ana")
        site = await self.make_site(phases=["Walls"])
        phase = (await self.phases_of(site.id))[0]
        task = await self.make_task(site, phase, status=WorkStatus.WAITING_FOR_APPROVAL, progress=100, assignees=[worker])

        with patch.object(notifications, "AsyncSession", side_effect=RuntimeError("store unavailable")):
            with self.assertLogs("sitetrack.services.notifications", level="ERROR") as logs:
                approved = await task_lifecycle.approve_task(self.db, user=admin, task_id=task.id)

        self.assertEqual(approved.status, WorkStatus.COMPLETED)
        self.assertEqual((await self.reload(Task, task.id)).status, WorkStatus.COMPLETED)
        self.assertIn("Failed to store", logs.output[0])
        self.assertEqual(await self.count(Notification), 0)


if __name__ == "__main__":
    unittest.main()
