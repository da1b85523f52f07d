from datetime import timedelta

from support import NOW, BrokenTableStore, Clock, TempDatabaseTestCase, staff_session

from shop.errors import NotAuthorizedError, NotFoundError, PersistenceFailure
from shop.inbox import Inbox
from shop.session import SessionContext


class InboxTestCase(TempDatabaseTestCase):
    def setUp(self):
        super().setUp()
        # seeded message is dated at initialisation, so stay ahead of it
        self.clock = Clock(NOW + timedelta(days=3650))
        self.inbox = Inbox(self.store, clock=self.clock)
        self.admin = staff_session()

    async def test_send_and_list_newest_first(self):
        first = await self.inbox.send(" Amy ", "amy@example.com", "Do you deliver to Kisumu?")
        self.clock.now += timedelta(minutes=1)
        second = await self.inbox.send("Ben", "ben@example.com", "Wholesale prices?")

        self.assertEqual(first.name, "Amy")
        ids = [m.id for m in await self.inbox.list()]
        self.assertEqual(ids[:2], [second.id, first.id])
        self.assertIn("MSG-1", ids)

    async def test_send_requires_every_field(self):
        for name, email, body in (("", "a@b.c", "x"), ("A", " ", "x"), ("A", "a@b.c", "")):
            with self.assertRaises(ValueError):
                await self.inbox.send(name, email, body)

    async def test_unread_and_mark_read(self):
        self.assertEqual(await self.inbox.unread_count(), 1)
        await self.inbox.mark_read(self.admin, "MSG-1")
        self.assertEqual(await self.inbox.unread_count(), 0)
        with self.assertRaises(NotFoundError):
            await self.inbox.mark_read(self.admin, "MSG-404")

    async def test_content(self):
        await self.inbox.save_content(self.admin, about_us="# New", contact_info="Call us")
        self.assertEqual(
            await self.inbox.get_content(), {"about_us": "# New", "contact_info": "Call us"}
        )

    async def test_customers_cannot_manage_inbox(self):
        before = await self.inbox.get_content()
        with self.assertRaises(NotAuthorizedError):
            await self.inbox.mark_read(SessionContext(), "MSG-1")
        with self.assertRaises(NotAuthorizedError):
            await self.inbox.save_content(SessionContext(), about_us="# Hijacked")
        self.assertEqual(await self.inbox.unread_count(), 1)
        self.assertEqual(await self.inbox.get_content(), before)

    async def test_unreachable_store(self):
        warnings = []
        inbox = Inbox(BrokenTableStore(), on_warning=warnings.append)
        self.assertEqual(await inbox.list(), [])
        self.assertEqual(await inbox.get_content(), {})
        self.assertEqual(len(warnings), 2)
        with self.assertRaises(PersistenceFailure):
            await inbox.send("A", "a@b.c", "x")
