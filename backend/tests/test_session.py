import unittest
from datetime import timedelta

from bottlepost.core.session import SessionContext, SessionEventKind
from bottlepost.db.database import AsyncSessionLocal
from bottlepost.models import User
from tests.support import reset_database_async


class SessionContextTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        await reset_database_async()
        self.context = SessionContext()
        self.events = []
        self.unsubscribe = self.context.subscribe(self.events.append)
        async with AsyncSessionLocal() as db:
            self.user = User(email="alice@example.com", hashed_password="x", display_name="Alice")
            db.add(self.user)
            await db.commit()

    async def test_login_and_logout_events(self):
        async with AsyncSessionLocal() as db:
            auth_session = await self.context.set_on_login(db, self.user)
            self.assertIsNotNone(await self.context.get_current(db, auth_session.id))

            self.assertTrue(await self.context.clear_on_logout(db, auth_session.id))
            self.assertFalse(await self.context.clear_on_logout(db, auth_session.id))
            self.assertIsNone(await self.context.get_current(db, auth_session.id))

        self.assertEqual(
            [(e.kind, e.session_id, e.user_id) for e in self.events],
            [
                (SessionEventKind.SIGNED_IN, auth_session.id, self.user.id),
                (SessionEventKind.SIGNED_OUT, auth_session.id, self.user.id),
            ],
        )

    async def test_expired_session_is_not_current(self):
        context = SessionContext(lifetime=timedelta(seconds=-1))
        async with AsyncSessionLocal() as db:
            auth_session = await context.set_on_login(db, self.user)
            self.assertIsNone(await context.get_current(db, auth_session.id))
            self.assertEqual(auth_session.seconds_left(), 0.0)

    async def test_seconds_left_until_expiry(self):
        context = SessionContext(lifetime=timedelta(minutes=5))
        async with AsyncSessionLocal() as db:
            auth_session = await context.set_on_login(db, self.user)
        self.assertGreater(auth_session.seconds_left(), 290)
        self.assertLessEqual(auth_session.seconds_left(), 300)

    async def test_unknown_session(self):
        async with AsyncSessionLocal() as db:
            self.assertIsNone(await self.context.get_current(db, "missing"))
            self.assertFalse(await self.context.clear_on_logout(db, "missing"))

    async def test_unsubscribe(self):
        self.unsubscribe()
        async with AsyncSessionLocal() as db:
            await self.context.set_on_login(db, self.user)
        self.assertEqual(self.events, [])

    async def test_failing_listener_does_not_block_others(self):
        def broken(event):
            raise RuntimeError("boom")

        self.context.subscribe(broken)
        seen = []
        self.context.subscribe(seen.append)
        async with AsyncSessionLocal() as db:
            await self.context.set_on_login(db, self.user)
        self.assertEqual(len(seen), 1)


if __name__ == "__main__":
    unittest.main()
