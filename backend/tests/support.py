import asyncio
import itertools
import unittest

from fastapi.testclient import TestClient

from bottlepost.db.database import Base, engine
from bottlepost.main import app

_emails = itertools.count(1)


async def reset_database_async():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


def reset_database():
    asyncio.run(reset_database_async())


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        reset_database()
        app.dependency_overrides.clear()
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def register(self, display_name: str, email: str = None, password: str = "secret123") -> dict:
        email = email or f"user{next(_emails)}@example.com"
        resp = self.client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "display_name": display_name},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def login(self, email: str, password: str = "secret123") -> str:
        resp = self.client.post("/api/auth/login", data={"username": email, "password": password})
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()["access_token"]

    def signup(self, display_name: str):
        """Регистрация + вход; возвращает (профиль, заголовки, токен)"""
        profile = self.register(display_name)
        token = self.login(profile["email"])
        return profile, {"Authorization": f"Bearer {token}"}, token

    def send_bottle(self, headers: dict, recipient_id: int, **overrides) -> dict:
        payload = {
            "recipient_id": recipient_id,
            "sender_alias": "Moonlight whisper",
            "content": "Hello from the sea",
            "mood_emoji": "🌊",
        }
        payload.update(overrides)
        resp = self.client.post("/api/messages", json=payload, headers=headers)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def inbox(self, headers: dict) -> dict:
        resp = self.client.get("/api/inbox", headers=headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()
