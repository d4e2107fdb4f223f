import asyncio
import json
import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-entropy-1234567890")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'wadesk-global.db'}",
)
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RESET_TOKEN_CLEANUP_INTERVAL_SECONDS", "3600")
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("WAHA_URL", "http://waha.test")
os.environ.setdefault("APP_URL", "http://desk.test")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from main import app
from wadesk.db.session import get_db
from wadesk.models import Base
from wadesk.services.waha_client import WahaClient, get_waha_client

ADMIN = {"name": "Ada Admin", "email": "admin@example.com", "password": "admin-pass-1"}


class FakeGateway:
    """Just enough of the WAHA REST API for the proxy routes."""

    def __init__(self) -> None:
        self.sessions: dict[str, dict] = {}
        self.chats: dict[str, list[dict]] = {}
        self.messages: dict[tuple[str, str], list[dict]] = {}
        self.sent: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.failing = False

    def add_session(self, name: str, status: str = "WORKING") -> None:
        self.sessions[name] = {
            "name": name,
            "status": status,
            "config": {"webhooks": []},
            "me": {"id": "15550001111@c.us", "pushName": "Desk"},
        }

    def add_chat(self, session: str, chat_id: str, name: str) -> dict:
        chat = {"id": chat_id, "name": name, "isGroup": chat_id.endswith("@g.us")}
        self.chats.setdefault(session, []).append(chat)
        return chat

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failing:
            return httpx.Response(500, json={"error": "boom"})

        path = request.url.path
        method = request.method
        parts = [p for p in path.split("/") if p]

        if path == "/":
            return httpx.Response(200, text="WAHA")
        if parts[:1] != ["api"]:
            return httpx.Response(404)
        parts = parts[1:]

        if parts == ["sessions"] and method == "GET":
            return httpx.Response(200, json=list(self.sessions.values()))
        if parts == ["sessions"] and method == "POST":
            name = json.loads(request.content)["name"]
            self.add_session(name, "STOPPED")
            return httpx.Response(201, json=self.sessions[name])
        if parts[0] == "sessions" and len(parts) >= 2:
            session = self.sessions.get(parts[1])
            if session is None:
                return httpx.Response(404, json={"error": "not found"})
            if len(parts) == 2:
                return httpx.Response(200, json=session)
            action = parts[2]
            session["status"] = {
                "start": "SCAN_QR_CODE",
                "stop": "STOPPED",
                "restart": "STARTING",
            }[action]
            return httpx.Response(201, json=session)
        if parts == ["sendText"]:
            body = json.loads(request.content)
            self.sent.append(body)
            return httpx.Response(201, json={"id": f"msg-{len(self.sent)}", **body})

        session_name = parts[0]
        if parts[1:] == ["auth", "qr"]:
            return httpx.Response(200, json={"value": f"qr-for-{session_name}"})
        if parts[1:] == ["chats"]:
            limit = int(request.url.params.get("limit", 20))
            offset = int(request.url.params.get("offset", 0))
            return httpx.Response(
                200, json=self.chats.get(session_name, [])[offset:offset + limit]
            )
        if len(parts) == 4 and parts[3] == "messages":
            return httpx.Response(200, json=self.messages.get((session_name, parts[2]), []))
        if len(parts) == 4 and parts[1] == "channels" and parts[3] == "posts":
            body = json.loads(request.content)
            self.sent.append({"channel": parts[2], **body})
            return httpx.Response(201, json={"id": "post-1"})
        return httpx.Response(404)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def waha(gateway):
    return WahaClient(
        base_url="http://waha.test",
        api_key="test-key",
        transport=httpx.MockTransport(gateway.handle),
    )


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool
    )

    async def create_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory, waha):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_waha_client] = lambda: waha
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def login(client, email: str, password: str) -> dict:
    r = client.post("/api/auth/login", data={"username": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    r = client.post("/api/auth/register", json=ADMIN)
    assert r.status_code == 201, r.text
    return login(client, ADMIN["email"], ADMIN["password"])


@pytest.fixture
def make_developer(client, admin_headers):
    def _make(name: str = "Dev One", email: str = "dev1@example.com",
              password: str = "dev-pass-1") -> tuple[str, dict]:
        r = client.post(
            "/api/developers",
            json={"name": name, "email": email, "password": password},
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()["developer"]["id"], login(client, email, password)

    return _make
