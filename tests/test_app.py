"""HTTP surface: auth, guarded views, chat widgets and notifications."""

import time

import httpx
import pytest
from fastapi.testclient import TestClient

from portal.api_client import PortalAPIClient
from portal.app import app
from portal.services.chat import AudioRecorder
from portal.services.realtime import ChannelManager
from portal.services.runtime import PortalRuntime, set_runtime

from .fakes import FakeCaptureDevice, message_payload


def auth_body(role: str, user_id: str = "u1"):
    return {
        "user": {"_id": user_id, "name": "Asha", "email": "asha@example.com", "role": role, "verified": True},
        "token": f"tok-{user_id}",
    }


@pytest.fixture
def portal(settings, storage, backend, socket_factory):
    runtime = PortalRuntime(
        settings=settings,
        storage=storage,
        api=PortalAPIClient(settings.api_base_url, transport=httpx.MockTransport(backend.handle)),
        channel=ChannelManager(settings.socket_url, client_factory=socket_factory),
        recorder_factory=lambda: AudioRecorder(device_factory=FakeCaptureDevice),
    )
    set_runtime(runtime)
    with TestClient(app) as client:
        yield client, runtime
    set_runtime(None)


def login(client, backend, role="patient", user_id="u1"):
    backend.route("POST", "/auth/login", json=auth_body(role, user_id))
    response = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret"})
    assert response.status_code == 200
    return response.json()


def wait_for_channel(client, connected=True):
    for _ in range(100):
        if client.get("/api/auth/session").json()["channel"]["connected"] is connected:
            return
        time.sleep(0.01)
    raise AssertionError("channel never reached the expected state")


def test_session_is_restored_on_startup(portal):
    client, runtime = portal
    body = client.get("/api/auth/session").json()

    assert body["ready"] is True
    assert body["authenticated"] is False
    assert body["user"] is None


def test_login_then_logout(portal, backend, socket_factory):
    client, runtime = portal

    body = login(client, backend, "pharmacy")
    assert body == {"ok": True, "user": {
        "id": "u1", "name": "Asha", "email": "asha@example.com", "role": "pharmacy", "verified": True,
    }}
    wait_for_channel(client)
    assert socket_factory.last.connect_args["auth"] == {"token": "tok-u1"}

    assert client.post("/api/auth/logout").json() == {"ok": True}
    wait_for_channel(client, connected=False)
    assert socket_factory.open_clients == []
    assert client.get("/api/auth/session").json()["authenticated"] is False


def test_login_failure_returns_server_message(portal, backend):
    client, _ = portal
    backend.route("POST", "/auth/login", status=401, json={"message": "Invalid credentials"})

    response = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "bad"})

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Invalid credentials"}


def test_invalid_payload_uses_error_envelope(portal):
    client, _ = portal
    response = client.post("/api/auth/login", json={"email": "asha@example.com"})

    assert response.status_code == 422
    assert response.json()["ok"] is False


def test_password_recovery_passthrough(portal, backend):
    client, _ = portal
    backend.route("POST", "/auth/reset-password", json={"message": "Password updated"})

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "a@example.com", "otp": "123456", "new_password": "n3w"},
    )
    assert response.json() == {"ok": True, "message": "Password updated"}


def test_guarded_views(portal, backend):
    client, _ = portal

    response = client.get("/views/dashboard", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "/views/login?from=%2Fdashboard"

    assert client.get("/views/login").json() == {"ok": True, "view": "login", "params": {}}

    login(client, backend, "doctor")
    response = client.get("/views/dashboard", follow_redirects=False)
    assert response.headers["location"] == "/views/doctor/dashboard"
    assert client.get("/views/login", follow_redirects=False).headers["location"] == "/views/doctor/dashboard"
    assert client.get("/views/doctor/dashboard/patients").json()["params"] == {"tab": "patients"}
    assert client.get("/views/no/such/page").json()["view"] == "not_found"

    client.post("/api/auth/logout")
    response = client.get("/views/doctor/dashboard", follow_redirects=False)
    assert response.headers["location"].startswith("/views/login")


def test_widget_requires_sign_in(portal):
    client, _ = portal
    response = client.post("/api/chat/widgets", json={"counterpart_id": "pharm_42"})
    assert response.status_code == 401


def test_chat_widget_flow(portal, backend, socket_factory):
    client, runtime = portal
    login(client, backend, "patient")
    wait_for_channel(client)
    backend.route("POST", "/chats", json={"chat": {"_id": "c1"}})
    backend.route("GET", "/chats/c1/messages", json={"messages": [message_payload("m1")]})
    backend.route("PUT", "/chats/c1/read")
    backend.route("PUT", "/chats/c1/clear")
    backend.route("POST", "/chats/upload", json={
        "success": True,
        "file": {"url": "https://files.test/x.pdf", "filename": "x.pdf", "size": 4},
    })

    opened = client.post("/api/chat/widgets", json={"counterpart_id": "pharm_42"}).json()
    widget_id = opened["widget_id"]
    assert opened["state"] == "ready"
    assert opened["chat_id"] == "c1"
    assert [m["_id"] for m in opened["messages"]] == ["m1"]

    assert client.post(f"/api/chat/widgets/{widget_id}/send", json={"content": "hello"}).json()["sent"] is True
    assert client.post(f"/api/chat/widgets/{widget_id}/send", json={"content": "   "}).json()["sent"] is False

    sent = client.post(
        f"/api/chat/widgets/{widget_id}/attachments",
        files={"file": ("x.pdf", b"%PDF", "application/pdf")},
    ).json()
    assert sent["sent"] is True

    client.post(f"/api/chat/widgets/{widget_id}/recording/start")
    stopped = client.post(f"/api/chat/widgets/{widget_id}/recording/stop").json()
    assert stopped["ok"] is True
    assert client.post(f"/api/chat/widgets/{widget_id}/recording/send").json()["sent"] is True

    emitted = [name for name, _ in socket_factory.last.emitted]
    assert emitted.count("message:send") == 3

    assert client.post(f"/api/chat/widgets/{widget_id}/clear", json={}).status_code == 400
    cleared = client.post(f"/api/chat/widgets/{widget_id}/clear", json={"confirm": True}).json()
    assert cleared["ok"] is True
    assert client.get(f"/api/chat/widgets/{widget_id}").json()["messages"] == []

    assert client.delete(f"/api/chat/widgets/{widget_id}").json() == {"ok": True}
    assert client.get(f"/api/chat/widgets/{widget_id}").status_code == 404
    assert socket_factory.last.emitted[-1] == ("chat:leave", "c1")


def test_rejected_attachment_surfaces_notification(portal, backend):
    client, runtime = portal
    login(client, backend, "patient")
    backend.route("GET", "/chats/c9/messages", json={"messages": []})
    backend.route("PUT", "/chats/c9/read")
    widget_id = client.post("/api/chat/widgets", json={"chat_id": "c9"}).json()["widget_id"]

    sent = client.post(
        f"/api/chat/widgets/{widget_id}/attachments",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    ).json()

    assert sent["sent"] is False
    listing = client.get("/api/notifications").json()
    assert listing["unread_count"] == 1
    assert listing["notifications"][0]["title"].startswith("File type not supported")
    assert backend.calls("POST", "/chats/upload") == []


def test_chat_list_search(portal, backend):
    client, _ = portal
    login(client, backend, "pharmacy")
    backend.route("GET", "/chats", json={"chats": [
        {"_id": "c1", "patient": {"name": "Meera Iyer"}},
        {"_id": "c2", "patient": {"name": "Arjun Rao"}},
    ]})

    chats = client.get("/api/chat/chats", params={"q": "arj"}).json()["chats"]
    assert [c["id"] for c in chats] == ["c2"]


def test_notification_endpoints(portal):
    client, runtime = portal

    created = client.post("/api/notifications", json={"title": "Order shipped", "type": "success"}).json()
    other = client.post("/api/notifications", json={"title": "Reminder"}).json()
    notification_id = created["notification"]["id"]

    toasts = client.get("/api/notifications/toasts").json()["toasts"]
    assert [t["title"] for t in toasts] == ["Order shipped", "Reminder"]
    assert client.get("/api/notifications/toasts").json()["toasts"] == []

    assert client.post(f"/api/notifications/{notification_id}/read").json() == {"ok": True}
    assert client.get("/api/notifications").json()["unread_count"] == 1
    assert client.post("/api/notifications/missing/read").status_code == 404

    client.post("/api/notifications/read-all")
    assert client.get("/api/notifications").json()["unread_count"] == 0

    assert client.delete(f"/api/notifications/{other['notification']['id']}").json() == {"ok": True}
    client.delete("/api/notifications")
    assert client.get("/api/notifications").json()["notifications"] == []
