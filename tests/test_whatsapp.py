import pytest

from tests.conftest import ADMIN


@pytest.fixture
def working_gateway(gateway):
    gateway.add_session("default", "WORKING")
    gateway.add_chat("default", "111@c.us", "Alice")
    gateway.add_chat("default", "222@c.us", "Bob")
    gateway.add_chat("default", "333@g.us", "Team")
    gateway.messages[("default", "111@c.us")] = [
        {"id": "m1", "body": "hello", "fromMe": False},
        {"id": "m2", "body": "hi!", "fromMe": True},
    ]
    return gateway


def assign(client, headers, developer_id, chat_id, name="Chat", session="default"):
    r = client.post(
        "/api/assignments",
        json={"developerId": developer_id, "chatId": chat_id, "chatName": name, "sessionId": session},
        headers=headers,
    )
    assert r.status_code == 200, r.text


def test_gateway_calls_carry_api_key(client, admin_headers, working_gateway):
    client.get("/api/whatsapp/sessions", headers=admin_headers)
    assert working_gateway.requests[-1].headers["X-Api-Key"] == "test-key"


def test_list_sessions_only_live_ones(client, admin_headers, gateway):
    gateway.add_session("default", "WORKING")
    gateway.add_session("pairing", "STARTING")
    gateway.add_session("dead", "STOPPED")

    r = client.get("/api/whatsapp/sessions", headers=admin_headers)
    assert r.status_code == 200
    sessions = r.json()["sessions"]
    assert {s["name"] for s in sessions} == {"default", "pairing"}
    assert all(s["id"] == s["name"] for s in sessions)
    assert sessions[0]["me"]["pushName"] == "Desk"


def test_start_session_creates_it_on_the_gateway(client, admin_headers, gateway):
    r = client.post("/api/whatsapp/session", json={"sessionId": "sales"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"success": True, "sessionId": "sales"}
    assert gateway.sessions["sales"]["status"] == "SCAN_QR_CODE"

    r = client.get("/api/whatsapp/session", params={"sessionId": "sales"}, headers=admin_headers)
    assert r.json() == {"success": True, "status": "SCAN_QR_CODE", "qrCode": "qr-for-sales"}

    r = client.delete("/api/whatsapp/session", params={"sessionId": "sales"}, headers=admin_headers)
    assert r.status_code == 200
    assert gateway.sessions["sales"]["status"] == "STOPPED"


def test_session_status_of_missing_session_is_stopped(client, admin_headers):
    r = client.get("/api/whatsapp/session", params={"sessionId": "nope"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "STOPPED"
    assert r.json()["qrCode"] is None


def test_stop_missing_session_is_not_an_error(client, admin_headers):
    r = client.delete("/api/whatsapp/session", params={"sessionId": "nope"}, headers=admin_headers)
    assert r.status_code == 200


def test_sync_sessions(client, admin_headers, gateway):
    gateway.add_session("default", "WORKING")
    gateway.add_session("pairing", "STARTING")
    gateway.add_session("dead", "STOPPED")

    r = client.post("/api/whatsapp/sync-sessions", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["syncedSessions"] == 2
    assert body["updatedSessions"] == 0
    assert body["totalSessions"] == 3

    gateway.sessions["pairing"]["status"] = "WORKING"
    del gateway.sessions["default"]
    body = client.post("/api/whatsapp/sync-sessions", headers=admin_headers).json()
    assert body["syncedSessions"] == 0
    assert body["updatedSessions"] == 2


def test_admin_chats_are_annotated(client, admin_headers, make_developer, working_gateway):
    developer_id, _ = make_developer()
    assign(client, admin_headers, developer_id, "222@c.us", "Bob")

    r = client.get("/api/whatsapp/chats", params={"limit": 2}, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert [c["id"] for c in body["chats"]] == ["111@c.us", "222@c.us"]
    assert [c["isAssigned"] for c in body["chats"]] == [False, True]
    assert body["chats"][1]["assignments"][0]["developer"]["email"] == "dev1@example.com"
    assert body["pagination"] == {"limit": 2, "offset": 0, "hasMore": True}

    r = client.get(
        "/api/whatsapp/chats", params={"limit": 2, "offset": 2}, headers=admin_headers
    )
    assert r.json()["pagination"]["hasMore"] is False


def test_chats_of_unknown_session(client, admin_headers, make_developer):
    _, dev_headers = make_developer()
    r = client.get("/api/whatsapp/chats", params={"sessionId": "ghost"}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Session not found"}

    r = client.get("/api/whatsapp/chats", params={"sessionId": "ghost"}, headers=dev_headers)
    assert r.status_code == 404


def test_developer_chats_are_filtered(client, admin_headers, make_developer, working_gateway):
    developer_id, dev_headers = make_developer()
    assign(client, admin_headers, developer_id, "333@g.us", "Team")
    # Registers the session for the admin
    client.get("/api/whatsapp/chats", headers=admin_headers)

    r = client.get("/api/whatsapp/chats", params={"limit": 3}, headers=dev_headers)
    assert r.status_code == 200
    assert [c["id"] for c in r.json()["chats"]] == ["333@g.us"]
    assert r.json()["pagination"]["hasMore"] is True

    r = client.get("/api/whatsapp/chats", params={"limit": 2}, headers=dev_headers)
    assert r.json()["chats"] == []
    assert r.json()["pagination"]["hasMore"] is False


def test_messages_access_control(client, admin_headers, make_developer, working_gateway):
    developer_id, dev_headers = make_developer()
    assign(client, admin_headers, developer_id, "111@c.us", "Alice")

    r = client.get("/api/whatsapp/messages", params={"chatId": "111@c.us"}, headers=admin_headers)
    assert r.status_code == 200
    assert [m["id"] for m in r.json()["messages"]] == ["m1", "m2"]
    assert r.json()["pagination"] == {"limit": 20, "offset": 0, "hasMore": False}

    r = client.get("/api/whatsapp/messages", params={"chatId": "111@c.us"}, headers=dev_headers)
    assert r.status_code == 200

    r = client.get("/api/whatsapp/messages", params={"chatId": "222@c.us"}, headers=dev_headers)
    assert r.status_code == 403

    r = client.get("/api/whatsapp/messages", headers=dev_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Chat ID is required"


def test_assignment_only_opens_its_own_session(
    client, admin_headers, make_developer, working_gateway
):
    working_gateway.add_session("other", "WORKING")
    working_gateway.add_chat("other", "111@c.us", "Alice elsewhere")
    working_gateway.messages[("other", "111@c.us")] = [
        {"id": "o1", "body": "psst", "fromMe": False}
    ]
    developer_id, dev_headers = make_developer()
    assign(client, admin_headers, developer_id, "111@c.us", "Alice")
    # Registers both sessions for the admin
    client.get("/api/whatsapp/chats", headers=admin_headers)
    client.get("/api/whatsapp/chats", params={"sessionId": "other"}, headers=admin_headers)

    r = client.get(
        "/api/whatsapp/messages",
        params={"chatId": "111@c.us", "sessionId": "other"},
        headers=dev_headers,
    )
    assert r.status_code == 403
    assert r.json() == {"success": False, "error": "Chat not assigned to you"}

    r = client.post(
        "/api/whatsapp/messages",
        json={"chatId": "111@c.us", "text": "Wrong line", "sessionId": "other"},
        headers=dev_headers,
    )
    assert r.status_code == 403
    assert working_gateway.sent == []


def test_unassigned_chat_is_closed_to_the_developer(
    client, admin_headers, make_developer, working_gateway
):
    developer_id, dev_headers = make_developer()
    assign(client, admin_headers, developer_id, "111@c.us", "Alice")
    client.get("/api/whatsapp/chats", headers=admin_headers)
    params = {"chatId": "111@c.us"}
    r = client.get("/api/whatsapp/messages", params=params, headers=dev_headers)
    assert r.status_code == 200

    r = client.delete("/api/assignments", params=params, headers=admin_headers)
    assert r.status_code == 200

    r = client.get("/api/whatsapp/messages", params=params, headers=dev_headers)
    assert r.status_code == 403
    r = client.post(
        "/api/whatsapp/messages",
        json={"chatId": "111@c.us", "text": "Still here?"},
        headers=dev_headers,
    )
    assert r.status_code == 403
    assert working_gateway.sent == []


def test_send_message(client, admin_headers, make_developer, working_gateway):
    developer_id, dev_headers = make_developer()
    assign(client, admin_headers, developer_id, "111@c.us", "Alice")
    client.get("/api/whatsapp/chats", headers=admin_headers)

    r = client.post(
        "/api/whatsapp/messages",
        json={"chatId": "111@c.us", "text": "On it"},
        headers=dev_headers,
    )
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert working_gateway.sent[-1] == {"session": "default", "chatId": "111@c.us", "text": "On it"}

    r = client.post(
        "/api/whatsapp/messages",
        json={"chatId": "222@c.us", "text": "Sneaky"},
        headers=dev_headers,
    )
    assert r.status_code == 403
    assert len(working_gateway.sent) == 1


def test_developer_inbox(client, admin_headers, make_developer, working_gateway):
    developer_id, dev_headers = make_developer()
    assign(client, admin_headers, developer_id, "111@c.us", "Alice")
    assign(client, admin_headers, developer_id, "999@c.us", "Gone")
    assign(client, admin_headers, developer_id, "444@c.us", "Elsewhere", session="unknown")
    client.get("/api/whatsapp/chats", headers=admin_headers)

    r = client.get("/api/developer/chats", headers=dev_headers)
    assert r.status_code == 200
    chats = {c["chatId"]: c for c in r.json()["chats"]}
    assert set(chats) == {"111@c.us", "999@c.us"}
    assert chats["111@c.us"]["isActive"] is True
    assert chats["111@c.us"]["name"] == "Alice"
    assert chats["999@c.us"]["isActive"] is False
    assert chats["999@c.us"]["error"] is None

    working_gateway.failing = True
    r = client.get("/api/developer/chats", headers=dev_headers)
    assert r.status_code == 200
    assert {c["error"] for c in r.json()["chats"]} == {"WhatsApp API unavailable"}
    assert all(c["isActive"] is False for c in r.json()["chats"])


def test_developer_inbox_is_developer_only(client, admin_headers):
    assert client.get("/api/developer/chats", headers=admin_headers).status_code == 403


def test_gateway_failure_is_502(client, admin_headers, gateway):
    gateway.failing = True
    r = client.get("/api/whatsapp/sessions", headers=admin_headers)
    assert r.status_code == 502
    assert r.json()["success"] is False
    assert r.json()["error"].startswith("WhatsApp gateway error")


def test_waha_status(client, admin_headers, make_developer):
    r = client.get("/api/system/waha-status", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["wahaApiUrl"] == "http://waha.test"
    assert body["hasApiKey"] is True
    assert body["isRunning"] is True
    assert body["errorMessage"] is None

    _, dev_headers = make_developer()
    assert client.get("/api/system/waha-status", headers=dev_headers).status_code == 403


def test_admin_me_still_works_after_gateway_calls(client, admin_headers, working_gateway):
    client.get("/api/whatsapp/chats", headers=admin_headers)
    assert client.get("/api/auth/me", headers=admin_headers).json()["email"] == ADMIN["email"]


def test_restart_session(client, admin_headers, working_gateway):
    r = client.post(
        "/api/whatsapp/session/restart", json={"sessionId": "default"}, headers=admin_headers
    )
    assert r.status_code == 200
    assert working_gateway.sessions["default"]["status"] == "STARTING"

    r = client.post(
        "/api/whatsapp/session/restart", json={"sessionId": "ghost"}, headers=admin_headers
    )
    assert r.status_code == 404
