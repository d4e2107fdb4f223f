from tests.conftest import login


def test_create_and_list_developers(client, admin_headers):
    r = client.post(
        "/api/developers",
        json={"name": "  Grace  ", "email": "Grace@Example.com", "password": "grace-pass-1"},
        headers=admin_headers,
    )
    assert r.status_code == 201
    developer = r.json()["developer"]
    assert developer["user"] == {"name": "Grace", "email": "grace@example.com", "role": "developer"}

    r = client.get("/api/developers", headers=admin_headers)
    assert r.status_code == 200
    assert [d["id"] for d in r.json()["developers"]] == [developer["id"]]

    headers = login(client, "grace@example.com", "grace-pass-1")
    me = client.get("/api/auth/me", headers=headers).json()
    assert me["role"] == "developer"


def test_duplicate_developer_email(client, admin_headers, make_developer):
    make_developer(email="dup@example.com")
    r = client.post(
        "/api/developers",
        json={"name": "Again", "email": "dup@example.com", "password": "another-pass"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Email already in use"}


def test_blank_developer_name_is_rejected(client, admin_headers):
    r = client.post(
        "/api/developers",
        json={"name": "   ", "email": "blank@example.com", "password": "blank-pass-1"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "name: Value error, Name must not be blank"
    assert client.get("/api/developers", headers=admin_headers).json()["developers"] == []


def test_delete_developer_removes_account_and_assignments(client, admin_headers, make_developer):
    developer_id, dev_headers = make_developer()
    r = client.post(
        "/api/assignments",
        json={"developerId": developer_id, "chatId": "111@c.us", "chatName": "Client A"},
        headers=admin_headers,
    )
    assert r.status_code == 200

    r = client.delete(f"/api/developers/{developer_id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["success"] is True

    assert client.get("/api/developers", headers=admin_headers).json()["developers"] == []
    r = client.get("/api/assignments", params={"chatId": "111@c.us"}, headers=admin_headers)
    assert r.json()["assignments"] == []
    assert r.json()["isAssigned"] is False

    # The token outlives the account but no longer authenticates
    assert client.get("/api/auth/me", headers=dev_headers).status_code == 401
    r = client.post(
        "/api/auth/login", data={"username": "dev1@example.com", "password": "dev-pass-1"}
    )
    assert r.status_code == 401


def test_delete_unknown_developer(client, admin_headers):
    r = client.delete("/api/developers/does-not-exist", headers=admin_headers)
    assert r.status_code == 404
