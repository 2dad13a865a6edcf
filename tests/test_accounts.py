import storage
from conftest import login, register, user_id


def test_register_logs_in_and_assigns_user_role(client):
    resp = register(client, email="Sara@Example.com", name="Sara")
    assert resp.status_code == 302

    info = client.get("/api/auth/user").get_json()
    assert info["email"] == "sara@example.com"
    assert info["role"] == "user"
    assert client.get("/api/profile").get_json() is None


def test_register_rejects_weak_password_and_duplicates(app, client):
    register(client, password="short")
    assert client.get("/api/auth/user").get_json() is None

    register(client)
    client.post("/logout")
    register(client, name="Again")
    with app.app_context():
        assert storage.users.count() == 1


def test_login_and_logout(client):
    register(client)
    client.post("/logout")
    assert client.get("/api/auth/user").get_json() is None

    assert login(client, password="wrong-pass1").status_code == 302
    assert client.get("/api/auth/user").get_json() is None

    login(client)
    assert client.get("/api/auth/user").get_json()["email"] == "user@example.com"


def test_login_ignores_offsite_next(client):
    register(client)
    client.post("/logout")
    resp = client.post("/login?next=https://evil.example/x", data={"email": "user@example.com", "password": "secret123"})
    assert resp.headers["Location"].endswith("/")


def test_pages_redirect_anonymous_users_to_login(client):
    resp = client.get("/admin")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_profile_create_then_update(user_client):
    assert user_client.put("/api/profile", json={"bio": "x"}).status_code == 404

    resp = user_client.post("/api/profile", json={"displayName": "Sara", "username": "sara"})
    assert resp.status_code == 201
    assert resp.get_json()["displayName"] == "Sara"

    resp = user_client.put("/api/profile", json={"bio": "  hello  "})
    assert resp.status_code == 200
    assert resp.get_json()["username"] == "sara"
    assert resp.get_json()["bio"] == "hello"
    assert user_client.get("/api/profile").get_json()["bio"] == "hello"


def test_profile_username_conflict(user_client, other_client):
    user_client.post("/api/profile", json={"username": "sara"})
    assert other_client.post("/api/profile", json={"username": "sara"}).status_code == 409
    other_client.post("/api/profile", json={"username": "other"})
    assert other_client.put("/api/profile", json={"username": "sara"}).status_code == 409


def test_profile_create_conflicts_when_present(user_client):
    assert user_client.post("/api/profile", json={"displayName": "X"}).status_code == 201
    assert user_client.post("/api/profile", json={"displayName": "X"}).status_code == 409


def test_role_lookup_and_check(user_client):
    assert user_client.get("/api/user/role").get_json() == {"role": "user"}
    assert user_client.post("/api/user/role/check", json={"role": "user"}).get_json() == {"hasRole": True}
    assert user_client.post("/api/user/role/check", json={"role": "admin"}).get_json() == {"hasRole": False}
    assert user_client.post("/api/user/role/check", json={"role": "root"}).status_code == 400


def test_role_assignment_keeps_a_single_role(app):
    with app.app_context():
        u = storage.users.create("Mod", "mod@example.com", "x")
        storage.roles.assign(u.id, "moderator")
        storage.roles.assign(u.id, "admin")
        assert storage.roles.has_role(u.id, "admin")
        assert not storage.roles.has_role(u.id, "moderator")
        storage.roles.assign(u.id, None)
        assert storage.roles.get(u.id) is None


def test_admin_endpoints_require_admin(user_client):
    assert user_client.get("/api/admin/stats").status_code == 403
    assert user_client.get("/api/admin/users").status_code == 403
    assert user_client.get("/admin").status_code == 403


def test_admin_stats_and_users(admin_client, user_client, sample_event):
    user_client.post("/api/events", json=sample_event)
    stats = admin_client.get("/api/admin/stats").get_json()
    assert stats == {"userCount": 2, "eventCount": 1, "translationCount": 0}

    users = {u["email"]: u for u in admin_client.get("/api/admin/users").get_json()}
    assert users["user@example.com"]["eventCount"] == 1
    assert users["admin@example.com"]["role"] == "admin"
    assert admin_client.get("/admin").status_code == 200


def test_admin_changes_roles(app, admin_client, user_client):
    uid = user_id(app, "user@example.com")
    resp = admin_client.put(f"/api/admin/users/{uid}/role", json={"role": "moderator"})
    assert resp.get_json() == {"userId": uid, "role": "moderator"}
    assert user_client.get("/api/user/role").get_json() == {"role": "moderator"}

    resp = admin_client.put(f"/api/admin/users/{uid}/role", json={"role": "none"})
    assert resp.get_json()["role"] is None
    assert user_client.get("/api/user/role").get_json() == {"role": None}

    assert admin_client.put(f"/api/admin/users/{uid}/role", json={"role": "owner"}).status_code == 400
    assert admin_client.put("/api/admin/users/9999/role", json={"role": "user"}).status_code == 404


def test_admin_cannot_demote_themselves(app, admin_client):
    uid = user_id(app, "admin@example.com")
    assert admin_client.put(f"/api/admin/users/{uid}/role", json={"role": "user"}).status_code == 400
    assert admin_client.get("/api/user/role").get_json() == {"role": "admin"}


def test_unknown_api_route_returns_json_404(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Not found."}
