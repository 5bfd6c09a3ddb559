from __future__ import annotations

import re

from conftest import image_bytes


def _register(client, email="ana@example.com", firstname="Ana", password="s3cret-pass"):
    return client.post(
        "/users/register",
        json={
            "firstname": firstname,
            "lastname": "Souza",
            "gender": "female",
            "birthday": "1990-04-01",
            "email": email,
            "password": password,
        },
    )


def _login(client, email="ana@example.com", password="s3cret-pass") -> str:
    res = client.post("/users/login", json={"email": email, "password": password})
    assert res.status_code == 200
    return res.json()["data"]["token"]


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert res.headers["X-Request-ID"]


def test_register_and_duplicate(client):
    res = _register(client)
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "Success"
    assert body["message"] == "The user was successfully created."
    user_id = body["data"]["id"]

    avatars = client.get(f"/users/{user_id}/avatars").json()["data"]
    assert len(avatars) == 1
    assert avatars[0]["isCurrentAvatar"] is True

    dup = _register(client, email="ANA@example.com")
    assert dup.status_code == 400
    assert dup.json()["status"] == "Error"
    assert dup.json()["message"][0]["field"] == "email"


def test_register_validation_errors_are_listed(client):
    res = client.post("/users/register", json={"firstname": "Ana", "email": "not-an-email"})
    assert res.status_code == 400
    fields = {m["field"] for m in res.json()["message"]}
    assert {"email", "lastname", "password"} <= fields


def test_avatar_upload_flow(client, db_env):
    user_id = _register(client).json()["data"]["id"]

    res = client.post(
        f"/users/{user_id}/avatar",
        files={"profile_pic": ("me.jpg", image_bytes("JPEG"), "image/jpeg")},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "updated profile picture!"
    assert re.fullmatch(rf"{user_id}/\d+\.jpg", body["data"]["path"])
    assert body["data"]["isCurrentAvatar"] is True

    avatars = client.get(f"/users/{user_id}/avatars").json()["data"]
    assert [a["isCurrentAvatar"] for a in avatars] == [False, True]
    assert client.get(f"/users/{user_id}").json()["data"]["avatar"] == body["data"]["path"]


def test_avatar_upload_rejections(client):
    user_id = _register(client).json()["data"]["id"]
    url = f"/users/{user_id}/avatar"

    garbage = client.post(url, files={"profile_pic": ("fake.png", b"not really an image", "image/png")})
    assert garbage.status_code == 400
    assert garbage.json()["message"] == "The uploaded file is not a valid image."

    missing = client.post(url, data={"other": "x"})
    assert missing.status_code == 400
    assert missing.json()["message"] == "no file!"

    too_big = image_bytes("PNG") + b"\x00" * (2 * 1024 * 1024 + 1)
    oversize = client.post(url, files={"profile_pic": ("big.png", too_big, "image/png")})
    assert oversize.status_code == 400
    assert oversize.json()["message"][0]["validation"] == "size"

    wrong_ext = client.post(url, files={"profile_pic": ("doc.pdf", b"%PDF-1.4", "application/pdf")})
    assert wrong_ext.status_code == 400
    assert wrong_ext.json()["message"][0]["validation"] == "extnames"

    avatars = client.get(f"/users/{user_id}/avatars").json()["data"]
    assert len(avatars) == 1


def test_avatar_storage_failure_is_500(client, monkeypatch):
    user_id = _register(client).json()["data"]["id"]

    def broken_replace(src, dst):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr("socialapp.repositories.avatar_storage.os.replace", broken_replace)
    res = client.post(
        f"/users/{user_id}/avatar",
        files={"profile_pic": ("a.png", image_bytes("PNG"), "image/png")},
    )
    assert res.status_code == 500
    assert res.json()["status"] == "Error"


def test_unknown_user_avatar_routes(client):
    res = client.post("/users/999/avatar", files={"profile_pic": ("a.png", image_bytes("PNG"), "image/png")})
    assert res.status_code == 404
    assert client.get("/users/999/avatars").status_code == 404
    assert client.get("/users/999").status_code == 404


def test_login_me_logout(client):
    _register(client)
    bad = client.post("/users/login", json={"email": "ana@example.com", "password": "wrong"})
    assert bad.status_code == 401

    token = _login(client)
    me = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "ana@example.com"
    assert me.json()["data"]["roles"] == ["user"]

    out = client.post("/users/logout", headers={"Authorization": f"Bearer {token}"})
    assert out.status_code == 200
    client.cookies.clear()
    assert client.get("/users/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_update_and_delete(client):
    user_id = _register(client).json()["data"]["id"]
    _register(client, email="bia@example.com", firstname="Bia")

    res = client.put(f"/users/{user_id}", json={"first_name": "Anita"})
    assert res.status_code == 200
    assert res.json()["data"]["firstname"] == "Anita"

    taken = client.put(f"/users/{user_id}", json={"email": "bia@example.com"})
    assert taken.status_code == 400

    assert client.put("/users/999", json={"first_name": "X"}).status_code == 400

    assert client.delete(f"/users/{user_id}").status_code == 200
    assert client.get(f"/users/{user_id}").status_code == 404
    assert client.delete(f"/users/{user_id}").status_code == 400


def test_search_listing_and_compare_password(client):
    _register(client, email="carla@example.com", firstname="Carla")
    _register(client, email="caio@example.com", firstname="Caio")
    _register(client, email="bruno@example.com", firstname="Bruno")

    assert client.get("/users/search").status_code == 400
    found = client.get("/users/search", params={"q": "Ca"}).json()["data"]
    assert sorted(u["firstname"] for u in found) == ["Caio", "Carla"]
    assert all(u["path"] for u in found)

    page = client.get("/users", params={"page": 2, "limit": 2}).json()["data"]
    assert page["total"] == 3
    assert page["last_page"] == 2
    assert len(page["data"]) == 1

    from socialapp.core.security import hash_password

    stored = hash_password("pw")
    assert client.post("/users/compare-password", json={"password": "pw", "hash": stored}).status_code == 200
    miss = client.post("/users/compare-password", json={"password": "no", "hash": stored})
    assert miss.status_code == 401
    assert miss.json()["message"] == "No match"


def test_unexpected_failure_uses_error_envelope(client, monkeypatch):
    from fastapi.testclient import TestClient

    user_id = _register(client).json()["data"]["id"]
    repo = client.app.state.avatar_service.repository

    def db_down(user_id, path):
        raise RuntimeError("db down")

    monkeypatch.setattr(repo, "replace_current_avatar", db_down)
    quiet = TestClient(client.app, raise_server_exceptions=False)
    res = quiet.post(
        f"/users/{user_id}/avatar",
        files={"profile_pic": ("a.png", image_bytes("PNG"), "image/png")},
    )
    assert res.status_code == 500
    assert res.headers["content-type"].startswith("application/json")
    assert res.json() == {"status": "Error", "message": "Internal server error"}
