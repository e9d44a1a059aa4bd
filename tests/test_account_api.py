import os

from conftest import image_file


def test_choose_role_updates_and_reports_unchanged(login_as):
    c = login_as("pick@example.com", complete=False)
    r = c.post("/api/account/role", json={"role": "reviewer"})
    assert r.status_code == 200
    data = r.get_json()
    assert data["role"] == "reviewer"
    assert data["operation"] == "updated"
    assert data["account"]["role"] == "reviewer"
    # incomplete profile: next stop is profile setup
    assert data["landing"] == "/profile-setup"

    r = c.post("/api/account/role", json={"role": "reviewer"})
    assert r.get_json()["operation"] == "unchanged"


def test_choose_role_rejects_unknown_role(login_as):
    c = login_as("bad-role@example.com")
    r = c.post("/api/account/role", json={"role": "admin"})
    assert r.status_code == 422
    assert r.get_json()["errors"][0]["field"] == "role"


def test_role_endpoint_requires_login(client):
    assert client.post("/api/account/role", json={"role": "submitter"}).status_code == 401


def test_profile_setup_validates_fields(login_as):
    c = login_as("setup@example.com", role="submitter", complete=False)
    r = c.post("/api/account/profile", json={"display_name": "A", "username": "no spaces"})
    assert r.status_code == 422
    fields = {e["field"]: e["message"] for e in r.get_json()["errors"]}
    assert fields["display_name"] == "Display name must be at least 2 characters"
    assert fields["username"] == "Username can only contain letters, numbers, and underscores"

    r = c.post("/api/account/profile", json={"display_name": "Alex", "username": "ab"})
    assert r.status_code == 422


def test_profile_setup_completes_account(login_as):
    c = login_as("done@example.com", role="submitter", complete=False)
    r = c.post("/api/account/profile", json={"display_name": "Dana", "username": "dana_k"})
    assert r.status_code == 200
    data = r.get_json()
    assert data["account"]["profile_complete"] is True
    assert data["account"]["username"] == "dana_k"
    assert data["landing"] == "/submit"


def test_username_must_be_unique(login_as, make_user):
    make_user("first@example.com")  # username "first"
    c = login_as("second@example.com", complete=False)
    r = c.post("/api/account/profile", json={"display_name": "Sec", "username": "first"})
    assert r.status_code == 409
    assert r.get_json()["detail"] == "username_taken"


def test_profile_setup_with_avatar_upload(app, login_as):
    c = login_as("avatar@example.com", role="reviewer", complete=False)
    r = c.post(
        "/api/account/profile",
        data={"display_name": "Ava", "username": "ava_t", "avatar": image_file("me.jpg", "image/jpeg")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 200
    url = r.get_json()["account"]["profile_image_url"]
    assert url.startswith("/uploads/")
    assert url.endswith(".jpg")
    assert os.path.isfile(os.path.join(app.config["UPLOAD_FOLDER"], url.rsplit("/", 1)[1]))
    assert c.get(url).status_code == 200


def test_profile_setup_rejects_non_image_avatar(login_as):
    c = login_as("notimg@example.com", complete=False)
    r = c.post(
        "/api/account/profile",
        data={"display_name": "Nia", "username": "nia_x", "avatar": image_file("notes.txt", "text/plain", b"hello")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 422
    assert r.get_json()["errors"][0]["message"] == "Please select an image file"


def test_settings_patch_updates_display_name_and_bio(login_as):
    c = login_as("settings@example.com", role="reviewer")
    r = c.patch("/api/account/settings", json={"display_name": "New Name", "bio": "Hi there"})
    assert r.status_code == 200
    account = r.get_json()["account"]
    assert account["display_name"] == "New Name"
    assert account["bio"] == "Hi there"
    r = c.patch("/api/account/settings", json={"display_name": "x"})
    assert r.status_code == 422


def test_get_account(login_as):
    c = login_as("getme@example.com", role="submitter")
    r = c.get("/api/account")
    assert r.status_code == 200
    data = r.get_json()
    assert data["account"]["email"] == "getme@example.com"
    assert data["landing"] == "/submit"


def test_profile_setup_rejects_non_string_values(login_as):
    c = login_as("typed@example.com", complete=False)
    r = c.post("/api/account/profile", json={"display_name": "Pat", "username": 12345})
    assert r.status_code == 422
    assert r.get_json()["errors"] == [{"field": "username", "message": "Username must be a string"}]


def test_settings_rejects_non_string_values(login_as):
    c = login_as("typed-settings@example.com")
    r = c.patch("/api/account/settings", json={"display_name": 123, "bio": ["x"]})
    assert r.status_code == 422
    fields = {e["field"] for e in r.get_json()["errors"]}
    assert fields == {"display_name", "bio"}
