import os

from conftest import PNG_BYTES, image_file


def _upload_path(app, url):
    return os.path.join(app.config["UPLOAD_FOLDER"], url.rsplit("/", 1)[1])


def test_submit_profile_creates_then_replaces(app, login_as):
    c = login_as("sub@example.com", role="submitter")
    r = c.post(
        "/api/profiles",
        data={"profile_text": "First try", "image0": image_file(), "image1": image_file("b.webp", "image/webp")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    first = r.get_json()
    assert first["operation"] == "created"
    assert len(first["image_urls"]) == 2
    old_paths = [_upload_path(app, u) for u in first["image_urls"]]
    assert all(os.path.isfile(p) for p in old_paths)

    r = c.post(
        "/api/profiles",
        data={"profile_text": "Second try", "image0": image_file("c.gif", "image/gif")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 200
    second = r.get_json()
    assert second["operation"] == "updated"
    assert second["profile_id"] == first["profile_id"]
    assert len(second["image_urls"]) == 1
    # replaced photos are removed from storage
    assert not any(os.path.isfile(p) for p in old_paths)

    mine = c.get("/api/profiles/mine").get_json()["profile"]
    assert mine["profile_text"] == "Second try"
    assert mine["images"] == second["image_urls"]


def test_submit_accepts_repeated_images_field(login_as):
    c = login_as("rep@example.com", role="submitter")
    r = c.post(
        "/api/profiles",
        data={"images": [image_file("a.png"), image_file("b.png")]},
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    assert len(r.get_json()["image_urls"]) == 2


def test_submit_requires_an_image(login_as):
    c = login_as("noimg@example.com", role="submitter")
    r = c.post("/api/profiles", data={"profile_text": "words only"}, content_type="multipart/form-data")
    assert r.status_code == 422
    assert r.get_json()["errors"][0]["message"] == "At least one image is required"


def test_submit_keeps_at_most_six_images(login_as):
    c = login_as("many@example.com", role="submitter")
    data = {f"image{i}": image_file(f"p{i}.png") for i in range(8)}
    r = c.post("/api/profiles", data=data, content_type="multipart/form-data")
    assert r.status_code == 201
    assert len(r.get_json()["image_urls"]) == 6


def test_bad_image_stores_nothing(app, login_as):
    c = login_as("badfile@example.com", role="submitter")
    r = c.post(
        "/api/profiles",
        data={"image0": image_file(), "image1": image_file("evil.exe", "application/octet-stream")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 422
    assert r.get_json()["errors"][0]["field"] == "image1"
    folder = app.config["UPLOAD_FOLDER"]
    assert not os.path.isdir(folder) or os.listdir(folder) == []
    assert c.get("/api/profiles/mine").status_code == 404


def test_image_size_limit(make_app):
    app = make_app({"MAX_IMAGE_BYTES": 1024 * 1024})
    from vett.account_service import set_role, signup
    from vett.db import get_session

    with app.app_context():
        db = get_session()
        user = signup(db, "big@example.com", "secret123")
        set_role(db, user.id, "submitter")
    c = app.test_client()
    c.post("/auth/login", json={"email": "big@example.com", "password": "secret123"})
    big = PNG_BYTES + b"\x00" * (1024 * 1024)
    r = c.post("/api/profiles", data={"image0": image_file(data=big)}, content_type="multipart/form-data")
    assert r.status_code == 422
    assert r.get_json()["errors"][0]["message"] == "Image must be less than 1MB"


def test_reviewer_cannot_submit_profile(login_as):
    c = login_as("revsub@example.com", role="reviewer")
    r = c.post("/api/profiles", data={"image0": image_file()}, content_type="multipart/form-data")
    assert r.status_code == 403
    assert r.get_json()["required_role"] == "submitter"


def test_review_queue_order_and_exclusions(app, login_as, submit_profile_for):
    alice = login_as("alice@example.com", role="submitter")
    bob = login_as("bob@example.com", role="submitter")
    first_id = submit_profile_for(alice)
    second_id = submit_profile_for(bob)
    rev = login_as("rev@example.com", role="reviewer")

    r = rev.get("/api/profiles/next")
    assert r.status_code == 200
    profile = r.get_json()["profile"]
    assert profile["id"] == first_id
    assert profile["owner"]["username"] == "alice"

    rev.post("/api/reviews", json={"profile_id": first_id, "rating": 4, "feedback": "Great smile, add a hobby photo."})
    assert rev.get("/api/profiles/next").get_json()["profile"]["id"] == second_id

    rev.post("/api/reviews", json={"profile_id": second_id, "rating": 3, "feedback": "Bio is a bit short, say more."})
    r = rev.get("/api/profiles/next")
    assert r.status_code == 404
    assert r.get_json()["detail"] == "no_profiles_to_review"


def test_queue_skips_own_profile(login_as, submit_profile_for):
    c = login_as("both@example.com", role="submitter")
    submit_profile_for(c)
    c.post("/api/account/role", json={"role": "reviewer"})
    r = c.get("/api/profiles/next")
    assert r.status_code == 404


def test_submitter_cannot_use_queue(login_as):
    c = login_as("queue@example.com", role="submitter")
    r = c.get("/api/profiles/next")
    assert r.status_code == 403
    assert r.get_json()["required_role"] == "reviewer"


def test_show_profile_by_id(login_as, submit_profile_for):
    owner = login_as("shown@example.com", role="submitter")
    pid = submit_profile_for(owner, text="Hello world")
    viewer = login_as("viewer@example.com", role="reviewer")
    r = viewer.get(f"/api/profiles/{pid}")
    assert r.status_code == 200
    assert r.get_json()["profile"]["profile_text"] == "Hello world"
    r = viewer.get(f"/api/profiles/{pid + 100}")
    assert r.status_code == 404
    assert r.get_json()["detail"] == "profile_not_found"


def test_empty_numbered_field_falls_back_to_images(login_as):
    from io import BytesIO

    c = login_as("mixed@example.com", role="submitter")
    r = c.post(
        "/api/profiles",
        data={"image0": (BytesIO(b""), ""), "images": image_file("a.png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    assert len(r.get_json()["image_urls"]) == 1


def test_out_of_range_profile_id_is_not_found(login_as):
    viewer = login_as("far@example.com", role="reviewer")
    r = viewer.get(f"/api/profiles/{10**30}")
    assert r.status_code == 404
    assert r.get_json()["detail"] == "profile_not_found"
