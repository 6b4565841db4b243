# Public content API tests
# Dependent files: app/main.py

import logging

import pytest
from starlette.testclient import TestClient

from app.main import best_accept_locale, create_app, negotiate_locale
from db.models import get_db, set_testimonial_status


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as c:
        yield c


# --- Negotiation helpers ---

def test_negotiate_priority():
    assert negotiate_locale("ar", "en") == "ar"
    assert negotiate_locale(None, "ar-EG,ar;q=0.9,en;q=0.8") == "ar"
    assert negotiate_locale(None, None) == "en"


def test_negotiate_falls_back_on_unsupported():
    assert negotiate_locale("fr", None) == "en"
    assert negotiate_locale("fr", "ar") == "ar"
    assert negotiate_locale(None, "de,fr;q=0.5") == "en"


def test_best_accept_locale_weights():
    assert best_accept_locale("en;q=0.3, ar;q=0.8") == "ar"
    assert best_accept_locale("fr") is None
    assert best_accept_locale("") is None


def test_zero_weight_means_not_acceptable():
    assert best_accept_locale("fr,ar;q=0") is None
    assert best_accept_locale("ar;q=0, en;q=0.1") == "en"
    assert negotiate_locale(None, "fr,ar;q=0") == "en"
    assert negotiate_locale(None, "ar;q=0.0", default="ar") == "ar"


# --- Meta routes ---

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_languages(client):
    data = client.get("/languages").json()["data"]
    assert data["default"] == "en"
    assert {l["lang"] for l in data["languages"]} == {"en", "ar"}
    assert next(l for l in data["languages"] if l["lang"] == "ar")["label"] == "العربية"


# --- Collections ---

def test_blogs_default_locale(client):
    resp = client.get("/blogs")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    assert body["meta"] == {"count": 2, "lang": "en", "lang_label": "English"}
    titles = [b["title"] for b in body["data"]["entries"]]
    assert titles == ["Hello World", "Older Post"]


def test_blogs_query_param(client):
    entries = client.get("/blogs?lang=ar").json()["data"]["entries"]
    assert entries[0]["title"] == "مرحبا بالعالم"
    assert entries[1]["title"] == "Untitled"


def test_blogs_accept_language(client):
    body = client.get("/blogs", headers={"Accept-Language": "ar-EG,ar;q=0.9"}).json()
    assert body["meta"]["lang"] == "ar"


def test_unsupported_query_param_falls_back(client):
    body = client.get("/projects?lang=fr").json()
    assert body["meta"]["lang"] == "en"
    assert [p["id"] for p in body["data"]["entries"]] == ["proj-live"]


def test_prefixed_route(client):
    body = client.get("/ar/projects").json()
    assert body["meta"]["lang"] == "ar"
    assert body["data"]["entries"][0]["title"] == "Untitled Project"
    assert body["data"]["entries"][0]["description"] == "No description available"


def test_prefixed_route_rejects_unsupported_locale(client):
    resp = client.get("/fr/blogs")
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Unsupported locale 'fr'"


@pytest.mark.parametrize("collection", [
    "blogs", "projects", "experiences", "educations", "certifications", "skills", "testimonials",
])
def test_every_collection_lists(client, collection):
    resp = client.get(f"/{collection}?lang=ar")
    assert resp.status_code == 200
    assert resp.json()["data"]["collection"] == collection


def test_testimonials_only_public(client):
    entries = client.get("/testimonials").json()["data"]["entries"]
    assert [t["id"] for t in entries] == ["tm-star", "tm-approved"]


# --- Detail ---

def test_detail(client):
    body = client.get("/experiences/exp-1?lang=ar").json()
    assert body["data"]["role"] == "مهندس"
    assert body["data"]["techniques"][0]["name"] == "FastAPI"
    assert body["meta"]["lang"] == "ar"


def test_prefixed_detail(client):
    body = client.get("/ar/blogs/blog-new").json()
    assert body["data"]["category_name"] == "هندسة"


def test_detail_missing(client):
    resp = client.get("/blogs/missing-id")
    assert resp.status_code == 404
    assert resp.json()["status"] == "error"


def test_detail_hides_drafts(client):
    assert client.get("/blogs/blog-draft").status_code == 404
    assert client.get("/projects/proj-hidden").status_code == 404


# --- Profile sections ---

def test_hero(client):
    body = client.get("/hero").json()
    assert body["data"]["name"] == "Nour"
    assert body["data"]["availability"] == "BUSY"
    assert body["meta"]["lang"] == "en"


def test_hero_untranslated_locale(client):
    data = client.get("/ar/hero").json()["data"]
    assert data["greeting"] == ""
    assert data["cta_text"] == ""
    assert data["primary_image"] == "me.png"


def test_about(client):
    data = client.get("/about", headers={"Accept-Language": "ar"}).json()["data"]
    assert data["title"] == "نبذة عني"
    assert [s["id"] for s in data["statuses"]] == ["st-a", "st-b"]
    assert data["statuses"][0]["label"] == "الموقع"
    assert data["pillars"][0]["title"] == ""


def test_section_prefixed_unsupported_locale(client):
    assert client.get("/fr/about").status_code == 404


def test_missing_section(config, tmp_path):
    with TestClient(create_app(dict(config, db_path=str(tmp_path / "fresh.db")))) as c:
        resp = c.get("/hero")
    assert resp.status_code == 404
    assert resp.json()["status"] == "error"


# --- Testimonial submission ---

SUBMISSION = {
    "client_name": "Dana Ray",
    "client_title": "CTO, Example Ltd",
    "content": "Clear communication and solid delivery.",
    "rating": 4,
}


def test_submitted_testimonial_waits_for_moderation(client, config):
    resp = client.post("/testimonials", json=SUBMISSION)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "PENDING"
    new_id = data["id"]

    public_ids = [t["id"] for t in client.get("/testimonials").json()["data"]["entries"]]
    assert new_id not in public_ids
    assert client.get(f"/testimonials/{new_id}").status_code == 404

    conn = get_db(config["db_path"])
    try:
        with conn:
            set_testimonial_status(conn, new_id, "APPROVED")
    finally:
        conn.close()
    public_ids = [t["id"] for t in client.get("/testimonials").json()["data"]["entries"]]
    assert new_id in public_ids


def test_submission_cannot_choose_its_status(client):
    resp = client.post("/testimonials", json=dict(SUBMISSION, status="STAR", is_active=True))
    assert resp.status_code == 201
    assert resp.json()["data"]["status"] == "PENDING"
    assert len(client.get("/testimonials").json()["data"]["entries"]) == 2


@pytest.mark.parametrize("field, value", [
    ("client_name", "A"),
    ("content", "too short"),
    ("rating", 6),
])
def test_submission_validation(client, field, value):
    assert client.post("/testimonials", json=dict(SUBMISSION, **{field: value})).status_code == 422


# --- Outage ---

def test_store_outage_renders_empty_list(config, tmp_path, caplog):
    app = create_app(dict(config, db_path=str(tmp_path / "empty.db")))
    # No lifespan: the schema is never created, every query fails.
    client = TestClient(app)
    with caplog.at_level(logging.ERROR, logger="cms.projection"):
        resp = client.get("/blogs")
    assert resp.status_code == 200
    assert resp.json()["data"]["entries"] == []
    assert len([r for r in caplog.records if r.name == "cms.projection"]) == 1
