# SQLite content store tests: graph shape, filters, ordering, batching, failures
# Dependent files: db/store.py, db/models.py, projection/service.py

import asyncio
import logging

import pytest

import db.store
from db.models import get_db, upsert_project
from db.store import SQLiteContentStore, build_order, build_where
from projection.errors import DataStoreFailure
from projection.service import CollectionQueryService


def run(coro):
    return asyncio.run(coro)


# --- SQL helpers ---

def test_build_where():
    sql, params = build_where({"is_active": True, "status": ("APPROVED", "STAR"), "end_date": None})
    assert sql == "is_active = ? AND status IN (?, ?) AND end_date IS NULL"
    assert params == [1, "APPROVED", "STAR"]


def test_build_where_empty():
    assert build_where(None) == ("1", [])
    assert build_where({"status": ()}) == ("0", [])


def test_build_order():
    assert build_order((("published_at", "desc"), ("id", "asc"))) == "published_at DESC NULLS LAST, id ASC"
    assert build_order(()) == "id ASC"


@pytest.mark.parametrize("bad", ["id; DROP TABLE blogs", "Title", "1col", ""])
def test_identifiers_are_validated(bad):
    with pytest.raises(ValueError):
        build_where({bad: 1})
    with pytest.raises(ValueError):
        build_order(((bad, "asc"),))


def test_bad_direction():
    with pytest.raises(ValueError):
        build_order((("id", "sideways"),))


# --- Graph shape ---

def test_blog_graph(seeded_db):
    store = SQLiteContentStore(seeded_db)
    rows = run(store.fetch_many("blog", "ar", where={"is_published": True},
                                order_by=(("published_at", "desc"), ("id", "asc"))))
    assert [r["id"] for r in rows] == ["blog-new", "blog-old"]

    new = rows[0]
    assert new["is_published"] is True
    assert [t["locale"] for t in new["translations"]] == ["ar"]
    assert [t["id"] for t in new["tags"]] == ["tag-web", "tag-py"]
    assert new["tags"][0]["translations"] == []
    assert new["tags"][1]["translations"][0]["name"] == "بايثون"
    assert new["category"]["id"] == "cat-eng"
    assert new["category"]["translations"][0]["name"] == "هندسة"
    assert new["_count"] == {"likes": 2, "comments": 1}

    old = rows[1]
    assert old["translations"] == []
    assert old["tags"] == []
    assert old["category"] is None
    assert old["_count"] == {}


def test_project_columns_are_hydrated(seeded_db):
    row = run(SQLiteContentStore(seeded_db).fetch_one("project", "proj-live", "en"))
    assert row["gallery"] == ["a.png", "b.png"]
    assert row["is_active"] is True
    assert row["is_featured"] is False
    assert [t["id"] for t in row["techniques"]] == ["tech-fastapi", "tech-sqlite"]
    assert row["techniques"][0]["icon"] == "fastapi.svg"


def test_relation_locale_override(seeded_db):
    row = run(SQLiteContentStore(seeded_db).fetch_one(
        "skill_category", "sc-backend", "ar", relation_locales={"skills": "en"}))
    assert [t["locale"] for t in row["translations"]] == ["ar"]
    assert [s["id"] for s in row["skills"]] == ["sk-py", "sk-sql"]
    assert row["skills"][0]["translations"][0]["name"] == "Python"
    assert row["skills"][0]["level"] == 90


def test_fetch_one_missing_and_filtered(seeded_db):
    store = SQLiteContentStore(seeded_db)
    assert run(store.fetch_one("blog", "missing-id", "en")) is None
    assert run(store.fetch_one("blog", "blog-draft", "en", where={"is_published": True})) is None
    assert run(store.fetch_one("blog", "blog-draft", "en"))["slug"] == "draft-post"


def test_testimonial_status_filter(seeded_db):
    rows = run(SQLiteContentStore(seeded_db).fetch_many(
        "testimonial", "en",
        where={"is_active": True, "status": ("APPROVED", "STAR")},
        order_by=(("created_at", "desc"), ("id", "asc")),
    ))
    assert [r["id"] for r in rows] == ["tm-star", "tm-approved"]


def test_count(seeded_db):
    store = SQLiteContentStore(seeded_db)
    assert run(store.count("blog")) == 3
    assert run(store.count("blog", {"is_published": True})) == 2
    assert run(store.count("user")) == 2


def test_query_count_does_not_grow_with_rows(seeded_db, monkeypatch):
    statements = []
    real_get_db = db.store.get_db

    def traced_get_db(path):
        conn = real_get_db(path)
        conn.set_trace_callback(lambda sql: statements.append(sql) if sql.lstrip().upper().startswith("SELECT") else None)
        return conn

    monkeypatch.setattr(db.store, "get_db", traced_get_db)
    store = SQLiteContentStore(seeded_db)

    run(store.fetch_many("blog", "en", where={"id": "blog-new"}))
    one = len(statements)
    statements.clear()
    run(store.fetch_many("blog", "en"))
    many = len(statements)

    assert one == many
    assert many <= 8


# --- Failures ---

def test_unopenable_database_raises_store_failure(tmp_path):
    store = SQLiteContentStore(tmp_path / "missing" / "content.db")
    with pytest.raises(DataStoreFailure):
        run(store.fetch_many("blog", "en"))


def test_missing_schema_raises_store_failure(tmp_path):
    store = SQLiteContentStore(tmp_path / "empty.db")
    with pytest.raises(DataStoreFailure) as exc:
        run(store.count("blog"))
    assert "no such table" in str(exc.value)


# --- Through the service ---

def test_service_blog_listing_in_arabic(seeded_db):
    service = CollectionQueryService(SQLiteContentStore(seeded_db))
    rows = run(service.list_active("blog", "ar"))
    assert [r["id"] for r in rows] == ["blog-new", "blog-old"]

    new, old = rows
    assert new["title"] == "مرحبا بالعالم"
    assert new["excerpt"] == ""
    assert new["category_id"] == "cat-eng"
    assert new["category_name"] == "هندسة"
    assert new["tags"] == [{"id": "tag-web", "name": "Unnamed Tag"}, {"id": "tag-py", "name": "بايثون"}]
    assert (new["likes_count"], new["comments_count"]) == (2, 1)

    assert old["title"] == "Untitled"
    assert old["category_name"] == "Uncategorized"
    assert (old["likes_count"], old["comments_count"]) == (0, 0)


def test_service_pinned_technique_names(seeded_db):
    service = CollectionQueryService(SQLiteContentStore(seeded_db))
    [exp] = run(service.list_active("experience", "ar"))
    assert exp["role"] == "مهندس"
    assert exp["is_current"] is True
    assert exp["techniques"] == [{"id": "tech-fastapi", "icon": "fastapi.svg", "name": "FastAPI"}]

    [edu] = run(service.list_active("education", "ar"))
    assert edu["degree"] == "No ar degree set"
    assert edu["techniques"] == []


def test_service_skill_categories_in_position_order(seeded_db):
    service = CollectionQueryService(SQLiteContentStore(seeded_db))
    rows = run(service.list_active("skill_category", "ar"))
    assert [r["id"] for r in rows] == ["sc-frontend", "sc-backend"]
    assert rows[0]["title"] == "No ar title set"
    assert rows[1]["skills"] == [
        {"id": "sk-py", "level": 90, "icon": "py.svg", "name": "Python"},
        {"id": "sk-sql", "level": 70, "icon": None, "name": "Unknown Skill"},
    ]


def test_service_hides_inactive(seeded_db):
    service = CollectionQueryService(SQLiteContentStore(seeded_db))
    assert [r["id"] for r in run(service.list_active("project", "en"))] == ["proj-live"]
    assert [r["id"] for r in run(service.list_active("certification", "en"))] == ["cert-1"]
    assert run(service.get_by_id("project", "proj-hidden", "en", active_only=True)) is None
    assert run(service.get_by_id("project", "proj-hidden", "en"))["title"] == "Old Thing"


def test_service_outage_is_soft(tmp_path, caplog):
    service = CollectionQueryService(SQLiteContentStore(tmp_path / "missing" / "content.db"))
    with caplog.at_level(logging.ERROR, logger="cms.projection"):
        assert run(service.list_active("blog", "en")) == []
    assert len([r for r in caplog.records if r.name == "cms.projection"]) == 1


def test_equal_timestamps_fall_back_to_id_order(db_path):
    conn = get_db(db_path)
    try:
        for pid in ("p-c", "p-a", "p-b"):
            upsert_project(conn, {"id": pid, "slug": f"same-day-{pid}", "is_active": True,
                                  "created_at": "2024-05-01T00:00:00+00:00"})
        conn.commit()
    finally:
        conn.close()
    service = CollectionQueryService(SQLiteContentStore(db_path))
    assert [r["id"] for r in run(service.list_active("project", "en"))] == ["p-a", "p-b", "p-c"]


# --- Profile sections ---

def test_about_graph_items_in_id_order(seeded_db):
    store = SQLiteContentStore(seeded_db)
    about = run(store.fetch_one("about", "about-static", "ar"))
    assert [s["id"] for s in about["statuses"]] == ["st-a", "st-b"]
    assert [s["is_active"] for s in about["statuses"]] == [False, True]
    assert [t["locale"] for t in about["statuses"][0]["translations"]] == ["ar"]
    assert about["statuses"][1]["translations"] == []
    assert [p["id"] for p in about["pillars"]] == ["pl-1"]


def test_service_about_section_in_arabic(seeded_db):
    service = CollectionQueryService(SQLiteContentStore(seeded_db))
    about = run(service.get_section("about", "ar"))
    assert about["title"] == "نبذة عني"
    assert about["subtitle"] == ""
    assert about["description"] == ""
    assert about["statuses"] == [
        {"id": "st-a", "icon": "map", "is_active": False, "label": "الموقع", "value": "القاهرة"},
        {"id": "st-b", "icon": "clock", "is_active": True, "label": "", "value": ""},
    ]
    assert about["pillars"] == [{"id": "pl-1", "icon": "code", "title": "", "description": ""}]


def test_service_hero_section(seeded_db):
    service = CollectionQueryService(SQLiteContentStore(seeded_db))
    hero = run(service.get_section("hero", "en"))
    assert hero["id"] == "hero-static"
    assert hero["name"] == "Nour"
    assert hero["availability"] == "BUSY"
    assert hero["is_active"] is True
    assert run(service.get_section("hero", "ar"))["greeting"] == ""


def test_missing_section_is_none(db_path):
    service = CollectionQueryService(SQLiteContentStore(db_path))
    assert run(service.get_section("hero", "en")) is None
