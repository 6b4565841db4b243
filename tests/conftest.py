# Shared fixtures: a temporary content DB seeded with a small bilingual portfolio
# Dependent files: db/models.py

import pytest

from db.models import (
    get_db, init_db, add_user, add_like, add_comment,
    upsert_category, upsert_tag, upsert_technique,
    upsert_blog, upsert_project, upsert_experience, upsert_education,
    upsert_certification, upsert_skill_category, upsert_testimonial,
    upsert_hero, upsert_about,
)


def seed(conn):
    upsert_category(conn, {"en": "Engineering", "ar": "هندسة"}, category_id="cat-eng")
    upsert_tag(conn, {"en": "Python", "ar": "بايثون"}, tag_id="tag-py")
    upsert_tag(conn, {"en": "Web"}, tag_id="tag-web")
    upsert_technique(conn, {"en": "FastAPI", "ar": "فاست"}, icon="fastapi.svg", technique_id="tech-fastapi")
    upsert_technique(conn, {}, icon="sqlite.svg", technique_id="tech-sqlite")

    upsert_blog(conn, {
        "id": "blog-new", "slug": "hello-world", "category_id": "cat-eng",
        "is_published": True, "published_at": "2024-02-01T00:00:00+00:00",
        "translations": {
            "en": {"title": "Hello World", "excerpt": "First post"},
            "ar": {"title": "مرحبا بالعالم"},
        },
        "tag_ids": ["tag-web", "tag-py"],
    })
    upsert_blog(conn, {
        "id": "blog-old", "slug": "second-post",
        "is_published": True, "published_at": "2024-01-01T00:00:00+00:00",
        "translations": {"en": {"title": "Older Post"}},
    })
    upsert_blog(conn, {
        "id": "blog-draft", "slug": "draft-post", "is_published": False,
        "translations": {"en": {"title": "Draft"}},
    })

    add_user(conn, "reader@example.com", user_id="user-1")
    add_user(conn, "other@example.com", user_id="user-2")
    add_like(conn, "blog-new", "user-1")
    add_like(conn, "blog-new", "user-2")
    add_comment(conn, "blog-new", "reader", "Nice post")

    upsert_project(conn, {
        "id": "proj-live", "slug": "portfolio", "gallery": ["a.png", "b.png"],
        "category": "WEB", "is_active": True, "created_at": "2024-03-01T00:00:00+00:00",
        "translations": {"en": {"title": "Portfolio", "description": "This site"}},
        "tag_ids": ["tag-py"], "technique_ids": ["tech-fastapi", "tech-sqlite"],
    })
    upsert_project(conn, {
        "id": "proj-hidden", "slug": "old-thing", "is_active": False,
        "translations": {"en": {"title": "Old Thing"}},
    })

    upsert_experience(conn, {
        "id": "exp-1", "company_name": "Acme", "start_date": "2022-01-01",
        "translations": {"en": {"role": "Engineer"}, "ar": {"role": "مهندس"}},
        "technique_ids": ["tech-fastapi"],
    })
    upsert_education(conn, {
        "id": "edu-1", "school_name": "State University", "start_date": "2015-09-01",
        "end_date": "2019-06-30",
    })

    upsert_certification(conn, {
        "id": "cert-1", "issuer": "Cloud Inc", "issue_date": "2023-05-01",
        "translations": {"en": {"title": "Cloud Practitioner"}},
    })
    upsert_certification(conn, {
        "id": "cert-expired", "issuer": "Old Co", "issue_date": "2010-01-01", "is_active": False,
    })

    upsert_skill_category(conn, {
        "id": "sc-backend", "sort_order": 2,
        "translations": {"en": {"title": "Backend"}, "ar": {"title": "الخلفية"}},
        "skills": [
            {"id": "sk-py", "level": 90, "icon": "py.svg", "names": {"en": "Python", "ar": "بايثون"}},
            {"id": "sk-sql", "level": 70, "names": {}},
        ],
    })
    upsert_skill_category(conn, {
        "id": "sc-frontend", "sort_order": 1,
        "translations": {"en": {"title": "Frontend"}},
        "skills": [],
    })

    upsert_testimonial(conn, {"id": "tm-approved", "client_name": "Jo Client",
                              "content": "Great work on our site.", "status": "APPROVED",
                              "created_at": "2024-01-01T00:00:00+00:00"})
    upsert_testimonial(conn, {"id": "tm-star", "client_name": "Sam Buyer",
                              "content": "Delivered ahead of time.", "status": "STAR",
                              "created_at": "2024-02-01T00:00:00+00:00"})
    upsert_testimonial(conn, {"id": "tm-pending", "client_name": "New Person",
                              "content": "Waiting for moderation."})
    upsert_testimonial(conn, {"id": "tm-hidden", "client_name": "Hidden Client",
                              "content": "Approved but switched off.", "status": "APPROVED",
                              "is_active": False})

    upsert_hero(conn, {
        "primary_image": "me.png", "availability": "BUSY",
        "translations": {"en": {"greeting": "Hi, I'm", "name": "Nour", "role": "Backend Engineer",
                                "description": "I build APIs.", "cta_text": "Contact me"}},
    })
    upsert_about(conn, {
        "translations": {"en": {"title": "About me", "subtitle": "Short version",
                                "description": "Ten years of shipping."},
                         "ar": {"title": "نبذة عني"}},
        "statuses": [
            {"id": "st-b", "icon": "clock",
             "translations": {"en": {"label": "Experience", "value": "10 years"}}},
            {"id": "st-a", "icon": "map", "is_active": False,
             "translations": {"en": {"label": "Location", "value": "Cairo"},
                              "ar": {"label": "الموقع", "value": "القاهرة"}}},
        ],
        "pillars": [
            {"id": "pl-1", "icon": "code",
             "translations": {"en": {"title": "Quality", "description": "Tested code."}}},
        ],
    })


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "content.db"
    init_db(path)
    return path


@pytest.fixture
def seeded_db(db_path):
    conn = get_db(db_path)
    try:
        seed(conn)
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def config(seeded_db):
    """App config pointing at the seeded DB."""
    return {
        "db_path": str(seeded_db),
        "i18n": {"supported_locales": ["en", "ar"], "default_locale": "en",
                 "labels": {"en": "English", "ar": "العربية"}},
        "rate_limit": {"default": "1000/minute"},
        "security": {"cors_origins": ["*"]},
    }
