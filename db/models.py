"""
db/models.py — Canonical Content + Translation Overlay Model
============================================================

Design principles:
  1. Canonical records hold everything that does not vary by language
  2. Every translatable record has a <kind>_translations table,
     one row per (record, locale) — UNIQUE enforced by the schema
  3. Relation items (categories, tags, techniques, skills) are records too
     and carry their own translations
  4. Many-to-many links keep a `position` column: relation order is data
  5. SQLite backing store - portable, zero infra

Content kinds:
  blog            → posts with category, tags, likes, comments
  project         → portfolio projects with tags and techniques
  experience      → jobs, with techniques used
  education       → degrees/courses, with techniques learned
  certification   → certificates
  skill_category  → grouped skills with level + icon
  testimonial     → client quotes (not translated; moderated by status)
  hero            → single landing section (greeting, name, role, call to action)
  about           → single about section with statuses and core pillars

Translation rows are returned ordered by their integer id, i.e. insertion
order. That is the order the Translation Selector's "first wins" rule uses.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from projection.kinds import PUBLIC_TESTIMONIAL_STATUSES

DB_PATH = Path(__file__).parent / "content.db"


# --- SCHEMA DDL ---

SCHEMA = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

-- ── Users (admin dashboard counts, likes) ──────────────────────────────────
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    email       TEXT NOT NULL UNIQUE,
    name        TEXT,
    role        TEXT NOT NULL DEFAULT 'USER',     -- USER | ADMIN
    created_at  TEXT NOT NULL
);

-- ── Relation items ──────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS categories (
    id          TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS category_translations (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    category_id TEXT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    locale      TEXT NOT NULL,
    name        TEXT,
    UNIQUE(category_id, locale)
);

CREATE TABLE IF NOT EXISTS tags (
    id          TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS tag_translations (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    tag_id      TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    locale      TEXT NOT NULL,
    name        TEXT,
    UNIQUE(tag_id, locale)
);

CREATE TABLE IF NOT EXISTS techniques (
    id          TEXT PRIMARY KEY,
    icon        TEXT,
    created_at  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS technique_translations (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    technique_id TEXT NOT NULL REFERENCES techniques(id) ON DELETE CASCADE,
    locale       TEXT NOT NULL,
    name         TEXT,
    UNIQUE(technique_id, locale)
);

-- ── Blog ────────────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS blogs (
    id            TEXT PRIMARY KEY,
    slug          TEXT NOT NULL UNIQUE,
    image         TEXT,
    category_id   TEXT REFERENCES categories(id) ON DELETE SET NULL,
    is_published  INTEGER DEFAULT 0,
    published_at  TEXT,                      -- ISO-8601, set on first publish
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_blogs_published ON blogs(is_published, published_at);

CREATE TABLE IF NOT EXISTS blog_translations (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    blog_id     TEXT NOT NULL REFERENCES blogs(id) ON DELETE CASCADE,
    locale      TEXT NOT NULL,
    title       TEXT,
    excerpt     TEXT,
    content     TEXT,
    meta_title  TEXT,
    meta_desc   TEXT,
    UNIQUE(blog_id, locale)
);

CREATE TABLE IF NOT EXISTS blog_tags (
    blog_id   TEXT NOT NULL REFERENCES blogs(id) ON DELETE CASCADE,
    tag_id    TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    position  INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (blog_id, tag_id)
);

CREATE TABLE IF NOT EXISTS blog_likes (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    blog_id     TEXT NOT NULL REFERENCES blogs(id) ON DELETE CASCADE,
    user_id     TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at  TEXT NOT NULL,
    UNIQUE(blog_id, user_id)
);
CREATE INDEX IF NOT EXISTS idx_likes_blog ON blog_likes(blog_id);

CREATE TABLE IF NOT EXISTS blog_comments (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    blog_id     TEXT NOT NULL REFERENCES blogs(id) ON DELETE CASCADE,
    author      TEXT NOT NULL,
    body        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_comments_blog ON blog_comments(blog_id);

-- ── Project ─────────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS projects (
    id           TEXT PRIMARY KEY,
    slug         TEXT NOT NULL UNIQUE,
    main_image   TEXT,
    gallery      TEXT,                       -- JSON list of image URLs
    category     TEXT,                       -- WEB | MOBILE | DESKTOP | OTHER
    live_url     TEXT,
    repo_url     TEXT,
    is_featured  INTEGER DEFAULT 0,
    is_active    INTEGER DEFAULT 1,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_projects_active ON projects(is_active, created_at);

CREATE TABLE IF NOT EXISTS project_translations (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id   TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    locale       TEXT NOT NULL,
    title        TEXT,
    description  TEXT,
    content      TEXT,
    UNIQUE(project_id, locale)
);

CREATE TABLE IF NOT EXISTS project_tags (
    project_id  TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    tag_id      TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    position    INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (project_id, tag_id)
);

CREATE TABLE IF NOT EXISTS project_techniques (
    project_id    TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    technique_id  TEXT NOT NULL REFERENCES techniques(id) ON DELETE CASCADE,
    position      INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (project_id, technique_id)
);

-- ── Experience ──────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS experiences (
    id               TEXT PRIMARY KEY,
    company_name     TEXT NOT NULL,
    company_logo     TEXT,
    company_website  TEXT,
    location         TEXT,
    start_date       TEXT NOT NULL,
    end_date         TEXT,                   -- null = ongoing
    is_current       INTEGER DEFAULT 0,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS experience_translations (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    experience_id    TEXT NOT NULL REFERENCES experiences(id) ON DELETE CASCADE,
    locale           TEXT NOT NULL,
    role             TEXT,
    employment_type  TEXT,
    description      TEXT,
    UNIQUE(experience_id, locale)
);

CREATE TABLE IF NOT EXISTS experience_techniques (
    experience_id  TEXT NOT NULL REFERENCES experiences(id) ON DELETE CASCADE,
    technique_id   TEXT NOT NULL REFERENCES techniques(id) ON DELETE CASCADE,
    position       INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (experience_id, technique_id)
);

-- ── Education ───────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS educations (
    id              TEXT PRIMARY KEY,
    school_name     TEXT NOT NULL,
    school_logo     TEXT,
    school_website  TEXT,
    location        TEXT,
    start_date      TEXT NOT NULL,
    end_date        TEXT,
    is_current      INTEGER DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS education_translations (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    education_id    TEXT NOT NULL REFERENCES educations(id) ON DELETE CASCADE,
    locale          TEXT NOT NULL,
    degree          TEXT,
    field_of_study  TEXT,
    description     TEXT,
    UNIQUE(education_id, locale)
);

CREATE TABLE IF NOT EXISTS education_techniques (
    education_id  TEXT NOT NULL REFERENCES educations(id) ON DELETE CASCADE,
    technique_id  TEXT NOT NULL REFERENCES techniques(id) ON DELETE CASCADE,
    position      INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (education_id, technique_id)
);

-- ── Certification ───────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS certifications (
    id              TEXT PRIMARY KEY,
    issuer          TEXT NOT NULL,
    cover_url       TEXT,
    link            TEXT,
    issue_date      TEXT NOT NULL,
    expire_date     TEXT,
    credential_url  TEXT,
    is_active       INTEGER DEFAULT 1,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS certification_translations (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    certification_id  TEXT NOT NULL REFERENCES certifications(id) ON DELETE CASCADE,
    locale            TEXT NOT NULL,
    title             TEXT,
    credential_id     TEXT,
    description       TEXT,
    UNIQUE(certification_id, locale)
);

-- ── Skills ──────────────────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS skill_categories (
    id          TEXT PRIMARY KEY,
    icon        TEXT,
    sort_order  INTEGER DEFAULT 0,
    is_active   INTEGER DEFAULT 1,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS skill_category_translations (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    skill_category_id  TEXT NOT NULL REFERENCES skill_categories(id) ON DELETE CASCADE,
    locale             TEXT NOT NULL,
    title              TEXT,
    UNIQUE(skill_category_id, locale)
);

CREATE TABLE IF NOT EXISTS skills (
    id           TEXT PRIMARY KEY,
    category_id  TEXT NOT NULL REFERENCES skill_categories(id) ON DELETE CASCADE,
    level        INTEGER,                    -- 0-100
    icon         TEXT,
    position     INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_skills_category ON skills(category_id);

CREATE TABLE IF NOT EXISTS skill_translations (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    skill_id  TEXT NOT NULL REFERENCES skills(id) ON DELETE CASCADE,
    locale    TEXT NOT NULL,
    name      TEXT,
    UNIQUE(skill_id, locale)
);

-- ── Testimonials (moderated, not translated) ────────────────────────────────
CREATE TABLE IF NOT EXISTS testimonials (
    id            TEXT PRIMARY KEY,
    client_name   TEXT NOT NULL,
    client_title  TEXT,
    role          TEXT,
    content       TEXT NOT NULL,
    rating        INTEGER,                   -- 1-5
    avatar_url    TEXT,
    linkedin_url  TEXT,
    email         TEXT,
    status        TEXT NOT NULL DEFAULT 'PENDING',  -- PENDING | APPROVED | STAR | REJECTED | ARCHIVED
    is_active     INTEGER DEFAULT 1,
    is_featured   INTEGER DEFAULT 0,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_testimonials_public ON testimonials(is_active, status, created_at);

-- ── Profile sections (single records) ───────────────────────────────────────
CREATE TABLE IF NOT EXISTS hero_sections (
    id             TEXT PRIMARY KEY,
    primary_image  TEXT,
    resume_url     TEXT,
    availability   TEXT DEFAULT 'AVAILABLE',
    is_active      INTEGER DEFAULT 1,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS hero_translations (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    hero_id      TEXT NOT NULL REFERENCES hero_sections(id) ON DELETE CASCADE,
    locale       TEXT NOT NULL,
    greeting     TEXT,
    name         TEXT,
    role         TEXT,
    description  TEXT,
    cta_text     TEXT,
    UNIQUE(hero_id, locale)
);

CREATE TABLE IF NOT EXISTS about_sections (
    id          TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS about_translations (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    about_id     TEXT NOT NULL REFERENCES about_sections(id) ON DELETE CASCADE,
    locale       TEXT NOT NULL,
    title        TEXT,
    subtitle     TEXT,
    description  TEXT,
    UNIQUE(about_id, locale)
);

CREATE TABLE IF NOT EXISTS about_statuses (
    id          TEXT PRIMARY KEY,
    about_id    TEXT NOT NULL REFERENCES about_sections(id) ON DELETE CASCADE,
    icon        TEXT,
    is_active   INTEGER DEFAULT 1,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS about_status_translations (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    status_id  TEXT NOT NULL REFERENCES about_statuses(id) ON DELETE CASCADE,
    locale     TEXT NOT NULL,
    label      TEXT,
    value      TEXT,
    UNIQUE(status_id, locale)
);

CREATE TABLE IF NOT EXISTS core_pillars (
    id          TEXT PRIMARY KEY,
    about_id    TEXT NOT NULL REFERENCES about_sections(id) ON DELETE CASCADE,
    icon        TEXT,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS core_pillar_translations (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    pillar_id    TEXT NOT NULL REFERENCES core_pillars(id) ON DELETE CASCADE,
    locale       TEXT NOT NULL,
    title        TEXT,
    description  TEXT,
    UNIQUE(pillar_id, locale)
);
"""


# --- TABLE MAP ---

# kind → canonical table
TABLES = {
    "blog":           "blogs",
    "project":        "projects",
    "experience":     "experiences",
    "education":      "educations",
    "certification":  "certifications",
    "skill_category": "skill_categories",
    "skill":          "skills",
    "testimonial":    "testimonials",
    "category":       "categories",
    "tag":            "tags",
    "technique":      "techniques",
    "user":           "users",
    "hero":           "hero_sections",
    "about":          "about_sections",
    "about_status":   "about_statuses",
    "core_pillar":    "core_pillars",
}

# kind → (translation table, parent fk, translated columns)
TRANSLATIONS = {
    "blog":           ("blog_translations", "blog_id",
                       ("title", "excerpt", "content", "meta_title", "meta_desc")),
    "project":        ("project_translations", "project_id",
                       ("title", "description", "content")),
    "experience":     ("experience_translations", "experience_id",
                       ("role", "employment_type", "description")),
    "education":      ("education_translations", "education_id",
                       ("degree", "field_of_study", "description")),
    "certification":  ("certification_translations", "certification_id",
                       ("title", "credential_id", "description")),
    "skill_category": ("skill_category_translations", "skill_category_id", ("title",)),
    "skill":          ("skill_translations", "skill_id", ("name",)),
    "category":       ("category_translations", "category_id", ("name",)),
    "tag":            ("tag_translations", "tag_id", ("name",)),
    "technique":      ("technique_translations", "technique_id", ("name",)),
    "hero":           ("hero_translations", "hero_id",
                       ("greeting", "name", "role", "description", "cta_text")),
    "about":          ("about_translations", "about_id", ("title", "subtitle", "description")),
    "about_status":   ("about_status_translations", "status_id", ("label", "value")),
    "core_pillar":    ("core_pillar_translations", "pillar_id", ("title", "description")),
}

TESTIMONIAL_STATUSES = ("PENDING", "APPROVED", "STAR", "REJECTED", "ARCHIVED")
PROJECT_CATEGORIES = ("WEB", "MOBILE", "DESKTOP", "OTHER")

# Single-record sections are saved under fixed ids.
HERO_ID = "hero-static"
ABOUT_ID = "about-static"


# --- DB CONNECTION ---

def get_db(path: Path = DB_PATH) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db(path: Path = DB_PATH):
    """Initialize database schema."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_db(path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def _flag(value) -> int:
    return 1 if value else 0


def _save_row(conn: sqlite3.Connection, table: str, row: dict) -> str:
    """
    Insert or update one canonical row keyed by id. Returns the id.
    created_at is kept on update, updated_at is refreshed when the table has it.
    """
    eid = row.get("id") or new_id()
    existing = conn.execute(f"SELECT created_at FROM {table} WHERE id=?", (eid,)).fetchone()
    row = dict(row, id=eid)
    row["created_at"] = existing["created_at"] if existing else row.get("created_at") or now_iso()

    columns = list(row)
    if existing:
        assignments = ", ".join(f"{c}=:{c}" for c in columns if c != "id")
        conn.execute(f"UPDATE {table} SET {assignments} WHERE id=:id", row)
    else:
        conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(':' + c for c in columns)})",
            row,
        )
    return eid


def _set_links(conn: sqlite3.Connection, link_table: str, parent_fk: str, item_fk: str,
               parent_id: str, item_ids: list):
    """Replace all links of one parent; position follows the input order."""
    conn.execute(f"DELETE FROM {link_table} WHERE {parent_fk}=?", (parent_id,))
    seen = set()
    for position, item_id in enumerate(i for i in item_ids if i):
        if item_id in seen:
            continue
        seen.add(item_id)
        conn.execute(
            f"INSERT INTO {link_table} ({parent_fk}, {item_fk}, position) VALUES (?, ?, ?)",
            (parent_id, item_id, position),
        )


# --- TRANSLATION CRUD ---

def upsert_translations(conn: sqlite3.Connection, kind: str, parent_id: str,
                        translations: dict):
    """
    Store or overwrite translations for one record.
    `translations` maps locale → {column: value}. Locales not given are left untouched.
    """
    table, fk, fields = TRANSLATIONS[kind]
    for locale, values in (translations or {}).items():
        values = values or {}
        params = [parent_id, locale] + [values.get(f) for f in fields]
        conn.execute(f"""
            INSERT INTO {table} ({fk}, locale, {', '.join(fields)})
            VALUES ({', '.join('?' * (len(fields) + 2))})
            ON CONFLICT({fk}, locale) DO UPDATE SET
                {', '.join(f'{f} = excluded.{f}' for f in fields)}
        """, params)


def get_translations(conn: sqlite3.Connection, kind: str, parent_id: str) -> list[dict]:
    """All translations of one record, first inserted first."""
    table, fk, _ = TRANSLATIONS[kind]
    rows = conn.execute(
        f"SELECT * FROM {table} WHERE {fk}=? ORDER BY id", (parent_id,)
    ).fetchall()
    return [dict(r) for r in rows]


def delete_translation(conn: sqlite3.Connection, kind: str, parent_id: str, locale: str) -> bool:
    table, fk, _ = TRANSLATIONS[kind]
    cur = conn.execute(f"DELETE FROM {table} WHERE {fk}=? AND locale=?", (parent_id, locale))
    return cur.rowcount > 0


# --- RELATION ITEM CRUD ---

def upsert_category(conn: sqlite3.Connection, names: dict, category_id: str = None) -> str:
    """`names` maps locale → display name."""
    cid = _save_row(conn, "categories", {"id": category_id})
    upsert_translations(conn, "category", cid, {loc: {"name": n} for loc, n in names.items()})
    return cid


def upsert_tag(conn: sqlite3.Connection, names: dict, tag_id: str = None) -> str:
    tid = _save_row(conn, "tags", {"id": tag_id})
    upsert_translations(conn, "tag", tid, {loc: {"name": n} for loc, n in names.items()})
    return tid


def upsert_technique(conn: sqlite3.Connection, names: dict, icon: str = None,
                     technique_id: str = None) -> str:
    tid = _save_row(conn, "techniques", {"id": technique_id, "icon": icon})
    upsert_translations(conn, "technique", tid, {loc: {"name": n} for loc, n in names.items()})
    return tid


def _new_items(conn: sqlite3.Connection, kind: str, items: list, locale: str) -> list:
    """Create tags/techniques on the fly from [{name, icon?}] in one locale."""
    ids = []
    for item in items or []:
        name = (item.get("name") or "").strip()
        if not name:
            continue
        if kind == "technique":
            ids.append(upsert_technique(conn, {locale: name}, icon=item.get("icon")))
        else:
            ids.append(upsert_tag(conn, {locale: name}))
    return ids


# --- CONTENT CRUD ---

def upsert_blog(conn: sqlite3.Connection, data: dict) -> str:
    """
    Insert or update a blog post. Returns the blog id.

    Required: slug
    Optional: id, image, category_id, is_published, published_at,
              translations {locale: {title, excerpt, content, meta_title, meta_desc}},
              tag_ids [..], new_tags [{name}] (created in `locale`), locale
    published_at is stamped the first time a post is saved as published.
    """
    ts = now_iso()
    published_at = data.get("published_at")
    if data.get("id") and not published_at:
        row = conn.execute("SELECT published_at FROM blogs WHERE id=?", (data["id"],)).fetchone()
        published_at = row["published_at"] if row else None
    if data.get("is_published") and not published_at:
        published_at = ts

    bid = _save_row(conn, "blogs", {
        "id":           data.get("id"),
        "slug":         data["slug"].strip().lower(),
        "image":        data.get("image"),
        "category_id":  data.get("category_id"),
        "is_published": _flag(data.get("is_published")),
        "published_at": published_at,
        "updated_at":   ts,
    })
    upsert_translations(conn, "blog", bid, data.get("translations"))

    locale = data.get("locale", "en")
    tag_ids = list(data.get("tag_ids") or []) + _new_items(conn, "tag", data.get("new_tags"), locale)
    _set_links(conn, "blog_tags", "blog_id", "tag_id", bid, tag_ids)
    return bid


def upsert_project(conn: sqlite3.Connection, data: dict) -> str:
    """
    Insert or update a project. Returns the project id.

    Required: slug
    Optional: id, main_image, gallery [urls], category, live_url, repo_url,
              is_featured, is_active (default True),
              translations {locale: {title, description, content}},
              tag_ids, new_tags, technique_ids, new_techniques [{name, icon}], locale
    """
    pid = _save_row(conn, "projects", {
        "id":          data.get("id"),
        "slug":        data["slug"].strip().lower(),
        "main_image":  data.get("main_image"),
        "gallery":     json.dumps(list(data.get("gallery") or [])),
        "category":    data.get("category"),
        "live_url":    data.get("live_url") or None,
        "repo_url":    data.get("repo_url") or None,
        "is_featured": _flag(data.get("is_featured")),
        "is_active":   _flag(data.get("is_active", True)),
        "created_at":  data.get("created_at"),
        "updated_at":  now_iso(),
    })
    upsert_translations(conn, "project", pid, data.get("translations"))

    locale = data.get("locale", "en")
    tag_ids = list(data.get("tag_ids") or []) + _new_items(conn, "tag", data.get("new_tags"), locale)
    technique_ids = list(data.get("technique_ids") or []) + _new_items(
        conn, "technique", data.get("new_techniques"), locale)
    _set_links(conn, "project_tags", "project_id", "tag_id", pid, tag_ids)
    _set_links(conn, "project_techniques", "project_id", "technique_id", pid, technique_ids)
    return pid


def upsert_experience(conn: sqlite3.Connection, data: dict) -> str:
    """Required: company_name, start_date. translations {locale: {role, employment_type, description}}."""
    eid = _save_row(conn, "experiences", {
        "id":              data.get("id"),
        "company_name":    data["company_name"],
        "company_logo":    data.get("company_logo"),
        "company_website": data.get("company_website"),
        "location":        data.get("location"),
        "start_date":      data["start_date"],
        "end_date":        data.get("end_date"),
        "is_current":      _flag(data.get("is_current") or not data.get("end_date")),
        "updated_at":      now_iso(),
    })
    upsert_translations(conn, "experience", eid, data.get("translations"))
    _set_links(conn, "experience_techniques", "experience_id", "technique_id",
               eid, list(data.get("technique_ids") or []))
    return eid


def upsert_education(conn: sqlite3.Connection, data: dict) -> str:
    """Required: school_name, start_date. translations {locale: {degree, field_of_study, description}}."""
    eid = _save_row(conn, "educations", {
        "id":             data.get("id"),
        "school_name":    data["school_name"],
        "school_logo":    data.get("school_logo"),
        "school_website": data.get("school_website"),
        "location":       data.get("location"),
        "start_date":     data["start_date"],
        "end_date":       data.get("end_date"),
        "is_current":     _flag(data.get("is_current") or not data.get("end_date")),
        "updated_at":     now_iso(),
    })
    upsert_translations(conn, "education", eid, data.get("translations"))
    _set_links(conn, "education_techniques", "education_id", "technique_id",
               eid, list(data.get("technique_ids") or []))
    return eid


def upsert_certification(conn: sqlite3.Connection, data: dict) -> str:
    """Required: issuer, issue_date. translations {locale: {title, credential_id, description}}."""
    cid = _save_row(conn, "certifications", {
        "id":             data.get("id"),
        "issuer":         data["issuer"],
        "cover_url":      data.get("cover_url"),
        "link":           data.get("link"),
        "issue_date":     data["issue_date"],
        "expire_date":    data.get("expire_date"),
        "credential_url": data.get("credential_url"),
        "is_active":      _flag(data.get("is_active", True)),
        "updated_at":     now_iso(),
    })
    upsert_translations(conn, "certification", cid, data.get("translations"))
    return cid


def upsert_skill_category(conn: sqlite3.Connection, data: dict) -> str:
    """
    Insert or update a skill category and replace its skills.
    skills: [{id?, level, icon, names {locale: name}}] — order is kept.
    """
    cid = _save_row(conn, "skill_categories", {
        "id":         data.get("id"),
        "icon":       data.get("icon"),
        "sort_order": int(data.get("sort_order") or 0),
        "is_active":  _flag(data.get("is_active", True)),
        "updated_at": now_iso(),
    })
    upsert_translations(conn, "skill_category", cid, data.get("translations"))

    if "skills" in data:
        conn.execute("DELETE FROM skills WHERE category_id=?", (cid,))
        for position, skill in enumerate(data.get("skills") or []):
            sid = _save_row(conn, "skills", {
                "id":          skill.get("id"),
                "category_id": cid,
                "level":       skill.get("level"),
                "icon":        skill.get("icon"),
                "position":    position,
            })
            upsert_translations(conn, "skill", sid,
                                {loc: {"name": n} for loc, n in (skill.get("names") or {}).items()})
    return cid


def upsert_testimonial(conn: sqlite3.Connection, data: dict) -> str:
    """Required: client_name, content. New testimonials start as PENDING."""
    status = data.get("status", "PENDING")
    if status not in TESTIMONIAL_STATUSES:
        raise ValueError(f"Invalid testimonial status {status!r}")
    return _save_row(conn, "testimonials", {
        "id":           data.get("id"),
        "client_name":  data["client_name"],
        "client_title": data.get("client_title"),
        "role":         data.get("role"),
        "content":      data["content"],
        "rating":       data.get("rating"),
        "avatar_url":   data.get("avatar_url"),
        "linkedin_url": data.get("linkedin_url"),
        "email":        data.get("email"),
        "status":       status,
        "is_active":    _flag(data.get("is_active", True)),
        "is_featured":  _flag(data.get("is_featured")),
        "created_at":   data.get("created_at"),
        "updated_at":   now_iso(),
    })


def set_testimonial_status(conn: sqlite3.Connection, testimonial_id: str, status: str) -> bool:
    """
    Moderate a testimonial. Returns False when it does not exist.
    Approving (APPROVED, STAR) also activates it; any other status hides it.
    """
    if status not in TESTIMONIAL_STATUSES:
        raise ValueError(f"Invalid testimonial status {status!r}")
    cur = conn.execute(
        "UPDATE testimonials SET status=?, is_active=?, updated_at=? WHERE id=?",
        (status, _flag(status in PUBLIC_TESTIMONIAL_STATUSES), now_iso(), testimonial_id),
    )
    return cur.rowcount > 0


def delete_entity(conn: sqlite3.Connection, kind: str, entity_id: str) -> bool:
    """Delete one record; translations and links cascade."""
    cur = conn.execute(f"DELETE FROM {TABLES[kind]} WHERE id=?", (entity_id,))
    return cur.rowcount > 0


def get_row(conn: sqlite3.Connection, kind: str, entity_id: str) -> Optional[dict]:
    row = conn.execute(f"SELECT * FROM {TABLES[kind]} WHERE id=?", (entity_id,)).fetchone()
    return dict(row) if row else None


# --- PROFILE SECTIONS ---

def upsert_hero(conn: sqlite3.Connection, data: dict) -> str:
    """
    Save the hero section (always HERO_ID).
    translations {locale: {greeting, name, role, description, cta_text}}
    """
    hid = _save_row(conn, "hero_sections", {
        "id":            HERO_ID,
        "primary_image": data.get("primary_image"),
        "resume_url":    data.get("resume_url") or None,
        "availability":  data.get("availability") or "AVAILABLE",
        "is_active":     _flag(data.get("is_active", True)),
        "updated_at":    now_iso(),
    })
    upsert_translations(conn, "hero", hid, data.get("translations"))
    return hid


def _sync_items(conn: sqlite3.Connection, kind: str, about_id: str, items: list, columns: tuple):
    """Delete items missing from `items`, then upsert the rest with their translations."""
    table = TABLES[kind]
    keep = [i["id"] for i in items if i.get("id")]
    conn.execute(
        f"DELETE FROM {table} WHERE about_id=? AND id NOT IN ({', '.join('?' * len(keep))})",
        [about_id, *keep],
    )
    for item in items:
        iid = _save_row(conn, table, {
            "id": item.get("id"),
            "about_id": about_id,
            **{c: item.get(c) for c in columns},
        })
        upsert_translations(conn, kind, iid, item.get("translations"))


def upsert_about(conn: sqlite3.Connection, data: dict) -> str:
    """
    Save the about section (always ABOUT_ID).

    translations {locale: {title, subtitle, description}}
    statuses     [{id?, icon, is_active, translations {locale: {label, value}}}]
    pillars      [{id?, icon, translations {locale: {title, description}}}]
    Items left out of a given list are deleted; omit the key to keep them.
    """
    aid = _save_row(conn, "about_sections", {"id": ABOUT_ID, "updated_at": now_iso()})
    upsert_translations(conn, "about", aid, data.get("translations"))
    if "statuses" in data:
        statuses = [dict(s, is_active=_flag(s.get("is_active", True))) for s in data["statuses"] or []]
        _sync_items(conn, "about_status", aid, statuses, ("icon", "is_active"))
    if "pillars" in data:
        _sync_items(conn, "core_pillar", aid, list(data["pillars"] or []), ("icon",))
    return aid


# --- ENGAGEMENT ---

def add_user(conn: sqlite3.Connection, email: str, name: str = None, role: str = "USER",
             user_id: str = None) -> str:
    return _save_row(conn, "users", {"id": user_id, "email": email.strip().lower(),
                                      "name": name, "role": role})


def add_like(conn: sqlite3.Connection, blog_id: str, user_id: str) -> bool:
    """Returns False when the user already liked the post."""
    cur = conn.execute(
        "INSERT OR IGNORE INTO blog_likes (blog_id, user_id, created_at) VALUES (?, ?, ?)",
        (blog_id, user_id, now_iso()),
    )
    return cur.rowcount > 0


def add_comment(conn: sqlite3.Connection, blog_id: str, author: str, body: str) -> int:
    cur = conn.execute(
        "INSERT INTO blog_comments (blog_id, author, body, created_at) VALUES (?, ?, ?, ?)",
        (blog_id, author, body, now_iso()),
    )
    return cur.lastrowid
