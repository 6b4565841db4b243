"""
ingest.py — Load portfolio content from a YAML file into the content DB.

Usage:
    python ingest.py --file content.yaml              # write
    python ingest.py --file content.yaml --dry-run    # validate + count, nothing saved
    python ingest.py --file content.yaml --db /tmp/content.db

File layout (every section optional):

    categories:   [{key, id?, names: {en: .., ar: ..}}]
    tags:         [{key, id?, names}]
    techniques:   [{key, id?, icon?, names}]
    blogs:        [{slug, category?: <key>, tags?: [<key>], is_published?, translations: {locale: {...}}}]
    projects:     [{slug, tags?: [<key>], techniques?: [<key>], gallery?, translations, ...}]
    experiences:  [{company_name, start_date, techniques?: [<key>], translations, ...}]
    educations:   [{school_name, start_date, techniques?: [<key>], translations, ...}]
    certifications:   [{issuer, issue_date, translations, ...}]
    skill_categories: [{sort_order?, icon?, translations, skills: [{level, icon, names}]}]
    testimonials: [{client_name, content, status?, ...}]
    hero:         {primary_image, availability?, resume_url?, translations: {locale: {greeting, name, ...}}}
    about:        {translations, statuses?: [{icon, is_active?, translations}], pillars?: [{icon, translations}]}

`key` is a file-local handle used to link relation items; it is not stored.
The whole file is applied in one transaction: any error leaves the DB untouched.
A dry run loads into an in-memory copy of the DB and never touches the file.
"""

import argparse
import datetime
import logging
import sqlite3
import sys
from pathlib import Path

import yaml

from config_loader import load_config, setup_logging
from db.models import (
    get_db, init_db,
    upsert_category, upsert_tag, upsert_technique,
    upsert_blog, upsert_project, upsert_experience, upsert_education,
    upsert_certification, upsert_skill_category, upsert_testimonial,
    upsert_hero, upsert_about, SCHEMA,
)

log = logging.getLogger("cms.ingest")

ITEM_SECTIONS = ("categories", "tags", "techniques")
CONTENT_SECTIONS = ("blogs", "projects", "experiences", "educations",
                    "certifications", "skill_categories", "testimonials")
PROFILE_SECTIONS = ("hero", "about")


class IngestError(ValueError):
    """The content file is malformed or references an unknown key."""


def _lookup(keys: dict, section: str, key) -> str:
    if key not in keys[section]:
        raise IngestError(f"Unknown {section} key {key!r}")
    return keys[section][key]


def _plain(entry: dict) -> dict:
    """YAML turns bare dates into date objects; the store keeps ISO strings."""
    return {k: v.isoformat() if isinstance(v, (datetime.date, datetime.datetime)) else v
            for k, v in entry.items()}


def _with_ids(entry: dict, keys: dict, section: str, field: str, target: str) -> dict:
    """Swap file-local keys in `field` for stored ids under `target`."""
    entry = _plain(entry)
    refs = entry.pop(field, None) or []
    entry[target] = [_lookup(keys, section, k) for k in refs]
    return entry


def load_content(conn: sqlite3.Connection, data: dict) -> dict:
    """Apply one parsed content file. Returns the number of records per section."""
    if not isinstance(data, dict):
        raise IngestError("Content file must be a mapping of sections")
    unknown = set(data) - set(ITEM_SECTIONS) - set(CONTENT_SECTIONS) - set(PROFILE_SECTIONS)
    if unknown:
        raise IngestError(f"Unknown section(s): {', '.join(sorted(unknown))}")

    keys = {section: {} for section in ITEM_SECTIONS}
    counts = {}

    savers = {
        "categories": lambda e: upsert_category(conn, e.get("names") or {}, category_id=e.get("id")),
        "tags":       lambda e: upsert_tag(conn, e.get("names") or {}, tag_id=e.get("id")),
        "techniques": lambda e: upsert_technique(conn, e.get("names") or {}, icon=e.get("icon"),
                                                 technique_id=e.get("id")),
    }
    for section in ITEM_SECTIONS:
        for entry in data.get(section) or []:
            item_id = savers[section](entry)
            keys[section][entry.get("key") or item_id] = item_id
        counts[section] = len(data.get(section) or [])

    for entry in data.get("blogs") or []:
        entry = _with_ids(entry, keys, "tags", "tags", "tag_ids")
        if entry.get("category"):
            entry["category_id"] = _lookup(keys, "categories", entry.pop("category"))
        upsert_blog(conn, entry)

    for entry in data.get("projects") or []:
        entry = _with_ids(entry, keys, "tags", "tags", "tag_ids")
        entry = _with_ids(entry, keys, "techniques", "techniques", "technique_ids")
        upsert_project(conn, entry)

    for section, saver in (("experiences", upsert_experience), ("educations", upsert_education)):
        for entry in data.get(section) or []:
            saver(conn, _with_ids(entry, keys, "techniques", "techniques", "technique_ids"))

    for entry in data.get("certifications") or []:
        upsert_certification(conn, _plain(entry))
    for entry in data.get("skill_categories") or []:
        upsert_skill_category(conn, entry)
    for entry in data.get("testimonials") or []:
        upsert_testimonial(conn, _plain(entry))

    for section, saver in (("hero", upsert_hero), ("about", upsert_about)):
        entry = data.get(section)
        if entry is not None and not isinstance(entry, dict):
            raise IngestError(f"Section {section!r} must be a mapping")
        if entry:
            saver(conn, entry)
        counts[section] = 1 if entry else 0

    for section in CONTENT_SECTIONS:
        counts[section] = len(data.get(section) or [])
    return counts


def _dry_run_connection(db_path: Path) -> sqlite3.Connection:
    """In-memory DB with the schema and, when it exists, a copy of the target's content."""
    conn = get_db(":memory:")
    if Path(db_path).exists():
        source = sqlite3.connect(db_path)
        try:
            source.backup(conn)
        finally:
            source.close()
    conn.executescript(SCHEMA)
    return conn


def ingest_file(path: Path, db_path: Path, dry_run: bool = False) -> dict:
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if dry_run:
        conn = _dry_run_connection(db_path)
    else:
        init_db(db_path)
        conn = get_db(db_path)
    try:
        counts = load_content(conn, data)
        if dry_run:
            conn.rollback()
        else:
            conn.commit()
    except (ValueError, KeyError, sqlite3.Error):
        conn.rollback()
        raise
    finally:
        conn.close()
    return counts


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Load portfolio content from a YAML file.")
    parser.add_argument("--file", type=str, required=True,
                        help="Path to the content YAML file.")
    parser.add_argument("--db", type=str,
                        help="Database path (default: db_path from config).")
    parser.add_argument("--dry-run", action="store_true",
                        help="Validate and count, but don't save to DB.")
    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(config)
    db_path = Path(args.db or config["db_path"])

    path = Path(args.file)
    if not path.exists():
        log.error(f"File not found: {path}")
        return 1

    try:
        counts = ingest_file(path, db_path, dry_run=args.dry_run)
    except KeyError as e:
        log.error(f"Missing required field {e} in {path}")
        return 1
    except (ValueError, sqlite3.Error, yaml.YAMLError) as e:
        log.error(f"Ingest of {path} failed: {e}")
        return 1

    summary = ", ".join(f"{n} {section}" for section, n in counts.items() if n)
    if args.dry_run:
        log.info(f"DRY RUN — would load: {summary or 'nothing'}")
    else:
        log.info(f"Loaded into {db_path}: {summary or 'nothing'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
