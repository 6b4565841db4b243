"""
db/store.py — SQLite ContentStore (read path)
==============================================
Builds raw entity graphs for the projection engine:

    {<canonical columns>, "translations": [...],
     <relation>: [{<item columns>, "translations": [...]}, ...],
     <reference>: {<columns>, "translations": [...]} | None,
     "_count": {<aggregate>: n}}

Query plan per fetch (constant, independent of the number of entities):
  1. canonical rows            WHERE <filter> ORDER BY <order>
  2. own translations          WHERE fk IN (ids) AND locale = ?
  3. per relation: items       link JOIN item WHERE parent IN (ids) ORDER BY position
                   translations  WHERE fk IN (item ids) AND locale = ?
  4. per reference: item + translations
  5. per aggregate: COUNT(*) GROUP BY parent

Translations are pre-filtered by locale and ordered by id (insertion order).
Blocking sqlite3 work runs in a worker thread; one connection per call.
Any sqlite3.Error surfaces as DataStoreFailure.
"""

import asyncio
import json
import logging
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from db.models import DB_PATH, get_db
from projection.errors import DataStoreFailure

log = logging.getLogger("cms.store")

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


# --- GRAPH MAPPING ---

@dataclass(frozen=True)
class Translations:
    table: str
    fk: str


@dataclass(frozen=True)
class Link:
    key: str                        # graph key (tags, techniques, skills)
    table: str                      # item table
    translations: Translations
    parent_fk: str                  # column pointing at the parent
    link_table: Optional[str] = None  # None → one-to-many, parent_fk lives on the item
    item_fk: Optional[str] = None
    order: tuple = ("position", "id")  # item order inside one parent (one-to-many only)
    booleans: tuple = ()


@dataclass(frozen=True)
class Reference:
    key: str                        # graph key (category)
    column: str                     # fk column on the canonical row
    table: str
    translations: Translations


@dataclass(frozen=True)
class Aggregate:
    key: str                        # name inside "_count"
    table: str
    fk: str


@dataclass(frozen=True)
class Graph:
    table: str
    translations: Optional[Translations] = None
    links: tuple = ()
    references: tuple = ()
    aggregates: tuple = ()
    booleans: tuple = ()
    json_columns: tuple = ()


_TAGS = Translations("tag_translations", "tag_id")
_TECHNIQUES = Translations("technique_translations", "technique_id")


def _techniques(link_table: str, parent_fk: str) -> Link:
    return Link("techniques", "techniques", _TECHNIQUES, parent_fk,
                link_table=link_table, item_fk="technique_id")


GRAPHS = {
    "blog": Graph(
        table="blogs",
        translations=Translations("blog_translations", "blog_id"),
        links=(Link("tags", "tags", _TAGS, "blog_id", link_table="blog_tags", item_fk="tag_id"),),
        references=(Reference("category", "category_id", "categories",
                              Translations("category_translations", "category_id")),),
        aggregates=(Aggregate("likes", "blog_likes", "blog_id"),
                    Aggregate("comments", "blog_comments", "blog_id")),
        booleans=("is_published",),
    ),
    "project": Graph(
        table="projects",
        translations=Translations("project_translations", "project_id"),
        links=(Link("tags", "tags", _TAGS, "project_id", link_table="project_tags", item_fk="tag_id"),
               _techniques("project_techniques", "project_id")),
        booleans=("is_featured", "is_active"),
        json_columns=("gallery",),
    ),
    "experience": Graph(
        table="experiences",
        translations=Translations("experience_translations", "experience_id"),
        links=(_techniques("experience_techniques", "experience_id"),),
        booleans=("is_current",),
    ),
    "education": Graph(
        table="educations",
        translations=Translations("education_translations", "education_id"),
        links=(_techniques("education_techniques", "education_id"),),
        booleans=("is_current",),
    ),
    "certification": Graph(
        table="certifications",
        translations=Translations("certification_translations", "certification_id"),
        booleans=("is_active",),
    ),
    "skill_category": Graph(
        table="skill_categories",
        translations=Translations("skill_category_translations", "skill_category_id"),
        links=(Link("skills", "skills", Translations("skill_translations", "skill_id"), "category_id"),),
        booleans=("is_active",),
    ),
    "testimonial": Graph(
        table="testimonials",
        booleans=("is_active", "is_featured"),
    ),
    "hero": Graph(
        table="hero_sections",
        translations=Translations("hero_translations", "hero_id"),
        booleans=("is_active",),
    ),
    "about": Graph(
        table="about_sections",
        translations=Translations("about_translations", "about_id"),
        links=(Link("statuses", "about_statuses", Translations("about_status_translations", "status_id"),
                    "about_id", order=("id",), booleans=("is_active",)),
               Link("pillars", "core_pillars", Translations("core_pillar_translations", "pillar_id"),
                    "about_id", order=("id",))),
    ),
    "user": Graph(table="users"),
}


# --- SQL HELPERS ---

def _identifier(name: str) -> str:
    if not _IDENTIFIER.match(name or ""):
        raise ValueError(f"Invalid column name {name!r}")
    return name


def _placeholders(values: Sequence) -> str:
    return ", ".join("?" * len(values))


def build_where(where: Optional[dict]) -> tuple[str, list]:
    """
    {"is_active": True, "status": ("APPROVED", "STAR"), "end_date": None}
      → "is_active = ? AND status IN (?, ?) AND end_date IS NULL", [1, "APPROVED", "STAR"]
    """
    clauses, params = [], []
    for column, value in (where or {}).items():
        column = _identifier(column)
        if value is None:
            clauses.append(f"{column} IS NULL")
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                clauses.append("0")
                continue
            clauses.append(f"{column} IN ({_placeholders(values)})")
            params.extend(values)
        else:
            clauses.append(f"{column} = ?")
            params.append(int(value) if isinstance(value, bool) else value)
    return " AND ".join(clauses) or "1", params


def build_order(order_by: Sequence) -> str:
    """(("published_at", "desc"), ("id", "asc")) → 'published_at DESC NULLS LAST, id ASC'"""
    terms = []
    for column, direction in order_by or ():
        direction = direction.upper()
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"Invalid sort direction {direction!r}")
        nulls = " NULLS LAST" if direction == "DESC" else ""
        terms.append(f"{_identifier(column)} {direction}{nulls}")
    return ", ".join(terms) or "id ASC"


def _group(rows: list, key: str) -> dict:
    grouped: dict = {}
    for row in rows:
        grouped.setdefault(row.pop(key), []).append(row)
    return grouped


# --- STORE ---

class SQLiteContentStore:
    """Async ContentStore over the SQLite content database."""

    def __init__(self, path: Path | str = DB_PATH):
        self.path = Path(path)

    async def fetch_one(self, kind: str, entity_id: str, locale: str,
                        where: Optional[dict] = None,
                        relation_locales: Optional[dict] = None) -> Optional[dict]:
        rows = await self._run(self._fetch, kind, locale, dict(where or {}, id=entity_id),
                               (), relation_locales or {})
        return rows[0] if rows else None

    async def fetch_many(self, kind: str, locale: str,
                         where: Optional[dict] = None,
                         order_by: Sequence = (),
                         relation_locales: Optional[dict] = None) -> list[dict]:
        return await self._run(self._fetch, kind, locale, where, order_by, relation_locales or {})

    async def count(self, kind: str, where: Optional[dict] = None) -> int:
        return await self._run(self._count, kind, where)

    # ── blocking part ────────────────────────────────────────────────────────

    async def _run(self, fn, *args):
        return await asyncio.to_thread(self._with_connection, fn, *args)

    def _with_connection(self, fn, *args):
        conn = None
        try:
            conn = get_db(self.path)
            return fn(conn, *args)
        except sqlite3.Error as e:
            raise DataStoreFailure(f"{fn.__name__.strip('_')} on {self.path.name} failed: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    def _count(self, conn: sqlite3.Connection, kind: str, where: Optional[dict]) -> int:
        graph = GRAPHS[kind]
        where_sql, params = build_where(where)
        return conn.execute(f"SELECT COUNT(*) FROM {graph.table} WHERE {where_sql}", params).fetchone()[0]

    def _fetch(self, conn: sqlite3.Connection, kind: str, locale: str,
               where: Optional[dict], order_by: Sequence, relation_locales: dict) -> list[dict]:
        graph = GRAPHS[kind]
        where_sql, params = build_where(where)
        rows = conn.execute(
            f"SELECT * FROM {graph.table} WHERE {where_sql} ORDER BY {build_order(order_by)}",
            params,
        ).fetchall()
        entities = [self._hydrate(dict(r), graph) for r in rows]
        if not entities:
            return []

        ids = [e["id"] for e in entities]
        if graph.translations:
            own = self._translations(conn, graph.translations, ids, locale)
            for entity in entities:
                entity["translations"] = own.get(entity["id"], [])

        for link in graph.links:
            items = self._link_items(conn, link, ids, relation_locales.get(link.key, locale))
            for entity in entities:
                entity[link.key] = items.get(entity["id"], [])

        for ref in graph.references:
            ref_ids = sorted({e[ref.column] for e in entities if e.get(ref.column)})
            related = self._reference_items(conn, ref, ref_ids, relation_locales.get(ref.key, locale))
            for entity in entities:
                entity[ref.key] = related.get(entity.get(ref.column))

        if graph.aggregates:
            for entity in entities:
                entity["_count"] = {}
            by_id = {e["id"]: e for e in entities}
            for agg in graph.aggregates:
                counted = conn.execute(
                    f"SELECT {agg.fk} AS parent, COUNT(*) AS n FROM {agg.table} "
                    f"WHERE {agg.fk} IN ({_placeholders(ids)}) GROUP BY {agg.fk}",
                    ids,
                ).fetchall()
                for row in counted:
                    by_id[row["parent"]]["_count"][agg.key] = row["n"]

        return entities

    def _hydrate(self, row: dict, graph: Graph) -> dict:
        for column in graph.booleans:
            if column in row:
                row[column] = bool(row[column])
        for column in graph.json_columns:
            if row.get(column):
                try:
                    row[column] = json.loads(row[column])
                except (json.JSONDecodeError, TypeError):
                    log.warning(f"Unparseable JSON in {graph.table}.{column} for {row.get('id')}")
                    row[column] = []
        return row

    def _translations(self, conn: sqlite3.Connection, spec: Translations,
                      parent_ids: list, locale: str) -> dict:
        if not parent_ids:
            return {}
        rows = conn.execute(
            f"SELECT * FROM {spec.table} WHERE {spec.fk} IN ({_placeholders(parent_ids)}) "
            f"AND locale = ? ORDER BY id",
            [*parent_ids, locale],
        ).fetchall()
        return _group([dict(r) for r in rows], spec.fk)

    def _link_items(self, conn: sqlite3.Connection, link: Link,
                    parent_ids: list, locale: str) -> dict:
        if link.link_table:
            sql = (
                f"SELECT l.{link.parent_fk} AS _parent, i.* FROM {link.link_table} l "
                f"JOIN {link.table} i ON i.id = l.{link.item_fk} "
                f"WHERE l.{link.parent_fk} IN ({_placeholders(parent_ids)}) "
                f"ORDER BY l.{link.parent_fk}, l.position, i.id"
            )
        else:
            sql = (
                f"SELECT i.{link.parent_fk} AS _parent, i.* FROM {link.table} i "
                f"WHERE i.{link.parent_fk} IN ({_placeholders(parent_ids)}) "
                f"ORDER BY i.{link.parent_fk}, {', '.join('i.' + c for c in link.order)}"
            )
        items = [dict(r) for r in conn.execute(sql, parent_ids).fetchall()]
        names = self._translations(conn, link.translations, sorted({i["id"] for i in items}), locale)
        for item in items:
            item["translations"] = names.get(item["id"], [])
            for column in link.booleans:
                if column in item:
                    item[column] = bool(item[column])
        return _group(items, "_parent")

    def _reference_items(self, conn: sqlite3.Connection, ref: Reference,
                         ref_ids: list, locale: str) -> dict:
        if not ref_ids:
            return {}
        rows = conn.execute(
            f"SELECT * FROM {ref.table} WHERE id IN ({_placeholders(ref_ids)})", ref_ids
        ).fetchall()
        names = self._translations(conn, ref.translations, ref_ids, locale)
        related = {}
        for row in rows:
            item = dict(row)
            item["translations"] = names.get(item["id"], [])
            related[item["id"]] = item
        return related
