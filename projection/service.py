"""
projection/service.py — Collection Query Service
=================================================
Fetches raw entity graphs from a ContentStore and projects them per locale.

Contract:
  list_active(kind, locale)        → published/active entities, kind ordering
  get_by_id(kind, id, locale)      → one DTO or None
  list_all(kind, locale, context)  → admin table, no canonical filter
  get_section(kind, locale)        → single-record section (hero, about) or None
  count_active(kind) / count(name) → integers for dashboards

Fail-soft policy: when the store fails (DataStoreFailure, connectivity
OSError) the call logs one error record naming kind, locale and filter and
returns an empty list / None / 0. Rendering code never sees the exception.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from projection.errors import AdminAccessRequired, DataStoreFailure
from projection.kinds import get_kind
from projection.projector import project, project_many

log = logging.getLogger("cms.projection")

STORE_ERRORS = (DataStoreFailure, OSError)


class ContentStore(Protocol):
    """Query capability the service depends on. See db/store.py for SQLite."""

    async def fetch_one(self, kind: str, entity_id: str, locale: str,
                        where: Optional[dict] = None,
                        relation_locales: Optional[dict] = None) -> Optional[dict]: ...

    async def fetch_many(self, kind: str, locale: str,
                         where: Optional[dict] = None,
                         order_by: Sequence = (),
                         relation_locales: Optional[dict] = None) -> list[dict]: ...

    async def count(self, kind: str, where: Optional[dict] = None) -> int: ...


@dataclass(frozen=True)
class AccessContext:
    """Caller identity passed explicitly into admin-only operations."""
    role: str = "anonymous"
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


ANONYMOUS = AccessContext()


class CollectionQueryService:
    def __init__(self, store: ContentStore):
        self.store = store

    async def list_active(self, kind, locale: str) -> list[dict]:
        kind = get_kind(kind)
        try:
            rows = await self.store.fetch_many(
                kind.name, locale,
                where=kind.active,
                order_by=kind.ordering(),
                relation_locales=kind.relation_locales(),
            )
        except STORE_ERRORS:
            log.error(
                f"list_active failed: kind={kind.name} locale={locale} filter={kind.active}",
                exc_info=True,
            )
            return []
        return project_many(rows, locale, kind)

    async def get_by_id(self, kind, entity_id: str, locale: str,
                        active_only: bool = False) -> Optional[dict]:
        """None when the entity does not exist (or is filtered out with active_only)."""
        kind = get_kind(kind)
        where = kind.active if active_only else None
        try:
            row = await self.store.fetch_one(
                kind.name, entity_id, locale,
                where=where,
                relation_locales=kind.relation_locales(),
            )
        except STORE_ERRORS:
            log.error(
                f"get_by_id failed: kind={kind.name} id={entity_id} locale={locale} filter={where}",
                exc_info=True,
            )
            return None
        return project(row, locale, kind)

    async def get_section(self, kind, locale: str) -> Optional[dict]:
        """First record in kind order, for single-record sections (hero, about)."""
        kind = get_kind(kind)
        try:
            rows = await self.store.fetch_many(
                kind.name, locale,
                where=kind.active,
                order_by=kind.ordering(),
                relation_locales=kind.relation_locales(),
            )
        except STORE_ERRORS:
            log.error(
                f"get_section failed: kind={kind.name} locale={locale} filter={kind.active}",
                exc_info=True,
            )
            return None
        return project(rows[0], locale, kind) if rows else None

    async def list_all(self, kind, locale: str, context: AccessContext = ANONYMOUS) -> list[dict]:
        """Unfiltered listing (drafts, inactive, pending) for admin tables."""
        kind = get_kind(kind)
        if not context.is_admin:
            raise AdminAccessRequired(f"Admin access required to list all {kind.name} records")
        try:
            rows = await self.store.fetch_many(
                kind.name, locale,
                order_by=kind.ordering(),
                relation_locales=kind.relation_locales(),
            )
        except STORE_ERRORS:
            log.error(f"list_all failed: kind={kind.name} locale={locale} filter=None", exc_info=True)
            return []
        return project_many(rows, locale, kind)

    async def count_active(self, kind) -> int:
        kind = get_kind(kind)
        return await self.count(kind.name, kind.active)

    async def count(self, name: str, where: Optional[dict] = None) -> int:
        try:
            return int(await self.store.count(name, where=where))
        except STORE_ERRORS:
            log.error(f"count failed: kind={name} filter={where}", exc_info=True)
            return 0
