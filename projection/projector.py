"""
projection/projector.py — Generic Entity Projector
===================================================
One projector for every content kind. A kind is a table (EntityKind) that
names:

  columns     → non-localized columns copied through (with optional defaults)
  localized   → translated fields and their fallback defaults
  relations   → many-valued relations flattened with their own fallback label
  references  → many-to-one relations resolved to (id, name)
  counts      → aggregate counts carried as int (missing → 0)

Fallbacks may contain "{locale}" and are rendered for the requested locale.
A localized field with fallback None is optional and may project to None.

project() is pure: it reads the raw graph, never mutates it, performs no I/O.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from projection.relations import flatten, resolve_reference
from projection.selector import select_translation


@dataclass(frozen=True)
class RelationSpec:
    key: str                            # raw graph key == DTO key
    fallback: str
    passthrough: tuple = ()
    locale: Optional[str] = None        # pinned locale for item names
    fields: Optional[dict] = None       # several translated columns instead of "name"


@dataclass(frozen=True)
class ReferenceSpec:
    key: str                            # raw graph key of the related object
    column: str                         # foreign key column on the entity
    id_field: str
    name_field: str
    fallback: str


@dataclass(frozen=True)
class EntityKind:
    name: str
    columns: dict
    localized: dict = field(default_factory=dict)
    relations: tuple = ()
    references: tuple = ()
    counts: dict = field(default_factory=dict)
    timestamp: Optional[str] = "created_at"
    active: dict = field(default_factory=dict)
    order_by: tuple = ()

    def ordering(self) -> tuple:
        """Explicit order, else newest-first by the timestamp with id as tie-break."""
        if self.order_by:
            return self.order_by
        return ((self.timestamp, "desc"), ("id", "asc"))

    def relation_locales(self) -> dict:
        return {rel.key: rel.locale for rel in self.relations if rel.locale}

    def fallbacks(self, locale: str) -> dict:
        """Rendered fallback table, mainly for docs and tests."""
        table = {name: render_fallback(fb, locale) for name, fb in self.localized.items()}
        for ref in self.references:
            table[ref.name_field] = ref.fallback
        for rel in self.relations:
            table[rel.key] = dict(rel.fields) if rel.fields else rel.fallback
        return table


def render_fallback(fallback: Optional[str], locale: str) -> Optional[str]:
    if fallback is None:
        return None
    return fallback.format(locale=locale)


def _copy(value):
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


def project(entity: Optional[dict], locale: str, kind: EntityKind) -> Optional[dict]:
    """Resolve one raw entity graph into a flat DTO for `locale`."""
    if entity is None:
        return None

    dto = {}
    for column, default in kind.columns.items():
        value = entity.get(column)
        if value is None and default is not None:
            value = default() if callable(default) else default
        dto[column] = _copy(value)

    for ref in kind.references:
        ref_id, ref_name = resolve_reference(entity.get(ref.key), locale, ref.fallback)
        dto[ref.id_field] = entity.get(ref.column) or ref_id
        dto[ref.name_field] = ref_name

    dto["locale"] = locale

    translation = select_translation(entity.get("translations"), locale)
    for name, fallback in kind.localized.items():
        value = translation.get(name) if translation else None
        dto[name] = value or render_fallback(fallback, locale)

    for rel in kind.relations:
        dto[rel.key] = flatten(
            entity.get(rel.key), rel.locale or locale, rel.fallback, rel.passthrough,
            fields=rel.fields,
        )

    aggregates = entity.get("_count") or {}
    for name, source in kind.counts.items():
        dto[name] = int(aggregates.get(source) or 0)

    return dto


def project_many(entities: Optional[Sequence[dict]], locale: str, kind: EntityKind) -> list[dict]:
    return [project(e, locale, kind) for e in entities or () if e is not None]
