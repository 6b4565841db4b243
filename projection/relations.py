"""
projection/relations.py — Relation Flattener
=============================================
Turns a nested relation (tags, techniques, skills, category) into flat
{id, name, ...} items for one locale.

Guarantees:
  - one output item per input item, input order kept (no re-sorting)
  - an item without a matching translation gets the fallback label
  - items with zero translations and items missing only this locale
    are treated identically
"""

from typing import Optional, Sequence

from projection.selector import select_translation


def flatten(items: Optional[Sequence[dict]],
            locale: str,
            fallback_label: str,
            passthrough: Sequence[str] = (),
            name_field: str = "name",
            fields: Optional[dict] = None) -> list[dict]:
    """
    Flatten a many-valued relation.

    Args:
        items:          relation items, each with an optional "translations" list
        locale:         locale to select
        fallback_label: name used when no translation matches
        passthrough:    non-localized item columns copied as-is (e.g. icon, level)
        name_field:     translation column holding the display name
        fields:         several translated columns → fallback each, used
                        instead of the single name (about statuses, pillars)
    """
    flat = []
    for item in items or ():
        translation = select_translation(item.get("translations"), locale)
        entry = {"id": item.get("id")}
        for column in passthrough:
            entry[column] = item.get(column)
        if fields:
            for column, default in fields.items():
                value = translation.get(column) if translation else None
                entry[column] = value or default
        else:
            name = translation.get(name_field) if translation else None
            entry["name"] = name or fallback_label
        flat.append(entry)
    return flat


def resolve_reference(item: Optional[dict],
                      locale: str,
                      fallback_label: str,
                      name_field: str = "name") -> tuple[str, str]:
    """Many-to-one variant: (id or "", name or fallback)."""
    if not item:
        return "", fallback_label
    translation = select_translation(item.get("translations"), locale)
    name = translation.get(name_field) if translation else None
    return item.get("id") or "", name or fallback_label
