"""
projection/selector.py — Translation Selector
==============================================
Picks the one translation record honored for (entity, locale).

Tie-break: when several records match, the first one in the sequence order
wins. Stores hand records over ordered by primary key, so that is the first
inserted row. Never "most recently updated".
"""

from typing import Optional, Sequence


def select_translation(records: Optional[Sequence[dict]], locale: str) -> Optional[dict]:
    """Return the first record whose locale equals `locale`, or None."""
    if not records:
        return None
    for record in records:
        if record and record.get("locale") == locale:
            return record
    return None
