"""
projection/locale.py — Locale Resolver
=======================================
Validates and normalizes a requested locale against the fixed supported set.

Only reports validity: falling back to the default locale is the routing
layer's decision (see app/main.py negotiate_locale).
"""

from typing import Iterable, Optional

from projection.errors import UnsupportedLocale

SUPPORTED_LOCALES = frozenset({"en", "ar"})
DEFAULT_LOCALE = "en"
LOCALE_LABELS = {"en": "English", "ar": "العربية"}


def normalize(candidate: Optional[str]) -> str:
    """'AR_eg ' → 'ar'. Region subtags are dropped."""
    if not candidate:
        return ""
    return candidate.strip().lower().replace("_", "-").split("-")[0]


def resolve(candidate: Optional[str], supported: Iterable[str] = SUPPORTED_LOCALES) -> str:
    """Return the normalized locale or raise UnsupportedLocale."""
    supported = frozenset(supported)
    locale = normalize(candidate)
    if locale not in supported:
        raise UnsupportedLocale(candidate, supported)
    return locale


def is_supported(candidate: Optional[str], supported: Iterable[str] = SUPPORTED_LOCALES) -> bool:
    return normalize(candidate) in frozenset(supported)
