"""
projection/errors.py — Error taxonomy of the content read path
===============================================================

  UnsupportedLocale     → locale not in the supported set (raised, caller decides)
  DataStoreFailure      → the store could not answer (caught at the service boundary)
  AdminAccessRequired   → admin-only operation called without an admin context

A missing translation is not an error: fallbacks cover it.
A missing entity is not an error either: lookups return None.
"""


class UnsupportedLocale(ValueError):
    def __init__(self, candidate, supported=None):
        self.candidate = candidate
        self.supported = sorted(supported) if supported else []
        super().__init__(
            f"Unsupported locale {candidate!r} (supported: {', '.join(self.supported) or '-'})"
        )


class DataStoreFailure(RuntimeError):
    """The underlying fetch failed (connectivity, malformed query, constraint)."""


class AdminAccessRequired(PermissionError):
    """Raised when an unfiltered admin listing is requested without admin rights."""
