"""Infrastructure layer: file participation filter.

Usage:
    from coverstat.infrastructure.filters import Filter

    flt = Filter()
    flt.add_directory_to_whitelist("src")
    flt.is_filtered("src/app/main.py")  # False
"""

from coverstat.infrastructure.filters.path import DEFAULT_GROUP, SYNTHETIC_NAMES, Filter

__all__ = [
    "DEFAULT_GROUP",
    "SYNTHETIC_NAMES",
    "Filter",
]
