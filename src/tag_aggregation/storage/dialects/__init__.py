"""Database dialect system for tag aggregation.

The store targets embedded SQLite; the registry keeps engine construction
behind a dialect interface so the storage layer never hard-codes URLs or
pool settings.
"""

from tag_aggregation.storage.dialects.base import BaseDialect
from tag_aggregation.storage.dialects.sqlite import SQLiteDialect

# Dialect registry
_DIALECT_REGISTRY: dict[str, type[BaseDialect]] = {
    "sqlite": SQLiteDialect,
}


def get_dialect(name: str) -> BaseDialect:
    """Get a dialect instance by name.

    Args:
        name: Dialect name

    Returns:
        Dialect instance

    Raises:
        ValueError: If dialect name is not supported
    """
    name_lower = name.lower()
    if name_lower not in _DIALECT_REGISTRY:
        supported = ", ".join(sorted(_DIALECT_REGISTRY.keys()))
        raise ValueError(
            f"Unsupported database dialect: {name!r}. "
            f"Supported dialects: {supported}"
        )

    return _DIALECT_REGISTRY[name_lower]()


__all__ = [
    "BaseDialect",
    "SQLiteDialect",
    "get_dialect",
]
