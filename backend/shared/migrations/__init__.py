"""Schema migration runner."""

from .runner import VERSIONS_DIR, Migration, MigrationRunner, discover, read_schema

__all__ = ["Migration", "MigrationRunner", "VERSIONS_DIR", "discover", "read_schema"]
