"""Error taxonomy for the sync engine."""


class SyncError(Exception):
    """Base class for sync engine failures."""


class SetupRequiredError(SyncError):
    """The remote store's tables do not exist yet.

    Distinct from transient failures: the operator has to apply the schema
    once before connected mode can work.
    """

    def __init__(self, table: str | None = None) -> None:
        self.table = table
        detail = f" (missing table: {table})" if table else ""
        super().__init__(f"Remote storage is not set up{detail}")


class RemoteUnavailableError(SyncError):
    """No remote store is configured or reachable."""
