from __future__ import annotations

from collections.abc import Mapping


class StoreError(RuntimeError):
    """Base class for store failures that make an operation unusable."""


class MigrationError(StoreError):
    pass


class SchemaApplicationError(MigrationError):
    """A migration's forward action failed and was rolled back.

    The ledger still shows the version as unapplied, so the next start retries it.
    """

    def __init__(self, version: int, description: str, reason: str = "") -> None:
        self.version = version
        self.description = description
        self.reason = reason
        message = f"migration {version} ({description}) failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DuplicateMigrationVersion(MigrationError):
    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"duplicate migration version {version}")


class OutOfOrderMigration(MigrationError):
    def __init__(self, version: int, previous: int, reason: str = "") -> None:
        self.version = version
        self.previous = previous
        super().__init__(
            reason or f"migration version {version} listed after version {previous}"
        )


class IndexSyncFailure(StoreError):
    """The search-index half of a write failed; the whole write was aborted."""

    def __init__(self, item_type: str, item_id: str, reason: str = "") -> None:
        self.item_type = item_type
        self.item_id = item_id
        message = f"search index sync failed for {item_type} {item_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConstraintViolation(ValueError):
    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {msg}" for field, msg in sorted(self.errors.items()))
        super().__init__(f"invalid value ({detail})")


class EntityNotFound(LookupError):
    def __init__(self, item_type: str, item_id: str | int) -> None:
        self.item_type = item_type
        self.item_id = str(item_id)
        super().__init__(f"{item_type} {item_id} not found")
