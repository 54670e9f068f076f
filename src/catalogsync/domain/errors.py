"""Error types raised by the staging and synchronization core."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Violation:
    """One broken validation rule for a single field."""

    field: str
    rule: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class CatalogError(RuntimeError):
    """Base class for catalog staging/sync failures.

    ``step`` names the synchronization step that failed, when the error was raised
    inside a sync run.
    """

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message)
        self.step = step


class ValidationError(CatalogError):
    """Raised when entity data breaks one or more schema rules."""

    def __init__(self, violations: list[Violation] | tuple[Violation, ...]) -> None:
        self.violations = tuple(violations)
        details = "; ".join(str(violation) for violation in self.violations)
        super().__init__(f"Invalid entity data: {details}")

    def rules(self) -> set[str]:
        return {violation.rule for violation in self.violations}


class AssetError(CatalogError):
    """Raised for unsupported, oversized or missing image assets."""


class NotFoundError(CatalogError):
    """Raised when a staged change or a merge target does not exist."""

    def __init__(self, message: str, *, name: str | None = None, step: str | None = None) -> None:
        super().__init__(message, step=step)
        self.name = name


class SchemaError(CatalogError):
    """Raised when a remote document does not have the expected wrapper shape."""


class SerializationInvariantError(CatalogError):
    """Raised when the serialized document does not re-parse to the same records."""


class RemoteError(CatalogError):
    """Raised when the remote repository rejects or fails a read or write."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        step: str | None = None,
    ) -> None:
        super().__init__(message, step=step)
        self.status_code = status_code


class NotConfiguredError(CatalogError):
    """Raised when publishing without remote write credentials."""


class SyncInProgressError(CatalogError):
    """Raised when a synchronization is requested while another one is running."""


class LedgerStorageError(CatalogError):
    """Raised when the persisted ledger cannot be read back."""
