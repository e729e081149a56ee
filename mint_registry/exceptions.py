"""Custom exceptions for Mint_Registry."""

from __future__ import annotations

from typing import Any


class MintRegistryError(Exception):
    """Base exception for all Mint_Registry errors."""

    pass


class MissingFieldsError(MintRegistryError):
    """Raised when a payload omits one or more required fields."""

    def __init__(self, missing: list[str], required: list[str] | None = None) -> None:
        super().__init__(f"Missing required fields: {', '.join(missing)}")
        self.missing = list(missing)
        self.required = list(required or [])


class InvalidFormatError(MintRegistryError):
    """Raised when an identifier does not match its expected pattern."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message

    def as_errors(self) -> list[dict[str, str]]:
        return [{"field": self.field, "message": self.message}]


class ValidationError(MintRegistryError):
    """Raised when a mint record fails schema validation.

    ``errors`` holds one ``{"field", "message"}`` entry per failing field.
    """

    def __init__(self, errors: list[dict[str, str]]) -> None:
        fields = ", ".join(error["field"] for error in errors)
        super().__init__(f"Validation failed for: {fields}")
        self.errors = errors


class DuplicateKeyError(MintRegistryError):
    """Raised when a write conflicts with an existing record's identity."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"A record with {field}={value!r} already exists")
        self.field = field
        self.value = value


class RecordNotFoundError(MintRegistryError):
    """Raised when a record addressed by identity does not exist."""

    pass


class StorageError(MintRegistryError):
    """Raised when the backing database is unavailable or fails unexpectedly."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class ConfigurationError(MintRegistryError):
    """Raised when configuration is invalid or missing."""

    pass
