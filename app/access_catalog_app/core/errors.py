from __future__ import annotations


class AccessCatalogError(Exception):
    """Base class for errors raised by the access catalog."""


class UnknownIdentity(AccessCatalogError, LookupError):
    """Raised when an identity name is not present in the principal directory."""

    def __init__(self, identity_name: str) -> None:
        super().__init__(f"Unknown identity: '{identity_name}'.")
        self.identity_name = identity_name


class UnknownRole(AccessCatalogError, LookupError):
    """Raised when a role name is not present in the principal directory."""

    def __init__(self, role_name: str) -> None:
        super().__init__(f"Unknown role: '{role_name}'.")
        self.role_name = role_name


class InvalidRequest(AccessCatalogError, ValueError):
    """Raised for a malformed action, effect, securable path, or principal name."""


class AccessDeniedError(AccessCatalogError, PermissionError):
    def __init__(self, message: str, *, decisions: tuple = ()) -> None:
        super().__init__(message)
        self.decisions = tuple(decisions)
