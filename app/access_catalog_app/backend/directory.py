"""
Principal directory.

Holds identities (users), roles, and flat role memberships. Reads are served
from an immutable ``DirectorySnapshot``; every mutation builds the next
snapshot under the writer lock and swaps the reference, so a reader always
sees one whole version of the directory.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Iterable, Mapping

from access_catalog_app.core.errors import InvalidRequest, UnknownIdentity, UnknownRole
from access_catalog_app.core.security import (
    PRINCIPAL_KIND_IDENTITY,
    PRINCIPAL_KIND_ROLE,
    normalize_name_list,
    normalize_principal_name,
    principal_key,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityRecord:
    name: str
    login: str = ""
    role_keys: frozenset[str] = frozenset()


@dataclass(frozen=True)
class DirectorySnapshot:
    identity_map: Mapping[str, IdentityRecord] = field(default_factory=lambda: MappingProxyType({}))
    role_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    login_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def identity(self, identity_name: str) -> IdentityRecord:
        record = self.identity_map.get(principal_key(identity_name))
        if record is None:
            raise UnknownIdentity(identity_name)
        return record

    def resolve_effective_roles(self, identity_name: str) -> frozenset[str]:
        record = self.identity(identity_name)
        return frozenset(self.role_map[key] for key in record.role_keys)

    def identity_name(self, identity_name: str) -> str:
        return self.identity(identity_name).name

    def role_name(self, role_name: str) -> str:
        value = self.role_map.get(principal_key(role_name))
        if value is None:
            raise UnknownRole(role_name)
        return value

    def has_identity(self, name: str) -> bool:
        return principal_key(name) in self.identity_map

    def has_role(self, name: str) -> bool:
        return principal_key(name) in self.role_map

    def has_principal(self, name: str) -> bool:
        return self.has_identity(name) or self.has_role(name)

    def principal_kind(self, name: str) -> str | None:
        if self.has_identity(name):
            return PRINCIPAL_KIND_IDENTITY
        if self.has_role(name):
            return PRINCIPAL_KIND_ROLE
        return None

    def resolve_login(self, login: str) -> str:
        key = self.login_map.get(principal_key(login))
        if key is None:
            raise UnknownIdentity(login)
        return self.identity_map[key].name

    def identities(self) -> tuple[IdentityRecord, ...]:
        return tuple(sorted(self.identity_map.values(), key=lambda record: principal_key(record.name)))

    def roles(self) -> tuple[str, ...]:
        return tuple(sorted(self.role_map.values(), key=principal_key))

    def role_members(self, role_name: str) -> tuple[str, ...]:
        key = principal_key(self.role_name(role_name))
        return tuple(record.name for record in self.identities() if key in record.role_keys)


class PrincipalDirectory:
    def __init__(self, snapshot: DirectorySnapshot | None = None) -> None:
        self._snapshot = snapshot or DirectorySnapshot()
        self._lock = threading.RLock()

    def snapshot(self) -> DirectorySnapshot:
        return self._snapshot

    def _publish(
        self,
        *,
        identity_map: dict[str, IdentityRecord] | None = None,
        role_map: dict[str, str] | None = None,
        login_map: dict[str, str] | None = None,
    ) -> None:
        current = self._snapshot
        self._snapshot = DirectorySnapshot(
            identity_map=MappingProxyType(dict(current.identity_map if identity_map is None else identity_map)),
            role_map=MappingProxyType(dict(current.role_map if role_map is None else role_map)),
            login_map=MappingProxyType(dict(current.login_map if login_map is None else login_map)),
        )

    # Reads go to the current snapshot.

    def resolve_effective_roles(self, identity_name: str) -> frozenset[str]:
        return self._snapshot.resolve_effective_roles(identity_name)

    def identity_name(self, identity_name: str) -> str:
        return self._snapshot.identity_name(identity_name)

    def resolve_login(self, login: str) -> str:
        return self._snapshot.resolve_login(login)

    def identities(self) -> tuple[IdentityRecord, ...]:
        return self._snapshot.identities()

    def roles(self) -> tuple[str, ...]:
        return self._snapshot.roles()

    def role_members(self, role_name: str) -> tuple[str, ...]:
        return self._snapshot.role_members(role_name)

    def has_principal(self, name: str) -> bool:
        return self._snapshot.has_principal(name)

    def principal_kind(self, name: str) -> str | None:
        return self._snapshot.principal_kind(name)

    # Mutations.

    def create_role(self, role_name: str) -> bool:
        name = normalize_principal_name(role_name)
        key = principal_key(name)
        with self._lock:
            current = self._snapshot
            if key in current.role_map:
                return False
            if key in current.identity_map:
                raise InvalidRequest(f"'{name}' already exists as an identity.")
            role_map = dict(current.role_map)
            role_map[key] = name
            self._publish(role_map=role_map)
        LOGGER.info("Created role. role=%s", name)
        return True

    def drop_role(self, role_name: str) -> bool:
        key = principal_key(role_name)
        with self._lock:
            current = self._snapshot
            if key not in current.role_map:
                return False
            role_map = dict(current.role_map)
            name = role_map.pop(key)
            identity_map = {
                identity_key: replace(record, role_keys=record.role_keys - {key})
                for identity_key, record in current.identity_map.items()
            }
            self._publish(identity_map=identity_map, role_map=role_map)
        LOGGER.info("Dropped role. role=%s", name)
        return True

    def create_identity(self, identity_name: str, *, login: str = "", roles: Iterable[str] = ()) -> bool:
        name = normalize_principal_name(identity_name)
        key = principal_key(name)
        login_name = normalize_principal_name(login) if str(login or "").strip() else ""
        with self._lock:
            current = self._snapshot
            if key in current.role_map:
                raise InvalidRequest(f"'{name}' already exists as a role.")
            role_keys = frozenset(
                principal_key(current.role_name(role)) for role in normalize_name_list(roles, "roles")
            )
            if key in current.identity_map:
                existing = current.identity_map[key]
                if login_name and principal_key(login_name) != principal_key(existing.login):
                    raise InvalidRequest(
                        f"Identity '{existing.name}' already exists with login '{existing.login or '-'}'."
                    )
                if not role_keys:
                    return False
                self._publish_memberships(key, current.identity_map[key].role_keys | role_keys)
                return True
            login_map = dict(current.login_map)
            if login_name:
                login_key = principal_key(login_name)
                if login_key in login_map:
                    raise InvalidRequest(f"Login '{login_name}' is already mapped to an identity.")
                login_map[login_key] = key
            identity_map = dict(current.identity_map)
            identity_map[key] = IdentityRecord(name=name, login=login_name, role_keys=role_keys)
            self._publish(identity_map=identity_map, login_map=login_map)
        LOGGER.info("Created identity. identity=%s login=%s", name, login_name or "-")
        return True

    def drop_identity(self, identity_name: str) -> bool:
        key = principal_key(identity_name)
        with self._lock:
            current = self._snapshot
            if key not in current.identity_map:
                return False
            identity_map = dict(current.identity_map)
            record = identity_map.pop(key)
            login_map = {login: target for login, target in current.login_map.items() if target != key}
            self._publish(identity_map=identity_map, login_map=login_map)
        LOGGER.info("Dropped identity. identity=%s", record.name)
        return True

    def _publish_memberships(self, identity_key: str, role_keys: frozenset[str]) -> None:
        identity_map = dict(self._snapshot.identity_map)
        identity_map[identity_key] = replace(identity_map[identity_key], role_keys=role_keys)
        self._publish(identity_map=identity_map)

    def add_membership(self, identity_name: str, role_name: str) -> bool:
        """Add ``identity_name`` to ``role_name``; returns False when already a member."""
        with self._lock:
            current = self._snapshot
            record = current.identity(identity_name)
            role_key = principal_key(current.role_name(role_name))
            if role_key in record.role_keys:
                return False
            self._publish_memberships(principal_key(record.name), record.role_keys | {role_key})
        LOGGER.info("Added role member. role=%s identity=%s", role_name, record.name)
        return True

    def remove_membership(self, identity_name: str, role_name: str) -> bool:
        with self._lock:
            current = self._snapshot
            record = current.identity(identity_name)
            role_key = principal_key(current.role_name(role_name))
            if role_key not in record.role_keys:
                return False
            self._publish_memberships(principal_key(record.name), record.role_keys - {role_key})
        LOGGER.info("Removed role member. role=%s identity=%s", role_name, record.name)
        return True
