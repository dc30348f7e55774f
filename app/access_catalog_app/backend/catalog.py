from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from access_catalog_app.backend.directory import DirectorySnapshot, PrincipalDirectory
from access_catalog_app.backend.evaluator import AccessEvaluator, Decision
from access_catalog_app.backend.policy_store import PolicyFact, PolicySnapshot, PolicyStore
from access_catalog_app.core.errors import AccessDeniedError, InvalidRequest
from access_catalog_app.core.securables import object_columns, parse_securable
from access_catalog_app.core.security import (
    EFFECT_ALLOW,
    EFFECT_DENY,
    normalize_actions,
    normalize_effect,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessSnapshot:
    directory: DirectorySnapshot = field(default_factory=DirectorySnapshot)
    policies: PolicySnapshot = field(default_factory=PolicySnapshot)

    def evaluator(self) -> AccessEvaluator:
        return AccessEvaluator(self.directory, self.policies)


class AccessCatalog:
    """
    Principal directory and policy store behind one writer lock.

    Mutations are serialized and each one ends by publishing a new
    ``AccessSnapshot``. Evaluation reads the published snapshot once, so a
    decision is always computed against a single whole version of the
    directory and the facts, never a partially applied mutation.
    """

    def __init__(self, snapshot: AccessSnapshot | None = None) -> None:
        self._lock = threading.RLock()
        self._install(snapshot or AccessSnapshot())

    def _install(self, snapshot: AccessSnapshot) -> None:
        self._directory = PrincipalDirectory(snapshot.directory)
        self._store = PolicyStore(snapshot.policies)
        self._state = snapshot

    @contextmanager
    def _writer(self) -> Iterator[None]:
        with self._lock:
            try:
                yield
            finally:
                self._state = AccessSnapshot(self._directory.snapshot(), self._store.snapshot())

    def snapshot(self) -> AccessSnapshot:
        return self._state

    def load(self, snapshot: AccessSnapshot) -> None:
        with self._lock:
            self._install(snapshot)
        LOGGER.info(
            "Loaded access snapshot. identities=%s roles=%s facts=%s",
            len(snapshot.directory.identity_map),
            len(snapshot.directory.role_map),
            len(snapshot.policies.fact_list),
        )

    # Directory.

    def create_role(self, role_name: str) -> bool:
        with self._writer():
            return self._directory.create_role(role_name)

    def drop_role(self, role_name: str) -> bool:
        with self._writer():
            dropped = self._directory.drop_role(role_name)
            if dropped:
                self._store.revoke_principal(role_name)
            return dropped

    def create_identity(self, identity_name: str, *, login: str = "", roles: Iterable[str] = ()) -> bool:
        with self._writer():
            return self._directory.create_identity(identity_name, login=login, roles=roles)

    def drop_identity(self, identity_name: str) -> bool:
        with self._writer():
            dropped = self._directory.drop_identity(identity_name)
            if dropped:
                self._store.revoke_principal(identity_name)
            return dropped

    def add_membership(self, identity_name: str, role_name: str) -> bool:
        with self._writer():
            return self._directory.add_membership(identity_name, role_name)

    def remove_membership(self, identity_name: str, role_name: str) -> bool:
        with self._writer():
            return self._directory.remove_membership(identity_name, role_name)

    def resolve_effective_roles(self, identity_name: str) -> frozenset[str]:
        return self._state.directory.resolve_effective_roles(identity_name)

    def resolve_login(self, login: str) -> str:
        return self._state.directory.resolve_login(login)

    # Policy.

    def _require_principal(self, principal: str) -> None:
        if not self._directory.has_principal(principal):
            raise InvalidRequest(f"Cannot record a permission for unknown principal '{principal}'.")

    def grant(self, principal: str, action: str, securable, effect: str = EFFECT_ALLOW) -> PolicyFact:
        with self._writer():
            self._require_principal(principal)
            return self._store.grant(principal, action, securable, effect)

    def deny(self, principal: str, action: str, securable) -> PolicyFact:
        return self.grant(principal, action, securable, EFFECT_DENY)

    def grant_privileges(
        self,
        principal: str,
        actions,
        securable,
        *,
        columns=None,
        effect: str = EFFECT_ALLOW,
    ) -> tuple[PolicyFact, ...]:
        """
        Record one fact per (action, target).

        ``columns`` expands an object securable into one target per column,
        the way ``GRANT UPDATE ON schema.object(col_a, col_b)`` does. Every
        argument is validated before anything is recorded.
        """
        action_values = normalize_actions(actions)
        targets = object_columns(securable, columns) if columns else (parse_securable(securable),)
        effect_value = normalize_effect(effect)
        with self._writer():
            self._require_principal(principal)
            return tuple(
                self._store.grant(principal, action, target, effect_value)
                for action in action_values
                for target in targets
            )

    def revoke(self, principal: str, action: str, securable) -> int:
        with self._writer():
            return self._store.revoke(principal, action, securable)

    def revoke_privileges(self, principal: str, actions, securable, *, columns=None) -> int:
        action_values = normalize_actions(actions)
        targets = object_columns(securable, columns) if columns else (parse_securable(securable),)
        with self._writer():
            return sum(
                self._store.revoke(principal, action, target)
                for action in action_values
                for target in targets
            )

    def facts(self) -> tuple[PolicyFact, ...]:
        return self._state.policies.facts()

    # Evaluation.

    def evaluate(self, identity_name: str, action: str, securable) -> Decision:
        return self._state.evaluator().evaluate(identity_name, action, securable)

    def authorize_columns(self, identity_name: str, action: str, object_path, columns) -> dict[str, Decision]:
        return self._state.evaluator().authorize_columns(identity_name, action, object_path, columns)

    def enforce(self, identity_name: str, action: str, securable) -> Decision:
        decision = self.evaluate(identity_name, action, securable)
        if not decision.allowed:
            LOGGER.warning(
                "Access denied. identity=%s action=%s securable=%s reason=%s",
                decision.identity,
                decision.action,
                decision.securable.path,
                decision.reason,
            )
            raise AccessDeniedError(
                f"{decision.action} on {decision.securable.path} is not permitted for '{decision.identity}'.",
                decisions=(decision,),
            )
        return decision

    def enforce_columns(self, identity_name: str, action: str, object_path, columns) -> dict[str, Decision]:
        decisions = self.authorize_columns(identity_name, action, object_path, columns)
        denied = [decision for decision in decisions.values() if not decision.allowed]
        if denied:
            names = ", ".join(decision.securable.parts[-1] for decision in denied)
            target = parse_securable(object_path).path
            LOGGER.warning(
                "Column access denied. identity=%s action=%s object=%s columns=%s",
                identity_name,
                denied[0].action,
                target,
                names,
            )
            raise AccessDeniedError(
                f"{denied[0].action} on {target} is not permitted for '{identity_name}' on column(s): {names}.",
                decisions=tuple(denied),
            )
        return decisions
