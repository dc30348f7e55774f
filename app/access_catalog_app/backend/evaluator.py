"""
Access evaluator.

Decides whether an identity may perform an action on a securable:

1. The principal set is the identity plus every role it is a direct member of.
2. Facts for that set are collected at the securable and at each ancestor up
   to its schema, since permissions are inherited downward.
3. DENY at any level beats ALLOW at any level. Among facts of the winning
   effect the most specific securable is reported (column > object > schema),
   then the most recently recorded. With no applicable fact the result is
   DENY.

The evaluator never mutates its collaborators and holds no state of its own,
so repeated calls with the same input and no intervening mutation give the
same decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from access_catalog_app.backend.policy_store import PolicyFact
from access_catalog_app.core.securables import LEVELS, Securable, object_columns, parse_securable
from access_catalog_app.core.security import EFFECT_ALLOW, EFFECT_DENY, normalize_action

LOGGER = logging.getLogger(__name__)

REASON_DEFAULT_DENY = "no applicable grant (fail-closed default)"


class RoleResolver(Protocol):
    def resolve_effective_roles(self, identity_name: str) -> frozenset[str]: ...

    def identity_name(self, identity_name: str) -> str: ...


class FactSource(Protocol):
    def find_applicable(self, principal_set: Iterable[str], action: str, securable) -> tuple[PolicyFact, ...]: ...


@dataclass(frozen=True)
class PolicyConflictAudit:
    """Informational record attached when facts at several levels contributed."""

    levels: tuple[str, ...]
    contributing: tuple[PolicyFact, ...]
    overridden: tuple[PolicyFact, ...]

    def as_dict(self) -> dict[str, object]:
        return {
            "levels": list(self.levels),
            "contributing": [fact.as_dict() for fact in self.contributing],
            "overridden": [fact.as_dict() for fact in self.overridden],
        }


@dataclass(frozen=True)
class Decision:
    effect: str
    identity: str
    action: str
    securable: Securable
    matched_fact: PolicyFact | None = None
    applicable_facts: tuple[PolicyFact, ...] = ()
    audit: PolicyConflictAudit | None = None

    @property
    def allowed(self) -> bool:
        return self.effect == EFFECT_ALLOW

    @property
    def is_default(self) -> bool:
        return self.matched_fact is None

    @property
    def reason(self) -> str:
        fact = self.matched_fact
        if fact is None:
            return REASON_DEFAULT_DENY
        verb = "granted" if fact.effect == EFFECT_ALLOW else "denied"
        return f"{verb} by principal={fact.principal} on {fact.level} {fact.securable.path}"

    def as_dict(self) -> dict[str, object]:
        return {
            "effect": self.effect,
            "allowed": self.allowed,
            "identity": self.identity,
            "action": self.action,
            "securable": self.securable.path,
            "reason": self.reason,
            "matched_fact": self.matched_fact.as_dict() if self.matched_fact else None,
            "applicable_facts": [fact.as_dict() for fact in self.applicable_facts],
            "audit": self.audit.as_dict() if self.audit else None,
        }


def _conflict_audit(facts: tuple[PolicyFact, ...], effect: str) -> PolicyConflictAudit | None:
    levels = {fact.level for fact in facts}
    if len(levels) < 2:
        return None
    return PolicyConflictAudit(
        levels=tuple(level for level in LEVELS if level in levels),
        contributing=facts,
        overridden=tuple(fact for fact in facts if fact.effect != effect),
    )


class AccessEvaluator:
    def __init__(self, directory: RoleResolver, store: FactSource) -> None:
        self._directory = directory
        self._store = store

    def principal_set(self, identity_name: str) -> frozenset[str]:
        roles = self._directory.resolve_effective_roles(identity_name)
        return frozenset({identity_name}) | roles

    def evaluate(self, identity_name: str, action: str, securable) -> Decision:
        action_value = normalize_action(action)
        target = parse_securable(securable)
        principals = self.principal_set(identity_name)
        display_name = self._directory.identity_name(identity_name)

        facts = self._store.find_applicable(principals, action_value, target)
        denies = tuple(fact for fact in facts if fact.effect == EFFECT_DENY)
        allows = tuple(fact for fact in facts if fact.effect == EFFECT_ALLOW)

        if denies:
            effect, winners = EFFECT_DENY, denies
        elif allows:
            effect, winners = EFFECT_ALLOW, allows
        else:
            effect, winners = EFFECT_DENY, ()

        decision = Decision(
            effect=effect,
            identity=display_name,
            action=action_value,
            securable=target,
            matched_fact=winners[0] if winners else None,
            applicable_facts=facts,
            audit=_conflict_audit(facts, effect),
        )
        LOGGER.debug(
            "Access decision. identity=%s action=%s securable=%s effect=%s reason=%s",
            display_name,
            action_value,
            target.path,
            effect,
            decision.reason,
        )
        return decision

    def authorize_columns(self, identity_name: str, action: str, object_path, columns) -> dict[str, Decision]:
        return {
            column.parts[-1]: self.evaluate(identity_name, action, column)
            for column in object_columns(object_path, columns)
        }
