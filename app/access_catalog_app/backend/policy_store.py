"""
Policy store.

Grant and deny facts keyed by (principal, action, securable). Facts are
immutable; revocation removes them. Each fact carries the sequence number it
was recorded with so "most recent" has a stable meaning.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from access_catalog_app.core.securables import Securable, parse_securable
from access_catalog_app.core.security import (
    normalize_action,
    normalize_effect,
    normalize_principal_name,
    principal_key,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyFact:
    principal: str
    action: str
    securable: Securable
    effect: str
    sequence: int = 0

    @property
    def principal_key(self) -> str:
        return principal_key(self.principal)

    @property
    def level(self) -> str:
        return self.securable.level

    def matches(self, principal: str, action: str, securable: Securable) -> bool:
        return (
            self.principal_key == principal_key(principal)
            and self.action == action
            and self.securable == securable
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "principal": self.principal,
            "action": self.action,
            "securable": self.securable.path,
            "level": self.level,
            "effect": self.effect,
            "sequence": self.sequence,
        }


def _applicable_order(fact: PolicyFact) -> tuple[int, int]:
    # Most specific first, then most recent first.
    return (-fact.securable.depth, -fact.sequence)


@dataclass(frozen=True)
class PolicySnapshot:
    fact_list: tuple[PolicyFact, ...] = ()

    def facts(self) -> tuple[PolicyFact, ...]:
        return self.fact_list

    @property
    def next_sequence(self) -> int:
        return max((fact.sequence for fact in self.fact_list), default=0) + 1

    def find_applicable(self, principal_set: Iterable[str], action: str, securable) -> tuple[PolicyFact, ...]:
        keys = {principal_key(name) for name in principal_set}
        target = parse_securable(securable)
        action_value = normalize_action(action)
        matched = [
            fact
            for fact in self.fact_list
            if fact.principal_key in keys
            and fact.action == action_value
            and fact.securable.covers(target)
        ]
        return tuple(sorted(matched, key=_applicable_order))

    def facts_for_principal(self, principal: str) -> tuple[PolicyFact, ...]:
        key = principal_key(principal)
        return tuple(fact for fact in self.fact_list if fact.principal_key == key)


class PolicyStore:
    def __init__(self, snapshot: PolicySnapshot | None = None) -> None:
        self._snapshot = snapshot or PolicySnapshot()
        self._next_sequence = self._snapshot.next_sequence
        self._lock = threading.RLock()

    def snapshot(self) -> PolicySnapshot:
        return self._snapshot

    def facts(self) -> tuple[PolicyFact, ...]:
        return self._snapshot.facts()

    def find_applicable(self, principal_set: Iterable[str], action: str, securable) -> tuple[PolicyFact, ...]:
        return self._snapshot.find_applicable(principal_set, action, securable)

    def grant(self, principal: str, action: str, securable, effect: str) -> PolicyFact:
        principal_name = normalize_principal_name(principal)
        action_value = normalize_action(action)
        target = parse_securable(securable)
        effect_value = normalize_effect(effect)
        with self._lock:
            fact = PolicyFact(
                principal=principal_name,
                action=action_value,
                securable=target,
                effect=effect_value,
                sequence=self._next_sequence,
            )
            self._next_sequence += 1
            self._snapshot = PolicySnapshot(self._snapshot.fact_list + (fact,))
        LOGGER.info(
            "Recorded policy fact. principal=%s action=%s securable=%s effect=%s sequence=%s",
            fact.principal,
            fact.action,
            fact.securable.path,
            fact.effect,
            fact.sequence,
        )
        return fact

    def revoke(self, principal: str, action: str, securable) -> int:
        """Remove every fact matching all three fields, whatever its effect."""
        action_value = normalize_action(action)
        target = parse_securable(securable)
        with self._lock:
            current = self._snapshot.fact_list
            kept = tuple(fact for fact in current if not fact.matches(principal, action_value, target))
            removed = len(current) - len(kept)
            if removed:
                self._snapshot = PolicySnapshot(kept)
        LOGGER.info(
            "Revoked policy facts. principal=%s action=%s securable=%s removed=%s",
            principal,
            action_value,
            target.path,
            removed,
        )
        return removed

    def revoke_principal(self, principal: str) -> int:
        key = principal_key(principal)
        with self._lock:
            current = self._snapshot.fact_list
            kept = tuple(fact for fact in current if fact.principal_key != key)
            removed = len(current) - len(kept)
            if removed:
                self._snapshot = PolicySnapshot(kept)
        if removed:
            LOGGER.info("Revoked all policy facts for principal. principal=%s removed=%s", principal, removed)
        return removed
